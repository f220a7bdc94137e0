"""HTTP client used to talk to a Prometheus server's HTTP API."""

from __future__ import annotations

import functools
import posixpath
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Optional, Tuple, Union
from urllib.parse import SplitResult, urlencode, urlsplit, urlunsplit

import requests

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
METHOD_NOT_ALLOWED = 405

Warnings = Optional[list]


@dataclass
class Request:
    """An HTTP request to be sent by a Client."""

    method: str
    url: str
    body: bytes | None = None
    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class Response:
    """The status and headers of an HTTP response."""

    status_code: int
    headers: dict[str, str] = field(default_factory=dict)


DoResult = Tuple[Response, bytes, Optional[list]]


@functools.lru_cache(maxsize=None)
def _default_session() -> requests.Session:
    """The shared session used when a Config names none.

    Proxies are taken from the environment, as requests does by default.
    """
    return requests.Session()


@dataclass
class Config:
    """Configuration of a new client."""

    address: str = ""
    session: requests.Session | None = None

    def http_session(self) -> requests.Session:
        """Return the configured session, or the shared default one."""
        if self.session is None:
            return _default_session()
        return self.session


class Client(ABC):
    """Interface of an API client."""

    @abstractmethod
    def url(self, endpoint: str, args: Mapping[str, str] | None = None) -> str:
        """Build the full URL of an endpoint, substituting `:name` arguments."""

    @abstractmethod
    def do(self, request: Request, timeout: float | None = None) -> DoResult:
        """Send a request and return (response, body, warnings)."""


def _join_path(base: str, endpoint: str) -> str:
    parts = [p for p in (base, endpoint) if p]
    if not parts:
        return ""
    joined = posixpath.normpath("/".join(parts))
    if joined.startswith("//"):
        joined = "/" + joined.lstrip("/")
    return joined


class HTTPClient(Client):
    """A client sending requests through a requests session."""

    def __init__(
        self,
        endpoint: Union[str, SplitResult],
        session: requests.Session | None = None,
    ) -> None:
        self.endpoint = urlsplit(endpoint) if isinstance(endpoint, str) else endpoint
        self.session = session if session is not None else _default_session()

    def url(self, endpoint: str, args: Mapping[str, str] | None = None) -> str:
        path = _join_path(self.endpoint.path, endpoint)
        for name, value in (args or {}).items():
            path = path.replace(":" + name, value)
        if self.endpoint.netloc and path and not path.startswith("/"):
            path = "/" + path
        return urlunsplit(self.endpoint._replace(path=path))

    def do(self, request: Request, timeout: float | None = None) -> DoResult:
        with self.session.request(
            request.method,
            request.url,
            data=request.body,
            headers=dict(request.headers),
            timeout=timeout,
        ) as resp:
            body = resp.content
            response = Response(resp.status_code, dict(resp.headers))
        return response, body, None


def new_client(config: Config) -> HTTPClient:
    """Create a client for the configured address."""
    endpoint = urlsplit(config.address)
    endpoint = endpoint._replace(path=endpoint.path.rstrip("/"))
    return HTTPClient(endpoint, config.http_session())


def _encode_values(args: Mapping[str, Union[str, Iterable[str]]]) -> str:
    """Form-encode values, sorted by key, keeping the order of each key's values."""
    pairs: list[tuple[str, str]] = []
    for key in sorted(args):
        value = args[key]
        values = [value] if isinstance(value, str) else list(value)
        pairs.extend((key, v) for v in values)
    return urlencode(pairs)


def _status_of(response: Any) -> int | None:
    return getattr(response, "status_code", None)


def do_get_fallback(
    client: Client,
    url: str,
    args: Mapping[str, Union[str, Iterable[str]]],
    timeout: float | None = None,
) -> DoResult:
    """POST the form-encoded args; on a 405 answer retry them as a GET query.

    A 405 is recognised both in a returned response and in a raised
    exception that carries a `response` attribute.
    """
    encoded = _encode_values(args)
    post = Request(
        "POST", url, encoded.encode("ascii"), {"Content-Type": FORM_CONTENT_TYPE}
    )
    try:
        response, body, warnings = client.do(post, timeout)
    except Exception as exc:
        if _status_of(getattr(exc, "response", None)) != METHOD_NOT_ALLOWED:
            raise
    else:
        if response.status_code != METHOD_NOT_ALLOWED:
            return response, body, warnings
    get_url = urlunsplit(urlsplit(url)._replace(query=encoded))
    return client.do(Request("GET", get_url), timeout)