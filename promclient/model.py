"""Query result values and their JSON encoding."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Union

_PAIR_ERROR = "unmarshal model.SamplePair"


class ValueType(Enum):
    """Type of a query result."""

    SCALAR = "scalar"
    VECTOR = "vector"
    MATRIX = "matrix"
    STRING = "string"


def _load(data: Any) -> Any:
    if isinstance(data, (str, bytes, bytearray)):
        return json.loads(data, parse_float=Decimal)
    return data


def format_timestamp(ms: int) -> str:
    """Format a millisecond timestamp as seconds with up to three decimals."""
    ms = int(ms)
    sign = ""
    if ms < 0:
        sign = "-"
        ms = -ms
    seconds, fraction = divmod(ms, 1000)
    if fraction:
        return f"{sign}{seconds}.{fraction:03d}"
    return f"{sign}{seconds}"


def format_sample_value(value: float) -> str:
    """Format a sample value in its shortest exact decimal form."""
    v = float(value)
    if math.isnan(v):
        return "NaN"
    if math.isinf(v):
        return "+Inf" if v > 0 else "-Inf"
    if v == 0:
        return "-0" if math.copysign(1.0, v) < 0 else "0"
    prefix = "-" if v < 0 else ""
    magnitude = abs(v)
    _, digit_tuple, exponent = Decimal(repr(magnitude)).normalize().as_tuple()
    digits = "".join(map(str, digit_tuple))
    point = len(digits) + exponent
    if magnitude < 1e-6 or magnitude >= 1e21:
        exp10 = point - 1
        mantissa = digits[0] + ("." + digits[1:] if len(digits) > 1 else "")
        exp_sign = "-" if exp10 < 0 else "+"
        return f"{prefix}{mantissa}e{exp_sign}{abs(exp10):02d}"
    if point <= 0:
        body = "0." + "0" * (-point) + digits
    elif point >= len(digits):
        body = digits + "0" * (point - len(digits))
    else:
        body = digits[:point] + "." + digits[point:]
    return prefix + body


def _parse_timestamp(raw: Any) -> int:
    if isinstance(raw, bool) or not isinstance(raw, (int, float, Decimal)):
        raise ValueError(f"{_PAIR_ERROR}: timestamp must be a number, got {raw!r}")
    if isinstance(raw, float):
        if not math.isfinite(raw):
            raise ValueError(f"{_PAIR_ERROR}: invalid timestamp {raw!r}")
        raw = Decimal(repr(raw))
    return int(Decimal(raw) * 1000)


def _parse_value(raw: Any) -> float:
    if not isinstance(raw, str):
        raise ValueError(f"{_PAIR_ERROR}: value must be a string, got {raw!r}")
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{_PAIR_ERROR}: invalid sample value {raw!r}") from None


def _parse_pair(data: Any) -> tuple[int, float]:
    if not isinstance(data, (list, tuple)) or not data:
        raise ValueError(f"{_PAIR_ERROR}: SamplePair must be [timestamp, value]")
    if len(data) < 2:
        raise ValueError(f"{_PAIR_ERROR}: SamplePair missing value")
    if len(data) > 2:
        raise ValueError(
            f"{_PAIR_ERROR}: SamplePair has too many values, must be [timestamp, value]"
        )
    return _parse_timestamp(data[0]), _parse_value(data[1])


def _parse_metric(data: Any) -> dict[str, str]:
    if data is None:
        return {}
    if not isinstance(data, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in data.items()
    ):
        raise ValueError(f"metric must be a map of strings, got {data!r}")
    return dict(data)


def _require_object(data: Any, what: str) -> dict:
    if not isinstance(data, dict):
        raise ValueError(f"{what} must be a JSON object, got {data!r}")
    return data


@dataclass
class SamplePair:
    """A timestamp in milliseconds and a sample value."""

    timestamp: int
    value: float

    def to_json(self) -> str:
        """Encode as [seconds, "value"]."""
        return (
            f"[{format_timestamp(self.timestamp)},"
            f"\"{format_sample_value(self.value)}\"]"
        )

    @classmethod
    def from_json(cls, data: Any) -> SamplePair:
        """Decode from JSON text or an already decoded [seconds, "value"] list."""
        timestamp, value = _parse_pair(_load(data))
        return cls(timestamp, value)


@dataclass
class Scalar:
    """A single value at a point in time."""

    value: float
    timestamp: int

    @classmethod
    def from_json(cls, data: Any) -> Scalar:
        timestamp, value = _parse_pair(_load(data))
        return cls(value, timestamp)


@dataclass
class Sample:
    """One element of an instant vector."""

    metric: dict[str, str]
    value: float
    timestamp: int

    @classmethod
    def from_json(cls, data: Any) -> Sample:
        obj = _require_object(_load(data), "sample")
        timestamp, value = _parse_pair(obj.get("value"))
        return cls(_parse_metric(obj.get("metric")), value, timestamp)


@dataclass
class SampleStream:
    """One series of a range matrix."""

    metric: dict[str, str]
    values: list[SamplePair] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Any) -> SampleStream:
        obj = _require_object(_load(data), "sample stream")
        raw_values = obj.get("values") or []
        if not isinstance(raw_values, list):
            raise ValueError(f"values must be a list, got {raw_values!r}")
        values = [SamplePair.from_json(v) for v in raw_values]
        return cls(_parse_metric(obj.get("metric")), values)


QueryValue = Union[Scalar, list]


def _decode_list(result: Any, item_cls: Any) -> list:
    if result is None:
        return []
    if not isinstance(result, list):
        raise ValueError(f"expected a list of results, got {result!r}")
    return [item_cls.from_json(item) for item in result]


def decode_value(value_type: Union[ValueType, str], result: Any) -> QueryValue:
    """Decode a query result of the given type.

    Scalars become a Scalar, vectors a list of Sample and matrices a list of
    SampleStream; any other type is an error.
    """
    name = value_type.value if isinstance(value_type, ValueType) else str(value_type)
    result = _load(result)
    if name == ValueType.SCALAR.value:
        return Scalar.from_json(result)
    if name == ValueType.VECTOR.value:
        return _decode_list(result, Sample)
    if name == ValueType.MATRIX.value:
        return _decode_list(result, SampleStream)
    raise ValueError(f"unexpected value type \"{name}\"")