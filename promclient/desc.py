"""Metric descriptors: the immutable meta-data shared by metrics."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field

from .fnv import hash_add, hash_add_byte, hash_new

_SEPARATOR_BYTE = 255
_METRIC_NAME_RE = re.compile(r"[a-zA-Z_:][a-zA-Z0-9_:]*")
_LABEL_NAME_RE = re.compile(r"[a-zA-Z_][a-zA-Z0-9_]*")
_RESERVED_LABEL_PREFIX = "__"
_INCONSISTENT_CARDINALITY = "inconsistent label cardinality"

_GO_ESCAPES = {
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
    '"': '\\"',
    "\\": "\\\\",
}


def _go_quote(s: str) -> str:
    """Quote a string the way Go's %q verb does."""
    out = ['"']
    for ch in s:
        cp = ord(ch)
        if 0xDC80 <= cp <= 0xDCFF:
            out.append(f"\\x{cp - 0xDC00:02x}")
        elif ch in _GO_ESCAPES:
            out.append(_GO_ESCAPES[ch])
        elif ch.isprintable():
            out.append(ch)
        elif cp < 0x20 or cp == 0x7F:
            out.append(f"\\x{cp:02x}")
        elif cp < 0x10000:
            out.append(f"\\u{cp:04x}")
        else:
            out.append(f"\\U{cp:08x}")
    out.append('"')
    return "".join(out)


def _go_quote_list(values: Iterable[str]) -> str:
    return "[" + " ".join(_go_quote(v) for v in values) + "]"


def _go_slice_repr(values: Iterable[str]) -> str:
    return "[]string{" + ", ".join(_go_quote(v) for v in values) + "}"


def _is_valid_utf8(s: str) -> bool:
    try:
        s.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def _is_valid_metric_name(name: str) -> bool:
    return bool(_METRIC_NAME_RE.fullmatch(name))


def _check_label_name(name: str) -> bool:
    return bool(_LABEL_NAME_RE.fullmatch(name)) and not name.startswith(
        _RESERVED_LABEL_PREFIX
    )


def _validate_label_values(values: Sequence[str], expected: int) -> None:
    """Raise ValueError unless there are `expected` valid UTF-8 values."""
    if len(values) != expected:
        raise ValueError(
            f"{_INCONSISTENT_CARDINALITY}: expected {expected} label values "
            f"but got {len(values)} in {_go_slice_repr(values)}"
        )
    for value in values:
        if not _is_valid_utf8(value):
            raise ValueError(f"label value {_go_quote(value)} is not valid UTF-8")


def _inconsistent_cardinality(
    fq_name: str, labels: Sequence[str], values: Sequence[str]
) -> ValueError:
    return ValueError(
        f"{_INCONSISTENT_CARDINALITY}: {_go_quote(fq_name)} has {len(labels)} "
        f"variable labels named {_go_quote_list(labels)} but {len(values)} "
        f"values {_go_quote_list(values)} were provided"
    )


def build_fq_name(namespace: str, subsystem: str, name: str) -> str:
    """Join the non-empty name components with underscores."""
    if not name:
        return ""
    return "_".join(part for part in (namespace, subsystem, name) if part)


@dataclass
class Opts:
    """Common options for creating a metric."""

    namespace: str = ""
    subsystem: str = ""
    name: str = ""
    help: str = ""
    const_labels: dict[str, str] = field(default_factory=dict)


class Desc:
    """Descriptor of a metric; construction errors are kept in `err`."""

    def __init__(
        self,
        fq_name: str,
        help: str,
        variable_labels: Iterable[str] | None = None,
        const_labels: Mapping[str, str] | None = None,
    ) -> None:
        self._reset()
        self.fq_name = fq_name
        self.help = help
        self.variable_labels = tuple(variable_labels or ())
        try:
            self._build(dict(const_labels or {}))
        except ValueError as exc:
            self.err = exc

    def _reset(self) -> None:
        self.fq_name = ""
        self.help = ""
        self.variable_labels: tuple[str, ...] = ()
        self.const_label_pairs: tuple[tuple[str, str], ...] = ()
        self.id = 0
        self.dim_hash = 0
        self.err: BaseException | None = None

    def _build(self, const_labels: dict[str, str]) -> None:
        fq_name = self.fq_name
        if not _is_valid_metric_name(fq_name):
            raise ValueError(f"{_go_quote(fq_name)} is not a valid metric name")

        for name in const_labels:
            if not _check_label_name(name):
                raise ValueError(
                    f"{_go_quote(name)} is not a valid label name for metric "
                    f"{_go_quote(fq_name)}"
                )
        const_names = sorted(const_labels)
        label_values = [fq_name, *(const_labels[n] for n in const_names)]
        _validate_label_values(label_values, len(label_values))

        label_names = list(const_names)
        seen = set(const_names)
        for name in self.variable_labels:
            if not _check_label_name(name):
                raise ValueError(
                    f"{_go_quote(name)} is not a valid label name for metric "
                    f"{_go_quote(fq_name)}"
                )
            label_names.append("$" + name)
            seen.add(name)
        if len(label_names) != len(seen):
            raise ValueError("duplicate label names")

        vh = hash_new()
        for value in label_values:
            vh = hash_add_byte(hash_add(vh, value), _SEPARATOR_BYTE)

        lh = hash_add_byte(hash_add(hash_new(), self.help), _SEPARATOR_BYTE)
        for name in sorted(label_names):
            lh = hash_add_byte(hash_add(lh, name), _SEPARATOR_BYTE)

        self.id = vh
        self.dim_hash = lh
        self.const_label_pairs = tuple((n, const_labels[n]) for n in const_names)

    def __str__(self) -> str:
        const = ",".join(f"{n}={_go_quote(v)}" for n, v in self.const_label_pairs)
        variable = " ".join(self.variable_labels)
        return (
            f"Desc{{fqName: {_go_quote(self.fq_name)}, help: {_go_quote(self.help)}, "
            f"constLabels: {{{const}}}, variableLabels: [{variable}]}}"
        )

    __repr__ = __str__


def new_invalid_desc(err: BaseException) -> Desc:
    """Return a descriptor that carries only the given error."""
    desc = Desc.__new__(Desc)
    desc._reset()
    desc.err = err
    return desc