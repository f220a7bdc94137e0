"""Metric and collector interfaces, metric data, and constant metrics."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import NamedTuple

from .desc import Desc, _validate_label_values


class ValueType(Enum):
    """Kind of a single-value metric."""

    COUNTER = 1
    GAUGE = 2
    UNTYPED = 3


class LabelPair(NamedTuple):
    name: str
    value: str


class Quantile(NamedTuple):
    quantile: float
    value: float


_PROTO_ESCAPES = {
    ord("\n"): "\\n",
    ord("\r"): "\\r",
    ord("\t"): "\\t",
    ord('"'): '\\"',
    ord("\\"): "\\\\",
}


def _proto_quote(s: str) -> str:
    out = ['"']
    for byte in s.encode("utf-8", "surrogateescape"):
        if byte in _PROTO_ESCAPES:
            out.append(_PROTO_ESCAPES[byte])
        elif 0x20 <= byte < 0x7F:
            out.append(chr(byte))
        else:
            out.append(f"\\{byte:03o}")
    out.append('"')
    return "".join(out)


def _format_float(value: float) -> str:
    """Format a float as the shortest %g form used in text output."""
    if math.isnan(value):
        return "nan"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    if value == 0:
        return "-0" if math.copysign(1.0, value) < 0 else "0"
    sign, digit_tuple, exponent = Decimal(repr(value)).normalize().as_tuple()
    digits = "".join(map(str, digit_tuple))
    point = len(digits) + exponent
    exp10 = point - 1
    prefix = "-" if sign else ""
    if exp10 < -4 or exp10 >= 6:
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


@dataclass(frozen=True)
class MetricData:
    """The written state of one metric: labels plus its value(s)."""

    labels: tuple[LabelPair, ...] = ()
    gauge: float | None = None
    counter: float | None = None
    untyped: float | None = None
    sample_count: int | None = None
    sample_sum: float | None = None
    quantiles: tuple[Quantile, ...] = ()

    def __str__(self) -> str:
        parts = [
            f"label:<name:{_proto_quote(lp.name)} value:{_proto_quote(lp.value)} > "
            for lp in self.labels
        ]
        if self.gauge is not None:
            parts.append(f"gauge:<value:{_format_float(self.gauge)} > ")
        if self.counter is not None:
            parts.append(f"counter:<value:{_format_float(self.counter)} > ")
        if self.sample_count is not None:
            inner = [
                f"sample_count:{self.sample_count} ",
                f"sample_sum:{_format_float(self.sample_sum or 0.0)} ",
            ]
            inner.extend(
                f"quantile:<quantile:{_format_float(q.quantile)} "
                f"value:{_format_float(q.value)} > "
                for q in self.quantiles
            )
            parts.append("summary:<" + "".join(inner) + "> ")
        if self.untyped is not None:
            parts.append(f"untyped:<value:{_format_float(self.untyped)} > ")
        return "".join(parts)


class Metric(ABC):
    """A single sample value with its descriptor and label values."""

    desc: Desc

    @abstractmethod
    def write(self) -> MetricData:
        """Return the current state of the metric."""


class Collector(ABC):
    """Anything that yields descriptors and metrics for collection."""

    @abstractmethod
    def describe(self) -> Iterator[Desc]:
        """Yield every descriptor of the metrics this collector may yield."""

    @abstractmethod
    def collect(self) -> Iterator[Metric]:
        """Yield the collected metrics."""


class SelfCollector(Collector):
    """Mixin letting a metric collect itself."""

    def describe(self) -> Iterator[Desc]:
        yield self.desc  # type: ignore[attr-defined]

    def collect(self) -> Iterator[Metric]:
        yield self  # type: ignore[misc]


def _make_label_pairs(desc: Desc, label_values: Sequence[str]) -> tuple[LabelPair, ...]:
    const_pairs = [LabelPair(n, v) for n, v in desc.const_label_pairs]
    if not desc.variable_labels:
        return tuple(const_pairs)
    pairs = [LabelPair(n, v) for n, v in zip(desc.variable_labels, label_values)]
    pairs.extend(const_pairs)
    return tuple(sorted(pairs, key=lambda lp: lp.name))


def _populate_metric(
    value_type: ValueType, value: float, labels: tuple[LabelPair, ...]
) -> MetricData:
    if value_type is ValueType.COUNTER:
        return MetricData(labels=labels, counter=value)
    if value_type is ValueType.GAUGE:
        return MetricData(labels=labels, gauge=value)
    if value_type is ValueType.UNTYPED:
        return MetricData(labels=labels, untyped=value)
    raise ValueError(f"encountered unknown type {value_type!r}")


class ConstMetric(Metric):
    """A metric with a fixed value, created on the fly during collection."""

    def __init__(
        self,
        desc: Desc,
        value_type: ValueType,
        value: float,
        label_values: Sequence[str] = (),
    ) -> None:
        if desc.err is not None:
            raise desc.err
        label_values = tuple(label_values)
        _validate_label_values(label_values, len(desc.variable_labels))
        self.desc = desc
        self.value_type = value_type
        self.value = float(value)
        self.label_pairs = _make_label_pairs(desc, label_values)

    def write(self) -> MetricData:
        return _populate_metric(self.value_type, self.value, self.label_pairs)


class ConstSummary(Metric):
    """A summary with fixed count, sum and quantiles."""

    def __init__(
        self,
        desc: Desc,
        count: int,
        total: float,
        quantiles: Mapping[float, float],
    ) -> None:
        if desc.err is not None:
            raise desc.err
        _validate_label_values((), len(desc.variable_labels))
        self.desc = desc
        self.count = int(count)
        self.total = float(total)
        self.quantiles = dict(quantiles)
        self.label_pairs = _make_label_pairs(desc, ())

    def write(self) -> MetricData:
        quantiles = tuple(
            sorted(
                (Quantile(float(q), float(v)) for q, v in self.quantiles.items()),
                key=lambda q: q.quantile,
            )
        )
        return MetricData(
            labels=self.label_pairs,
            sample_count=self.count,
            sample_sum=self.total,
            quantiles=quantiles,
        )


def new_const_metric(
    desc: Desc, value_type: ValueType, value: float, *args: str
) -> ConstMetric:
    """Create a constant metric; raises if the descriptor or labels are invalid."""
    return ConstMetric(desc, value_type, value, args)


def new_const_summary(
    desc: Desc, count: int, total: float, quantiles: Mapping[float, float]
) -> ConstSummary:
    """Create a constant summary; raises if the descriptor is invalid."""
    return ConstSummary(desc, count, total, quantiles)


def describe_by_collect(collector: Collector) -> Iterator[Desc]:
    """Yield the descriptors of every metric the collector currently collects."""
    for metric in collector.collect():
        yield metric.desc