"""Counters: metrics whose value only ever goes up."""

from __future__ import annotations

import math
import threading
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence

from .collector import (
    Collector,
    LabelPair,
    Metric,
    MetricData,
    SelfCollector,
    ValueType,
    _make_label_pairs,
    _populate_metric,
)
from .desc import (
    Desc,
    Opts,
    _go_quote,
    _inconsistent_cardinality,
    _validate_label_values,
    build_fq_name,
)

_UINT64_LIMIT = 1 << 64
_UINT64_MASK = _UINT64_LIMIT - 1


def _desc_from_opts(opts: Opts, label_names: Iterable[str] | None = None) -> Desc:
    return Desc(
        build_fq_name(opts.namespace, opts.subsystem, opts.name),
        opts.help,
        label_names,
        opts.const_labels,
    )


class Counter(Metric, SelfCollector):
    """A monotonically increasing value.

    Integral increments are tracked separately from fractional ones, and
    both parts are added up when the counter is written.
    """

    def __init__(self, opts: Opts) -> None:
        desc = _desc_from_opts(opts)
        self._setup(desc, _make_label_pairs(desc, ()))

    @classmethod
    def _from_desc(cls, desc: Desc, label_pairs: tuple[LabelPair, ...]) -> Counter:
        counter = cls.__new__(cls)
        counter._setup(desc, label_pairs)
        return counter

    def _setup(self, desc: Desc, label_pairs: tuple[LabelPair, ...]) -> None:
        self.desc = desc
        self._label_pairs = label_pairs
        self._float_value = 0.0
        self._int_value = 0
        self._lock = threading.Lock()

    def add(self, value: float) -> None:
        """Add a non-negative value; raises ValueError for a negative one."""
        value = float(value)
        if value < 0:
            raise ValueError("counter cannot decrease in value")
        with self._lock:
            if math.isfinite(value) and value.is_integer() and value < _UINT64_LIMIT:
                self._int_value = (self._int_value + int(value)) & _UINT64_MASK
            else:
                self._float_value += value

    def inc(self) -> None:
        """Increment the counter by one."""
        with self._lock:
            self._int_value = (self._int_value + 1) & _UINT64_MASK

    def write(self) -> MetricData:
        with self._lock:
            value = self._float_value + float(self._int_value)
        return _populate_metric(ValueType.COUNTER, value, self._label_pairs)


class CounterFunc(Metric, SelfCollector):
    """A counter whose value is obtained by calling a function at write time."""

    def __init__(self, opts: Opts, function: Callable[[], float]) -> None:
        self.desc = _desc_from_opts(opts)
        self._function = function
        self._label_pairs = _make_label_pairs(self.desc, ())

    def write(self) -> MetricData:
        return _populate_metric(
            ValueType.COUNTER, float(self._function()), self._label_pairs
        )


class CounterVec(Collector):
    """Counters sharing one descriptor, partitioned by variable label values."""

    def __init__(self, opts: Opts, label_names: Sequence[str]) -> None:
        self.desc = _desc_from_opts(opts, label_names)
        self._children: dict[tuple[str, ...], Counter] = {}
        self._lock = threading.Lock()

    def _get_or_create(self, values: tuple[str, ...]) -> Counter:
        with self._lock:
            child = self._children.get(values)
            if child is None:
                desc = self.desc
                if len(values) != len(desc.variable_labels):
                    raise _inconsistent_cardinality(
                        desc.fq_name, desc.variable_labels, values
                    )
                child = Counter._from_desc(desc, _make_label_pairs(desc, values))
                self._children[values] = child
            return child

    def with_label_values(self, *args: str) -> Counter:
        """Return the counter for the given label values, creating it if needed."""
        values = tuple(args)
        _validate_label_values(values, len(self.desc.variable_labels))
        return self._get_or_create(values)

    def with_labels(self, labels: Mapping[str, str]) -> Counter:
        """Return the counter for the given label map, creating it if needed."""
        names = self.desc.variable_labels
        if len(labels) != len(names):
            raise ValueError(
                f"inconsistent label cardinality: expected {len(names)} label "
                f"values but got {len(labels)} in {dict(labels)!r}"
            )
        for name in names:
            if name not in labels:
                raise ValueError(f"label name {_go_quote(name)} missing in label map")
        values = tuple(labels[name] for name in names)
        _validate_label_values(values, len(names))
        return self._get_or_create(values)

    def describe(self) -> Iterator[Desc]:
        yield self.desc

    def collect(self) -> Iterator[Metric]:
        with self._lock:
            children = list(self._children.values())
        yield from children