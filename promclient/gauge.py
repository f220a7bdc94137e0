"""Gauges: metrics whose value can go up and down arbitrarily."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterator, Mapping, Sequence

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
from .counter import _desc_from_opts
from .desc import (
    Desc,
    Opts,
    _go_quote,
    _inconsistent_cardinality,
    _validate_label_values,
)


class Gauge(Metric, SelfCollector):
    """A single numerical value that can be set, increased and decreased."""

    def __init__(self, opts: Opts) -> None:
        desc = _desc_from_opts(opts)
        self._setup(desc, _make_label_pairs(desc, ()))

    @classmethod
    def _from_desc(cls, desc: Desc, label_pairs: tuple[LabelPair, ...]) -> Gauge:
        gauge = cls.__new__(cls)
        gauge._setup(desc, label_pairs)
        return gauge

    def _setup(self, desc: Desc, label_pairs: tuple[LabelPair, ...]) -> None:
        self.desc = desc
        self._label_pairs = label_pairs
        self._value = 0.0
        self._lock = threading.Lock()

    @property
    def value(self) -> float:
        """The current value of the gauge."""
        with self._lock:
            return self._value

    def set(self, value: float) -> None:
        """Set the gauge to an arbitrary value."""
        with self._lock:
            self._value = float(value)

    def set_to_current_time(self) -> None:
        """Set the gauge to the current Unix time in seconds."""
        self.set(time.time_ns() / 1e9)

    def inc(self) -> None:
        """Increment the gauge by one."""
        self.add(1.0)

    def dec(self) -> None:
        """Decrement the gauge by one."""
        self.add(-1.0)

    def add(self, value: float) -> None:
        """Add a value, which may be negative."""
        with self._lock:
            self._value += float(value)

    def sub(self, value: float) -> None:
        """Subtract a value, which may be negative."""
        self.add(float(value) * -1)

    def write(self) -> MetricData:
        with self._lock:
            value = self._value
        return _populate_metric(ValueType.GAUGE, value, self._label_pairs)


class GaugeFunc(Metric, SelfCollector):
    """A gauge whose value is obtained by calling a function at write time."""

    def __init__(self, opts: Opts, function: Callable[[], float]) -> None:
        self.desc = _desc_from_opts(opts)
        self._function = function
        self._label_pairs = _make_label_pairs(self.desc, ())

    def write(self) -> MetricData:
        return _populate_metric(
            ValueType.GAUGE, float(self._function()), self._label_pairs
        )


class GaugeVec(Collector):
    """Gauges sharing one descriptor, partitioned by variable label values."""

    def __init__(self, opts: Opts, label_names: Sequence[str]) -> None:
        self.desc = _desc_from_opts(opts, label_names)
        self._children: dict[tuple[str, ...], Gauge] = {}
        self._lock = threading.Lock()

    def _get_or_create(self, values: tuple[str, ...]) -> Gauge:
        with self._lock:
            child = self._children.get(values)
            if child is None:
                desc = self.desc
                if len(values) != len(desc.variable_labels):
                    raise _inconsistent_cardinality(
                        desc.fq_name, desc.variable_labels, values
                    )
                child = Gauge._from_desc(desc, _make_label_pairs(desc, values))
                self._children[values] = child
            return child

    def with_label_values(self, *args: str) -> Gauge:
        """Return the gauge for the given label values, creating it if needed."""
        values = tuple(args)
        _validate_label_values(values, len(self.desc.variable_labels))
        return self._get_or_create(values)

    def with_labels(self, labels: Mapping[str, str]) -> Gauge:
        """Return the gauge for the given label map, creating it if needed."""
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