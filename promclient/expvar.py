"""A collector exposing exported variables as untyped metrics."""

from __future__ import annotations

import json
from collections.abc import Iterator, Mapping
from typing import Any

from .collector import Collector, Metric, MetricData, ValueType, new_const_metric
from .desc import Desc


class _InvalidMetric(Metric):
    """A metric that reports an error when written."""

    def __init__(self, desc: Desc, err: BaseException) -> None:
        self.desc = desc
        self.err = err

    def write(self) -> MetricData:
        raise self.err


class ExpvarCollector(Collector):
    """Collect metrics from a mapping of exported variables.

    `exports` maps variable names to the descriptors under which they are
    exposed. `variables` maps names to values (or zero-argument callables
    producing them); values are read at collect time through their JSON
    form. Numbers and booleans become sample values; nested maps supply one
    label value per level. Anything else is silently ignored.
    """

    def __init__(
        self,
        exports: Mapping[str, Desc],
        variables: Mapping[str, Any] | None = None,
    ) -> None:
        self.exports = dict(exports)
        self.variables = variables if variables is not None else {}

    def describe(self) -> Iterator[Desc]:
        yield from self.exports.values()

    def collect(self) -> Iterator[Metric]:
        for name, desc in self.exports.items():
            if name not in self.variables:
                continue
            raw = self.variables[name]
            try:
                value = raw() if callable(raw) else raw
                decoded = json.loads(json.dumps(value))
            except (TypeError, ValueError) as exc:
                yield _InvalidMetric(desc, exc)
                continue
            yield from self._process(desc, decoded, ())

    def _process(
        self, desc: Desc, value: Any, labels: tuple[str, ...]
    ) -> Iterator[Metric]:
        if len(labels) >= len(desc.variable_labels):
            if isinstance(value, bool):
                sample = 1.0 if value else 0.0
            elif isinstance(value, (int, float)):
                sample = float(value)
            else:
                return
            yield new_const_metric(desc, ValueType.UNTYPED, sample, *labels)
            return
        if not isinstance(value, dict):
            return
        for label_value, inner in value.items():
            yield from self._process(desc, inner, (*labels, label_value))