import math

import pytest

from promclient.collector import (
    Collector,
    ConstMetric,
    LabelPair,
    MetricData,
    SelfCollector,
    ValueType,
    describe_by_collect,
    new_const_metric,
    new_const_summary,
)
from promclient.desc import Desc, new_invalid_desc


class _PairCollector(Collector):
    def __init__(self, *metrics):
        self._metrics = metrics

    def collect(self):
        yield from self._metrics

    def describe(self):
        return describe_by_collect(self)


class _SelfMetric(ConstMetric, SelfCollector):
    pass


def test_describe_by_collect():
    c1 = new_const_metric(Desc("c1", "help c1"), ValueType.COUNTER, 0)
    g1 = new_const_metric(Desc("g1", "help g1"), ValueType.GAUGE, 0)
    descs = list(_PairCollector(c1, g1).describe())
    assert [d.fq_name for d in descs] == ["c1", "g1"]
    assert descs[0] is c1.desc
    assert descs[1] is g1.desc


def test_self_collector():
    desc = Desc("self_metric", "help")
    metric = _SelfMetric(desc, ValueType.GAUGE, 1.0)
    described = list(metric.describe())
    collected = list(metric.collect())
    assert len(described) == 1 and described[0] is desc
    assert len(collected) == 1 and collected[0] is metric


def test_counter_with_const_labels():
    desc = Desc("test", "test help", None, {"a": "1", "b": "2"})
    data = new_const_metric(desc, ValueType.COUNTER, 67.42).write()
    assert data.counter == 67.42
    assert (
        str(data)
        == 'label:<name:"a" value:"1" > label:<name:"b" value:"2" > counter:<value:67.42 > '
    )


def test_counter_inf():
    data = new_const_metric(Desc("test", "test help"), ValueType.COUNTER, math.inf).write()
    assert str(data) == "counter:<value:inf > "


def test_counter_large():
    large = math.nextafter(float(2**64), 1e20)
    data = new_const_metric(Desc("test", "test help"), ValueType.COUNTER, large).write()
    assert str(data) == f"counter:<value:{large:.16e} > "


def test_counter_small():
    small = 0.000000000001
    data = new_const_metric(Desc("test", "test help"), ValueType.COUNTER, small).write()
    assert str(data) == f"counter:<value:{small:.0e} > "


def test_gauge_with_const_labels():
    desc = Desc("test_name", "test help", None, {"a": "1", "b": "2"})
    data = new_const_metric(desc, ValueType.GAUGE, 3.1415).write()
    assert data.gauge == 3.1415
    assert (
        str(data)
        == 'label:<name:"a" value:"1" > label:<name:"b" value:"2" > gauge:<value:3.1415 > '
    )


def test_untyped_with_variable_labels():
    desc = Desc("expvar_http_request_total", "requests", ["code", "method"])
    data = new_const_metric(desc, ValueType.UNTYPED, 212, "200", "GET").write()
    assert (
        str(data)
        == 'label:<name:"code" value:"200" > label:<name:"method" value:"GET" > untyped:<value:212 > '
    )


def test_untyped_without_labels():
    data = new_const_metric(Desc("expvar_lone_int", "int"), ValueType.UNTYPED, 42).write()
    assert str(data) == "untyped:<value:42 > "


def test_variable_and_const_labels_are_merged_sorted():
    desc = Desc("m", "h", ["b"], {"a": "1", "c": "3"})
    data = new_const_metric(desc, ValueType.GAUGE, 1, "2").write()
    assert data.labels == (LabelPair("a", "1"), LabelPair("b", "2"), LabelPair("c", "3"))


def test_label_value_quoting():
    desc = Desc("m", "h", ["v"])
    data = new_const_metric(desc, ValueType.GAUGE, 1, 'x"y\n').write()
    assert str(data) == 'label:<name:"v" value:"x\\"y\\n" > gauge:<value:1 > '


def test_wrong_cardinality_raises():
    desc = Desc("m", "h", ["a"])
    with pytest.raises(ValueError, match="inconsistent label cardinality"):
        new_const_metric(desc, ValueType.GAUGE, 1)
    with pytest.raises(ValueError, match="inconsistent label cardinality"):
        new_const_metric(desc, ValueType.GAUGE, 1, "x", "y")


def test_invalid_utf8_label_value_raises():
    desc = Desc("m", "h", ["a"])
    with pytest.raises(ValueError, match="not valid UTF-8"):
        new_const_metric(desc, ValueType.GAUGE, 1, "\udcff")


def test_invalid_desc_error_is_raised():
    err = RuntimeError("cannot describe")
    with pytest.raises(RuntimeError, match="cannot describe"):
        new_const_metric(new_invalid_desc(err), ValueType.GAUGE, 1)
    with pytest.raises(RuntimeError, match="cannot describe"):
        new_const_summary(new_invalid_desc(err), 1, 1.0, {})


def test_summary_quantiles_sorted():
    desc = Desc("go_gc_duration_seconds", "gc")
    quantiles = {1.0: 5.0, 0.25: 2.0, 0.0: 1.0, 0.75: 4.0, 0.5: 3.0}
    data = new_const_summary(desc, 7, 15.0, quantiles).write()
    assert len(data.quantiles) == 5
    assert [q.quantile for q in data.quantiles] == [0.0, 0.25, 0.5, 0.75, 1.0]
    assert data.sample_count == 7
    assert data.sample_sum == 15.0


def test_summary_text():
    desc = Desc("s", "h")
    data = new_const_summary(desc, 5, 1.5, {1.0: 3.0, 0.0: 1.0, 0.5: 2.0}).write()
    assert str(data) == (
        "summary:<sample_count:5 sample_sum:1.5 "
        "quantile:<quantile:0 value:1 > "
        "quantile:<quantile:0.5 value:2 > "
        "quantile:<quantile:1 value:3 > > "
    )


def test_summary_with_variable_labels_raises():
    with pytest.raises(ValueError, match="inconsistent label cardinality"):
        new_const_summary(Desc("s", "h", ["a"]), 1, 1.0, {})


@pytest.mark.parametrize(
    "value, text",
    [
        (1234567.0, "1.234567e+06"),
        (0.0001, "0.0001"),
        (-2.5, "-2.5"),
        (100.0, "100"),
        (math.nan, "nan"),
        (-math.inf, "-inf"),
    ],
)
def test_metric_data_float_format(value, text):
    assert str(MetricData(gauge=value)) == f"gauge:<value:{text} > "
    

def test_empty_metric_data_renders_empty():
    assert str(MetricData()) == ""