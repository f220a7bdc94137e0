import math

import pytest

from promclient.model import (
    Sample,
    SamplePair,
    SampleStream,
    Scalar,
    ValueType,
    decode_value,
    format_sample_value,
    format_timestamp,
)

SERIALIZATION_CASES = [
    (0, 0.0, '[0,"0"]'),
    (1, 20.0, '[0.001,"20"]'),
    (10, 20.0, '[0.010,"20"]'),
    (100, 20.0, '[0.100,"20"]'),
    (1001, 20.0, '[1.001,"20"]'),
    (1010, 20.0, '[1.010,"20"]'),
    (1100, 20.0, '[1.100,"20"]'),
    (12345678123456555, 20.0, '[12345678123456.555,"20"]'),
    (-1, 20.0, '[-0.001,"20"]'),
    (0, math.nan, '[0,"NaN"]'),
    (0, math.inf, '[0,"+Inf"]'),
    (0, -math.inf, '[0,"-Inf"]'),
    (0, 1.2345678e6, '[0,"1234567.8"]'),
    (0, 1.2345678e-6, '[0,"0.0000012345678"]'),
    (0, 1.2345678e-67, '[0,"1.2345678e-67"]'),
]


@pytest.mark.parametrize("timestamp, value, expected", SERIALIZATION_CASES)
def test_sample_pair_marshal(timestamp, value, expected):
    assert SamplePair(timestamp, value).to_json() == expected


@pytest.mark.parametrize("timestamp, value, expected", SERIALIZATION_CASES)
def test_sample_pair_round_trip(timestamp, value, expected):
    pair = SamplePair.from_json(expected)
    assert pair.timestamp == timestamp
    assert pair.to_json() == expected


def test_sample_pair_from_decoded_list():
    pair = SamplePair.from_json([1.001, "20"])
    assert pair == SamplePair(1001, 20.0)


@pytest.mark.parametrize(
    "text, message",
    [
        ("{}", "must be"),
        ("[1]", "missing value"),
        ('[1,"2",3]', "too many values"),
        ("[1,2]", "must be a string"),
        ('["1","2"]', "must be a number"),
        ('[1,"abc"]', "invalid sample value"),
    ],
)
def test_sample_pair_decode_errors(text, message):
    with pytest.raises(ValueError, match=message):
        SamplePair.from_json(text)


def test_format_timestamp_and_value():
    assert format_timestamp(-1500) == "-1.500"
    assert format_timestamp(3000) == "3"
    assert format_sample_value(1e21) == "1e+21"
    assert format_sample_value(-0.5) == "-0.5"


def test_value_type_names():
    assert ValueType("vector") is ValueType.VECTOR
    assert ValueType.MATRIX.value == "matrix"


def test_decode_scalar():
    assert decode_value("scalar", [1700000000, "2"]) == Scalar(2.0, 1700000000000)


def test_decode_vector():
    result = decode_value(
        ValueType.VECTOR,
        '[{"metric": {"__name__": "up", "job": "prometheus"}, "value": [1.5, "1"]}]',
    )
    assert result == [Sample({"__name__": "up", "job": "prometheus"}, 1.0, 1500)]


def test_decode_matrix():
    result = decode_value(
        "matrix",
        [{"metric": {"__name__": "up"}, "values": [[1, "1"], [2.25, "0"]]}],
    )
    assert result == [
        SampleStream({"__name__": "up"}, [SamplePair(1000, 1.0), SamplePair(2250, 0.0)])
    ]


def test_decode_null_vector_is_empty():
    assert decode_value("vector", None) == []


@pytest.mark.parametrize("name", ["string", "bogus"])
def test_decode_unexpected_type(name):
    with pytest.raises(ValueError, match=f'unexpected value type "{name}"'):
        decode_value(name, [])


def test_sample_rejects_non_string_labels():
    with pytest.raises(ValueError, match="metric"):
        Sample.from_json({"metric": {"a": 1}, "value": [1, "1"]})