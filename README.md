# promclient

Metric primitives for instrumenting Python code, plus a low-level HTTP client
and result types for talking to a Prometheus server.

## Installation

```
pip install promclient
```

## Instrumenting code

Counters only go up. Gauges go up and down. Each has a vector form that splits
one metric into several series by label values. Options are given with
`promclient.desc.Opts` (`namespace`, `subsystem`, `name`, `help`,
`const_labels`).

```python
from promclient.desc import Opts
from promclient.counter import Counter, CounterVec
from promclient.gauge import Gauge

requests_total = Counter(Opts(name="requests_total", help="Requests served."))
requests_total.inc()
requests_total.add(2.5)

errors = CounterVec(Opts(name="hd_errors_total", help="Disk errors."), ["device"])
errors.with_label_values("/dev/sda").inc()
errors.with_labels({"device": "/dev/sdb"}).add(3)

temperature = Gauge(Opts(name="cpu_temperature_celsius", help="CPU temperature."))
temperature.set(65.3)
temperature.sub(0.3)

print(requests_total.write())   # counter:<value:3.5 >
```

- `Counter.add` raises `ValueError` for a negative value.
- `Gauge` also has `inc`, `dec`, `add` and `set_to_current_time`.
- `CounterFunc` and `GaugeFunc` (in `promclient.counter` and `promclient.gauge`)
  take a callable. The value it returns when the metric is written is the value
  they report.
- A vector given the wrong number of label values, or a value that is not valid
  UTF-8, raises `ValueError`.

`write()` returns a `promclient.collector.MetricData`. Its `str()` is a compact
text form with labels, value type and value.

### Descriptors

`promclient.desc.Desc(fq_name, help, variable_labels, const_labels)` describes a
metric. Validation problems, such as a bad metric or label name, a duplicate
label or a label value that is not UTF-8, do not raise. They are stored in
`desc.err`. `build_fq_name(namespace, subsystem, name)` joins the non-empty
parts with underscores. `new_invalid_desc(err)` makes a descriptor that carries
only an error.

### Collectors

Every metric and every vector is a `promclient.collector.Collector`.
`describe()` yields descriptors and `collect()` yields metrics. To write your
own collector, subclass `Collector`. You can create metrics on the fly with
`new_const_metric(desc, value_type, value, *label_values)` or
`new_const_summary(desc, count, total, quantiles)`. Both raise if the
descriptor carries an error. If a collector's set of metrics never changes,
`describe_by_collect(collector)` derives its descriptors from what it collects.

`promclient.expvar.ExpvarCollector(exports, variables)` exposes plain values as
untyped metrics:

```python
from promclient.desc import Desc
from promclient.expvar import ExpvarCollector

collector = ExpvarCollector(
    {"http-requests": Desc("http_requests_total", "Requests.", ["code", "method"])},
    {"http-requests": {"200": {"GET": 212, "POST": 11}}},
)
for metric in collector.collect():
    print(metric.write())
```

Numbers and booleans become sample values. Each level of nested dictionaries
supplies one label value. Values may also be zero-argument callables. Anything
that does not fit this scheme is skipped.

## Talking to a Prometheus server

`promclient.client` has a small HTTP layer built on `requests`:

```python
import json

from promclient.client import Config, do_get_fallback, new_client
from promclient.model import decode_value

client = new_client(Config(address="http://localhost:9090"))
url = client.url("/api/v1/query")
response, body, warnings = do_get_fallback(client, url, {"query": "up"}, timeout=10)

envelope = json.loads(body)
data = envelope["data"]
value = decode_value(data["resultType"], data["result"])
```

- `HTTPClient.url(endpoint, args)` joins the endpoint to the configured path
  and replaces `:name` placeholders from `args`.
- `HTTPClient.do(request, timeout)` sends a `Request`. It returns a
  `Response` (status code and headers), the body bytes, and warnings, which
  are `None`. It does not raise on HTTP error statuses.
- `do_get_fallback` sends the arguments as a form-encoded POST. If the answer
  is 405, it sends them again as a GET query.

`promclient.model` holds the result types: `Scalar`, `Sample` (one element of a
vector) and `SampleStream` (one series of a matrix). `decode_value` returns a
`Scalar`, a list of `Sample`, or a list of `SampleStream`, and raises
`ValueError` for any other result type. `SamplePair.to_json()` and
`SamplePair.from_json()` convert to and from the `[seconds, "value"]` form.
`format_timestamp` and `format_sample_value` expose the formatting on their own.

## What this package does not do

- There is no registry and no HTTP endpoint that exposes metrics for
  scraping. You gather metrics yourself through `collect()` and `write()`.
- There are no typed bindings for the individual API endpoints (alerts, rules,
  targets, series and so on). Response envelopes are not checked for
  API-level errors. The client returns raw bodies, and only query results
  have decoders.
- There is no collector for interpreter or process statistics, and none for
  build information.