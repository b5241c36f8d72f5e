"""Tests for the gauge, counter and histogram accumulators."""
import pytest

from bufferedmetrics.metrics import Counter, Gauge, Histogram, MetricType, create_metric


def by_name(points):
    return {p.metric: p for p in points}


def value_of(point):
    return point.points[0][1]


def test_gauge_keeps_last_value():
    gauge = Gauge("cpu", ["host:a"], "web-1")
    gauge.add_point(10, 1000)
    gauge.add_point(3, 2000)
    gauge.add_point(7, 3000)

    points = gauge.flush()
    assert len(points) == 1
    assert points[0].type == "gauge"
    assert points[0].points == [(3, 7)]
    assert points[0].host == "web-1"
    assert points[0].tags == ["host:a"]


def test_counter_sums_values():
    counter = Counter("requests")
    for value in [1, 2, 3, 4.5]:
        counter.add_point(value, 5000)

    points = counter.flush()
    assert len(points) == 1
    assert points[0].type == "count"
    assert points[0].points == [(5, 10.5)]


def test_metric_defaults():
    counter = Counter("requests")
    assert counter.tags == []
    assert counter.host == ""


def test_tags_keep_received_order():
    gauge = Gauge("cpu", ["z:1", "a:2"])
    gauge.add_point(1, 0)
    assert gauge.flush()[0].tags == ["z:1", "a:2"]


def test_histogram_summary_series():
    histogram = Histogram("latency")
    for value in range(1, 11):
        histogram.add_point(value, 1000)

    points = by_name(histogram.flush())
    assert value_of(points["latency.min"]) == 1
    assert value_of(points["latency.max"]) == 10
    assert value_of(points["latency.sum"]) == 55
    assert value_of(points["latency.count"]) == 10
    assert value_of(points["latency.avg"]) == 5.5
    assert points["latency.count"].type == "count"
    assert points["latency.avg"].type == "gauge"


def test_histogram_percentiles_use_nearest_rank():
    histogram = Histogram("latency")
    for value in range(1, 11):
        histogram.add_point(value, 1000)

    points = by_name(histogram.flush())
    assert value_of(points["latency.75percentile"]) == 8
    assert value_of(points["latency.85percentile"]) == 9
    assert value_of(points["latency.95percentile"]) == 10
    assert value_of(points["latency.99percentile"]) == 10


def test_histogram_series_order():
    histogram = Histogram("h")
    histogram.add_point(1, 0)
    names = [p.metric for p in histogram.flush()]
    assert names == [
        "h.min", "h.max", "h.sum", "h.count", "h.avg",
        "h.75percentile", "h.85percentile", "h.95percentile", "h.99percentile",
    ]


def test_histogram_sorts_numerically():
    """String ordering would put 100 before 9."""
    histogram = Histogram("size")
    for value in [100, 9, 20, 3]:
        histogram.add_point(value, 0)

    points = by_name(histogram.flush())
    # round(0.75 * 4) - 1 = 2 -> third smallest
    assert value_of(points["size.75percentile"]) == 20
    assert value_of(points["size.99percentile"]) == 100


def test_histogram_keeps_exact_sample_values():
    """Mixed ints and floats are not coerced, so large ints survive intact."""
    big = 2 ** 53 + 1
    histogram = Histogram("h")
    for value in [big, 0.5, 1, 2]:
        histogram.add_point(value, 0)

    points = by_name(histogram.flush())
    assert value_of(points["h.max"]) == big
    assert value_of(points["h.99percentile"]) == big
    assert isinstance(value_of(points["h.99percentile"]), int)
    # round(0.75 * 4) - 1 = 2 -> third smallest, still an int
    assert value_of(points["h.75percentile"]) == 2
    assert isinstance(value_of(points["h.75percentile"]), int)


def test_histogram_single_sample():
    histogram = Histogram("h")
    histogram.add_point(4.2, 0)

    points = by_name(histogram.flush())
    for p in ("75", "85", "95", "99"):
        assert value_of(points[f"h.{p}percentile"]) == 4.2


def test_empty_histogram_flush():
    histogram = Histogram("h")
    assert histogram.average() == 0

    points = by_name(histogram.flush())
    assert set(points) == {"h.min", "h.max", "h.sum", "h.count", "h.avg"}
    assert value_of(points["h.min"]) == 0
    assert value_of(points["h.max"]) == 0
    assert value_of(points["h.count"]) == 0
    assert value_of(points["h.avg"]) == 0
    for point in points.values():
        [(timestamp, _)] = point.points
        assert isinstance(timestamp, int)
        assert point.to_dict()["points"][0][0] is not None


def test_flush_does_not_reset_accumulator():
    counter = Counter("c")
    counter.add_point(2, 0)
    assert counter.flush()[0].points == [(0, 2)]
    assert counter.flush()[0].points == [(0, 2)]


def test_create_metric():
    assert isinstance(create_metric(MetricType.GAUGE, "a"), Gauge)
    assert isinstance(create_metric(MetricType.COUNTER, "a"), Counter)
    assert isinstance(create_metric("histogram", "a", ["t"], "h"), Histogram)


def test_create_metric_rejects_unknown_type():
    with pytest.raises(ValueError):
        create_metric("summary", "a")
