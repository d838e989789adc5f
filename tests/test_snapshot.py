from dogflush.histogram import ExactHistogram
from dogflush.series import MetricKind, MetricSeries, Series
from dogflush.snapshot import Snapshot


def _snap(started=0.0, taken=60.0):
    rate = Series(MetricKind.RATE, ["env:test"])
    rate.observe(120)
    gauge = Series(MetricKind.GAUGE, [])
    gauge.observe(3.5)
    h = ExactHistogram(tags=["svc:api"])
    for v in (3.0, 1.0, 2.0):
        h.add(v)
    return Snapshot({"req": rate, "queue": gauge}, {"lat": h, "empty": ExactHistogram()}, "host-a", started, taken)


def test_finalize_rates_gauges_and_histograms():
    out = {s.metric: s for s in _snap().finalize()}
    assert out["req"].value == 2.0
    assert out["req"].interval == 60
    assert out["queue"].value == 3.5
    assert out["queue"].interval is None
    assert out["lat.count"].value == 3
    assert out["lat.count"].interval == 60
    assert out["lat.median"].value == 2.0
    assert out["lat.median"].tags == ["svc:api"]
    # empty histograms are left out entirely
    assert not any(name.startswith("empty.") for name in out)


def test_finalize_as_of_overrides_snapshot_time():
    out = {s.metric: s for s in _snap(started=0.0, taken=60.0).finalize(as_of=30.9)}
    assert out["req"].value == 4.0
    assert out["req"].interval == 30
    assert out["req"].points == [[30.0, 4.0]]


def test_finalize_clock_going_backwards_is_zero_interval():
    snap = _snap(started=100.0, taken=90.0)
    assert snap.elapsed() == 0
    out = {s.metric: s for s in snap.finalize()}
    assert out["req"].value == 120
    assert out["req"].interval is None


def test_wire_shape_omits_empty_fields():
    s = MetricSeries.point("m", MetricKind.GAUGE, 1700000000.0, 1.25)
    assert s.wire() == {"metric": "m", "points": [[1700000000.0, 1.25]], "type": "gauge"}

    r = MetricSeries.point("r", MetricKind.RATE, 10, 2, host="h", tags=["a"], interval=15)
    assert r.wire() == {
        "metric": "r",
        "points": [[10.0, 2.0]],
        "type": "rate",
        "host": "h",
        "tags": ["a"],
        "interval": 15,
    }
