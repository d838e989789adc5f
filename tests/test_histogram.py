import random

from dogflush.histogram import ExactHistogram, HistogramResult, MAX_INITIAL_CAPACITY


def test_histogram_zero_to_nine():
    h = ExactHistogram()
    for i in range(10):
        h.add(float(i))
    r = h.flush()
    assert r.count == 10
    assert r.min == 0 and r.max == 9
    assert r.avg == 4.5
    assert r.median == 5       # index 10 // 2
    assert r.p95 == 9          # index floor(10 * 0.95)


def test_histogram_quantiles_are_truncated_not_interpolated():
    h = ExactHistogram()
    for v in (40.0, 10.0, 30.0, 20.0):
        h.add(v)
    r = h.flush()
    # sorted [10, 20, 30, 40]: median index 2, p95 index 3
    assert r.median == 30.0
    assert r.p95 == 40.0

    h = ExactHistogram()
    for i in range(100):
        h.add(float(99 - i))
    assert h.flush().p95 == 95.0


def test_histogram_empty_is_zero_result():
    assert ExactHistogram().flush() == HistogramResult()
    assert ExactHistogram().flush().count == 0


def test_histogram_flush_resets():
    h = ExactHistogram(capacity=2)
    for v in (5.0, 1.0, 3.0):
        h.add(v)
    assert len(h) == 3
    assert h.flush().count == 3
    assert len(h) == 0
    assert h.flush().count == 0
    h.add(7.0)
    r = h.flush()
    assert r.count == 1 and r.min == r.max == r.median == r.p95 == r.avg == 7.0


def test_histogram_order_invariants_random_sets():
    rnd = random.Random(1234)
    for _ in range(200):
        n = rnd.randint(1, 300)
        h = ExactHistogram(capacity=rnd.randint(1, 16))
        for _ in range(n):
            h.add(rnd.uniform(-1e6, 1e6))
        r = h.flush()
        assert r.count == n
        assert r.min <= r.median <= r.max
        assert r.min <= r.avg <= r.max
        assert r.min <= r.p95 <= r.max


def test_histogram_constant_samples_avg_within_bounds():
    h = ExactHistogram()
    for _ in range(7):
        h.add(0.1)
    r = h.flush()
    assert r.min <= r.avg <= r.max


def test_histogram_capacity_hint_is_bounded():
    h = ExactHistogram(capacity=10**9, tags=["a"])
    assert len(h._buf) == MAX_INITIAL_CAPACITY
    assert h.tags == ["a"]
