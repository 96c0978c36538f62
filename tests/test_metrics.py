from layout_splitter.metrics import metrics


def test_counters_and_reset():
    metrics.inc("gallery.signing_failures")
    metrics.inc("gallery.signing_failures", 2)

    assert metrics.count("gallery.signing_failures") == 3
    assert metrics.count("never.seen") == 0

    metrics.reset()
    assert metrics.snapshot() == {"counters": {}, "timings": {}}


def test_timed_records_even_on_error():
    try:
        with metrics.timed("api.create_crops"):
            raise RuntimeError("boom")
    except RuntimeError:
        pass

    timings = metrics.snapshot()["timings"]["api.create_crops"]
    assert len(timings) == 1
    assert timings[0] >= 0.0


def test_counters_filter_by_prefix_and_timing_stats():
    metrics.inc("gallery.signing_failures")
    metrics.inc("quality_guard.regenerations")
    with metrics.timed("api.create_crops"):
        pass

    assert metrics.counters("gallery.") == {"gallery.signing_failures": 1}
    stats = metrics.timing_stats("api.create_crops")
    assert stats["count"] == 1.0
    assert stats["max"] >= 0.0
    assert metrics.timing_stats("never.timed") == {"count": 0.0, "total": 0, "max": 0.0}
