from conftest import FakeClient
from restock_monitor.utils import FetchError
from restock_monitor.week import ReleaseWeekTracker


def _tracker(weeks, sleeps):
    client = FakeClient([], {}, weeks=weeks)
    return client, ReleaseWeekTracker(client, error_delay_ms=1500, sleep=sleeps.append)


def test_first_check_sets_baseline_then_rollover_is_sticky(sleeps):
    _, tracker = _tracker(["10", "11", "11"], sleeps)

    assert tracker.baseline is None
    assert tracker.check_week() is False
    assert tracker.baseline == "10"
    assert tracker.check_week() is True
    assert tracker.check_week() is True
    assert tracker.baseline == "10"


def test_same_week_is_not_a_change(sleeps):
    _, tracker = _tracker(["10", "10"], sleeps)
    tracker.check_week()
    assert tracker.check_week() is False


def test_zero_is_a_valid_baseline(sleeps):
    _, tracker = _tracker([0, 1], sleeps)
    assert tracker.check_week() is False
    assert tracker.baseline == 0
    assert tracker.check_week() is True


def test_rebase_clears_rollover(sleeps):
    _, tracker = _tracker(["10", "11"], sleeps)
    tracker.check_week()
    assert tracker.check_week() is True

    tracker.rebase("11")

    assert tracker.check_week() is False


def test_failed_check_retries_after_error_delay(sleeps):
    client, tracker = _tracker([FetchError("boom"), FetchError("boom"), "10"], sleeps)

    assert tracker.check_week() is False
    assert tracker.baseline == "10"
    assert client.week_calls == 3
    assert sleeps == [1.5, 1.5]
