import pytest

from voicetime.errors import VoiceTimeValidationError
from voicetime.session.delay_tracker import DelayTracker


@pytest.fixture
def tracker(provider):
    return DelayTracker(time_provider=provider)


def test_create_delay_sets_window(tracker, provider):
    delay = tracker.create_delay("s1", 5)
    assert delay.session_id == "s1"
    assert delay.start_time == provider.now_millis()
    assert delay.end_time == delay.start_time + 5000
    assert delay.is_active
    assert tracker.has_active_delay("s1")


def test_no_delay_record(tracker):
    assert not tracker.has_active_delay("missing")
    assert tracker.get_remaining_delay_time("missing") == 0
    assert tracker.get_delay("missing") is None
    assert not tracker.clear_delay("missing")


def test_remaining_time_rounds_up(tracker, clock):
    tracker.create_delay("s1", 5)
    assert tracker.get_remaining_delay_time("s1") == 5
    clock.advance(millis=1)
    assert tracker.get_remaining_delay_time("s1") == 5
    clock.advance(millis=4000)
    assert tracker.get_remaining_delay_time("s1") == 1


def test_remaining_zero_exactly_at_end_time(tracker, clock):
    tracker.create_delay("s1", 2)
    clock.advance(millis=1999)
    assert tracker.get_remaining_delay_time("s1") == 1
    clock.advance(millis=1)
    assert tracker.get_remaining_delay_time("s1") == 0
    assert not tracker.has_active_delay("s1")


def test_expiry_is_lazy_and_sticky(tracker, clock):
    tracker.create_delay("s1", 1)
    clock.advance(seconds=5)
    # nothing flipped until observed
    assert tracker._delays["s1"].is_active
    assert not tracker.has_active_delay("s1")
    assert not tracker._delays["s1"].is_active

    # clock going backwards never reactivates it
    clock.advance(seconds=-10)
    assert not tracker.has_active_delay("s1")
    assert tracker.get_remaining_delay_time("s1") == 0


def test_new_delay_replaces_old(tracker, clock):
    tracker.create_delay("s1", 10)
    clock.advance(seconds=2)
    replacement = tracker.create_delay("s1", 3)
    assert tracker.get_delay("s1") == replacement
    assert tracker.get_remaining_delay_time("s1") == 3


def test_delay_after_expiry_reactivates_only_via_create(tracker, clock):
    tracker.create_delay("s1", 1)
    clock.advance(seconds=2)
    assert not tracker.has_active_delay("s1")
    tracker.create_delay("s1", 1)
    assert tracker.has_active_delay("s1")


def test_zero_second_delay_is_immediately_inactive(tracker):
    delay = tracker.create_delay("s1", 0)
    assert delay.end_time == delay.start_time
    assert not tracker.has_active_delay("s1")


def test_clear_delay(tracker):
    tracker.create_delay("s1", 10)
    assert tracker.clear_delay("s1")
    assert not tracker.clear_delay("s1")
    assert not tracker.has_active_delay("s1")


def test_returned_delay_is_a_copy(tracker):
    delay = tracker.create_delay("s1", 10)
    delay.is_active = False
    assert tracker.has_active_delay("s1")


@pytest.mark.parametrize("bad", [-1, 2.5, "5", True, None])
def test_create_delay_rejects_bad_duration(tracker, bad):
    with pytest.raises(VoiceTimeValidationError):
        tracker.create_delay("s1", bad)
    assert tracker.get_delay("s1") is None


def test_create_delay_requires_session(tracker):
    with pytest.raises(VoiceTimeValidationError):
        tracker.create_delay("", 5)


def test_active_count(tracker, clock):
    tracker.create_delay("a", 1)
    tracker.create_delay("b", 10)
    clock.advance(seconds=2)
    assert tracker.active_count() == 1
