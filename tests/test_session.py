"""Tests del tracking de sesión por intervalo declarado."""

import pytest

from iot_stream_eval.evaluation.session import SessionState, SessionTracker, SessionUpdate
from iot_stream_eval.ingest_api.mqtt.validators import Packet


def make_packet(msg_id, interval=2.0, timestamp=0):
    return Packet(temperature=23.0, msg_id=msg_id, timestamp=timestamp, interval=interval)


@pytest.fixture
def tracker(clock):
    return SessionTracker(default_interval=2.0, clock=clock)


class TestSessionTracker:

    def test_initial_state(self, tracker, clock):
        session = tracker.snapshot()

        assert tracker.state == SessionState.IDLE
        assert session.current_interval == 2.0
        assert session.session_count == 0
        assert session.session_start == clock.now

    def test_counts_follow_interval_changes(self, tracker):
        """Intervalos [2,2,2,5,5] → contadores [1,2,3,1,2]."""
        counts = []
        for msg_id, interval in enumerate([2, 2, 2, 5, 5], start=1):
            tracker.observe(make_packet(msg_id, interval))
            counts.append(tracker.snapshot().session_count)

        assert counts == [1, 2, 3, 1, 2]
        assert tracker.snapshot().current_interval == 5.0
        assert tracker.state == SessionState.TRACKING

    def test_new_scenario_restarts_clock(self, tracker, clock):
        tracker.observe(make_packet(1, 2))
        clock.advance(10_000)

        update = tracker.observe(make_packet(2, 5))

        assert update == SessionUpdate.RESET
        assert tracker.snapshot().session_start == clock.now

    def test_duplicate_msg_id_is_noop(self, tracker):
        tracker.observe(make_packet(7))
        update = tracker.observe(make_packet(7))

        assert update == SessionUpdate.DUPLICATE
        assert tracker.snapshot().session_count == 1

    def test_missing_interval_uses_default(self, tracker):
        tracker.observe(make_packet(1, interval=None))

        session = tracker.snapshot()
        assert session.current_interval == 2.0
        assert session.session_count == 1

    def test_zero_interval_uses_default(self, tracker):
        update = tracker.observe(make_packet(1, interval=0))

        assert update == SessionUpdate.COUNTED
        assert tracker.snapshot().current_interval == 2.0

    def test_reset_counters_keeps_interval(self, tracker, clock):
        tracker.observe(make_packet(1, 5))
        tracker.observe(make_packet(2, 5))
        clock.advance(3_000)

        tracker.reset_counters()

        session = tracker.snapshot()
        assert session.session_count == 0
        assert session.session_start == clock.now
        assert session.current_interval == 5.0

    def test_snapshot_is_a_copy(self, tracker):
        snap = tracker.snapshot()
        tracker.observe(make_packet(1))

        assert snap.session_count == 0
