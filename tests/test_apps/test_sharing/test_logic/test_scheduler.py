"""Tests for the reaper scheduler."""

import threading

import pytest

from server.apps.sharing.logic.reaper import ReapOutcome, ReapReport
from server.apps.sharing.logic.scheduler import ReaperScheduler


class FakeReaper:
    """Counts runs and optionally fails."""

    def __init__(self, fail=False):
        self.calls = 0
        self.fail = fail
        self.ran = threading.Event()

    def run_once(self):
        self.calls += 1
        self.ran.set()
        if self.fail:
            raise RuntimeError('boom')
        return ReapReport(outcome=ReapOutcome.COMPLETE)


@pytest.fixture(autouse=True)
def _no_connection_cleanup(monkeypatch):
    """Keep ticks away from the database connection handling."""
    monkeypatch.setattr(
        'server.apps.sharing.logic.scheduler.close_old_connections',
        lambda: None,
    )


class TestReaperScheduler:
    """Tests for ReaperScheduler."""

    @pytest.mark.parametrize('interval', [0, -1])
    def test_interval_must_be_positive(self, interval):
        """Test non-positive intervals are rejected."""
        with pytest.raises(ValueError, match='positive'):
            ReaperScheduler(FakeReaper(), interval)

    def test_tick_returns_report(self):
        """Test a tick runs the reaper once."""
        reaper = FakeReaper()
        scheduler = ReaperScheduler(reaper, 60)

        report = scheduler.tick()

        assert report.outcome == ReapOutcome.COMPLETE
        assert reaper.calls == 1

    def test_tick_survives_crash(self, caplog):
        """Test a crashing run is logged, not raised."""
        scheduler = ReaperScheduler(FakeReaper(fail=True), 60)

        assert scheduler.tick() is None
        assert 'Reaper run crashed' in caplog.text

    def test_runs_periodically_until_stopped(self):
        """Test the thread ticks after each interval and stops cleanly."""
        reaper = FakeReaper()
        scheduler = ReaperScheduler(reaper, 0.01)

        scheduler.start()
        try:
            assert scheduler.is_alive
            assert reaper.ran.wait(5)
        finally:
            scheduler.stop(timeout=5)

        assert not scheduler.is_alive
        assert scheduler.wait(0)
        assert reaper.calls >= 1

    def test_start_twice(self):
        """Test a running scheduler cannot be started again."""
        scheduler = ReaperScheduler(FakeReaper(), 60)
        scheduler.start()
        try:
            with pytest.raises(RuntimeError):
                scheduler.start()
        finally:
            scheduler.stop(timeout=5)

    def test_no_tick_before_first_interval(self):
        """Test the first run happens one interval after start."""
        reaper = FakeReaper()
        scheduler = ReaperScheduler(reaper, 60)

        scheduler.start()
        scheduler.stop(timeout=5)

        assert reaper.calls == 0
