from datetime import datetime, time, timedelta, timezone

import pytest

from app.services.rates.scheduler import (
    RATES_JOB,
    SYMBOLS_JOB,
    RefreshScheduler,
    next_daily_run,
    parse_time_of_day,
)

from .conftest import FakeClock

START = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def test_parse_time_of_day():
    assert parse_time_of_day("02:00") == time(2, 0)
    assert parse_time_of_day(" 23:45 ") == time(23, 45)
    for bad in ("2", "25:00", "ab:cd", "1:2:3"):
        with pytest.raises(ValueError):
            parse_time_of_day(bad)


def test_next_daily_run():
    assert next_daily_run(START, time(2, 0)) == datetime(2024, 1, 2, 2, 0, tzinfo=timezone.utc)
    assert next_daily_run(START, time(13, 30)) == datetime(2024, 1, 1, 13, 30, tzinfo=timezone.utc)
    # exactly at the time -> tomorrow
    assert next_daily_run(START, time(12, 0)) == START + timedelta(days=1)


def test_nothing_due_right_after_start(service):
    sched = RefreshScheduler(service, rates_interval=60, clock=FakeClock(START))
    assert sched.run_pending(START) == []
    assert sched.seconds_until_next(START) == pytest.approx(60.0)


def test_rates_job_runs_every_interval_at_cached_base(service, fetcher):
    service.get_rates("EUR")
    fetcher.rate_calls.clear()
    sched = RefreshScheduler(service, rates_interval=60, clock=FakeClock(START))
    assert sched.run_pending(START + timedelta(seconds=60)) == [RATES_JOB]
    assert fetcher.rate_calls == ["EUR"]
    assert sched.next_rates_run == START + timedelta(seconds=120)


def test_rates_job_catches_up_after_long_pause(service):
    sched = RefreshScheduler(service, rates_interval=60, clock=FakeClock(START))
    late = START + timedelta(minutes=10)
    sched.run_pending(late)
    assert sched.next_rates_run == late + timedelta(seconds=60)


def test_symbols_job_runs_daily(service, fetcher):
    sched = RefreshScheduler(
        service, rates_interval=7200, symbols_at=time(13, 0), clock=FakeClock(START)
    )
    due = datetime(2024, 1, 1, 13, 0, tzinfo=timezone.utc)
    assert sched.run_pending(due) == [SYMBOLS_JOB]
    assert fetcher.symbol_calls == 1
    assert sched.next_symbols_run == due + timedelta(days=1)


def test_failed_job_keeps_schedule_and_data(service, fetcher):
    fetcher.fail = True
    before = service.state
    sched = RefreshScheduler(service, rates_interval=60, clock=FakeClock(START))
    assert sched.run_pending(START + timedelta(seconds=60)) == [RATES_JOB]
    assert service.state is before
    assert sched.next_rates_run == START + timedelta(seconds=120)


def test_crashing_job_is_logged_and_loop_continues(service, monkeypatch, caplog):
    def explode(*args, **kwargs):
        raise RuntimeError("bug")

    monkeypatch.setattr(service, "refresh_rates", explode)
    sched = RefreshScheduler(service, rates_interval=60, clock=FakeClock(START))
    with caplog.at_level("ERROR", logger="app.rates.scheduler"):
        assert sched.run_pending(START + timedelta(seconds=60)) == [RATES_JOB]
    assert "scheduled refresh crashed" in caplog.text


def test_invalid_interval(service):
    with pytest.raises(ValueError):
        RefreshScheduler(service, rates_interval=0)


def test_start_and_stop_thread(service):
    sched = RefreshScheduler(service, rates_interval=3600)
    sched.start()
    assert sched.running
    sched.start()  # second start is a no-op
    sched.stop(timeout=2.0)
    assert not sched.running
