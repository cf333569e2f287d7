from __future__ import annotations

"""Background refresh of the rate cache.

Two cadences share one daemon thread:
    - rates: every ``rates_interval`` seconds, at the cache's current base.
    - symbols: once a day at a fixed local wall-clock time.

A failed refresh just waits for the next tick. The thread sleeps on an Event
so stop() wakes it immediately.
"""
import logging
import threading
from datetime import datetime, time, timedelta
from typing import Callable, List, Optional

from .cache_service import RateCacheService

logger = logging.getLogger("app.rates.scheduler")

RATES_JOB = "rates"
SYMBOLS_JOB = "symbols"


def _local_now() -> datetime:
    return datetime.now().astimezone()


def parse_time_of_day(value: str) -> time:
    """Parse ``HH:MM`` into a time; raises ValueError on bad input."""
    try:
        hours, minutes = value.strip().split(":")
        return time(hour=int(hours), minute=int(minutes))
    except (TypeError, ValueError) as e:
        raise ValueError(f"expected HH:MM, got {value!r}") from e


def next_daily_run(now: datetime, at: time) -> datetime:
    """First occurrence of ``at`` strictly after ``now`` (same tzinfo as now)."""
    candidate = now.replace(
        hour=at.hour, minute=at.minute, second=0, microsecond=0
    )
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


class RefreshScheduler:
    def __init__(
        self,
        service: RateCacheService,
        *,
        rates_interval: float = 60.0,
        symbols_at: time = time(hour=2),
        clock: Callable[[], datetime] = _local_now,
    ):
        if rates_interval <= 0:
            raise ValueError("rates_interval must be positive")
        self._service = service
        self._rates_interval = timedelta(seconds=rates_interval)
        self._symbols_at = symbols_at
        self._clock = clock
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        now = clock()
        # The startup prime already loaded both tables.
        self.next_rates_run = now + self._rates_interval
        self.next_symbols_run = next_daily_run(now, symbols_at)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="rate-refresh", daemon=True
        )
        self._thread.start()
        logger.info(
            "rate scheduler started",
            extra={
                "next_rates_run": self.next_rates_run.isoformat(),
                "next_symbols_run": self.next_symbols_run.isoformat(),
            },
        )

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("rate scheduler stopped")

    def run_pending(self, now: datetime | None = None) -> List[str]:
        """Run every job that is due at ``now``; return the names that ran."""
        now = now or self._clock()
        ran: List[str] = []
        if now >= self.next_symbols_run:
            self._run_job(SYMBOLS_JOB, self._service.refresh_symbols)
            self.next_symbols_run = next_daily_run(now, self._symbols_at)
            ran.append(SYMBOLS_JOB)
        if now >= self.next_rates_run:
            self._run_job(RATES_JOB, self._service.refresh_rates)
            # fixed rate: keep the original cadence unless we fell behind
            self.next_rates_run += self._rates_interval
            if self.next_rates_run <= now:
                self.next_rates_run = now + self._rates_interval
            ran.append(RATES_JOB)
        return ran

    def seconds_until_next(self, now: datetime | None = None) -> float:
        now = now or self._clock()
        upcoming = min(self.next_rates_run, self.next_symbols_run)
        return max(0.0, (upcoming - now).total_seconds())

    def _run_job(self, name: str, job: Callable[[], bool]) -> None:
        try:
            ok = job()
        except Exception:
            # keep the loop alive; next tick retries
            logger.exception("scheduled refresh crashed", extra={"job": name})
            return
        if not ok:
            logger.info("scheduled refresh kept previous data", extra={"job": name})

    def _run(self) -> None:
        while not self._stop.is_set():
            self.run_pending()
            self._stop.wait(self.seconds_until_next())
