"""Per-task countdown state machine and the board that drives it."""

import logging
import math
import time
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Optional

from klinewaker.models import Task
from klinewaker.scheduler.aligner import format_time_left, next_aligned_time

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

URGENT_SECONDS = 10


class CountdownState(str, Enum):
    """Countdown lifecycle states."""

    IDLE = "idle"
    COUNTING = "counting"
    NOTIFIED = "notified"


class CountdownEngine:
    """Counts down to the next aligned candle close for one task.

    ``tick`` is expected roughly once a second. The notify callback fires at
    most once per cycle; a cycle ends when the close is reached and a new
    target is derived.
    """

    def __init__(
        self,
        period: int,
        notify_before: int = 0,
        on_notify: Optional[Callable[[], None]] = None,
    ):
        """Initialize the engine in the idle state.

        Args:
            period: Candle period in minutes.
            notify_before: Seconds before the close at which to notify.
                Zero notifies at the close itself.
            on_notify: Callback fired once per cycle.
        """
        self._validate(period, notify_before)
        self.period = period
        self.notify_before = notify_before
        self.on_notify = on_notify

        self.state = CountdownState.IDLE
        self.target: Optional[datetime] = None
        self.seconds_left = 0
        self._notified = False

    @staticmethod
    def _validate(period: int, notify_before: int) -> None:
        if period <= 0:
            raise ValueError(f"period must be positive, got {period}")
        if notify_before < 0:
            raise ValueError(f"notify_before must not be negative, got {notify_before}")

    def _seconds_until_target(self, now: datetime) -> int:
        return max(0, math.ceil((self.target - now) / timedelta(seconds=1)))

    def _begin_cycle(self, now: datetime) -> None:
        self.target = next_aligned_time(self.period, now)
        self.state = CountdownState.COUNTING
        self._notified = False

    def _fire(self) -> None:
        self._notified = True
        if self.on_notify is not None:
            self.on_notify()

    def start(self, now: datetime) -> None:
        """Begin counting toward the next close after ``now``."""
        self._begin_cycle(now)
        self.seconds_left = self._seconds_until_target(now)

    def stop(self) -> None:
        """Stop counting. Further ticks are no-ops until ``start``."""
        self.state = CountdownState.IDLE
        self.target = None
        self.seconds_left = 0
        self._notified = False

    def reconfigure(
        self,
        now: datetime,
        period: Optional[int] = None,
        notify_before: Optional[int] = None,
    ) -> None:
        """Change the period or notify lead time and restart the cycle."""
        period = self.period if period is None else period
        notify_before = self.notify_before if notify_before is None else notify_before
        self._validate(period, notify_before)

        self.period = period
        self.notify_before = notify_before
        if self.state is CountdownState.IDLE:
            self._notified = False
            return
        self.start(now)

    def tick(self, now: datetime) -> int:
        """Advance the state machine to ``now``.

        With ``notify_before`` of 0 the notification fires on the tick that
        reaches the close (``seconds_left == 0``), once per cycle.

        Returns:
            Seconds left until the current close.
        """
        if self.state is CountdownState.IDLE:
            return self.seconds_left

        sec = self._seconds_until_target(now)
        self.seconds_left = sec

        if sec == 0:
            if self.notify_before == 0 and not self._notified:
                self._fire()
            self._begin_cycle(now)
        elif sec <= self.notify_before and not self._notified:
            self._fire()
            self.state = CountdownState.NOTIFIED

        return sec

    @property
    def formatted_time(self) -> str:
        return format_time_left(self.seconds_left)

    @property
    def is_urgent(self) -> bool:
        return 0 < self.seconds_left <= URGENT_SECONDS

    @property
    def is_notifying(self) -> bool:
        return 0 < self.seconds_left <= self.notify_before

    @property
    def progress(self) -> float:
        """Percentage of the current period that has elapsed."""
        period_seconds = self.period * 60
        done = (period_seconds - self.seconds_left) / period_seconds * 100
        return max(0.0, min(100.0, done))


class CountdownBoard:
    """Drives one countdown engine per task from a single cooperative loop.

    Engines share no state. A notify callback that raises is logged and does
    not affect the other tasks.
    """

    def __init__(self, clock: Clock = datetime.now):
        self._clock = clock
        self._engines: dict[str, CountdownEngine] = {}
        self._tasks: dict[str, Task] = {}

    @property
    def tasks(self) -> list[Task]:
        return list(self._tasks.values())

    def engine(self, task_id: str) -> Optional[CountdownEngine]:
        return self._engines.get(task_id)

    def watch(self, task: Task, on_notify: Callable[[Task], None]) -> CountdownEngine:
        """Start counting down for ``task``.

        Watching an already watched task applies its new settings and
        restarts the cycle.
        """
        now = self._clock()
        self._tasks[task.id] = task

        existing = self._engines.get(task.id)
        if existing is not None:
            existing.on_notify = self._make_callback(task.id, on_notify)
            existing.reconfigure(now, period=task.period, notify_before=task.notify_before)
            return existing

        engine = CountdownEngine(
            period=task.period,
            notify_before=task.notify_before,
            on_notify=self._make_callback(task.id, on_notify),
        )
        engine.start(now)
        self._engines[task.id] = engine
        return engine

    def _make_callback(
        self, task_id: str, on_notify: Callable[[Task], None]
    ) -> Callable[[], None]:
        def callback() -> None:
            task = self._tasks.get(task_id)
            if task is None or not task.enabled:
                return
            try:
                on_notify(task)
            except Exception:
                logger.exception("Notify callback failed for task %s", task_id)

        return callback

    def unwatch(self, task_id: str) -> None:
        """Stop and drop the engine for ``task_id``."""
        engine = self._engines.pop(task_id, None)
        self._tasks.pop(task_id, None)
        if engine is not None:
            engine.stop()

    def sync(self, tasks: list[Task], on_notify: Callable[[Task], None]) -> None:
        """Make the board watch exactly ``tasks``."""
        wanted = {t.id for t in tasks}
        for task_id in list(self._engines):
            if task_id not in wanted:
                self.unwatch(task_id)

        for task in tasks:
            current = self._tasks.get(task.id)
            if current is None:
                self.watch(task, on_notify)
            elif (current.period, current.notify_before) != (task.period, task.notify_before):
                self.watch(task, on_notify)
            else:
                self._tasks[task.id] = task

    def tick(self, now: Optional[datetime] = None) -> None:
        now = now or self._clock()
        for engine in self._engines.values():
            engine.tick(now)

    def close(self) -> None:
        for task_id in list(self._engines):
            self.unwatch(task_id)

    def run(
        self,
        on_tick: Optional[Callable[[], None]] = None,
        interval: float = 1.0,
        max_ticks: Optional[int] = None,
    ) -> None:
        """Tick every ``interval`` seconds until interrupted.

        Args:
            on_tick: Called after each tick, e.g. to refresh a display.
            interval: Seconds between ticks.
            max_ticks: Stop after this many ticks. Runs forever if None.
        """
        ticks = 0
        try:
            while max_ticks is None or ticks < max_ticks:
                self.tick()
                if on_tick is not None:
                    on_tick()
                ticks += 1
                if max_ticks is None or ticks < max_ticks:
                    time.sleep(interval)
        finally:
            self.close()
