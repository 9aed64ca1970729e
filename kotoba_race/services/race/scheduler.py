import heapq
import itertools
import logging
import threading
import time
from typing import Callable, Dict, List, Optional, Set


logger = logging.getLogger(__name__)

SLEEP_STEP_SEC = 0.25


class TimerHandle:
    """A pending delayed callback. Cancelling only flips a flag; the worker
    checks it right before firing."""

    def __init__(self, delay: float, group: Optional[str] = None):
        self.delay = delay
        self.group = group
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.fired)


class BackgroundScheduler:
    """Runs each timer in a Socket.IO background task.

    Works with whatever async mode the Socket.IO server picked (threading,
    eventlet, gevent) because sleeping goes through ``socketio.sleep``.
    """

    def __init__(self, socketio, monotonic: Callable[[], float] = time.monotonic):
        self.socketio = socketio
        self.monotonic = monotonic

    def now(self) -> float:
        return time.time()

    def call_later(self, delay: float, callback: Callable, *args) -> TimerHandle:
        handle = TimerHandle(delay)

        def _worker():
            # wake every SLEEP_STEP_SEC to notice cancellation
            deadline = self.monotonic() + delay
            while not handle.cancelled:
                remaining = deadline - self.monotonic()
                if remaining <= 0:
                    break
                self.socketio.sleep(min(SLEEP_STEP_SEC, remaining))
            if handle.cancelled:
                return
            handle.fired = True
            try:
                callback(*args)
            except Exception:
                logger.exception(f"[timer-error] callback={getattr(callback, '__name__', callback)}")

        self.socketio.start_background_task(_worker)
        return handle


class ManualScheduler:
    """Virtual-clock scheduler. Nothing fires until ``advance`` is called,
    which makes timer races reproducible in tests."""

    def __init__(self, start: float = 0.0):
        self._now = start
        self._queue: List = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable, *args) -> TimerHandle:
        handle = TimerHandle(delay)
        heapq.heappush(self._queue, (self._now + max(0.0, delay), next(self._seq), handle, callback, args))
        return handle

    def pending(self) -> int:
        return sum(1 for entry in self._queue if entry[2].pending)

    def advance(self, seconds: float) -> int:
        """Move the clock forward, firing due callbacks in due order.
        Callbacks scheduled while advancing fire too if they fall due."""
        target = self._now + seconds
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, handle, callback, args = heapq.heappop(self._queue)
            self._now = max(self._now, due)
            if handle.cancelled:
                continue
            handle.fired = True
            callback(*args)
            fired += 1
        self._now = target
        return fired

    def run_all(self, max_steps: int = 10000) -> int:
        fired = 0
        while self._queue and fired < max_steps:
            fired += self.advance(max(0.0, self._queue[0][0] - self._now))
        return fired


class TimerRegistry:
    """Per-race registry of cancellable timers, grouped by purpose
    (countdown, question, bots, escape, autofill). Discarding a race cancels
    the whole registry at once.

    Timer workers and request threads both touch the groups, so every access
    goes through ``_lock``. Callbacks run outside it.
    """

    def __init__(self, scheduler, game_id: str):
        self.scheduler = scheduler
        self.game_id = game_id
        self._groups: Dict[str, Set[TimerHandle]] = {}
        self._lock = threading.RLock()
        self.closed = False

    def schedule(self, group: str, delay: float, callback: Callable, *args) -> Optional[TimerHandle]:
        if self.closed:
            return None
        holder = {}

        def _fire():
            with self._lock:
                handles = self._groups.get(group)
                if handles is not None:
                    handles.discard(holder['handle'])
            logger.debug(f"[timer-fire] game={self.game_id} group={group}")
            callback(*args)

        with self._lock:
            handle = self.scheduler.call_later(delay, _fire)
            handle.group = group
            holder['handle'] = handle
            self._groups.setdefault(group, set()).add(handle)
        logger.debug(f"[timer-set] game={self.game_id} group={group} delay={delay:.2f}s")
        return handle

    def cancel_group(self, group: str) -> int:
        with self._lock:
            handles = list(self._groups.pop(group, ()))
        for handle in handles:
            handle.cancel()
        return len(handles)

    def cancel_all(self) -> int:
        with self._lock:
            groups = list(self._groups)
        return sum(self.cancel_group(group) for group in groups)

    def close(self) -> int:
        self.closed = True
        return self.cancel_all()

    def pending(self, group: Optional[str] = None) -> int:
        with self._lock:
            if group is not None:
                handles = list(self._groups.get(group, ()))
            else:
                handles = [h for hs in self._groups.values() for h in hs]
        return sum(1 for h in handles if h.pending)
