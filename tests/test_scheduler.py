import threading
import time

from kotoba_race.services.race.scheduler import (
    SLEEP_STEP_SEC,
    BackgroundScheduler,
    ManualScheduler,
    TimerRegistry,
)


class FakeSocketIO:
    """Queues background tasks until ``run`` and sleeps on a fake clock."""

    def __init__(self):
        self.clock = 0.0
        self.naps = []
        self.tasks = []
        self.on_sleep = None

    def monotonic(self):
        return self.clock

    def start_background_task(self, target, *args):
        self.tasks.append((target, args))

    def sleep(self, seconds):
        self.naps.append(seconds)
        self.clock += seconds
        if self.on_sleep:
            self.on_sleep()

    def run(self):
        while self.tasks:
            target, args = self.tasks.pop(0)
            target(*args)


class ThreadedSocketIO:
    def start_background_task(self, target, *args):
        thread = threading.Thread(target=target, args=args, daemon=True)
        thread.start()
        return thread

    def sleep(self, seconds):
        time.sleep(seconds)


def test_background_timer_fires_after_its_delay():
    sio = FakeSocketIO()
    fired = []
    handle = BackgroundScheduler(sio, monotonic=sio.monotonic).call_later(1.0, fired.append, 'go')
    assert handle.pending
    sio.run()
    assert fired == ['go']
    assert handle.fired is True
    assert sum(sio.naps) == 1.0
    assert max(sio.naps) <= SLEEP_STEP_SEC


def test_cancelled_background_timer_stops_sleeping_early():
    sio = FakeSocketIO()
    fired = []
    handle = BackgroundScheduler(sio, monotonic=sio.monotonic).call_later(8.0, fired.append, 'late')
    sio.on_sleep = handle.cancel
    sio.run()
    assert fired == []
    assert handle.fired is False
    # one nap, not the full eight seconds
    assert sio.naps == [SLEEP_STEP_SEC]


def test_failing_background_callback_is_contained():
    sio = FakeSocketIO()

    def _boom():
        raise RuntimeError('boom')

    handle = BackgroundScheduler(sio, monotonic=sio.monotonic).call_later(0.1, _boom)
    sio.run()
    assert handle.fired is True


def test_registry_groups_and_cancellation():
    scheduler = ManualScheduler()
    registry = TimerRegistry(scheduler, 'g1')
    fired = []
    registry.schedule('bots', 1, fired.append, 'a')
    registry.schedule('bots', 2, fired.append, 'b')
    registry.schedule('question', 3, fired.append, 'q')
    assert registry.pending() == 3

    scheduler.advance(1)
    assert fired == ['a']
    assert registry.pending('bots') == 1

    assert registry.cancel_group('bots') == 1
    assert registry.close() == 1
    assert registry.schedule('bots', 1, fired.append, 'x') is None
    scheduler.run_all()
    assert fired == ['a']


def test_registry_survives_timers_firing_during_cancellation():
    registry = TimerRegistry(BackgroundScheduler(ThreadedSocketIO()), 'g1')
    fired = []
    lock = threading.Lock()

    def _record():
        with lock:
            fired.append(1)

    for _ in range(50):
        for _ in range(20):
            registry.schedule('bots', 0, _record)
        registry.cancel_group('bots')
        registry.pending()

    registry.close()
    time.sleep(0.2)
    assert registry.pending() == 0
