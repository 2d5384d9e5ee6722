"""Tests del fan-out a observadores push."""

import asyncio
import threading

import pytest

from conftest import make_reading
from relay_api.core.broadcast.fanout import BroadcastFanout, QueueObserver
from relay_api.errors import ObserverClosedError


class ExplodingObserver:
    observer_id = "boom"

    def __init__(self):
        self.closed = False

    def deliver(self, reading):
        raise OSError("socket closed")

    def close(self):
        self.closed = True


def _drain(observer):
    out = []
    while True:
        reading = observer.get_nowait()
        if reading is None:
            return out
        out.append(reading.timestamp)


class TestDelivery:
    def test_every_observer_gets_every_reading_in_order(self):
        fanout = BroadcastFanout(queue_size=10)
        a = fanout.subscribe(QueueObserver(maxsize=10))
        b = fanout.subscribe(QueueObserver(maxsize=10))

        for ts in (1, 2, 3):
            assert fanout.publish(make_reading(ts, t1=ts)) == 2

        assert _drain(a) == [1, 2, 3]
        assert _drain(b) == [1, 2, 3]

    def test_no_replay_for_late_subscriber(self):
        fanout = BroadcastFanout()
        fanout.publish(make_reading(1))
        late = fanout.subscribe(QueueObserver())
        fanout.publish(make_reading(2, t1=2))

        assert _drain(late) == [2]

    def test_unsubscribe_stops_delivery(self):
        fanout = BroadcastFanout()
        observer = fanout.subscribe(QueueObserver())
        assert fanout.unsubscribe(observer) is True
        assert fanout.publish(make_reading(1)) == 0
        assert observer.closed is True
        assert fanout.unsubscribe(observer) is False


class TestIsolation:
    def test_failing_observer_removed_others_unaffected(self):
        fanout = BroadcastFanout()
        healthy = fanout.subscribe(QueueObserver())
        broken = ExplodingObserver()
        fanout.subscribe(broken)

        delivered = fanout.publish(make_reading(1))

        assert delivered == 1
        assert broken.closed is True
        assert fanout.observer_count == 1
        assert fanout.stats["dropped"] == 1
        assert _drain(healthy) == [1]

        assert fanout.publish(make_reading(2, t1=2)) == 1
        assert _drain(healthy) == [2]

    def test_full_queue_drops_slow_observer(self):
        fanout = BroadcastFanout()
        slow = fanout.subscribe(QueueObserver(maxsize=2))
        fast = fanout.subscribe(QueueObserver(maxsize=10))

        for ts in (1, 2, 3):
            fanout.publish(make_reading(ts, t1=ts))

        assert fanout.observer_count == 1
        assert slow.closed is True
        assert _drain(fast) == [1, 2, 3]

    def test_close_all(self):
        fanout = BroadcastFanout()
        observers = [fanout.subscribe(QueueObserver()) for _ in range(3)]
        fanout.close_all()
        assert fanout.observer_count == 0
        assert all(o.closed for o in observers)

    def test_concurrent_publishes_keep_per_observer_order(self):
        fanout = BroadcastFanout()
        observer = fanout.subscribe(QueueObserver(maxsize=1000))

        def producer(base):
            for i in range(100):
                fanout.publish(make_reading(base + i, t1=base + i))

        threads = [threading.Thread(target=producer, args=(b,)) for b in (0, 1000)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        received = _drain(observer)
        assert len(received) == 200
        assert [ts for ts in received if ts < 1000] == list(range(100))
        assert [ts for ts in received if ts >= 1000] == list(range(1000, 1100))


class TestAsyncConsumption:
    @pytest.mark.asyncio
    async def test_get_wakes_on_publish_from_thread(self):
        fanout = BroadcastFanout()
        observer = fanout.subscribe()

        thread = threading.Thread(target=fanout.publish, args=(make_reading(42),))
        thread.start()
        reading = await observer.get(timeout=2.0)
        thread.join()

        assert reading.timestamp == 42

    @pytest.mark.asyncio
    async def test_get_timeout_returns_none(self):
        observer = QueueObserver(loop=asyncio.get_running_loop())
        assert await observer.get(timeout=0.01) is None

    @pytest.mark.asyncio
    async def test_get_after_close_raises(self):
        fanout = BroadcastFanout()
        observer = fanout.subscribe()
        fanout.unsubscribe(observer)

        with pytest.raises(ObserverClosedError):
            await observer.get(timeout=0.1)
