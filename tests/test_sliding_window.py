"""Tests de la ventana deslizante del gráfico."""

import pytest

from conftest import make_reading
from relay_api.core.chart.registry import ChartViewRegistry
from relay_api.core.chart.sliding_window import SlidingWindowView, ViewState
from relay_api.core.domain.reading import Reading
from relay_api.errors import ViewNotFoundError


def _fill(view, count, start_ts=1):
    for ts in range(start_ts, start_ts + count):
        view.on_append(make_reading(ts, t1=float(ts)))


class TestStates:
    def test_empty(self):
        view = SlidingWindowView(window_size=3, buffer_capacity=10)
        assert view.state is ViewState.EMPTY
        window = view.visible_slice()
        assert window.labels == []
        assert window.series == [[], [], [], []]

    def test_partial_pan_is_noop(self):
        view = SlidingWindowView(window_size=8, buffer_capacity=20)
        _fill(view, 3)
        assert view.state is ViewState.PARTIAL
        assert view.pan(2) == 0
        assert view.visible_slice().labels == [1, 2, 3]

    def test_full(self):
        view = SlidingWindowView(window_size=3, buffer_capacity=10)
        _fill(view, 4)
        assert view.state is ViewState.FULL
        assert view.position_info()["pan_enabled"] is True


class TestPanAndJump:
    def test_pan_clamps_to_bounds(self):
        view = SlidingWindowView(window_size=3, buffer_capacity=10)
        _fill(view, 6)
        assert view.pan(-5) == 0
        assert view.pan(99) == 3
        assert view.visible_slice().labels == [4, 5, 6]

    def test_jump_to_latest(self):
        view = SlidingWindowView(window_size=3, buffer_capacity=10)
        _fill(view, 6)
        view.pan(0)
        assert view.jump_to_latest() == 3
        assert view.end_index == 6


class TestAutoFollow:
    def test_follows_when_at_latest(self):
        view = SlidingWindowView(window_size=3, buffer_capacity=10)
        _fill(view, 5)
        assert view.start_index == 2

        _fill(view, 1, start_ts=6)

        assert view.start_index == 3
        assert view.visible_slice().labels == [4, 5, 6]

    def test_follows_when_one_before_latest(self):
        view = SlidingWindowView(window_size=3, buffer_capacity=10)
        _fill(view, 7)
        view.pan(3)  # max_start = 4

        _fill(view, 1, start_ts=8)

        assert view.start_index == view.max_start == 5

    def test_stays_when_scrolled_back(self):
        view = SlidingWindowView(window_size=3, buffer_capacity=10)
        _fill(view, 5)
        view.pan(0)

        _fill(view, 1, start_ts=6)

        assert view.start_index == 0
        assert view.visible_slice().labels == [1, 2, 3]

    def test_default_window_stays_when_scrolled_to_start(self):
        view = SlidingWindowView(window_size=8, buffer_capacity=100)
        _fill(view, 12)
        view.pan(0)

        _fill(view, 5, start_ts=13)

        assert view.start_index == 0
        assert view.visible_slice().labels == list(range(1, 9))

    def test_snaps_while_not_full(self):
        view = SlidingWindowView(window_size=4, buffer_capacity=10)
        _fill(view, 4)
        assert view.start_index == 0
        _fill(view, 1, start_ts=5)
        assert view.start_index == 1


class TestEvictionShift:
    def test_start_shifts_with_head_eviction(self):
        view = SlidingWindowView(window_size=2, buffer_capacity=5)
        _fill(view, 5)
        view.pan(1)  # [2, 3]; max_start = 3, ya no sigue

        _fill(view, 1, start_ts=6)

        assert view.total == 5
        assert view.start_index == 0
        assert view.visible_slice().labels == [2, 3]

    def test_start_clamped_at_zero(self):
        view = SlidingWindowView(window_size=2, buffer_capacity=5)
        _fill(view, 5)
        view.pan(0)

        _fill(view, 2, start_ts=6)

        assert view.start_index == 0
        assert view.visible_slice().labels == [3, 4]


class TestSliceContent:
    def test_nulls_are_propagated(self):
        view = SlidingWindowView(window_size=3, buffer_capacity=10)
        view.on_append(Reading.create(1, "t", {"1wd": 500, "2wd": None, "3wd": "n/a"}))

        window = view.visible_slice()

        assert window.series[0] == [500.0]
        assert window.series[1] == [None]
        assert window.series[2] == [None]
        assert window.series[3] == [None]

    def test_seed_follows_latest(self):
        view = SlidingWindowView(window_size=3, buffer_capacity=10)
        view.seed([make_reading(ts, t1=float(ts)) for ts in range(1, 8)])
        assert view.start_index == 4
        assert view.position_info() == {
            "first": 5,
            "last": 7,
            "total": 7,
            "max_start": 4,
            "pan_enabled": True,
        }

    def test_seed_beyond_capacity_keeps_newest(self):
        view = SlidingWindowView(window_size=2, buffer_capacity=4)
        view.seed([make_reading(ts, t1=float(ts)) for ts in range(1, 11)])
        assert view.total == 4
        assert view.visible_slice().labels == [9, 10]

    def test_invalid_sizes(self):
        with pytest.raises(ValueError):
            SlidingWindowView(window_size=0)
        with pytest.raises(ValueError):
            SlidingWindowView(window_size=10, buffer_capacity=5)


class TestChartViewRegistry:
    def test_create_get_delete(self):
        registry = ChartViewRegistry(window_size=3, buffer_capacity=10)
        view_id, view = registry.create([make_reading(1)])

        assert registry.get(view_id) is view
        registry.delete(view_id)
        with pytest.raises(ViewNotFoundError):
            registry.get(view_id)
        with pytest.raises(ViewNotFoundError):
            registry.delete(view_id)

    def test_on_append_reaches_every_view(self):
        registry = ChartViewRegistry(window_size=3, buffer_capacity=10)
        _, a = registry.create()
        _, b = registry.create()

        registry.on_append(make_reading(1))

        assert a.total == b.total == 1

    def test_oldest_view_dropped_over_limit(self):
        registry = ChartViewRegistry(window_size=3, buffer_capacity=10, max_views=2)
        first, _ = registry.create()
        registry.create()
        registry.create()

        assert len(registry) == 2
        with pytest.raises(ViewNotFoundError):
            registry.get(first)
