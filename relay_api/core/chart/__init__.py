"""Chart - ventanas deslizantes para el gráfico del dashboard."""

from .sliding_window import SlidingWindowView, ViewState, WindowSlice
from .registry import ChartViewRegistry

__all__ = ["SlidingWindowView", "ViewState", "WindowSlice", "ChartViewRegistry"]
