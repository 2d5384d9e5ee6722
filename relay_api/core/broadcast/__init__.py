"""Broadcast - fan-out de lecturas a observadores."""

from .fanout import BroadcastFanout, Observer, QueueObserver

__all__ = ["BroadcastFanout", "Observer", "QueueObserver"]
