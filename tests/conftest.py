"""Fixtures compartidas."""

from __future__ import annotations

import itertools
from typing import Any, Dict

import pytest

from common.config import Settings
from relay_api.core.domain.reading import Reading


def furnace_payload(t1: float = 500.0, **overrides: Any) -> Dict[str, Any]:
    payload = {
        "1wd": t1,
        "2wd": 510.0,
        "3wd": 520.0,
        "4wd": 530.0,
        "1gl": 40,
        "2gl": 45,
        "3gl": 50,
        "4gl": 55,
        "0wd": 480.5,
        "1bh": "A-100",
        "2bh": "A-101",
        "3bh": "A-102",
    }
    payload.update(overrides)
    return payload


def make_reading(timestamp: int, t1: float = 500.0, topic: str = "/dxiot/4q/get/danzhan/tuihuolu") -> Reading:
    return Reading.create(timestamp, topic, furnace_payload(t1))


class FakeClock:
    """Reloj manual en ms para el pipeline."""

    def __init__(self, start: int = 1_700_000_000_000, step: int = 1000):
        self._counter = itertools.count(start, step)
        self.now = start

    def __call__(self) -> int:
        self.now = next(self._counter)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings_factory(tmp_path):
    """Settings con sqlite en tmp_path y MQTT deshabilitado."""

    def _make(**overrides: Any) -> Settings:
        values: Dict[str, Any] = dict(
            database_url=f"sqlite:///{tmp_path / 'relay.sqlite3'}",
            mqtt_enabled=False,
            mqtt_host="localhost",
            mqtt_port=1883,
            mqtt_username=None,
            mqtt_password=None,
            mqtt_client_prefix="test-relay",
            sub_topics=("/dxiot/4q/get/danzhan/tuihuolu",),
            pub_topic="/dxiot/4q/pub/danzhan/tuihuolu",
            time_zone="UTC",
            sse_keepalive_seconds=0.05,
        )
        values.update(overrides)
        return Settings(**values)

    return _make
