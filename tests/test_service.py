"""Tests del ciclo de vida del RelayService."""

from unittest.mock import MagicMock

import orjson

from conftest import furnace_payload
from relay_api.service import RelayService

TOPIC = "/dxiot/4q/get/danzhan/tuihuolu"


class TestRelayService:
    def test_readings_survive_restart(self, settings_factory):
        settings = settings_factory()
        first = RelayService(settings)
        first.start()
        for t1 in (500.0, 500.0, 501.0, 502.0):
            first.handler.handle(TOPIC, orjson.dumps(furnace_payload(t1)))
        last_ts = first.store.last().timestamp
        first.stop()

        second = RelayService(settings)
        second.start()
        try:
            assert second.store.count() == 3
            assert second.store.last().timestamp == last_ts
            assert [r.sample.temperatures[0] for r in second.store.latest(3)] == [502.0, 501.0, 500.0]

            second.handler.handle(TOPIC, orjson.dumps(furnace_payload(503.0)))
            assert second.store.last().timestamp >= last_ts
        finally:
            second.stop()

    def test_warm_start_capped_at_history_capacity(self, settings_factory):
        first = RelayService(settings_factory())
        first.start()
        for t1 in range(10):
            first.handler.handle(TOPIC, orjson.dumps(furnace_payload(float(t1))))
        first.stop()

        second = RelayService(settings_factory(history_capacity=4))
        second.start()
        try:
            assert [r.sample.temperatures[0] for r in second.store.latest(10)] == [9.0, 8.0, 7.0, 6.0]
        finally:
            second.stop()

    def test_without_persistence(self, settings_factory):
        service = RelayService(settings_factory(persist_enabled=False))
        service.start()
        service.handler.handle(TOPIC, b"hello")
        assert service.repository is None
        assert service.store.count() == 1
        service.stop()

    def test_publish_back_serializes_mappings(self, settings_factory):
        mqtt_client = MagicMock()
        mqtt_client.publish.return_value = True
        service = RelayService(settings_factory(persist_enabled=False), mqtt_client=mqtt_client)

        assert service.publish_back({"b": 1, "a": 2}) is True
        mqtt_client.publish.assert_called_once_with(service.settings.pub_topic, '{"b":1,"a":2}')
        mqtt_client.set_message_handler.assert_called_once_with(service.handler.handle)

    def test_publish_back_without_mqtt(self, settings_factory):
        service = RelayService(settings_factory(persist_enabled=False))
        assert service.mqtt is None
        assert service.publish_back("x") is False

    def test_stop_closes_observers(self, settings_factory):
        service = RelayService(settings_factory(persist_enabled=False))
        service.start()
        observer = service.fanout.subscribe()
        service.stop()
        assert observer.closed is True
        assert service.ready is False
