"""Tests de normalización de payloads y conversión de fechas."""

from datetime import date, timezone

import pytest

from relay_api.core.domain.dates import day_bounds_ms, format_timestamp, parse_day, resolve_zone
from relay_api.core.domain.payload import decode_message, normalize_payload, unwrap_payload
from relay_api.errors import InvalidQueryError


class TestDecodeMessage:
    def test_object_is_parsed(self):
        assert decode_message(b'{"1wd": 500}') == {"1wd": 500}

    def test_data_envelope_unwrapped(self):
        assert decode_message(b'{"data": {"1wd": 1}, "ts": 5}') == {"1wd": 1}

    def test_empty_or_scalar_data_not_unwrapped(self):
        assert unwrap_payload({"data": {}, "1wd": 1}) == {"data": {}, "1wd": 1}
        assert unwrap_payload({"data": 7}) == {"data": 7}

    def test_invalid_utf8_kept_as_text(self):
        payload = decode_message(b"\xff\xfeabc")
        assert isinstance(payload, str)
        assert payload.endswith("abc")

    def test_list_kept_as_text(self):
        assert decode_message(b"[1, 2]") == "[1, 2]"


class TestNormalizePayload:
    def test_recognized_keys(self):
        sample = normalize_payload(
            {"1wd": 500, "2wd": "510.5", "1gl": 40, "0wd": 480, "1bh": 12, "2bh": "B-7", "foo": "bar"}
        )
        assert sample.temperatures == (500.0, 510.5, None, None)
        assert sample.powers == (40.0, None, None, None)
        assert sample.process_temperature == 480.0
        assert sample.work_items == ("12", "B-7", None)
        assert dict(sample.extra) == {"foo": "bar"}
        assert sample.raw_text is None

    def test_booleans_and_garbage_are_not_numbers(self):
        sample = normalize_payload({"1wd": True, "2wd": "hot", "3wd": [1], "4wd": None})
        assert sample.temperatures == (None, None, None, None)

    def test_zero_is_kept(self):
        sample = normalize_payload({"1wd": 0})
        assert sample.temperatures[0] == 0.0

    def test_average_temperature_ignores_missing(self):
        assert normalize_payload({"1wd": 500, "3wd": 520}).average_temperature() == 510.0
        assert normalize_payload({}).average_temperature() is None

    def test_opaque_text(self):
        sample = normalize_payload("PING")
        assert sample.is_opaque
        assert sample.raw_text == "PING"


class TestDates:
    def test_parse_day(self):
        assert parse_day("2024-03-05", "startDate") == date(2024, 3, 5)
        assert parse_day("2024-03-05T10:00:00Z", "startDate") == date(2024, 3, 5)

    @pytest.mark.parametrize("value", [None, "", "   ", "05/03/2024"])
    def test_parse_day_invalid(self, value):
        with pytest.raises(InvalidQueryError):
            parse_day(value, "startDate")

    def test_day_bounds_cover_whole_days(self):
        start, end = day_bounds_ms(date(2024, 1, 1), date(2024, 1, 2), timezone.utc)
        assert start == 1704067200000
        assert end == 1704067200000 + 2 * 86_400_000 - 1

    def test_day_bounds_use_zone(self):
        start, _ = day_bounds_ms(date(2024, 1, 1), date(2024, 1, 1), resolve_zone("Asia/Shanghai"))
        assert start == 1704067200000 - 8 * 3_600_000

    def test_unknown_zone_falls_back_to_utc(self):
        assert resolve_zone("Nowhere/Nothing") is timezone.utc

    def test_format_timestamp(self):
        assert format_timestamp(1704067200000, timezone.utc) == "2024-01-01 00:00:00"
