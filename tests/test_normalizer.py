from __future__ import annotations

import pytest

from services.normalizer import MalformedPayload, NormalizationError, current_millis, normalize


def _fixed_clock() -> int:
    return 5_000


def test_normalize_device_payload() -> None:
    reading = normalize(b'{"temp": 23.45, "hum": 61.2, "ts": 1700000000000}')

    assert reading.timestamp == 1_700_000_000_000
    assert reading.temperature == 23.45
    assert reading.humidity == 61.2
    assert dict(reading.raw) == {"temp": 23.45, "hum": 61.2, "ts": 1700000000000}


def test_missing_ts_falls_back_to_ingestion_time() -> None:
    before = current_millis()
    reading = normalize(b'{"temp": 21.5}')
    after = current_millis()

    assert reading.temperature == 21.5
    assert reading.humidity is None
    assert before <= reading.timestamp <= after


def test_non_numeric_fields_become_null_without_rejection() -> None:
    reading = normalize(b'{"ts": 1000, "temp": "hot", "hum": 55}', clock=_fixed_clock)

    assert reading.timestamp == 1000
    assert reading.temperature is None
    assert reading.humidity == 55


@pytest.mark.parametrize(
    "body",
    [
        b'{"ts": "1000"}',
        b'{"ts": null}',
        b'{"ts": true}',
        b'{"ts": 1e400}',
    ],
)
def test_invalid_ts_uses_clock(body: bytes) -> None:
    assert normalize(body, clock=_fixed_clock).timestamp == 5_000


def test_booleans_and_strings_are_not_numbers() -> None:
    reading = normalize(b'{"ts": 1, "temp": true, "hum": "55"}', clock=_fixed_clock)

    assert reading.temperature is None
    assert reading.humidity is None


def test_negative_and_fractional_ts_are_accepted() -> None:
    assert normalize(b'{"ts": -250}', clock=_fixed_clock).timestamp == -250
    assert normalize(b'{"ts": 1234.9}', clock=_fixed_clock).timestamp == 1234


def test_extra_fields_are_kept_in_raw() -> None:
    reading = normalize(b'{"temp": 20, "device": "esp32-01", "rssi": -61}', clock=_fixed_clock)

    assert reading.raw["device"] == "esp32-01"
    assert reading.raw["rssi"] == -61
    assert reading.temperature == 20.0
    with pytest.raises(TypeError):
        reading.raw["device"] = "other"  # type: ignore[index]


@pytest.mark.parametrize(
    "body",
    [
        b'{"temp": 21.5',
        b"\xff\xfe\x00garbage",
        b"",
        b"not json",
        b'{"temp": NaN}',
        b"[1, 2, 3]",
        b"42",
        b"null",
    ],
)
def test_malformed_payloads_are_rejected(body: bytes) -> None:
    with pytest.raises(MalformedPayload):
        normalize(body, clock=_fixed_clock)


def test_malformed_payload_is_a_normalization_error() -> None:
    with pytest.raises(NormalizationError):
        normalize(b"{", clock=_fixed_clock)


HUGE_INT = b"1" + b"0" * 400


@pytest.mark.parametrize(
    ("body", "temperature", "humidity"),
    [
        (b'{"ts": 1, "temp": ' + HUGE_INT + b', "hum": 40}', None, 40.0),
        (b'{"ts": 1, "temp": 21, "hum": -' + HUGE_INT + b"}", 21.0, None),
    ],
)
def test_integers_too_large_for_float_become_null(
    body: bytes, temperature: float | None, humidity: float | None
) -> None:
    reading = normalize(body, clock=_fixed_clock)

    assert reading.timestamp == 1
    assert reading.temperature == temperature
    assert reading.humidity == humidity


def test_large_integer_ts_is_kept_exactly() -> None:
    reading = normalize(b'{"ts": ' + HUGE_INT + b"}", clock=_fixed_clock)

    assert reading.timestamp == int(HUGE_INT)


def test_nested_raw_values_are_read_only() -> None:
    reading = normalize(
        b'{"ts": 1, "meta": {"fw": "1.2"}, "samples": [1, {"k": 2}]}',
        clock=_fixed_clock,
    )

    with pytest.raises(TypeError):
        reading.raw["meta"]["fw"] = "9.9"
    with pytest.raises(TypeError):
        reading.raw["samples"][1]["k"] = 3
    assert reading.to_payload()["raw"] == {
        "ts": 1,
        "meta": {"fw": "1.2"},
        "samples": [1, {"k": 2}],
    }
