"""
Tests for telemetry payload validation and normalization.

Tests cover:
- Single reading vs batch detection
- Field-level errors for ids, ranges, types and timestamps
- Defaults for timestamp and seq
- Malformed JSON
"""

import json
from datetime import datetime, timezone

import pytest

from core.exceptions import InputError
from telemetry_ingest.schemas import (
    MAX_BATCH_SIZE,
    normalize_readings,
    parse_ingest_payload,
    validate_payload,
)

from conftest import MACHINE_ID, NOW, TIRE_ID


def _body(payload) -> bytes:
    return json.dumps(payload).encode()


def _fields(exc: InputError):
    return [d.field for d in exc.details]


def _messages(exc: InputError):
    return [d.message for d in exc.details]


# =============================================================
# TEST: Single Reading
# =============================================================

class TestSingleReading:
    """Validation of one reading object."""

    def test_minimal_reading_is_normalized(self):
        readings = parse_ingest_payload(
            _body({"machineId": MACHINE_ID, "pressure": 3.2, "speed": 40}),
            NOW,
        )

        assert len(readings) == 1
        reading = readings[0]
        assert reading.machine_id == MACHINE_ID
        assert reading.tire_id is None
        assert reading.pressure == 3.2
        assert reading.speed == 40.0
        assert reading.timestamp == NOW
        assert reading.seq == int(NOW.timestamp() * 1000)

    def test_explicit_timestamp_and_seq_kept(self):
        readings = parse_ingest_payload(
            _body({
                "machineId": MACHINE_ID,
                "tireId": TIRE_ID,
                "pressure": 3.0,
                "speed": 10,
                "timestamp": "2024-05-31T08:30:00-03:00",
                "seq": 17,
            }),
            NOW,
        )

        reading = readings[0]
        assert reading.tire_id == TIRE_ID
        assert reading.timestamp == datetime(2024, 5, 31, 11, 30, tzinfo=timezone.utc)
        assert reading.seq == 17

    def test_ids_are_lowercased(self):
        readings = parse_ingest_payload(
            _body({"machineId": MACHINE_ID.upper(), "pressure": 3.0, "speed": 0}),
            NOW,
        )
        assert readings[0].machine_id == MACHINE_ID

    def test_malformed_machine_id(self):
        with pytest.raises(InputError) as exc_info:
            validate_payload({"machineId": "truck-12", "pressure": 3.0, "speed": 0})

        assert _fields(exc_info.value) == ["machineId"]
        assert _messages(exc_info.value) == ["Invalid machine ID format"]

    def test_malformed_tire_id(self):
        with pytest.raises(InputError) as exc_info:
            validate_payload({
                "machineId": MACHINE_ID, "tireId": "FL", "pressure": 3.0, "speed": 0,
            })
        assert _messages(exc_info.value) == ["Invalid tire ID format"]

    @pytest.mark.parametrize("field,value", [
        ("pressure", -0.1),
        ("pressure", 10.01),
        ("speed", -1),
        ("speed", 200.5),
    ])
    def test_out_of_range_values(self, field, value):
        payload = {"machineId": MACHINE_ID, "pressure": 3.0, "speed": 10}
        payload[field] = value

        with pytest.raises(InputError) as exc_info:
            validate_payload(payload)
        assert _fields(exc_info.value) == [field]

    def test_range_bounds_are_inclusive(self):
        readings = validate_payload({"machineId": MACHINE_ID, "pressure": 10, "speed": 200})
        assert readings[0].pressure == 10
        assert readings[0].speed == 200

    def test_numeric_strings_rejected(self):
        with pytest.raises(InputError) as exc_info:
            validate_payload({"machineId": MACHINE_ID, "pressure": "3.0", "speed": 10})
        assert _fields(exc_info.value) == ["pressure"]

    def test_missing_fields_all_reported(self):
        with pytest.raises(InputError) as exc_info:
            validate_payload({"machineId": MACHINE_ID})
        assert sorted(_fields(exc_info.value)) == ["pressure", "speed"]

    @pytest.mark.parametrize("timestamp", [
        "2024-06-01T10:00:00",
        "yesterday",
        1717236000,
    ])
    def test_timestamp_requires_zoned_iso_string(self, timestamp):
        with pytest.raises(InputError) as exc_info:
            validate_payload({
                "machineId": MACHINE_ID, "pressure": 3.0, "speed": 0, "timestamp": timestamp,
            })
        assert _fields(exc_info.value) == ["timestamp"]
        assert _messages(exc_info.value) == ["Invalid datetime"]

    def test_seq_must_be_positive(self):
        with pytest.raises(InputError) as exc_info:
            validate_payload({"machineId": MACHINE_ID, "pressure": 3.0, "speed": 0, "seq": 0})
        assert _fields(exc_info.value) == ["seq"]


# =============================================================
# TEST: Batches
# =============================================================

class TestBatch:
    """Validation of {"readings": [...]} bodies."""

    def test_batch_preserves_order(self):
        readings = parse_ingest_payload(
            _body({"readings": [
                {"machineId": MACHINE_ID, "pressure": 3.0, "speed": 1},
                {"machineId": MACHINE_ID, "pressure": 2.0, "speed": 2},
            ]}),
            NOW,
        )
        assert [r.speed for r in readings] == [1.0, 2.0]

    def test_error_path_includes_index(self):
        with pytest.raises(InputError) as exc_info:
            validate_payload({"readings": [
                {"machineId": MACHINE_ID, "pressure": 3.0, "speed": 1},
                {"machineId": "bad", "pressure": 3.0, "speed": 1},
            ]})
        assert _fields(exc_info.value) == ["readings.1.machineId"]

    def test_empty_batch_rejected(self):
        with pytest.raises(InputError) as exc_info:
            validate_payload({"readings": []})
        assert _fields(exc_info.value) == ["readings"]

    def test_oversized_batch_rejected(self):
        reading = {"machineId": MACHINE_ID, "pressure": 3.0, "speed": 1}
        with pytest.raises(InputError) as exc_info:
            validate_payload({"readings": [reading] * (MAX_BATCH_SIZE + 1)})
        assert _fields(exc_info.value) == ["readings"]

    def test_max_batch_accepted(self):
        reading = {"machineId": MACHINE_ID, "pressure": 3.0, "speed": 1}
        readings = validate_payload({"readings": [reading] * MAX_BATCH_SIZE})
        assert len(readings) == MAX_BATCH_SIZE

    def test_readings_key_forces_batch_validation(self):
        with pytest.raises(InputError) as exc_info:
            validate_payload({
                "readings": None, "machineId": MACHINE_ID, "pressure": 3.0, "speed": 1,
            })
        assert _fields(exc_info.value) == ["readings"]

    def test_batch_shares_receipt_defaults(self):
        readings = normalize_readings(
            validate_payload({"readings": [
                {"machineId": MACHINE_ID, "pressure": 3.0, "speed": 1},
                {"machineId": MACHINE_ID, "pressure": 3.1, "speed": 1},
            ]}),
            NOW,
        )
        assert {r.timestamp for r in readings} == {NOW}
        assert len({r.seq for r in readings}) == 1


# =============================================================
# TEST: Body Decoding
# =============================================================

class TestBodyDecoding:

    @pytest.mark.parametrize("raw", [b"{not json", b"", b"\xff\xfe"])
    def test_malformed_body(self, raw):
        with pytest.raises(InputError) as exc_info:
            parse_ingest_payload(raw, NOW)
        assert exc_info.value.message == "Validation failed"
        assert exc_info.value.status_code == 400

    def test_non_object_body(self):
        with pytest.raises(InputError) as exc_info:
            parse_ingest_payload(b"[1, 2]", NOW)
        assert _messages(exc_info.value) == ["Expected a JSON object"]

    def test_error_response_shape(self):
        with pytest.raises(InputError) as exc_info:
            validate_payload({"machineId": "bad", "pressure": 3.0, "speed": 1})

        body = exc_info.value.to_response()
        assert body == {
            "error": "Validation failed",
            "details": [{"field": "machineId", "message": "Invalid machine ID format"}],
        }
