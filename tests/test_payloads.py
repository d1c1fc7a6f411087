"""Tests for the versioned ingest payload and its wire codecs."""

from datetime import date, datetime, timezone

import pytest
from pydantic import ValidationError

from healthbridge.schemas.payloads import (
    SCHEMA_RAW,
    SCHEMA_STRUCTURED,
    BodyMetrics,
    ExerciseSession,
    IngestPayload,
    NutritionSummary,
    RawSnapshot,
    Source,
    StructuredSnapshot,
    decode_payload,
    encode_payload,
)
from healthbridge.services.errors import UnsupportedSchemaError

SOURCE = Source(
    source_app="fake_provider",
    device_id="0b6a3c1e-0000-4000-8000-000000000001",
    collected_at=datetime(2025, 10, 2, 7, 15, tzinfo=timezone.utc),
)


class TestRawWireFormat:

    def test_encode_matches_wire_shape(self):
        payload = IngestPayload.build(date(2025, 10, 1), RawSnapshot.from_records({"Steps": [{"count": 5}]}), SOURCE)
        wire = encode_payload(payload)

        assert wire["schema_version"] == 3
        assert wire["date"] == "2025-10-01"
        assert wire["raw_json"] == '{"Steps":[{"count":5}]}'
        assert wire["source"]["source_app"] == "fake_provider"
        assert wire["source"]["device_id"] == SOURCE.device_id
        assert wire["source"]["collected_at"].startswith("2025-10-02T07:15:00")
        assert set(wire) == {"schema_version", "date", "raw_json", "source"}

    def test_decode_keeps_raw_json_verbatim(self):
        wire = {
            "schema_version": 3,
            "date": "2025-10-01",
            "raw_json": '{"Steps": [1]}',
            "source": SOURCE.model_dump(mode="json"),
        }
        payload = decode_payload(wire)
        assert isinstance(payload.snapshot, RawSnapshot)
        assert payload.snapshot.raw_json == '{"Steps": [1]}'
        assert payload.date == date(2025, 10, 1)

    def test_capture_failures_are_not_on_the_wire(self):
        snapshot = RawSnapshot.from_records({}, failures=[])
        wire = encode_payload(IngestPayload.build(date(2025, 10, 1), snapshot, SOURCE))
        assert "failures" not in wire


class TestStructuredWireFormat:

    def test_encode_uses_typed_fields(self):
        snapshot = StructuredSnapshot(
            steps_total=1200,
            exercise_sessions=[ExerciseSession(
                start_time=datetime(2025, 10, 1, 18, tzinfo=timezone.utc),
                end_time=datetime(2025, 10, 1, 18, 45, tzinfo=timezone.utc),
                duration_minutes=45,
                title="Run",
            )],
            nutrition_summary=NutritionSummary(calories_total=2100),
        )
        wire = encode_payload(IngestPayload.build(date(2025, 10, 1), snapshot, SOURCE))

        assert wire["schema_version"] == 1
        assert wire["steps_total"] == 1200
        assert wire["sleep_sessions"] == []
        assert wire["exercise_sessions"][0]["title"] == "Run"
        assert wire["nutrition_summary"] == {"calories_total": 2100, "protein_grams": None}
        assert "raw_json" not in wire

    def test_decode_older_structured_payload(self):
        wire = {
            "schema_version": 1,
            "date": "2025-09-30",
            "steps_total": 4321,
            "sleep_sessions": [
                {"start_time": "2025-09-29T23:00:00+01:00", "end_time": "2025-09-30T07:00:00+01:00", "duration_minutes": 480},
            ],
            "heart_rate_summary": {"avg_hr": 64, "min_hr": 48, "max_hr": 131, "resting_hr": 64},
            "source": {"source_app": "health_connect", "device_id": "abc", "collected_at": "2025-10-01T08:00:00+01:00"},
        }
        payload = decode_payload(wire)

        assert payload.schema_version == SCHEMA_STRUCTURED
        assert payload.snapshot.steps_total == 4321
        assert payload.snapshot.sleep_sessions[0].duration_minutes == 480
        assert payload.snapshot.body_metrics is None
        assert payload.source.source_app == "health_connect"


class TestEnvelope:

    def test_unknown_schema_version_raises(self):
        with pytest.raises(UnsupportedSchemaError):
            decode_payload({"schema_version": 2, "date": "2025-10-01", "source": {}})

    def test_version_must_match_snapshot_form(self):
        with pytest.raises(ValidationError):
            IngestPayload(schema_version=SCHEMA_STRUCTURED, date=date(2025, 10, 1), snapshot=RawSnapshot(), source=SOURCE)

    def test_build_picks_version_from_snapshot(self):
        assert IngestPayload.build(date(2025, 10, 1), RawSnapshot(), SOURCE).schema_version == SCHEMA_RAW
        assert IngestPayload.build(date(2025, 10, 1), StructuredSnapshot(), SOURCE).schema_version == SCHEMA_STRUCTURED


class TestEmptySnapshots:

    def test_raw_empty_when_no_records(self):
        assert RawSnapshot.from_records({}).is_empty()
        assert RawSnapshot.from_records({"Steps": []}).is_empty()
        assert not RawSnapshot.from_records({"Steps": [{"count": 1}]}).is_empty()

    def test_structured_empty_by_every_measure(self):
        assert StructuredSnapshot().is_empty()
        assert StructuredSnapshot(body_metrics=BodyMetrics()).is_empty()
        assert not StructuredSnapshot(steps_total=1).is_empty()
        assert not StructuredSnapshot(body_metrics=BodyMetrics(weight_kg=70.5)).is_empty()
