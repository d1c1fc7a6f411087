"""Pydantic models for the ingest wire format.

Two schema generations coexist on the wire, discriminated by
``schema_version``:

* ``1`` - structured: typed daily summaries (steps, sleep, heart rate, ...)
* ``3`` - raw: an opaque, already-canonical JSON capture of every record type

Each generation has its own codec; ``encode_payload`` / ``decode_payload``
dispatch on the version.
"""

import json
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field, model_validator

from healthbridge.services.errors import UnsupportedSchemaError

SCHEMA_STRUCTURED = 1
SCHEMA_RAW = 3


class Source(BaseModel):
    """Where and when a snapshot was captured."""
    source_app: str
    device_id: str
    collected_at: datetime


class SleepSession(BaseModel):
    start_time: datetime
    end_time: datetime
    duration_minutes: int


class ExerciseSession(BaseModel):
    start_time: datetime
    end_time: datetime
    duration_minutes: int
    title: str | None = None
    notes: str | None = None


class HeartRateSummary(BaseModel):
    avg_hr: int
    min_hr: int
    max_hr: int
    resting_hr: int


class BodyMetrics(BaseModel):
    weight_kg: float | None = None
    body_fat_percentage: float | None = None


class NutritionSummary(BaseModel):
    calories_total: int | None = None
    protein_grams: float | None = None


class CaptureFailure(BaseModel):
    """A record type that could not be read during a capture."""
    record_type: str
    reason: str
    quota_exceeded: bool = False


class StructuredSnapshot(BaseModel):
    """Typed daily summaries (schema version 1)."""
    steps_total: int = 0
    sleep_sessions: list[SleepSession] = Field(default_factory=list)
    heart_rate_summary: HeartRateSummary | None = None
    body_metrics: BodyMetrics | None = None
    nutrition_summary: NutritionSummary | None = None
    exercise_sessions: list[ExerciseSession] = Field(default_factory=list)

    schema_version: int = Field(default=SCHEMA_STRUCTURED, exclude=True)

    def is_empty(self) -> bool:
        """True when nothing at all was recorded for the day."""
        if self.steps_total or self.sleep_sessions or self.exercise_sessions:
            return False
        if self.heart_rate_summary is not None:
            return False
        for summary in (self.body_metrics, self.nutrition_summary):
            if summary is not None and any(v is not None for v in summary.model_dump().values()):
                return False
        return True


class RawSnapshot(BaseModel):
    """Opaque capture of every record type (schema version 3).

    ``raw_json`` is treated as already canonical; build it with
    ``from_records`` so key order is stable.
    """
    raw_json: str = "{}"
    failures: list[CaptureFailure] = Field(default_factory=list, exclude=True)

    schema_version: int = Field(default=SCHEMA_RAW, exclude=True)

    @classmethod
    def from_records(
        cls,
        records: dict[str, list[Any]],
        failures: list[CaptureFailure] | None = None,
    ) -> "RawSnapshot":
        raw_json = json.dumps(records, sort_keys=True, separators=(",", ":"), default=str)
        return cls(raw_json=raw_json, failures=failures or [])

    def records(self) -> dict[str, Any]:
        return json.loads(self.raw_json) if self.raw_json else {}

    def is_empty(self) -> bool:
        return not any(self.records().values())


class IngestPayload(BaseModel):
    """Versioned envelope shipped to the ingest service."""
    schema_version: int
    date: date
    snapshot: RawSnapshot | StructuredSnapshot
    source: Source

    @model_validator(mode="after")
    def _check_version(self):
        if self.snapshot.schema_version != self.schema_version:
            raise ValueError(
                f"schema_version {self.schema_version} does not match "
                f"{type(self.snapshot).__name__} (version {self.snapshot.schema_version})"
            )
        return self

    @classmethod
    def build(cls, target_date: date, snapshot: RawSnapshot | StructuredSnapshot, source: Source) -> "IngestPayload":
        return cls(
            schema_version=snapshot.schema_version,
            date=target_date,
            snapshot=snapshot,
            source=source,
        )

    @property
    def date_key(self) -> str:
        return self.date.isoformat()


class IngestResponse(BaseModel):
    """Body returned by the ingest service."""
    status: str
    inserted: bool | None = None
    id: str | None = None


class RawCodec:
    schema_version = SCHEMA_RAW

    @staticmethod
    def encode(payload: IngestPayload) -> dict[str, Any]:
        return {
            "schema_version": payload.schema_version,
            "date": payload.date_key,
            "raw_json": payload.snapshot.raw_json,
            "source": payload.source.model_dump(mode="json"),
        }

    @staticmethod
    def decode(data: dict[str, Any]) -> IngestPayload:
        return IngestPayload(
            schema_version=SCHEMA_RAW,
            date=date.fromisoformat(data["date"]),
            snapshot=RawSnapshot(raw_json=data.get("raw_json") or "{}"),
            source=Source.model_validate(data["source"]),
        )


class StructuredCodec:
    schema_version = SCHEMA_STRUCTURED

    @staticmethod
    def encode(payload: IngestPayload) -> dict[str, Any]:
        body = {
            "schema_version": payload.schema_version,
            "date": payload.date_key,
        }
        body.update(payload.snapshot.model_dump(mode="json"))
        body["source"] = payload.source.model_dump(mode="json")
        return body

    @staticmethod
    def decode(data: dict[str, Any]) -> IngestPayload:
        fields = {k: v for k, v in data.items() if k in StructuredSnapshot.model_fields and k != "schema_version"}
        return IngestPayload(
            schema_version=SCHEMA_STRUCTURED,
            date=date.fromisoformat(data["date"]),
            snapshot=StructuredSnapshot.model_validate(fields),
            source=Source.model_validate(data["source"]),
        )


CODECS = {
    RawCodec.schema_version: RawCodec,
    StructuredCodec.schema_version: StructuredCodec,
}


def _codec_for(schema_version: Any):
    codec = CODECS.get(schema_version)
    if codec is None:
        raise UnsupportedSchemaError(f"Unsupported schema_version: {schema_version!r}")
    return codec


def encode_payload(payload: IngestPayload) -> dict[str, Any]:
    """Encode a payload into its wire dict."""
    return _codec_for(payload.schema_version).encode(payload)


def decode_payload(data: dict[str, Any]) -> IngestPayload:
    """Decode a wire dict, dispatching on ``schema_version``."""
    return _codec_for(data.get("schema_version")).decode(data)
