"""Content fingerprint of an ingest payload.

The canonical string is built in three parts, in order:

1. a version prefix (schema version plus canonicalization revision), so any
   change to either treats every date as modified
2. ``date``, ``app`` and ``device`` as key=value fields
3. the snapshot: the raw blob verbatim, or the structured summaries as
   sorted-key JSON with session times in UTC (naive times are taken as UTC)
   and session lists ordered by start time, ties broken on the full session

``source.collected_at`` is not part of the fingerprint.
"""

import hashlib
import json
from datetime import datetime, timezone

from healthbridge.schemas.payloads import IngestPayload, RawSnapshot, StructuredSnapshot

# Bump whenever the rules below change.
CANONICAL_REVISION = 2


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _canonical_sessions(sessions) -> list[dict]:
    keyed = []
    for session in sessions:
        start = _utc(session.start_time)
        data = session.model_dump(mode="json")
        data["start_time"] = start.isoformat()
        data["end_time"] = _utc(session.end_time).isoformat()
        keyed.append(((start, json.dumps(data, sort_keys=True)), data))
    return [data for _, data in sorted(keyed, key=lambda item: item[0])]


def canonical_structured(snapshot: StructuredSnapshot) -> str:
    """Deterministic JSON for a structured snapshot."""
    data = snapshot.model_dump(mode="json")
    data["sleep_sessions"] = _canonical_sessions(snapshot.sleep_sessions)
    data["exercise_sessions"] = _canonical_sessions(snapshot.exercise_sessions)
    return json.dumps(data, sort_keys=True, separators=(",", ":"))


def canonical_string(payload: IngestPayload) -> str:
    parts = [
        f"v{payload.schema_version}.{CANONICAL_REVISION}",
        f"date={payload.date_key}",
        f"app={payload.source.source_app}",
        f"device={payload.source.device_id}",
    ]
    snapshot = payload.snapshot
    if isinstance(snapshot, RawSnapshot):
        parts.append(f"raw={snapshot.raw_json}")
    else:
        parts.append(f"data={canonical_structured(snapshot)}")
    return "|".join(parts)


def compute_hash(payload: IngestPayload) -> str:
    """SHA-256 of the canonical string, as lowercase hex."""
    return hashlib.sha256(canonical_string(payload).encode("utf-8")).hexdigest()
