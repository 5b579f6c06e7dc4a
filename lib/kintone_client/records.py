from __future__ import annotations

import json
from typing import Any, Protocol

Record = dict[str, Any]


class RecordCodec(Protocol):
    def decode_record(self, data: bytes) -> Record:
        ...

    def decode_records(self, data: bytes) -> list[Record]:
        ...


def _load_object(data: bytes) -> dict[str, Any]:
    payload = json.loads(data)
    if not isinstance(payload, dict):
        raise ValueError("record payload is not a JSON object")
    return payload


class JsonRecordCodec:
    """Keeps records in their wire form: field code -> {"type": ..., "value": ...}."""

    def decode_record(self, data: bytes) -> Record:
        record = _load_object(data).get("record")
        if not isinstance(record, dict):
            raise ValueError("payload has no 'record' object")
        return record

    def decode_records(self, data: bytes) -> list[Record]:
        records = _load_object(data).get("records")
        if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
            raise ValueError("payload has no 'records' list")
        return records
