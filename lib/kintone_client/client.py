from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any, BinaryIO, TypeVar

from .batch import ensure_batch_size
from .config_types import ClientConfig
from .errors import InvalidResponse
from .fields import FieldInfo, parse_fields
from .files import FileData, download, upload
from .pagination import fetch_all_records
from .records import JsonRecordCodec, Record, RecordCodec
from .transport import Transport, decode_json

T = TypeVar("T")


class KintoneClient:
    """Record, form and file API of one kintone application.

    Errors raised by the methods are ApiError (or AuthError), RequestTimeout,
    InvalidResponse, TooManyRecords or NetworkError.
    """

    def __init__(self, cfg: ClientConfig, *, codec: RecordCodec | None = None):
        self._t = Transport(cfg)
        self._codec = codec or JsonRecordCodec()

    def close(self) -> None:
        self._t.close()

    def _decode(self, decode: Callable[[bytes], T], body: bytes) -> T:
        try:
            return decode(body)
        except Exception as e:
            raise InvalidResponse(f"cannot decode records: {e}") from e

    # --- records ---
    def get_record(self, record_id: int) -> Record:
        body = self._t.request("GET", "record", json_body=self._t.app_body(id=str(int(record_id))))
        return self._decode(self._codec.decode_record, body)

    def get_records(self, fields: list[str] | None = None, query: str = "") -> list[Record]:
        """Fetch one page (up to 100 records) matching query.

        Page through bigger result sets with "limit"/"offset" in the query,
        or use get_all_records.
        """
        req: dict[str, Any] = {"query": query}
        if fields is not None:
            req["fields"] = list(fields)
        body = self._t.request("GET", "records", json_body=self._t.app_body(**req))
        return self._decode(self._codec.decode_records, body)

    def get_all_records(self, fields: list[str] | None = None) -> list[Record]:
        return fetch_all_records(self, fields)

    def add_record(self, record: Record) -> str:
        body = self._t.request("POST", "record", json_body=self._t.app_body(record=record))
        record_id = decode_json(body).get("id")
        if record_id is None:
            raise InvalidResponse("add record response has no 'id'")
        return str(record_id)

    def add_records(self, records: list[Record]) -> list[str]:
        ensure_batch_size(records)
        body = self._t.request("POST", "records", json_body=self._t.app_body(records=list(records)))
        ids = decode_json(body).get("ids")
        if not isinstance(ids, list):
            raise InvalidResponse("add records response has no 'ids'")
        return [str(i) for i in ids]

    def update_record(self, record_id: int, record: Record) -> None:
        self._t.request("PUT", "record", json_body=self._t.app_body(id=str(int(record_id)), record=record))

    def update_records(self, records: Mapping[int, Record]) -> None:
        ensure_batch_size(records)
        items = [{"id": str(int(record_id)), "record": record} for record_id, record in records.items()]
        self._t.request("PUT", "records", json_body=self._t.app_body(records=items))

    def delete_records(self, ids: Iterable[int]) -> None:
        id_list = [str(int(i)) for i in ids]
        ensure_batch_size(id_list)
        self._t.request("DELETE", "records", json_body=self._t.app_body(ids=id_list))

    # --- form ---
    def fields(self) -> dict[str, FieldInfo]:
        body = self._t.request("GET", "form", json_body=self._t.app_body())
        return parse_fields(decode_json(body))

    # --- files ---
    def upload(self, file_name: str, content_type: str, data: BinaryIO | bytes) -> str:
        return upload(self._t, file_name, content_type, data)

    def download(self, file_key: str) -> FileData:
        return download(self._t, file_key)
