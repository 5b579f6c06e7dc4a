from __future__ import annotations

import json
import re

import httpx
import pytest

from kintone_client import ClientConfig, InvalidResponse, KintoneClient, TooManyRecords


class _FakeService:
    """Records every request and answers from a route table."""

    def __init__(self, routes: dict | None = None) -> None:
        self.routes = routes or {}
        self.calls: list[tuple[str, str, dict]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        api = request.url.path.rsplit("/", 1)[-1].removesuffix(".json")
        body = json.loads(request.content) if request.content else {}
        self.calls.append((request.method, api, body))
        answer = self.routes[(request.method, api)]
        if callable(answer):
            answer = answer(body)
        return httpx.Response(200, json=answer)


def _make_client(service: _FakeService) -> KintoneClient:
    cfg = ClientConfig(
        domain="example.cybozu.com",
        user="alice",
        password="s3cret",
        app_id=42,
        transport=httpx.MockTransport(service),
    )
    return KintoneClient(cfg)


def _record(n: int) -> dict:
    return {"n": {"type": "NUMBER", "value": str(n)}}


def test_get_record_sends_string_ids() -> None:
    service = _FakeService({("GET", "record"): {"record": _record(7)}})
    client = _make_client(service)

    assert client.get_record(7) == _record(7)
    assert service.calls == [("GET", "record", {"app": "42", "id": "7"})]


def test_get_records_passes_fields_and_query() -> None:
    service = _FakeService({("GET", "records"): {"records": [_record(1), _record(2)]}})
    client = _make_client(service)

    recs = client.get_records(["n"], "n > 0 order by n asc")

    assert recs == [_record(1), _record(2)]
    assert service.calls[0][2] == {"app": "42", "query": "n > 0 order by n asc", "fields": ["n"]}


def test_get_record_with_bad_payload_is_invalid_response() -> None:
    service = _FakeService({("GET", "record"): {"unexpected": True}})
    client = _make_client(service)

    with pytest.raises(InvalidResponse):
        client.get_record(1)


def test_get_all_records_pages_until_short_page() -> None:
    sizes = iter([100, 100, 37])
    offsets: list[int] = []
    queries: list[str] = []

    def page(body: dict) -> dict:
        query = body["query"]
        queries.append(query)
        match = re.search(r"offset (\d+)", query)
        start = int(match.group(1)) if match else 0
        offsets.append(start)
        return {"records": [_record(start + i) for i in range(next(sizes))]}

    service = _FakeService({("GET", "records"): page})
    client = _make_client(service)

    recs = client.get_all_records()

    assert len(recs) == 237
    assert recs == [_record(i) for i in range(237)]
    assert offsets == [0, 100, 200]
    assert queries[0] == "limit 100"
    assert queries[1:] == ["limit 100 offset 100", "limit 100 offset 200"]


def test_get_all_records_with_empty_last_page() -> None:
    sizes = iter([100, 0])
    service = _FakeService(
        {("GET", "records"): lambda body: {"records": [_record(i) for i in range(next(sizes))]}}
    )
    client = _make_client(service)

    assert len(client.get_all_records(["n"])) == 100
    assert len(service.calls) == 2


def test_get_all_records_aborts_on_page_error() -> None:
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        if calls["n"] == 1:
            return httpx.Response(200, json={"records": [_record(i) for i in range(100)]})
        return httpx.Response(200, content=b"garbage", headers={"Content-Type": "application/json"})

    client = KintoneClient(ClientConfig(domain="example.cybozu.com", transport=httpx.MockTransport(handler)))

    with pytest.raises(InvalidResponse):
        client.get_all_records()
    assert calls["n"] == 2


def test_add_record_returns_id() -> None:
    service = _FakeService({("POST", "record"): {"id": "101", "revision": "1"}})
    client = _make_client(service)

    assert client.add_record(_record(1)) == "101"
    assert service.calls[0] == ("POST", "record", {"app": "42", "record": _record(1)})


def test_add_records_returns_ids() -> None:
    service = _FakeService({("POST", "records"): {"ids": ["1", "2"], "revisions": ["1", "1"]}})
    client = _make_client(service)

    assert client.add_records([_record(1), _record(2)]) == ["1", "2"]


def test_add_records_without_ids_is_invalid_response() -> None:
    service = _FakeService({("POST", "records"): {}})
    client = _make_client(service)

    with pytest.raises(InvalidResponse):
        client.add_records([_record(1)])


def test_update_record_and_records_bodies() -> None:
    service = _FakeService({("PUT", "record"): {"revision": "2"}, ("PUT", "records"): {"records": []}})
    client = _make_client(service)

    client.update_record(5, _record(9))
    client.update_records({5: _record(9), 6: _record(10)})

    assert service.calls[0][2] == {"app": "42", "id": "5", "record": _record(9)}
    assert service.calls[1][2] == {
        "app": "42",
        "records": [{"id": "5", "record": _record(9)}, {"id": "6", "record": _record(10)}],
    }


def test_delete_records_sends_string_ids() -> None:
    service = _FakeService({("DELETE", "records"): {}})
    client = _make_client(service)

    client.delete_records([3, 4])

    assert service.calls == [("DELETE", "records", {"app": "42", "ids": ["3", "4"]})]


@pytest.mark.parametrize("count", [101, 150, 1000])
def test_bulk_operations_over_limit_send_nothing(count: int) -> None:
    service = _FakeService()
    client = _make_client(service)

    with pytest.raises(TooManyRecords) as exc:
        client.add_records([_record(i) for i in range(count)])
    assert exc.value.count == count
    with pytest.raises(TooManyRecords):
        client.update_records({i: _record(i) for i in range(count)})
    with pytest.raises(TooManyRecords):
        client.delete_records(range(count))

    assert service.calls == []


def test_bulk_operations_at_limit_are_sent() -> None:
    service = _FakeService({("DELETE", "records"): {}})
    client = _make_client(service)

    client.delete_records(range(100))

    assert len(service.calls[0][2]["ids"]) == 100


def test_fields_maps_codes_to_field_info() -> None:
    service = _FakeService(
        {
            ("GET", "form"): {
                "properties": [
                    {"label": "Name", "code": "name", "type": "SINGLE_LINE_TEXT", "required": "true", "unique": "false"},
                    {"label": "Qty", "code": "qty", "type": "NUMBER", "digit": "true", "maxValue": "10"},
                ]
            }
        }
    )
    client = _make_client(service)

    fields = client.fields()

    assert set(fields) == {"name", "qty"}
    assert fields["name"].required is True
    assert fields["name"].unique is False
    assert fields["qty"].digit is True
    assert fields["qty"].max_value == "10"
    assert service.calls[0] == ("GET", "form", {"app": "42"})
