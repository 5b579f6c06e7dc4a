from __future__ import annotations

import json
import logging
import queue
import threading
from typing import Any, Protocol, runtime_checkable

import httpx

from .config_types import ClientConfig
from .errors import ApiError, AuthError, InvalidResponse, NetworkError, RequestTimeout

log = logging.getLogger(__name__)

CLIENT_VERSION = "0.1.0"
JSON_CONTENT_TYPE = "application/json"
AUTH_HEADER = "X-Cybozu-Authorization"


@runtime_checkable
class CancellableTransport(Protocol):
    """Transport that can abort an in-flight request."""

    def cancel_request(self, request: httpx.Request) -> None:
        ...


def is_json(content_type: str | None) -> bool:
    media_type = (content_type or "").split(";", 1)[0].strip().lower()
    return media_type == JSON_CONTENT_TYPE


def read_body(resp: httpx.Response) -> bytes:
    try:
        return resp.read()
    except httpx.TimeoutException as e:
        raise RequestTimeout() from e
    except httpx.HTTPError as e:
        raise NetworkError(str(e)) from e
    finally:
        resp.close()


def raise_for_app_error(resp: httpx.Response, body: bytes) -> None:
    if resp.status_code == httpx.codes.OK:
        return

    http_status = f"{resp.status_code} {resp.reason_phrase}".strip()
    error_cls = AuthError if resp.status_code in (401, 403) else ApiError
    details = body[:1000].decode("utf-8", errors="replace") if body else None

    if not is_json(resp.headers.get("Content-Type")):
        raise error_cls(resp.status_code, http_status, details=details)

    # Best effort: an undecodable JSON body leaves the service fields empty.
    data: Any = None
    try:
        data = json.loads(body)
    except ValueError:
        pass
    if not isinstance(data, dict):
        data = {}
    errors = data.get("errors")
    raise error_cls(
        resp.status_code,
        http_status,
        message=str(data.get("message") or ""),
        error_id=str(data.get("id") or ""),
        code=str(data.get("code") or ""),
        errors=errors if isinstance(errors, dict) else None,
        details=details,
    )


def parse_response(resp: httpx.Response) -> bytes:
    """Read and close the body; return it on 200, raise ApiError otherwise."""
    body = read_body(resp)
    raise_for_app_error(resp, body)
    return body


def decode_json(body: bytes) -> dict[str, Any]:
    try:
        data = json.loads(body)
    except ValueError as e:
        raise InvalidResponse("response body is not valid JSON") from e
    if not isinstance(data, dict):
        raise InvalidResponse("response body is not a JSON object")
    return data


def _drain(done: queue.Queue) -> None:
    resp, _ = done.get()
    if resp is not None:
        resp.close()
        log.debug("closed late response for abandoned request")


class Transport:
    def __init__(self, cfg: ClientConfig):
        self._cfg = cfg
        headers = {
            "User-Agent": f"kintone-client/{cfg.client_version or CLIENT_VERSION}",
            AUTH_HEADER: cfg.token,
        }
        auth = None
        if cfg.basic_auth:
            auth = httpx.BasicAuth(cfg.basic_auth_user or "", cfg.basic_auth_password or "")

        self._client = httpx.Client(
            transport=cfg.transport,
            timeout=cfg.effective_timeout,
            headers=headers,
            auth=auth,
        )

    @property
    def config(self) -> ClientConfig:
        return self._cfg

    def close(self) -> None:
        self._client.close()

    def url_for(self, api: str) -> str:
        return f"https://{self._cfg.domain}/k/v1/{api}.json"

    def app_body(self, **extra: Any) -> dict[str, Any]:
        # The service wants large integers quoted.
        body: dict[str, Any] = {"app": str(self._cfg.app_id)}
        body.update(extra)
        return body

    def build_request(
            self,
            method: str,
            api: str,
            *,
            json_body: Any | None = None,
            content: Any | None = None,
            content_type: str = JSON_CONTENT_TYPE,
            headers: dict[str, str] | None = None,
    ) -> httpx.Request:
        if json_body is not None:
            content = json.dumps(json_body, ensure_ascii=False).encode("utf-8")
        req_headers = {"Content-Type": content_type}
        if headers:
            req_headers.update(headers)
        try:
            return self._client.build_request(method, self.url_for(api), content=content, headers=req_headers)
        except httpx.InvalidURL as e:
            raise NetworkError(str(e)) from e

    def execute(self, request: httpx.Request) -> httpx.Response:
        """Send request, giving up after the configured timeout.

        The send runs in a worker thread that hands its (response, error)
        pair to a single-slot queue. If the deadline passes first the request
        is cancelled when the transport supports it, and a drain thread
        closes whatever response eventually shows up. The caller gets
        RequestTimeout without waiting for the worker.
        """
        timeout_s = self._cfg.effective_timeout
        done: queue.Queue = queue.Queue(maxsize=1)

        def _send() -> None:
            try:
                resp = self._client.send(request, stream=True)
            except Exception as e:
                done.put((None, e))
                return
            done.put((resp, None))

        log.debug("%s %s", request.method, request.url)
        threading.Thread(target=_send, name="kintone-send", daemon=True).start()
        try:
            resp, error = done.get(timeout=timeout_s)
        except queue.Empty:
            cancel_error = self._abandon(request, done)
            raise RequestTimeout(timeout_s) from cancel_error

        if error is not None:
            if isinstance(error, httpx.TimeoutException):
                raise RequestTimeout(timeout_s) from error
            if isinstance(error, httpx.RequestError):
                raise NetworkError(str(error)) from error
            raise error
        log.debug("%s %s -> %s", request.method, request.url, resp.status_code)
        return resp

    def _abandon(self, request: httpx.Request, done: queue.Queue) -> Exception | None:
        log.warning("%s %s timed out after %gs", request.method, request.url, self._cfg.effective_timeout)
        transport = self._cfg.transport
        threading.Thread(target=_drain, args=(done,), name="kintone-drain", daemon=True).start()
        if isinstance(transport, CancellableTransport):
            try:
                transport.cancel_request(request)
            except Exception as e:
                log.warning("cancelling %s %s failed: %s", request.method, request.url, e)
                return e
        return None

    def request(
            self,
            method: str,
            api: str,
            *,
            json_body: Any | None = None,
    ) -> bytes:
        req = self.build_request(method, api, json_body=json_body)
        return parse_response(self.execute(req))
