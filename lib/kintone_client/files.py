from __future__ import annotations

import io
import logging
import queue
import tempfile
import threading
from dataclasses import dataclass
from typing import Any, BinaryIO

import httpx

from .errors import InvalidResponse, NetworkError
from .transport import Transport, decode_json, parse_response, raise_for_app_error, read_body

log = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
PIPE_DEPTH = 16


@dataclass
class FileData:
    content_type: str
    reader: BinaryIO

    def read(self, size: int = -1) -> bytes:
        return self.reader.read(size)

    def close(self) -> None:
        self.reader.close()

    def __enter__(self) -> FileData:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


class _Closed:
    def __init__(self, error: BaseException | None):
        self.error = error


class ResponsePipe(io.RawIOBase):
    """Bounded in-process pipe between a relay thread and a reader.

    The writing side blocks while the pipe is full and gives up once the
    reader closes. Reads block until a chunk, end of stream or the relay's
    error arrives; the error is raised on every read after buffered data.
    """

    def __init__(self, depth: int = PIPE_DEPTH):
        super().__init__()
        self._chunks: queue.Queue = queue.Queue(maxsize=depth)
        self._pending = b""
        self._finished = False
        self._error: BaseException | None = None
        self._reader_closed = threading.Event()

    # writer side

    def _put(self, item: Any) -> bool:
        while not self._reader_closed.is_set():
            try:
                self._chunks.put(item, timeout=0.1)
                return True
            except queue.Full:
                continue
        return False

    def write_chunk(self, chunk: bytes) -> bool:
        """False once the reader is gone."""
        return self._put(chunk)

    def close_writer(self, error: BaseException | None = None) -> None:
        self._put(_Closed(error))

    # reader side

    def readable(self) -> bool:
        return True

    def readinto(self, buffer: Any) -> int:
        if self.closed:
            raise ValueError("I/O operation on closed pipe")
        while not self._pending:
            if self._finished:
                if self._error is not None:
                    raise self._error
                return 0
            item = self._chunks.get()
            if isinstance(item, _Closed):
                self._finished = True
                self._error = item.error
            else:
                self._pending = item
        n = min(len(buffer), len(self._pending))
        buffer[:n] = self._pending[:n]
        self._pending = self._pending[n:]
        return n

    def close(self) -> None:
        self._reader_closed.set()
        super().close()


def _relay(response: httpx.Response, pipe: ResponsePipe) -> None:
    error: BaseException | None = None
    try:
        # no chunk_size: bytes already received must not sit in a chunker
        for chunk in response.iter_bytes():
            if chunk and not pipe.write_chunk(chunk):
                log.debug("download reader closed early, dropping the rest of the body")
                break
    except Exception as e:
        error = NetworkError(str(e) or type(e).__name__)
        error.__cause__ = e
    finally:
        response.close()
        pipe.close_writer(error)


def download(transport: Transport, file_key: str) -> FileData:
    request = transport.build_request("GET", "file", json_body={"fileKey": file_key})
    response = transport.execute(request)
    if response.status_code != httpx.codes.OK:
        raise_for_app_error(response, read_body(response))

    pipe = ResponsePipe()
    threading.Thread(target=_relay, args=(response, pipe), name="kintone-download", daemon=True).start()
    return FileData(
        content_type=response.headers.get("Content-Type", ""),
        reader=io.BufferedReader(pipe, CHUNK_SIZE),
    )


def spool_multipart(
        out: BinaryIO,
        url: str,
        file_name: str,
        content_type: str,
        data: BinaryIO | bytes,
) -> str:
    """Write the multipart body for data into out; return its Content-Type."""
    form = httpx.Request("POST", url, files={"file": (file_name, data, content_type)})
    for chunk in form.stream:
        out.write(chunk)
    return form.headers["Content-Type"]


def upload(transport: Transport, file_name: str, content_type: str, data: BinaryIO | bytes) -> str:
    """Upload a file and return the key the service assigned to it.

    data may be a single-pass stream; it is spooled into a temporary file
    so the request body has a known length. The file is removed on every
    exit path.
    """
    with tempfile.TemporaryFile(prefix="kintone-upload-") as body:
        form_type = spool_multipart(body, transport.url_for("file"), file_name, content_type, data)
        size = body.tell()
        body.flush()
        body.seek(0)
        log.debug("uploading %s (%d bytes multipart)", file_name, size)

        request = transport.build_request(
            "POST",
            "file",
            content=body,
            content_type=form_type,
            headers={"Content-Length": str(size)},
        )
        payload = parse_response(transport.execute(request))

    key = decode_json(payload).get("fileKey")
    if not isinstance(key, str) or not key:
        raise InvalidResponse("upload response has no 'fileKey'")
    return key
