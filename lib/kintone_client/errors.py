from __future__ import annotations


class KintoneClientError(Exception):
    """Base client error."""


class NetworkError(KintoneClientError):
    """Transport/network layer error."""


class RequestTimeout(KintoneClientError):
    def __init__(self, timeout_s: float | None = None):
        super().__init__("Timeout" if timeout_s is None else f"Timeout after {timeout_s:g}s")
        self.timeout_s = timeout_s


class InvalidResponse(KintoneClientError):
    """A 200 response whose body does not have the expected shape."""


class TooManyRecords(KintoneClientError):
    def __init__(self, count: int, limit: int):
        super().__init__(f"Too many records: {count} > {limit}")
        self.count = count
        self.limit = limit


class ApiError(KintoneClientError):
    def __init__(
            self,
            status_code: int,
            http_status: str,
            *,
            message: str = "",
            error_id: str = "",
            code: str = "",
            errors: dict | None = None,
            details: str | None = None,
    ):
        self.status_code = status_code
        self.http_status = http_status
        self.message = message
        self.error_id = error_id
        self.code = code
        self.errors = errors
        self.details = details
        super().__init__(str(self))

    def __str__(self) -> str:
        if not self.message:
            return f"HTTP error: {self.http_status}"
        return f"AppError: {self.status_code} [{self.code}] {self.message} ({self.error_id})"


class AuthError(ApiError):
    """Auth-related API error."""
