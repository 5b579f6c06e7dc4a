from .client import KintoneClient
from .config_types import ClientConfig
from .errors import (
    ApiError,
    AuthError,
    InvalidResponse,
    KintoneClientError,
    NetworkError,
    RequestTimeout,
    TooManyRecords,
)
from .fields import FieldInfo
from .files import FileData

__all__ = [
    "KintoneClient",
    "ClientConfig",
    "ApiError",
    "AuthError",
    "InvalidResponse",
    "KintoneClientError",
    "NetworkError",
    "RequestTimeout",
    "TooManyRecords",
    "FieldInfo",
    "FileData",
]
