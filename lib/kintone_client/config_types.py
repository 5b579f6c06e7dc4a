from __future__ import annotations

import base64
from dataclasses import dataclass, field, replace

import httpx

DEFAULT_TIMEOUT_S = 600.0


def make_token(user: str, password: str) -> str:
    return base64.b64encode(f"{user}:{password}".encode("utf-8")).decode("ascii")


@dataclass(frozen=True)
class ClientConfig:
    domain: str
    user: str = ""
    password: str = ""
    app_id: int = 0
    transport: httpx.BaseTransport | None = None
    timeout_s: float | None = DEFAULT_TIMEOUT_S
    basic_auth_user: str | None = None
    basic_auth_password: str | None = None
    client_version: str | None = None
    token: str = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        # Frozen: credentials cannot change, so the token is computed once here.
        object.__setattr__(self, "token", make_token(self.user, self.password))

    @property
    def basic_auth(self) -> bool:
        return bool(self.basic_auth_user)

    @property
    def effective_timeout(self) -> float:
        if not self.timeout_s or self.timeout_s <= 0:
            return DEFAULT_TIMEOUT_S
        return float(self.timeout_s)

    def with_basic_auth(self, user: str, password: str) -> ClientConfig:
        return replace(self, basic_auth_user=user, basic_auth_password=password)
