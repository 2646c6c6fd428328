# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""In-memory bearer token holder shared by the API clients."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

DEFAULT_TOKEN_LIFETIME = 24 * 60 * 60.0
DEFAULT_REFRESH_THRESHOLD = 5 * 60.0


@dataclass(frozen=True)
class TokenData:
    token: str
    expires_at: float
    refresh_token: str | None = None


class TokenStore:
    """
    Holds the current bearer token and its expiry.

    Persistence is left to the embedding application; this store only answers
    "which token should the next request carry".
    """

    def __init__(self, token: str | None = None, *, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._data: TokenData | None = None
        if token:
            self.set(token)

    def set(self, token: str, expires_in: float | None = None, refresh_token: str | None = None) -> None:
        lifetime = DEFAULT_TOKEN_LIFETIME if expires_in is None else float(expires_in)
        self._data = TokenData(token=token, expires_at=self._clock() + lifetime, refresh_token=refresh_token)

    def get(self) -> str | None:
        if self._data is None:
            return None
        if self._clock() >= self._data.expires_at:
            self.clear()
            return None
        return self._data.token

    @property
    def refresh_token(self) -> str | None:
        return self._data.refresh_token if self._data else None

    def is_expired(self) -> bool:
        if self._data is None:
            return True
        return self._clock() >= self._data.expires_at

    def should_refresh(self, threshold: float = DEFAULT_REFRESH_THRESHOLD) -> bool:
        if self._data is None:
            return False
        return self._clock() >= self._data.expires_at - threshold

    def clear(self) -> None:
        self._data = None
