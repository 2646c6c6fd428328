# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Login and organization-token exchange."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .api import ApiClient
from .errors import ApiError, AuthenticationError

logger = logging.getLogger(__name__)

LOGIN_PATH = "/api/users/login"
TOKEN_PATH = "/api/users/getToken"


@dataclass(frozen=True)
class UserProfile:
    email: str
    name: str
    role: str = "user"


class AuthClient:
    def __init__(self, api: ApiClient):
        self.api = api

    @property
    def is_authenticated(self) -> bool:
        return self.api.token_store.get() is not None

    async def login(self, email: str, password: str) -> UserProfile:
        if not email or not password:
            raise AuthenticationError("Email and password are required")
        try:
            data = await self.api.post_json(LOGIN_PATH, {"email": email, "password": password})
        except ApiError as exc:
            logger.info("Login failed for %s: %s", email, exc.message)
            raise AuthenticationError("Invalid email or password") from exc

        token = data.get("token") if isinstance(data, dict) else None
        if not token:
            raise AuthenticationError("Missing token in response")

        self.api.token_store.set(token, data.get("expiresIn"), data.get("refreshToken"))
        return UserProfile(
            email=email,
            name=data.get("name") or email.split("@")[0],
            role=data.get("role") or "user",
        )

    async def token_for_organization(self, org_name: str) -> str | None:
        """Swap the session token for one scoped to `org_name`; None when the backend refuses."""
        try:
            data = await self.api.post_json(TOKEN_PATH, {"orgName": org_name})
        except ApiError as exc:
            logger.warning("Organization token request failed for %s: %s", org_name, exc.message)
            return None
        token = data.get("token") if isinstance(data, dict) else None
        if not token:
            return None
        self.api.token_store.set(token, data.get("expiresIn"), data.get("refreshToken"))
        return token

    def logout(self) -> None:
        self.api.token_store.clear()
