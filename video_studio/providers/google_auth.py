"""Service-account OAuth for Vertex AI.

A self-signed RS256 assertion is exchanged for a bearer token at Google's
token endpoint. The token is cached in a `TokenCache` owned by the adapter and
replaced once it gets within `refresh_margin_seconds` of expiry. The cache has
no lock: two callers racing on an expired token both fetch one, and the last
write wins.
"""

import json
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import httpx
from jose import jwt

from video_studio.core.errors import ProviderError

logger = logging.getLogger(__name__)

TOKEN_URI = "https://oauth2.googleapis.com/token"
CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"
JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"
ASSERTION_LIFETIME_SECONDS = 3600
TOKEN_REFRESH_MARGIN_SECONDS = 300


@dataclass(slots=True, frozen=True)
class ServiceAccountCredentials:
    client_email: str
    private_key: str
    private_key_id: str
    project_id: str
    token_uri: str = TOKEN_URI

    @classmethod
    def from_file(cls, path: str) -> "ServiceAccountCredentials":
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise ProviderError(f"Failed to read service account credentials: {exc}") from exc
        try:
            return cls(
                client_email=data["client_email"],
                private_key=data["private_key"],
                private_key_id=data.get("private_key_id", ""),
                project_id=data.get("project_id", ""),
                token_uri=data.get("token_uri") or TOKEN_URI,
            )
        except KeyError as exc:
            raise ProviderError(f"Service account credentials missing field {exc.args[0]}") from exc


def build_assertion(credentials: ServiceAccountCredentials, now: int) -> str:
    claims = {
        "iss": credentials.client_email,
        "sub": credentials.client_email,
        "aud": TOKEN_URI,
        "iat": now,
        "exp": now + ASSERTION_LIFETIME_SECONDS,
        "scope": CLOUD_PLATFORM_SCOPE,
    }
    headers = {"kid": credentials.private_key_id} if credentials.private_key_id else None
    return jwt.encode(claims, credentials.private_key, algorithm="RS256", headers=headers)


@dataclass(slots=True)
class CachedToken:
    access_token: str
    expires_at: float


class TokenCache:
    def __init__(
        self,
        refresh_margin_seconds: float = TOKEN_REFRESH_MARGIN_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.refresh_margin_seconds = refresh_margin_seconds
        self.clock = clock
        self._token: CachedToken | None = None

    def get(self) -> str | None:
        token = self._token
        if token and token.expires_at > self.clock() + self.refresh_margin_seconds:
            return token.access_token
        return None

    def store(self, access_token: str, expires_in: float) -> None:
        self._token = CachedToken(access_token=access_token, expires_at=self.clock() + expires_in)

    def clear(self) -> None:
        self._token = None


class ServiceAccountTokenSource:
    def __init__(
        self,
        credentials_loader: Callable[[], ServiceAccountCredentials],
        http_client: httpx.Client,
        cache: TokenCache | None = None,
    ) -> None:
        self._credentials_loader = credentials_loader
        self._http = http_client
        self.cache = cache or TokenCache()

    def access_token(self) -> str:
        cached = self.cache.get()
        if cached:
            return cached

        credentials = self._credentials_loader()
        assertion = build_assertion(credentials, int(self.cache.clock()))
        try:
            response = self._http.post(
                credentials.token_uri,
                data={"grant_type": JWT_BEARER_GRANT, "assertion": assertion},
            )
        except httpx.HTTPError as exc:
            raise ProviderError(f"Failed to get access token: {exc}") from exc
        if response.is_error:
            raise ProviderError(
                f"Failed to get access token: {response.status_code} {response.text}",
                provider_status=response.status_code,
            )

        payload = response.json()
        self.cache.store(payload["access_token"], float(payload.get("expires_in", ASSERTION_LIFETIME_SECONDS)))
        logger.info("veo_token_refreshed", extra={"client_email": credentials.client_email})
        return payload["access_token"]
