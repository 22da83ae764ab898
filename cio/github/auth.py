"""GitHub authentication: personal token and GitHub App installation tokens."""

from __future__ import annotations

import base64
import binascii
import logging
import time
from datetime import datetime
from typing import TYPE_CHECKING

import hishel
import httpx
import jwt
from cryptography.hazmat.primitives.serialization import load_pem_private_key

from cio.exceptions import ConfigurationError
from cio.github.client import raise_for_github_status

if TYPE_CHECKING:
    from collections.abc import Generator

    from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes

    from cio.config import Settings

logger = logging.getLogger(__name__)

USER_AGENT = "cio/0.1.0"
GITHUB_ACCEPT = "application/vnd.github+json"

APP_JWT_BACKDATE_SECONDS = 60
APP_JWT_LIFETIME_SECONDS = 600
TOKEN_REFRESH_MARGIN_SECONDS = 60


def load_private_key(encoded: str) -> PrivateKeyTypes:
    """Decode a base64-wrapped PEM private key.

    Raises ConfigurationError when either layer is malformed.
    """
    try:
        pem = base64.b64decode(encoded, validate=False)
        return load_pem_private_key(pem, password=None)
    except (binascii.Error, ValueError, TypeError) as exc:
        raise ConfigurationError("GH_PRIVATE_KEY is not a base64 encoded PEM private key") from exc


def create_app_jwt(app_id: int, private_key: PrivateKeyTypes, now: int | None = None) -> str:
    """Create the RS256 JWT a GitHub App uses to authenticate as itself."""
    issued = int(time.time()) if now is None else now
    payload = {
        "iat": issued - APP_JWT_BACKDATE_SECONDS,
        "exp": issued + APP_JWT_LIFETIME_SECONDS,
        "iss": str(app_id),
    }
    return jwt.encode(payload, private_key, algorithm="RS256")  # type: ignore[arg-type]


def _parse_expiry(value: str) -> float:
    return datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp()


class InstallationTokenAuth(httpx.Auth):
    """httpx auth flow that mints and refreshes installation access tokens.

    Safe under asyncio's cooperative model for one client; do not share
    across OS threads.
    """

    requires_response_body = True

    def __init__(
        self,
        app_id: int,
        installation_id: int,
        private_key: PrivateKeyTypes,
        api_url: str = "https://api.github.com",
    ) -> None:
        self.app_id = app_id
        self.installation_id = installation_id
        self._private_key = private_key
        self._api_url = api_url.rstrip("/")
        self._token: str | None = None
        self._expires_at = 0.0

    def _token_is_fresh(self) -> bool:
        return self._token is not None and time.time() < (
            self._expires_at - TOKEN_REFRESH_MARGIN_SECONDS
        )

    def _build_token_request(self) -> httpx.Request:
        app_jwt = create_app_jwt(self.app_id, self._private_key)
        return httpx.Request(
            "POST",
            f"{self._api_url}/app/installations/{self.installation_id}/access_tokens",
            headers={
                "Authorization": f"Bearer {app_jwt}",
                "Accept": GITHUB_ACCEPT,
                "User-Agent": USER_AGENT,
            },
        )

    def _store_token(self, response: httpx.Response) -> None:
        raise_for_github_status(response)
        data = response.json()
        self._token = data["token"]
        self._expires_at = _parse_expiry(data["expires_at"])
        logger.debug(
            "Minted installation token for installation %d (expires %s)",
            self.installation_id,
            data["expires_at"],
        )

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        if not self._token_is_fresh():
            token_response = yield self._build_token_request()
            self._store_token(token_response)
        request.headers["Authorization"] = f"token {self._token}"
        yield request


def _cached_client(
    settings: Settings,
    *,
    headers: dict[str, str] | None = None,
    auth: httpx.Auth | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Build an API client with an on-disk response cache under ``$HOME/.cache/github``.

    Cached responses are always revalidated with their ETag, so a read right
    after a write never sees the previous blob hash.
    """
    cache_dir = settings.github_cache_dir
    cache_dir.mkdir(parents=True, exist_ok=True)
    return hishel.AsyncCacheClient(
        storage=hishel.AsyncFileStorage(base_path=cache_dir),
        controller=hishel.Controller(always_revalidate=True),
        transport=transport,
        base_url=settings.github_api_url,
        headers={"Accept": GITHUB_ACCEPT, "User-Agent": USER_AGENT, **(headers or {})},
        auth=auth,
        timeout=settings.http_timeout,
        follow_redirects=True,
    )


def authenticate_github(settings: Settings) -> httpx.AsyncClient:
    """Return a client authenticated with the personal token from GITHUB_TOKEN."""
    settings.require_token_auth()
    return _cached_client(
        settings,
        headers={"Authorization": f"token {settings.github_token}"},
    )


def authenticate_github_jwt(settings: Settings) -> httpx.AsyncClient:
    """Return a client authenticated as a GitHub App installation.

    Reads GH_APP_ID, GH_INSTALLATION_ID and GH_PRIVATE_KEY (base64 of a PEM key).
    """
    app_id, installation_id, encoded_key = settings.require_app_auth()
    auth = InstallationTokenAuth(
        app_id=app_id,
        installation_id=installation_id,
        private_key=load_private_key(encoded_key),
        api_url=settings.github_api_url,
    )
    return _cached_client(settings, auth=auth)


def github_org(settings: Settings) -> str:
    """Return the configured organization login."""
    settings.require_org()
    return settings.github_org
