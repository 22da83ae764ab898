"""GSuite service account token acquisition."""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

import google.auth.exceptions
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from cio.exceptions import ConfigurationError

if TYPE_CHECKING:
    from cio.config import Settings

logger = logging.getLogger(__name__)

GSUITE_SCOPES = (
    "https://www.googleapis.com/auth/admin.directory.group",
    "https://www.googleapis.com/auth/admin.directory.resource.calendar",
    "https://www.googleapis.com/auth/admin.directory.user",
    "https://www.googleapis.com/auth/apps.groups.settings",
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
)

GSUITE_KEY_FILENAME = "gsuite_key.json"


def _write_encoded_key(encoded: str) -> Path:
    """Materialize GSUITE_KEY_ENCODED as ``gsuite_key.json`` in the temp directory.

    The file is left in place; the next run overwrites it.
    """
    try:
        key = base64.b64decode(encoded)
    except (binascii.Error, ValueError) as exc:
        raise ConfigurationError("GSUITE_KEY_ENCODED is not valid base64") from exc
    path = Path(tempfile.gettempdir()) / GSUITE_KEY_FILENAME
    path.write_bytes(key)
    return path


def _fetch_token(credential_file: str, subject: str) -> str:
    try:
        credentials = service_account.Credentials.from_service_account_file(
            credential_file,
            scopes=list(GSUITE_SCOPES),
            subject=subject,
        )
        credentials.refresh(Request())
    except (OSError, ValueError, google.auth.exceptions.GoogleAuthError) as exc:
        raise ConfigurationError(f"Failed to get GSuite token: {exc}") from exc
    return credentials.token or ""


async def get_gsuite_token(settings: Settings) -> str:
    """Return an access token impersonating GADMIN_SUBJECT.

    Uses GADMIN_CREDENTIAL_FILE, or the base64 key from GSUITE_KEY_ENCODED when
    no file is configured. Raises ConfigurationError on any failure,
    including an empty token.
    """
    settings.require_gsuite()
    credential_file = settings.gadmin_credential_file
    if not credential_file:
        path = await asyncio.to_thread(_write_encoded_key, settings.gsuite_key_encoded)
        credential_file = str(path)

    token = await asyncio.to_thread(_fetch_token, credential_file, settings.gadmin_subject)
    if not token:
        raise ConfigurationError("empty token is not valid")
    logger.debug("Obtained GSuite token for %s", settings.gadmin_subject)
    return token
