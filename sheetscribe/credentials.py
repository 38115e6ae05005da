"""
Service-account credential provider.

Wraps google-auth service-account credentials: a JWT assertion signed with the
service-account private key is exchanged at the token endpoint for a bearer
token scoped to the cloud platform.  The token is cached on the provider and
only refreshed once it is missing or expired.

Callers that only want to know whether access is available use
:meth:`CredentialProvider.has_access`, which never raises.  Network
components use :meth:`CredentialProvider.require_token`, which raises
:class:`AuthError` so that the current call chain stops.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Sequence

import google.auth.transport.requests
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account

from .config import CLOUD_PLATFORM_SCOPE, Settings

logger = logging.getLogger(__name__)


class AuthError(RuntimeError):
    """Raised when no access token can be obtained."""


class CredentialProvider:
    def __init__(
        self,
        settings: Settings,
        *,
        scopes: Sequence[str] = (CLOUD_PLATFORM_SCOPE,),
        request: Optional[google.auth.transport.requests.Request] = None,
    ) -> None:
        self._settings = settings
        self._scopes = list(scopes)
        self._request = request
        self._credentials: Optional[service_account.Credentials] = None
        self._last_error: Optional[str] = None

    @property
    def credentials(self) -> service_account.Credentials:
        """The underlying google-auth credentials, created on first use."""
        if self._credentials is None:
            info = {
                "type": "service_account",
                "project_id": self._settings.project_id,
                "private_key": self._settings.private_key,
                "client_email": self._settings.client_email,
                "token_uri": self._settings.token_url,
            }
            self._credentials = service_account.Credentials.from_service_account_info(
                info, scopes=self._scopes
            )
        return self._credentials

    def load(self) -> bool:
        """Parse the service-account key without contacting the token endpoint."""
        try:
            self.credentials
        except (GoogleAuthError, ValueError) as exc:
            self._last_error = f"{type(exc).__name__}: {exc}"
            logger.error("Could not load service-account key: %s", self._last_error)
            return False
        return True

    def has_access(self) -> bool:
        """Return ``True`` if a valid token is cached or could be fetched."""
        try:
            credentials = self.credentials
            if not credentials.valid:
                logger.info("Refreshing access token for %s", self._settings.client_email)
                credentials.refresh(self._request or google.auth.transport.requests.Request())
        except (GoogleAuthError, ValueError) as exc:
            self._last_error = f"{type(exc).__name__}: {exc}"
            logger.error("Token exchange failed: %s", self._last_error)
            return False
        self._last_error = None
        return True

    def get_access_token(self) -> Optional[str]:
        """Return the cached or freshly fetched token, or ``None`` on failure."""
        if not self.has_access():
            return None
        return self.credentials.token

    def require_token(self) -> str:
        token = self.get_access_token()
        if not token:
            raise AuthError(self._last_error or "No access token available")
        return token

    def auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.require_token()}"}

    def get_last_error(self) -> Optional[str]:
        return self._last_error

    def reset(self) -> None:
        """Drop the cached credentials and token."""
        self._credentials = None
        self._last_error = None
        logger.info("Cleared cached token for %s", self._settings.client_email)
