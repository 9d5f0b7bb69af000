"""
Core Module - Credential Resolution.

============================================================
PURPOSE
============================================================
Two credential shapes converge on the handlers:

1. Device key  - static shared secret in the x-api-key header
2. Bearer token - verified by the external identity service

The resolver turns request headers into a tagged credential
(DeviceCredential or UserCredential) consumed uniformly
downstream, or raises AuthError.

============================================================
"""

import hmac
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Mapping, Optional

import httpx

from .exceptions import AuthError, DependencyError


logger = logging.getLogger(__name__)

API_KEY_HEADER = "x-api-key"
AUTHORIZATION_HEADER = "authorization"
BEARER_PREFIX = "Bearer "

MISSING_CREDENTIAL_MESSAGE = "Authentication required. Provide Authorization header or x-api-key"
INVALID_API_KEY_MESSAGE = "Invalid API key"
INVALID_TOKEN_MESSAGE = "Invalid or expired token"


# ============================================================
# CREDENTIALS
# ============================================================

class Credential(ABC):
    """An authenticated caller."""

    @property
    @abstractmethod
    def source(self) -> str:
        """Label recorded in logs and audit metadata."""

    @property
    def subject_id(self) -> Optional[str]:
        return None


@dataclass(frozen=True)
class DeviceCredential(Credential):
    """Caller presented the shared device key."""

    @property
    def source(self) -> str:
        return "api_key"


@dataclass(frozen=True)
class UserCredential(Credential):
    """Caller presented a bearer token the identity service accepted."""

    user_id: str

    @property
    def source(self) -> str:
        return f"user:{self.user_id}"

    @property
    def subject_id(self) -> Optional[str]:
        return self.user_id


# ============================================================
# IDENTITY SERVICE CLIENT
# ============================================================

class IdentityClient:
    """
    Verifies bearer tokens against the identity service.

    GET {base_url}/auth/v1/user with the token; a 200 response
    whose body carries an "id" names the subject.
    """

    USER_PATH = "/auth/v1/user"

    def __init__(
        self,
        base_url: Optional[str],
        api_key: Optional[str] = None,
        timeout_seconds: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/") if base_url else None
        self._api_key = api_key
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    def verify_token(self, token: str) -> Optional[str]:
        """
        Resolve a bearer token to its subject id.

        Returns:
            Subject id, or None when the token is rejected

        Raises:
            DependencyError: identity service unreachable or timed out
        """
        if not token:
            return None
        if not self._base_url:
            logger.warning("Identity service not configured, rejecting bearer token")
            return None

        headers = {"Authorization": f"{BEARER_PREFIX}{token}"}
        if self._api_key:
            headers["apikey"] = self._api_key

        try:
            with httpx.Client(
                timeout=self._timeout_seconds,
                transport=self._transport,
            ) as client:
                response = client.get(f"{self._base_url}{self.USER_PATH}", headers=headers)
        except httpx.TimeoutException as e:
            logger.error("Identity service request timed out")
            raise DependencyError(cause=e) from e
        except httpx.HTTPError as e:
            logger.error(f"Identity service request failed: {e}")
            raise DependencyError(cause=e) from e

        if response.status_code != 200:
            logger.info(f"Identity service rejected token: HTTP {response.status_code}")
            return None

        try:
            data = response.json()
        except ValueError:
            logger.error("Identity service returned a non-JSON body")
            return None

        subject = data.get("id") if isinstance(data, dict) else None
        return str(subject) if subject else None


# ============================================================
# RESOLVER
# ============================================================

def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    value = headers.get(name)
    if value is not None:
        return value
    for key, candidate in headers.items():
        if key.lower() == name:
            return candidate
    return None


class CredentialResolver:
    """Turns request headers into a Credential or raises AuthError."""

    def __init__(self, device_api_key: Optional[str], identity: IdentityClient):
        self._device_api_key = device_api_key
        self._identity = identity

    def resolve(self, headers: Mapping[str, str]) -> Credential:
        """
        Accept either credential shape. The device key wins when
        both headers are present.
        """
        api_key = _header(headers, API_KEY_HEADER)
        if api_key:
            if not self._device_api_key or not hmac.compare_digest(
                api_key.encode(), self._device_api_key.encode()
            ):
                raise AuthError(INVALID_API_KEY_MESSAGE)
            return DeviceCredential()

        authorization = _header(headers, AUTHORIZATION_HEADER)
        if authorization and authorization.startswith(BEARER_PREFIX):
            return self._verify_bearer(authorization)

        raise AuthError(MISSING_CREDENTIAL_MESSAGE)

    def resolve_bearer(self, headers: Mapping[str, str]) -> UserCredential:
        """Bearer tokens only; used by the read endpoints."""
        authorization = _header(headers, AUTHORIZATION_HEADER)
        if not authorization or not authorization.startswith(BEARER_PREFIX):
            raise AuthError()
        return self._verify_bearer(authorization)

    def _verify_bearer(self, authorization: str) -> UserCredential:
        token = authorization[len(BEARER_PREFIX):].strip()
        subject = self._identity.verify_token(token)
        if not subject:
            raise AuthError(INVALID_TOKEN_MESSAGE)
        return UserCredential(user_id=subject)


__all__ = [
    "Credential",
    "DeviceCredential",
    "UserCredential",
    "IdentityClient",
    "CredentialResolver",
    "API_KEY_HEADER",
    "AUTHORIZATION_HEADER",
]
