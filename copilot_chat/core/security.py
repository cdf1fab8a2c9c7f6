from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol

import httpx
from jose import JWTError, jwt

from copilot_chat.core.errors import AuthenticationError
from copilot_chat.core.settings import AzureAdOptions

logger = logging.getLogger(__name__)

DEFAULT_USER_ID = "c05c61eb-65e4-4223-915a-fe72b0c9ece1"
DEFAULT_USER_NAME = "Default User"


@dataclass(frozen=True)
class AuthInfo:
    """Identity of the caller for the current request."""
    user_id: str
    name: str


class Authenticator(Protocol):
    """Resolves the caller's identity from an (optional) bearer token."""

    async def authenticate(self, token: Optional[str]) -> AuthInfo:
        ...

    async def close(self) -> None:
        ...


class PassThroughAuthenticator:
    """
    Development-only scheme: every caller is the fixed default user.

    No credential is inspected. Never enable this on a deployed instance.
    """

    def __init__(self) -> None:
        logger.warning(
            "Authentication type is 'None'; every request runs as '%s' without verification.",
            DEFAULT_USER_NAME,
        )

    async def authenticate(self, token: Optional[str]) -> AuthInfo:
        return AuthInfo(user_id=DEFAULT_USER_ID, name=DEFAULT_USER_NAME)

    async def close(self) -> None:
        return None


class AzureAdAuthenticator:
    """
    Validates Azure AD (Microsoft Entra ID) access tokens.

    Tokens must be RS256-signed by a key from the tenant's JWKS, carry the
    API's client id as audience and the tenant authority as issuer. The user
    id is '<oid>.<tid>', matching how chat participants are keyed.

    A token naming an unknown key id triggers a JWKS refresh at most once per
    `min_refresh_interval` seconds; in between, such tokens are rejected
    without an outbound request.
    """

    ALGORITHMS = ["RS256"]
    MIN_REFRESH_INTERVAL = 300.0

    def __init__(
        self,
        options: AzureAdOptions,
        http_client: Optional[httpx.AsyncClient] = None,
        min_refresh_interval: float = MIN_REFRESH_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.options = options
        self._http = http_client or httpx.AsyncClient(timeout=10.0)
        self._owns_http = http_client is None
        self._keys: List[Dict[str, Any]] = []
        self._min_refresh_interval = min_refresh_interval
        self._clock = clock
        self._last_refresh: Optional[float] = None

    @property
    def jwks_url(self) -> str:
        return f"{self.options.instance.rstrip('/')}/{self.options.tenant_id}/discovery/v2.0/keys"

    @property
    def audiences(self) -> set[str]:
        return {self.options.client_id, f"api://{self.options.client_id}"}

    @property
    def issuers(self) -> set[str]:
        tenant = self.options.tenant_id
        return {
            f"{self.options.instance.rstrip('/')}/{tenant}/v2.0",
            f"https://sts.windows.net/{tenant}/",
        }

    def _refresh_allowed(self) -> bool:
        if self._last_refresh is None:
            return True
        return self._clock() - self._last_refresh >= self._min_refresh_interval

    async def _refresh_keys(self) -> None:
        logger.info("Fetching signing keys from %s", self.jwks_url)
        self._last_refresh = self._clock()
        response = await self._http.get(self.jwks_url)
        response.raise_for_status()
        self._keys = response.json().get("keys", [])

    def _find_key(self, kid: Optional[str]) -> Optional[Dict[str, Any]]:
        for key in self._keys:
            if key.get("kid") == kid:
                return key
        return None

    async def _signing_key(self, kid: Optional[str]) -> Dict[str, Any]:
        key = self._find_key(kid)
        if key is None and self._refresh_allowed():
            await self._refresh_keys()
            key = self._find_key(kid)
        if key is not None:
            return key
        logger.info("Rejecting token signed with unknown key '%s'", kid)
        raise AuthenticationError(f"Unknown signing key '{kid}'")

    async def authenticate(self, token: Optional[str]) -> AuthInfo:
        if not token:
            raise AuthenticationError("Missing bearer token")
        try:
            header = jwt.get_unverified_header(token)
            key = await self._signing_key(header.get("kid"))
            claims = jwt.decode(
                token,
                key,
                algorithms=self.ALGORITHMS,
                options={"verify_aud": False},
            )
        except JWTError as exc:
            raise AuthenticationError("Invalid token") from exc

        aud = claims.get("aud")
        aud_values = {aud} if isinstance(aud, str) else set(aud or [])
        if self.audiences.isdisjoint(aud_values):
            raise AuthenticationError("Invalid audience")
        if claims.get("iss") not in self.issuers:
            raise AuthenticationError("Invalid issuer")

        oid = claims.get("oid")
        tid = claims.get("tid")
        if not oid or not tid:
            raise AuthenticationError("Token is missing the oid or tid claim")
        return AuthInfo(user_id=f"{oid}.{tid}", name=claims.get("name") or "")

    async def close(self) -> None:
        if self._owns_http:
            await self._http.aclose()
