"""Client for the HMRC Making Tax Digital VAT API.

Covers the OAuth authorisation-code flow and VAT return submission. Settings
are read from ``REELIN_HMRC_*`` environment variables. When
``REELIN_DEMO_MODE`` is enabled submissions are simulated and never leave the
process.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable
from urllib.parse import urlencode

import httpx

from .calculators import VATReturn

logger = logging.getLogger(__name__)

SANDBOX_BASE_URL = "https://test-api.service.hmrc.gov.uk"
PRODUCTION_BASE_URL = "https://api.service.hmrc.gov.uk"
VAT_SCOPE = "read:vat write:vat"
HMRC_ACCEPT_HEADER = "application/vnd.hmrc.1.0+json"

_TRUTHY = {"1", "true", "yes", "on"}


class HMRCError(ValueError):
    """Raised when HMRC rejects a request or cannot be reached."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TokenExpiredError(HMRCError):
    """Raised before submitting when the stored access token has expired."""

    def __init__(self, message: str = "Token expired. Please reconnect to HMRC.") -> None:
        super().__init__(message, status_code=401)


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in _TRUTHY


@dataclass(frozen=True)
class HMRCSettings:
    environment: str = "sandbox"
    client_id: str | None = None
    client_secret: str | None = None
    redirect_uri: str | None = None
    demo_mode: bool = False
    timeout: float = 30.0

    @classmethod
    def from_env(cls) -> HMRCSettings:
        environment = os.getenv("REELIN_HMRC_ENVIRONMENT", "sandbox").strip().lower()
        if environment not in {"sandbox", "production"}:
            logger.warning(
                "Unknown REELIN_HMRC_ENVIRONMENT %r; using the sandbox", environment
            )
            environment = "sandbox"
        return cls(
            environment=environment,
            client_id=os.getenv("REELIN_HMRC_CLIENT_ID") or None,
            client_secret=os.getenv("REELIN_HMRC_CLIENT_SECRET") or None,
            redirect_uri=os.getenv("REELIN_HMRC_REDIRECT_URI") or None,
            demo_mode=_env_flag("REELIN_DEMO_MODE"),
        )

    @property
    def base_url(self) -> str:
        if self.environment == "production":
            return PRODUCTION_BASE_URL
        return SANDBOX_BASE_URL


@dataclass(frozen=True)
class TokenSet:
    """OAuth tokens issued by HMRC for a single trader."""

    access_token: str
    refresh_token: str | None = None
    expires_at: datetime | None = None

    def is_expired(self, *, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        reference = now or datetime.now(timezone.utc)
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return expires_at <= reference

    def as_dict(self) -> dict[str, Any]:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }


class HMRCClient:
    """Thin synchronous wrapper over the HMRC OAuth and VAT endpoints."""

    def __init__(
        self,
        settings: HMRCSettings | None = None,
        *,
        http_client: httpx.Client | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.settings = settings or HMRCSettings.from_env()
        self._http = http_client or httpx.Client(timeout=self.settings.timeout)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def demo_mode(self) -> bool:
        return self.settings.demo_mode

    def _require_client_id(self) -> str:
        if not self.settings.client_id:
            raise HMRCError("HMRC client id is not configured")
        return self.settings.client_id

    def _require_redirect_uri(self) -> str:
        if not self.settings.redirect_uri:
            raise HMRCError("HMRC redirect URI is not configured")
        return self.settings.redirect_uri

    def authorization_url(self, state: str) -> str:
        """Return the HMRC consent page URL the trader should be sent to."""

        query = urlencode(
            {
                "response_type": "code",
                "client_id": self._require_client_id(),
                "scope": VAT_SCOPE,
                "redirect_uri": self._require_redirect_uri(),
                "state": state,
            }
        )
        return f"{self.settings.base_url}/oauth/authorize?{query}"

    def exchange_code(self, code: str) -> TokenSet:
        """Exchange an authorisation code for access and refresh tokens."""

        client_id = self._require_client_id()
        if not self.settings.client_secret:
            raise HMRCError("HMRC client secret is not configured")

        data = {
            "client_id": client_id,
            "client_secret": self.settings.client_secret,
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self._require_redirect_uri(),
        }
        response = self._post(f"{self.settings.base_url}/oauth/token", data=data)
        if response.is_error:
            logger.error("Token exchange failed with status %s", response.status_code)
            raise HMRCError("Token exchange failed", status_code=response.status_code)

        body = self._json(response)
        access_token = body.get("access_token")
        if not access_token:
            raise HMRCError("Token response did not include an access token")

        expires_at = None
        expires_in = body.get("expires_in")
        if expires_in is not None:
            expires_at = self._clock() + timedelta(seconds=int(expires_in))

        return TokenSet(
            access_token=access_token,
            refresh_token=body.get("refresh_token"),
            expires_at=expires_at,
        )

    def submit_vat_return(
        self,
        vrn: str,
        period_key: str,
        vat_return: VATReturn,
        token: TokenSet | None,
    ) -> dict[str, Any]:
        """File ``vat_return`` for ``period_key`` and return HMRC's receipt."""

        if self.demo_mode:
            logger.info("Demo mode: simulating HMRC submission for %s", period_key)
            now = self._clock()
            return {
                "processingDate": now.isoformat(),
                "paymentIndicator": "DD",
                "formBundleNumber": f"DEMO-{int(now.timestamp() * 1000)}",
            }

        if token is None or not token.access_token:
            raise HMRCError(
                "HMRC not connected. Please authorize first.", status_code=401
            )
        if token.is_expired(now=self._clock()):
            raise TokenExpiredError()

        response = self._post(
            f"{self.settings.base_url}/organisations/vat/{vrn}/returns",
            json=vat_return.as_hmrc_payload(period_key),
            headers={
                "Authorization": f"Bearer {token.access_token}",
                "Accept": HMRC_ACCEPT_HEADER,
            },
        )
        if response.is_error:
            detail = self._error_code(response)
            logger.error(
                "HMRC submission failed with status %s (%s)",
                response.status_code,
                detail or "no error code",
            )
            message = "HMRC submission failed"
            if detail:
                message = f"{message}: {detail}"
            raise HMRCError(message, status_code=response.status_code)

        receipt = self._json(response)
        logger.info("VAT return for %s accepted by HMRC", period_key)
        return receipt

    def _post(self, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return self._http.post(url, **kwargs)
        except httpx.HTTPError as exc:
            raise HMRCError(f"Unable to reach HMRC: {exc}") from exc

    @staticmethod
    def _json(response: httpx.Response) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError as exc:
            raise HMRCError("HMRC returned a non-JSON response") from exc
        if not isinstance(body, dict):
            raise HMRCError("HMRC returned an unexpected response shape")
        return body

    @staticmethod
    def _error_code(response: httpx.Response) -> str | None:
        try:
            body = response.json()
        except ValueError:
            return None
        if isinstance(body, dict):
            code = body.get("code")
            return str(code) if code else None
        return None


__all__ = [
    "HMRCClient",
    "HMRCError",
    "HMRCSettings",
    "TokenExpiredError",
    "TokenSet",
    "PRODUCTION_BASE_URL",
    "SANDBOX_BASE_URL",
    "VAT_SCOPE",
]
