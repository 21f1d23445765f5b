# /services/umami.py
"""
Umami analytics client.
Forwards page-view and custom events to an Umami instance (cloud or self-hosted)
through its /api/send endpoint.

Failures are reported through UmamiResult instead of being raised, so an
analytics outage never breaks the calling request.
"""
import asyncio
import hashlib
import logging
import time
from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any
from urllib.parse import urlsplit

import aiohttp

import config

logger = logging.getLogger(__name__)

SEND_PATH = "/api/send"
DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; UmamiTest/1.0)"


@dataclass
class UmamiResult:
    """Result of forwarding an event to Umami."""
    success: bool
    response: Optional[str] = None
    http_code: Optional[int] = None
    status_text: Optional[str] = None
    error: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class UmamiSettings:
    """Connection settings, normally built from config via from_config()."""
    website_id: str = ""
    host: str = ""
    api_key: str = ""
    user_id: str = ""
    app_secret: str = ""
    timeout: float = 10.0

    @classmethod
    def from_config(cls) -> "UmamiSettings":
        return cls(
            website_id=config.UMAMI_WEBSITE_ID,
            host=config.UMAMI_HOST,
            api_key=config.UMAMI_API_KEY,
            user_id=config.UMAMI_API_CLIENT_USER_ID,
            app_secret=config.UMAMI_API_CLIENT_SECRET,
            timeout=config.UMAMI_TIMEOUT_SECONDS,
        )

    @property
    def is_cloud(self) -> bool:
        return bool(self.api_key and self.website_id)

    @property
    def is_self_hosted(self) -> bool:
        return bool(self.user_id and self.app_secret and self.website_id)


def resolve_endpoint(settings: UmamiSettings) -> Optional[str]:
    """Return the full /api/send URL, or None when no host can be determined."""
    host = settings.host
    if not host and settings.is_cloud:
        host = config.UMAMI_CLOUD_HOST
    if not host:
        return None

    if not host.startswith("http://") and not host.startswith("https://"):
        host = "https://" + host

    parts = urlsplit(host)
    return f"{parts.scheme}://{parts.netloc}{SEND_PATH}"


def build_auth_headers(settings: UmamiSettings, timestamp_ms: Optional[int] = None) -> Dict[str, str]:
    """
    Cloud uses the API key header. Self-hosted signs "<timestamp>:<user_id>:<secret>"
    with SHA-256.
    """
    if settings.is_cloud:
        return {"x-umami-api-key": settings.api_key}

    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    signature = hashlib.sha256(
        f"{timestamp_ms}:{settings.user_id}:{settings.app_secret}".encode("utf-8")
    ).hexdigest()
    return {
        "x-umami-timestamp": str(timestamp_ms),
        "x-umami-hash": signature,
        "x-umami-id": settings.user_id,
    }


class UmamiClient:
    """
    Sends events to Umami.

    Usage:
        result = await UmamiClient().send_event(payload, user_agent)
        if not result.success:
            print(result.error)
    """

    def __init__(self, settings: Optional[UmamiSettings] = None):
        self.settings = settings or UmamiSettings.from_config()

    def check_configuration(self) -> Optional[UmamiResult]:
        """Return a failed result describing the problem, or None if configured."""
        if resolve_endpoint(self.settings) is None:
            logger.error("Missing endpoint configuration - UMAMI_API_CLIENT_ENDPOINT or UMAMI_HOST required")
            return UmamiResult(
                success=False,
                error="Missing endpoint configuration",
                details={"message": "Either UMAMI_API_CLIENT_ENDPOINT or UMAMI_HOST must be set"},
            )

        if not self.settings.is_cloud and not self.settings.is_self_hosted:
            logger.error(
                "Invalid Umami configuration: "
                f"hasApiKey={bool(self.settings.api_key)} "
                f"hasWebsiteId={bool(self.settings.website_id)} "
                f"hasUserId={bool(self.settings.user_id)} "
                f"hasAppSecret={bool(self.settings.app_secret)}"
            )
            return UmamiResult(
                success=False,
                error="Invalid configuration",
                details={
                    "message": "Either Cloud (UMAMI_API_KEY and UMAMI_WEBSITE_ID) or Self-hosted "
                               "(UMAMI_WEBSITE_ID, UMAMI_API_CLIENT_USER_ID, UMAMI_API_CLIENT_SECRET) "
                               "configuration must be provided"
                },
            )
        return None

    async def send_event(
        self,
        payload: Dict[str, Any],
        user_agent: Optional[str] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> UmamiResult:
        """POST an event payload to Umami. A session may be supplied for reuse."""
        problem = self.check_configuration()
        if problem is not None:
            return problem

        url = resolve_endpoint(self.settings)
        body = {"type": "event", "payload": {**payload, "website": self.settings.website_id}}
        headers = {
            "Content-Type": "application/json",
            "User-Agent": user_agent or DEFAULT_USER_AGENT,
            **build_auth_headers(self.settings),
        }

        if session is not None:
            return await self._post(session, url, body, headers)

        timeout = aiohttp.ClientTimeout(total=self.settings.timeout)
        async with aiohttp.ClientSession(timeout=timeout) as owned_session:
            return await self._post(owned_session, url, body, headers)

    async def _post(self, session, url: str, body: Dict[str, Any], headers: Dict[str, str]) -> UmamiResult:
        try:
            async with session.post(url, json=body, headers=headers) as resp:
                text = await resp.text()
                if 200 <= resp.status < 300:
                    return UmamiResult(success=True, response=text)

                logger.error(f"Umami API error: status={resp.status} reason={resp.reason} body={text[:500]}")
                return UmamiResult(
                    success=False,
                    http_code=resp.status,
                    response=text,
                    status_text=resp.reason,
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Error sending Umami event: {e}")
            return UmamiResult(success=False, error=str(e) or e.__class__.__name__)
