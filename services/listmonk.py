# /services/listmonk.py
"""
Listmonk newsletter client.
Creates (pre-confirmed) subscribers through the Listmonk REST API.
"""
import asyncio
import base64
import logging
from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any, List

import aiohttp

import config

logger = logging.getLogger(__name__)


class ListmonkConfigError(Exception):
    """Raised when the Listmonk URL or credentials are missing."""


@dataclass
class ListmonkResult:
    """Result of a subscriber creation."""
    success: bool
    status: int
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


class ListmonkClient:
    """
    Usage:
        client = ListmonkClient()  # raises ListmonkConfigError when unconfigured
        result = await client.add_subscriber("someone@example.org", name="Someone")
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_user: Optional[str] = None,
        api_token: Optional[str] = None,
        use_token_auth: Optional[bool] = None,
        default_list_id: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        self.base_url = (base_url or config.LISTMONK_API_URL).rstrip("/")
        self.api_user = api_user or config.LISTMONK_API_USER
        self.api_token = api_token or config.LISTMONK_API_TOKEN
        self.use_token_auth = config.LISTMONK_USE_TOKEN_AUTH if use_token_auth is None else use_token_auth
        self.default_list_id = default_list_id or config.LISTMONK_DEFAULT_LIST_ID
        self.timeout = timeout or config.LISTMONK_TIMEOUT_SECONDS

        if not self.base_url:
            raise ListmonkConfigError("Listmonk API URL is required")
        if not self.api_user or not self.api_token:
            raise ListmonkConfigError("Listmonk API credentials are required")

    def auth_headers(self) -> Dict[str, str]:
        if self.use_token_auth:
            return {"Authorization": f"token {self.api_user}:{self.api_token}"}
        basic = base64.b64encode(f"{self.api_user}:{self.api_token}".encode("utf-8")).decode("ascii")
        return {"Authorization": f"Basic {basic}"}

    def build_payload(
        self,
        email: str,
        name: Optional[str] = None,
        lists: Optional[List[int]] = None,
        attribs: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Subscriber body; the name defaults to the local part of the address."""
        return {
            "email": email,
            "name": name or email.split("@")[0],
            "status": "enabled",
            "lists": [int(list_id) for list_id in (lists or [self.default_list_id])],
            "attribs": attribs or {},
            "preconfirm_subscriptions": True,
        }

    async def add_subscriber(
        self,
        email: str,
        name: Optional[str] = None,
        lists: Optional[List[int]] = None,
        attribs: Optional[Dict[str, Any]] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> ListmonkResult:
        """Create a subscriber. An already existing address (409) counts as success."""
        if not email:
            return ListmonkResult(success=False, status=400, error="Email is required")

        url = f"{self.base_url}/api/subscribers"
        payload = self.build_payload(email, name, lists, attribs)

        if session is not None:
            return await self._post(session, url, payload)

        async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout)) as owned_session:
            return await self._post(owned_session, url, payload)

    async def _post(self, session, url: str, payload: Dict[str, Any]) -> ListmonkResult:
        try:
            async with session.post(url, json=payload, headers=self.auth_headers()) as resp:
                try:
                    body = await resp.json(content_type=None)
                except ValueError as e:
                    logger.error(f"Error parsing Listmonk API response: {e}")
                    return ListmonkResult(success=False, status=500, error="Failed to parse API response")

                body = body if isinstance(body, dict) else {}
                if 200 <= resp.status < 300 or resp.status == 409:
                    return ListmonkResult(success=True, status=200, data=body.get("data") or {})

                logger.error(f"Listmonk API error: status={resp.status} endpoint={url}")
                return ListmonkResult(
                    success=False,
                    status=resp.status,
                    error=body.get("message") or "Unknown error occurred",
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Listmonk API request failed: {e} endpoint={url}")
            return ListmonkResult(success=False, status=500, error=str(e) or e.__class__.__name__)
