# /dependencies.py
from typing import Callable, Optional
from fastapi import HTTPException, Request

import config
from ip_anonymizer import anonymize, get_client_ip
from services.listmonk import ListmonkClient
from services.pgp_mailer import PGPMailer
from services.rate_limiter import SlidingWindowRateLimiter
from services.umami import UmamiClient

# --- Rate Limiters (process-wide) ---
global_rate_limiter = SlidingWindowRateLimiter(
    limit=config.GLOBAL_RATE_LIMIT,
    window_seconds=config.GLOBAL_RATE_WINDOW_SECONDS,
)
counter_rate_limiter = SlidingWindowRateLimiter(
    limit=config.COUNTER_RATE_LIMIT,
    window_seconds=config.COUNTER_RATE_WINDOW_SECONDS,
)
subscribe_rate_limiter = SlidingWindowRateLimiter(
    limit=config.SUBSCRIBE_RATE_LIMIT,
    window_seconds=config.SUBSCRIBE_RATE_WINDOW_SECONDS,
)


def get_anonymized_ip(request: Request) -> Optional[str]:
    """
    Anonymized client IP for this request. Reuses the value computed by
    IPAnonymizerMiddleware when it ran, so the address is hashed only once.
    """
    if hasattr(request.state, "anonymized_ip"):
        return request.state.anonymized_ip
    return anonymize(get_client_ip(request))


def get_umami_client() -> UmamiClient:
    """Built per request so configuration changes are picked up."""
    return UmamiClient()


def get_counter_rate_limiter() -> SlidingWindowRateLimiter:
    return counter_rate_limiter


def get_subscribe_rate_limiter() -> SlidingWindowRateLimiter:
    return subscribe_rate_limiter


def get_listmonk_factory() -> Callable[[], ListmonkClient]:
    """The client validates its configuration on construction, so routes build it themselves."""
    return ListmonkClient


def get_pgp_mailer_factory() -> Callable[[], PGPMailer]:
    def build() -> PGPMailer:
        return PGPMailer(
            resend_api_key=config.RESEND_API_KEY,
            public_key_path=config.CONTACT_PUBLIC_KEY_PATH,
        )
    return build


def limit_body_size(max_bytes: int):
    """Dependency factory rejecting request bodies larger than max_bytes with 413."""
    async def check(request: Request) -> None:
        declared = request.headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > max_bytes:
            raise HTTPException(status_code=413, detail=f"Request body exceeds {max_bytes} bytes")
        if len(await request.body()) > max_bytes:
            raise HTTPException(status_code=413, detail=f"Request body exceeds {max_bytes} bytes")
    return check
