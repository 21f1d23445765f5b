# /routers/counter.py
"""
Page-view / event counter.
Receives analytics beacons from the website, replaces the client IP with its
geo-preserving anonymized form and forwards the event to Umami.
"""
import logging
from typing import Optional, Dict, Any
from fastapi import APIRouter, Depends, HTTPException, Request

import config
from dependencies import get_anonymized_ip, get_counter_rate_limiter, get_umami_client
from models import CounterEvent
from services.rate_limiter import SlidingWindowRateLimiter
from services.umami import UmamiClient

logger = logging.getLogger(__name__)

router = APIRouter()


def build_event_payload(event: CounterEvent, request: Request, anonymized_ip: Optional[str]) -> Dict[str, Any]:
    """Umami event payload, falling back to request headers for page metadata."""
    return {
        "url": event.url or request.url.path,
        "hostname": event.hostname or request.headers.get("host", ""),
        "referrer": event.referrer or request.headers.get("referer", ""),
        "title": event.title or "",
        "language": event.language or "",
        "screen": event.screen or "",
        "name": event.name or "",
        "data": event.data,
        "ip": anonymized_ip,
    }


@router.post("/counter", summary="Record an anonymized page view or event")
async def counter(
    event: CounterEvent,
    request: Request,
    anonymized_ip: Optional[str] = Depends(get_anonymized_ip),
    rate_limiter: SlidingWindowRateLimiter = Depends(get_counter_rate_limiter),
    umami: UmamiClient = Depends(get_umami_client),
):
    """
    Forwards the event to Umami with the anonymized client IP.
    Umami failures are returned in the body (success=false) rather than as HTTP errors.
    """
    if not rate_limiter.hit(anonymized_ip or "unknown"):
        raise HTTPException(
            status_code=429,
            detail="Too many requests, please try again later"
        )

    try:
        user_agent = event.userAgent or request.headers.get("user-agent", "")
        payload = build_event_payload(event, request, anonymized_ip)

        if config.ENVIRONMENT == "development":
            logger.debug(f"Counter payload: {payload}")

        result = await umami.send_event(payload, user_agent)
        return result.to_dict()

    except Exception as e:
        logger.error(f"Unexpected error in counter: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail="An internal server error occurred"
        )
