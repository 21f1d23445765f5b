# /routers/subscribe.py
"""
Newsletter sign-up. Adds the address to the default Listmonk list.
"""
import logging
from typing import Callable, Optional
from fastapi import APIRouter, Depends, HTTPException

from dependencies import get_anonymized_ip, get_listmonk_factory, get_subscribe_rate_limiter
from models import SubscribeRequest
from services.listmonk import ListmonkClient, ListmonkConfigError
from services.rate_limiter import SlidingWindowRateLimiter

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/subscribe", summary="Subscribe to the newsletter")
async def subscribe(
    req: SubscribeRequest,
    anonymized_ip: Optional[str] = Depends(get_anonymized_ip),
    rate_limiter: SlidingWindowRateLimiter = Depends(get_subscribe_rate_limiter),
    listmonk_factory: Callable[[], ListmonkClient] = Depends(get_listmonk_factory),
):
    """
    Creates a pre-confirmed subscriber. Listmonk failures are returned in the
    body (success=false) together with the upstream status.
    """
    if not rate_limiter.hit(anonymized_ip or "unknown"):
        raise HTTPException(
            status_code=429,
            detail="Too many requests, please try again later"
        )

    try:
        listmonk = listmonk_factory()
    except ListmonkConfigError as e:
        logger.error(f"Listmonk subscription error: {e}")
        return {"success": False, "error": str(e)}

    result = await listmonk.add_subscriber(req.email, name=req.name or "")
    return result.to_dict()
