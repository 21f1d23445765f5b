# /routers/contact.py
"""
Contact form. The message is PGP-encrypted to the contact key before it
leaves the server and is delivered by email through Resend.
"""
import logging
import re
from datetime import datetime, timezone
from typing import Callable, Optional
from fastapi import APIRouter, Depends, HTTPException

import config
from dependencies import get_pgp_mailer_factory, limit_body_size
from models import ContactRequest
from services.pgp_mailer import PGPMailer, PGPMailerError

logger = logging.getLogger(__name__)

router = APIRouter()

PREVIEW_LENGTH = 50


def format_contact_info(req: ContactRequest) -> str:
    if req.responseType == "email":
        return f"## Response requested by email:\n{req.email or ''}"
    if req.responseType == "signal_username":
        return f"## Response requested by Signal username:\n{req.signalUsername or ''}"
    if req.responseType == "signal_phone":
        return f"## Response requested by Signal phone:\n{req.signalPhone or ''}"
    return "## No response requested"


def subject_preview(message: str) -> str:
    """Single-line preview of the message, at most 50 characters."""
    preview = re.sub(r"\s+", " ", message).strip()
    if len(preview) > PREVIEW_LENGTH:
        preview = f"{preview[:PREVIEW_LENGTH - 3]}..."
    return preview


def format_timestamp(now: datetime) -> str:
    """US-style UTC timestamp, e.g. 1/15/2024, 2:05:09 PM"""
    hour = now.hour % 12 or 12
    suffix = "AM" if now.hour < 12 else "PM"
    return f"{now.month}/{now.day}/{now.year}, {hour}:{now.minute:02d}:{now.second:02d} {suffix}"


def compose_message(req: ContactRequest, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return (
        "ActivistChecklist.org Contact Form\n\n"
        f"## Message received:\n{format_timestamp(now)}\n\n"
        f"{format_contact_info(req)}\n\n"
        f"## Message:\n{req.message}"
    )


@router.post(
    "/contact",
    summary="Send an encrypted contact message",
    dependencies=[Depends(limit_body_size(config.CONTACT_MAX_BODY_BYTES))],
)
async def contact(
    req: ContactRequest,
    mailer_factory: Callable[[], PGPMailer] = Depends(get_pgp_mailer_factory),
):
    try:
        mailer = mailer_factory()
    except PGPMailerError as e:
        logger.error(f"Contact form error: {e}")
        raise HTTPException(
            status_code=500,
            detail={
                "error": "Server Error",
                "message": "An unexpected error occurred",
                "details": str(e) if config.ENVIRONMENT == "development" else "Please try again later",
            },
        )

    try:
        encrypted = await mailer.encrypt_message(compose_message(req))
    except Exception as e:
        logger.error(f"Failed to encrypt contact message: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail={"error": "Encryption Error", "message": "Failed to encrypt message", "details": str(e)},
        )

    try:
        result = await mailer.send_encrypted_email(
            config.CONTACT_FROM,
            config.CONTACT_TO,
            f"Contact Form: {subject_preview(req.message)}",
            encrypted,
        )
    except PGPMailerError as e:
        logger.error(f"Failed to send contact message: {e}")
        raise HTTPException(
            status_code=500,
            detail={"error": "Email Service Error", "message": "Failed to send encrypted email", "details": str(e)},
        )

    if not result.success:
        details = result.response.get("error", result.response) if isinstance(result.response, dict) else result.response
        raise HTTPException(
            status_code=result.http_code or 500,
            detail={"error": "Email Service Error", "message": "Failed to send encrypted email", "details": details},
        )

    return {"success": True, "message": "Message sent successfully"}
