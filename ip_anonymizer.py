"""
Geo-preserving IP anonymization.

An IPv4 address keeps its first two octets (coarse network/region) while the
last two are replaced by octets derived from a SHA-256 digest of the address
salted with the current day. The output is stable for a whole day and changes
when the day rolls over, so requests can be grouped per day without storing
any mapping table.

Also provides the FastAPI/Starlette middleware that swaps the client address
of every request for its anonymized form.
"""
import hashlib
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

import config

logger = logging.getLogger(__name__)

HASH_ALGORITHM = "sha256"

if HASH_ALGORITHM not in hashlib.algorithms_available:
    raise RuntimeError(f"FATAL: hash algorithm '{HASH_ALGORITHM}' is not available in this Python build")

Clock = Callable[[], datetime]


def _system_clock() -> datetime:
    if config.IP_DAY_KEY_UTC:
        return datetime.now(timezone.utc)
    return datetime.now()


def current_day_key(clock: Optional[Clock] = None) -> str:
    """Return the current calendar day as YYYY-MM-DD."""
    now = (clock or _system_clock)()
    return f"{now.year:04d}-{now.month:02d}-{now.day:02d}"


def compute_digest(input_value: str, salt: str, secret: str = "") -> str:
    """Hex SHA-256 of input_value + salt (+ secret), without any normalization."""
    # surrogatepass keeps lone surrogates encodable; other strings encode as plain UTF-8
    data = (input_value + salt + secret).encode("utf-8", "surrogatepass")
    return hashlib.new(HASH_ALGORITHM, data).hexdigest()


def anonymize(raw_address: Optional[str] = None, clock: Optional[Clock] = None) -> Optional[str]:
    """
    Replace the host part of an IPv4 address with daily hash-derived octets.

    - None (or no argument) is passed through as None.
    - Anything that does not split into exactly four dot-separated segments
      (IPv6, hostnames, garbage) is returned unchanged.
    - Segments are not checked for being numeric; the segment count is the
      only gate.
    """
    if raw_address is None:
        return None

    parts = raw_address.split(".")
    if len(parts) != 4:
        # The address itself is not logged
        logger.debug(f"Leaving non-IPv4 address unchanged ({len(parts)} segments)")
        return raw_address

    prefix1, prefix2 = parts[0], parts[1]
    digest = compute_digest(raw_address, current_day_key(clock), config.IP_HASH_SALT)

    # 16-bit slices reduce to octets without bias (65536 % 256 == 0)
    octet3 = int(digest[0:4], 16) % 256
    octet4 = int(digest[4:8], 16) % 256

    return f"{prefix1}.{prefix2}.{octet3}.{octet4}"


def get_client_ip(request: Request) -> Optional[str]:
    """
    Resolve the originating client address of a request.

    Order: first X-Forwarded-For entry, X-Real-IP, then the socket peer.
    Proxy headers are skipped when TRUST_PROXY_HEADERS is disabled.
    """
    if config.TRUST_PROXY_HEADERS:
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            first = forwarded_for.split(",")[0].strip()
            if first:
                return first

        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return real_ip.strip()

    if request.client and request.client.host:
        return request.client.host
    return None


class IPAnonymizerMiddleware(BaseHTTPMiddleware):
    """Middleware that anonymizes client IP addresses in requests"""

    async def dispatch(self, request: Request, call_next):
        anonymized_ip = anonymize(get_client_ip(request))
        request.state.anonymized_ip = anonymized_ip

        # Override the client so handlers and the uvicorn access log only see the anonymized host
        if config.ANONYMIZE_SCOPE_CLIENT and request.client and anonymized_ip is not None:
            request.scope["client"] = (anonymized_ip, request.client.port)

        response = await call_next(request)
        return response
