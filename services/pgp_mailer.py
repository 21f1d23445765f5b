# /services/pgp_mailer.py
"""
PGP-encrypted contact mail.
Messages are encrypted to the contact public key with GnuPG (python-gnupg) and
delivered as armored text through the Resend HTTP API.

Requires the gpg binary on the host.
"""
import asyncio
import logging
import os
import tempfile
from dataclasses import dataclass
from typing import Optional, Dict, Any

import aiohttp
import gnupg

import config

logger = logging.getLogger(__name__)


class PGPMailerError(Exception):
    """Raised when the mailer is misconfigured or encryption fails."""


@dataclass
class MailResult:
    """Result of a Resend API call."""
    success: bool
    http_code: int
    response: Any = None


class PGPMailer:
    """
    Usage:
        mailer = PGPMailer(resend_api_key="re_...", public_key_path="contact.asc")
        armored = await mailer.encrypt_message("hello")
        result = await mailer.send_encrypted_email(sender, recipient, subject, armored)
    """

    def __init__(self, resend_api_key: str, public_key_path: str, timeout: float = 10.0):
        if not resend_api_key:
            raise PGPMailerError("Resend API key is required")
        if not public_key_path:
            raise PGPMailerError("PGP public key path is required")

        self.resend_api_key = resend_api_key
        self.public_key_path = public_key_path
        self.timeout = timeout

    def _encrypt_sync(self, message: str) -> str:
        if not os.path.isfile(self.public_key_path):
            raise PGPMailerError(f"PGP public key file not found at: {self.public_key_path}")

        with open(self.public_key_path, "r", encoding="utf-8") as f:
            armored_key = f.read()

        # Throwaway keyring so nothing is persisted between messages
        with tempfile.TemporaryDirectory() as gnupg_home:
            gpg = gnupg.GPG(gnupghome=gnupg_home)
            imported = gpg.import_keys(armored_key)
            if not imported.fingerprints:
                raise PGPMailerError("No usable PGP key found in the public key file")

            encrypted = gpg.encrypt(
                message,
                imported.fingerprints,
                always_trust=True,
                armor=True,
            )
            if not encrypted.ok:
                raise PGPMailerError(f"Encryption failed: {encrypted.status}")
            return str(encrypted)

    async def encrypt_message(self, message: str) -> str:
        """Encrypt to the configured public key; gpg runs in a worker thread."""
        return await asyncio.to_thread(self._encrypt_sync, message)

    async def send_encrypted_email(
        self,
        sender: str,
        recipient: str,
        subject: str,
        encrypted_content: str,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> MailResult:
        if not encrypted_content:
            raise PGPMailerError("Encrypted content is required")

        body = {"from": sender, "to": [recipient], "subject": subject, "text": encrypted_content}
        headers = {"Authorization": f"Bearer {self.resend_api_key}"}

        if session is not None:
            return await self._post(session, body, headers)

        async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout)) as owned_session:
            return await self._post(owned_session, body, headers)

    async def _post(self, session, body: Dict[str, Any], headers: Dict[str, str]) -> MailResult:
        try:
            async with session.post(config.RESEND_API_URL, json=body, headers=headers) as resp:
                try:
                    data = await resp.json(content_type=None)
                except ValueError:
                    data = {"error": await resp.text()}
                return MailResult(success=200 <= resp.status < 300, http_code=resp.status, response=data)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Error sending email: {e}")
            return MailResult(success=False, http_code=500, response={"error": str(e) or e.__class__.__name__})
