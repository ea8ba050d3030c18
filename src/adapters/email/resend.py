"""
Resend email sender adapter - Implements EmailSender protocol.

Delivers the password reset message through the Resend transactional
email HTTP API. The HTML and plain-text bodies are rendered from the
Jinja2 templates next to this module.

Any transport error or non-2xx response raises EmailDeliveryFailed.
Provider response bodies are logged (truncated) but never returned.
"""

import logging
from datetime import datetime
from pathlib import Path

import httpx
from jinja2 import Environment, FileSystemLoader, select_autoescape

from src.domain.exceptions import EmailDeliveryFailed

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"
_TEMPLATE_DIR = Path(__file__).parent / "templates"


class ResendEmailSender:
    """
    Implements EmailSender protocol via the Resend HTTP API.

    Uses structural subtyping - no explicit inheritance from Protocol.
    The httpx client is injected so its timeout is configured in one place.
    """

    def __init__(
        self,
        api_key: str,
        sender: str,
        http_client: httpx.Client,
        *,
        api_url: str = RESEND_API_URL,
        subject: str = "Password Reset Verification Code",
        school_name: str = "School Portal & Enrollment System",
        ttl_minutes: int = 15,
        template_dir: Path = _TEMPLATE_DIR,
    ) -> None:
        self._api_key = api_key
        self._sender = sender
        self._http = http_client
        self._api_url = api_url
        self._subject = subject
        self._school_name = school_name
        self._ttl_minutes = ttl_minutes
        self._jinja = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(["html", "xml"]),
        )

    def render(self, display_name: str, code: str) -> tuple[str, str]:
        """Render (html, text) bodies for a reset message."""
        context = {
            "display_name": display_name,
            "code": code,
            "ttl_minutes": self._ttl_minutes,
            "school_name": self._school_name,
        }
        html = self._jinja.get_template("password_reset.html").render(**context)
        text = self._jinja.get_template("password_reset.txt").render(**context)
        return html, text

    def send_password_reset_code(
        self, email: str, display_name: str, code: str, expires_at: datetime
    ) -> str | None:
        """
        Send the reset code through Resend.

        Returns:
            Resend message id

        Raises:
            EmailDeliveryFailed: On timeout, connection error or non-2xx status
        """
        html, text = self.render(display_name, code)
        payload = {
            "from": self._sender,
            "to": [email],
            "subject": self._subject,
            "html": html,
            "text": text,
        }
        headers = {"Authorization": f"Bearer {self._api_key}"}

        try:
            response = self._http.post(self._api_url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error(
                "Email send error: to=%s error_type=%s error=%s", email, type(e).__name__, e
            )
            raise EmailDeliveryFailed() from e

        if not response.is_success:
            logger.error(
                "Email provider rejected message: to=%s status=%s response=%s",
                email,
                response.status_code,
                response.text[:200],
            )
            raise EmailDeliveryFailed()

        try:
            email_id = response.json().get("id")
        except ValueError:
            email_id = None
        logger.info("Email sent: to=%s email_id=%s expires_at=%s", email, email_id, expires_at)
        return email_id
