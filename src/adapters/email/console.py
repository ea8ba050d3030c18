"""
Console email sender adapter - Implements EmailSender protocol.

This module provides a console-based implementation of the domain's
email sender port, logging reset codes to stdout for local development.
"""

import logging
from datetime import datetime

logger = logging.getLogger(__name__)


class ConsoleEmailSender:
    """
    Implements EmailSender protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For development purposes - prints reset codes to stdout.
    """

    def send_password_reset_code(
        self, email: str, display_name: str, code: str, expires_at: datetime
    ) -> str | None:
        """
        Log reset code to console (simulates email delivery).

        Selected with EMAIL_BACKEND=console. The code is logged at INFO
        level to be visible in docker-compose logs.

        Args:
            email: Recipient email address
            display_name: Greeting name
            code: Verification code
            expires_at: Code expiry time

        Returns:
            None - there is no provider message id
        """
        logger.info(
            "[PASSWORD RESET] Email: %s Name: %s Code: %s Expires: %s",
            email,
            display_name,
            code,
            expires_at.isoformat(),
        )
        return None
