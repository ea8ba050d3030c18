"""
Issuance rate limiter.

Bounds how many codes one email may receive inside a rolling window
(3 per 24 hours by default).

The check here is the fast path: it rejects early, before the user
lookup and email provider are touched. The authoritative check is
repeated by the store inside ``create_if_below_limit`` under a lock,
so two concurrent requests cannot both pass on a stale count.

Failure policy is fail-open: if the store cannot be counted, the
failure is logged and issuance continues. The locked re-check at insert
time still runs against the same store, so a store outage surfaces
there as DependencyUnavailable rather than as unlimited issuance.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from .exceptions import DependencyUnavailable, RateLimited
from .ports import CodePurpose, VerificationCodeRepository

logger = logging.getLogger(__name__)

RATE_LIMITED_MESSAGE = (
    "You have reached the maximum number of password reset requests ({limit}) "
    "in {hours} hours. Please try again later."
)


@dataclass
class RateLimiter:
    """Counts recent codes per (email, purpose) and enforces the limit."""

    repository: VerificationCodeRepository
    max_codes: int = 3
    window: timedelta = timedelta(hours=24)

    def window_start(self, now: datetime) -> datetime:
        return now - self.window

    def check_and_count(self, email: str, purpose: CodePurpose, now: datetime) -> int | None:
        """
        Count codes issued in the window and reject if the limit is reached.

        Returns:
            The current count, or None if counting failed (fail-open)

        Raises:
            RateLimited: If ``max_codes`` or more were issued in the window
        """
        try:
            count = self.repository.count_issued_since(email, purpose, self.window_start(now))
        except DependencyUnavailable as e:
            logger.warning(
                "Rate limit count failed, continuing (fail-open): email=%s purpose=%s error=%s",
                email,
                purpose.value,
                e,
            )
            return None

        if count >= self.max_codes:
            raise RateLimited(self.rejection_message())
        return count

    def rejection_message(self) -> str:
        hours = int(self.window.total_seconds() // 3600)
        return RATE_LIMITED_MESSAGE.format(limit=self.max_codes, hours=hours)
