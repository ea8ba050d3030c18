"""
Usage aggregator - read-only issuance statistics.

Every issued code corresponds to one transactional email, so code
counts double as email counts against the provider's monthly quota.
"""

import logging
from dataclasses import dataclass, field
from datetime import timedelta

from .codes import SystemClock
from .exceptions import ResetError
from .ports import Clock, ErrorKind, VerificationCodeRepository
from .results import Failure, UsageReport, UsageResult

logger = logging.getLogger(__name__)


@dataclass
class UsageService:
    """Reports codes issued overall, in the last day and in the last 30 days."""

    repository: VerificationCodeRepository
    quota_limit: int = 3000
    clock: Clock = field(default_factory=SystemClock)

    def usage(self) -> UsageResult:
        """
        Build a usage report.

        ``quota_remaining`` is clamped at zero; ``quota_usage_percent``
        keeps the real figure (it may exceed "100.00") so over-quota use
        stays visible.
        """
        try:
            now = self.clock.now()
            total = self.repository.count_all()
            last_day = self.repository.count_created_since(now - timedelta(hours=24))
            last_30_days = self.repository.count_created_since(now - timedelta(days=30))
        except ResetError as e:
            logger.error("usage failed: kind=%s error=%s", e.kind.value, e)
            return Failure(e.kind, e.message)
        except Exception:
            logger.exception("usage raised unexpectedly")
            return Failure(ErrorKind.UNKNOWN, "Unknown error occurred")

        return UsageReport(
            total_issued=total,
            issued_last_24h=last_day,
            issued_last_30d=last_30_days,
            quota_limit=self.quota_limit,
            quota_remaining=max(self.quota_limit - last_30_days, 0),
            quota_usage_percent=f"{last_30_days / self.quota_limit * 100:.2f}",
        )
