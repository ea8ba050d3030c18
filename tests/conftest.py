"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A controllable clock
- In-memory fakes for the code store, profile store, identity provider
  and email sender
- A fully wired PasswordResetService and UsageService over those fakes
"""

import threading
import uuid
from dataclasses import replace
from datetime import UTC, datetime, timedelta

import pytest

from src.domain.codes import CodeGenerator
from src.domain.exceptions import DependencyUnavailable, EmailDeliveryFailed
from src.domain.models import Identity, NewVerificationCode, UserProfile, VerificationCode
from src.domain.password_reset import PasswordResetService, ResetPolicy
from src.domain.ports import CodePurpose, CodeStatus
from src.domain.rate_limit import RateLimiter
from src.domain.usage import UsageService
from src.domain.users import UserResolver

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)
STUDENT_EMAIL = "student@example.com"


class FakeClock:
    """Clock whose time only moves when a test moves it."""

    def __init__(self, start: datetime = T0) -> None:
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


class InMemoryCodeRepository:
    """
    Thread-safe in-memory VerificationCodeRepository.

    Methods named in ``failing`` raise DependencyUnavailable.
    """

    def __init__(self) -> None:
        self.records: dict[str, VerificationCode] = {}
        self.failing: set[str] = set()
        self._lock = threading.Lock()

    def _check(self, method: str) -> None:
        if method in self.failing:
            raise DependencyUnavailable("Database is temporarily unavailable")

    def _recent(self, email: str, purpose: CodePurpose, since: datetime) -> int:
        return sum(
            1
            for r in self.records.values()
            if r.email.lower() == email.lower() and r.purpose == purpose and r.created_at >= since
        )

    def get(self, code_id: str) -> VerificationCode:
        return self.records[code_id]

    def add(self, record: VerificationCode) -> VerificationCode:
        self.records[record.id] = record
        return record

    def count_issued_since(self, email: str, purpose: CodePurpose, since: datetime) -> int:
        self._check("count_issued_since")
        with self._lock:
            return self._recent(email, purpose, since)

    def create_if_below_limit(
        self, new_code: NewVerificationCode, since: datetime, limit: int
    ) -> VerificationCode | None:
        self._check("create_if_below_limit")
        with self._lock:
            if self._recent(new_code.email, new_code.purpose, since) >= limit:
                return None
            record = VerificationCode(
                id=str(uuid.uuid4()),
                email=new_code.email,
                code=new_code.code,
                purpose=new_code.purpose,
                status=CodeStatus.PENDING,
                created_at=new_code.created_at,
                expires_at=new_code.expires_at,
                attempts=0,
                max_attempts=new_code.max_attempts,
                user_profile_id=new_code.user_profile_id,
            )
            self.records[record.id] = record
            return record

    def find_latest_pending(
        self, email: str, code: str, purpose: CodePurpose
    ) -> VerificationCode | None:
        self._check("find_latest_pending")
        with self._lock:
            matches = [
                r
                for r in self.records.values()
                if r.email.lower() == email.lower()
                and r.code == code
                and r.purpose == purpose
                and r.status == CodeStatus.PENDING
            ]
        return max(matches, key=lambda r: r.created_at, default=None)

    def mark_verified(self, code_id: str, expected_attempts: int, verified_at: datetime) -> bool:
        self._check("mark_verified")
        with self._lock:
            record = self.records.get(code_id)
            if (
                record is None
                or record.status != CodeStatus.PENDING
                or record.attempts != expected_attempts
            ):
                return False
            self.records[code_id] = replace(
                record,
                status=CodeStatus.VERIFIED,
                verified_at=verified_at,
                attempts=record.attempts + 1,
            )
            return True

    def find_latest_verified(self, email: str, purpose: CodePurpose) -> VerificationCode | None:
        self._check("find_latest_verified")
        with self._lock:
            matches = [
                r
                for r in self.records.values()
                if r.email.lower() == email.lower()
                and r.purpose == purpose
                and r.status == CodeStatus.VERIFIED
            ]
        return max(matches, key=lambda r: r.verified_at, default=None)

    def mark_used(self, code_id: str, used_at: datetime) -> bool:
        self._check("mark_used")
        with self._lock:
            record = self.records.get(code_id)
            if record is None or record.status != CodeStatus.VERIFIED:
                return False
            self.records[code_id] = replace(record, status=CodeStatus.USED, used_at=used_at)
            return True

    def count_all(self) -> int:
        self._check("count_all")
        return len(self.records)

    def count_created_since(self, since: datetime) -> int:
        self._check("count_created_since")
        return sum(1 for r in self.records.values() if r.created_at >= since)


class InMemoryProfileRepository:
    """ProfileRepository over a dict keyed by exact email."""

    def __init__(self, *profiles: UserProfile) -> None:
        self.profiles = {p.email: p for p in profiles}
        self.unavailable = False

    def find_by_email(self, email: str) -> UserProfile | None:
        if self.unavailable:
            raise DependencyUnavailable("Database is temporarily unavailable")
        return self.profiles.get(email)


class FakeIdentityProvider:
    """IdentityProvider that records password changes."""

    def __init__(self, *identities: Identity) -> None:
        self.identities = list(identities)
        self.passwords: dict[str, str] = {}
        self.unavailable = False
        self.list_calls = 0

    def list_identities(self) -> list[Identity]:
        self.list_calls += 1
        if self.unavailable:
            raise DependencyUnavailable("Identity provider is temporarily unavailable")
        return list(self.identities)

    def update_password(self, identity_id: str, new_password: str) -> None:
        if self.unavailable:
            raise DependencyUnavailable("Identity provider request failed")
        self.passwords[identity_id] = new_password

    def ping(self) -> None:
        if self.unavailable:
            raise DependencyUnavailable("Identity provider is temporarily unavailable")


class RecordingEmailSender:
    """EmailSender that keeps every message it was asked to send."""

    def __init__(self) -> None:
        self.sent: list[dict] = []
        self.fail = False

    def send_password_reset_code(
        self, email: str, display_name: str, code: str, expires_at: datetime
    ) -> str | None:
        if self.fail:
            raise EmailDeliveryFailed()
        self.sent.append(
            {"email": email, "display_name": display_name, "code": code, "expires_at": expires_at}
        )
        return f"msg-{len(self.sent)}"

    @property
    def last_code(self) -> str:
        return self.sent[-1]["code"]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def code_repository() -> InMemoryCodeRepository:
    return InMemoryCodeRepository()


@pytest.fixture
def profiles() -> InMemoryProfileRepository:
    return InMemoryProfileRepository(
        UserProfile(
            id="profile-1",
            email=STUDENT_EMAIL,
            first_name="Maria",
            last_name="Santos",
            auth_user_id="auth-1",
        )
    )


@pytest.fixture
def identities() -> FakeIdentityProvider:
    return FakeIdentityProvider(
        Identity(id="auth-1", email=STUDENT_EMAIL, metadata={"first_name": "Maria"}),
        Identity(id="auth-2", email="Instructor@Example.com", metadata={}),
    )


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def service(
    code_repository: InMemoryCodeRepository,
    profiles: InMemoryProfileRepository,
    identities: FakeIdentityProvider,
    email_sender: RecordingEmailSender,
    clock: FakeClock,
) -> PasswordResetService:
    """PasswordResetService wired to in-memory fakes and a fixed clock."""
    return PasswordResetService(
        repository=code_repository,
        resolver=UserResolver.with_fallback(profiles, identities),
        email_sender=email_sender,
        identities=identities,
        rate_limiter=RateLimiter(repository=code_repository),
        generator=CodeGenerator(),
        clock=clock,
        policy=ResetPolicy(),
    )


@pytest.fixture
def usage_service(code_repository: InMemoryCodeRepository, clock: FakeClock) -> UsageService:
    return UsageService(repository=code_repository, quota_limit=3000, clock=clock)
