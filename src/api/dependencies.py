"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
"""

from datetime import timedelta

import httpx
from fastapi import Request
from psycopg_pool import ConnectionPool

from src.adapters.email.console import ConsoleEmailSender
from src.adapters.email.resend import ResendEmailSender
from src.adapters.identity.postgres import PostgresIdentityProvider
from src.adapters.identity.supabase import SupabaseIdentityProvider
from src.adapters.repository.postgres import (
    PostgresProfileRepository,
    PostgresVerificationCodeRepository,
)
from src.config.settings import Settings, get_settings
from src.domain.codes import CodeGenerator
from src.domain.password_reset import PasswordResetService, ResetPolicy
from src.domain.ports import EmailSender, IdentityProvider
from src.domain.rate_limit import RateLimiter
from src.domain.usage import UsageService
from src.domain.users import UserResolver

# Module-level singleton - ConsoleEmailSender is stateless
_console_email_sender = ConsoleEmailSender()


def get_pool(request: Request) -> ConnectionPool:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.pool


def get_http_client(request: Request) -> httpx.Client:
    """Get the shared outbound HTTP client from app state."""
    return request.app.state.http_client


def get_code_repository(request: Request) -> PostgresVerificationCodeRepository:
    """Create code repository with connection pool from app state."""
    return PostgresVerificationCodeRepository(get_pool(request))


def get_email_sender(request: Request, settings: Settings | None = None) -> EmailSender:
    """Select the email backend configured by EMAIL_BACKEND."""
    settings = settings or get_settings()
    if settings.email_backend == "console":
        return _console_email_sender
    return ResendEmailSender(
        api_key=settings.resend_api_key,
        sender=settings.email_from,
        http_client=get_http_client(request),
        api_url=settings.resend_api_url,
        subject=settings.email_subject,
        school_name=settings.school_name,
        ttl_minutes=settings.code_ttl_minutes,
    )


def get_identity_provider(request: Request, settings: Settings | None = None) -> IdentityProvider:
    """Select the identity backend configured by IDENTITY_BACKEND."""
    settings = settings or get_settings()
    if settings.identity_backend == "postgres":
        return PostgresIdentityProvider(get_pool(request), bcrypt_cost=settings.bcrypt_cost)
    return SupabaseIdentityProvider(
        base_url=settings.supabase_url,
        service_role_key=settings.supabase_service_role_key,
        http_client=get_http_client(request),
        page_size=settings.identity_page_size,
    )


def get_password_reset_service(request: Request) -> PasswordResetService:
    """
    Create password reset service with injected dependencies.

    Wires together the code store, user resolver, email sender and
    identity provider for the domain service.
    """
    settings = get_settings()
    repository = get_code_repository(request)
    identities = get_identity_provider(request, settings)
    return PasswordResetService(
        repository=repository,
        resolver=UserResolver.with_fallback(PostgresProfileRepository(get_pool(request)), identities),
        email_sender=get_email_sender(request, settings),
        identities=identities,
        rate_limiter=RateLimiter(
            repository=repository,
            max_codes=settings.rate_limit_max_codes,
            window=timedelta(hours=settings.rate_limit_window_hours),
        ),
        generator=CodeGenerator(prefix=settings.code_prefix, digits=settings.code_digits),
        policy=ResetPolicy(
            code_ttl=timedelta(minutes=settings.code_ttl_minutes),
            max_attempts=settings.max_attempts,
            reset_window=timedelta(minutes=settings.reset_window_minutes),
            min_password_length=settings.min_password_length,
        ),
    )


def get_usage_service(request: Request) -> UsageService:
    """Create usage service over the code repository."""
    return UsageService(
        repository=get_code_repository(request),
        quota_limit=get_settings().quota_limit,
    )
