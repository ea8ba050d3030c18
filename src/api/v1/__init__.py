"""
API v1 package.

Contains versioned API routes for the password reset verification code API.
"""

from src.api.v1.routes import router

__all__ = ["router"]
