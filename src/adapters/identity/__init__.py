"""Identity provider adapters - IdentityProvider implementations."""

from .postgres import PostgresIdentityProvider
from .supabase import SupabaseIdentityProvider

__all__ = ["PostgresIdentityProvider", "SupabaseIdentityProvider"]
