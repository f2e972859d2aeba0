"""Supabase-backed persistence for FaceCloud."""

from .client import DatabaseClient, SupabaseDatabaseClient, get_admin_database_client, get_user_database_client

__all__ = [
    "DatabaseClient",
    "SupabaseDatabaseClient",
    "get_admin_database_client",
    "get_user_database_client",
]
