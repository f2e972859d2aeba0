"""
Authentication for FaceCloud

This module provides:
- Bearer token validation and Supabase admin operations
- The identity provider adapter and per-session auth session store
- The magic-link recovery flow
"""

from .manager import AuthManager, get_auth_manager, require_auth, unauthorized
from .provider import IdentityProvider, Session, SessionStore, SupabaseIdentityProvider
from .recovery import AuthRecoverySession, RecoveryFlow, RecoveryOutcome, RecoveryState

__all__ = [
    'AuthManager',
    'AuthRecoverySession',
    'IdentityProvider',
    'RecoveryFlow',
    'RecoveryOutcome',
    'RecoveryState',
    'Session',
    'SessionStore',
    'SupabaseIdentityProvider',
    'get_auth_manager',
    'require_auth',
    'unauthorized',
]
