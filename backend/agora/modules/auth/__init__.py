"""
Auth Module - identity and access.

Features:
- Local email/password accounts (agora.modules.auth.service)
- Server-side sessions (database or Redis)
- Role and ownership based authorization policy
"""

from agora.modules.auth.policy import Action, Decision, DenyReason, authorize, decide
from agora.modules.auth.sessions import (
    ANONYMOUS,
    DatabaseSessionStore,
    Identity,
    RedisSessionStore,
    SessionResolver,
    SessionStore,
)

__all__ = [
    "ANONYMOUS",
    "Action",
    "DatabaseSessionStore",
    "Decision",
    "DenyReason",
    "Identity",
    "RedisSessionStore",
    "SessionResolver",
    "SessionStore",
    "authorize",
    "decide",
]
