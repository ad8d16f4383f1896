"""
Password hashing with bcrypt.

bcrypt is CPU bound, so both helpers run in the threadpool.
"""

import bcrypt
from fastapi.concurrency import run_in_threadpool

# bcrypt only looks at the first 72 bytes
_MAX_PASSWORD_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:_MAX_PASSWORD_BYTES]


def _hash(password: str, rounds: int) -> str:
    return bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def _verify(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_encode(password), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


async def hash_password(password: str, rounds: int = 10) -> str:
    """Hash password with a fresh salt."""
    return await run_in_threadpool(_hash, password, rounds)


async def verify_password(password: str, password_hash: str) -> bool:
    """Check password against stored bcrypt hash."""
    return await run_in_threadpool(_verify, password, password_hash)
