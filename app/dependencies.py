"""FastAPI dependency injection helpers."""

from __future__ import annotations

import logging
import threading
import time
from functools import lru_cache
from typing import Any

from fastapi import Depends, Header

from app.config import settings
from app.services.gateways import AdministrativeGateway, VoterGateway
from app.services.voting_session import VotingSession
from app.services.voting_store import InMemoryVotingStore, SupabaseVotingStore, VotingStore
from app.utils.errors import UnauthorizedError
from app.utils.supabase_client import get_auth_client, get_storage_client

logger = logging.getLogger(__name__)

_token_cache: dict[str, tuple[float, Any]] = {}
_cache_lock = threading.Lock()


def _cache_get(key: str) -> Any | None:
    """Return a cached user when present and not expired."""
    now = time.monotonic()
    with _cache_lock:
        entry = _token_cache.get(key)
        if not entry:
            return None
        expires_at, value = entry
        if expires_at <= now:
            _token_cache.pop(key, None)
            return None
        return value


def _cache_set(key: str, value: Any) -> None:
    """Store a bounded cache value with TTL."""
    ttl_seconds = settings.auth_token_cache_ttl_seconds
    if ttl_seconds <= 0:
        return

    with _cache_lock:
        max_entries = max(1, settings.auth_token_cache_max_entries)
        if len(_token_cache) >= max_entries:
            oldest_key = next(iter(_token_cache))
            _token_cache.pop(oldest_key, None)
        _token_cache[key] = (time.monotonic() + ttl_seconds, value)


def get_authenticated_user(authorization: str = Header(None)) -> Any:
    """Extract and validate a Supabase JWT from the Authorization header.

    Raises:
        UnauthorizedError: 401 if the header is missing, malformed, or
            the token cannot be validated.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise UnauthorizedError("Missing authorization header")

    token = authorization.split(" ", 1)[1]
    cached_user = _cache_get(token)
    if cached_user is not None:
        return cached_user

    supabase = get_auth_client()

    try:
        response = supabase.auth.get_user(token)
        if not response or not response.user:
            raise UnauthorizedError("Invalid token")
        _cache_set(token, response.user)
        return response.user
    except UnauthorizedError:
        raise
    except Exception as exc:
        raise UnauthorizedError("Invalid or expired token") from exc


def get_current_principal(user: Any = Depends(get_authenticated_user)) -> str:
    """Return the caller's stable principal id."""
    return str(user.id)


def is_administrator(principal: str) -> bool:
    """Return whether ``principal`` is one of the configured administrators."""
    return principal in settings.admin_ids


def build_voting_store() -> VotingStore:
    """Create the store selected by ``STORAGE_BACKEND``."""
    if settings.storage_backend == "memory":
        logger.warning("Using in-memory election store; state is lost on restart")
        return InMemoryVotingStore()
    return SupabaseVotingStore(get_storage_client())


@lru_cache(maxsize=1)
def get_voting_session() -> VotingSession:
    """Return the process-wide voting session."""
    return VotingSession(build_voting_store(), tally_policy=settings.tally_policy)


def get_admin_gateway(
    principal: str = Depends(get_current_principal),
    session: VotingSession = Depends(get_voting_session),
) -> AdministrativeGateway:
    return AdministrativeGateway(session, principal, is_administrator)


def get_voter_gateway(
    principal: str = Depends(get_current_principal),
    session: VotingSession = Depends(get_voting_session),
) -> VoterGateway:
    return VoterGateway(session, principal, is_administrator)
