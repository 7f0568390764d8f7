"""Shared Supabase data access helpers for the election store."""

from __future__ import annotations

import logging
import time
from typing import Any

from postgrest import APIError

from app.config import settings
from app.utils.errors import InvalidInputError
from supabase import Client

logger = logging.getLogger(__name__)


class SupabaseService:
    """Thin helper wrapper around a Supabase client."""

    def __init__(self, client: Client) -> None:
        self.client = client

    def execute(self, query, default: Any = None, label: str = "query") -> Any:
        """Execute a Supabase query or RPC and normalize API errors.

        ``label`` names the call in slow-query and failure logs.
        """
        started = time.perf_counter()
        try:
            response = query.execute()
        except APIError as exc:
            message = getattr(exc, "message", None) or "Database request failed"
            logger.error("Supabase %s failed: %s", label, message)
            raise InvalidInputError(str(message)) from exc

        elapsed_ms = (time.perf_counter() - started) * 1000
        threshold_ms = settings.slow_query_log_threshold_ms
        if threshold_ms > 0 and elapsed_ms >= threshold_ms:
            logger.warning("Slow Supabase %s %.1fms", label, elapsed_ms)
        data = response.data
        return default if data is None and default is not None else data

    def select_many(
        self,
        table: str,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Select rows from ``table`` with equality filters and ascending order."""
        query = self.client.table(table).select("*")
        for key, value in (filters or {}).items():
            query = query.eq(key, value)
        if order_by:
            query = query.order(order_by)
        if limit:
            query = query.limit(limit)
        return self.execute(query, default=[], label=table)
