"""Best-effort audit logging of queries and API calls."""

from __future__ import annotations

from typing import Optional, Sequence

from config import Config, logger
from app.knowledge.models import ApiUsageEntry, QueryLogEntry
from app.results import guarded


class UsageRecorder:
    """Writes query logs and API usage records.

    Both methods swallow and log every failure; they are meant to run
    after the response has been sent.
    """

    def __init__(self, store, timeout: Optional[float] = None):
        self.store = store
        self.timeout = timeout or Config.STORAGE_TIMEOUT_SECONDS

    async def record(
        self,
        query: str,
        answer: str,
        source_ids: Sequence[str],
        tokens_used: int,
        latency_ms: int,
    ) -> None:
        try:
            entry = QueryLogEntry(
                query_text=query,
                response=answer,
                source_ids=[sid for sid in source_ids if sid],
                tokens_used=tokens_used,
                response_time_ms=latency_ms,
            )
        except ValueError as e:
            logger.error(f"Could not build query log entry: {e}")
            return
        result = await guarded(self.store.insert_query_log(entry), "query_log", self.timeout)
        if not result.ok:
            logger.warning("Query log not recorded")

    async def record_usage(self, endpoint: str, ip: Optional[str]) -> None:
        entry = ApiUsageEntry(endpoint=endpoint, ip_address=ip or "unknown")
        result = await guarded(self.store.insert_api_usage(entry), "api_usage", self.timeout)
        if not result.ok:
            logger.warning(f"API usage for {endpoint} not recorded")
