"""Tagged results for collaborator calls.

Storage and AI collaborators raise ordinary exceptions. The core converts
each call into a ``CallResult`` at its boundary so the fallback logic can
branch on the failure kind instead of on exception flow.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Generic, Optional, TypeVar

import httpx
import openai
from pymongo.errors import PyMongoError

from config import logger
from app.errors import ProviderDisabled

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Why a collaborator call produced no value."""
    TIMEOUT = "timeout"
    TRANSPORT = "transport"      # network, storage or provider unavailable
    QUOTA = "quota"              # rate limited or out of quota
    MALFORMED = "malformed"      # unexpected response shape
    DISABLED = "disabled"        # capability switched off
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class CallResult(Generic[T]):
    """Either a value or the kind of failure that prevented one."""
    value: Optional[T] = None
    error: Optional[ErrorKind] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "CallResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, detail: str = "") -> "CallResult[T]":
        return cls(error=kind, detail=detail)

    def unwrap_or(self, default: T) -> T:
        return self.value if self.ok and self.value is not None else default


def classify(exc: BaseException) -> ErrorKind:
    """Map an exception raised by a collaborator onto an ErrorKind."""
    if isinstance(exc, ProviderDisabled):
        return ErrorKind.DISABLED
    if isinstance(exc, (asyncio.TimeoutError, openai.APITimeoutError, httpx.TimeoutException)):
        return ErrorKind.TIMEOUT
    if isinstance(exc, openai.RateLimitError):
        return ErrorKind.QUOTA
    if isinstance(exc, openai.APIStatusError) and exc.status_code == 429:
        return ErrorKind.QUOTA
    if isinstance(exc, (openai.APIError, PyMongoError, httpx.HTTPError, ConnectionError)):
        return ErrorKind.TRANSPORT
    if isinstance(exc, (ValueError, KeyError, TypeError, IndexError)):
        return ErrorKind.MALFORMED
    return ErrorKind.UNKNOWN


async def guarded(call: Awaitable[Any], stage: str, timeout: float) -> CallResult[Any]:
    """Await a collaborator call with a timeout and capture its outcome.

    Cancellation is not captured; every other exception becomes a failed
    result and is logged under the stage name.
    """
    try:
        value = await asyncio.wait_for(call, timeout=timeout)
    except Exception as e:
        kind = classify(e)
        if kind is ErrorKind.DISABLED:
            logger.debug(f"[{stage}] skipped: {e}")
        elif kind is ErrorKind.QUOTA:
            logger.warning(f"[{stage}] provider quota or rate limit reached: {e}")
        elif kind is ErrorKind.UNKNOWN:
            logger.error(f"[{stage}] unexpected failure: {e!r}", exc_info=True)
        else:
            logger.warning(f"[{stage}] failed ({kind.value}): {e!r}")
        return CallResult.failure(kind, str(e))
    return CallResult.success(value)
