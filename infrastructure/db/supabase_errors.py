"""Translate Supabase/PostgREST failures and malformed rows into the application error taxonomy."""

import logging
from typing import Any, Iterable, List, Optional, Type, TypeVar

import httpx
from postgrest import APIError
from pydantic import BaseModel, ValidationError as PydanticValidationError

from application.errors import RemoteError

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


async def execute(query: Any, operation: str) -> Any:
    """Await ``query.execute()``; raise RemoteError on store or network failure.

    Args:
        query: A built postgrest request (select/insert/update/delete chain).
        operation: Short label used in the error message and log line.
    """
    try:
        return await query.execute()
    except APIError as e:
        logger.error("Store error during %s: %s", operation, e.message)
        raise RemoteError(f"{operation} failed: {e.message}") from e
    except httpx.HTTPError as e:
        logger.error("Network error during %s: %s", operation, e)
        raise RemoteError(f"{operation} failed: {e}") from e


def parse_rows(model: Type[M], rows: Optional[Iterable[Any]], operation: str) -> List[M]:
    """Validate returned rows; a malformed row raises RemoteError."""
    try:
        return [model.model_validate(row) for row in rows or []]
    except PydanticValidationError as e:
        logger.error("Malformed %s row during %s: %s", model.__name__, operation, e)
        raise RemoteError(f"{operation} returned a malformed row") from e


def parse_first(model: Type[M], rows: Optional[Iterable[Any]], operation: str) -> Optional[M]:
    """Validate the first returned row, or None when nothing matched."""
    parsed = parse_rows(model, list(rows or [])[:1], operation)
    return parsed[0] if parsed else None
