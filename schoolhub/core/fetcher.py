"""Builds view models from dependent backend queries.

A view load runs in up to three steps:

1. ``load_ids()`` reads a join table scoped to the caller and returns foreign ids;
2. ``load_rows(ids)`` reads the primary rows for those ids;
3. ``enrich(row)`` runs once per row, concurrently, to attach counts and nested collections.

An empty result at step 1 or 2 ends the load with an empty list and no further queries.
The load is all-or-nothing: if any query fails, sibling fan-out tasks are cancelled and a
single ``ServiceError`` with the view's user-facing message is raised.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Hashable, Iterable, List, Optional, Sequence, TypeVar

from fastapi import status
from sqlalchemy.exc import SQLAlchemyError

from schoolhub.core.exceptions import ServiceError

logger = logging.getLogger(__name__)

K = TypeVar("K")
R = TypeVar("R")
V = TypeVar("V")

DEFAULT_ERROR_MESSAGE = "Could not load data. Please try again later."


async def fan_out(rows: Sequence[R], enrich: Callable[[R], Awaitable[V]]) -> List[V]:
    """Run ``enrich`` for every row concurrently; results keep the order of ``rows``."""
    tasks = [asyncio.ensure_future(enrich(row)) for row in rows]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


def index_by(rows: Iterable[R], key: Callable[[R], Hashable]) -> Dict[Hashable, R]:
    return {key(row): row for row in rows}


def group_by(rows: Iterable[R], key: Callable[[R], Hashable]) -> Dict[Hashable, List[R]]:
    """One-to-many merge: related rows bucketed by foreign key, in input order."""
    groups: Dict[Hashable, List[R]] = {}
    for row in rows:
        groups.setdefault(key(row), []).append(row)
    return groups


async def fetch_view(
    load_ids: Callable[[], Awaitable[Sequence[K]]],
    load_rows: Callable[[List[K]], Awaitable[Sequence[R]]],
    enrich: Optional[Callable[[R], Awaitable[V]]] = None,
    *,
    error_message: str = DEFAULT_ERROR_MESSAGE,
) -> List[Any]:
    try:
        ids = list(dict.fromkeys(await load_ids()))
        if not ids:
            return []
        rows = list(await load_rows(ids))
        if not rows or enrich is None:
            return rows
        return await fan_out(rows, enrich)
    except SQLAlchemyError as e:
        logger.exception("View load failed: %s", error_message)
        raise ServiceError(error_message, status.HTTP_500_INTERNAL_SERVER_ERROR) from e
