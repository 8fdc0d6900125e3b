"""Concurrent record fetchers.

Each view needs a few independent reads (incomes, expenses, profiles...).
They run concurrently in worker threads and are awaited together; if any
one fails the whole group fails with a single ``FetchError`` and no partial
data is returned.
"""
import asyncio
from datetime import date
from typing import Any, Awaitable, Callable, Dict, Optional

from loguru import logger

from auth.context import AuthContext
from errors import FetchError


async def fetch_all(**fetches: Callable[[], Any]) -> Dict[str, Any]:
    """Run blocking fetch callables concurrently.

    Args:
        **fetches: name -> zero-argument callable.

    Returns:
        name -> result, only when every fetch succeeded.

    Raises:
        FetchError: Wrapping the first failure.
    """
    names = list(fetches)
    tasks = [asyncio.create_task(asyncio.to_thread(fetches[n])) for n in names]
    try:
        results = await asyncio.gather(*tasks)
    except Exception as e:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.error(f"Fetch failed ({', '.join(names)}): {e}")
        raise FetchError(f"Failed to load data: {e}") from e
    return dict(zip(names, results))


def run_fetches(coro: Awaitable[Dict[str, Any]]) -> Dict[str, Any]:
    """Run a fetch coroutine from synchronous code (scripts, CLI)."""
    return asyncio.run(coro)


async def fetch_records(db, auth: AuthContext, start: Optional[date] = None,
                        end: Optional[date] = None) -> Dict[str, Any]:
    """Incomes and expenses visible to the caller.

    Admins see every record, users only their own. ``start`` and ``end``
    bound both lists inclusively.
    """
    scope = auth.scope_user_id
    return await fetch_all(
        incomes=lambda: db.list_incomes(scope, start, end),
        expenses=lambda: db.list_expenses(scope, start, end),
    )


async def fetch_dashboard(db, auth: AuthContext,
                          instructor_id: Optional[int] = None) -> Dict[str, Any]:
    """Records plus the profiles needed for instructor names.

    ``instructor_id`` narrows an admin's view to one instructor; it is
    ignored for non-admins, who only ever see their own records.
    """
    scope = auth.scope_user_id
    if auth.is_admin and instructor_id is not None:
        scope = instructor_id
    return await fetch_all(
        incomes=lambda: db.list_incomes(scope),
        expenses=lambda: db.list_expenses(scope),
        profiles=db.list_profiles,
    )
