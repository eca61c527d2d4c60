# /portal_dashboard/services/dashboard_helpers/source_fetch.py

"""
Fetch stage of the dashboard pipeline.

The primary snapshot is awaited on its own and any failure aborts the cycle.
Secondary sources are launched together and joined with
`asyncio.gather(..., return_exceptions=True)`, so one failing source never
cancels the others; each result is captured as a `SourceOutcome`.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Generic, List, Sequence, Tuple, TypeVar, Union

from ..portal_api import PortalAPIError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Fetcher = Callable[[], Awaitable[Any]]


# --- Outcome Types ---
# A settled source is either its value or the exception it raised.
@dataclass(frozen=True)
class Fulfilled(Generic[T]):
    value: T


@dataclass(frozen=True)
class Rejected:
    reason: BaseException


SourceOutcome = Union[Fulfilled, Rejected]


class SnapshotUnavailableError(Exception):
    """The mandatory dashboard snapshot could not be fetched; no bundle exists for this cycle."""

    def __init__(self, role: str, message: str, status_code: Any = None):
        super().__init__(message)
        self.role = role
        self.message = message
        self.status_code = status_code


# --- Fetch Stages ---

async def fetch_primary(role: str, fetcher: Fetcher) -> Dict[str, Any]:
    try:
        snapshot = await fetcher()
    except PortalAPIError as e:
        logger.error("Dashboard snapshot fetch failed for role '%s': %s", role, e.message)
        raise SnapshotUnavailableError(role, e.message, e.status_code) from e
    except Exception as e:
        logger.error("Dashboard snapshot fetch failed for role '%s': %s", role, e)
        raise SnapshotUnavailableError(role, "Unable to load the dashboard.") from e

    # A snapshot that is not a mapping still counts as a successful fetch;
    # every fallback field is then simply absent.
    return snapshot if isinstance(snapshot, dict) else {}


async def _settle(fetcher: Fetcher) -> SourceOutcome:
    try:
        return Fulfilled(await fetcher())
    except Exception as e:
        return Rejected(e)


async def fetch_each_settled(fetchers: Sequence[Fetcher]) -> List[SourceOutcome]:
    """Runs every fetcher concurrently; outcomes keep the input order."""
    if not fetchers:
        return []
    results = await asyncio.gather(*(_settle(f) for f in fetchers), return_exceptions=True)

    # _settle already catches Exception; anything left here is a
    # BaseException subclass gather handed back to us.
    outcomes: List[SourceOutcome] = []
    for result in results:
        if isinstance(result, BaseException):
            outcomes.append(Rejected(result))
        else:
            outcomes.append(result)
    return outcomes


async def fetch_all_settled(named_fetchers: Sequence[Tuple[str, Fetcher]]) -> Dict[str, SourceOutcome]:
    names = [name for name, _ in named_fetchers]
    outcomes = await fetch_each_settled([fetcher for _, fetcher in named_fetchers])

    settled: Dict[str, SourceOutcome] = {}
    for name, outcome in zip(names, outcomes):
        if isinstance(outcome, Rejected):
            logger.warning("Secondary source '%s' failed, falling back to snapshot data: %s", name, outcome.reason)
        settled[name] = outcome
    return settled
