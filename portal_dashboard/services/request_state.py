# /portal_dashboard/services/request_state.py

import logging
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from .dashboard_helpers.source_fetch import SnapshotUnavailableError
from .portal_api import PortalAPIError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_ERROR_MESSAGE = "Unable to fetch data."


def extract_error_message(error: BaseException, fallback: str = DEFAULT_ERROR_MESSAGE) -> str:
    """
    Pulls a human-readable message out of a failed call. The portal client
    wraps every transport and HTTP failure in `PortalAPIError`, so only that
    and `SnapshotUnavailableError` carry a structured `message`; anything
    else gets the generic fallback.
    """
    if isinstance(error, (PortalAPIError, SnapshotUnavailableError)) and error.message:
        return error.message
    return fallback


def _log_notification(message: str) -> None:
    logger.error(message)


class RequestState(Generic[T]):
    """
    Wraps one asynchronous fetcher and exposes its latest outcome as
    `data`, `loading` and `error`.

    `execute()` may be called again while a previous call is in flight; the
    state keeps whichever call finishes last. A failed call leaves the
    previous `data` in place.
    """

    def __init__(
        self,
        fetcher: Callable[..., Awaitable[T]],
        error_message: str = DEFAULT_ERROR_MESSAGE,
        notify: Optional[Callable[[str], None]] = None,
    ):
        self.fetcher = fetcher
        self.error_message = error_message
        self.notify = notify or _log_notification
        self.data: Optional[T] = None
        self.loading = False
        self.error = ""

    async def execute(self, *args: Any, **kwargs: Any) -> T:
        self.loading = True
        self.error = ""
        try:
            result = await self.fetcher(*args, **kwargs)
            self.data = result
            return result
        except Exception as e:
            message = extract_error_message(e, self.error_message)
            self.error = message
            self.notify(message)
            raise
        finally:
            self.loading = False
