# /tests/test_source_fetch.py

import asyncio

import pytest
from unittest.mock import AsyncMock

from portal_dashboard.services.dashboard_helpers.source_fetch import (
    Fulfilled,
    Rejected,
    SnapshotUnavailableError,
    fetch_all_settled,
    fetch_each_settled,
    fetch_primary,
)
from portal_dashboard.services.portal_api import PortalAPIError


@pytest.mark.asyncio
async def test_primary_failure_is_fatal_and_keeps_portal_message():
    fetcher = AsyncMock(side_effect=PortalAPIError("Session expired", status_code=401))

    with pytest.raises(SnapshotUnavailableError) as excinfo:
        await fetch_primary("student", fetcher)

    assert excinfo.value.message == "Session expired"
    assert excinfo.value.status_code == 401
    assert excinfo.value.role == "student"


@pytest.mark.asyncio
async def test_primary_unexpected_error_gets_generic_message():
    with pytest.raises(SnapshotUnavailableError) as excinfo:
        await fetch_primary("teacher", AsyncMock(side_effect=KeyError("data")))
    assert excinfo.value.message == "Unable to load the dashboard."
    assert isinstance(excinfo.value.__cause__, KeyError)


@pytest.mark.asyncio
async def test_primary_non_mapping_snapshot_becomes_empty():
    assert await fetch_primary("admin", AsyncMock(return_value=["odd"])) == {}


@pytest.mark.asyncio
async def test_one_failing_source_does_not_abort_the_others():
    outcomes = await fetch_all_settled([
        ("attendance", AsyncMock(return_value=[1, 2])),
        ("marks", AsyncMock(side_effect=PortalAPIError("down"))),
        ("notices", AsyncMock(return_value=[])),
    ])

    assert list(outcomes) == ["attendance", "marks", "notices"]
    assert outcomes["attendance"] == Fulfilled([1, 2])
    assert isinstance(outcomes["marks"], Rejected)
    assert outcomes["notices"] == Fulfilled([])


@pytest.mark.asyncio
async def test_secondary_sources_run_concurrently():
    """
    Each fetcher waits for the other's signal, so the join only completes
    when both are in flight at the same time.
    """
    first_started, second_started = asyncio.Event(), asyncio.Event()

    async def first():
        first_started.set()
        await asyncio.wait_for(second_started.wait(), timeout=1)
        return "first"

    async def second():
        second_started.set()
        await asyncio.wait_for(first_started.wait(), timeout=1)
        return "second"

    outcomes = await fetch_each_settled([first, second])
    assert outcomes == [Fulfilled("first"), Fulfilled("second")]


@pytest.mark.asyncio
async def test_failed_source_is_not_retried():
    fetcher = AsyncMock(side_effect=PortalAPIError("down"))
    await fetch_all_settled([("fees", fetcher)])
    fetcher.assert_awaited_once()


@pytest.mark.asyncio
async def test_no_fetchers_yields_no_outcomes():
    assert await fetch_each_settled([]) == []
