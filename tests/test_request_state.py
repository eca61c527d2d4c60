# /tests/test_request_state.py

import asyncio

import pytest
import requests
from unittest.mock import AsyncMock, MagicMock

from portal_dashboard.services.dashboard_helpers.source_fetch import SnapshotUnavailableError
from portal_dashboard.services.portal_api import PortalAPIError
from portal_dashboard.services.request_state import RequestState, extract_error_message


def test_extract_error_message_prefers_structured_messages():
    assert extract_error_message(PortalAPIError("Invalid credentials")) == "Invalid credentials"
    assert extract_error_message(SnapshotUnavailableError("admin", "Server error", status_code=500)) == "Server error"
    assert extract_error_message(PortalAPIError("")) == "Unable to fetch data."
    assert extract_error_message(RuntimeError("boom"), "Custom fallback") == "Custom fallback"


def test_unwrapped_http_error_gets_the_fallback():
    # Only the portal client's wrapped errors are trusted for their message.
    response = MagicMock(spec=requests.Response)
    response.json.return_value = {"message": "Course not found"}
    error = requests.HTTPError("400 Client Error", response=response)

    assert extract_error_message(error) == "Unable to fetch data."


@pytest.mark.asyncio
async def test_successful_execute_stores_data_and_clears_loading():
    state = RequestState(AsyncMock(return_value={"courses": 3}))

    result = await state.execute()

    assert result == {"courses": 3}
    assert state.data == {"courses": 3}
    assert state.loading is False
    assert state.error == ""


@pytest.mark.asyncio
async def test_execute_forwards_arguments_to_fetcher():
    fetcher = AsyncMock(return_value=[])
    await RequestState(fetcher).execute("c1", section="A")
    fetcher.assert_awaited_once_with("c1", section="A")


@pytest.mark.asyncio
async def test_loading_is_true_while_fetch_is_in_flight():
    release = asyncio.Event()

    async def slow_fetch():
        await release.wait()
        return "done"

    state = RequestState(slow_fetch)
    task = asyncio.create_task(state.execute())
    await asyncio.sleep(0)

    assert state.loading is True
    release.set()
    await task
    assert state.loading is False


@pytest.mark.asyncio
async def test_failure_sets_error_notifies_and_reraises():
    """
    GIVEN: a state that already holds data from an earlier success.
    WHEN:  the next execute fails with a portal error.
    THEN:  the error is recorded and reported once, the exception propagates
           and the earlier data is kept.
    """
    notifications = []
    fetcher = AsyncMock(side_effect=[["first"], PortalAPIError("Marks service offline", status_code=503)])
    state = RequestState(fetcher, notify=notifications.append)

    await state.execute()
    with pytest.raises(PortalAPIError):
        await state.execute()

    assert state.data == ["first"]
    assert state.error == "Marks service offline"
    assert notifications == ["Marks service offline"]
    assert state.loading is False
    print("\n✅ SUCCESS: test_failure_sets_error_notifies_and_reraises passed.")


@pytest.mark.asyncio
async def test_unexpected_failure_uses_configured_message():
    notifications = []
    state = RequestState(AsyncMock(side_effect=KeyError("x")), error_message="Unable to load fees.", notify=notifications.append)

    with pytest.raises(KeyError):
        await state.execute()

    assert state.error == "Unable to load fees."
    assert notifications == ["Unable to load fees."]


@pytest.mark.asyncio
async def test_new_execute_clears_previous_error():
    fetcher = AsyncMock(side_effect=[PortalAPIError("down"), "recovered"])
    state = RequestState(fetcher, notify=lambda message: None)

    with pytest.raises(PortalAPIError):
        await state.execute()
    await state.execute()

    assert state.error == ""
    assert state.data == "recovered"


@pytest.mark.asyncio
async def test_default_notification_goes_to_the_error_log(caplog):
    state = RequestState(AsyncMock(side_effect=PortalAPIError("Session expired")))

    with pytest.raises(PortalAPIError):
        await state.execute()

    assert "Session expired" in caplog.text
