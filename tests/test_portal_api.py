# /tests/test_portal_api.py

import json

import pytest
import requests

from portal_dashboard.core.session import SessionContext
from portal_dashboard.services.portal_api import GENERIC_ERROR_MESSAGE, PortalAPIClient, PortalAPIError

BASE_URL = "http://portal.test/api"


def make_response(status_code, body=None, raw=None):
    response = requests.Response()
    response.status_code = status_code
    response.url = BASE_URL
    response._content = raw if raw is not None else json.dumps(body).encode("utf-8")
    return response


@pytest.fixture
def http():
    return requests.Session()


@pytest.fixture
def client(http):
    return PortalAPIClient(SessionContext(token="tok-1"), base_url=BASE_URL + "/", timeout=5, http=http)


@pytest.mark.asyncio
async def test_successful_call_unwraps_data_envelope(client, http, mocker):
    request = mocker.patch.object(http, "request", return_value=make_response(200, {
        "success": True, "data": [{"courseCode": "CS101"}], "message": "ok",
    }))

    result = await client.get_student_attendance()

    assert result == [{"courseCode": "CS101"}]
    args, kwargs = request.call_args
    assert args == ("GET", f"{BASE_URL}/student/attendance")
    assert kwargs["headers"] == {"Authorization": "Bearer tok-1"}
    assert kwargs["timeout"] == 5


@pytest.mark.asyncio
async def test_body_without_envelope_is_returned_as_is(client, http, mocker):
    mocker.patch.object(http, "request", return_value=make_response(200, {"totals": {"students": 10}}))
    assert await client.get_admin_dashboard() == {"totals": {"students": 10}}


@pytest.mark.asyncio
async def test_error_status_carries_portal_message(client, http, mocker):
    mocker.patch.object(http, "request", return_value=make_response(401, {"success": False, "message": "jwt expired"}))

    with pytest.raises(PortalAPIError) as excinfo:
        await client.get_student_dashboard()

    assert excinfo.value.message == "jwt expired"
    assert excinfo.value.status_code == 401
    assert excinfo.value.is_unauthorized is True
    assert excinfo.value.payload == {"success": False, "message": "jwt expired"}
    print("\n✅ SUCCESS: test_error_status_carries_portal_message passed.")


@pytest.mark.asyncio
async def test_error_status_without_message_uses_generic_text(client, http, mocker):
    mocker.patch.object(http, "request", return_value=make_response(500, raw=b"<html>Bad gateway</html>"))

    with pytest.raises(PortalAPIError) as excinfo:
        await client.get_teacher_courses()

    assert excinfo.value.message == GENERIC_ERROR_MESSAGE
    assert excinfo.value.status_code == 500


@pytest.mark.asyncio
async def test_transport_failure_becomes_portal_error(client, http, mocker):
    mocker.patch.object(http, "request", side_effect=requests.ConnectionError("connection refused"))

    with pytest.raises(PortalAPIError) as excinfo:
        await client.get_student_fees()

    assert excinfo.value.status_code is None
    assert "unreachable" in excinfo.value.message


@pytest.mark.asyncio
async def test_non_json_success_is_an_error(client, http, mocker):
    mocker.patch.object(http, "request", return_value=make_response(200, raw=b"not json"))

    with pytest.raises(PortalAPIError):
        await client.get_student_marks()


@pytest.mark.asyncio
async def test_roster_and_assignment_requests_carry_no_query(client, http, mocker):
    request = mocker.patch.object(http, "request", return_value=make_response(200, {"data": []}))

    await client.get_course_students("c1")
    assert request.call_args.args[1] == f"{BASE_URL}/teacher/courses/c1/students"
    assert request.call_args.kwargs["params"] is None

    await client.get_teacher_assignments()
    assert request.call_args.args[1] == f"{BASE_URL}/teacher/assignments"
    assert request.call_args.kwargs["params"] is None


@pytest.mark.asyncio
async def test_anonymous_login_posts_credentials_without_auth_header(http, mocker):
    request = mocker.patch.object(http, "request", return_value=make_response(200, {"data": {"token": "new"}}))
    client = PortalAPIClient(SessionContext(), base_url=BASE_URL, http=http)

    assert await client.login({"email": "a@campus.edu", "password": "x"}) == {"token": "new"}
    assert request.call_args.args[0] == "POST"
    assert request.call_args.kwargs["json"] == {"email": "a@campus.edu", "password": "x"}
    assert request.call_args.kwargs["headers"] == {}
