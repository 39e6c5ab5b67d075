import json
from http import HTTPStatus

import httpx
import pytest
import respx

from meetingbridge.client import Operator, TencentMeetingClient
from meetingbridge.handlers import (
    HandlerError,
    book_rooms,
    cancel_meeting,
    create_meeting,
    health_check,
    list_meeting_rooms,
    release_rooms,
)

BASE = "https://api.example.com"

ROOMS = {
    "total_count": 1,
    "current_size": 1,
    "current_page": 1,
    "total_page": 1,
    "meeting_room_list": [
        {
            "meeting_room_id": "room123",
            "meeting_room_name": "Test Room",
            "meeting_room_location": "Floor 1",
            "account_new_type": 1,
            "account_type": 1,
            "active_code": "code",
            "participant_number": 10,
            "meeting_room_status": 1,
            "scheduled_status": 1,
            "is_allow_call": True,
        }
    ],
}

CREATED = {
    "meeting_number": 1,
    "meeting_info_list": [
        {
            "subject": "Test Meeting",
            "meeting_id": "meeting123",
            "meeting_code": "123",
            "start_time": "1",
            "end_time": "2",
        }
    ],
}


def make_client():
    return TencentMeetingClient(
        app_id="app",
        secret_id="sid",
        secret_key="placeholder",
        endpoint=BASE,
        operators=[Operator(name="alice", id="op1")],
        http_client=httpx.AsyncClient(),
    )


@pytest.mark.asyncio
async def test_health_check():
    assert await health_check() == "OK"


@pytest.mark.asyncio
async def test_list_meeting_rooms_round_trip():
    with respx.mock(base_url=BASE) as mock:
        route = mock.get("/v1/meeting-rooms").mock(return_value=httpx.Response(200, json=ROOMS))
        client = make_client()
        result = await list_meeting_rooms(client, 2, 5)
        await client.aclose()
    assert result == ROOMS
    params = route.calls.last.request.url.params
    assert params["page"] == "2"
    assert params["page_size"] == "5"
    assert params["operator_id"] == "op1"


@pytest.mark.asyncio
async def test_list_meeting_rooms_bad_response_is_server_error():
    with respx.mock(base_url=BASE) as mock:
        mock.get("/v1/meeting-rooms").mock(return_value=httpx.Response(500, text="oops"))
        client = make_client()
        with pytest.raises(HandlerError) as info:
            await list_meeting_rooms(client, 1, 10)
        await client.aclose()
    assert info.value.status == HTTPStatus.INTERNAL_SERVER_ERROR


@pytest.mark.asyncio
async def test_create_meeting_returns_response():
    payload = {
        "userid": "op1",
        "instanceid": 32,
        "subject": "Test Meeting",
        "type": 0,
        "start_time": "1",
        "end_time": "2",
    }
    with respx.mock(base_url=BASE) as mock:
        route = mock.post("/v1/meetings").mock(return_value=httpx.Response(200, json=CREATED))
        client = make_client()
        result = await create_meeting(client, payload)
        await client.aclose()
    assert result == CREATED
    assert json.loads(route.calls.last.request.content) == payload


@pytest.mark.asyncio
async def test_create_meeting_invalid_payload():
    client = make_client()
    with pytest.raises(HandlerError) as info:
        await create_meeting(client, {"subject": "Test Meeting"})
    await client.aclose()
    assert info.value.status == HTTPStatus.UNPROCESSABLE_ENTITY


@pytest.mark.asyncio
async def test_cancel_meeting_ok():
    payload = {"userid": "op1", "instanceid": 32, "reason_code": 1}
    with respx.mock(base_url=BASE) as mock:
        route = mock.post("/v1/meetings/meeting123/cancel").mock(
            return_value=httpx.Response(200, text="")
        )
        client = make_client()
        status = await cancel_meeting(client, "meeting123", payload)
        await client.aclose()
    assert status == HTTPStatus.OK
    assert json.loads(route.calls.last.request.content) == payload


@pytest.mark.asyncio
async def test_book_rooms_ok():
    payload = {
        "operator_id": "op1",
        "operator_id_type": 1,
        "meeting_room_id_list": ["room123"],
        "subject_visible": True,
    }
    with respx.mock(base_url=BASE) as mock:
        route = mock.post("/v1/meetings/meeting123/book-rooms").mock(
            return_value=httpx.Response(200, text="")
        )
        client = make_client()
        status = await book_rooms(client, "meeting123", payload)
        await client.aclose()
    assert status == HTTPStatus.OK
    assert json.loads(route.calls.last.request.content) == payload


@pytest.mark.asyncio
async def test_release_rooms_network_failure():
    payload = {
        "operator_id": "op1",
        "operator_id_type": 1,
        "meeting_room_id_list": ["room123"],
    }
    with respx.mock(base_url=BASE) as mock:
        mock.post("/v1/meetings/meeting123/release-rooms").mock(
            side_effect=httpx.ConnectError("down")
        )
        client = make_client()
        with pytest.raises(HandlerError) as info:
            await release_rooms(client, "meeting123", payload)
        await client.aclose()
    assert info.value.status == HTTPStatus.INTERNAL_SERVER_ERROR


@pytest.mark.asyncio
async def test_release_rooms_invalid_list():
    client = make_client()
    with pytest.raises(HandlerError) as info:
        await release_rooms(
            client,
            "meeting123",
            {"operator_id": "op1", "operator_id_type": 1, "meeting_room_id_list": [1]},
        )
    await client.aclose()
    assert info.value.status == HTTPStatus.UNPROCESSABLE_ENTITY