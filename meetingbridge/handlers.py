"""Endpoint handlers that expose the meeting client's operations to a web layer."""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any, Callable, Mapping, TypeVar

from meetingbridge.client import (
    BookRoomsRequest,
    CancelMeetingRequest,
    CreateMeetingRequest,
    ReleaseRoomsRequest,
    TencentApiError,
    TencentMeetingClient,
)

__all__ = [
    "HandlerError",
    "health_check",
    "list_meeting_rooms",
    "create_meeting",
    "cancel_meeting",
    "book_rooms",
    "release_rooms",
]

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


class HandlerError(Exception):
    """Raised by a handler to answer with an HTTP error status."""

    def __init__(self, status: HTTPStatus, message: str = "") -> None:
        super().__init__(message or status.phrase)
        self.status = status
        self.message = message or status.phrase


def _parse_payload(parse: Callable[[Any], _T], payload: Mapping[str, Any]) -> _T:
    try:
        return parse(payload)
    except TencentApiError as exc:
        logger.error("Rejected request body: %s", exc)
        raise HandlerError(HTTPStatus.UNPROCESSABLE_ENTITY, exc.message) from exc


def _server_error(action: str, exc: Exception) -> HandlerError:
    logger.error("Failed to %s: %s", action, exc)
    return HandlerError(HTTPStatus.INTERNAL_SERVER_ERROR, str(exc))


async def health_check() -> str:
    """Report that the service is up."""
    return "OK"


async def list_meeting_rooms(
    client: TencentMeetingClient, page: int, page_size: int
) -> dict[str, Any]:
    """Return one page of meeting rooms as a JSON-ready dict."""
    logger.info(
        "Received request to list meeting rooms with page=%s, page_size=%s", page, page_size
    )
    try:
        response = await client.list_rooms(page, page_size)
    except TencentApiError as exc:
        raise _server_error("retrieve meeting rooms", exc) from exc
    logger.info("Successfully retrieved %d meeting rooms", len(response.meeting_room_list))
    return response.to_dict()


async def create_meeting(
    client: TencentMeetingClient, payload: Mapping[str, Any]
) -> dict[str, Any]:
    """Create a meeting from a JSON body and return the API's answer."""
    request = _parse_payload(CreateMeetingRequest.from_dict, payload)
    logger.info("Received request to create new meeting: %s", request.subject)
    try:
        response = await client.create_meeting(request)
    except TencentApiError as exc:
        raise _server_error("create meeting", exc) from exc
    logger.info("Successfully created %d meetings", response.meeting_number)
    return response.to_dict()


async def cancel_meeting(
    client: TencentMeetingClient, meeting_id: str, payload: Mapping[str, Any]
) -> HTTPStatus:
    """Cancel the meeting with this id."""
    request = _parse_payload(CancelMeetingRequest.from_dict, payload)
    logger.info("Received request to cancel meeting: %s", meeting_id)
    try:
        await client.cancel_meeting(meeting_id, request)
    except TencentApiError as exc:
        raise _server_error("cancel meeting", exc) from exc
    logger.info("Successfully cancelled meeting: %s", meeting_id)
    return HTTPStatus.OK


async def book_rooms(
    client: TencentMeetingClient, meeting_id: str, payload: Mapping[str, Any]
) -> HTTPStatus:
    """Book meeting rooms for the meeting with this id."""
    request = _parse_payload(BookRoomsRequest.from_dict, payload)
    logger.info("Received request to book rooms for meeting: %s", meeting_id)
    try:
        await client.book_rooms(meeting_id, request)
    except TencentApiError as exc:
        raise _server_error("book rooms", exc) from exc
    logger.info("Successfully booked rooms for meeting: %s", meeting_id)
    return HTTPStatus.OK


async def release_rooms(
    client: TencentMeetingClient, meeting_id: str, payload: Mapping[str, Any]
) -> HTTPStatus:
    """Release the meeting rooms held by the meeting with this id."""
    request = _parse_payload(ReleaseRoomsRequest.from_dict, payload)
    logger.info("Received request to release rooms for meeting: %s", meeting_id)
    try:
        await client.release_rooms(meeting_id, request)
    except TencentApiError as exc:
        raise _server_error("release rooms", exc) from exc
    logger.info("Successfully released rooms for meeting: %s", meeting_id)
    return HTTPStatus.OK