"""Form webhook support: authentication, cancellation of booked meetings and result summaries."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Iterable, Protocol

from meetingbridge.client import (
    CancelMeetingRequest,
    ReleaseRoomsRequest,
    TencentApiError,
    TencentMeetingClient,
)
from meetingbridge.handlers import HandlerError

__all__ = [
    "SIMULATION_PREFIX",
    "CANCEL_MARKER",
    "MeetingResult",
    "WebhookResponse",
    "MeetingStore",
    "check_webhook_auth",
    "is_cancellation",
    "get_room_id_for_form",
    "cancel_form_meetings",
    "summarize_results",
]

logger = logging.getLogger(__name__)

SIMULATION_PREFIX = "simulation-"
CANCEL_MARKER = "取消"
_CHENGDU_MARKERS = ("成都", "chengdu")

_CANCEL_INSTANCE_ID = 32
_CANCEL_REASON_CODE = 1
_CANCEL_REASON_DETAIL = "Form submission cancelled"


class MeetingStore(Protocol):
    """The part of the meeting record store that the webhook needs."""

    def cancel_meeting(self, token: str) -> list[tuple[str, str]]:
        """Mark the meetings of a form entry cancelled; return their (meeting id, room id) pairs."""
        ...


@dataclass
class MeetingResult:
    """Outcome of creating one (possibly merged) meeting."""

    meeting_id: str | None
    merged: bool
    room_name: str
    time_slots: list[str] = field(default_factory=list)
    success: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "meeting_id": self.meeting_id,
            "merged": self.merged,
            "room_name": self.room_name,
            "time_slots": list(self.time_slots),
            "success": self.success,
        }


@dataclass
class WebhookResponse:
    """Answer returned to the form service."""

    success: bool
    message: str
    meetings_count: int = 0
    meetings: list[MeetingResult] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "meetings_count": self.meetings_count,
            "meetings": [meeting.to_dict() for meeting in self.meetings],
        }


def check_webhook_auth(expected_token: str | None, provided_token: str | None) -> bool:
    """Accept the request or raise ``HandlerError`` with 401.

    With no expected token configured every request is accepted.
    """
    if expected_token is None:
        return True
    if provided_token is None:
        logger.error("No authentication token provided for webhook request")
        raise HandlerError(HTTPStatus.UNAUTHORIZED, "missing webhook token")
    if provided_token != expected_token:
        logger.error("Invalid webhook authentication token provided")
        raise HandlerError(HTTPStatus.UNAUTHORIZED, "invalid webhook token")
    logger.info("Webhook request authenticated successfully")
    return True


def is_cancellation(reservation_status: str) -> bool:
    """Tell whether a form's reservation status asks for cancellation."""
    return CANCEL_MARKER in reservation_status.lower()


def get_room_id_for_form(form_name: str, xa_room_id: str, cd_room_id: str) -> str:
    """Choose the Chengdu room for Chengdu forms and the Xi'an room for every other form."""
    lowered = form_name.lower()
    if any(marker in lowered for marker in _CHENGDU_MARKERS):
        return cd_room_id
    return xa_room_id


def _empty_response(success: bool, message: str) -> WebhookResponse:
    return WebhookResponse(success=success, message=message, meetings_count=0, meetings=[])


async def cancel_form_meetings(
    client: TencentMeetingClient,
    database: MeetingStore,
    token: str,
    simulate: bool,
) -> WebhookResponse:
    """Cancel every active meeting booked for a form entry.

    Each meeting first has its room released, then is cancelled. In simulation
    mode, or when any stored meeting is a simulated one, only the store is
    updated.
    """
    logger.info("Form submission with token %s is a cancellation request", token)
    try:
        cancelled = list(database.cancel_meeting(token))
    except Exception as exc:
        logger.error("Failed to lookup meetings for cancellation: %s", exc)
        raise HandlerError(HTTPStatus.INTERNAL_SERVER_ERROR, str(exc)) from exc

    if not cancelled:
        logger.warning("No active meetings found with token: %s", token)
        return _empty_response(False, f"No active meetings found with token: {token}")

    logger.info("Found %d meetings to cancel with token: %s", len(cancelled), token)

    if simulate or any(mid.startswith(SIMULATION_PREFIX) for mid, _ in cancelled):
        logger.info(
            "Simulation mode: %d meetings marked as cancelled in database: %s",
            len(cancelled),
            [mid for mid, _ in cancelled],
        )
        return _empty_response(
            True, f"Simulation: {len(cancelled)} meetings cancelled successfully"
        )

    succeeded = 0
    failed = 0
    for meeting_id, room_id in cancelled:
        release = ReleaseRoomsRequest(
            operator_id=client.operator_id,
            operator_id_type=1,
            meeting_room_id_list=[room_id],
        )
        try:
            await client.release_rooms(meeting_id, release)
        except TencentApiError as exc:
            logger.error("Failed to release room %s for meeting %s: %s", room_id, meeting_id, exc)
            failed += 1
            continue
        logger.info("Successfully released room %s for meeting %s", room_id, meeting_id)

        cancel = CancelMeetingRequest(
            userid=client.operator_id,
            instanceid=_CANCEL_INSTANCE_ID,
            reason_code=_CANCEL_REASON_CODE,
            reason_detail=_CANCEL_REASON_DETAIL,
        )
        try:
            await client.cancel_meeting(meeting_id, cancel)
        except TencentApiError as exc:
            logger.error("Failed to cancel meeting %s: %s", meeting_id, exc)
            failed += 1
            continue
        logger.info("Successfully cancelled meeting with ID: %s", meeting_id)
        succeeded += 1

    if failed == 0:
        logger.info("Successfully cancelled all %d meetings", succeeded)
        return _empty_response(True, f"Successfully cancelled {succeeded} meetings")

    logger.warning("Cancelled %d meetings, but %d failed", succeeded, failed)
    return _empty_response(
        succeeded > 0, f"Cancelled {succeeded} meetings, but {failed} failed"
    )


def summarize_results(
    results: Iterable[MeetingResult], slot_count: int, all_successful: bool
) -> WebhookResponse:
    """Build the final webhook answer from the meetings created for a form."""
    meetings = list(results)
    created = sum(1 for result in meetings if result.meeting_id is not None)
    merged = sum(1 for result in meetings if result.merged)

    if merged > 0:
        message = f"Created {created} meetings ({merged} merged) from {slot_count} time slots"
    else:
        message = f"Created {created} meetings from {slot_count} time slots"

    return WebhookResponse(
        success=all_successful and created > 0,
        message=message,
        meetings_count=len(meetings),
        meetings=meetings,
    )