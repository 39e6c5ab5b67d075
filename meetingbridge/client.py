"""Asynchronous client for the Tencent Meeting REST API, with its request and response types."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

import httpx
from dotenv import load_dotenv

from meetingbridge.auth import generate_nonce, generate_signature, get_timestamp

__all__ = [
    "DEFAULT_ENDPOINT",
    "TencentApiError",
    "Operator",
    "MeetingRoomItem",
    "MeetingRoomsResponse",
    "User",
    "Guest",
    "MeetingSettings",
    "RecurringRule",
    "LiveConfig",
    "CreateMeetingRequest",
    "MeetingInfo",
    "CreateMeetingResponse",
    "CancelMeetingRequest",
    "BookRoomsRequest",
    "ReleaseRoomsRequest",
    "parse_operators",
    "TencentMeetingClient",
]

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://api.meeting.qq.com"
DEFAULT_OPERATOR = "admin"

# Environment variables that must be present, in the order they are checked:
# the application id, the credential id and the signing credential.
_REQUIRED_ENV = (
    "TENCENT_MEETING_APP_ID",
    "TENCENT_MEETING_SECRET_ID",
    "TENCENT_MEETING_SECRET_KEY",
)


class TencentApiError(Exception):
    """Raised when a request to the API fails or its response cannot be understood."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"Tencent API Error: {self.message}"


# --- JSON helpers ---------------------------------------------------------

def _matches(value: Any, kind: type) -> bool:
    if kind is int:
        return isinstance(value, int) and not isinstance(value, bool)
    return isinstance(value, kind)


def _require_mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise TencentApiError(f"JSON parsing error: expected an object for {what}")
    return data


def _field(data: Mapping[str, Any], key: str, kind: type, optional: bool = False) -> Any:
    value = data.get(key)
    if value is None:
        if optional:
            return None
        raise TencentApiError(f"JSON parsing error: missing field `{key}`")
    if not _matches(value, kind):
        raise TencentApiError(
            f"JSON parsing error: invalid type for field `{key}`, expected {kind.__name__}"
        )
    return value


def _object_list(data: Mapping[str, Any], key: str, item_type: Any, optional: bool = False):
    items = _field(data, key, list, optional)
    if items is None:
        return None
    return [item_type.from_dict(item) for item in items]


def _string_list(data: Mapping[str, Any], key: str) -> list[str]:
    items = _field(data, key, list)
    if not all(isinstance(item, str) for item in items):
        raise TencentApiError(f"JSON parsing error: invalid type in list `{key}`")
    return list(items)


def _compact(**fields: Any) -> dict[str, Any]:
    """Build a dict, leaving out the fields whose value is None."""
    return {key: value for key, value in fields.items() if value is not None}


def _to_json(payload: Mapping[str, Any]) -> str:
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def _parse_json(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError as exc:
        raise TencentApiError(f"JSON parsing error: {exc}") from exc


# --- Data types -------------------------------------------------------------

@dataclass(frozen=True)
class Operator:
    """A named operator account that acts on behalf of the service."""

    name: str
    id: str


@dataclass
class MeetingRoomItem:
    meeting_room_id: str
    meeting_room_name: str
    meeting_room_location: str
    account_new_type: int
    account_type: int
    active_code: str
    participant_number: int
    meeting_room_status: int
    scheduled_status: int
    is_allow_call: bool

    @classmethod
    def from_dict(cls, data: Any) -> "MeetingRoomItem":
        data = _require_mapping(data, "meeting room")
        return cls(
            meeting_room_id=_field(data, "meeting_room_id", str),
            meeting_room_name=_field(data, "meeting_room_name", str),
            meeting_room_location=_field(data, "meeting_room_location", str),
            account_new_type=_field(data, "account_new_type", int),
            account_type=_field(data, "account_type", int),
            active_code=_field(data, "active_code", str),
            participant_number=_field(data, "participant_number", int),
            meeting_room_status=_field(data, "meeting_room_status", int),
            scheduled_status=_field(data, "scheduled_status", int),
            is_allow_call=_field(data, "is_allow_call", bool),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "meeting_room_id": self.meeting_room_id,
            "meeting_room_name": self.meeting_room_name,
            "meeting_room_location": self.meeting_room_location,
            "account_new_type": self.account_new_type,
            "account_type": self.account_type,
            "active_code": self.active_code,
            "participant_number": self.participant_number,
            "meeting_room_status": self.meeting_room_status,
            "scheduled_status": self.scheduled_status,
            "is_allow_call": self.is_allow_call,
        }


@dataclass
class MeetingRoomsResponse:
    total_count: int
    current_size: int
    current_page: int
    total_page: int
    meeting_room_list: list[MeetingRoomItem]

    @classmethod
    def from_dict(cls, data: Any) -> "MeetingRoomsResponse":
        data = _require_mapping(data, "meeting rooms response")
        return cls(
            total_count=_field(data, "total_count", int),
            current_size=_field(data, "current_size", int),
            current_page=_field(data, "current_page", int),
            total_page=_field(data, "total_page", int),
            meeting_room_list=_object_list(data, "meeting_room_list", MeetingRoomItem),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_count": self.total_count,
            "current_size": self.current_size,
            "current_page": self.current_page,
            "total_page": self.total_page,
            "meeting_room_list": [room.to_dict() for room in self.meeting_room_list],
        }


@dataclass
class User:
    userid: str
    is_anonymous: bool | None = None
    nick_name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            userid=self.userid, is_anonymous=self.is_anonymous, nick_name=self.nick_name
        )

    @classmethod
    def from_dict(cls, data: Any) -> "User":
        data = _require_mapping(data, "user")
        return cls(
            userid=_field(data, "userid", str),
            is_anonymous=_field(data, "is_anonymous", bool, optional=True),
            nick_name=_field(data, "nick_name", str, optional=True),
        )


@dataclass
class Guest:
    area: str
    phone_number: str
    guest_name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            area=self.area, phone_number=self.phone_number, guest_name=self.guest_name
        )

    @classmethod
    def from_dict(cls, data: Any) -> "Guest":
        data = _require_mapping(data, "guest")
        return cls(
            area=_field(data, "area", str),
            phone_number=_field(data, "phone_number", str),
            guest_name=_field(data, "guest_name", str, optional=True),
        )


@dataclass
class MeetingSettings:
    mute_enable_join: bool | None = None
    allow_unmute_self: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            mute_enable_join=self.mute_enable_join, allow_unmute_self=self.allow_unmute_self
        )


@dataclass
class RecurringRule:
    recurring_type: int | None = None
    until_type: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact(recurring_type=self.recurring_type, until_type=self.until_type)


@dataclass
class LiveConfig:
    live_subject: str | None = None
    enable_live_password: bool | None = None
    live_addr: str | None = None  # only present in responses

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            live_subject=self.live_subject,
            enable_live_password=self.enable_live_password,
            live_addr=self.live_addr,
        )


@dataclass
class CreateMeetingRequest:
    """Body of a create-meeting call; ``type_`` is sent as the JSON key ``type``."""

    userid: str
    instanceid: int
    subject: str
    type_: int
    start_time: str
    end_time: str
    guests: list[Guest] | None = None
    invitees: list[User] | None = None
    password: str | None = None
    time_zone: str | None = None
    location: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "userid": self.userid,
            "instanceid": self.instanceid,
            "subject": self.subject,
            "type": self.type_,
        }
        if self.guests is not None:
            payload["guests"] = [guest.to_dict() for guest in self.guests]
        if self.invitees is not None:
            payload["invitees"] = [user.to_dict() for user in self.invitees]
        payload["start_time"] = self.start_time
        payload["end_time"] = self.end_time
        payload.update(
            _compact(password=self.password, time_zone=self.time_zone, location=self.location)
        )
        return payload

    @classmethod
    def from_dict(cls, data: Any) -> "CreateMeetingRequest":
        data = _require_mapping(data, "create meeting request")
        return cls(
            userid=_field(data, "userid", str),
            instanceid=_field(data, "instanceid", int),
            subject=_field(data, "subject", str),
            type_=_field(data, "type", int),
            start_time=_field(data, "start_time", str),
            end_time=_field(data, "end_time", str),
            guests=_object_list(data, "guests", Guest, optional=True),
            invitees=_object_list(data, "invitees", User, optional=True),
            password=_field(data, "password", str, optional=True),
            time_zone=_field(data, "time_zone", str, optional=True),
            location=_field(data, "location", str, optional=True),
        )


@dataclass
class MeetingInfo:
    subject: str
    meeting_id: str
    meeting_code: str
    start_time: str
    end_time: str
    password: str | None = None
    participants: list[User] | None = None
    join_url: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> "MeetingInfo":
        data = _require_mapping(data, "meeting info")
        return cls(
            subject=_field(data, "subject", str),
            meeting_id=_field(data, "meeting_id", str),
            meeting_code=_field(data, "meeting_code", str),
            start_time=_field(data, "start_time", str),
            end_time=_field(data, "end_time", str),
            password=_field(data, "password", str, optional=True),
            participants=_object_list(data, "participants", User, optional=True),
            join_url=_field(data, "join_url", str, optional=True),
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "subject": self.subject,
            "meeting_id": self.meeting_id,
            "meeting_code": self.meeting_code,
        }
        if self.password is not None:
            payload["password"] = self.password
        if self.participants is not None:
            payload["participants"] = [user.to_dict() for user in self.participants]
        payload["start_time"] = self.start_time
        payload["end_time"] = self.end_time
        if self.join_url is not None:
            payload["join_url"] = self.join_url
        return payload


@dataclass
class CreateMeetingResponse:
    meeting_number: int
    meeting_info_list: list[MeetingInfo]

    @classmethod
    def from_dict(cls, data: Any) -> "CreateMeetingResponse":
        data = _require_mapping(data, "create meeting response")
        return cls(
            meeting_number=_field(data, "meeting_number", int),
            meeting_info_list=_object_list(data, "meeting_info_list", MeetingInfo),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "meeting_number": self.meeting_number,
            "meeting_info_list": [info.to_dict() for info in self.meeting_info_list],
        }


@dataclass
class CancelMeetingRequest:
    userid: str
    instanceid: int
    reason_code: int
    meeting_type: int | None = None
    sub_meeting_id: str | None = None
    reason_detail: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            userid=self.userid,
            instanceid=self.instanceid,
            reason_code=self.reason_code,
            meeting_type=self.meeting_type,
            sub_meeting_id=self.sub_meeting_id,
            reason_detail=self.reason_detail,
        )

    @classmethod
    def from_dict(cls, data: Any) -> "CancelMeetingRequest":
        data = _require_mapping(data, "cancel meeting request")
        return cls(
            userid=_field(data, "userid", str),
            instanceid=_field(data, "instanceid", int),
            reason_code=_field(data, "reason_code", int),
            meeting_type=_field(data, "meeting_type", int, optional=True),
            sub_meeting_id=_field(data, "sub_meeting_id", str, optional=True),
            reason_detail=_field(data, "reason_detail", str, optional=True),
        )


@dataclass
class BookRoomsRequest:
    operator_id: str
    operator_id_type: int
    meeting_room_id_list: list[str]
    subject_visible: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            operator_id=self.operator_id,
            operator_id_type=self.operator_id_type,
            meeting_room_id_list=list(self.meeting_room_id_list),
            subject_visible=self.subject_visible,
        )

    @classmethod
    def from_dict(cls, data: Any) -> "BookRoomsRequest":
        data = _require_mapping(data, "book rooms request")
        return cls(
            operator_id=_field(data, "operator_id", str),
            operator_id_type=_field(data, "operator_id_type", int),
            meeting_room_id_list=_string_list(data, "meeting_room_id_list"),
            subject_visible=_field(data, "subject_visible", bool, optional=True),
        )


@dataclass
class ReleaseRoomsRequest:
    operator_id: str
    operator_id_type: int
    meeting_room_id_list: list[str]

    def to_dict(self) -> dict[str, Any]:
        return {
            "operator_id": self.operator_id,
            "operator_id_type": self.operator_id_type,
            "meeting_room_id_list": list(self.meeting_room_id_list),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "ReleaseRoomsRequest":
        data = _require_mapping(data, "release rooms request")
        return cls(
            operator_id=_field(data, "operator_id", str),
            operator_id_type=_field(data, "operator_id_type", int),
            meeting_room_id_list=_string_list(data, "meeting_room_id_list"),
        )


# --- Client -----------------------------------------------------------------

def parse_operators(value: str | None) -> list[Operator]:
    """Parse ``"name1:id1,name2:id2"`` into operators.

    Entries that are not exactly ``name:id`` are skipped. With no value at all,
    a single ``admin`` operator is returned.
    """
    if value is None:
        logger.info("No operators defined in environment, using default")
        return [Operator(name=DEFAULT_OPERATOR, id=DEFAULT_OPERATOR)]

    operators = []
    for pair in value.split(","):
        parts = pair.strip().split(":")
        if len(parts) == 2:
            name, op_id = parts
            operators.append(Operator(name=name.strip(), id=op_id.strip()))
    logger.info("Loaded %d operators from environment", len(operators))
    return operators


def _require_env(name: str) -> str:
    value = os.environ.get(name)
    if value is None:
        raise TencentApiError(f"{name} must be set in environment")
    return value


class TencentMeetingClient:
    """Signs and sends requests to the Tencent Meeting API."""

    def __init__(
        self,
        app_id: str,
        secret_id: str,
        secret_key: str,
        endpoint: str = DEFAULT_ENDPOINT,
        sdk_id: str = "",
        operators: Iterable[Operator] | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._app_id = app_id
        self._secret_id = secret_id
        self._secret_key = secret_key
        self._endpoint = endpoint
        self._sdk_id = sdk_id
        self._operators = (
            list(operators)
            if operators is not None
            else [Operator(name=DEFAULT_OPERATOR, id=DEFAULT_OPERATOR)]
        )
        self._default_operator_id = (
            self._operators[0].id if self._operators else DEFAULT_OPERATOR
        )
        self._owns_http = http_client is None
        self._http = http_client if http_client is not None else httpx.AsyncClient()

    @classmethod
    def from_env(cls, http_client: httpx.AsyncClient | None = None) -> "TencentMeetingClient":
        """Build a client from ``TENCENT_MEETING_*`` variables, reading a ``.env`` file first."""
        load_dotenv()
        app_id, secret_id, secret_key = (_require_env(name) for name in _REQUIRED_ENV)
        return cls(
            app_id=app_id,
            secret_id=secret_id,
            secret_key=secret_key,
            endpoint=os.environ.get("TENCENT_MEETING_API_ENDPOINT", DEFAULT_ENDPOINT),
            sdk_id=os.environ.get("TENCENT_MEETING_SDK_ID", ""),
            operators=parse_operators(os.environ.get("TENCENT_MEETING_OPERATOR_ID")),
            http_client=http_client,
        )

    async def __aenter__(self) -> "TencentMeetingClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this object created it."""
        if self._owns_http:
            await self._http.aclose()

    def operator_id_by_name(self, name: str) -> str:
        """Return the id of the operator with this name (case-insensitive), or the default id."""
        lowered = name.lower()
        for operator in self._operators:
            if operator.name.lower() == lowered:
                return operator.id
        logger.info("No operator found for name '%s', using default", name)
        return self._default_operator_id

    @property
    def operator_id(self) -> str:
        """The default operator id: the first configured operator, else ``admin``."""
        return self._default_operator_id

    @property
    def operators(self) -> tuple[Operator, ...]:
        """All configured operators."""
        return tuple(self._operators)

    async def _send(self, method: str, uri: str, body: str | None, action: str) -> str:
        timestamp = get_timestamp()
        nonce = generate_nonce()
        signature = generate_signature(
            self._secret_id, self._secret_key, method, uri, timestamp, nonce, body or ""
        )
        headers = {
            "Content-Type": "application/json",
            "X-TC-Key": self._secret_id,
            "X-TC-Timestamp": str(timestamp),
            "X-TC-Nonce": nonce,
            "X-TC-Signature": signature,
            "AppId": self._app_id,
            "X-TC-Registered": "1",
        }
        if self._sdk_id:
            headers["SdkId"] = self._sdk_id

        url = f"{self._endpoint}{uri}"
        logger.info("Making request to %s", action)
        logger.debug("API URL: %s", url)
        if body is not None:
            logger.debug("Request body: %s", body)

        try:
            response = await self._http.request(
                method,
                url,
                headers=headers,
                content=body.encode("utf-8") if body is not None else None,
            )
        except httpx.HTTPError as exc:
            raise TencentApiError(f"request failed: {exc}") from exc

        logger.info("Response received with status: %s", response.status_code)
        text = response.text
        logger.debug("API Response: %s", text)
        if not response.is_success:
            logger.error("%s failed with status: %s", action, response.status_code)
            logger.error("Request URL: %s", url)
            logger.error("Response body: %s", text)
        return text

    async def list_rooms(self, page: int, page_size: int) -> MeetingRoomsResponse:
        """Fetch one page of meeting rooms."""
        uri = (
            f"/v1/meeting-rooms?page={page}&page_size={page_size}"
            f"&operator_id={self._default_operator_id}&operator_id_type=1"
        )
        text = await self._send("GET", uri, None, "list meeting rooms")
        return MeetingRoomsResponse.from_dict(_parse_json(text))

    async def create_meeting(self, request: CreateMeetingRequest) -> CreateMeetingResponse:
        """Create a meeting and return the API's description of it."""
        body = _to_json(request.to_dict())
        text = await self._send("POST", "/v1/meetings", body, "create meeting")
        return CreateMeetingResponse.from_dict(_parse_json(text))

    async def cancel_meeting(self, meeting_id: str, request: CancelMeetingRequest) -> None:
        """Cancel a meeting. A non-success status is logged, not raised."""
        body = _to_json(request.to_dict())
        await self._send(
            "POST", f"/v1/meetings/{meeting_id}/cancel", body, f"cancel meeting {meeting_id}"
        )

    async def book_rooms(self, meeting_id: str, request: BookRoomsRequest) -> None:
        """Book rooms for a meeting. A non-success status is logged, not raised."""
        body = _to_json(request.to_dict())
        await self._send(
            "POST",
            f"/v1/meetings/{meeting_id}/book-rooms",
            body,
            f"book rooms for meeting {meeting_id}",
        )

    async def release_rooms(self, meeting_id: str, request: ReleaseRoomsRequest) -> None:
        """Release rooms of a meeting. A non-success status is logged, not raised."""
        body = _to_json(request.to_dict())
        await self._send(
            "POST",
            f"/v1/meetings/{meeting_id}/release-rooms",
            body,
            f"release rooms for meeting {meeting_id}",
        )