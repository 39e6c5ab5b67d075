# meetingbridge

`meetingbridge` is a library for talking to the Tencent Meeting API and for
handling the cancellation side of a form webhook. It has four modules.

- `meetingbridge.auth` holds the request signing helpers:
  - `generate_signature` signs a request. It builds the string to sign from
    the method, the header string `X-TC-Key=..&X-TC-Nonce=..&X-TC-Timestamp=..`,
    the URI with its query, and the body, joined by newlines. The signature is
    the Base64 encoding of the lowercase hex HMAC-SHA256 digest of that string.
  - `generate_nonce` returns a random 8-digit string.
  - `get_timestamp` returns the current Unix time in seconds.
- `meetingbridge.client` holds `TencentMeetingClient`, an asynchronous
  client built on `httpx`, together with the request and response
  dataclasses. Each dataclass has `to_dict` and/or `from_dict`. The types are
  `MeetingRoomItem`, `MeetingRoomsResponse`, `User`, `Guest`,
  `MeetingSettings`, `RecurringRule`, `LiveConfig`, `CreateMeetingRequest`,
  `MeetingInfo`, `CreateMeetingResponse`, `CancelMeetingRequest`,
  `BookRoomsRequest`, `ReleaseRoomsRequest` and `Operator`. The module also
  has `parse_operators` and the exception `TencentApiError`.
- `meetingbridge.handlers` holds endpoint-style coroutines for a web layer:
  `health_check`, `list_meeting_rooms`, `create_meeting`, `cancel_meeting`,
  `book_rooms` and `release_rooms`. They take a client and a JSON-like
  payload. An invalid payload raises `HandlerError` with status 422, and a
  failed API call raises it with status 500.
- `meetingbridge.webhook` holds the form-webhook helpers:
  - `check_webhook_auth` accepts the request or raises `HandlerError` with
    status 401.
  - `is_cancellation` tests whether a reservation status contains `取消`.
  - `get_room_id_for_form` picks the Chengdu room when the form name contains
    `成都` or `chengdu`, and the Xi'an room otherwise.
  - `cancel_form_meetings` cancels the meetings recorded for a submission.
  - `summarize_results` builds the final `WebhookResponse` from a list of
    `MeetingResult`.

## Configuration

`TencentMeetingClient.from_env()` first loads a `.env` file, then reads these
variables. If a required variable is missing, it raises `TencentApiError`.

| Variable | Meaning | Default |
| --- | --- | --- |
| `TENCENT_MEETING_APP_ID` | application id, sent as `AppId` | required |
| `TENCENT_MEETING_SECRET_ID` | secret id, sent as `X-TC-Key` | required |
| `TENCENT_MEETING_SECRET_KEY` | key used to sign requests | required |
| `TENCENT_MEETING_API_ENDPOINT` | API base URL | `https://api.meeting.qq.com` |
| `TENCENT_MEETING_SDK_ID` | sent as `SdkId` when not empty | empty |
| `TENCENT_MEETING_OPERATOR_ID` | operators as `name1:id1,name2:id2` | one operator, `admin` |

Operator entries that are not exactly `name:id` are skipped. The first
operator is the default: `client.operator_id` returns it, and every request
acts as it. `client.operator_id_by_name(name)` looks up an operator by name,
ignoring case, and falls back to the default when no name matches.

You can also build the client directly:
`TencentMeetingClient(app_id, secret_id, secret_key, endpoint=..., sdk_id=..., operators=..., http_client=...)`.

## Usage

```python
import asyncio

from meetingbridge.client import TencentMeetingClient


async def show_rooms() -> None:
    async with TencentMeetingClient.from_env() as client:
        rooms = await client.list_rooms(1, 20)
        for room in rooms.meeting_room_list:
            print(room.meeting_room_id, room.meeting_room_name)


asyncio.run(show_rooms())
```

Failures are reported in two different ways:

- `list_rooms` and `create_meeting` parse the JSON response. They raise
  `TencentApiError` if the request itself fails or if the response cannot be
  parsed.
- `cancel_meeting`, `book_rooms` and `release_rooms` only raise when the
  request itself fails. A non-success HTTP status is logged, not raised.

Signing a request by hand:

```python
from meetingbridge.auth import generate_nonce, generate_signature, get_timestamp

signature = generate_signature(
    "secret-id",
    "placeholder",
    "GET",
    "/v1/meeting-rooms?page=1",
    get_timestamp(),
    generate_nonce(),
    "",
)
```

Webhook helpers:

```python
from meetingbridge.webhook import check_webhook_auth, is_cancellation

check_webhook_auth("token", "token")   # True; raises HandlerError(401) on mismatch
is_cancellation("已取消")               # True
```

`cancel_form_meetings(client, store, token, simulate)` works through the
meetings recorded under a token. It asks the store to mark them cancelled and
gets back `(meeting_id, room_id)` pairs. For each pair it releases the room
and then cancels the meeting. If `simulate` is true, or any meeting id starts
with `simulation-`, it only updates the store. It always returns a
`WebhookResponse` describing how many cancellations succeeded and failed.

## What this package does not do

- **No web server or routing.** The handlers are plain coroutines, and you
  attach them to a framework yourself.
- **No storage.** Meeting records come from any object that provides
  `cancel_meeting(token)`, as described by the `MeetingStore` protocol.
- **No meeting creation from form submissions.** The package does not parse
  time slots out of a form, merge consecutive slots, or create and book
  meetings from a form. For the creation path it only provides
  `MeetingResult`, `summarize_results` and `get_room_id_for_form`.