# ============================================================================
# SCOPE: GLOBAL
# Description: Pydantic models for Smooch API and webhook payloads.
# ============================================================================
"""
Smooch Models.

Models mirror the Smooch v1.1 JSON schema. Field names follow Python
conventions; the wire names (``_id``, ``authorId``, ...) are kept as aliases.

- Payload: Incoming webhook payload
- Message / HsmMessage: Outbound and inbound messages
- AppUser: Smooch user record
- AttachmentUpload / Attachment: Attachment upload options and result
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


class MessageType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    FILE = "file"
    LOCATION = "location"
    CAROUSEL = "carousel"
    LIST = "list"
    HSM = "hsm"


class ActionType(str, Enum):
    POSTBACK = "postback"
    REPLY = "reply"
    LOCATION_REQUEST = "locationRequest"
    SHARE = "share"
    BUY = "buy"
    LINK = "link"
    WEBVIEW = "webview"


class Role(str, Enum):
    APP_USER = "appUser"
    APP_MAKER = "appMaker"


class ImageRatio(str, Enum):
    HORIZONTAL = "horizontal"
    SQUARE = "square"


class Size(str, Enum):
    COMPACT = "compact"
    LARGE = "large"


SOURCE_TYPE_WEB = "web"
SOURCE_TYPE_IOS = "ios"
SOURCE_TYPE_ANDROID = "android"
SOURCE_TYPE_MESSENGER = "messenger"
SOURCE_TYPE_VIBER = "viber"
SOURCE_TYPE_TELEGRAM = "telegram"
SOURCE_TYPE_WECHAT = "wechat"
SOURCE_TYPE_LINE = "line"
SOURCE_TYPE_TWILIO = "twilio"
SOURCE_TYPE_API = "api"
SOURCE_TYPE_WHATSAPP = "whatsapp"

TRIGGER_MESSAGE_APP_USER = "message:appUser"
TRIGGER_MESSAGE_APP_MAKER = "message:appMaker"
TRIGGER_MESSAGE_DELIVERY_FAILURE = "message:delivery:failure"
TRIGGER_MESSAGE_DELIVERY_CHANNEL = "message:delivery:channel"
TRIGGER_MESSAGE_DELIVERY_USER = "message:delivery:user"


class SmoochModel(BaseModel):
    """Base model: accepts wire aliases or field names, keeps unknown fields."""

    model_config = ConfigDict(
        populate_by_name=True,
        extra="allow",
        use_enum_values=False,
    )

    def to_wire(self) -> dict[str, Any]:
        """Dump using wire field names, dropping unset optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def _to_datetime(v: Any) -> Any:
    """Smooch sends message timestamps as float UNIX seconds."""
    if v is None or isinstance(v, datetime):
        return v
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return datetime.fromtimestamp(v, tz=timezone.utc)
    return v


class Application(SmoochModel):
    id: str | None = Field(None, alias="_id")


class SourceDestination(SmoochModel):
    type: str | None = None
    id: str | None = None
    integration_id: str | None = Field(None, alias="integrationId")
    original_message_id: str | None = Field(None, alias="originalMessageId")


class Conversation(SmoochModel):
    id: str | None = Field(None, alias="_id")
    unread_count: int | None = Field(None, alias="unreadCount")


class TruncatedMessage(SmoochModel):
    id: str | None = Field(None, alias="_id")


class EventError(SmoochModel):
    """Delivery failure details in ``message:delivery:failure`` events."""

    code: str | None = None
    underlying_error: dict[str, Any] | None = Field(None, alias="underlyingError")
    message: str | None = None


class Action(SmoochModel):
    id: str | None = Field(None, alias="_id")
    type: ActionType | None = None
    text: str | None = None
    default: bool | None = None
    payload: str | None = None
    uri: str | None = None
    amount: int | None = None
    currency: str | None = None
    state: str | None = None
    metadata: dict[str, Any] | None = None


class Item(SmoochModel):
    id: str | None = Field(None, alias="_id")
    title: str | None = None
    description: str | None = None
    size: Size | None = None
    media_url: str | None = Field(None, alias="mediaUrl")
    media_type: str | None = Field(None, alias="mediaType")
    actions: list[Action] = Field(default_factory=list)


class DisplaySettings(SmoochModel):
    image_aspect_ratio: ImageRatio | None = Field(None, alias="imageAspectRatio")


class Message(SmoochModel):
    """Smooch message. ``received`` is a float UNIX timestamp on the wire."""

    id: str | None = Field(None, alias="_id")
    type: MessageType | None = None
    text: str | None = None
    role: Role | None = None
    author_id: str | None = Field(None, alias="authorId")
    name: str | None = None
    received: datetime | None = None
    source: SourceDestination | None = None
    media_url: str | None = Field(None, alias="mediaUrl")
    actions: list[Action] | None = None
    items: list[Item] | None = None
    metadata: dict[str, Any] | None = None
    display_settings: DisplaySettings | None = Field(None, alias="displaySettings")

    @field_validator("received", mode="before")
    @classmethod
    def parse_received(cls, v: Any) -> Any:
        return _to_datetime(v)

    @field_serializer("received")
    def serialize_received(self, value: datetime | None) -> float | None:
        return value.timestamp() if value is not None else None


class AppUserClient(SmoochModel):
    id: str | None = Field(None, alias="_id")
    platform: str | None = None
    integration_id: str | None = Field(None, alias="integrationId")
    primary: bool = False
    active: bool = False
    device_id: str | None = Field(None, alias="deviceId")
    display_name: str | None = Field(None, alias="displayName")
    avatar_url: str | None = Field(None, alias="avatarUrl")
    info: dict[str, Any] | None = None
    raw: dict[str, Any] | None = None
    app_version: str | None = Field(None, alias="appVersion")
    last_seen: datetime | None = Field(None, alias="lastSeen")
    linked_at: datetime | None = Field(None, alias="linkedAt")
    blocked: bool = False


class AppUser(SmoochModel):
    id: str | None = Field(None, alias="_id")
    user_id: str | None = Field(None, alias="userId")
    properties: dict[str, Any] | None = None
    signed_up_at: datetime | None = Field(None, alias="signedUpAt")
    clients: list[AppUserClient] = Field(default_factory=list)
    pending_clients: list[AppUserClient] = Field(default_factory=list, alias="pendingClients")
    conversation_started: bool = Field(False, alias="conversationStarted")
    email: str | None = None
    given_name: str | None = Field(None, alias="givenName")
    surname: str | None = None
    has_payment_info: bool = Field(False, alias="hasPaymentInfo")


class Payload(SmoochModel):
    """Incoming webhook payload."""

    trigger: str | None = None
    app: Application | None = None
    messages: list[Message] = Field(default_factory=list)
    app_user: AppUser | None = Field(None, alias="appUser")
    conversation: Conversation | None = None
    destination: SourceDestination | None = None
    is_final_event: bool = Field(False, alias="isFinalEvent")
    message: TruncatedMessage | None = None
    error: EventError | None = None
    version: str | None = None


# =========================================================================
# WhatsApp HSM
# =========================================================================


class HsmLanguage(SmoochModel):
    policy: str = "deterministic"
    code: str


class HsmLocalizableParams(SmoochModel):
    default: Any


class HsmPayload(SmoochModel):
    namespace: str
    element_name: str
    language: HsmLanguage
    localizable_params: list[HsmLocalizableParams] = Field(default_factory=list)


class HsmMessageBody(SmoochModel):
    type: MessageType = MessageType.HSM
    hsm: HsmPayload


class HsmMessage(SmoochModel):
    """Message sent through a WhatsApp HSM template."""

    role: Role = Role.APP_MAKER
    message_schema: str = Field("whatsapp", alias="messageSchema")
    message: HsmMessageBody
    received: datetime | None = None

    @field_validator("received", mode="before")
    @classmethod
    def parse_received(cls, v: Any) -> Any:
        return _to_datetime(v)

    @field_serializer("received")
    def serialize_received(self, value: datetime | None) -> float | None:
        return value.timestamp() if value is not None else None


# =========================================================================
# Requests / responses
# =========================================================================


class ErrorDetails(SmoochModel):
    code: str = ""
    description: str = ""


class ErrorPayload(SmoochModel):
    error: ErrorDetails = Field(default_factory=ErrorDetails)


class ResponsePayload(SmoochModel):
    message: Message | None = None
    extra_messages: list[Message] = Field(default_factory=list, alias="extraMessages")
    conversation: Conversation | None = None


class GetAppUserResponse(SmoochModel):
    app_user: AppUser | None = Field(None, alias="appUser")


class PreCreateAppUserPayload(SmoochModel):
    user_id: str = Field(..., alias="userId")
    surname: str
    given_name: str = Field(..., alias="givenName")


class LinkAppConfirmationData(SmoochModel):
    type: str


class LinkAppUserToChannelPayload(SmoochModel):
    type: str
    confirmation: LinkAppConfirmationData
    phone_number: str = Field(..., alias="phoneNumber")


class AttachmentUpload(BaseModel):
    """Options for an attachment upload (sent as query parameters)."""

    mime_type: str
    access: str = "public"
    for_: str | None = None
    app_user_id: str | None = None
    user_id: str | None = None

    @classmethod
    def new(cls, mime_type: str) -> "AttachmentUpload":
        return cls(mime_type=mime_type, access="public")

    def query_params(self) -> dict[str, str]:
        params = {"access": self.access}
        if self.for_:
            params["for"] = self.for_
        if self.app_user_id:
            params["appUserId"] = self.app_user_id
        if self.user_id:
            params["userId"] = self.user_id
        return params


class Attachment(SmoochModel):
    media_url: str = Field(..., alias="mediaUrl")
    media_type: str | None = Field(None, alias="mediaType")
