"""
Request/response models for the push API and the notification payload.
"""

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

# Announcement copy used when a caller leaves a field out
DEFAULT_TITLE = "¡Nueva Contratación Disponible!"
DEFAULT_BODY = "Revisa los detalles de la última incorporación a nuestro equipo."
DEFAULT_URL = "/"


def blank_to_none(value: str | None) -> str | None:
    """An empty or whitespace-only owner tag means no tag at all."""
    if isinstance(value, str) and not value.strip():
        return None
    return value


class NotificationPayload(BaseModel):
    """What the service worker receives and displays."""

    title: str = DEFAULT_TITLE
    body: str = DEFAULT_BODY
    url: str = DEFAULT_URL
    icon: str | None = None
    tag: str | None = None

    @field_validator("title", "body", "url", mode="before")
    @classmethod
    def default_when_blank(cls, v, info: ValidationInfo):
        if v is None or (isinstance(v, str) and not v.strip()):
            return cls.model_fields[info.field_name].default
        return v

    def serialize(self) -> str:
        """Compact JSON body handed to the transport for encryption."""
        return self.model_dump_json(exclude_none=True)


class BroadcastFilter(BaseModel):
    """Restricts a broadcast to subscriptions with this owner tag."""

    owner_tag: str | None = None

    @field_validator("owner_tag", mode="before")
    @classmethod
    def normalize_owner_tag(cls, v):
        return blank_to_none(v)


class PushKeys(BaseModel):
    p256dh: str
    auth: str


class SubscribeRequest(BaseModel):
    """Body of PushSubscription.toJSON() plus an optional owner tag."""

    model_config = ConfigDict(populate_by_name=True)

    endpoint: str
    keys: PushKeys
    owner_tag: str | None = Field(default=None, alias="ownerTag")

    @field_validator("owner_tag", mode="before")
    @classmethod
    def normalize_owner_tag(cls, v):
        return blank_to_none(v)


class UnsubscribeRequest(BaseModel):
    endpoint: str


class NotifyRequest(NotificationPayload):
    model_config = ConfigDict(populate_by_name=True)

    owner_tag: str | None = Field(default=None, alias="ownerTag")

    @field_validator("owner_tag", mode="before")
    @classmethod
    def normalize_owner_tag(cls, v):
        return blank_to_none(v)

    def payload(self) -> NotificationPayload:
        return NotificationPayload(**self.model_dump(exclude={"owner_tag"}))
