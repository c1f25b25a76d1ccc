from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field


class OpenPhoneMedia(BaseModel):
    url: str
    type: str


class OpenPhoneCall(BaseModel):
    id: str
    object: Optional[str] = None
    direction: str  # incoming, outgoing
    status: str
    duration: int  # seconds
    participants: list[str] = Field(min_length=1)
    createdAt: str
    completedAt: Optional[str] = None
    userId: Optional[str] = None
    phoneNumberId: Optional[str] = None

    @property
    def counterparty(self) -> str:
        return self.participants[0]


class OpenPhoneDialogueLine(BaseModel):
    identifier: str
    content: str
    start: Optional[float] = None
    end: Optional[float] = None
    userId: Optional[str] = None


class OpenPhoneCallTranscript(BaseModel):
    callId: str
    object: Optional[str] = None
    dialogue: list[OpenPhoneDialogueLine]
    duration: Optional[float] = None
    status: Optional[str] = None


class OpenPhoneMessage(BaseModel):
    id: str
    object: Optional[str] = None
    # "from" is reserved in Python
    from_number: str = Field(validation_alias=AliasChoices("from", "from_number"))
    to: Optional[Any] = None
    direction: Optional[str] = None
    body: Optional[str] = None
    media: list[OpenPhoneMedia] = Field(default_factory=list)
    status: Optional[str] = None
    createdAt: Optional[str] = None
    userId: Optional[str] = None
    phoneNumberId: Optional[str] = None


class OpenPhoneWebhookData(BaseModel):
    object: dict[str, Any]


class OpenPhoneWebhook(BaseModel):
    id: Optional[str] = None
    object: Optional[str] = None
    apiVersion: Optional[str] = None
    createdAt: Optional[str] = None
    type: str
    data: Optional[OpenPhoneWebhookData] = None
