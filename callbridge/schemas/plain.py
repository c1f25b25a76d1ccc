from typing import Any, Optional

from pydantic import BaseModel


class PlainActor(BaseModel):
    actorType: Optional[str] = None  # user, machineUser, customer, system
    userId: Optional[str] = None
    machineUserId: Optional[str] = None


class PlainChat(BaseModel):
    id: Optional[str] = None
    text: Optional[str] = None
    createdBy: Optional[PlainActor] = None


class PlainThreadCustomer(BaseModel):
    id: Optional[str] = None
    externalId: Optional[str] = None


class PlainThread(BaseModel):
    id: Optional[str] = None
    customer: Optional[PlainThreadCustomer] = None


class PlainChatSentPayload(BaseModel):
    thread: PlainThread
    chat: PlainChat


class PlainWebhook(BaseModel):
    id: Optional[str] = None
    type: str
    payload: Optional[dict[str, Any]] = None
