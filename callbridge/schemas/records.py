from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class Enrichment(BaseModel):
    """Identity data found in the CRM for a phone number."""

    source: str  # contact, company
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    company: Optional[str] = None

    @property
    def display_name(self) -> Optional[str]:
        full_name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return full_name or self.company or None


class Customer(BaseModel):
    id: str
    external_id: str
    full_name: Optional[str] = None
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    company: Optional[str] = None


class ConversationThread(BaseModel):
    id: str
    title: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
