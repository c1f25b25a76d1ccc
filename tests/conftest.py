from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from callbridge.schemas.records import ConversationThread, Customer
from callbridge.services.continuity_service import ThreadContinuityPolicy
from callbridge.services.errors import EnrichmentUnavailable, UpstreamRejected, UpstreamUnavailable
from callbridge.services.identity_service import HubSpotEnrichment, IdentityResolver, NoEnrichment
from callbridge.services.relay_service import RelayEngine

T0 = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakePlain:
    """In-memory Plain: customers keyed by external id, threads per customer in creation order."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.customers: dict[str, Customer] = {}
        self.threads: dict[str, list[ConversationThread]] = {}
        self.calls: list[tuple] = []
        self.fail_on: Optional[str] = None

    def _maybe_fail(self, operation: str) -> None:
        if self.fail_on == operation:
            raise UpstreamUnavailable("Plain", f"{operation}: 503 - unavailable", 503)

    def calls_to(self, operation: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == operation]

    def _thread(self, thread_id: str) -> ConversationThread:
        for threads in self.threads.values():
            for thread in threads:
                if thread.id == thread_id:
                    return thread
        raise KeyError(thread_id)

    async def upsert_customer(self, external_id: str, full_name: str, email: str) -> Customer:
        self.calls.append(("upsert_customer", external_id, full_name, email))
        self._maybe_fail("upsert_customer")
        existing = self.customers.get(external_id)
        if existing is None:
            if any(customer.email == email for customer in self.customers.values()):
                raise UpstreamRejected("Plain", f"Email {email} is already in use", "email_already_exists")
            existing = Customer(
                id=f"c_{len(self.customers) + 1}", external_id=external_id, full_name=full_name, email=email
            )
            self.customers[external_id] = existing
        return existing.model_copy()

    async def create_thread(self, customer_id: str, title: str) -> ConversationThread:
        self.calls.append(("create_thread", customer_id, title))
        self._maybe_fail("create_thread")
        count = sum(len(threads) for threads in self.threads.values())
        now = self.clock()
        thread = ConversationThread(id=f"th_{count + 1}", title=title, created_at=now, updated_at=now)
        self.threads.setdefault(customer_id, []).append(thread)
        return thread.model_copy()

    async def list_recent_threads(self, customer_id: str, limit: int = 10) -> list[ConversationThread]:
        self.calls.append(("list_recent_threads", customer_id, limit))
        self._maybe_fail("list_recent_threads")
        threads = list(reversed(self.threads.get(customer_id, [])))
        return [thread.model_copy() for thread in threads[:limit]]

    async def create_thread_event(self, thread_id: str, title: str, text: str) -> str:
        self.calls.append(("create_thread_event", thread_id, title, text))
        self._maybe_fail("create_thread_event")
        self._thread(thread_id).updated_at = self.clock()
        return f"te_{len(self.calls)}"

    async def send_chat(self, thread_id: str, text: str, customer_id: str) -> str:
        self.calls.append(("send_chat", thread_id, text, customer_id))
        self._maybe_fail("send_chat")
        self._thread(thread_id).updated_at = self.clock()
        return f"chat_{len(self.calls)}"

    async def send_customer_chat(self, customer_id: str, thread_id: str, text: str) -> str:
        self.calls.append(("send_customer_chat", customer_id, thread_id, text))
        self._maybe_fail("send_customer_chat")
        self._thread(thread_id).updated_at = self.clock()
        return f"chat_{len(self.calls)}"


class FakeOpenPhone:
    def __init__(self):
        self.sent: list[tuple[str, str]] = []
        self.fail = False

    async def send_sms(self, to: str, text: str) -> str:
        if self.fail:
            raise UpstreamUnavailable("OpenPhone", "500 - boom", 500)
        self.sent.append((to, text))
        return "sent"


class FakeHubSpot:
    def __init__(self):
        self.contacts: dict[str, dict] = {}
        self.companies: dict[str, dict] = {}
        self.contacts_down = False
        self.companies_down = False
        self.searches: list[tuple[str, str]] = []

    async def search_contacts_by_phone(self, phone_number: str) -> list[dict]:
        self.searches.append(("contacts", phone_number))
        if self.contacts_down:
            raise EnrichmentUnavailable("HubSpot contacts search failed: timed out")
        match = self.contacts.get(phone_number)
        return [match] if match else []

    async def search_companies_by_phone(self, phone_number: str) -> list[dict]:
        self.searches.append(("companies", phone_number))
        if self.companies_down:
            raise EnrichmentUnavailable("HubSpot companies search failed: timed out")
        match = self.companies.get(phone_number)
        return [match] if match else []


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def plain(clock):
    return FakePlain(clock)


@pytest.fixture
def openphone():
    return FakeOpenPhone()


@pytest.fixture
def hubspot():
    return FakeHubSpot()


@pytest.fixture
def resolver(plain):
    return IdentityResolver(plain, NoEnrichment())


@pytest.fixture
def enriched_resolver(plain, hubspot):
    return IdentityResolver(plain, HubSpotEnrichment(hubspot))


@pytest.fixture
def continuity(plain, clock):
    return ThreadContinuityPolicy(plain, clock=clock)


@pytest.fixture
def engine(plain, openphone, resolver, continuity):
    return RelayEngine(plain, openphone, resolver, continuity)


@pytest.fixture
def mock_env(monkeypatch):
    """Set test environment variables."""
    monkeypatch.setenv("PLAIN_API_KEY", "plain-test-key")
    monkeypatch.setenv("OPENPHONE_API_KEY", "openphone-test-key")
    monkeypatch.delenv("HUBSPOT_API_KEY", raising=False)


def _message_envelope(from_number="+15551234567", body="Hi there", media=None, event_id="EVmsg1"):
    message = {
        "id": "AC123",
        "object": "message",
        "from": from_number,
        "to": "+16464441357",
        "direction": "incoming",
        "body": body,
        "status": "received",
        "createdAt": "2024-05-01T09:00:00.000Z",
        "userId": "US1",
        "phoneNumberId": "PN1",
    }
    if media is not None:
        message["media"] = media
    return {
        "id": event_id,
        "object": "event",
        "apiVersion": "v2",
        "createdAt": "2024-05-01T09:00:00.000Z",
        "type": "message.received",
        "data": {"object": message},
    }


def _call_envelope(participant="+15551234567", direction="incoming", duration=125, completed_at="2024-05-01T09:02:05.000Z"):
    call = {
        "id": "ACcall1",
        "object": "call",
        "direction": direction,
        "status": "completed",
        "duration": duration,
        "participants": [participant],
        "createdAt": "2024-05-01T09:00:00.000Z",
        "userId": "US1",
        "phoneNumberId": "PN1",
    }
    if completed_at:
        call["completedAt"] = completed_at
    return {"id": "EVcall1", "object": "event", "type": "call.completed", "data": {"object": call}}


def _transcript_envelope():
    return {
        "id": "EVtr1",
        "object": "event",
        "type": "call.transcript.completed",
        "data": {
            "object": {
                "callId": "ACcall1",
                "object": "callTranscript",
                "dialogue": [
                    {"content": "Hello, Maple support", "start": 0, "end": 1.5, "identifier": "+16464441357"},
                    {"content": "Hi, my order is late", "start": 1.6, "end": 3.2, "identifier": "+15551234567"},
                ],
                "duration": 3.2,
                "status": "completed",
            }
        },
    }


def _chat_sent_envelope(external_id="+15551234567", text="Your order ships today", actor_type="user"):
    created_by = {"actorType": actor_type}
    if actor_type == "machineUser":
        created_by["machineUserId"] = "mu_relay"
    else:
        created_by["userId"] = "u_agent"
    return {
        "id": "pEv_1",
        "type": "thread.chat_sent",
        "payload": {
            "thread": {"id": "th_1", "customer": {"id": "c_1", "externalId": external_id}},
            "chat": {"id": "chat_1", "text": text, "createdBy": created_by},
        },
    }


@pytest.fixture
def message_envelope():
    return _message_envelope


@pytest.fixture
def call_envelope():
    return _call_envelope


@pytest.fixture
def transcript_envelope():
    return _transcript_envelope


@pytest.fixture
def chat_sent_envelope():
    return _chat_sent_envelope
