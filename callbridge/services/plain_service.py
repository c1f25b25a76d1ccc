from typing import Any, Optional

import httpx

from callbridge.logging_config import get_logger
from callbridge.schemas.records import ConversationThread, Customer
from callbridge.services.errors import UpstreamRejected, UpstreamUnavailable

logger = get_logger("plain_service")

UPSERT_CUSTOMER = """
mutation UpsertCustomer($input: UpsertCustomerInput!) {
  upsertCustomer(input: $input) {
    result
    customer {
      id
      externalId
      fullName
      email {
        email
        isVerified
      }
    }
    error {
      message
      code
    }
  }
}
"""

CREATE_THREAD = """
mutation CreateThread($input: CreateThreadInput!) {
  createThread(input: $input) {
    thread {
      id
      title
      createdAt {
        iso8601
      }
      updatedAt {
        iso8601
      }
    }
    error {
      message
      code
    }
  }
}
"""

LIST_CUSTOMER_THREADS = """
query GetCustomerThreads($customerId: ID!, $first: Int!) {
  threads(
    first: $first
    filters: { customerIds: [$customerId] }
    sortBy: { field: CREATED_AT, direction: DESC }
  ) {
    edges {
      node {
        id
        title
        updatedAt {
          iso8601
        }
        createdAt {
          iso8601
        }
      }
    }
  }
}
"""

CREATE_THREAD_EVENT = """
mutation CreateThreadEvent($input: CreateThreadEventInput!) {
  createThreadEvent(input: $input) {
    threadEvent {
      id
    }
    error {
      message
      code
    }
  }
}
"""

SEND_CHAT = """
mutation SendChat($input: SendChatInput!) {
  sendChat(input: $input) {
    chat {
      id
    }
    error {
      message
      code
    }
  }
}
"""

SEND_CUSTOMER_CHAT = """
mutation SendCustomerChat($input: SendCustomerChatInput!) {
  sendCustomerChat(input: $input) {
    chat {
      id
    }
    error {
      message
      code
    }
  }
}
"""


def _iso(value: Optional[dict]) -> Optional[str]:
    if not value:
        return None
    return value.get("iso8601")


def _thread_from_node(node: dict) -> ConversationThread:
    return ConversationThread(
        id=node["id"],
        title=node.get("title"),
        created_at=_iso(node.get("createdAt")),
        updated_at=_iso(node.get("updatedAt")),
    )


class PlainService:
    """Client for the Plain GraphQL API. All writes are made as the API key's machine user."""

    DEFAULT_URL = "https://core-api.uk.plain.com/graphql/v1"

    def __init__(self, api_key: str, api_url: str = DEFAULT_URL, timeout: float = 30.0):
        self.api_key = api_key
        self.api_url = api_url
        self.timeout = timeout

    async def _execute(self, operation: str, query: str, variables: dict) -> Any:
        """Run one GraphQL operation and return `data[operation]`.

        Transport errors, non-2xx responses, top-level GraphQL `errors` and
        mutation `error` payloads all raise UpstreamUnavailable.
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.api_url,
                    headers={
                        "Content-Type": "application/json",
                        "Authorization": f"Bearer {self.api_key}",
                    },
                    json={"query": query, "variables": variables},
                )
        except httpx.HTTPError as e:
            logger.error(f"Plain API request failed: {operation}: {e}")
            raise UpstreamUnavailable("Plain", f"{operation}: {e}") from e

        if response.status_code >= 400:
            logger.error(f"Plain API error ({response.status_code}): {response.text}")
            raise UpstreamUnavailable("Plain", f"{operation}: {response.status_code} - {response.text}", response.status_code)

        try:
            result = response.json()
        except ValueError as e:
            raise UpstreamUnavailable("Plain", f"{operation}: invalid JSON response") from e

        if result.get("errors"):
            logger.error("Plain GraphQL errors", extra={"context": {"operation": operation, "errors": result["errors"]}})
            raise UpstreamUnavailable("Plain", result["errors"][0].get("message", "unknown error"))

        payload = (result.get("data") or {}).get(operation)
        if isinstance(payload, dict) and payload.get("error"):
            error = payload["error"]
            logger.error("Plain mutation error", extra={"context": {"operation": operation, "error": error}})
            raise UpstreamRejected("Plain", error.get("message", "unknown error"), error.get("code"))
        if payload is None:
            raise UpstreamUnavailable("Plain", f"{operation}: empty response")

        return payload

    async def upsert_customer(self, external_id: str, full_name: str, email: str) -> Customer:
        """Ensure a customer exists. Fields are only written on create; onUpdate is empty."""
        variables = {
            "input": {
                "identifier": {"externalId": external_id},
                "onCreate": {
                    "externalId": external_id,
                    "fullName": full_name,
                    "email": {"email": email, "isVerified": False},
                },
                "onUpdate": {},
            }
        }
        payload = await self._execute("upsertCustomer", UPSERT_CUSTOMER, variables)
        customer = payload.get("customer") or {}
        logger.debug(f"Customer upsert result: {payload.get('result')} id={customer.get('id')}")

        return Customer(
            id=customer["id"],
            external_id=customer.get("externalId") or external_id,
            full_name=customer.get("fullName"),
            email=(customer.get("email") or {}).get("email"),
        )

    async def create_thread(self, customer_id: str, title: str) -> ConversationThread:
        variables = {"input": {"customerIdentifier": {"customerId": customer_id}, "title": title}}
        payload = await self._execute("createThread", CREATE_THREAD, variables)
        return _thread_from_node(payload["thread"])

    async def list_recent_threads(self, customer_id: str, limit: int = 10) -> list[ConversationThread]:
        """Customer threads, newest created first. Order is Plain's; never re-sorted here."""
        payload = await self._execute(
            "threads",
            LIST_CUSTOMER_THREADS,
            {"customerId": customer_id, "first": limit},
        )
        edges = payload.get("edges") or []
        return [_thread_from_node(edge["node"]) for edge in edges if edge.get("node")]

    async def create_thread_event(self, thread_id: str, title: str, text: str) -> Optional[str]:
        variables = {
            "input": {
                "threadId": thread_id,
                "title": title,
                "components": [{"componentText": {"text": text}}],
            }
        }
        payload = await self._execute("createThreadEvent", CREATE_THREAD_EVENT, variables)
        return (payload.get("threadEvent") or {}).get("id")

    async def send_chat(self, thread_id: str, text: str, customer_id: str) -> Optional[str]:
        """Write a chat into a thread as the relay's machine user, on behalf of `customer_id`.

        Plain reports these chats back with actorType=machineUser, which is what
        the echo guard keys on.
        """
        variables = {"input": {"customerId": customer_id, "threadId": thread_id, "text": text}}
        payload = await self._execute("sendChat", SEND_CHAT, variables)
        return (payload.get("chat") or {}).get("id")

    async def send_customer_chat(self, customer_id: str, thread_id: str, text: str) -> Optional[str]:
        """Write a chat authored by the customer themselves."""
        variables = {"input": {"customerId": customer_id, "threadId": thread_id, "text": text}}
        payload = await self._execute("sendCustomerChat", SEND_CUSTOMER_CHAT, variables)
        return (payload.get("chat") or {}).get("id")
