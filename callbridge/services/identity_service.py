import asyncio
from abc import ABC, abstractmethod
from typing import Optional

from callbridge.logging_config import get_logger
from callbridge.schemas.records import Customer, Enrichment
from callbridge.services.errors import EnrichmentUnavailable, UpstreamRejected
from callbridge.services.hubspot_service import HubSpotService
from callbridge.services.phone import normalize_phone, placeholder_email
from callbridge.services.plain_service import PlainService

logger = get_logger("identity_service")


class EnrichmentProvider(ABC):
    """Looks up CRM identity data for a normalized phone number."""

    @abstractmethod
    async def lookup(self, phone_number: str) -> Optional[Enrichment]:
        """Return enrichment data or None. May raise EnrichmentUnavailable."""
        pass


class NoEnrichment(EnrichmentProvider):
    """Used when no CRM is configured."""

    async def lookup(self, phone_number: str) -> Optional[Enrichment]:
        return None


def _contact_enrichment(properties: dict) -> Enrichment:
    return Enrichment(
        source="contact",
        first_name=properties.get("firstname") or None,
        last_name=properties.get("lastname") or None,
        email=properties.get("email") or None,
        company=properties.get("company") or None,
    )


def _company_enrichment(properties: dict) -> Enrichment:
    return Enrichment(source="company", company=properties.get("name") or None)


class HubSpotEnrichment(EnrichmentProvider):
    """Contact search first, company search as fallback.

    Both searches are issued together; either may fail without affecting the
    other, and a contact match always wins over a company match.
    """

    def __init__(self, crm: HubSpotService):
        self.crm = crm

    async def _contact(self, phone_number: str) -> Optional[Enrichment]:
        try:
            results = await self.crm.search_contacts_by_phone(phone_number)
        except Exception as e:
            logger.warning(f"CRM contact lookup failed, continuing without it: {e}")
            return None
        return _contact_enrichment(results[0]) if results else None

    async def _company(self, phone_number: str) -> Optional[Enrichment]:
        try:
            results = await self.crm.search_companies_by_phone(phone_number)
        except Exception as e:
            logger.warning(f"CRM company lookup failed, continuing without it: {e}")
            return None
        return _company_enrichment(results[0]) if results else None

    async def lookup(self, phone_number: str) -> Optional[Enrichment]:
        contact, company = await asyncio.gather(self._contact(phone_number), self._company(phone_number))
        return contact or company


class IdentityResolver:
    """Maps a phone number to a Plain customer, creating it on first contact."""

    def __init__(
        self,
        plain: PlainService,
        enrichment: Optional[EnrichmentProvider] = None,
        placeholder_email_domain: str = "phone.maple.inc",
        default_region: Optional[str] = "US",
    ):
        self.plain = plain
        self.enrichment = enrichment or NoEnrichment()
        self.placeholder_email_domain = placeholder_email_domain
        self.default_region = default_region

    def normalize(self, raw_number: Optional[str]) -> str:
        return normalize_phone(raw_number, self.default_region)

    async def _enrich(self, phone_number: str) -> Optional[Enrichment]:
        try:
            return await self.enrichment.lookup(phone_number)
        except EnrichmentUnavailable as e:
            logger.warning(f"Enrichment unavailable for {phone_number}: {e.message}")
            return None

    async def resolve(self, raw_number: Optional[str]) -> Customer:
        """
        Resolve a customer for a phone number.

        1. Normalize to E.164 (InvalidIdentity if impossible)
        2. Best-effort CRM enrichment
        3. Upsert in Plain: name/email are only used when the customer is created,
           so an existing (possibly hand-edited) customer is never overwritten
        4. If Plain refuses the CRM email (already owned by another customer),
           upsert once more with the placeholder email
        """
        phone_number = self.normalize(raw_number)
        enrichment = await self._enrich(phone_number)

        full_name = (enrichment.display_name if enrichment else None) or phone_number
        fallback_email = placeholder_email(phone_number, self.placeholder_email_domain)
        email = (enrichment.email if enrichment else None) or fallback_email

        try:
            customer = await self.plain.upsert_customer(phone_number, full_name, email)
        except UpstreamRejected as e:
            if email == fallback_email:
                raise
            logger.warning(
                f"Plain rejected CRM email for {phone_number}, retrying with placeholder: {e.message}",
                extra={"context": {"phone": phone_number, "error_code": e.error_code}},
            )
            customer = await self.plain.upsert_customer(phone_number, full_name, fallback_email)

        logger.info(
            "Customer resolved",
            extra={
                "context": {
                    "customer_id": customer.id,
                    "phone": phone_number,
                    "enrichment": enrichment.source if enrichment else None,
                }
            },
        )

        if enrichment:
            customer = customer.model_copy(
                update={
                    "first_name": enrichment.first_name,
                    "last_name": enrichment.last_name,
                    "company": enrichment.company,
                }
            )
        return customer
