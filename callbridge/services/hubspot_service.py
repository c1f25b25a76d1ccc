import httpx

from callbridge.logging_config import get_logger
from callbridge.services.errors import EnrichmentUnavailable
from callbridge.services.phone import national_number, phone_search_variants

logger = get_logger("hubspot_service")

CONTACT_PROPERTIES = ["firstname", "lastname", "email", "company", "phone", "mobilephone"]
COMPANY_PROPERTIES = ["name", "domain", "phone"]


class HubSpotService:
    """Read-only HubSpot CRM search used for best-effort identity enrichment."""

    DEFAULT_URL = "https://api.hubapi.com"

    def __init__(self, api_key: str, api_url: str = DEFAULT_URL, timeout: float = 5.0):
        self.api_key = api_key
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    async def _search(self, object_type: str, filter_groups: list[dict], properties: list[str]) -> list[dict]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.api_url}/crm/v3/objects/{object_type}/search",
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json={"filterGroups": filter_groups, "properties": properties, "limit": 1},
                )
        except httpx.HTTPError as e:
            raise EnrichmentUnavailable(f"HubSpot {object_type} search failed: {e}") from e

        if not response.is_success:
            raise EnrichmentUnavailable(f"HubSpot {object_type} search error: {response.status_code} - {response.text}")

        try:
            results = response.json().get("results") or []
        except ValueError as e:
            raise EnrichmentUnavailable(f"HubSpot {object_type} search returned invalid JSON") from e

        return [item.get("properties") or {} for item in results]

    async def search_contacts_by_phone(self, phone_number: str) -> list[dict]:
        """Match `phone` or `mobilephone` as typed, or HubSpot's digits-only calculated copies."""
        variants = phone_search_variants(phone_number)
        national = national_number(phone_number)
        # Filter groups are ORed
        filter_groups = [
            {"filters": [{"propertyName": "phone", "operator": "IN", "values": variants}]},
            {"filters": [{"propertyName": "mobilephone", "operator": "IN", "values": variants}]},
            {"filters": [{"propertyName": "hs_searchable_calculated_phone_number", "operator": "EQ", "value": national}]},
            {"filters": [{"propertyName": "hs_searchable_calculated_mobile_number", "operator": "EQ", "value": national}]},
        ]
        return await self._search("contacts", filter_groups, CONTACT_PROPERTIES)

    async def search_companies_by_phone(self, phone_number: str) -> list[dict]:
        variants = phone_search_variants(phone_number)
        filter_groups = [{"filters": [{"propertyName": "phone", "operator": "IN", "values": variants}]}]
        return await self._search("companies", filter_groups, COMPANY_PROPERTIES)
