import httpx

from callbridge.logging_config import get_logger
from callbridge.services.errors import UpstreamUnavailable

logger = get_logger("openphone_service")


class OpenPhoneService:
    """Service for sending SMS through OpenPhone."""

    DEFAULT_URL = "https://api.openphone.com/v1"

    def __init__(self, api_key: str, from_number: str, api_url: str = DEFAULT_URL, timeout: float = 30.0):
        self.api_key = api_key
        self.from_number = from_number
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    async def send_sms(self, to: str, text: str) -> str:
        """Send SMS from the fixed outbound number. Returns OpenPhone's delivery status."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.api_url}/messages",
                    headers={
                        # OpenPhone takes the raw key, no Bearer prefix
                        "Authorization": self.api_key,
                        "Content-Type": "application/json",
                    },
                    json={"from": self.from_number, "to": [to], "content": text},
                )
        except httpx.HTTPError as e:
            logger.error(f"OpenPhone request failed: {e}")
            raise UpstreamUnavailable("OpenPhone", str(e)) from e

        if not response.is_success:
            logger.error(f"OpenPhone API error ({response.status_code}): {response.text}")
            raise UpstreamUnavailable("OpenPhone", f"{response.status_code} - {response.text}", response.status_code)

        try:
            result = response.json()
        except ValueError:
            result = {}

        data = result.get("data") or {}
        status = data.get("status") or "sent"
        logger.info("SMS sent", extra={"context": {"to": to, "message_id": data.get("id"), "status": status}})
        return status
