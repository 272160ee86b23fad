import httpx
from loguru import logger

from supplier_orders.domain.sync import SyncResult

SYNC_PATH = "/api/sync-orders"


class SyncTrigger:
    """Asks the sibling sync endpoint to pull orders from Shopify.

    Sync is global: it covers every connected store and is not parameterized
    by supplier. Failures are reported in the result, never raised.
    """

    def __init__(self, client: httpx.Client, base_url: str) -> None:
        self._client = client
        self._endpoint = base_url.rstrip("/") + SYNC_PATH

    def trigger(self) -> SyncResult:
        try:
            response = self._client.post(self._endpoint)
        except httpx.HTTPError as exc:
            logger.warning(f"Sync request to {self._endpoint} failed: {exc}")
            return SyncResult(success=False, payload={"error": str(exc)})

        try:
            payload = response.json()
        except ValueError:
            payload = {"error": response.text}
        if not isinstance(payload, dict):
            payload = {"result": payload}

        if not response.is_success:
            logger.warning(f"Order sync failed ({response.status_code}): {payload}")
            return SyncResult(success=False, payload=payload)

        logger.info(f"Order sync completed: {payload}")
        return SyncResult(success=True, payload=payload)
