"""HTTP inventory checker: asks the product API how many products a page shows."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from bidding.domain.errors import InventoryValidationError
from bidding.engine.collaborators import InventoryResult, LandingPageKey
from bidding.resilience.retry import resilient_api_call

logger = structlog.get_logger()

DEFAULT_TIMEOUT = 10.0


@resilient_api_call("inventory")
def fetch_inventory(client: httpx.Client, key: LandingPageKey) -> dict[str, Any]:
    """GET the product count for one landing page.

    Raises:
        httpx.HTTPError: On transport errors or non-2xx responses.
    """
    response = client.get(
        "/inventory",
        params={"owner_id": key.owner_id, "domain": key.domain, "path": key.path},
    )
    response.raise_for_status()
    return dict(response.json())


class HttpInventoryChecker:
    """``InventoryChecker`` backed by an HTTP product API.

    The API answers ``GET /inventory?owner_id=&domain=&path=`` with
    ``{"product_count": <int>}`` and an optional ``valid`` flag.

    Args:
        base_url: API base URL.
        api_key: Bearer token, if the API requires one.
        timeout: Per-request timeout in seconds.
        client: Pre-built ``httpx.Client`` (tests pass one with a mock transport).
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        *,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.Client | None = None,
    ) -> None:
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self._client = client or httpx.Client(base_url=base_url, headers=headers, timeout=timeout)

    def check(self, key: LandingPageKey) -> InventoryResult:
        """Return the inventory answer for *key*.

        Raises:
            InventoryValidationError: If the API fails after retries or the
                response is malformed.
        """
        try:
            payload = fetch_inventory(self._client, key)
        except (httpx.HTTPError, ValueError) as exc:
            msg = f"Inventory lookup failed for {key.path}: {exc}"
            raise InventoryValidationError(msg) from exc

        try:
            count = int(payload["product_count"])
        except (KeyError, TypeError, ValueError) as exc:
            raise InventoryValidationError(
                f"Malformed inventory response for {key.path}: {payload!r}"
            ) from exc

        valid = bool(payload.get("valid", count > 0))
        logger.debug("inventory_checked", owner_id=key.owner_id, path=key.path, products=count)
        return InventoryResult(valid=valid, product_count=count)

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()
