"""HTTP client for the optimizer and scenario simulator services."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from .config import Settings
from .domain import Factory

logger = logging.getLogger(__name__)

SIMULATION_PROMPT = "Run simulation"


class AdvisoryTransportError(RuntimeError):
    """The advisory service could not be reached or answered with an error."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Advisory call to {url} failed: {reason}")
        self.url = url
        self.reason = reason


def build_payload(factory: Factory, user_message: str) -> Dict[str, Any]:
    board = factory.to_payload()
    return {
        "factoryData": board["factoryData"],
        "gridData": board["gridData"],
        "userMessage": user_message,
        "status": None,
        "message": None,
        "timestamp": None,
    }


class AdvisoryClient:
    """Posts the current board to the advisory services and returns their JSON."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.settings = settings or Settings()
        self._client = httpx.Client(
            timeout=self.settings.request_timeout_seconds,
            verify=self.settings.verify_tls,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    @property
    def optimization_url(self) -> str:
        return self.settings.optimization_api_url

    @property
    def simulation_url(self) -> str:
        return self.settings.simulation_api_url

    def optimize(self, factory: Factory, user_message: str) -> Any:
        return self._post(self.optimization_url, build_payload(factory, user_message))

    def simulate(self, factory: Factory, user_message: str = SIMULATION_PROMPT) -> Any:
        return self._post(self.simulation_url, build_payload(factory, user_message))

    def _post(self, url: str, payload: Dict[str, Any]) -> Any:
        logger.info("POST %s (%s)", url, payload["userMessage"])
        try:
            response = self._client.post(url, json=payload)
        except httpx.HTTPError as exc:
            raise AdvisoryTransportError(url, str(exc) or type(exc).__name__) from exc
        if not response.is_success:
            raise AdvisoryTransportError(url, f"API Error: {response.status_code}")
        try:
            return response.json()
        except ValueError as exc:
            raise AdvisoryTransportError(url, "response body is not JSON") from exc

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "AdvisoryClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = ["AdvisoryClient", "AdvisoryTransportError", "build_payload", "SIMULATION_PROMPT"]
