"""Analytics sinks.

A sink receives one ``CheckoutOutcomeReported`` event per terminal outcome.
Sinks may raise; the outcome emitter isolates checkout state from them.
"""

from abc import ABC, abstractmethod

import httpx
import structlog

from checkoutflow.domain.events import CheckoutOutcomeReported
from checkoutflow.infrastructure.config import Settings, settings

logger = structlog.get_logger()


class AnalyticsSink(ABC):
    """Destination for checkout outcome events."""

    @abstractmethod
    async def send(self, event: CheckoutOutcomeReported) -> None:
        """Deliver one event."""

    async def close(self) -> None:
        return None


class LogAnalyticsSink(AnalyticsSink):
    """Writes events to the structured log. Used when no collector is set."""

    async def send(self, event: CheckoutOutcomeReported) -> None:
        logger.info("Analytics event", **event.to_dict())


class HttpAnalyticsSink(AnalyticsSink):
    """POSTs events as JSON to a collector endpoint."""

    def __init__(
        self,
        url: str,
        timeout: float = 3.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def send(self, event: CheckoutOutcomeReported) -> None:
        response = await self._client.post(
            self.url,
            json=event.to_dict(),
            headers={"X-Event-Id": str(event.event_id)},
        )
        if response.status_code >= 300:
            raise RuntimeError(
                f"Analytics collector rejected event {event.event_id}: "
                f"HTTP {response.status_code}"
            )

    async def close(self) -> None:
        await self._client.aclose()


def build_analytics_sink(config: Settings | None = None) -> AnalyticsSink:
    """Pick the HTTP collector when configured, else the log sink."""
    config = config or settings
    if config.analytics_url:
        return HttpAnalyticsSink(config.analytics_url, timeout=config.analytics_timeout_seconds)
    return LogAnalyticsSink()
