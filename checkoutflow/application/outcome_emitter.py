"""Fire-and-forget delivery of checkout outcomes to analytics."""

import asyncio
from collections import OrderedDict

import structlog

from checkoutflow.domain.events import CheckoutOutcomeReported
from checkoutflow.infrastructure.analytics import AnalyticsSink, build_analytics_sink
from checkoutflow.infrastructure.config import settings

logger = structlog.get_logger()


class OutcomeEmitter:
    """Reports each terminal outcome once per reference.

    Delivery runs as a background task. Sink failures are logged and never
    reach the caller, so checkout state cannot be affected by analytics.
    Only the ``capacity`` most recent dedup keys are remembered.
    """

    def __init__(self, sink: AnalyticsSink | None = None, capacity: int = 10_000) -> None:
        self.sink = sink or build_analytics_sink()
        self.capacity = capacity
        self._seen: OrderedDict[str, None] = OrderedDict()
        self._tasks: set[asyncio.Task[None]] = set()

    def emit(self, event: CheckoutOutcomeReported) -> bool:
        """Schedule delivery of an outcome event.

        Returns:
            True if scheduled, False if this reference/outcome pair was
            already reported.
        """
        key = event.dedup_key
        if key in self._seen:
            logger.debug("Duplicate outcome not re-reported", dedup_key=key)
            return False
        self._seen[key] = None
        while len(self._seen) > self.capacity:
            self._seen.popitem(last=False)

        task = asyncio.create_task(self._deliver(event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    async def _deliver(self, event: CheckoutOutcomeReported) -> None:
        try:
            await self.sink.send(event)
        except Exception as e:
            logger.warning(
                "Analytics delivery failed",
                event_id=str(event.event_id),
                outcome=event.outcome,
                reference=event.reference,
                error=str(e),
                error_type=type(e).__name__,
            )

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for all scheduled deliveries to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def close(self) -> None:
        await self.drain()
        await self.sink.close()


_emitter: OutcomeEmitter | None = None


def get_outcome_emitter() -> OutcomeEmitter:
    """Get outcome emitter singleton."""
    global _emitter
    if _emitter is None:
        _emitter = OutcomeEmitter(capacity=settings.analytics_dedup_capacity)
    return _emitter


async def close_outcome_emitter() -> None:
    global _emitter
    if _emitter is not None:
        await _emitter.close()
        _emitter = None
