"""Base classes for the checkout domain.

Value objects are immutable and compared by value. Aggregates carry an
identity, a modification timestamp, and a queue of domain events that the
application layer drains after each operation.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar
from uuid import UUID, uuid4


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


# ============================================================================
# Value Object Base
# ============================================================================


@dataclass(frozen=True)
class ValueObject(ABC):
    """Base class for value objects.

    Subclasses must be declared ``@dataclass(frozen=True)`` so that two
    instances holding the same values compare equal and can be hashed.
    """

    pass


# ============================================================================
# Aggregate Root Base
# ============================================================================


@dataclass(kw_only=True)
class AggregateRoot(ABC):
    """Base class for aggregates with a string identity.

    Attributes:
        id: Unique identifier of the aggregate.
        created_at: Creation timestamp.
        updated_at: Timestamp of the last state change.
    """

    id: str
    created_at: datetime = field(default_factory=utcnow, compare=False)
    updated_at: datetime = field(default_factory=utcnow, compare=False)
    _events: list["DomainEvent"] = field(
        default_factory=list,
        init=False,
        repr=False,
        compare=False,
    )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, self.__class__):
            return False
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def _record_event(self, event: "DomainEvent") -> None:
        """Queue a domain event for publication."""
        self._events.append(event)

    def collect_events(self) -> list["DomainEvent"]:
        """Drain and return queued events.

        Returns:
            Events recorded since the previous call.
        """
        events = self._events.copy()
        self._events.clear()
        return events

    def _touch(self) -> None:
        self.updated_at = utcnow()


# ============================================================================
# Domain Event Base
# ============================================================================


@dataclass(frozen=True)
class DomainEvent(ABC):
    """Base class for domain events.

    Attributes:
        event_id: Unique identifier of this event instance.
        event_type: Dotted event name, set by each subclass.
        occurred_at: When the event happened.
        aggregate_id: Identity of the emitting aggregate.
    """

    event_type: ClassVar[str]

    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=utcnow)
    aggregate_id: str = field(default="")

    def to_dict(self) -> dict[str, Any]:
        """Serialize the event envelope and payload.

        Returns:
            JSON-compatible dictionary.
        """
        return {
            "event_id": str(self.event_id),
            "event_type": self.event_type,
            "occurred_at": self.occurred_at.isoformat(),
            "aggregate_id": self.aggregate_id,
            "payload": self._payload(),
        }

    @abstractmethod
    def _payload(self) -> dict[str, Any]:
        """Event-specific data."""
        pass
