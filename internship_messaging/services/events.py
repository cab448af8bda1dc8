"""Domain events and the in-process bus that delivers them.

The bus is request-scoped: one is built per service graph, so no handler
state outlives a request.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Awaitable, Callable, DefaultDict, List, Type
from uuid import UUID

from internship_messaging.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class StudentRespondedToPendingAdoption:
    """A student posted into an adoption-request conversation still PENDING."""

    conversation_id: UUID
    adoption_request_id: UUID
    student_id: UUID
    message_id: UUID


EventHandler = Callable[[object], Awaitable[None]]


@dataclass(frozen=True)
class HandlerFailure:
    event: object
    handler: str
    error: Exception


@dataclass
class EventBus:
    """Dispatches events to subscribed async handlers, in subscription order."""

    _handlers: DefaultDict[Type, List[EventHandler]] = field(
        default_factory=lambda: defaultdict(list)
    )

    def subscribe(self, event_type: Type, handler: EventHandler) -> None:
        self._handlers[event_type].append(handler)

    async def publish(self, event: object) -> List[HandlerFailure]:
        """Run every handler for the event.

        A failing handler does not stop the others; failures are returned so
        the publisher can decide how to surface them.
        """
        failures: List[HandlerFailure] = []
        for handler in self._handlers.get(type(event), []):
            try:
                await handler(event)
            except Exception as e:
                name = getattr(handler, "__qualname__", repr(handler))
                logger.exception("Handler %s failed for %r", name, event)
                failures.append(HandlerFailure(event=event, handler=name, error=e))
        return failures
