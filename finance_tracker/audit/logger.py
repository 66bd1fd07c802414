"""
Audit Logger and Event Dispatch

DESIGN DECISION: Every committed domain event is logged and handed to the
subscribers (notification, email, anything else outside the core).

The audit logger:
- Is async so slow subscribers do not need their own threads
- Gracefully handles failures (a broken subscriber never fails a commit)
- Logs best-effort collaborator failures that the flows swallow
"""

import inspect
import logging
from typing import Any, Awaitable, Callable, Iterable, Optional, Union

import structlog

from finance_tracker.config import get_settings
from finance_tracker.models.events import DomainEvent
from finance_tracker.services.external import Notifier

EventSubscriber = Callable[[DomainEvent], Union[None, Awaitable[None]]]


def configure_logging(level: Optional[str] = None, json_output: Optional[bool] = None) -> None:
    """Configure structlog (and the stdlib level it filters on)."""
    settings = get_settings().logging
    level = level or settings.level
    json_output = settings.json_output if json_output is None else json_output

    logging.getLogger("finance_tracker").setLevel(level)

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


class AuditLogger:
    """
    Central event log and dispatcher.

    Sends each event to:
    1. Structured local log
    2. Every subscribed callback
    3. The notifier collaborator, if one is configured
    """

    def __init__(self, notifier: Optional[Notifier] = None):
        """
        Initialize audit logger.

        Args:
            notifier: Delivery collaborator for events (email, push, ...).
                      If None, events are only logged and sent to subscribers.
        """
        self._notifier = notifier
        self._subscribers: list[EventSubscriber] = []
        self._logger = structlog.get_logger("finance_tracker.audit")

    def subscribe(self, callback: EventSubscriber) -> Callable[[], None]:
        """
        Register a callback for committed events.

        Returns a function that removes the subscription.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def publish(self, events: Iterable[DomainEvent]) -> int:
        """
        Log and deliver events in order.

        Returns the number of events whose delivery fully succeeded.
        """
        delivered = 0
        for event in events:
            if await self._deliver(event):
                delivered += 1
        return delivered

    async def _deliver(self, event: DomainEvent) -> bool:
        self._logger.info("domain_event", **event.to_log_dict())

        ok = True
        for subscriber in list(self._subscribers):
            try:
                result = subscriber(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                ok = False
                self._logger.error(
                    "event_delivery_failed",
                    subscriber=getattr(subscriber, "__qualname__", repr(subscriber)),
                    event_id=str(event.event_id),
                    error=str(e),
                )

        if self._notifier:
            try:
                await self._notifier.notify(event)
            except Exception as e:
                ok = False
                self._logger.error(
                    "event_delivery_failed",
                    subscriber="notifier",
                    event_id=str(event.event_id),
                    error=str(e),
                )
        return ok

    def log_external_service_error(
        self,
        service: str,
        error_message: str,
        **context: Any,
    ) -> None:
        """Log a swallowed failure of a best-effort collaborator."""
        self._logger.warning(
            "external_service_error",
            service=service,
            error=error_message,
            **{k: str(v) for k, v in context.items()},
        )

    def log_suggestion_ignored(self, service: str, confidence: float, threshold: float, **context: Any) -> None:
        self._logger.info(
            "ai_suggestion_ignored",
            service=service,
            confidence=confidence,
            threshold=threshold,
            **{k: str(v) for k, v in context.items()},
        )
