"""
In-process event bus.

Handlers subscribe to dotted event names. ``publish`` either calls every
handler inline, each with its own database session, or hands the payload to
Celery when ``EVENT_DISPATCH_MODE=celery``. No ordering or retry is added on
top of what Celery provides.
"""
from contextlib import AbstractContextManager
import logging
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.monitoring.prometheus_metrics import prometheus_metrics

from .base import DomainEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[Dict[str, Any], Session], None]
SessionFactory = Callable[[], AbstractContextManager[Session]]


def _default_session_factory() -> AbstractContextManager[Session]:
    from app.database import get_db_session

    return get_db_session()


class EventBus:
    def __init__(self, session_factory: Optional[SessionFactory] = None, mode: Optional[str] = None):
        self._handlers: Dict[str, List[EventHandler]] = {}
        self.session_factory: SessionFactory = session_factory or _default_session_factory
        self.mode = mode or settings.event_dispatch_mode

    def subscribe(self, event_name: str, handler: EventHandler) -> None:
        handlers = self._handlers.setdefault(event_name, [])
        if handler not in handlers:
            handlers.append(handler)

    def unsubscribe(self, event_name: str, handler: EventHandler) -> None:
        handlers = self._handlers.get(event_name, [])
        if handler in handlers:
            handlers.remove(handler)

    def handlers_for(self, event_name: str) -> List[EventHandler]:
        return list(self._handlers.get(event_name, []))

    def clear(self) -> None:
        self._handlers.clear()

    def publish(self, event: DomainEvent) -> None:
        payload = event.to_dict()
        if self.mode == "celery":
            from app.tasks.events import dispatch_event

            dispatch_event.delay(event.name, payload)
            prometheus_metrics.record_domain_event(event.name, "queued")
            logger.debug("[EVENTS] queued %s", event.name)
            return
        self.dispatch(event.name, payload)

    def dispatch(self, event_name: str, payload: Dict[str, Any]) -> int:
        """
        Run every handler for ``event_name``; returns how many succeeded.

        A failing handler is logged and the remaining handlers still run.
        """
        succeeded = 0
        for handler in self.handlers_for(event_name):
            handler_name = getattr(handler, "__name__", repr(handler))
            try:
                with self.session_factory() as db:
                    handler(payload, db)
            except Exception:
                logger.exception("[EVENTS] handler %s failed for %s", handler_name, event_name)
                prometheus_metrics.record_domain_event(event_name, "failed")
                continue
            succeeded += 1
            prometheus_metrics.record_domain_event(event_name, "handled")
        if not self._handlers.get(event_name):
            logger.debug("[EVENTS] no handlers for %s", event_name)
        return succeeded


event_bus = EventBus()
