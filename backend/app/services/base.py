# backend/app/services/base.py
"""
Base Service Pattern for CoachDesk.

Provides the plumbing every domain service shares:
- Transaction management with commit/rollback
- Domain events queued during a transaction and published after commit
- Operation timing (in-process stats plus Prometheus)
- Structured operation logging
"""

import asyncio
from contextlib import contextmanager
from functools import wraps
import logging
import time
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterator, List, TypeVar, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import ServiceException
from ..monitoring.prometheus_metrics import prometheus_metrics

if TYPE_CHECKING:
    from ..events.base import DomainEvent

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


class BaseService:
    """
    Base class for all service layer components.

    Services receive a request- or task-scoped session, create repositories
    over it, and wrap writes in ``transaction()``.
    """

    _class_metrics: Dict[str, Dict[str, Dict[str, float]]] = {}

    def __init__(self, db: Session):
        self.db = db
        self.logger = logging.getLogger(self.__class__.__name__)
        self._pending_events: List["DomainEvent"] = []

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Commit on success, roll back on failure.

        Events queued with ``publish_after_commit`` inside the block are
        published only once the commit succeeds.
        """
        try:
            yield self.db
            self.db.commit()
        except SQLAlchemyError as e:
            self.logger.error("Transaction failed: %s", e)
            self.db.rollback()
            self._pending_events.clear()
            raise ServiceException(f"Database operation failed: {e}") from e
        except Exception:
            self.db.rollback()
            self._pending_events.clear()
            raise
        self._flush_events()

    def publish_after_commit(self, event: "DomainEvent") -> None:
        self._pending_events.append(event)

    def absorb_events(self, *services: "BaseService") -> None:
        """Take over events queued by helper services sharing this session."""
        for service in services:
            self._pending_events.extend(service._pending_events)
            service._pending_events = []

    def _flush_events(self) -> None:
        if not self._pending_events:
            return
        from ..events.bus import event_bus

        events, self._pending_events = self._pending_events, []
        for event in events:
            event_bus.publish(event)

    @staticmethod
    def measure_operation(operation_name: str) -> Callable[[F], F]:
        """
        Decorator recording duration and outcome of a service method.

        Usage:
            @BaseService.measure_operation("create_course")
            def create_course(self, coach_id, data):
                ...
        """

        def decorator(func: F) -> F:
            func._operation_name = operation_name  # type: ignore[attr-defined]

            if asyncio.iscoroutinefunction(func):

                @wraps(func)
                async def async_wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
                    start = time.perf_counter()
                    error_type = None
                    try:
                        return await func(self, *args, **kwargs)
                    except Exception as e:
                        error_type = type(e).__name__
                        raise
                    finally:
                        _after_operation(self, operation_name, time.perf_counter() - start, error_type)

                return cast(F, async_wrapper)

            @wraps(func)
            def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
                start = time.perf_counter()
                error_type = None
                try:
                    return func(self, *args, **kwargs)
                except Exception as e:
                    error_type = type(e).__name__
                    raise
                finally:
                    _after_operation(self, operation_name, time.perf_counter() - start, error_type)

            return cast(F, wrapper)

        return decorator

    def log_operation(self, operation: str, **context: Any) -> None:
        self.logger.info("Operation: %s %s", operation, context, extra={"operation": operation})

    def _record_metric(self, operation: str, elapsed: float, success: bool) -> None:
        metrics = BaseService._class_metrics.setdefault(self.__class__.__name__, {})
        data = metrics.setdefault(
            operation,
            {"count": 0, "total_time": 0.0, "failure_count": 0, "max_time": 0.0},
        )
        data["count"] += 1
        data["total_time"] += elapsed
        data["max_time"] = max(data["max_time"], elapsed)
        if not success:
            data["failure_count"] += 1

    def get_metrics(self) -> Dict[str, Any]:
        """Per-operation timing summary for this service class."""
        result: Dict[str, Any] = {}
        for operation, data in BaseService._class_metrics.get(self.__class__.__name__, {}).items():
            count = int(data["count"])
            if not count:
                continue
            result[operation] = {
                "count": count,
                "avg_time": data["total_time"] / count,
                "max_time": data["max_time"],
                "success_rate": (count - data["failure_count"]) / count,
            }
        return result

    def reset_metrics(self) -> None:
        BaseService._class_metrics.pop(self.__class__.__name__, None)


def _after_operation(service: Any, operation: str, elapsed: float, error_type: str | None) -> None:
    success = error_type is None
    if isinstance(service, BaseService):
        service._record_metric(operation, elapsed, success)
    if elapsed * 1000 > settings.slow_operation_threshold_ms:
        logging.getLogger(service.__class__.__name__).warning(
            "Slow operation detected: %s took %.2fs", operation, elapsed
        )
    prometheus_metrics.record_service_operation(
        service=service.__class__.__name__,
        operation=operation,
        duration=elapsed,
        status="success" if success else "error",
        error_type=error_type,
    )
