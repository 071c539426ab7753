"""Base type for named domain events."""
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, ClassVar, Dict


@dataclass
class DomainEvent:
    """
    A fact that happened in one domain and may trigger side effects in others.

    Subclasses set ``name`` to the dotted event name handlers subscribe to.
    """

    name: ClassVar[str] = "domain.event"

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe payload; datetimes become ISO strings."""
        payload = asdict(self)
        for key, value in payload.items():
            if isinstance(value, datetime):
                payload[key] = value.isoformat()
        return payload
