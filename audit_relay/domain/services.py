"""
CRC — domain/services.py

Name
- Domain Service Interfaces (Protocols)

Responsibilities
- Define the publishing port used by the interceptor and the exception reporter.

Collaborators
- infrastructure.messaging.redis_publisher.RedisStreamPublisher
- infrastructure.messaging.in_memory.InMemoryEventLog
"""

from concurrent.futures import Future
from typing import Any, Protocol


class EventPublisher(Protocol):
    """R: Fire-and-forget publishing to the durable message log."""

    def publish(self, event: Any) -> Future | None:
        """R: Never raises; failures are logged and the event is dropped."""
        ...

    def close(self) -> None: ...
