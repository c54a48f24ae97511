"""Interfaces of the host-side collaborators this package talks to.

Only the contracts live here; implementations belong to the host application.
"""

from collections.abc import Callable, Mapping
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel


class PersistenceResult(BaseModel):
    data: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@runtime_checkable
class PersistenceService(Protocol):
    def save(self, record: Mapping[str, Any]) -> PersistenceResult: ...

    def fetch_by_episode(self, episode_id: str) -> PersistenceResult: ...


class Subscription(BaseModel):
    channel: str
    subscriber_id: int


@runtime_checkable
class NotificationChannel(Protocol):
    def subscribe(self, episode_id: str, on_change: Callable[[Any], None]) -> Subscription: ...

    def unsubscribe(self, subscription: Subscription) -> None: ...


class CodingSuggestion(BaseModel):
    code: str
    system: str = "ICD-10"
    description: str = ""
    confidence: float = 0.0


@runtime_checkable
class CodingSuggestionProvider(Protocol):
    def suggest(self, text: str) -> list[CodingSuggestion]: ...
