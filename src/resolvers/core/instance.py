"""Host-facing entity model and attribute helpers."""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Protocol

from pydantic import BaseModel, Field

from src.resolvers.core.errors import RequiredFieldError


class Instance(BaseModel):
    """A canonical entity: namespace, entity type and snake_case attributes."""

    namespace: str
    entity_type: str
    attributes: dict[str, Any] = Field(default_factory=dict)

    @property
    def path(self) -> str:
        return f"{self.namespace}/{self.entity_type}"

    def get(self, key: str, default: Any = None) -> Any:
        return self.attributes.get(key, default)

    def __getitem__(self, key: str) -> Any:
        return self.attributes[key]


def make_instance(namespace: str, entity_type: str, attributes: Mapping[str, Any]) -> Instance:
    return Instance(namespace=namespace, entity_type=entity_type, attributes=dict(attributes))


class SubscriptionSink(Protocol):
    """Receiver for polled records."""

    async def on_subscription(self, instance: Instance, is_upsert: bool) -> None: ...


# ── Attribute helpers ─────────────────────────────────────────────────────


def path_id(query: Mapping[str, Any] | None) -> str | None:
    """Return the last non-empty segment of ``query["__path__"]``."""
    if not query:
        return None
    path = query.get("__path__")
    if not path:
        return None
    segments = [s for s in str(path).split("/") if s]
    return segments[-1] if segments else None


def require(attrs: Mapping[str, Any], *names: str, message: str | None = None) -> None:
    """Raise RequiredFieldError unless every name is present and truthy."""
    missing = [n for n in names if attrs.get(n) in (None, "")]
    if missing:
        raise RequiredFieldError(message or f"{', '.join(missing)} required")


def split_csv(value: Any) -> list[str]:
    if value is None or value == "":
        return []
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if str(v).strip()]
    return [part.strip() for part in str(value).split(",") if part.strip()]


def join_csv(values: Iterable[Any] | None) -> str:
    if not values:
        return ""
    return ",".join(str(v) for v in values)


def to_int(value: Any, default: int | None = None) -> int | None:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def to_float(value: Any, default: float | None = None) -> float | None:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def to_str(value: Any, default: str = "") -> str:
    return default if value is None else str(value)


def compact(data: Mapping[str, Any]) -> dict[str, Any]:
    """Drop keys whose value is None."""
    return {k: v for k, v in data.items() if v is not None}


__all__ = [
    "Instance",
    "make_instance",
    "SubscriptionSink",
    "path_id",
    "require",
    "split_csv",
    "join_csv",
    "to_int",
    "to_float",
    "to_str",
    "compact",
]
