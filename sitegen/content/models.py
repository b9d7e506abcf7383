"""Content domain model.

``Value`` is a tagged variant (kind + payload) used for both the free-form
metadata bag and the typed field map of a content item. ``MetaMap`` is an
immutable, case-insensitive mapping of names to values; keys are folded
once when the map is built, so lookups never have to care about casing.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from decimal import Decimal
from enum import Enum
from typing import Any


class ValueKind(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    BOOL = "bool"
    DATE = "date"
    LIST = "list"
    FILE = "file"
    OBJECT = "object"


@dataclass(frozen=True)
class Value:
    """A kind-tagged metadata or field value."""

    kind: ValueKind
    payload: Any

    @classmethod
    def of(cls, raw: Any) -> Value:
        """Infer a Value from a plain Python object."""
        if isinstance(raw, Value):
            return raw
        if raw is None:
            return cls(ValueKind.TEXT, "")
        if isinstance(raw, bool):
            return cls(ValueKind.BOOL, raw)
        if isinstance(raw, (int, float, Decimal)):
            return cls(ValueKind.NUMBER, raw)
        if isinstance(raw, datetime):
            return cls(ValueKind.DATE, ensure_aware(raw))
        if isinstance(raw, date):
            return cls(ValueKind.DATE, ensure_aware(datetime.combine(raw, time.min)))
        if isinstance(raw, Mapping):
            return cls(ValueKind.OBJECT, MetaMap(raw))
        if isinstance(raw, (list, tuple, set, frozenset)):
            return cls(ValueKind.LIST, tuple(cls.of(item) for item in raw))
        return cls(ValueKind.TEXT, str(raw))

    @classmethod
    def file(cls, url: str) -> Value:
        return cls(ValueKind.FILE, url)

    def as_text(self) -> str:
        """Render the value the way it appears in fingerprints and templates."""
        if self.kind == ValueKind.DATE:
            return self.payload.isoformat()
        if self.kind == ValueKind.BOOL:
            return "true" if self.payload else "false"
        if self.kind == ValueKind.LIST:
            return ",".join(item.as_text() for item in self.payload)
        if self.kind == ValueKind.OBJECT:
            return ",".join(f"{key}={value.as_text()}" for key, value in sorted(self.payload.items()))
        return str(self.payload)

    def as_list(self) -> list[str]:
        if self.kind == ValueKind.LIST:
            return [text for text in (item.as_text().strip() for item in self.payload) if text]
        if self.kind == ValueKind.TEXT:
            return [part.strip() for part in self.payload.split(",") if part.strip()]
        text = self.as_text().strip()
        return [text] if text else []

    def as_bool(self) -> bool | None:
        if self.kind == ValueKind.BOOL:
            return self.payload
        if self.kind == ValueKind.TEXT:
            lowered = self.payload.strip().lower()
            if lowered in {"true", "yes", "on", "1"}:
                return True
            if lowered in {"false", "no", "off", "0"}:
                return False
        if self.kind == ValueKind.NUMBER:
            return bool(self.payload)
        return None

    def as_number(self) -> float | None:
        if self.kind == ValueKind.NUMBER:
            return float(self.payload)
        if self.kind == ValueKind.TEXT:
            try:
                return float(self.payload.strip())
            except ValueError:
                return None
        return None

    def as_date(self) -> datetime | None:
        if self.kind == ValueKind.DATE:
            return self.payload
        if self.kind == ValueKind.TEXT and self.payload.strip():
            return parse_datetime(self.payload)
        return None

    def as_mapping(self) -> MetaMap | None:
        return self.payload if self.kind == ValueKind.OBJECT else None

    def to_python(self) -> Any:
        """Unwrap into plain Python data for templates and JSON."""
        if self.kind == ValueKind.LIST:
            return [item.to_python() for item in self.payload]
        if self.kind == ValueKind.OBJECT:
            return self.payload.to_python()
        return self.payload


class MetaMap(Mapping[str, Value]):
    """Immutable case-insensitive mapping of names to Values."""

    __slots__ = ("_items",)

    def __init__(self, source: Mapping[str, Any] | None = None, /, **extra: Any) -> None:
        items: dict[str, tuple[str, Value]] = {}
        for raw in (source or {}, extra):
            for key, value in raw.items():
                folded = str(key).casefold()
                # First spelling wins for display; last value wins.
                display = items[folded][0] if folded in items else str(key)
                items[folded] = (display, Value.of(value))
        self._items = items

    def __getitem__(self, key: str) -> Value:
        return self._items[key.casefold()][1]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.casefold() in self._items

    def __iter__(self) -> Iterator[str]:
        return (display for display, _ in self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MetaMap):
            return NotImplemented
        return {k: v for k, (_, v) in self._items.items()} == {k: v for k, (_, v) in other._items.items()}

    def __hash__(self) -> int:
        return hash(tuple(sorted(self._items)))

    def __repr__(self) -> str:
        return f"MetaMap({dict(self.items())!r})"

    def updated(self, source: Mapping[str, Any] | None = None, /, **extra: Any) -> MetaMap:
        """Return a copy with the given keys replaced or added."""
        merged: dict[str, Any] = dict(self.items())
        for raw in (source or {}, extra):
            for key, value in raw.items():
                existing = next((k for k in merged if k.casefold() == str(key).casefold()), None)
                merged[existing or key] = value
        return MetaMap(merged)

    def get_text(self, key: str, default: str | None = None) -> str | None:
        value = self.get(key)
        if value is None:
            return default
        text = value.as_text()
        return text if text.strip() else default

    def get_list(self, key: str) -> list[str]:
        value = self.get(key)
        return value.as_list() if value is not None else []

    def get_bool(self, key: str) -> bool | None:
        value = self.get(key)
        return value.as_bool() if value is not None else None

    def get_number(self, key: str) -> float | None:
        value = self.get(key)
        return value.as_number() if value is not None else None

    def get_mapping(self, key: str) -> MetaMap | None:
        value = self.get(key)
        return value.as_mapping() if value is not None else None

    def to_python(self) -> dict[str, Any]:
        return {key: value.to_python() for key, value in self.items()}


def ensure_aware(value: datetime) -> datetime:
    """Naive datetimes are taken as UTC."""
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def parse_datetime(text: str) -> datetime | None:
    text = text.strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return ensure_aware(datetime.fromisoformat(text))
    except ValueError:
        return None


@dataclass(frozen=True)
class ContentItem:
    """One unit of content produced by a gateway. Immutable once produced."""

    id: str
    title: str
    slug: str
    publish_at: datetime
    content_html: str
    meta: MetaMap = field(default_factory=MetaMap)
    fields: MetaMap = field(default_factory=MetaMap)

    def __post_init__(self) -> None:
        object.__setattr__(self, "publish_at", ensure_aware(self.publish_at))
        if not isinstance(self.meta, MetaMap):
            object.__setattr__(self, "meta", MetaMap(self.meta))
        if not isinstance(self.fields, MetaMap):
            object.__setattr__(self, "fields", MetaMap(self.fields))

    @property
    def source_mode(self) -> str:
        mode = (self.meta.get_text("sourceMode") or "content").strip().lower()
        return "data" if mode == "data" else "content"

    @property
    def is_data(self) -> bool:
        return self.source_mode == "data"

    @property
    def type(self) -> str | None:
        return self.meta.get_text("type")

    def with_meta(self, **updates: Any) -> ContentItem:
        return ContentItem(
            id=self.id,
            title=self.title,
            slug=self.slug,
            publish_at=self.publish_at,
            content_html=self.content_html,
            meta=self.meta.updated(updates),
            fields=self.fields,
        )


__all__ = [
    "ValueKind",
    "Value",
    "MetaMap",
    "ContentItem",
    "ensure_aware",
    "parse_datetime",
]
