"""Fingerprints stored in the build manifest."""

from __future__ import annotations

from collections.abc import Iterable

from sitegen.content.models import ContentItem, MetaMap
from sitegen.lib.hashing import hash_lines, hash_text
from sitegen.routing import Route


def fields_fingerprint(fields: MetaMap) -> str:
    """Order-independent, case-insensitive rendering of a field map."""
    lines = []
    for key in sorted(fields, key=str.casefold):
        value = fields[key]
        lines.append(f"{key.casefold()}\n{value.kind.value}\n{value.as_text()}")
    return "\n".join(lines)


def content_hash(item: ContentItem) -> str:
    return hash_lines(
        item.id,
        item.title,
        item.slug,
        item.publish_at.isoformat(),
        item.meta.get_text("type") or "",
        item.meta.get_text("summary") or "",
        fields_fingerprint(item.fields),
        item.content_html,
    )


def route_hash(route: Route) -> str:
    return hash_lines(route.url, route.output_path, route.template)


def plugins_hash(identities: Iterable[str]) -> str:
    """Fingerprint of the enabled plugin set (``name@version`` strings)."""
    return hash_text("\n".join(sorted(identity.casefold() for identity in identities)))


__all__ = ["content_hash", "route_hash", "plugins_hash", "fields_fingerprint"]
