"""Content gateway contract and the composite gateway.

A gateway produces the flat, ordered list of content items for one build.
The orchestrator calls ``load`` exactly once per build; any exception it
raises aborts the build.
"""

from __future__ import annotations

import dataclasses
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from sitegen.content.models import ContentItem
from sitegen.errors import ContentError
from sitegen.lib.concurrency import check_cancelled
from sitegen.lib.log import get_logger

if TYPE_CHECKING:
    from sitegen.config import AppConfig, ContentSourceSettings

logger = get_logger(__name__)


@runtime_checkable
class ContentGateway(Protocol):
    """Source of content items.

    Implementations may fetch or parse concurrently internally but must
    return a single list in a stable order.
    """

    def load(self, cancel: threading.Event | None = None) -> list[ContentItem]:
        """Load every content item.

        Raises:
            ContentError: If the source cannot be read.
            BuildCancelled: If ``cancel`` is set while loading.
        """
        ...


@dataclass(frozen=True)
class SourceBinding:
    key: str
    mode: str
    gateway: ContentGateway


class CompositeGateway:
    """Concatenate several gateways, tagging each item with its source.

    Item ids become ``<source key>:<original id>`` and the original id is
    kept in the ``sourceId`` meta key next to ``sourceKey`` and
    ``sourceMode``.
    """

    def __init__(self, sources: list[SourceBinding]) -> None:
        self.sources = list(sources)

    def load(self, cancel: threading.Event | None = None) -> list[ContentItem]:
        items: list[ContentItem] = []
        for source in self.sources:
            check_cancelled(cancel)
            loaded = source.gateway.load(cancel)
            logger.debug("Loaded %d items from source %s", len(loaded), source.key)
            for item in loaded:
                tagged = item.with_meta(sourceKey=source.key, sourceMode=source.mode, sourceId=item.id)
                items.append(dataclasses.replace(tagged, id=f"{source.key}:{item.id}"))
        return items


def _source_keys(sources: list[ContentSourceSettings]) -> list[str]:
    """Explicit names win; unnamed sources use their type, numbered on repeats."""
    counts: dict[str, int] = {}
    keys = []
    for source in sources:
        if source.name and source.name.strip():
            keys.append(source.name.strip())
            continue
        base = source.type.lower()
        counts[base] = counts.get(base, 0) + 1
        keys.append(base if counts[base] == 1 else f"{base}{counts[base]}")
    return keys


def create_gateway(config: AppConfig, root_dir: Path) -> ContentGateway:
    """Build the gateway described by ``config.content``."""
    from sitegen.config import MarkdownSettings
    from sitegen.content.markdown import MarkdownGateway, MarkdownOptions

    def _markdown(settings: MarkdownSettings | None) -> MarkdownGateway:
        settings = settings or MarkdownSettings()
        return MarkdownGateway(MarkdownOptions.from_settings(settings, config, root_dir))

    content = config.content
    if content.sources:
        bindings = []
        for key, source in zip(_source_keys(content.sources), content.sources):
            if source.type != "markdown":
                raise ContentError(f"Unsupported content source type: {source.type}")
            bindings.append(SourceBinding(key=key, mode=source.mode, gateway=_markdown(source.markdown)))
        return CompositeGateway(bindings)

    if content.provider != "markdown":
        raise ContentError(f"Unsupported content provider: {content.provider}")
    return _markdown(content.markdown)


__all__ = ["ContentGateway", "CompositeGateway", "SourceBinding", "create_gateway"]
