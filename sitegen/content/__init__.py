"""Content model and gateways."""

from sitegen.content.gateway import CompositeGateway, ContentGateway, SourceBinding, create_gateway
from sitegen.content.models import ContentItem, MetaMap, Value, ValueKind

__all__ = [
    "CompositeGateway",
    "ContentGateway",
    "ContentItem",
    "MetaMap",
    "SourceBinding",
    "Value",
    "ValueKind",
    "create_gateway",
]
