"""Request routing and adapter dispatch."""

from agenthub_server.routing.dispatcher import ChatDispatcher
from agenthub_server.routing.router import (
    MENTION_PATTERN,
    AdapterKind,
    RequestRouter,
    RouteDecision,
    RoutingError,
    parse_mentions,
    strip_mention,
)

__all__ = [
    "MENTION_PATTERN",
    "AdapterKind",
    "ChatDispatcher",
    "RequestRouter",
    "RouteDecision",
    "RoutingError",
    "parse_mentions",
    "strip_mention",
]
