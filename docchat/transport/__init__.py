"""Transport adapters behind one interface.

Push mode keeps a STOMP/WebSocket connection and receives replies on a
per-session topic; request mode performs one HTTP round trip per turn.
"""

import httpx

from docchat.config import ChatConfig, TransportMode
from docchat.transport.base import FrameHandler, Subscription, Transport
from docchat.transport.push import StompTransport
from docchat.transport.request import RequestResponseTransport


def create_transport(config: ChatConfig, client: httpx.AsyncClient) -> Transport:
    """Build the transport selected by ``config.transport_mode``.

    Args:
        config: Chat configuration.
        client: HTTP client used by request mode.

    Returns:
        The configured transport strategy.
    """
    if config.transport_mode is TransportMode.REQUEST:
        return RequestResponseTransport(client, config)
    return StompTransport(config)


__all__ = [
    "FrameHandler",
    "RequestResponseTransport",
    "StompTransport",
    "Subscription",
    "Transport",
    "create_transport",
]
