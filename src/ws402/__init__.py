"""
ws402-client — pay-per-second event streams over x402 for Python.

Buys access to a ws402 stream over HTTP 402, holds the websocket open,
classifies inbound events and renews the access token before it expires.
"""

from ws402.client import AsyncStreamClient, StreamClient
from ws402.config import ClientConfig, load_config
from ws402.classifier import classify, summarize_transaction
from ws402.errors import (
    WS402Error,
    ConfigError,
    NegotiationError,
    PaymentError,
    RenewalError,
    MalformedEvent,
    TransportError,
)
from ws402.models.events import ClientOp, ServerOp, EventKind
from ws402.session import SessionState, StreamSession

__version__ = "0.1.0"
__all__ = [
    "AsyncStreamClient",
    "StreamClient",
    "ClientConfig",
    "load_config",
    "classify",
    "summarize_transaction",
    "WS402Error",
    "ConfigError",
    "NegotiationError",
    "PaymentError",
    "RenewalError",
    "MalformedEvent",
    "TransportError",
    "ClientOp",
    "ServerOp",
    "EventKind",
    "SessionState",
    "StreamSession",
]
