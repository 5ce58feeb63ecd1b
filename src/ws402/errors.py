"""
ws402 error types.

Negotiation and configuration errors are fatal at startup; renewal errors are
logged and the session keeps streaming.
"""

from typing import Any, Optional


class WS402Error(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class ConfigError(WS402Error):
    def __init__(self, message: str):
        super().__init__("config_error", message)


class NegotiationError(WS402Error):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("negotiation_error", message, details)


class PaymentError(WS402Error):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("payment_error", message, details)


class RenewalError(WS402Error):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("renewal_error", message, details)


class MalformedEvent(WS402Error):
    """Reason attached to an unclassifiable inbound payload. Never raised past the classifier."""

    def __init__(self, message: str):
        super().__init__("malformed_event", message)


class TransportError(WS402Error):
    def __init__(self, message: str):
        super().__init__("transport_error", message)
