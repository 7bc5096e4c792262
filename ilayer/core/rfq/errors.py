"""
RFQ Error Classification

Errors raised by the messaging substrate, the codec and the pricing engine.
Messaging errors are transient (the subscription manager retries them);
codec and pricing errors end the handling of a single message.
"""

from enum import Enum
from typing import Optional


class ErrorCategory(str, Enum):
    """Categories of RFQ errors."""

    TRANSPORT = "transport"       # Publish failed on the substrate
    SUBSCRIBE = "subscribe"       # Subscribe failed, no reachable peer
    CODEC = "codec"               # Bytes could not be framed or parsed
    PRICING = "pricing"           # Quote could not be computed
    TIMEOUT = "timeout"           # Nobody answered in time


class RfqError(Exception):
    """Base class for RFQ protocol errors."""

    category: ErrorCategory = ErrorCategory.TRANSPORT

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MessagingError(RfqError):
    """Substrate failure. Transient; callers may retry."""


class TransportError(MessagingError):
    """Publishing a message failed."""

    category = ErrorCategory.TRANSPORT

    def __init__(self, message: str = "Publish failed", topic: Optional[str] = None):
        super().__init__(message)
        self.topic = topic


class SubscribeError(MessagingError):
    """Subscribing to a topic failed."""

    category = ErrorCategory.SUBSCRIBE

    def __init__(self, message: str = "Subscribe failed", topic: Optional[str] = None):
        super().__init__(message)
        self.topic = topic


class PeerWaitTimeout(MessagingError):
    """No peer supporting the wanted protocols became reachable in time."""

    category = ErrorCategory.SUBSCRIBE


class CodecError(RfqError):
    """Malformed payload, or a value that cannot be put on the wire."""

    category = ErrorCategory.CODEC


class PricingError(RfqError):
    """Quote computation failed; the request gets no response."""

    category = ErrorCategory.PRICING


class MissingSourcePriceError(PricingError):
    def __init__(self, address: str):
        super().__init__(f"Price not found for {address}")
        self.address = address


class EmptySourceError(PricingError):
    def __init__(self):
        super().__init__("Request carries no source token")


class ResponseTimeoutError(RfqError):
    """No quote response arrived within the caller's timeout."""

    category = ErrorCategory.TIMEOUT

    def __init__(self, timeout: float, bucket: Optional[str] = None):
        super().__init__(f"No quote response within {timeout:g}s")
        self.timeout = timeout
        self.bucket = bucket
