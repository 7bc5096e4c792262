"""
RFQ Protocol Module

Request-for-quote rendezvous over a broadcast substrate: identities and
topics, wire codec, pricing, resilient subscriptions, requester and solver.
"""

from .codec import decode_request, decode_response, encode_request, encode_response
from .errors import (
    CodecError,
    EmptySourceError,
    MessagingError,
    MissingSourcePriceError,
    PeerWaitTimeout,
    PricingError,
    ResponseTimeoutError,
    RfqError,
    SubscribeError,
    TransportError,
)
from .identity import REQUEST_TOPIC, Identity, bucket_of, is_valid_bucket, new_identity, topic_for
from .pricing import PricingEngine, extract_addresses, price_of, random_fee
from .requester import RfqRequester
from .session import Session, publish_once
from .solver import RfqSolver
from .subscription import SubscriptionManager, SubscriptionState

__all__ = [
    # Identity & topics
    "Identity",
    "new_identity",
    "bucket_of",
    "topic_for",
    "is_valid_bucket",
    "REQUEST_TOPIC",
    # Codec
    "encode_request",
    "decode_request",
    "encode_response",
    "decode_response",
    # Pricing
    "PricingEngine",
    "extract_addresses",
    "price_of",
    "random_fee",
    # Protocol
    "Session",
    "publish_once",
    "SubscriptionManager",
    "SubscriptionState",
    "RfqRequester",
    "RfqSolver",
    # Errors
    "RfqError",
    "MessagingError",
    "TransportError",
    "SubscribeError",
    "PeerWaitTimeout",
    "CodecError",
    "PricingError",
    "MissingSourcePriceError",
    "EmptySourceError",
    "ResponseTimeoutError",
]
