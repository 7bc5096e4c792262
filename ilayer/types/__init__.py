from .quotes import (
    Price,
    QuoteRequest,
    QuoteResponse,
    RequestSide,
    ResponseSide,
    TokenAmount,
    TokenWeight,
)

__all__ = [
    "Price",
    "QuoteRequest",
    "QuoteResponse",
    "RequestSide",
    "ResponseSide",
    "TokenAmount",
    "TokenWeight",
]
