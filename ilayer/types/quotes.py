"""Wire-level shapes exchanged between requesters and solvers."""

from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class TokenWeight(_Frozen):
    address: str = Field(description="Token contract address")
    weight: float = Field(
        description="Source side: absolute quantity. Destination side: percentage share (0-100)",
    )


class RequestSide(_Frozen):
    network: str = Field(default="", description="Network identifier, e.g. mainnet or base")
    tokens: List[TokenWeight] = Field(default_factory=list)


class QuoteRequest(_Frozen):
    bucket: str = Field(description="Correlation key; the response is published on this bucket's topic")
    from_: RequestSide = Field(default_factory=RequestSide, alias="from")
    to: RequestSide = Field(default_factory=RequestSide)


class TokenAmount(_Frozen):
    address: str = Field(description="Token contract address")
    amount: float = Field(description="Absolute token quantity")


class ResponseSide(_Frozen):
    network: str = Field(default="")
    tokens: List[TokenAmount] = Field(default_factory=list)


class QuoteResponse(_Frozen):
    solver: str = Field(description="Public key of the responding solver")
    from_: ResponseSide = Field(default_factory=ResponseSide, alias="from")
    to: ResponseSide = Field(default_factory=ResponseSide)


class Price(_Frozen):
    address: str
    price: float = Field(description="Spot price in USD")

    @field_validator("address")
    @classmethod
    def _lower(cls, value: str) -> str:
        return value.lower()
