"""
Tests for the Quote Codec

Round trips, int32 truncation, wire layout and malformed input.
"""

import pytest

from ilayer.core.rfq import CodecError, decode_request, decode_response, encode_request, encode_response
from ilayer.core.rfq.codec import RequestMessage
from ilayer.types import (
    QuoteRequest,
    QuoteResponse,
    RequestSide,
    ResponseSide,
    TokenAmount,
    TokenWeight,
)


@pytest.fixture
def request_quote() -> QuoteRequest:
    return QuoteRequest(
        bucket="ab12cd34",
        from_=RequestSide(network="mainnet", tokens=[TokenWeight(address="0xAAA", weight=1000)]),
        to=RequestSide(
            network="base",
            tokens=[
                TokenWeight(address="0xBBB", weight=30),
                TokenWeight(address="0xCCC", weight=70),
            ],
        ),
    )


class TestRequestCodec:
    def test_round_trip(self, request_quote):
        assert decode_request(encode_request(request_quote)) == request_quote

    def test_empty_token_lists_round_trip(self):
        request = QuoteRequest(
            bucket="ab12cd34",
            from_=RequestSide(network="mainnet"),
            to=RequestSide(network="base"),
        )
        assert decode_request(encode_request(request)) == request

    def test_fractional_weights_are_truncated(self):
        request = QuoteRequest(
            bucket="ab12cd34",
            from_=RequestSide(network="mainnet", tokens=[TokenWeight(address="0xAAA", weight=12.9)]),
            to=RequestSide(network="base", tokens=[TokenWeight(address="0xBBB", weight=-3.7)]),
        )
        decoded = decode_request(encode_request(request))
        assert decoded.from_.tokens[0].weight == 12
        assert decoded.to.tokens[0].weight == -3

    def test_uses_request_field_numbers(self, request_quote):
        message = RequestMessage()
        message.ParseFromString(encode_request(request_quote))

        assert message.bucket == "ab12cd34"
        assert getattr(message, "from").network == "mainnet"
        assert getattr(message, "from").tokens[0].weight == 1000
        assert [t.address for t in message.to.tokens] == ["0xBBB", "0xCCC"]

    def test_wire_bytes_for_bare_request(self):
        # bucket (field 1) followed by present-but-empty from (2) and to (3)
        encoded = encode_request(QuoteRequest(bucket="ab12cd34"))
        assert encoded == b"\x0a\x08ab12cd34\x12\x00\x1a\x00"

    def test_decodes_message_without_sides(self):
        decoded = decode_request(b"\x0a\x08ab12cd34")
        assert decoded.bucket == "ab12cd34"
        assert decoded.from_.tokens == []
        assert decoded.to.network == ""

    def test_out_of_range_weight_rejected(self):
        request = QuoteRequest(
            bucket="ab12cd34",
            from_=RequestSide(network="mainnet", tokens=[TokenWeight(address="0xAAA", weight=2**31)]),
        )
        with pytest.raises(CodecError):
            encode_request(request)

    def test_non_finite_weight_rejected(self):
        request = QuoteRequest(
            bucket="ab12cd34",
            from_=RequestSide(network="mainnet", tokens=[TokenWeight(address="0xAAA", weight=float("nan"))]),
        )
        with pytest.raises(CodecError):
            encode_request(request)

    def test_truncated_payload_raises_codec_error(self):
        with pytest.raises(CodecError):
            decode_request(b"\x0a\x05ab")


class TestResponseCodec:
    def test_round_trip_with_zero_amounts(self):
        response = QuoteResponse(
            solver="0x02" + "11" * 32,
            from_=ResponseSide(network="mainnet", tokens=[TokenAmount(address="0xAAA", amount=1000)]),
            to=ResponseSide(
                network="base",
                tokens=[
                    TokenAmount(address="0xBBB", amount=150),
                    TokenAmount(address="0xCCC", amount=0),
                ],
            ),
        )
        assert decode_response(encode_response(response)) == response

    def test_fractional_amounts_are_truncated(self):
        response = QuoteResponse(
            solver="solver",
            to=ResponseSide(network="base", tokens=[TokenAmount(address="0xBBB", amount=149.99)]),
        )
        decoded = decode_response(encode_response(response))
        assert decoded.to.tokens[0].amount == 149

    def test_garbage_raises_codec_error(self):
        with pytest.raises(CodecError):
            decode_response(b"\xff\xff\xff\xff")
