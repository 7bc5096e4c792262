"""
Quote Codec

Protocol Buffers framing for quote requests and responses. The schema is
assembled from descriptors at import time so no generated code is needed;
message and field names match the ``WakuPackage`` schema used by the
JavaScript deployments, so both sides can talk to each other.

Numeric fields are int32 on the wire: fractional weights and amounts are
truncated toward zero when encoded.
"""

from __future__ import annotations

import math
from typing import Any, Dict, Iterable, List, Optional, Tuple

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory
from google.protobuf.message import DecodeError, Message
from pydantic import ValidationError

from ...types import QuoteRequest, QuoteResponse
from .errors import CodecError

PACKAGE = "WakuPackage"

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1

_F = descriptor_pb2.FieldDescriptorProto

# (field name, wire type, referenced message, repeated)
_FieldSpec = Tuple[str, int, Optional[str], bool]


def _add_message(file_proto: descriptor_pb2.FileDescriptorProto, name: str, fields: List[_FieldSpec]) -> None:
    message = file_proto.message_type.add(name=name)
    for number, (field_name, kind, type_name, repeated) in enumerate(fields, start=1):
        entry = message.field.add(
            name=field_name,
            number=number,
            type=kind,
            label=_F.LABEL_REPEATED if repeated else _F.LABEL_OPTIONAL,
        )
        if type_name:
            entry.type_name = f".{PACKAGE}.{type_name}"


def _build_schema() -> descriptor_pool.DescriptorPool:
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="ilayer/rfq.proto",
        package=PACKAGE,
        syntax="proto3",
    )
    for prefix, head, numeric in (("Request", "bucket", "weight"), ("Response", "solver", "amount")):
        _add_message(file_proto, f"{prefix}Token", [
            ("address", _F.TYPE_STRING, None, False),
            (numeric, _F.TYPE_INT32, None, False),
        ])
        for side in ("From", "To"):
            _add_message(file_proto, f"{prefix}{side}", [
                ("network", _F.TYPE_STRING, None, False),
                ("tokens", _F.TYPE_MESSAGE, f"{prefix}Token", True),
            ])
        _add_message(file_proto, prefix, [
            (head, _F.TYPE_STRING, None, False),
            ("from", _F.TYPE_MESSAGE, f"{prefix}From", False),
            ("to", _F.TYPE_MESSAGE, f"{prefix}To", False),
        ])

    pool = descriptor_pool.DescriptorPool()
    pool.AddSerializedFile(file_proto.SerializeToString())
    return pool


_POOL = _build_schema()
RequestMessage = message_factory.GetMessageClass(_POOL.FindMessageTypeByName(f"{PACKAGE}.Request"))
ResponseMessage = message_factory.GetMessageClass(_POOL.FindMessageTypeByName(f"{PACKAGE}.Response"))


def to_wire_int(value: float) -> int:
    """Truncate toward zero and check the int32 range."""
    if not math.isfinite(value):
        raise CodecError(f"Cannot encode non-finite value {value!r}")
    truncated = int(value)
    if not INT32_MIN <= truncated <= INT32_MAX:
        raise CodecError(f"Value {value!r} does not fit in int32")
    return truncated


def _fill_side(target: Message, network: str, entries: Iterable[Tuple[str, float]], numeric: str) -> None:
    target.SetInParent()
    target.network = network
    for address, value in entries:
        target.tokens.add(**{"address": address, numeric: to_wire_int(value)})


def _read_side(source: Message, numeric: str) -> Dict[str, Any]:
    return {
        "network": source.network,
        "tokens": [
            {"address": token.address, numeric: getattr(token, numeric)}
            for token in source.tokens
        ],
    }


def _parse(message_cls: type, payload: bytes) -> Message:
    message = message_cls()
    try:
        message.ParseFromString(bytes(payload))
    except (DecodeError, ValueError) as exc:
        raise CodecError(f"Malformed {message_cls.DESCRIPTOR.name} payload: {exc}") from exc
    return message


def encode_request(request: QuoteRequest) -> bytes:
    message = RequestMessage(bucket=request.bucket)
    try:
        _fill_side(getattr(message, "from"), request.from_.network,
                   ((t.address, t.weight) for t in request.from_.tokens), "weight")
        _fill_side(message.to, request.to.network,
                   ((t.address, t.weight) for t in request.to.tokens), "weight")
    except (TypeError, ValueError) as exc:
        raise CodecError(f"Cannot encode request: {exc}") from exc
    return message.SerializeToString()


def decode_request(payload: bytes) -> QuoteRequest:
    message = _parse(RequestMessage, payload)
    try:
        return QuoteRequest.model_validate({
            "bucket": message.bucket,
            "from": _read_side(getattr(message, "from"), "weight"),
            "to": _read_side(message.to, "weight"),
        })
    except ValidationError as exc:
        raise CodecError(f"Invalid request payload: {exc}") from exc


def encode_response(response: QuoteResponse) -> bytes:
    message = ResponseMessage(solver=response.solver)
    try:
        _fill_side(getattr(message, "from"), response.from_.network,
                   ((t.address, t.amount) for t in response.from_.tokens), "amount")
        _fill_side(message.to, response.to.network,
                   ((t.address, t.amount) for t in response.to.tokens), "amount")
    except (TypeError, ValueError) as exc:
        raise CodecError(f"Cannot encode response: {exc}") from exc
    return message.SerializeToString()


def decode_response(payload: bytes) -> QuoteResponse:
    message = _parse(ResponseMessage, payload)
    try:
        return QuoteResponse.model_validate({
            "solver": message.solver,
            "from": _read_side(getattr(message, "from"), "amount"),
            "to": _read_side(message.to, "amount"),
        })
    except ValidationError as exc:
        raise CodecError(f"Invalid response payload: {exc}") from exc
