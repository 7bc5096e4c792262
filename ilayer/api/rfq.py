from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field
from typing import Any, Dict, Optional

from ..config import settings
from ..core.rfq import CodecError, MessagingError, ResponseTimeoutError, RfqRequester
from ..node import get_node
from ..types import QuoteResponse, RequestSide


router = APIRouter()


class QuoteRequestBody(BaseModel):
    from_: RequestSide = Field(alias="from", description="Source network and token; weight is the quantity")
    to: RequestSide = Field(description="Destination network and tokens; weights are percentage shares")
    timeout_seconds: Optional[float] = Field(
        default=None,
        gt=0,
        le=300,
        description="How long to wait for a solver (defaults to quote_timeout_seconds)",
    )


def _requester() -> RfqRequester:
    requester = get_node().requester
    if requester is None:
        raise HTTPException(status_code=409, detail="This node does not run a requester")
    return requester


@router.get("/user/waku/send-request")
async def send_sample_request() -> Dict[str, Any]:
    """Broadcast the sample request; the response only shows up in the logs."""
    requester = _requester()
    request = requester.sample_request()
    try:
        await requester.send_request(request)
    except MessagingError as e:
        raise HTTPException(status_code=502, detail=f"Failed to send request: {e}")
    return {
        "status": "sent",
        "bucket": requester.bucket,
        "request": request.model_dump(by_alias=True),
    }


@router.post("/rfq/quote", response_model=QuoteResponse, response_model_by_alias=True)
async def post_quote(body: QuoteRequestBody) -> QuoteResponse:
    requester = _requester()
    request = requester.build_request(body.from_, body.to)
    timeout = body.timeout_seconds or settings.quote_timeout_seconds
    try:
        return await requester.request_quote(request, timeout=timeout)
    except ResponseTimeoutError as e:
        raise HTTPException(status_code=504, detail=str(e))
    except CodecError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except MessagingError as e:
        raise HTTPException(status_code=502, detail=f"Failed to send request: {e}")
