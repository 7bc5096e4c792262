from __future__ import annotations

from fastapi import APIRouter

from . import get_node


router = APIRouter(prefix="/node", tags=["Node"])


@router.get("/status")
async def node_status():
    return get_node().status()
