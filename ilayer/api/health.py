from fastapi import APIRouter
from typing import Dict, Any

from ..node import get_node

router = APIRouter()


@router.get("/healthz")
async def health_check() -> Dict[str, Any]:
    """Health check covering the price feed, the substrate and subscriptions"""

    node = get_node()
    checks = await node.health()

    price_status = checks["price_feed"]["status"]
    substrate_ok = bool(checks["substrate"]) and all(
        status["status"] == "healthy" for status in checks["substrate"]
    )

    subscriptions = {}
    if node.requester:
        subscriptions["requester"] = node.requester.listener.state.value
    if node.solver:
        subscriptions["solver"] = node.solver.listener.state.value

    all_subscribed = all(state == "subscribed" for state in subscriptions.values())

    return {
        "status": "healthy" if price_status in ["healthy", "unavailable"] and substrate_ok and all_subscribed else "degraded",
        "price_feed": checks["price_feed"],
        "substrate": checks["substrate"],
        "subscriptions": subscriptions,
    }
