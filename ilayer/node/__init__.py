from __future__ import annotations

import logging
from typing import Optional

from .runtime import RfqNode


_node: Optional[RfqNode] = None


def get_node() -> RfqNode:
    global _node
    if _node is None:
        _node = RfqNode(logger=logging.getLogger("rfq_node"))
    return _node


def set_node(node: Optional[RfqNode]) -> None:
    """Replace the process node (tests and the CLI build their own)."""
    global _node
    _node = node


__all__ = ["get_node", "set_node", "RfqNode"]
