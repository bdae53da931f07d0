"""
BOM Explosion Service

Walks a fetched BOM tree:
1. Flatten mode - every node exactly once, with depth and multiplied quantity
2. Display mode - the same nodes filtered by per-node expand/collapse state

Nodes are addressed by tree position (child indexes from the root), never
by IPN alone: the same IPN can sit at several places in one tree.
"""
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from app.core.settings import get_settings
from app.exceptions import (
    BOMDepthExceededError,
    CircularBOMError,
    InvalidBOMError,
    NotFoundError,
    ZRPException,
)
from app.logging_config import get_logger
from app.schemas.bom import BOMNode, BOMResolution, BOMTreeRow, ExplodedBOMNode
from app.schemas.part import Part

logger = get_logger(__name__)

Position = Tuple[int, ...]


# ============================================================================
# Assembly classification
# ============================================================================

def is_assembly_ipn(ipn: str, prefixes: Optional[Iterable[str]] = None) -> bool:
    """Prefix convention fallback (ASY-/PCA- by default, configurable)"""
    if not ipn:
        return False
    if prefixes is None:
        prefixes = get_settings().ASSEMBLY_IPN_PREFIXES
    upper = ipn.upper()
    return any(upper.startswith(prefix.upper()) for prefix in prefixes)


def is_assembly(part: Optional[Part], ipn: str, prefixes: Optional[Iterable[str]] = None) -> bool:
    """
    Decide whether a BOM should be fetched for `ipn`.

    The catalog's explicit is_assembly flag wins; the prefix predicate is
    only consulted when the flag is missing (or the part record is unavailable).
    """
    if part is not None and part.is_assembly is not None:
        return part.is_assembly
    return is_assembly_ipn(ipn, prefixes)


# ============================================================================
# Flatten mode
# ============================================================================

def explode_bom(
    root: BOMNode,
    build_qty: Decimal = Decimal("1"),
    max_depth: Optional[int] = None,
) -> List[ExplodedBOMNode]:
    """
    Flatten a BOM tree in pre-order.

    Each node's qty_required is build_qty times the product of `qty` along
    the path from the root to that node (root included). The result is a
    pure function of (tree, build_qty).

    Raises:
        CircularBOMError: an IPN appears among its own ancestors
        BOMDepthExceededError: nesting deeper than max_depth
    """
    if max_depth is None:
        max_depth = get_settings().BOM_MAX_DEPTH
    build_qty = Decimal(str(build_qty))

    nodes: List[ExplodedBOMNode] = []
    _walk(
        node=root,
        parent_qty=build_qty,
        depth=0,
        path=(),
        position=(),
        max_depth=max_depth,
        out=nodes,
    )
    return nodes


def _walk(
    node: BOMNode,
    parent_qty: Decimal,
    depth: int,
    path: Tuple[str, ...],
    position: Position,
    max_depth: int,
    out: List[ExplodedBOMNode],
) -> None:
    if node.ipn in path:
        raise CircularBOMError(list(path) + [node.ipn])
    if depth > max_depth:
        raise BOMDepthExceededError(node.ipn, max_depth=max_depth)

    node_path = path + (node.ipn,)
    qty_required = parent_qty * node.qty
    out.append(
        ExplodedBOMNode(
            path=node_path,
            position=position,
            ipn=node.ipn,
            description=node.description,
            ref=node.ref,
            depth=depth,
            qty_per=node.qty,
            qty_required=qty_required,
            is_leaf=node.is_leaf,
        )
    )

    for index, child in enumerate(node.children):
        _walk(
            node=child,
            parent_qty=qty_required,
            depth=depth + 1,
            path=node_path,
            position=position + (index,),
            max_depth=max_depth,
            out=out,
        )


async def resolve_bom(
    client,
    ipn: str,
    build_qty: Decimal = Decimal("1"),
    max_depth: Optional[int] = None,
) -> BOMResolution:
    """
    Fetch and flatten the BOM for an assembly.

    Never raises: a failed fetch or an invalid tree yields an empty
    resolution with `error` set, so callers can render a fallback.
    """
    resolution = BOMResolution(root_ipn=ipn, build_qty=Decimal(str(build_qty)))
    try:
        root = await client.fetch_bom(ipn)
    except NotFoundError:
        logger.info(f"No BOM found for {ipn}", extra={"ipn": ipn})
        resolution.error = "No BOM data"
        return resolution
    except ZRPException as e:
        logger.warning(
            f"BOM fetch failed for {ipn}: {e.message}",
            extra={"ipn": ipn, "error_code": e.error_code},
        )
        resolution.error = "No BOM data"
        return resolution

    try:
        resolution.nodes = explode_bom(root, build_qty, max_depth=max_depth)
    except InvalidBOMError as e:
        logger.warning(
            f"Rejected BOM for {ipn}: {e.message}",
            extra={"ipn": ipn, "error_code": e.error_code, "details": e.details},
        )
        resolution.error = e.message
        return resolution

    resolution.root = root
    return resolution


# ============================================================================
# Display mode
# ============================================================================

class BOMTreeView:
    """
    Expand/collapse state over an already-resolved BOM.

    Depths below `expanded_depth` start open (0 and 1 by default), deeper
    nodes start closed. Toggling one node never touches another node's
    state and never triggers a fetch.
    """

    def __init__(
        self,
        nodes: List[ExplodedBOMNode],
        expanded_depth: Optional[int] = None,
    ):
        if expanded_depth is None:
            expanded_depth = get_settings().BOM_DEFAULT_EXPANDED_DEPTH
        self.expanded_depth = expanded_depth
        self._nodes = list(nodes)
        self._by_position: Dict[Position, ExplodedBOMNode] = {
            n.position: n for n in self._nodes
        }
        self._overrides: Dict[Position, bool] = {}

    @classmethod
    def from_tree(
        cls,
        root: BOMNode,
        build_qty: Decimal = Decimal("1"),
        expanded_depth: Optional[int] = None,
        max_depth: Optional[int] = None,
    ) -> "BOMTreeView":
        return cls(explode_bom(root, build_qty, max_depth=max_depth), expanded_depth)

    @property
    def nodes(self) -> List[ExplodedBOMNode]:
        return list(self._nodes)

    def _node(self, position: Position) -> ExplodedBOMNode:
        position = tuple(position)
        node = self._by_position.get(position)
        if node is None:
            raise NotFoundError("BOM node", "/".join(str(i) for i in position) or "root")
        return node

    def is_expanded(self, position: Position) -> bool:
        node = self._node(position)
        return self._overrides.get(node.position, node.depth < self.expanded_depth)

    def toggle(self, position: Position) -> bool:
        """Flip one node; returns its new state"""
        new_state = not self.is_expanded(position)
        self._overrides[tuple(position)] = new_state
        return new_state

    def visible_rows(self) -> List[BOMTreeRow]:
        """Pre-order rows, skipping descendants of collapsed nodes"""
        rows: List[BOMTreeRow] = []
        hidden_below: Optional[int] = None
        for node in self._nodes:
            if hidden_below is not None:
                if node.depth > hidden_below:
                    continue
                hidden_below = None
            expanded = self.is_expanded(node.position)
            rows.append(BOMTreeRow(**node.model_dump(), expanded=expanded))
            if not expanded and not node.is_leaf:
                hidden_below = node.depth
        return rows
