from __future__ import annotations

import logging
from collections import Counter
from typing import TYPE_CHECKING, Iterator

import numpy as np

if TYPE_CHECKING:
    from gradgraph.node import Node

logger = logging.getLogger(__name__)


class GraphStore:

    """
    `gradgraph.GraphStore` owns every node of one expression session, together with the mutable state the algorithms attach to them.

    Nodes are appended in allocation order and never removed, so a node's slot index is its identity for the lifetime of the store.
    The per-node `current_value` and `gradients` live in side tables indexed by slot rather than on the nodes themselves, which keeps the nodes immutable while they are shared between parents.

    Attributes
    ----------
    nodes (list[gradgraph.node.Node]): All nodes owned by the store, in allocation order.
    values (list[numpy.float32]): The `current_value` of each slot.
    grads (list[Optional[dict[str, numpy.float32]]]): The gradients of each slot, `None` until a differentiation pass computes them.
    differentiation_counts (collections.Counter): How many times each slot had its gradients computed during the latest differentiation pass.
    """

    current_context = None

    def __init__(self) -> None:
        self.nodes = []
        self.values = []
        self.grads = []
        self.differentiation_counts = Counter()

    def __enter__(self) -> GraphStore:
        self.prev_context = GraphStore.current_context
        GraphStore.current_context = self
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        GraphStore.current_context = self.prev_context

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[Node]:
        return iter(self.nodes)

    def __getitem__(self, index: int) -> Node:
        return self.nodes[index]

    def allocate(self, node: Node) -> Node:
        """
        Adds a node to the store and gives it the next free slot.

        Args:
            node (gradgraph.node.Node): A freshly constructed node whose operands already belong to this store.

        Returns:
            gradgraph.node.Node: The same node, now bound to its slot.
        """
        index = len(self.nodes)
        for operand in node.operands:
            assert 0 <= operand < index, (
                f"operand slot {operand} of {type(node).__name__} must be allocated before slot {index}"
            )
        self.nodes.append(node)
        self.values.append(np.float32(0.0))
        self.grads.append(None)
        return node

    def recompute(self, assignment: dict[str, float]) -> int:
        """
        Forward-evaluates every node in allocation order and stores the result as its `current_value`.

        Nodes that cannot be evaluated because a variable is missing from `assignment` keep their previous value.

        Args:
            assignment (dict[str, float]): The value of each variable name.

        Returns:
            int: The number of nodes whose `current_value` was updated.
        """
        from gradgraph.node import evaluate_all

        updated = 0
        for index, value in enumerate(evaluate_all(self, assignment)):
            if value is None:
                logger.debug("recompute skipped slot %d, a variable is unassigned", index)
                continue
            self.values[index] = value
            updated += 1
        return updated

    def __repr__(self) -> str:
        return f"{type(self).__name__}(nodes={len(self.nodes)})"
