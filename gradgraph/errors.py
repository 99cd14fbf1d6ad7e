class GradGraphError(Exception):
    """
    `gradgraph.GradGraphError` is the base class for errors raised by the expression graph.
    """


class StructuralCycleError(GradGraphError):
    """
    Raised when a node is reached again while it is still on the active traversal path.

    A well-formed graph only references nodes allocated earlier in the same store, so this can
    only happen if that construction-order invariant was broken (e.g. an operand was patched to
    point at a later node).

    Attributes
    ----------
    node (gradgraph.node.Node): The node that was revisited.
    """

    def __init__(self, node) -> None:
        self.node = node
        super().__init__(
            f"structural cycle detected at {type(node).__name__} (slot {node.index}): "
            "node is reachable from itself, operands must reference earlier allocations"
        )
