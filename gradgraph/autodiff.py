from __future__ import annotations

import logging
from typing import Iterable, Optional

import numpy as np

from gradgraph import config
from gradgraph.errors import StructuralCycleError
from gradgraph.node import Node

logger = logging.getLogger(__name__)


def reset_gradients(root: Node) -> int:
    """
    Clears the gradients of every node reachable from `root`.

    Each node is cleared once, so this also terminates on a malformed graph that contains a cycle.

    Args:
        root (gradgraph.Node): The node to start from.

    Returns:
        int: The number of nodes cleared.
    """
    store = root.store
    seen = set()
    pending = [root.index]
    while pending:
        index = pending.pop()
        if index in seen:
            continue
        seen.add(index)
        store.grads[index] = None
        pending.extend(store.nodes[index].operands)
    return len(seen)


def differentiate(
    root: Node,
    variables: Iterable[str],
    traversal: Optional[str] = None,
    derivative_source: Optional[str] = None,
) -> None:
    """
    Performs reverse-mode differentiation of `root` with respect to `variables`.

    The derivative formulas read the `current_value` of the nodes, so those must be set (see `gradgraph.set_value` and `gradgraph.GraphStore.recompute`) before calling.
    Afterwards every node reachable from `root` holds one gradient per requested variable. A node shared by several parents is differentiated once per call.

    Args:
        root (gradgraph.Node): The expression to differentiate.
        variables (Iterable[str]): The variable names to differentiate with respect to.
        traversal (Optional[str]): "recursive" or "iterative". Defaults to `gradgraph.config.TRAVERSAL`.
        derivative_source (Optional[str]): "operand" or "self". Defaults to `gradgraph.config.DERIVATIVE_SOURCE`.

    Raises:
        gradgraph.StructuralCycleError: If a node is reachable from itself.
    """
    if isinstance(variables, str):
        raise TypeError(
            f"variables must be an iterable of names, not a single str {variables!r}"
        )
    variables = list(variables)
    traversal = config.check_traversal(
        config.TRAVERSAL if traversal is None else traversal
    )
    derivative_source = config.check_derivative_source(
        config.DERIVATIVE_SOURCE if derivative_source is None else derivative_source
    )
    store = root.store

    cleared = reset_gradients(root)
    store.differentiation_counts.clear()
    logger.debug(
        "differentiating slot %d w.r.t. %s (%s), %d nodes reset",
        root.index,
        variables,
        traversal,
        cleared,
    )

    with np.errstate(all="ignore"):
        if traversal == "recursive":
            _differentiate_recursive(root, variables, derivative_source, set())
        else:
            _differentiate_iterative(root, variables, derivative_source)

    logger.debug(
        "differentiated slot %d, %d nodes computed",
        root.index,
        len(store.differentiation_counts),
    )


def _compute(node: Node, variables: list[str], derivative_source: str) -> None:
    node.store.grads[node.index] = {
        variable: np.float32(node.get_grad(variable, derivative_source))
        for variable in variables
    }
    node.store.differentiation_counts[node.index] += 1


def _differentiate_recursive(
    node: Node, variables: list[str], derivative_source: str, on_path: set
) -> None:
    if node.index in on_path:
        raise StructuralCycleError(node)
    if node.store.grads[node.index] is not None:
        return
    on_path.add(node.index)
    try:
        for operand in node.operand_nodes:
            _differentiate_recursive(operand, variables, derivative_source, on_path)
        _compute(node, variables, derivative_source)
    finally:
        on_path.discard(node.index)


def _differentiate_iterative(
    root: Node, variables: list[str], derivative_source: str
) -> None:
    store = root.store
    on_path = set()
    # (slot, expanded): an expanded entry is popped once all its operands are done
    stack = [(root.index, False)]
    while stack:
        index, expanded = stack.pop()
        node = store.nodes[index]
        if expanded:
            _compute(node, variables, derivative_source)
            on_path.discard(index)
            continue
        if index in on_path:
            raise StructuralCycleError(node)
        if store.grads[index] is not None:
            continue
        on_path.add(index)
        stack.append((index, True))
        for operand in reversed(node.operands):
            stack.append((operand, False))


def gradient_of(node: Node, variable: str) -> float:
    """
    Returns the gradient of `node` with respect to `variable` computed by the latest differentiation pass.

    Args:
        node (gradgraph.Node): A node reached by the latest pass.
        variable (str): A variable name requested in that pass.

    Returns:
        float: The gradient.

    Raises:
        KeyError: If no pass computed the gradient of `node` with respect to `variable`.
    """
    grads = node.store.grads[node.index]
    if grads is None or variable not in grads:
        raise KeyError(
            f"no gradient w.r.t. {variable!r} for {type(node).__name__} (slot {node.index}), run differentiate() first"
        )
    return float(grads[variable])
