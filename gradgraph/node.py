from __future__ import annotations

import numbers
from typing import Optional

import numpy as np

from gradgraph.errors import StructuralCycleError
from gradgraph.kinds import NodeKind
from gradgraph.store import GraphStore


class Node:

    """
    `gradgraph.Node` is a node of an expression graph owned by a `gradgraph.GraphStore`.

    Nodes are immutable once allocated. Operands are kept as slot indices into the owning store and always refer to nodes allocated earlier, so a graph built through the constructors is acyclic even when a subexpression is shared by several parents.

    Attributes
    ----------
    store (gradgraph.GraphStore): The store that owns the node.
    index (int): The slot of the node inside its store.
    operands (tuple[int, ...]): The slots of the operand nodes.
    """

    kind = None

    def __init__(self, store: GraphStore, operands: tuple[Node, ...] = ()) -> None:
        assert len(operands) == self.kind.arity, (
            f"{type(self).__name__} takes {self.kind.arity} operand(s), not {len(operands)}"
        )
        if any(operand.store is not store for operand in operands):
            raise ValueError("Operands must belong to the same gradgraph.GraphStore")
        self.store = store
        self.operands = tuple(operand.index for operand in operands)
        self.index = len(store)
        store.allocate(self)
        self._frozen = True

    def __setattr__(self, name, value) -> None:
        if getattr(self, "_frozen", False):
            raise AttributeError(f"{type(self).__name__} nodes are immutable")
        super().__setattr__(name, value)

    @property
    def operand_nodes(self) -> tuple[Node, ...]:
        return tuple(self.store.nodes[operand] for operand in self.operands)

    @property
    def current_value(self) -> float:
        return float(self.store.values[self.index])

    @property
    def gradients(self) -> dict[str, float]:
        """
        A copy of the gradients computed for this node by the latest differentiation pass that reached it.
        Empty if no pass has computed them yet.
        """
        grads = self.store.grads[self.index]
        if grads is None:
            return {}
        return {variable: float(grad) for variable, grad in grads.items()}

    def set_value(self, new_value: int | float) -> None:
        set_value(self, new_value)

    def gradient(self, variable: str) -> float:
        from gradgraph.autodiff import gradient_of

        return gradient_of(self, variable)

    def compute(self, *operand_values: np.float32) -> np.float32:
        raise NotImplementedError

    def get_grad(self, variable: str, derivative_source: str) -> np.float32:
        raise NotImplementedError

    def _value(self, slot: int) -> np.float32:
        return self.store.values[slot]

    def _grad(self, slot: int, variable: str) -> np.float32:
        return self.store.grads[slot][variable]

    def _chain_value(self, derivative_source: str) -> np.float32:
        # Pow, Sin and Cos read either their operand's value or their own
        if derivative_source == "self":
            return self._value(self.index)
        return self._value(self.operands[0])

    def _promote(self, other) -> Node:
        if isinstance(other, Node):
            return other
        if isinstance(other, numbers.Real):
            return constant(other, store=self.store)
        raise TypeError(
            f"unsupported operand type for {type(self).__name__}: {type(other).__name__}"
        )

    def __add__(self, other: int | float | Node) -> Add:
        return add(self, self._promote(other))

    def __radd__(self, other: int | float | Node) -> Add:
        return add(self._promote(other), self)

    def __sub__(self, other: int | float | Node) -> Sub:
        return sub(self, self._promote(other))

    def __rsub__(self, other: int | float | Node) -> Sub:
        return sub(self._promote(other), self)

    def __mul__(self, other: int | float | Node) -> Mul:
        return mul(self, self._promote(other))

    def __rmul__(self, other: int | float | Node) -> Mul:
        return mul(self._promote(other), self)

    def __truediv__(self, other: int | float | Node) -> Div:
        return div(self, self._promote(other))

    def __rtruediv__(self, other: int | float | Node) -> Div:
        return div(self._promote(other), self)

    def __pow__(self, exponent: int | float) -> Pow:
        return pow(self, exponent)

    def __neg__(self) -> Neg:
        return neg(self)

    def sin(self) -> Sin:
        return sin(self)

    def cos(self) -> Cos:
        return cos(self)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(slot={self.index}, operands={self.operands}, value={round(self.current_value, 4)})"


class Const(Node):
    kind = NodeKind.CONST

    def __init__(self, store: GraphStore, literal: float) -> None:
        self.literal = np.float32(literal)
        super().__init__(store)

    def compute(self) -> np.float32:
        return self.literal

    def get_grad(self, variable: str, derivative_source: str) -> np.float32:
        return np.float32(0.0)

    def __repr__(self) -> str:
        return f"Const({float(self.literal)}, slot={self.index})"


class Var(Node):
    kind = NodeKind.VAR

    def __init__(self, store: GraphStore, name: str) -> None:
        assert isinstance(name, str), f"Variable names must be str, not {type(name)}"
        self.name = name
        super().__init__(store)

    def lookup(self, assignment: dict[str, float]) -> Optional[np.float32]:
        if self.name not in assignment:
            return None
        return np.float32(assignment[self.name])

    def get_grad(self, variable: str, derivative_source: str) -> np.float32:
        return np.float32(1.0 if variable == self.name else 0.0)

    def __repr__(self) -> str:
        return f"Var({self.name!r}, slot={self.index}, value={round(self.current_value, 4)})"


class Neg(Node):
    kind = NodeKind.NEG

    def __init__(self, store: GraphStore, operand: Node) -> None:
        super().__init__(store, (operand,))

    def compute(self, value: np.float32) -> np.float32:
        return -value

    def get_grad(self, variable: str, derivative_source: str) -> np.float32:
        return -self._grad(self.operands[0], variable)


class Add(Node):
    kind = NodeKind.ADD

    def __init__(self, store: GraphStore, lhs: Node, rhs: Node) -> None:
        super().__init__(store, (lhs, rhs))

    def compute(self, lhs: np.float32, rhs: np.float32) -> np.float32:
        return lhs + rhs

    def get_grad(self, variable: str, derivative_source: str) -> np.float32:
        lhs, rhs = self.operands
        return self._grad(lhs, variable) + self._grad(rhs, variable)


class Sub(Node):
    kind = NodeKind.SUB

    def __init__(self, store: GraphStore, lhs: Node, rhs: Node) -> None:
        super().__init__(store, (lhs, rhs))

    def compute(self, lhs: np.float32, rhs: np.float32) -> np.float32:
        return lhs - rhs

    def get_grad(self, variable: str, derivative_source: str) -> np.float32:
        lhs, rhs = self.operands
        return self._grad(lhs, variable) - self._grad(rhs, variable)


class Mul(Node):
    kind = NodeKind.MUL

    def __init__(self, store: GraphStore, lhs: Node, rhs: Node) -> None:
        super().__init__(store, (lhs, rhs))

    def compute(self, lhs: np.float32, rhs: np.float32) -> np.float32:
        return lhs * rhs

    def get_grad(self, variable: str, derivative_source: str) -> np.float32:
        lhs, rhs = self.operands
        return (
            self._grad(lhs, variable) * self._value(rhs)
            + self._value(lhs) * self._grad(rhs, variable)
        )


class Div(Node):
    kind = NodeKind.DIV

    def __init__(self, store: GraphStore, lhs: Node, rhs: Node) -> None:
        super().__init__(store, (lhs, rhs))

    def compute(self, lhs: np.float32, rhs: np.float32) -> np.float32:
        return lhs / rhs

    def get_grad(self, variable: str, derivative_source: str) -> np.float32:
        lhs, rhs = self.operands
        return (
            self._grad(lhs, variable) * self._value(rhs)
            - self._value(lhs) * self._grad(rhs, variable)
        ) / (self._value(rhs) ** 2)


class Pow(Node):
    kind = NodeKind.POW

    def __init__(self, store: GraphStore, base: Node, exponent: float) -> None:
        self.exponent = np.float32(exponent)
        super().__init__(store, (base,))

    def compute(self, base: np.float32) -> np.float32:
        return np.power(base, self.exponent)

    def get_grad(self, variable: str, derivative_source: str) -> np.float32:
        return (
            self.exponent
            * np.power(self._chain_value(derivative_source), self.exponent - np.float32(1.0))
            * self._grad(self.operands[0], variable)
        )

    def __repr__(self) -> str:
        return f"Pow(slot={self.index}, operands={self.operands}, exponent={float(self.exponent)}, value={round(self.current_value, 4)})"


class Sin(Node):
    kind = NodeKind.SIN

    def __init__(self, store: GraphStore, operand: Node) -> None:
        super().__init__(store, (operand,))

    def compute(self, value: np.float32) -> np.float32:
        return np.sin(value)

    def get_grad(self, variable: str, derivative_source: str) -> np.float32:
        return np.cos(self._chain_value(derivative_source)) * self._grad(
            self.operands[0], variable
        )


class Cos(Node):
    kind = NodeKind.COS

    def __init__(self, store: GraphStore, operand: Node) -> None:
        super().__init__(store, (operand,))

    def compute(self, value: np.float32) -> np.float32:
        return np.cos(value)

    def get_grad(self, variable: str, derivative_source: str) -> np.float32:
        return -np.sin(self._chain_value(derivative_source)) * self._grad(
            self.operands[0], variable
        )


def _resolve_store(store: Optional[GraphStore]) -> GraphStore:
    if store is not None:
        return store
    if GraphStore.current_context is None:
        raise RuntimeError(
            "No store given and no active gradgraph.GraphStore context, use `with GraphStore() as store:`"
        )
    return GraphStore.current_context


def _shared_store(*nodes: Node) -> GraphStore:
    for node in nodes:
        if not isinstance(node, Node):
            raise TypeError(f"Operands must be gradgraph.Node, not {type(node).__name__}")
    store = nodes[0].store
    if any(node.store is not store for node in nodes[1:]):
        raise ValueError("Operands must belong to the same gradgraph.GraphStore")
    return store


def constant(value: float, store: Optional[GraphStore] = None) -> Const:
    """
    Creates a constant leaf.

    Args:
        value (float): The fixed value of the node.
        store (Optional[gradgraph.GraphStore]): The owning store. Defaults to the active `GraphStore` context.

    Returns:
        gradgraph.node.Const: The new node.
    """
    return Const(_resolve_store(store), value)


def variable(name: str, store: Optional[GraphStore] = None) -> Var:
    """
    Creates a named input leaf.

    Args:
        name (str): The name looked up in assignments and used as a differentiation target.
        store (Optional[gradgraph.GraphStore]): The owning store. Defaults to the active `GraphStore` context.

    Returns:
        gradgraph.node.Var: The new node.
    """
    return Var(_resolve_store(store), name)


def neg(node: Node) -> Neg:
    return Neg(_shared_store(node), node)


def add(lhs: Node, rhs: Node) -> Add:
    return Add(_shared_store(lhs, rhs), lhs, rhs)


def sub(lhs: Node, rhs: Node) -> Sub:
    return Sub(_shared_store(lhs, rhs), lhs, rhs)


def mul(lhs: Node, rhs: Node) -> Mul:
    return Mul(_shared_store(lhs, rhs), lhs, rhs)


def div(lhs: Node, rhs: Node) -> Div:
    return Div(_shared_store(lhs, rhs), lhs, rhs)


def pow(base: Node, exponent: int | float) -> Pow:
    """
    Raises `base` to a constant power.

    Args:
        base (gradgraph.Node): The base expression.
        exponent (Union[int, float]): The exponent. It is a constant and is not differentiated.

    Returns:
        gradgraph.node.Pow: The new node.
    """
    if isinstance(exponent, Node) or not isinstance(exponent, numbers.Real):
        raise TypeError(
            f"Pow exponents must be int or float constants, not {type(exponent).__name__}"
        )
    return Pow(_shared_store(base), base, exponent)


def sin(node: Node) -> Sin:
    return Sin(_shared_store(node), node)


def cos(node: Node) -> Cos:
    return Cos(_shared_store(node), node)


def set_value(node: Node, new_value: int | float) -> None:
    """
    Sets the `current_value` read by the differentiator for `node`.

    Args:
        node (gradgraph.Node): The node to update.
        new_value (Union[int, float]): The new value.
    """
    assert isinstance(new_value, (int, float, np.floating, np.integer)), (
        f"Datatype must be a float or int, not {type(new_value)}"
    )
    node.store.values[node.index] = np.float32(new_value)


def evaluate(node: Node, assignment: dict[str, float]) -> Optional[float]:
    """
    Evaluates the expression rooted at `node`.

    The graph and the nodes' `current_value` and gradients are left untouched. Shared subexpressions are evaluated once per call.

    Args:
        node (gradgraph.Node): The root of the expression.
        assignment (dict[str, float]): The value of each variable name.

    Returns:
        Optional[float]: The value of the expression, or `None` if it uses a variable missing from `assignment`.
    """
    with np.errstate(all="ignore"):
        result = _evaluate(node, assignment, {}, set())
    return None if result is None else float(result)


def _evaluate(
    node: Node, assignment: dict[str, float], memo: dict, on_path: set
) -> Optional[np.float32]:
    if node.index in memo:
        return memo[node.index]
    if node.index in on_path:
        raise StructuralCycleError(node)
    on_path.add(node.index)
    try:
        if isinstance(node, Var):
            result = node.lookup(assignment)
        else:
            operand_values = []
            for operand in node.operand_nodes:
                value = _evaluate(operand, assignment, memo, on_path)
                if value is None:
                    break
                operand_values.append(value)
            if len(operand_values) == len(node.operands):
                result = node.compute(*operand_values)
            else:
                result = None
    finally:
        on_path.discard(node.index)
    memo[node.index] = result
    return result


def evaluate_all(store: GraphStore, assignment: dict[str, float]) -> list[Optional[np.float32]]:
    """
    Evaluates every node of `store` in allocation order.

    Args:
        store (gradgraph.GraphStore): The store to evaluate.
        assignment (dict[str, float]): The value of each variable name.

    Returns:
        list[Optional[numpy.float32]]: The value of each slot, `None` where a variable is missing.
    """
    results = []
    with np.errstate(all="ignore"):
        for node in store:
            if isinstance(node, Var):
                results.append(node.lookup(assignment))
                continue
            if any(operand >= node.index for operand in node.operands):
                raise StructuralCycleError(node)
            operand_values = [results[operand] for operand in node.operands]
            if any(value is None for value in operand_values):
                results.append(None)
            else:
                results.append(node.compute(*operand_values))
    return results
