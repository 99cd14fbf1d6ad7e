from gradgraph.config import DERIVATIVE_SOURCE, TRAVERSAL
from gradgraph.errors import GradGraphError, StructuralCycleError
from gradgraph.kinds import NodeKind
from gradgraph.store import GraphStore
from gradgraph.node import (
    Add,
    Const,
    Cos,
    Div,
    Mul,
    Neg,
    Node,
    Pow,
    Sin,
    Sub,
    Var,
    add,
    constant,
    cos,
    div,
    evaluate,
    mul,
    neg,
    pow,
    set_value,
    sin,
    sub,
    variable,
)
from gradgraph.autodiff import differentiate, gradient_of, reset_gradients

__all__ = [
    "DERIVATIVE_SOURCE",
    "TRAVERSAL",
    "GradGraphError",
    "StructuralCycleError",
    "NodeKind",
    "GraphStore",
    "Node",
    "Const",
    "Var",
    "Neg",
    "Add",
    "Sub",
    "Mul",
    "Div",
    "Pow",
    "Sin",
    "Cos",
    "constant",
    "variable",
    "neg",
    "add",
    "sub",
    "mul",
    "div",
    "pow",
    "sin",
    "cos",
    "set_value",
    "evaluate",
    "differentiate",
    "gradient_of",
    "reset_gradients",
]
