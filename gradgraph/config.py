import os

TRAVERSALS = ("recursive", "iterative")
DERIVATIVE_SOURCES = ("operand", "self")


def _choice(env_var: str, default: str, choices: tuple[str, ...]) -> str:
    value = os.getenv(env_var, "").strip().lower() or default
    if value not in choices:
        raise ValueError(
            f"{env_var} must be one of {', '.join(choices)}, not {value!r}"
        )
    return value


def check_traversal(traversal: str) -> str:
    if traversal not in TRAVERSALS:
        raise ValueError(
            f"traversal must be one of {', '.join(TRAVERSALS)}, not {traversal!r}"
        )
    return traversal


def check_derivative_source(source: str) -> str:
    if source not in DERIVATIVE_SOURCES:
        raise ValueError(
            f"derivative source must be one of {', '.join(DERIVATIVE_SOURCES)}, not {source!r}"
        )
    return source


# "recursive" walks the graph on the call stack, "iterative" uses an explicit work stack
# and is not bounded by the interpreter recursion limit
TRAVERSAL = _choice("GRADGRAPH_TRAVERSAL", "recursive", TRAVERSALS)

# "operand" applies the chain rule to the operand's current value for Pow, Sin and Cos.
# "self" reads the node's own current value in place of the operand's, so its gradients
# are only meaningful for callers that seed those slots for it
DERIVATIVE_SOURCE = _choice("GRADGRAPH_DERIVATIVE_SOURCE", "operand", DERIVATIVE_SOURCES)
