import math

import pytest

from gradgraph import (
    GraphStore,
    StructuralCycleError,
    constant,
    cos,
    differentiate,
    gradient_of,
    neg,
    pow,
    reset_gradients,
    set_value,
    sin,
    variable,
)
from gradgraph import config

TRAVERSALS = ["recursive", "iterative"]


def build_reference(store):
    x = variable("x", store)
    y = variable("y", store)
    mul = x * y
    div = x / y
    return x, y, mul, div, mul + div, mul - div


@pytest.mark.parametrize("traversal", TRAVERSALS)
def test_reference_scenario_gradients(traversal):
    store = GraphStore()
    x, y, _, _, add, sub = build_reference(store)
    set_value(x, 8.0)
    set_value(y, 4.0)

    differentiate(add, ["x", "y"], traversal=traversal)
    differentiate(sub, ["x", "y"], traversal=traversal)

    assert add.gradients == {"x": 4.25, "y": 7.5}
    assert gradient_of(sub, "x") == 3.75
    assert gradient_of(sub, "y") == 8.5


@pytest.mark.parametrize("traversal", TRAVERSALS)
def test_shared_subexpression_is_differentiated_once(traversal):
    store = GraphStore()
    x = variable("x", store)
    y = variable("y", store)
    s = sin(x * y)
    p1 = s * x
    p2 = s + y
    root = p1 - p2
    store.recompute({"x": 0.5, "y": 2.0})

    differentiate(root, ["x", "y"], traversal=traversal)

    assert store.differentiation_counts[s.index] == 1
    assert set(store.differentiation_counts.values()) == {1}
    assert len(store.differentiation_counts) == len(store)

    # both parents read the same memoized gradients of s
    expected_s_x = math.cos(1.0) * 2.0
    assert s.gradient("x") == pytest.approx(expected_s_x, rel=1e-6)
    assert p2.gradient("x") == s.gradient("x")
    assert p1.gradient("x") == pytest.approx(
        s.gradient("x") * 0.5 + math.sin(1.0), rel=1e-6
    )


@pytest.mark.parametrize("traversal", TRAVERSALS)
def test_diamond_chain_is_linear(traversal):
    store = GraphStore()
    x = variable("x", store)
    node = x
    for _ in range(30):
        node = node + node
    store.recompute({"x": 1.0})

    differentiate(node, ["x"], traversal=traversal)

    assert gradient_of(node, "x") == 2.0**30
    assert sum(store.differentiation_counts.values()) == 31


@pytest.mark.parametrize("traversal", TRAVERSALS)
def test_back_patched_cycle_is_fatal(traversal):
    store = GraphStore()
    x = variable("x", store)
    y = variable("y", store)
    m = x * y
    root = m + x
    object.__setattr__(m, "operands", (root.index, y.index))

    with pytest.raises(StructuralCycleError) as excinfo:
        differentiate(root, ["x"], traversal=traversal)
    assert excinfo.value.node is root
    assert "structural cycle" in str(excinfo.value)


@pytest.mark.parametrize("traversal", TRAVERSALS)
def test_self_referencing_node_is_fatal(traversal):
    store = GraphStore()
    x = variable("x", store)
    n = neg(x)
    object.__setattr__(n, "operands", (n.index,))

    with pytest.raises(StructuralCycleError):
        differentiate(n, ["x"], traversal=traversal)


@pytest.mark.parametrize("traversal", TRAVERSALS)
def test_differentiate_is_idempotent(traversal):
    store = GraphStore()
    _, _, mul, div, add, _ = build_reference(store)
    store.recompute({"x": 3.0, "y": 7.0})

    differentiate(add, ["x", "y"], traversal=traversal)
    first = [node.gradients for node in store]
    differentiate(add, ["x", "y"], traversal=traversal)
    second = [node.gradients for node in store]

    assert first == second
    assert set(store.differentiation_counts.values()) == {1}


def test_pow_boundary():
    store = GraphStore()
    x = variable("x", store)
    p = pow(x, 2.0)
    x.set_value(3.0)

    differentiate(p, ["x"])

    assert gradient_of(p, "x") == 6.0


def test_pow_reading_its_own_value():
    store = GraphStore()
    x = variable("x", store)
    p = pow(x, 2.0)
    store.recompute({"x": 3.0})
    assert p.current_value == 9.0

    differentiate(p, ["x"], derivative_source="self")
    assert gradient_of(p, "x") == 18.0

    differentiate(p, ["x"], derivative_source="operand")
    assert gradient_of(p, "x") == 6.0


@pytest.mark.parametrize("value", [-1.3, 0.0, 0.4, 2.5])
def test_sin_and_cos_use_operand_value(value):
    store = GraphStore()
    x = variable("x", store)
    s = sin(x * 2.0)
    c = cos(x)
    store.recompute({"x": value})

    differentiate(s, ["x"])
    differentiate(c, ["x"])

    assert gradient_of(s, "x") == pytest.approx(2.0 * math.cos(2.0 * value), abs=1e-6)
    assert gradient_of(c, "x") == pytest.approx(-math.sin(value), abs=1e-6)


def test_leaves_and_unknown_variables():
    store = GraphStore()
    x = variable("x", store)
    k = constant(5.0, store)
    root = x * k - neg(k)
    store.recompute({"x": 2.0})

    differentiate(root, ["x", "w"])

    assert root.gradients == {"x": 5.0, "w": 0.0}
    assert k.gradients == {"x": 0.0, "w": 0.0}
    assert x.gradients == {"x": 1.0, "w": 0.0}


def test_division_by_zero_gradient_is_not_an_error():
    store = GraphStore()
    x = variable("x", store)
    y = variable("y", store)
    root = x / y
    store.recompute({"x": 1.0, "y": 0.0})

    differentiate(root, ["x", "y"])

    # (1 * 0 - 1 * 0) / 0
    assert math.isnan(gradient_of(root, "x"))
    assert gradient_of(root, "y") == -math.inf


def test_empty_variable_list_still_memoizes():
    store = GraphStore()
    x = variable("x", store)
    shared = x * x
    root = shared + shared

    differentiate(root, [])

    assert root.gradients == {}
    assert store.differentiation_counts[shared.index] == 1
    with pytest.raises(KeyError):
        gradient_of(root, "x")


def test_gradients_are_reset_for_each_pass():
    store = GraphStore()
    x, y, mul, div, add, sub = build_reference(store)
    store.recompute({"x": 8.0, "y": 4.0})

    differentiate(add, ["x", "y"])
    differentiate(sub, ["x"])

    # mul and div were reached again, so they only hold the latest variables
    assert mul.gradients == {"x": 4.0}
    assert div.gradients == {"x": 0.25}
    # add was not reached by the second pass
    assert add.gradients == {"x": 4.25, "y": 7.5}


def test_reset_gradients_clears_reachable_nodes_once():
    store = GraphStore()
    _, _, mul, div, add, sub = build_reference(store)
    store.recompute({"x": 8.0, "y": 4.0})
    differentiate(add, ["x"])
    differentiate(sub, ["x"])

    assert reset_gradients(add) == 5
    assert add.gradients == {}
    assert mul.gradients == {}
    assert sub.gradients == {"x": 3.75}


def test_gradient_of_before_differentiate():
    store = GraphStore()
    x = variable("x", store)
    with pytest.raises(KeyError):
        gradient_of(x, "x")


def test_iterative_traversal_handles_deep_graphs():
    store = GraphStore()
    x = variable("x", store)
    node = x
    for _ in range(5000):
        node = node + x
    store.recompute({"x": 1.0})

    differentiate(node, ["x"], traversal="iterative")

    assert gradient_of(node, "x") == 5001.0
    assert node.current_value == 5001.0


def test_default_traversal_comes_from_config(monkeypatch):
    store = GraphStore()
    _, _, _, _, add, _ = build_reference(store)
    store.recompute({"x": 8.0, "y": 4.0})

    monkeypatch.setattr(config, "TRAVERSAL", "iterative")
    differentiate(add, ["x", "y"])
    assert add.gradients == {"x": 4.25, "y": 7.5}

    monkeypatch.setattr(config, "TRAVERSAL", "sideways")
    with pytest.raises(ValueError):
        differentiate(add, ["x", "y"])


def test_unknown_derivative_source():
    store = GraphStore()
    x = variable("x", store)
    with pytest.raises(ValueError):
        differentiate(x, ["x"], derivative_source="parent")


def test_empty_option_strings_are_rejected():
    store = GraphStore()
    x = variable("x", store)
    with pytest.raises(ValueError):
        differentiate(x, ["x"], traversal="")
    with pytest.raises(ValueError):
        differentiate(x, ["x"], derivative_source="")


def test_single_string_is_not_a_variable_list():
    store = GraphStore()
    x = variable("x", store)
    y = variable("y", store)
    product = x * y
    with pytest.raises(TypeError):
        differentiate(product, "xy")
    assert product.gradients == {}
