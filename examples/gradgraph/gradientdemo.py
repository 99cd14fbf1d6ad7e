# Differentiates x*y + x/y and x*y - x/y at x=8, y=4 using gradgraph.
# This code is to be used as comparison with examples/pytorch/gradientdemo.py

from gradgraph import GraphStore, differentiate, evaluate, gradient_of, variable

if __name__ == "__main__":
    with GraphStore() as store:
        x = variable("x")
        y = variable("y")
        mul = x * y
        div = x / y
        add = mul + div  # mul and div are shared by add and sub
        sub = mul - div

    assignment = {"x": 8.0, "y": 4.0}
    print("add:", evaluate(add, assignment))
    print("sub:", evaluate(sub, assignment))

    store.recompute(assignment)
    for root in (add, sub):
        differentiate(root, ["x", "y"])
        print(
            f"{type(root).__name__}: d/dx={gradient_of(root, 'x')}, d/dy={gradient_of(root, 'y')}"
        )
