# Builds a chain deeper than the recursion limit and differentiates it with the explicit work stack.

import time

from gradgraph import GraphStore, differentiate, gradient_of, variable

if __name__ == "__main__":
    depth = 100_000
    with GraphStore() as store:
        x = variable("x")
        node = x
        for _ in range(depth):
            node = node * 1.0 + x

    start = time.time()
    store.recompute({"x": 0.5})
    differentiate(node, ["x"], traversal="iterative")
    end = time.time()
    print(f"{len(store)} nodes, d/dx={gradient_of(node, 'x')}, took {end - start:.3f}s")
