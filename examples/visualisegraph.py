from gradgraph import GraphStore, cos, differentiate, sin, variable
from gradgraph.utils.graphutils import visualise_graph

if __name__ == "__main__":
    with GraphStore() as store:
        x = variable("x")
        y = variable("y")
        shared = x * y
        root = sin(shared) + cos(shared) ** 2.0 - y

    store.recompute({"x": 0.5, "y": 1.5})
    differentiate(root, ["x", "y"])
    print(root.gradients)

    visualise_graph(root)
