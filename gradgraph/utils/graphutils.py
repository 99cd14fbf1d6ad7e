from __future__ import annotations

import matplotlib.pyplot as plt
import networkx as nx

from gradgraph.node import Const, Node, Pow, Var


def reachable(root: Node) -> list[Node]:
    """
    Returns every node reachable from `root`, each once, in allocation order.

    Args:
        root (gradgraph.Node): The node to start from.

    Returns:
        list[gradgraph.Node]: The reachable nodes, `root` included.
    """
    store = root.store
    seen = set()
    queue = [root.index]
    while queue:
        index = queue.pop(0)
        if index in seen:
            continue
        seen.add(index)
        queue.extend(store.nodes[index].operands)
    return [store.nodes[index] for index in sorted(seen)]


def _label(node: Node) -> str:
    if isinstance(node, Const):
        label_text = f"Const\n{float(node.literal)}"
    elif isinstance(node, Var):
        label_text = f"Var\n{node.name}"
    elif isinstance(node, Pow):
        label_text = f"Pow\n^{float(node.exponent)}"
    else:
        label_text = type(node).__name__
    return f"{label_text}\nVal: {round(node.current_value, 2)}"


def to_networkx(roots: Node | list[Node]) -> nx.DiGraph:
    """
    Builds a `networkx.DiGraph` of the subgraph reachable from `roots`.

    Graph nodes are slot indices carrying `kind`, `label`, `value` and `gradients` attributes. Edges point from an operand to the node using it.

    Args:
        roots (Union[gradgraph.Node, list[gradgraph.Node]]): The output node(s) of the graph.

    Returns:
        networkx.DiGraph: The graph.
    """
    G = nx.DiGraph()
    if not isinstance(roots, list):
        roots = [roots]

    nodes = {}
    for root in roots:
        for node in reachable(root):
            nodes[node.index] = node

    for index, node in sorted(nodes.items()):
        G.add_node(
            index,
            kind=node.kind,
            label=_label(node),
            value=node.current_value,
            gradients=node.gradients,
        )
    for index, node in nodes.items():
        for operand in node.operands:
            G.add_edge(operand, index)
    return G


def visualise_graph(
    roots: Node | list[Node], save_img=True, img_path="graph.png", display=True
) -> None:
    """
    Draws the expression graph reachable from `roots` with matplotlib.

    Args:
    -----
    roots (Union[gradgraph.Node, list[gradgraph.Node]]): The output node(s) of the graph.
    save_img (bool): Whether to save the graph image to a file.
    img_path (str): Path to save the image.
    display (bool): Whether to display the graph using matplotlib.
    """
    G = to_networkx(roots)

    try:
        pos = nx.planar_layout(G)
    except nx.NetworkXException:
        try:
            pos = nx.kamada_kawai_layout(G)
        except nx.NetworkXException:
            pos = nx.spring_layout(G, seed=42)

    # leaves green, variables blue, operators salmon
    node_colors = []
    for index in G.nodes():
        kind = G.nodes[index]["kind"].value
        if kind == "Const":
            node_colors.append("#C1E1C1")
        elif kind == "Var":
            node_colors.append("#00B4D9")
        else:
            node_colors.append("#FFB6C1")

    fig_width = max(10, G.number_of_nodes() * 0.8)
    fig_height = max(8, G.number_of_nodes() * 0.6)
    plt.figure(figsize=(fig_width, fig_height))

    nx.draw(
        G,
        pos,
        labels=nx.get_node_attributes(G, "label"),
        with_labels=True,
        node_size=2500,
        node_color=node_colors,
        font_size=9,
        font_weight="normal",
        arrowsize=15,
        width=1.5,
    )

    if save_img:
        plt.savefig(img_path, bbox_inches="tight", dpi=150)
    if display:
        plt.show()
    plt.close()
