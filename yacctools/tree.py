from collections import deque, defaultdict
from typing import Self

import networkx as nx

from matplotlib import pyplot as plt

from yacctools.grammar import EPS, Production, Symbol


class DerivationNode:

    def __init__(self, symbol: Symbol, children: list[Self] = None, production: Production | None = None):
        self.symbol = symbol
        self.production = production
        self.children: list[Self] = children if children else []

    def append(self, node: Self):
        self.children.append(node)

    def leaves(self) -> list[Symbol]:
        """Returns the terminals at the frontier of the tree, left to right."""
        out = []
        stack = [self]
        while stack:
            node = stack.pop()
            if node.symbol.is_terminal():
                out.append(node.symbol)
            else:
                stack.extend(reversed(node.children))
        return out

    def __repr__(self):
        return f"Node({self})"

    def __str__(self):
        return f"{self.symbol}:{len(self.children)}"


def to_graph(root: DerivationNode) -> nx.DiGraph:
    """Returns the tree as a graph with a `symbol` label and a `layer` per node.

    Nodes are numbered breadth-first, so children of a node keep their
    left-to-right order. Epsilon expansions get a single `ϵ` leaf.
    """
    graph = nx.DiGraph()
    queue = deque([(root, None)])

    node_index = 0
    layer = 0

    while queue:
        for _ in range(len(queue)):
            node, parent_id = queue.popleft()
            label = node.symbol.name if node is not None else EPS
            graph.add_node(node_index, symbol=label, layer=layer)

            if parent_id is not None:
                graph.add_edge(parent_id, node_index)

            if node is not None:
                if node.symbol.is_nonterminal() and not node.children:
                    queue.append((None, node_index))
                for ch in node.children:
                    queue.append((ch, node_index))

            node_index += 1
        layer += 1
    return graph


def visualize(root: DerivationNode, show: bool = True) -> nx.DiGraph:
    graph = to_graph(root)

    layout = defaultdict(list)  # key - layer, value - list of nodes
    for n, data in graph.nodes(data=True):
        layout[data["layer"]].append(n)

    # nx.multipartite_layout doesn't preserve per-layer ordering of nodes
    # which is necessary
    pos = {}
    x_spacing = 1
    for level, nodes in layout.items():
        amount = len(nodes)
        for i, node in enumerate(nodes):
            x = x_spacing * (i - amount / 2)
            pos[node] = (x, -level)

    nx.draw(graph, pos, arrows=True, node_shape="o", node_size=1500, alpha=0.4)
    nx.draw_networkx_labels(graph, pos, labels={k: v["symbol"] for k, v in graph.nodes.items()})
    if show:
        plt.show()
    return graph
