"""
Robustness Analyzer

Finds articulation points (single points of failure) and bridge links
(critical links) in the estimated mesh graph using Tarjan's
discovery-time / low-link depth-first search.

Every link counts as a graph edge regardless of quality: an "unlikely"
link is still a possible path, not a proven absence of one.

The DFS uses an explicit stack so deep chains never hit the
interpreter's recursion limit.
"""

import logging
from typing import Dict, List, Optional, Tuple

from .models import Link, LinkQuality, Node, RobustnessResult

logger = logging.getLogger(__name__)

UNVISITED = -1


def build_adjacency(nodes: List[Node], links: List[Link]) -> List[List[Tuple[int, Link]]]:
    """Undirected adjacency list indexed by node registry position.

    Links whose endpoints are not in the registry are ignored.
    """
    index = {node.id: idx for idx, node in enumerate(nodes)}
    adjacency: List[List[Tuple[int, Link]]] = [[] for _ in nodes]
    for link in links:
        u = index.get(link.from_id)
        v = index.get(link.to_id)
        if u is None or v is None or u == v:
            continue
        adjacency[u].append((v, link))
        adjacency[v].append((u, link))
    return adjacency


def analyze(nodes: List[Node], links: List[Link]) -> RobustnessResult:
    """
    Identify single points of failure and critical bridge links.

    Args:
        nodes: Node registry (order defines DFS start order)
        links: Estimated links

    Returns:
        RobustnessResult with SPOF nodes in registry order and bridges
        in the order the traversal confirmed them
    """
    adjacency = build_adjacency(nodes, links)
    count = len(nodes)
    disc = [UNVISITED] * count
    low = [UNVISITED] * count
    parent = [UNVISITED] * count
    parent_link: List[Optional[Link]] = [None] * count
    articulation = set()
    bridges: List[Link] = []
    time = 0

    for root in range(count):
        if disc[root] != UNVISITED:
            continue

        time += 1
        disc[root] = low[root] = time
        root_children = 0
        # Each frame is (node, index of the next neighbour to examine)
        stack = [(root, 0)]

        while stack:
            u, next_edge = stack[-1]

            if next_edge < len(adjacency[u]):
                stack[-1] = (u, next_edge + 1)
                v, link = adjacency[u][next_edge]
                if disc[v] == UNVISITED:
                    parent[v] = u
                    parent_link[v] = link
                    if u == root:
                        root_children += 1
                    time += 1
                    disc[v] = low[v] = time
                    stack.append((v, 0))
                elif v != parent[u]:
                    low[u] = min(low[u], disc[v])
                continue

            # All neighbours of u done: fold its low-link into the parent
            stack.pop()
            p = parent[u]
            if p == UNVISITED:
                continue
            low[p] = min(low[p], low[u])
            if parent[p] != UNVISITED and low[u] >= disc[p]:
                articulation.add(p)
            if low[u] > disc[p]:
                bridges.append(parent_link[u])

        if root_children > 1:
            articulation.add(root)

    spof_nodes = [nodes[idx] for idx in sorted(articulation)]
    critical_counts: Dict[str, int] = {q.value: 0 for q in LinkQuality}
    for link in bridges:
        critical_counts[link.quality.value] += 1

    logger.debug("Robustness: %d SPOF nodes, %d bridge links", len(spof_nodes), len(bridges))
    return RobustnessResult(
        spof_nodes=spof_nodes,
        critical_bridges=bridges,
        critical_counts=critical_counts,
    )
