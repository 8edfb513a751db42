# © 2021 Intel Corporation
# SPDX-License-Identifier: MPL-2.0

# Utility functions for directed graphs. A graph is represented by a
# dict where the keys are the set of nodes, and the values are lists
# of edge targets from the respective node.

__all__ = (
    'topsort',
    'reachable',
    'transitive_reduction',
    'CycleFound',
)

class CycleFound(Exception):
    def __init__(self, cycle):
        self.cycle = cycle
    def __str__(self):
        return str(self.cycle)

UNVISITED, IN_PROGRESS, DONE = range(3)

def topsort(graph):
    """Topologically sort a graph. Each node appears after all its
    edge targets. Raise CycleFound if the graph has a cycle."""
    state = dict.fromkeys(graph, UNVISITED)
    result = []
    for start in graph:
        if state[start] != UNVISITED:
            continue
        # Iterative depth-first search; each stack entry is a node
        # and an iterator over its remaining edge targets
        path = [start]
        stack = [iter(graph[start])]
        state[start] = IN_PROGRESS
        while stack:
            for n in stack[-1]:
                if state[n] == IN_PROGRESS:
                    raise CycleFound(path[path.index(n):])
                if state[n] == UNVISITED:
                    state[n] = IN_PROGRESS
                    path.append(n)
                    stack.append(iter(graph[n]))
                    break
            else:
                stack.pop()
                node = path.pop()
                state[node] = DONE
                result.append(node)
    return result

def reachable(graph, roots):
    '''Return the nodes reachable from the given roots, including the
    roots, in depth-first preorder'''
    seen = {}
    stack = list(reversed(roots))
    while stack:
        node = stack.pop()
        if node not in seen:
            seen[node] = None
            stack.extend(reversed(graph[node]))
    return list(seen)

def transitive_reduction(graph):
    '''Return a copy of an acyclic graph where each edge (a, b) is
    removed if b is reachable from a through some path of length 2 or
    more. The order of the remaining edges is preserved.'''
    descendants = {}
    for node in topsort(graph):
        desc = set()
        for n in graph[node]:
            desc.add(n)
            desc.update(descendants[n])
        descendants[node] = desc
    reduced = {}
    for (node, targets) in graph.items():
        # nodes reachable through another edge target
        indirect = set().union(*(descendants[n] for n in targets))
        reduced[node] = [n for n in targets if n not in indirect]
    return reduced
