# © 2021 Intel Corporation
# SPDX-License-Identifier: MPL-2.0

# Supertrait graphs of implementing types, and pruning of these graphs
# down to what the type's dynamic objects actually need

from . import topsort
from .logging import *
from .messages import *

__all__ = (
    'TraitGraph',
    'build_graph',
    'prune',
    'type_graph',
)

class TraitGraph(object):
    '''Acyclic graph over trait names. An edge (parent, child) means
    that parent extends child; the children of a node are listed in
    canonical supertrait order.'''
    def __init__(self, owner, site, edges, roots=()):
        # name of the implementing type, or None
        self.owner = owner
        self.site = site
        # dict: trait name -> list of trait names
        self.edges = edges
        # traits for which dynamic objects are created, after pruning
        self.roots = tuple(roots)

    def __repr__(self):
        return 'TraitGraph(%r, %r)' % (self.owner, self.edges)

    def __contains__(self, name):
        return name in self.edges

    def __len__(self):
        return len(self.edges)

    @property
    def nodes(self):
        return list(self.edges)

    def supertraits(self, name):
        return self.edges[name]

    def edge_list(self):
        return [(parent, child) for (parent, children) in self.edges.items()
                for child in children]

    def reachable(self, roots):
        return topsort.reachable(self.edges, roots)

    def reaches(self, src, dst):
        return dst in self.reachable([src])

def build_graph(decls, names, owner=None, site=None):
    '''Return the graph of all traits transitively reachable from the
    given trait names through supertrait edges'''
    site = site or SimpleSite(owner or '<graph>')
    edges = {}
    stack = list(reversed(names))
    while stack:
        name = stack.pop()
        if name in edges:
            continue
        decl = decls.lookup(site, name)
        edges[name] = list(decl.supertraits)
        for s in reversed(decl.supertraits):
            decls.lookup(decl.site, s)
            stack.append(s)
    try:
        topsort.topsort(edges)
    except topsort.CycleFound as e:
        sites = [decls[n].site for n in e.cycle]
        raise ECYCLICTRAIT(sites[0], e.cycle, sites[1:])
    return TraitGraph(owner, site, edges)

def prune(graph, roots):
    '''Remove all traits that are not reachable from the given roots,
    and all edges that are implied by longer paths. Reachability from
    the roots is preserved.'''
    for r in roots:
        if r not in graph:
            raise ENOTIMPL(graph.site, graph.owner or '<graph>', r)
    live = graph.reachable(roots)
    reduced = topsort.transitive_reduction(
        {n: graph.edges[n] for n in live})
    pruned = TraitGraph(graph.owner, graph.site, reduced, roots)
    for r in roots:
        if r not in pruned:
            raise ICE(graph.site, 'root %s lost in pruning' % (r,))
    dbg('pruned', graph.owner, 'from', len(graph), 'to', len(pruned),
        'traits')
    return pruned

def type_graph(decls, t):
    '''Build and prune the supertrait graph of an implementing type,
    keeping what its dynamic objects need'''
    graph = build_graph(decls, t.implements, t.name, t.site)
    pruned = prune(graph, t.dyn)
    if not t.dyn:
        report(WNODYN(t.site, t.name))
    else:
        for name in t.implements:
            if name not in pruned:
                report(WUNUSEDTRAIT(t.site, name, t.name))
    return pruned
