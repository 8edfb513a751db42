# © 2021 Intel Corporation
# SPDX-License-Identifier: MPL-2.0

# Concrete vtables: trait layouts bound to the methods and metadata of
# one implementing type, and dynamic objects pointing into them

from dataclasses import dataclass

import vtlayout.globals
from .logging import *
from .messages import *

__all__ = (
    'ConcreteVtable',
    'VtablePtr',
    'DynObject',
    'TypeVtables',
    'Instantiator',
)

class ConcreteVtable(object):
    '''The layout of a root trait with every slot bound to a value of
    one implementing type. Metadata slots hold the destructor symbol,
    the size and the alignment; method slots hold implementation
    symbols.'''
    def __init__(self, type_name, layout, values):
        assert len(values) == len(layout)
        self.type_name = type_name
        self.layout = layout
        self.values = tuple(values)

    def __repr__(self):
        return 'ConcreteVtable(%s, %s)' % (self.type_name, self.trait)

    def __len__(self):
        return len(self.values)

    def __getitem__(self, i):
        return self.values[i]

    @property
    def trait(self):
        return self.layout.trait

    def size(self):
        return len(self) * vtlayout.globals.word_size

    def align(self):
        return vtlayout.globals.word_size

@dataclass(frozen=True)
class VtablePtr:
    '''A pointer to slot 'index' of some vtable storage'''
    storage: ConcreteVtable
    index: int

    def __add__(self, offset):
        return VtablePtr(self.storage, self.index + offset)

    def __getitem__(self, i):
        return self.storage.values[self.index + i]

    def metadata(self):
        '''The (destructor, size, alignment) triple; every layout
        starts with one'''
        return (self[0], self[1], self[2])

@dataclass(frozen=True)
class DynObject:
    '''A dynamic object of a trait: a data pointer and a vtable
    pointer'''
    data: object
    vtable: VtablePtr
    trait: str

@dataclass
class TypeVtables:
    '''The vtable data produced for one implementing type'''
    type_impl: object
    graph: object
    # root trait -> (materialized root, offset within its vtable)
    plan: dict
    # materialized vtables, in root order
    vtables: list
    # ((subtrait, supertrait), slot offset) per retained upcast edge
    edges: list

    def words(self):
        return sum(len(vt) for vt in self.vtables)

class Instantiator(object):
    '''Creates concrete vtables. At most one vtable is created per
    (type, root trait) pair; later requests return the same
    instance.'''
    def __init__(self, generator, resolver):
        self.generator = generator
        self.resolver = resolver
        # (type name, trait name) -> ConcreteVtable
        self.vtables = {}

    def vtable(self, t, root, site=None):
        key = (t.name, root)
        vt = self.vtables.get(key)
        if vt is None:
            layout = self.generator.layout(root, site)
            vt = self.vtables.setdefault(
                key, ConcreteVtable(t.name, layout, self._bind(t, layout)))
        return vt

    def _bind(self, t, layout):
        # Every slot names its declaring trait, so embedded layouts
        # need not be visited separately
        metadata = {'drop': t.destructor, 'size': t.size, 'align': t.align}
        values = []
        for slot in layout.slots:
            if slot.is_metadata():
                values.append(metadata[slot.kind])
                continue
            impl = t.method_impl(slot.trait, slot.name)
            if impl is None:
                # ImplDatabase reports this when the type is added
                raise ICE(t.site, 'unbound method %s in %s' % (slot, t.name))
            values.append(impl)
        return values

    def plan(self, t, graph):
        '''Decide which roots get vtable storage of their own. A root
        reachable from another root is served by an interior pointer
        into the vtable of the first such root that is not itself
        reachable from another root.'''
        roots = graph.roots
        maximal = [r for r in roots
                   if not any(q != r and graph.reaches(q, r) for q in roots)]
        plan = {}
        for r in roots:
            if r in maximal:
                plan[r] = (r, 0)
            else:
                host = next(m for m in maximal if graph.reaches(m, r))
                plan[r] = (host, self.resolver.offset(host, r, t.site))
        return plan

    def instantiate(self, t, graph):
        '''Produce all vtable data an implementing type needs, given its
        pruned trait graph'''
        self.generator.traverse(graph.roots, t.site)
        plan = self.plan(t, graph)
        vtables = [self.vtable(t, r, t.site) for r in graph.roots
                   if plan[r][0] == r]
        return TypeVtables(t, graph, plan, vtables,
                           self.resolver.edge_offsets(graph))

    def new_dyn(self, t, root, data, plan=None):
        '''Create a dynamic object of trait root for a value of type t'''
        (host, offset) = plan[root] if plan else (root, 0)
        return DynObject(data, VtablePtr(self.vtable(t, host), offset), root)

    def upcast(self, obj, target, site=None):
        '''Convert a dynamic object to one of an ancestor trait. Only
        the vtable pointer changes, by a constant offset.'''
        offset = self.resolver.offset(obj.trait, target, site)
        return DynObject(obj.data, obj.vtable + offset, target)

    def method_slot(self, trait, declaring, method, site=None):
        '''Return the slot index of a method, declared by trait
        'declaring', in the layout of trait'''
        layout = self.generator.layout(declaring, site)
        for (i, slot) in enumerate(layout.slots):
            if (slot.kind == 'method' and slot.trait == declaring
                and slot.name == method):
                return self.resolver.offset(trait, declaring, site) + i
        raise EUNKNOWNMETHOD(site or layout.site, declaring, method)

    def lookup(self, obj, declaring, method, site=None):
        '''Return the implementation that a call of a method through a
        dynamic object dispatches to'''
        return obj.vtable[self.method_slot(obj.trait, declaring, method,
                                           site)]
