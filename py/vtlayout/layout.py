# © 2021 Intel Corporation
# SPDX-License-Identifier: MPL-2.0

# Vtable layouts of traits.
#
# The layout of a trait without supertraits is a metadata triple
# (destructor, size, alignment) followed by one slot per own method.
# The layout of a trait with supertraits is the concatenation of the
# layouts of its supertraits, in canonical order, followed by one slot
# per own method. Thus every supertrait layout appears as a contiguous
# sub-sequence of the layout of each subtrait, and a trait reference
# can be upcast by adding a constant to the vtable pointer.
#
# A layout depends only on the declarations of the trait and its
# ancestors, never on an implementing type, so each trait has exactly
# one layout, shared by all types and all units.

from dataclasses import dataclass, field

from .logging import *
from .messages import *

__all__ = (
    'Slot',
    'VtableLayout',
    'LayoutCache',
    'LayoutGenerator',
    'metadata_kinds',
)

metadata_kinds = ('drop', 'size', 'align')

@dataclass(frozen=True)
class Slot:
    # One of metadata_kinds, or 'method'
    kind: str
    # For a method slot, the trait declaring the method; for a
    # metadata slot, the trait without supertraits that emits it
    trait: str
    name: str

    def is_metadata(self):
        return self.kind != 'method'

    def __str__(self):
        if self.is_metadata():
            return '<%s>' % (self.kind,)
        return '%s.%s' % (self.trait, self.name)

@dataclass(frozen=True)
class VtableLayout:
    trait: str
    supertraits: tuple
    slots: tuple
    # ((supertrait, first slot index), ...) in canonical order
    embeds: tuple
    # ((ancestor, number of embedded copies), ...) in first-visit order
    ancestors: tuple
    site: Site = field(default=None, compare=False)
    # True if the layout was read from an exported description
    imported: bool = field(default=False, compare=False)

    def __len__(self):
        return len(self.slots)

    @property
    def own_methods(self):
        return [s for s in self.slots if s.kind == 'method'
                and s.trait == self.trait]

    def embed_count(self, name):
        '''Number of copies of the named ancestor's layout embedded in
        this layout'''
        if name == self.trait:
            return 1
        return dict(self.ancestors).get(name, 0)

    def embeds_trait(self, name):
        return self.embed_count(name) > 0

def layout_difference(a, b):
    '''Describe how two layouts of the same trait differ, or return
    None if they are equal'''
    if a.supertraits != b.supertraits:
        return ('supertrait order (%s) vs (%s)'
                % (', '.join(a.supertraits), ', '.join(b.supertraits)))
    if len(a) != len(b):
        return '%d vs %d slots' % (len(a), len(b))
    for (i, (sa, sb)) in enumerate(zip(a.slots, b.slots)):
        if sa != sb:
            return 'slot %d is %s vs %s' % (i, sa, sb)
    if a != b:
        return 'embedded layouts differ'
    return None

class LayoutCache(object):
    '''Process-wide store of computed layouts, keyed by trait name.

    Each layout is computed at most once per worker and published
    with publish(); concurrent publishers of the same trait race
    harmlessly, because the first published value is kept and all
    values are equal. An unequal value indicates a broken determinism
    invariant, or that an imported description disagrees with the
    local declaration.'''
    def __init__(self):
        self.layouts = {}

    def __contains__(self, name):
        return name in self.layouts

    def __iter__(self):
        return iter(list(self.layouts.values()))

    def __len__(self):
        return len(self.layouts)

    def get(self, name):
        return self.layouts.get(name)

    def publish(self, layout):
        '''Install layout unless the trait already has one; return the
        installed layout'''
        installed = self.layouts.setdefault(layout.trait, layout)
        if installed is not layout:
            diff = layout_difference(installed, layout)
            if diff is not None:
                if installed.imported or layout.imported:
                    raise ELAYOUTMISMATCH(layout.site, installed.site,
                                          layout.trait, diff)
                raise ICE(layout.site, 'layout of %s is not deterministic: %s'
                          % (layout.trait, diff))
        return installed

UNVISITED, IN_PROGRESS, DONE = range(3)

class LayoutGenerator(object):
    '''Compute layouts from trait declarations, publishing them in a
    LayoutCache.

    traverse() walks the supertrait graph depth-first, with roots in
    the given order and supertraits in canonical order. The path on
    which a trait is first visited is its canonical embedding path,
    recorded in first_path.'''

    def __init__(self, decls, cache=None):
        self.decls = decls
        self.cache = cache if cache is not None else LayoutCache()
        self.state = {}
        # trait -> tuple of traits from a root down to the trait
        self.first_path = {}
        # traits in order of first visit
        self.visit_order = []

    def layout(self, name, site=None):
        '''Return the layout of a trait, computing it if needed'''
        layout = self.cache.get(name)
        if layout is None or (layout.imported and name in self.decls
                              and self.state.get(name) != DONE):
            self.traverse([name], site)
            layout = self.cache.get(name)
        return layout

    def traverse(self, roots, site=None):
        site = site or SimpleSite('<layout>')
        for root in roots:
            if self.state.get(root, UNVISITED) == UNVISITED:
                self._visit(root, site)
        return self.visit_order

    def _known(self, name):
        '''True if the layout of name needs no traversal'''
        layout = self.cache.get(name)
        return layout is not None and not (layout.imported
                                           and name in self.decls)

    def _visit(self, root, site):
        self._enter(root, (root,), site)
        path = [root]
        stack = [iter(self.decls[root].supertraits)
                 if self.state[root] == IN_PROGRESS else iter(())]
        while stack:
            for s in stack[-1]:
                st = self.state.get(s, UNVISITED)
                if st == IN_PROGRESS:
                    cycle = path[path.index(s):]
                    sites = [self.decls[n].site for n in cycle]
                    raise ECYCLICTRAIT(sites[0], cycle, sites[1:])
                if st == UNVISITED:
                    path.append(s)
                    self._enter(s, tuple(path), self.decls[path[-2]].site)
                    if self.state[s] == IN_PROGRESS:
                        stack.append(iter(self.decls[s].supertraits))
                        break
                    path.pop()
            else:
                stack.pop()
                name = path.pop()
                if self.state[name] == IN_PROGRESS:
                    self.cache.publish(self._compute(self.decls[name]))
                    self.state[name] = DONE

    def _enter(self, name, path, site):
        '''Record the first visit of a trait. Leave it IN_PROGRESS if
        its supertraits must be traversed, otherwise mark it DONE.'''
        self.first_path[name] = path
        self.visit_order.append(name)
        if self._known(name):
            self.state[name] = DONE
        else:
            self.decls.lookup(site, name)
            self.state[name] = IN_PROGRESS

    def _compute(self, decl):
        name = decl.name
        slots = []
        embeds = []
        counts = {}
        if not decl.supertraits:
            slots.extend(Slot(kind, name, kind) for kind in metadata_kinds)
        for s in decl.supertraits:
            sub = self.cache.get(s)
            if sub is None:
                raise ICE(decl.site, 'layout of %s used before computed'
                          % (s,))
            embeds.append((s, len(slots)))
            slots.extend(sub.slots)
            counts[s] = counts.get(s, 0) + 1
            for (a, n) in sub.ancestors:
                counts[a] = counts.get(a, 0) + n
        slots.extend(Slot('method', name, m.name) for m in decl.methods)
        return VtableLayout(name, decl.supertraits, tuple(slots),
                            tuple(embeds), tuple(counts.items()), decl.site)
