# © 2021 Intel Corporation
# SPDX-License-Identifier: MPL-2.0

# Offsets of embedded ancestor layouts. An upcast from T to an
# ancestor S adds offset(T, S) to the vtable pointer. When S is
# embedded more than once in T, the copy reached through the first
# supertrait in canonical order is used.

import vtlayout.globals
from .logging import *
from .messages import *

__all__ = (
    'OffsetTable',
    'OffsetResolver',
)

class OffsetTable(object):
    '''Process-wide map (descendant, ancestor) -> slot offset, populated
    by idempotent publication like LayoutCache'''
    def __init__(self):
        self.offsets = {}

    def __contains__(self, key):
        return key in self.offsets

    def __len__(self):
        return len(self.offsets)

    def get(self, key):
        return self.offsets.get(key)

    def publish(self, key, offset):
        installed = self.offsets.setdefault(key, offset)
        if installed != offset:
            raise ICE(None, 'offset from %s to %s is not deterministic: '
                      '%d vs %d' % (key + (installed, offset)))
        return installed

class OffsetResolver(object):
    def __init__(self, generator, table=None):
        self.generator = generator
        self.table = table if table is not None else OffsetTable()

    def offset(self, t, s, site=None):
        '''Return the slot offset of the layout of s within the layout
        of t'''
        # Walk down the first embedding path until a known offset or s
        # itself is reached, then publish the offset of every trait on
        # the way back up
        path = []
        name = t
        while True:
            off = self.table.get((name, s))
            if off is not None:
                break
            if name == s:
                off = self.table.publish((name, s), 0)
                break
            layout = self.generator.layout(name, site)
            for (sup, start) in layout.embeds:
                if (sup == s
                    or self.generator.layout(sup, site).embeds_trait(s)):
                    break
            else:
                raise ENOTANCESTOR(site or layout.site, name, s)
            path.append((name, start))
            name = sup
        for (name, start) in reversed(path):
            off = self.table.publish((name, s), start + off)
        return off

    def offset_bytes(self, t, s, site=None):
        return self.offset(t, s, site) * vtlayout.globals.word_size

    def edge_offsets(self, graph):
        '''Return a list of ((t, s), offset) for each edge in a pruned
        trait graph; these are the upcasts code generation needs, other
        upcasts are compositions of them'''
        return [((t, s), self.offset(t, s, graph.site))
                for (t, s) in graph.edge_list()]

    def all_offsets(self, name, site=None):
        '''Return a dict mapping each trait embedded in the layout of
        name, including name itself, to its offset'''
        layout = self.generator.layout(name, site)
        return {a: self.offset(name, a, site)
                for a in [name] + [a for (a, _) in layout.ancestors]}
