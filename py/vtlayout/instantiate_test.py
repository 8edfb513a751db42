# © 2021 Intel Corporation
# SPDX-License-Identifier: MPL-2.0

import unittest

from vtlayout import messages, logging
from vtlayout.logging import SimpleSite
from vtlayout.decl import DeclTable, mktrait, mktype
from vtlayout.graph import build_graph, prune
from vtlayout.layout import LayoutGenerator
from vtlayout.offsets import OffsetResolver
from vtlayout.instantiate import Instantiator, VtablePtr

site = SimpleSite('test')

def instantiator(*specs):
    decls = DeclTable(
        mktrait(SimpleSite(name), name, supers,
                [name.lower() + '1', name.lower() + '2'])
        for (name, supers) in specs)
    generator = LayoutGenerator(decls)
    return (decls, Instantiator(generator, OffsetResolver(generator)))

def impl(decls, name, implements, dyn, **kwargs):
    methods = {}
    for trait in decls.closure(site, implements):
        for m in decls[trait].method_names():
            methods['%s.%s' % (trait, m)] = '%s_%s' % (name, m)
    methods.update(kwargs)
    return mktype(site, name, 24, 8, 'drop_' + name, implements, methods,
                  dyn)

def three_parents():
    return instantiator(('P1', []), ('P2', []), ('P3', []),
                        ('C', ['P1', 'P2', 'P3']))

def diamond():
    return instantiator(('A', []), ('B', ['A']), ('C', ['A']),
                        ('D', ['B', 'C']))

class Test_vtable(unittest.TestCase):
    def test_bind(self):
        (decls, inst) = three_parents()
        t = impl(decls, 'U', ['C'], ['C'])
        vt = inst.vtable(t, 'C')
        self.assertEqual(len(vt), 17)
        self.assertEqual(vt.values[:5],
                         ('drop_U', 24, 8, 'U_p11', 'U_p12'))
        self.assertEqual(vt.values[5:8], ('drop_U', 24, 8))
        self.assertEqual(vt.values[15:], ('U_c1', 'U_c2'))
        self.assertEqual(vt.size(), 17 * 8)

    def test_deduplicated(self):
        (decls, inst) = three_parents()
        t = impl(decls, 'U', ['C'], ['C'])
        self.assertIs(inst.vtable(t, 'C'), inst.vtable(t, 'C'))
        other = impl(decls, 'V', ['C'], ['C'])
        self.assertIsNot(inst.vtable(other, 'C'), inst.vtable(t, 'C'))

    def test_unbound(self):
        (decls, inst) = three_parents()
        t = mktype(site, 'U', 8, 8, 'drop_U', ['P1'], {'P1.p11': 'f'},
                   ['P1'])
        with self.assertRaises(logging.ICE):
            inst.vtable(t, 'P1')

class Test_instantiate(unittest.TestCase):
    def test_plan(self):
        (decls, inst) = three_parents()
        t = impl(decls, 'U', ['C'], ['C', 'P2'])
        graph = prune(build_graph(decls, t.implements, 'U'), t.dyn)
        res = inst.instantiate(t, graph)
        self.assertEqual(res.plan, {'C': ('C', 0), 'P2': ('C', 5)})
        self.assertEqual([vt.trait for vt in res.vtables], ['C'])
        self.assertEqual(res.words(), 17)
        self.assertEqual(dict(res.edges),
                         {('C', 'P1'): 0, ('C', 'P2'): 5, ('C', 'P3'): 10})

    def test_unrelated_roots(self):
        (decls, inst) = three_parents()
        t = impl(decls, 'U', ['P1', 'P3'], ['P3', 'P1'])
        graph = prune(build_graph(decls, t.implements, 'U'), t.dyn)
        res = inst.instantiate(t, graph)
        self.assertEqual([vt.trait for vt in res.vtables], ['P3', 'P1'])
        self.assertEqual(res.words(), 10)

    def test_new_dyn_with_plan(self):
        (decls, inst) = three_parents()
        t = impl(decls, 'U', ['C'], ['C', 'P2'])
        graph = prune(build_graph(decls, t.implements, 'U'), t.dyn)
        res = inst.instantiate(t, graph)
        obj = inst.new_dyn(t, 'P2', 'data', res.plan)
        self.assertIs(obj.vtable.storage, res.vtables[0])
        self.assertEqual(obj.vtable.index, 5)
        self.assertEqual(inst.lookup(obj, 'P2', 'p21'), 'U_p21')

class Test_dyn(unittest.TestCase):
    def test_upcast(self):
        (decls, inst) = three_parents()
        t = impl(decls, 'U', ['C'], ['C'])
        obj = inst.new_dyn(t, 'C', 'data')
        up = inst.upcast(obj, 'P2')
        self.assertEqual(up.data, 'data')
        self.assertEqual(up.trait, 'P2')
        self.assertEqual(up.vtable, VtablePtr(obj.vtable.storage, 5))
        self.assertEqual(up.vtable.metadata(), ('drop_U', 24, 8))
        self.assertEqual(inst.upcast(up, 'P2'), up)
        with self.assertRaises(messages.ENOTANCESTOR):
            inst.upcast(up, 'P3')

    def test_lookup(self):
        (decls, inst) = three_parents()
        t = impl(decls, 'U', ['C'], ['C'], **{'P3.p32': 'special'})
        obj = inst.new_dyn(t, 'C', None)
        self.assertEqual(inst.method_slot('C', 'P3', 'p32'), 14)
        self.assertEqual(inst.lookup(obj, 'P3', 'p32'), 'special')
        self.assertEqual(inst.lookup(obj, 'C', 'c1'), 'U_c1')
        # calls through an upcast object reach the same implementation
        up = inst.upcast(obj, 'P3')
        self.assertEqual(inst.lookup(up, 'P3', 'p32'), 'special')
        with self.assertRaises(messages.EUNKNOWNMETHOD):
            inst.method_slot('C', 'P1', 'nope')

    def test_diamond(self):
        (decls, inst) = diamond()
        t = impl(decls, 'U', ['D'], ['D'])
        obj = inst.new_dyn(t, 'D', None)
        self.assertEqual(len(obj.vtable.storage), 16)
        via_b = inst.upcast(inst.upcast(obj, 'B'), 'A')
        via_c = inst.upcast(inst.upcast(obj, 'C'), 'A')
        self.assertEqual(inst.upcast(obj, 'A'), via_b)
        self.assertEqual(via_c.vtable.index, 7)
        for o in [via_b, via_c]:
            self.assertEqual(o.vtable.metadata(), ('drop_U', 24, 8))
            self.assertEqual(inst.lookup(o, 'A', 'a1'), 'U_a1')

    def test_composition(self):
        (decls, inst) = instantiator(('X', []), ('Z', []), ('W', []),
                                     ('Y', ['Z', 'W']), ('T', ['X', 'Y']))
        t = impl(decls, 'U', ['T'], ['T'])
        obj = inst.new_dyn(t, 'T', None)
        self.assertEqual(inst.upcast(inst.upcast(obj, 'Y'), 'W'),
                         inst.upcast(obj, 'W'))
        self.assertEqual(inst.upcast(obj, 'W').vtable.index, 10)

class Test_deep(unittest.TestCase):
    def test_long_chain(self):
        # deeper than the interpreter's recursion limit
        n = 1100
        (decls, inst) = instantiator(
            *[('T%d' % i, ['T%d' % (i + 1)]) for i in range(n - 1)],
            ('T%d' % (n - 1), []))
        t = impl(decls, 'U', ['T0'], ['T0'])
        vt = inst.vtable(t, 'T0')
        self.assertEqual(len(vt), 3 + 2 * n)
        self.assertEqual(vt.values[:5],
                         ('drop_U', 24, 8, 'U_t%d1' % (n - 1),
                          'U_t%d2' % (n - 1)))
        self.assertEqual(vt.values[-1], 'U_t02')
        obj = inst.new_dyn(t, 'T0', None)
        up = inst.upcast(obj, 'T%d' % (n - 1))
        self.assertEqual(up.vtable.metadata(), ('drop_U', 24, 8))
        self.assertEqual(inst.lookup(up, 'T%d' % (n - 1),
                                     't%d1' % (n - 1)),
                         'U_t%d1' % (n - 1))
