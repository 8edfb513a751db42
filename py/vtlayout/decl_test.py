# © 2021 Intel Corporation
# SPDX-License-Identifier: MPL-2.0

import unittest

from vtlayout import messages
from vtlayout.logging import SimpleSite, DeclSite
from vtlayout.decl import (DeclTable, ImplDatabase, MethodSig, mktrait,
                           mktype, load_declarations)

site = SimpleSite('test')

def table():
    return DeclTable([mktrait(site, 'A', [], ['a']),
                      mktrait(site, 'B', ['A'], ['b']),
                      mktrait(site, 'C', ['A'], []),
                      mktrait(site, 'D', ['B', 'C'], ['d'])])

class Test_mktrait(unittest.TestCase):
    def test_methods(self):
        t = mktrait(site, 'T', ('S',),
                    ['m', MethodSig('n'), {'name': 'o', 'signature': 'x'}])
        self.assertEqual(t.supertraits, ('S',))
        self.assertEqual(t.method_names(), ['m', 'n', 'o'])
        self.assertEqual(t.methods[2].signature, 'x')
        self.assertTrue(t.object_safe)

    def test_unstable_order(self):
        with self.assertRaises(messages.EORDER):
            mktrait(site, 'T', {'A', 'B'})
        with self.assertRaises(messages.EORDER):
            mktrait(site, 'T', {'A': 1})
        with self.assertRaises(messages.EORDER):
            mktrait(site, 'T', (s for s in 'AB'))
        with self.assertRaises(messages.EORDER):
            mktrait(site, 'T', ['A', 'B', 'A'])

    def test_bad_methods(self):
        with self.assertRaises(messages.EDUPMETHOD):
            mktrait(site, 'T', [], ['m', 'm'])
        with self.assertRaises(messages.EDECL):
            mktrait(site, 'T', [], [17])

class Test_DeclTable(unittest.TestCase):
    def test_lookup(self):
        decls = table()
        self.assertEqual(len(decls), 4)
        self.assertEqual(decls.lookup(site, 'B').supertraits, ('A',))
        with self.assertRaises(messages.EUNKNOWNTRAIT):
            decls.lookup(site, 'X')
        with self.assertRaises(messages.EDUPTRAIT):
            decls.add(mktrait(site, 'A'))

    def test_check(self):
        decls = table()
        decls.check()
        decls.add(mktrait(site, 'E', ['X']))
        with self.assertRaises(messages.EUNKNOWNTRAIT):
            decls.check()

    def test_closure(self):
        decls = table()
        self.assertEqual(decls.closure(site, ['D']), ['D', 'B', 'A', 'C'])
        self.assertEqual(decls.closure(site, ['C', 'B']), ['C', 'A', 'B'])

class Test_ImplDatabase(unittest.TestCase):
    def mktype(self, **kwargs):
        args = dict(size=16, align=8, destructor='drop_U',
                    implements=['D'],
                    methods={'A.a': 'U_a', 'B.b': 'U_b', 'D.d': 'U_d'},
                    dyn=['D'])
        args.update(kwargs)
        return mktype(site, 'U', **args)

    def test_add(self):
        db = ImplDatabase(table(), [self.mktype()])
        u = db['U']
        self.assertEqual(u.method_impl('A', 'a'), 'U_a')
        self.assertIsNone(u.method_impl('A', 'x'))
        self.assertEqual(len(db), 1)

    def test_missing_impl(self):
        db = ImplDatabase(table())
        with self.assertRaises(messages.EMISSINGIMPL) as cm:
            db.add(self.mktype(methods={'A.a': 'U_a', 'D.d': 'U_d'}))
        self.assertIn("'B.b'", str(cm.exception))

    def test_dyn_not_implemented(self):
        db = ImplDatabase(table())
        with self.assertRaises(messages.ENOTIMPL):
            db.add(self.mktype(implements=['B'],
                               methods={'A.a': 'U_a', 'B.b': 'U_b'},
                               dyn=['D']))
        with self.assertRaises(messages.EUNKNOWNTRAIT):
            db.add(self.mktype(dyn=['X']))

    def test_not_object_safe(self):
        decls = DeclTable([mktrait(site, 'A', [], ['a'], object_safe=False)])
        db = ImplDatabase(decls)
        with self.assertRaises(messages.ENOTOBJSAFE):
            db.add(mktype(site, 'U', 4, 4, 'drop_U', ['A'], {'A.a': 'f'},
                          ['A']))
        # fine as long as no dynamic object is requested
        db.add(mktype(site, 'U', 4, 4, 'drop_U', ['A'], {'A.a': 'f'}))

    def test_bad_type(self):
        with self.assertRaises(messages.EDECL):
            self.mktype(align=3)
        with self.assertRaises(messages.EDECL):
            self.mktype(size=-1)
        with self.assertRaises(messages.EDECL):
            self.mktype(methods={'a': 'f'})
        with self.assertRaises(messages.EDECL):
            self.mktype(methods={'A.a': 5, 'B.b': 'U_b', 'D.d': 'U_d'})
        with self.assertRaises(messages.EDECL):
            self.mktype(size=True)
        with self.assertRaises(messages.EDECL):
            self.mktype(align=True)
        with self.assertRaises(messages.EDECL):
            self.mktype(destructor=None)

class Test_load_declarations(unittest.TestCase):
    def test_load(self):
        data = {
            'traits': [
                {'name': 'A', 'methods': ['a']},
                {'name': 'B', 'supertraits': ['A'],
                 'methods': [{'name': 'b', 'signature': 'fn(&self)'}]}],
            'types': [
                {'name': 'U', 'size': 8, 'align': 8, 'implements': ['B'],
                 'methods': {'A.a': 'U_a', 'B.b': 'U_b'}, 'dyn': ['B']}]}
        (decls, impls) = load_declarations('x.json', data)
        self.assertEqual(decls['B'].site, DeclSite('x.json', 'trait', 'B'))
        self.assertEqual(decls['B'].site.loc(), 'x.json:trait B')
        u = impls['U']
        self.assertEqual(u.destructor, 'drop_U')
        self.assertEqual(u.dyn, ('B',))

    def test_extra(self):
        extra = [mktrait(site, 'A', [], ['a']), mktrait(site, 'Z', [], [])]
        data = {'traits': [{'name': 'A', 'methods': ['x']},
                           {'name': 'B', 'supertraits': ['Z']}]}
        (decls, _) = load_declarations('x.json', data, extra)
        self.assertEqual(decls['A'].method_names(), ['x'])
        self.assertIn('Z', decls)

    def test_malformed(self):
        for data in [[], {}, {'traits': [{'methods': []}]},
                     {'traits': [{'name': 'A', 'supertraits': 'B'}]},
                     {'traits': [], 'types': [{'name': 'U'}]}]:
            with self.assertRaises(messages.EDECL):
                load_declarations('x.json', data)
        with self.assertRaises(messages.EUNKNOWNTRAIT):
            load_declarations('x.json', {'traits': [
                {'name': 'A', 'supertraits': ['B']}]})
