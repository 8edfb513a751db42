# © 2021 Intel Corporation
# SPDX-License-Identifier: MPL-2.0

import unittest
import tempfile
import json
from pathlib import Path

from vtlayout import messages, export
from vtlayout.logging import SimpleSite
from vtlayout.decl import DeclTable, mktrait
from vtlayout.layout import LayoutCache, LayoutGenerator

site = SimpleSite('test')

def layouts(*specs):
    decls = DeclTable(
        mktrait(SimpleSite(name), name, supers, [name.lower()])
        for (name, supers) in specs)
    g = LayoutGenerator(decls)
    return [g.layout(d.name) for d in decls]

def diamond():
    return layouts(('A', []), ('B', ['A']), ('C', ['A']), ('D', ['B', 'C']))

class Test_describe(unittest.TestCase):
    def test_describe(self):
        d = export.describe(diamond()[3])
        self.assertEqual(d['trait'], 'D')
        self.assertEqual(d['supertraits'], ['B', 'C'])
        self.assertEqual(d['size'], 11)
        self.assertEqual(d['embeds'], [['B', 0], ['C', 5]])
        self.assertEqual(d['slots'][-1], ['method', 'D', 'd'])
        self.assertEqual(d['fingerprint'], export.fingerprint(d))

    def test_from_description(self):
        for l in diamond():
            # descriptions go through JSON on their way between units
            desc = json.loads(json.dumps(export.describe(l)))
            imported = export.from_description(desc, site)
            self.assertEqual(imported, l)
            self.assertTrue(imported.imported)

    def test_corrupt(self):
        desc = export.describe(diamond()[1])
        desc['slots'][3] = ['method', 'B', 'x']
        with self.assertRaises(messages.EIMPORT):
            export.from_description(desc, site)
        del desc['embeds']
        with self.assertRaises(messages.EIMPORT):
            export.from_description(desc, site)

    def test_corrupt_ancestors(self):
        desc = export.describe(diamond()[3])
        self.assertEqual(desc['ancestors'], [['B', 1], ['A', 2], ['C', 1]])
        desc['ancestors'] = [['B', 1], ['A', 1], ['C', 1]]
        with self.assertRaises(messages.EIMPORT):
            export.from_description(desc, site)

    def test_declaration(self):
        d = export.declaration(diamond()[3])
        self.assertEqual(d.name, 'D')
        self.assertEqual(d.supertraits, ('B', 'C'))
        self.assertEqual(d.method_names(), ['d'])

class Test_files(unittest.TestCase):
    def test_write_read(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / 'unit.vtl'
            export.write_descriptions(path, diamond())
            self.assertFalse(Path(str(path.resolve()) + '.tmp').exists())
            cache = LayoutCache()
            imported = export.import_descriptions(cache, path)
            self.assertEqual([l.trait for l in imported], list('ABCD'))
            self.assertEqual(len(cache), 4)
            self.assertTrue(cache.get('D').imported)

    def test_bad_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / 'unit.vtl'
            with self.assertRaises(messages.EIMPORT):
                export.read_descriptions(path)
            path.write_text('{"trait": "A"}')
            with self.assertRaises(messages.EIMPORT):
                export.read_descriptions(path)
            path.write_text('[17]')
            with self.assertRaises(messages.EIMPORT):
                export.read_descriptions(path)

class Test_check_consistency(unittest.TestCase):
    def test_consistent(self):
        export.check_consistency(diamond(), diamond(),
                                 layouts(('A', []), ('E', ['A'])))

    def test_mismatch(self):
        other = layouts(('A', []), ('B', ['A']), ('C', ['A']),
                        ('D', ['C', 'B']))
        with self.assertRaises(messages.ELAYOUTMISMATCH) as cm:
            export.check_consistency(diamond(), other)
        self.assertIn("'D'", str(cm.exception))
        self.assertIn('supertrait order', str(cm.exception))
