# © 2021 Intel Corporation
# SPDX-License-Identifier: MPL-2.0

# Externally visible layout descriptions. Each trait's layout shape is
# exported with the trait, so that separately compiled units compute
# the same offsets without re-deriving layouts from possibly
# differently ordered local declarations.

import json
import hashlib

from . import output
from .decl import MethodSig, TraitDecl
from .layout import Slot, VtableLayout, layout_difference
from .logging import *
from .messages import *

__all__ = (
    'describe',
    'fingerprint',
    'from_description',
    'declaration',
    'write_descriptions',
    'read_descriptions',
    'import_descriptions',
    'check_consistency',
)

def fingerprint(desc):
    '''A digest of the layout shape in a description'''
    shape = json.dumps([desc['trait'], desc['supertraits'], desc['embeds'],
                        desc['ancestors'], desc['slots']],
                       separators=(',', ':'))
    return hashlib.sha1(shape.encode('utf-8')).hexdigest()  # nosec

def describe(layout):
    desc = {
        'trait': layout.trait,
        'supertraits': list(layout.supertraits),
        'size': len(layout),
        'embeds': [[s, start] for (s, start) in layout.embeds],
        'ancestors': [[a, n] for (a, n) in layout.ancestors],
        'slots': [[s.kind, s.trait, s.name] for s in layout.slots],
    }
    desc['fingerprint'] = fingerprint(desc)
    return desc

def from_description(desc, site):
    '''Reconstruct a layout from its description. The result is marked
    as imported.'''
    try:
        slots = tuple(Slot(kind, trait, name)
                      for (kind, trait, name) in desc['slots'])
        layout = VtableLayout(
            desc['trait'], tuple(desc['supertraits']), slots,
            tuple((s, start) for (s, start) in desc['embeds']),
            tuple((a, n) for (a, n) in desc['ancestors']),
            site, True)
        expected = (desc['size'], desc['fingerprint'])
    except (KeyError, TypeError, ValueError) as e:
        raise EIMPORT(site, 'malformed description: %s' % (e,))
    if expected != (len(layout), fingerprint(desc)):
        raise EIMPORT(site, 'corrupt description of %s' % (layout.trait,))
    return layout

def declaration(layout):
    '''Reconstruct the declaration of a trait from its layout, for
    traits that are only known through an exported description'''
    return TraitDecl(layout.site, layout.trait, layout.supertraits,
                     tuple(MethodSig(s.name) for s in layout.own_methods))

def write_descriptions(filename, layouts):
    f = output.FileOutput(filename)
    with f:
        output.out(json.dumps([describe(l) for l in layouts], indent=1))
        output.out('\n')
    f.close()
    f.commit()

def read_descriptions(filename):
    site = SimpleSite(str(filename))
    try:
        with open(filename) as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise EIMPORT(site, str(e))
    if not isinstance(data, list):
        raise EIMPORT(site, 'expected a list of descriptions')
    layouts = []
    for desc in data:
        if not isinstance(desc, dict) or not isinstance(
                desc.get('trait'), str):
            raise EIMPORT(site, 'malformed description')
        layouts.append(from_description(
            desc, DeclSite(filename, 'trait', desc['trait'])))
    return layouts

def import_descriptions(cache, filename):
    '''Seed a layout cache with the layouts exported in a file; return
    the layouts'''
    layouts = read_descriptions(filename)
    for layout in layouts:
        cache.publish(layout)
    return layouts

def check_consistency(*units):
    '''Given lists of layouts from separately compiled units, verify
    that all units agree on the layout of every trait they share'''
    seen = {}
    for layouts in units:
        for layout in layouts:
            other = seen.setdefault(layout.trait, layout)
            diff = layout_difference(other, layout)
            if diff is not None:
                raise ELAYOUTMISMATCH(layout.site, other.site,
                                      layout.trait, diff)
