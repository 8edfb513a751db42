# © 2021 Intel Corporation
# SPDX-License-Identifier: MPL-2.0

# JSON report of layouts, upcast offsets and vtables

__all__ = ['generate', 'info']

import json

from . import output
import vtlayout.globals

def layout_info(layout, resolver):
    return {
        'trait': layout.trait,
        'supertraits': list(layout.supertraits),
        'slots': [str(s) for s in layout.slots],
        'offsets': resolver.all_offsets(layout.trait),
    }

def type_info(res, resolver):
    site = res.graph.site
    return {
        'name': res.type_impl.name,
        'roots': list(res.graph.roots),
        'traits': res.graph.nodes,
        'upcasts': [{'from': t, 'to': s, 'slots': off,
                     'bytes': resolver.offset_bytes(t, s, site)}
                    for ((t, s), off) in res.edges],
        'dyn': {root: {'vtable': host, 'slot': off}
                for (root, (host, off)) in res.plan.items()},
        'vtables': [{'trait': vt.trait, 'size': vt.size(),
                     'align': vt.align(), 'values': list(vt.values)}
                    for vt in res.vtables],
        'words': res.words(),
    }

def info(layouts, resolver, results):
    return {
        'word_size': vtlayout.globals.word_size,
        'layouts': [layout_info(l, resolver) for l in layouts],
        'types': [type_info(res, resolver) for res in results],
    }

def generate(layouts, resolver, results, filename):
    f = output.FileOutput(filename)
    with f:
        output.out(json.dumps(info(layouts, resolver, results), indent=1))
        output.out('\n')
    f.close()
    f.commit()
