# © 2021 Intel Corporation
# SPDX-License-Identifier: MPL-2.0

# Emit materialized vtables as static C data, and upcast offsets as
# constants, for consumption by code generation

from . import output
from .output import out
from .messages import ECIDENT

__all__ = ['generate', 'check_identifiers']

def cident(name):
    return ''.join(c if c.isalnum() or c == '_' else '_' for c in name)

def offset_macro(t, s):
    return '_VT_OFFSET_%s__%s' % (cident(t), cident(s))

def dyn_macro(type_name, trait):
    return '_VT_%s__%s' % (cident(type_name), cident(trait))

def vtable_ident(type_name, trait):
    return cident('_vt_%s__%s' % (type_name, trait))

def check_identifiers(results):
    '''Raise ECIDENT if two distinct entities of the generated file get
    the same C identifier'''
    seen = {}
    def claim(ident, what, site):
        (other, other_site) = seen.setdefault(ident, (what, site))
        if other != what:
            raise ECIDENT(site, other_site, ident, what, other)
    for res in results:
        t = res.type_impl
        for vt in res.vtables:
            claim(vtable_ident(t.name, vt.trait),
                  "the vtable of type '%s' for '%s'" % (t.name, vt.trait),
                  t.site)
            for (slot, value) in zip(vt.layout.slots, vt.values):
                if slot.kind in ('drop', 'method'):
                    claim(cident(value), "symbol '%s'" % (value,), t.site)
        for root in res.plan:
            claim(dyn_macro(t.name, root),
                  "dyn '%s' of type '%s'" % (root, t.name), t.site)
        for ((a, b), _) in res.edges:
            claim(offset_macro(a, b),
                  "the offset from '%s' to '%s'" % (a, b), res.graph.site)

def emit_symbol_decls(results):
    symbols = {}
    for res in results:
        for vt in res.vtables:
            for (slot, value) in zip(vt.layout.slots, vt.values):
                if slot.kind in ('drop', 'method'):
                    symbols[value] = None
    for sym in symbols:
        out('extern void %s(void);\n' % (cident(sym),))
    if symbols:
        out('\n')

def emit_vtable(vt):
    out('static const void *const %s[%d] = {\n'
        % (vtable_ident(vt.type_name, vt.trait), len(vt)), postindent = 1)
    for (slot, value) in zip(vt.layout.slots, vt.values):
        if slot.kind in ('size', 'align'):
            init = '(const void *)(uintptr_t)%d' % (value,)
        else:
            init = '(const void *)&%s' % (cident(value),)
        out('%s, /* %s */\n' % (init, slot))
    out('};\n', preindent = -1)

def emit_offsets(results, resolver):
    seen = {}
    for res in results:
        for ((t, s), _) in res.edges:
            seen.setdefault((t, s), res.graph.site)
    for ((t, s), site) in seen.items():
        out('#define %s %d\n' % (offset_macro(t, s),
                                 resolver.offset_bytes(t, s, site)))
    if seen:
        out('\n')

def emit_dyn_refs(results):
    for res in results:
        name = res.type_impl.name
        for (root, (host, offset)) in res.plan.items():
            out('#define %s (&%s[%d])\n'
                % (dyn_macro(name, root), vtable_ident(name, host), offset))

def generate(results, resolver, filename):
    '''Write a C file with one static array per materialized vtable'''
    check_identifiers(results)
    f = output.FileOutput(filename)
    with f:
        out('/* Generated by vtlc; do not edit */\n\n')
        out('#include <stdint.h>\n\n')
        emit_symbol_decls(results)
        emit_offsets(results, resolver)
        for res in results:
            for vt in res.vtables:
                emit_vtable(vt)
                out('\n')
        emit_dyn_refs(results)
    f.close()
    f.commit()
