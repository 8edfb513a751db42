# © 2021 Intel Corporation
# SPDX-License-Identifier: MPL-2.0

# Trait declarations and implementing types, as handed to us by the
# declaration front-end and the implementation database

import json
from dataclasses import dataclass

from .logging import *
from .messages import *

__all__ = (
    'MethodSig',
    'TraitDecl',
    'TypeImpl',
    'DeclTable',
    'ImplDatabase',
    'mktrait',
    'mktype',
    'load_declarations',
)

@dataclass(frozen=True)
class MethodSig:
    name: str
    # Opaque signature text; only used for describing the layout
    signature: str = ''

@dataclass(frozen=True)
class TraitDecl:
    '''An immutable trait declaration. The order of 'supertraits' is
    the canonical order in which supertrait layouts are embedded.'''
    site: Site
    name: str
    supertraits: tuple
    methods: tuple
    object_safe: bool = True

    def method_names(self):
        return [m.name for m in self.methods]

@dataclass(frozen=True)
class TypeImpl:
    '''A concrete type implementing a set of traits.

    'methods' maps (trait name, method name) to the symbol of the
    implementation; 'dyn' lists, in a fixed order, the traits for which
    dynamic objects of this type are created.'''
    site: Site
    name: str
    size: int
    align: int
    destructor: str
    implements: tuple
    methods: dict
    dyn: tuple

    def __hash__(self):
        return hash(self.name)

    def method_impl(self, trait, method):
        return self.methods.get((trait, method))

def _ordered_names(site, owner, names):
    '''Convert a supertrait sequence to a tuple, rejecting containers
    without a defined iteration order and duplicates'''
    if isinstance(names, (set, frozenset, dict)) or not hasattr(
            names, '__len__'):
        raise EORDER(site, owner, 'got %s' % (type(names).__name__,))
    names = tuple(names)
    for (i, name) in enumerate(names):
        if not isinstance(name, str):
            raise EDECL(site, 'trait', 'supertrait %r of %s is not a name'
                        % (name, owner))
        if name in names[:i]:
            raise EORDER(site, owner, "'%s' listed twice" % (name,))
    return names

def mktrait(site, name, supertraits=(), methods=(), object_safe=True):
    '''Create a TraitDecl from loosely typed data. Methods can be given
    as names, MethodSig instances or dicts with 'name' and
    'signature' keys.'''
    sigs = []
    for m in methods:
        if isinstance(m, MethodSig):
            sig = m
        elif isinstance(m, str):
            sig = MethodSig(m)
        elif isinstance(m, dict) and isinstance(m.get('name'), str):
            sig = MethodSig(m['name'], str(m.get('signature', '')))
        else:
            raise EDECL(site, 'trait', 'bad method %r in %s' % (m, name))
        if any(s.name == sig.name for s in sigs):
            raise EDUPMETHOD(site, sig.name, name)
        sigs.append(sig)
    return TraitDecl(site, name, _ordered_names(site, name, supertraits),
                     tuple(sigs), bool(object_safe))

def mktype(site, name, size, align, destructor, implements, methods,
           dyn=()):
    if not isinstance(size, int) or isinstance(size, bool) or size < 0:
        raise EDECL(site, 'type', 'bad size %r of %s' % (size, name))
    if (not isinstance(align, int) or isinstance(align, bool)
            or align <= 0 or align & (align - 1)):
        raise EDECL(site, 'type', 'bad alignment %r of %s' % (align, name))
    if not isinstance(destructor, str):
        raise EDECL(site, 'type', 'destructor %r of %s is not a symbol name'
                    % (destructor, name))
    impls = {}
    for (key, symbol) in methods.items():
        if isinstance(key, str):
            (trait, dot, method) = key.rpartition('.')
            if not dot or not trait:
                raise EDECL(site, 'type', 'method key %r of %s is not on '
                            'the form Trait.method' % (key, name))
            key = (trait, method)
        if not isinstance(symbol, str):
            raise EDECL(site, 'type', 'method %r of %s is not a symbol name'
                        % (symbol, name))
        impls[key] = symbol
    return TypeImpl(site, name, size, align, destructor,
                    _ordered_names(site, name, implements), impls,
                    _ordered_names(site, name, dyn))

class DeclTable:
    '''The set of declared traits, keyed by name'''
    def __init__(self, decls=()):
        self.traits = {}
        for d in decls:
            self.add(d)

    def add(self, decl):
        if decl.name in self.traits:
            raise EDUPTRAIT(decl.site, self.traits[decl.name].site,
                            'trait', decl.name)
        self.traits[decl.name] = decl

    def __contains__(self, name):
        return name in self.traits

    def __getitem__(self, name):
        return self.traits[name]

    def __iter__(self):
        return iter(self.traits.values())

    def __len__(self):
        return len(self.traits)

    def lookup(self, site, name):
        decl = self.traits.get(name)
        if decl is None:
            raise EUNKNOWNTRAIT(site, name)
        return decl

    def check(self):
        '''Verify that all supertrait references resolve'''
        for decl in self:
            for s in decl.supertraits:
                self.lookup(decl.site, s)

    def closure(self, site, names):
        '''Return the names of the given traits and all their
        ancestors, in depth-first order'''
        seen = {}
        stack = list(reversed(names))
        while stack:
            name = stack.pop()
            if name in seen:
                continue
            seen[name] = None
            stack.extend(reversed(self.lookup(site, name).supertraits))
        return list(seen)

class ImplDatabase:
    '''Implementing types and their method bindings. Missing bindings
    are reported when a type is added, so that vtable instantiation
    never meets an unbound slot.'''
    def __init__(self, decls, types=()):
        self.decls = decls
        self.types = {}
        for t in types:
            self.add(t)

    def add(self, t):
        if t.name in self.types:
            raise EDUPTRAIT(t.site, self.types[t.name].site, 'type', t.name)
        implemented = self.decls.closure(t.site, t.implements)
        for trait in implemented:
            for m in self.decls[trait].methods:
                if t.method_impl(trait, m.name) is None:
                    raise EMISSINGIMPL(t.site, t.name, trait, m.name)
        for root in t.dyn:
            if root not in implemented:
                self.decls.lookup(t.site, root)
                raise ENOTIMPL(t.site, t.name, root)
            decl = self.decls[root]
            if not decl.object_safe:
                raise ENOTOBJSAFE(t.site, root, t.name, root)
        self.types[t.name] = t

    def __getitem__(self, name):
        return self.types[name]

    def __iter__(self):
        return iter(self.types.values())

    def __len__(self):
        return len(self.types)

def _field(site, kind, d, key, typ, default=None):
    if key not in d:
        if default is not None:
            return default
        raise EDECL(site, kind, "missing field '%s'" % (key,))
    val = d[key]
    if not isinstance(val, typ):
        raise EDECL(site, kind, "field '%s' has the wrong type" % (key,))
    return val

def load_declarations(filename, data=None, extra=()):
    '''Read trait declarations and implementing types from a JSON
    document. Return a pair (DeclTable, ImplDatabase). The trait
    declarations in 'extra' are added unless the document declares
    traits with the same names.'''
    if data is None:
        with open(filename) as f:
            data = json.load(f)
    top = SimpleSite(str(filename))
    if not isinstance(data, dict):
        raise EDECL(top, 'top-level', 'expected an object')
    decls = DeclTable()
    for t in _field(top, 'top-level', data, 'traits', list):
        if not isinstance(t, dict) or not isinstance(t.get('name'), str):
            raise EDECL(top, 'trait', 'expected an object with a name')
        site = DeclSite(filename, 'trait', t['name'])
        decls.add(mktrait(
            site, t['name'],
            _field(site, 'trait', t, 'supertraits', list, []),
            _field(site, 'trait', t, 'methods', list, []),
            _field(site, 'trait', t, 'object_safe', bool, True)))
    for d in extra:
        if d.name not in decls:
            decls.add(d)
    decls.check()
    impls = ImplDatabase(decls)
    for t in _field(top, 'top-level', data, 'types', list, []):
        if not isinstance(t, dict) or not isinstance(t.get('name'), str):
            raise EDECL(top, 'type', 'expected an object with a name')
        name = t['name']
        site = DeclSite(filename, 'type', name)
        impls.add(mktype(
            site, name,
            _field(site, 'type', t, 'size', int),
            _field(site, 'type', t, 'align', int),
            _field(site, 'type', t, 'destructor', str, 'drop_' + name),
            _field(site, 'type', t, 'implements', list),
            _field(site, 'type', t, 'methods', dict, {}),
            _field(site, 'type', t, 'dyn', list, [])))
    return (decls, impls)
