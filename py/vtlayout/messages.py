# © 2021 Intel Corporation
# SPDX-License-Identifier: MPL-2.0

from .logging import VTError, VTWarning, ICE

class ECYCLICTRAIT(VTError):
    """
    A trait inherits from itself, either directly or indirectly. The
    supertrait relation must be acyclic; the vtable layout of a trait
    on a cycle would be infinite.
    """
    fmt = "cyclic supertrait inheritance: %s"
    def __init__(self, site, cycle, other_sites=()):
        VTError.__init__(self, site, ' -> '.join(cycle + [cycle[0]]))
        self.cycle = cycle
        self.other_sites = list(other_sites)
    def log(self):
        VTError.log(self)
        for site in self.other_sites:
            self.print_site_message(site, "via here")

class EUNKNOWNTRAIT(VTError):
    """
    A trait or an implementing type refers to a trait that has not
    been declared.
    """
    fmt = "unknown trait '%s'"

class EUNKNOWNMETHOD(VTError):
    """
    A method was looked up in a trait that does not declare it.
    """
    fmt = "trait '%s' has no method '%s'"

class EDUPTRAIT(VTError):
    """
    Two trait declarations, or two implementing types, share the same
    name.
    """
    fmt = "duplicate declaration of %s '%s'"
    def __init__(self, site, other_site, kind, name):
        VTError.__init__(self, site, kind, name)
        self.other_site = other_site
    def log(self):
        VTError.log(self)
        self.print_site_message(self.other_site, "previous declaration")

class EORDER(VTError):
    """
    The direct supertraits of a trait must be given as an ordered
    sequence without duplicates. The order is the canonical order in
    which supertrait layouts are embedded, and must be identical in
    every unit that lays out the trait, so an unordered collection
    such as a set is rejected.
    """
    fmt = "supertraits of '%s' must have a stable order: %s"

class EDUPMETHOD(VTError):
    """
    A trait declares two methods with the same name.
    """
    fmt = "duplicate method '%s' in trait '%s'"

class EDECL(VTError):
    """
    A declaration is malformed, e.g., a required field is missing or
    has the wrong type.
    """
    fmt = "malformed %s declaration: %s"

class ENOTOBJSAFE(VTError):
    """
    A dynamic object was requested for a trait that is not object
    safe. No vtable can be laid out for such a trait.
    """
    fmt = "trait '%s' is not object safe; cannot create '%s' as dyn '%s'"

class ENOTIMPL(VTError):
    """
    A dynamic object was requested for a trait that the implementing
    type does not implement, neither directly nor through a
    subtrait.
    """
    fmt = "type '%s' does not implement trait '%s'"

class EMISSINGIMPL(VTError):
    """
    An implementing type lacks a binding for a method of a trait it
    implements. Every method slot of every vtable must be bound to a
    concrete implementation.
    """
    fmt = "type '%s' has no implementation of method '%s.%s'"

class ENOTANCESTOR(VTError):
    """
    An upcast was requested between two traits where the target is
    not a supertrait, direct or indirect, of the source.
    """
    fmt = "cannot upcast from '%s' to '%s': not a supertrait"

class ELAYOUTMISMATCH(VTError):
    """
    Two units disagree on the vtable layout of a trait. This happens
    when a trait description exported by one unit does not match the
    layout computed from the declaration visible to another unit,
    typically because the declarations differ in the order of
    supertraits or methods.
    """
    fmt = "conflicting vtable layouts for trait '%s': %s"
    def __init__(self, site, other_site, name, detail):
        VTError.__init__(self, site, name, detail)
        self.other_site = other_site
    def log(self):
        VTError.log(self)
        if self.other_site:
            self.print_site_message(self.other_site, "conflicting layout")

class ECIDENT(VTError):
    """
    Two distinct names in the generated C file map to the same C
    identifier. Names are converted to identifiers by replacing each
    character that is not a letter, digit or underscore with an
    underscore, and type and trait names are joined by a double
    underscore, so e.g. type `A` with trait `B__C` clashes with type
    `A__B` with trait `C`. Rename one of the types or traits.
    """
    fmt = "C identifier '%s' is generated both for %s and for %s"
    def __init__(self, site, other_site, ident, what, other):
        VTError.__init__(self, site, ident, what, other)
        self.other_site = other_site
    def log(self):
        VTError.log(self)
        if self.other_site:
            self.print_site_message(self.other_site, "conflicting name")

class EIMPORT(VTError):
    """
    A layout description file could not be read.
    """
    fmt = "cannot import layout descriptions: %s"

#
# WARNINGS (keep these as few as possible)
#

class WDUPEMBED(VTWarning):
    """
    The layout of a trait embeds the layout of an ancestor more than
    once, because the ancestor is reached through several supertrait
    paths. Each copy carries its own method slots; upcasts to the
    ancestor use the copy on the first path in canonical order.
    """
    fmt = "layout of '%s' embeds the layout of '%s' %d times"

class WUNUSEDTRAIT(VTWarning):
    """
    An implementing type implements a trait that is not reachable from
    any trait it is used as a dynamic object of, so no vtable data is
    produced for it.
    """
    fmt = "trait '%s' of type '%s' is never used in a dynamic object"

class WNODYN(VTWarning):
    """
    An implementing type requests no dynamic objects at all, so no
    vtable is produced for it.
    """
    fmt = "type '%s' is never used as a dynamic object"

warnings = {name: cls for (name, cls) in globals().items()
            if isinstance(cls, type) and issubclass(cls, VTWarning)
            and cls is not VTWarning}
