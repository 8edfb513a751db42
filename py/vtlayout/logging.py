# © 2021 Intel Corporation
# SPDX-License-Identifier: MPL-2.0

# This module handles errors and warnings

__all__ = (
    'report',
    'ICE',
    'VTError',
    'VTWarning',

    'is_warning_tag',
    'ignore_warning',
    'warning_is_ignored',
    'enable_warning',
    'set_include_tag',
    'suppress_errors',

    'Site',
    'SimpleSite',
    'DeclSite',

    'dbg',
    )

import sys
import os
import abc
import contextlib

import vtlayout.globals

# Signal translation failure
failure = 0

# Stop after this number of errors (0 means inf)
max_errors = 0

# Include warning and error ID's in reports
include_tag = False
def set_include_tag(val):
    global include_tag
    include_tag = val

def is_warning_tag(tag):
    from . import messages
    cls = getattr(messages, tag, None)
    return isinstance(cls, type) and issubclass(cls, VTWarning)

# A set of ignored warnings
ignored_warnings = {}
def ignore_warning(tag):
    ignored_warnings[tag] = True

def enable_warning(tag):
    ignored_warnings[tag] = False

def warning_is_ignored(tag):
    return (vtlayout.globals.ignore_all_warnings
            or ignored_warnings.get(tag, False))

def report_error():
    global failure
    failure += 1
    if failure == max_errors:
        exit(2)

# Error messages
#
# There are two kinds of messages, errors and warnings. All messages
# are represented as instances of LogMessage, or one of its
# subclasses.
#
class LogMessage(object):
    # The kind is for example 'error' or 'warning'.
    kind = None

    outfile = sys.stderr

    def __init__(self, site, *msgargs):
        # The site is the declaration that this log message refers to.
        self.site = site
        # The msg is the message to print.
        self.msg = self.fmt % msgargs

    # This is a utility method that prints a message prefixed with a
    # site indicator.  The msg should be a string without line breaks
    def print_site_message(self, site, msg):
        loc = site.loc() if site else "<unknown>"
        self.outfile.write("%s: %s\n" % (loc, msg))

    def tag(self):
        return self.__class__.__name__

    def preprocess(self):
        '''Call before log when reporting. Return True to actually log
        or False to abort'''
        return True

    # This method can be overridden
    def log(self):
        lines = self.msg.splitlines() or ['']
        if include_tag:
            tag = ' ' + self.tag()
        else:
            tag = ''
        self.print_site_message(self.site,
                                '%s%s: %s' % (self.kind, tag, lines[0]))
        for l in lines[1:]:
            self.print_site_message(self.site, '  ' + l)

    def postprocess(self):
        pass

# This is a base class for internal errors: broken invariants that
# upstream validation should make impossible
#
class ICE(Exception, LogMessage):
    kind = "internal error"
    fmt = "%s"
    def __init__(self, site, msg):
        LogMessage.__init__(self, site, msg)
        Exception.__init__(self, msg)

# This is a base class for warning messages
#
class VTWarning(LogMessage):
    kind = "warning"
    next_warning_yields_error = False

    def preprocess(self):
        # Don't print anything if the user asked us not to
        if warning_is_ignored(self.tag()):
            return False
        if VTWarning.next_warning_yields_error:
            self.print_site_message(self.site,
                                    'vtlc: warnings being treated as errors')
        return True

    @classmethod
    def enable_werror(cls):
        cls.next_warning_yields_error = True

    def postprocess(self):
        if VTWarning.next_warning_yields_error:
            report_error()
            VTWarning.next_warning_yields_error = False

# This is a base class for error messages
#
class VTError(Exception, LogMessage):
    kind = "error"

    def __init__(self, site, *msgargs):
        LogMessage.__init__(self, site, *msgargs)
        loc = self.site.loc() if self.site else "<unknown>"
        Exception.__init__(self, "%s: %s" % (loc, self.msg))

    def postprocess(self):
        report_error()

class Site(metaclass=abc.ABCMeta):
    __slots__ = ()
    @abc.abstractmethod
    def loc(self): pass
    @abc.abstractmethod
    def filename(self): pass

class SimpleSite(Site):
    '''A site that does not refer to a declaration file. Useful for
    declarations built directly from Python data'''
    __slots__ = ('_name',)
    def __init__(self, name):
        self._name = name
    def __repr__(self):
        return '<site %s>' % (self._name,)
    def loc(self):
        return self._name
    def filename(self):
        return self._name

class DeclSite(Site):
    '''The location of one declaration within a declaration file,
    e.g. the trait Foo in decls.json'''
    __slots__ = ('_filename', 'kind', 'name')
    def __init__(self, filename, kind, name):
        self._filename = str(filename)
        self.kind = kind
        self.name = name
    def __repr__(self):
        return '<site %s>' % self.loc()
    def __eq__(self, other):
        return (isinstance(other, DeclSite)
                and (self._filename, self.kind, self.name)
                == (other._filename, other.kind, other.name))
    def __hash__(self):
        return hash((self._filename, self.kind, self.name))
    def filename(self):
        return self._filename
    def loc(self):
        return "%s:%s %s" % (self._filename, self.kind, self.name)

store_errors = None

def report(logmessage):
    if store_errors is not None and isinstance(logmessage,
                                               (VTError, VTWarning)):
        store_errors.append(logmessage)
        return

    if logmessage.preprocess():
        logmessage.log()
        logmessage.postprocess()

def dbg(*args):
    if os.getenv('VTLC_DEBUG'):
        sys.stderr.write("%s\n" % (" ".join(map(str, args))))

@contextlib.contextmanager
def suppress_errors():
    global store_errors
    orig = store_errors
    store_errors = []
    try:
        yield store_errors
    except VTError as e:
        store_errors.append(e)
    finally:
        store_errors = orig
