# © 2021 Intel Corporation
# SPDX-License-Identifier: MPL-2.0

import os
from pathlib import Path

from .logging import ICE, SimpleSite

__all__ = (
    'FileOutput',
    'StrOutput',
    'out',
    'indent_level',
)


class Output(object):
    outwrite_stack = []

    filename = None

    def __init__(self, indent=0):
        self.indent = indent
        self.lineno = 1
        self.bol = True

    def write(self, s):
        assert False

    def __enter__(self):
        self.outwrite_stack.append(self)

    def __exit__(self, exc_type, exc_val, exc_tb):
        top = self.outwrite_stack.pop(-1)
        assert top is self

    def out(self, output, preindent = 0, postindent = 0):
        self.indent += preindent * indent_level
        if output == '\n':
            # Don't indent empty lines...
            self.write('\n')
            self.bol = True
        elif output:
            if self.bol:
                self.write(' ' * self.indent)
            self.write(output)
            self.bol = (output.endswith('\n'))
        self.indent += postindent * indent_level
        self.lineno += output.count('\n')

class FileOutput(Output):
    '''Write to filename.tmp; commit() renames the file into place'''
    def __init__(self, filename):
        super(FileOutput, self).__init__()
        self.filename = str(Path(filename).resolve())
        self.__file = open(self.filename + ".tmp", "w")
        self.write = self.__file.write

    def close(self):
        self.__file.close()

    def commit(self):
        if self.indent:
            raise ICE(SimpleSite(f"{self.filename}:0"), 'Unbalanced indent')
        os.replace(self.filename + '.tmp', self.filename)

class StrOutput(Output):
    def __init__(self, indent=0):
        super(StrOutput, self).__init__(indent)
        self.buf = ''

    def write(self, s):
        self.buf += s

indent_level = 4

def out(output = '', preindent = 0, postindent = 0):
    Output.outwrite_stack[-1].out(output, preindent, postindent)
