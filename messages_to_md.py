# © 2021-2023 Intel Corporation
# SPDX-License-Identifier: MPL-2.0

import sys
import argparse

def fmt_message(err):
    msg = err.fmt

    # Keep only the first line
    msg = msg.split('\n')[0]

    # Escape markup
    msg = msg.replace('&', '&amp;').replace('<', '&lt;').replace('>', '&gt;')

    # Replace placeholders
    msg = msg.replace('%s', '...')
    msg = msg.replace('%d', '<i>N</i>')

    return msg

def extract_messages(sys_path):
    sys.path.append(sys_path)
    from vtlayout import messages
    from vtlayout.messages import VTError, VTWarning

    errors = []
    warnings = []

    for n in dir(messages):
        o = getattr(messages, n)
        if isinstance(o, type):
            if issubclass(o, VTError) and o is not VTError:
                errors.append(o)
            elif issubclass(o, VTWarning) and o is not VTWarning:
                warnings.append(o)

    errors.sort(key=lambda x: x.fmt)
    warnings.sort(key=lambda x: x.fmt)
    return (warnings, errors)

def print_message_table(f, messages):
    f.write("<dl>\n")
    for m in messages:
        assert m.__doc__
        f.write(f"  <dt><b>\n\n{fmt_message(m)} [{m.__name__}]</b></dt>\n")
        doc = '\n'.join(line[4:] if line.startswith('    ') else line
                        for line in m.__doc__.strip().splitlines())
        f.write(f"  <dd>\n\n{doc}\n</dd>\n")
    f.write("</dl>\n")

def print_messages(f, warnings, errors):
    f.write("""
# Messages

The following sections list the warnings and error messages from
`vtlc`, with some clarifications.

## Warning Messages

The messages are listed in alphabetical order; the corresponding tags
are shown within brackets, e.g., `[WDUPEMBED]`.

""")

    print_message_table(f, warnings)

    f.write("""

## Error Messages

The messages are listed in alphabetical order; the corresponding tags
are shown within brackets, e.g., `[ECYCLICTRAIT]`.

""")

    print_message_table(f, errors)

if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument('path', help='directory containing vtlayout')
    parser.add_argument('outfile')
    args = parser.parse_args()
    (warnings, errors) = extract_messages(args.path)
    with open(args.outfile, 'w') as f:
        print_messages(f, warnings, errors)
