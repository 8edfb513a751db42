# © 2021 Intel Corporation
# SPDX-License-Identifier: MPL-2.0

# Command line driver: lay out vtables for the traits and implementing
# types in a declaration file

import sys, os, traceback
import argparse
import concurrent.futures

from . import logging, messages
from . import export
from . import c_backend, info_backend
from .decl import load_declarations
from .graph import type_graph
from .layout import LayoutCache, LayoutGenerator
from .offsets import OffsetTable, OffsetResolver
from .instantiate import Instantiator
from .logging import *
from .messages import *
import vtlayout.globals

def prerr(msg):
    sys.stderr.write(msg + "\n")

# Ignore some warnings by default
ignore_warning('WUNUSEDTRAIT')

if os.getenv('VTLC_DEBUG'):
    debug_mode = True
else:
    debug_mode = False

def unexpected_error(exc_type, exc_value, exc_traceback):
    if debug_mode:
        traceback.print_exception(exc_type, exc_value, exc_traceback)
    prerr("*** An unexpected vtlc error occurred!")
    prerr("    Set VTLC_DEBUG=1 to show a traceback.")

class WarnHelpAction(argparse.Action):
    def __init__(self, option_strings, dest, **kwargs):
        super().__init__(option_strings, dest, nargs=0, **kwargs)

    def __call__(self, parser, namespace, values, option_string=None):
        print('''Tags accepted by --warn and --nowarn:''')
        by_ignored = {True: [], False: []}
        for tag in sorted(messages.warnings):
            by_ignored[warning_is_ignored(tag)].append(tag)
        print('  Enabled by default:')
        for tag in by_ignored[False]:
            print(f'    {tag}')
        print('  Disabled by default:')
        for tag in by_ignored[True]:
            print(f'    {tag}')
        parser.exit()

def report_duplicate_embeddings(layouts):
    for layout in layouts:
        for (ancestor, count) in layout.ancestors:
            if count > 1:
                report(WDUPEMBED(layout.site, layout.trait, ancestor, count))

def compute_layouts(decls, cache):
    '''Lay out every declared trait, in declaration order'''
    generator = LayoutGenerator(decls, cache)
    generator.traverse([d.name for d in decls])
    return [cache.get(d.name) for d in decls]

def lay_out_types(decls, impls, cache, table, jobs):
    '''Prune the trait graph of every implementing type and instantiate
    its vtables. Graphs are built serially, since that may report
    warnings; instantiation runs on 'jobs' worker threads.'''
    graphs = [(t, type_graph(decls, t)) for t in impls]

    def work(t, graph):
        # each worker has its own traversal state, but shares the
        # layout and offset caches
        generator = LayoutGenerator(decls, cache)
        inst = Instantiator(generator, OffsetResolver(generator, table))
        return inst.instantiate(t, graph)

    if jobs <= 1:
        return [work(t, graph) for (t, graph) in graphs]
    with concurrent.futures.ThreadPoolExecutor(max_workers=jobs) as pool:
        futures = [pool.submit(work, t, graph) for (t, graph) in graphs]
        return [f.result() for f in futures]

def main(argv):
    parser = argparse.ArgumentParser(prog='vtlc')

    parser.add_argument(
        '-T', dest='include_tag', action='store_true',
        help='show tags on warning messages')
    parser.add_argument(
        '--warn', dest='enabled_warnings', action='append',
        metavar='TAG', default=[],
        help='enable warning TAG')
    parser.add_argument(
        '--nowarn', dest='disabled_warnings', action='append',
        metavar='TAG', default=[],
        help='disable warning TAG')
    parser.add_argument(
        '-w', dest='no_warnings', action='store_true',
        help='disable all warnings')
    parser.add_argument('--help-warn', action=WarnHelpAction,
                        help='List warning tags available for --warn/--nowarn')
    parser.add_argument('--werror', action='store_true',
                        help='Turn all warnings into errors')
    parser.add_argument(
        '--max-errors', dest='max_errors', default='0',
        help='Limit the number of error messages to N', metavar='N')
    parser.add_argument(
        '--word-size', dest='word_size', type=int, default=8, metavar='N',
        help='size in bytes of one vtable slot (default 8)')
    parser.add_argument(
        '-j', dest='jobs', type=int, default=1, metavar='N',
        help='lay out implementing types on N threads')
    parser.add_argument(
        '--import', dest='imports', action='append', default=[],
        metavar='FILE',
        help='read layout descriptions of traits exported by another unit')
    parser.add_argument(
        '--export', metavar='FILE',
        help='write layout descriptions of all declared traits to FILE')
    parser.add_argument(
        '--info', metavar='FILE',
        help='write a JSON report of layouts, offsets and vtables to FILE')
    parser.add_argument(
        '--no-c', dest='output_c', action='store_false',
        help='do not generate a C file')
    parser.add_argument(
        'input_filename',
        help='JSON file with trait declarations and implementing types')
    parser.add_argument(
        'output_base', nargs='?',
        help="Prefix for names of generated files. '.c' is appended to the"
        " name of the C file. Defaults to input_filename with the '.json'"
        " suffix stripped.")
    options = parser.parse_args(argv[1:])

    if options.include_tag:
        set_include_tag(True)

    if options.werror:
        VTWarning.enable_werror()

    try:
        logging.max_errors = int(options.max_errors)
    except ValueError:
        prerr("vtlc: Expected integer for --max-errors, got %r"
              % (options.max_errors))
        sys.exit(1)

    if options.word_size <= 0:
        parser.error('--word-size must be positive')
    vtlayout.globals.word_size = options.word_size
    if options.jobs <= 0:
        parser.error('-j must be positive')
    vtlayout.globals.jobs = options.jobs
    vtlayout.globals.ignore_all_warnings = options.no_warnings

    for w in options.disabled_warnings:
        if not is_warning_tag(w):
            prerr("vtlc: the tag '%s' is not a valid warning tag" % w)
            sys.exit(1)
        ignore_warning(w)

    for w in options.enabled_warnings:
        if not is_warning_tag(w):
            prerr("vtlc: the tag '%s' is not a valid warning tag" % w)
            sys.exit(1)
        enable_warning(w)

    inputfilename = options.input_filename
    outputbase = options.output_base
    if outputbase is None:
        outputbase = os.path.basename(inputfilename)
        if outputbase.endswith('.json'):
            outputbase = outputbase[:-5]

    try:
        cache = LayoutCache()
        imported = []
        for filename in options.imports:
            imported.extend(export.import_descriptions(cache, filename))
        extra = [export.declaration(l) for l in imported]
        try:
            (decls, impls) = load_declarations(inputfilename, extra=extra)
        except (OSError, ValueError) as e:
            raise EDECL(SimpleSite(inputfilename), 'input', str(e))

        # layouts of traits declared only in imported descriptions are
        # not ours to export
        foreign = {d.name for d in extra if decls[d.name] is d}
        layouts = [l for l in compute_layouts(decls, cache)
                   if l.trait not in foreign]
        report_duplicate_embeddings(layouts)

        table = OffsetTable()
        results = lay_out_types(decls, impls, cache, table,
                                vtlayout.globals.jobs)

        if options.export:
            export.write_descriptions(options.export, layouts)
        resolver = OffsetResolver(LayoutGenerator(decls, cache), table)
        if options.info:
            info_backend.generate(layouts, resolver, results, options.info)
        if options.output_c:
            c_backend.generate(results, resolver, outputbase + '.c')

        return 2 if logging.failure else 0

    except SystemExit:
        # Someone called sys.exit
        raise

    except logging.VTError as msg:
        # Ordinary fatal error
        report(msg)
        return 2

    except KeyboardInterrupt:
        prerr('*** Keyboard interrupt')
        return 3

    except logging.ICE as msg:
        report(msg)
        unexpected_error(*sys.exc_info())
        return 3

    except Exception:
        unexpected_error(*sys.exc_info())
        return 3

def run():
    sys.exit(main(sys.argv))

if __name__ == '__main__':
    run()
