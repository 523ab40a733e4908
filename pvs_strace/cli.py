# --------------------------------------------------------------
#
# Copyright (c) 2025, LLC NIC CT
# Copyright (c) 2025, Vladislav Shchapov <vladislav@shchapov.ru>
#
# This program is free software; you can redistribute it and/or
# modify it under the terms of the GNU General Public License
# as published by the Free Software Foundation; either version 2
# of the License, or any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program; if not, see <https://www.gnu.org/licenses/>.
#
# --------------------------------------------------------------
#
# Использование:
#
#   pvs-strace genconf [-o PVS-Studio.cfg] [--lic-file FILE] [--exclude-path DIR ...]
#   pvs-strace trace   [-o build.trace] -- make -j8
#   pvs-strace analyze build.trace | --units compile_units.json [--cfg PVS-Studio.cfg] [--parallel N] [-- pvs-studio args...]
#   pvs-strace view    pvs.log [--level N] [--code V501 ...]
#
# --------------------------------------------------------------

import argparse
import sys

from pathlib import Path

from .analyzer   import PVSAnalyzer, dump_units, load_units
from .config     import Config, Options
from .console    import Console, Timer
from .errors     import ConfigError, TraceError
from .pipeline   import extract_compilation_units
from .pvs_config import make_config, write_config
from .tracer     import BuildTracer, read_trace_cwd
from .viewer     import LogFilter, LogViewer



def split_args(args):
    try:
        idx = args.index('--')
        return (args[0:idx], args[idx+1:])
    except ValueError:
        return (args, [])


def make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=Config.tool_name, description="Extract compiler calls from a strace log of a build and run PVS-Studio on them.")
    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('genconf', help="write PVS-Studio configuration file")
    p.add_argument('-o', '--output', default='PVS-Studio.cfg', type=Path)
    p.add_argument('--lic-file')
    p.add_argument('--output-file', help="analyzer log file")
    p.add_argument('--exclude-path', action='append', default=[])
    p.add_argument('--preprocessor', choices=['gcc', 'clang'])
    p.add_argument('--platform')
    p.add_argument('--language', choices=['C', 'C++'])

    p = sub.add_parser('trace', help="run build command under strace (command after '--')")
    p.add_argument('-o', '--output', default='build.trace', type=Path)
    p.add_argument('-v', '--verbose', action='store_true')

    p = sub.add_parser('analyze', help="extract compilation units from trace and analyze them (analyzer args after '--')")
    p.add_argument('trace', type=Path, nargs='?')
    p.add_argument('--units', type=Path, help="use compile_units.json of a previous run instead of a trace")
    p.add_argument('--cfg', default='PVS-Studio.cfg', type=Path)
    p.add_argument('--root-dir', type=Path, help="directory the trace was started from (default: <trace>.cwd or current directory)")
    p.add_argument('--output-dir', default='.', type=Path)
    p.add_argument('--parallel', type=int, default=1)
    p.add_argument('--tolerance', type=int, default=Config.default_tolerance)
    p.add_argument('--strict-roots', action='store_true', help="fail if process tree has more than one root")
    p.add_argument('--no-check-sources', dest='check_sources', action='store_false')
    p.add_argument('--units-only', action='store_true', help="only write compile_units.json")
    p.add_argument('-v', '--verbose', action='store_true')
    p.add_argument('--debug', action='store_true')

    p = sub.add_parser('view', help="print analyzer log grouped by directory")
    p.add_argument('log', type=Path)
    p.add_argument('--level', type=int, help="show levels up to N (1 - most severe)")
    p.add_argument('--code', action='append', default=[])
    p.add_argument('--exclude-code', action='append', default=[])
    p.add_argument('--match', help="regex for diagnostic context")

    return parser



# --------------------------------------------------------------
# Команды
#

def do_genconf(args, console : Console) -> int:
    entries = make_config(args.lic_file, args.output_file, args.exclude_path, args.preprocessor, args.platform, args.language)
    write_config(args.output, entries)
    console.print("config written:", args.output)
    return 0


def do_trace(args, tail, console : Console) -> int:
    return BuildTracer(args.output, console).run(tail)


def do_analyze(args, tail, console : Console, options : Options) -> int:
    timer = Timer()

    if args.units is not None:
        # Единицы компиляции из прошлого запуска, трасса не разбирается
        units = load_units(args.units)
    elif args.trace is None:
        raise ValueError("trace file or --units is required")
    else:
        root_dir = args.root_dir or read_trace_cwd(args.trace) or Path.cwd()

        console.stage_start('parse-strace')
        units = extract_compilation_units(args.trace, root_dir, options, console)
        console.stage_end('parse-strace')
        timer.cut('parse-strace')

    args.output_dir.mkdir(mode=0o755, parents=True, exist_ok=True)
    dump_units(args.output_dir / 'compile_units.json', units)
    console.print("compilation units:", len(units))

    if not args.units_only:
        console.stage_start('analysis')
        PVSAnalyzer(args.cfg, args.output_dir, options, console, external_args=tail).run(units)
        console.stage_end('analysis')
        timer.cut('analysis')

    console.stage_start('summary')
    for l in timer.get_summary_pretty():
        console.print(l)
    console.print("warnings:", console.warnings)
    console.stage_end('summary')
    return 0


def do_view(args, console : Console) -> int:
    viewer  = LogViewer(LogFilter(args.level, args.code, args.exclude_code, args.match), console)
    records = viewer.read_file(args.log)
    viewer.show(records)
    return 0



def main(argv = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    (head, tail) = split_args(argv)
    args = make_parser().parse_args(head)

    options = Options(
        tolerance     = getattr(args, 'tolerance', Config.default_tolerance),
        strict_roots  = getattr(args, 'strict_roots', False),
        check_sources = getattr(args, 'check_sources', True),
        verbose       = getattr(args, 'verbose', False),
        debug         = getattr(args, 'debug', False),
        parallel      = max(getattr(args, 'parallel', 1), 1),
    )
    console = Console(options)

    try:
        if args.command == 'genconf':
            return do_genconf(args, console)
        elif args.command == 'trace':
            return do_trace(args, tail, console)
        elif args.command == 'analyze':
            return do_analyze(args, tail, console, options)
        else:
            return do_view(args, console)
    except (TraceError, ConfigError, OSError, ValueError) as e:
        console.error(e)
        return 1
