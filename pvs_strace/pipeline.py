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

from pathlib import Path

from .compiler     import CompilerCallExtractor
from .config       import Options
from .console      import Console
from .events       import iter_events, iter_trace_file
from .process_tree import build_tree
from .workdir      import resolve_directories



# --------------------------------------------------------------
# Трасса -> единицы компиляции
#
# Два прохода по трассе: дерево процессов, затем рабочие каталоги и вызовы
# компилятора. Трасса целиком в памяти не держится - events_factory открывает
# ее заново для каждого прохода.
#

def extract(events_factory, root_cwd, options : Options = None, console : Console = None) -> dict[str, list[str]]:
    options = options if options is not None else Options()
    console = console if console is not None else Console(options)

    tree = build_tree(events_factory(), options.tolerance)
    console.verbose("process tree:", len(tree), "incarnations,", len(tree.by_pid), "pids")

    extractor = CompilerCallExtractor(options, console)
    for executed, cwd in resolve_directories(tree, events_factory(), root_cwd, options, console):
        extractor.add(executed, cwd)

    console.verbose("compiler calls:", extractor.calls, "compilation units:", len(extractor.units))
    return extractor.units


def extract_compilation_units(trace_path : Path, root_cwd, options : Options = None, console : Console = None) -> dict[str, list[str]]:
    return extract(lambda: iter_trace_file(trace_path), root_cwd, options, console)


def extract_from_lines(lines, root_cwd, options : Options = None, console : Console = None) -> dict[str, list[str]]:
    lines = list(lines)
    return extract(lambda: iter_events(lines), root_cwd, options, console)
