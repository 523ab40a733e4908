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

import os
import os.path
import re

from dataclasses import dataclass
from typing      import Final

from .config  import Options
from .console import Console
from .events  import Executed



# --------------------------------------------------------------
# Компиляторы
#

class CompilerMatcher:
    # Имя исполняемого файла компилятора, возможно с префиксом целевой платформы
    # и суффиксом версии: cc, gcc, x86_64-linux-gnu-gcc-12, clang++-17, ...
    regex_compiler = re.compile(r"^(?:.+\-)?(?:(?:cc)|(?:gcc)|(?:c\+\+)|(?:g\+\+)|(?:clang)|(?:clang\+\+))(?:\-\d+(?:\.\d+)*)?$", re.IGNORECASE)

    # Список ожидаемых расширений файлов с исходными кодами
    regex_source   = re.compile(r"\.(?:(?:c)|(?:cpp)|(?:cc)|(?:cx)|(?:cxx))$", re.IGNORECASE)

    # Опции include-путей компиляторов: -isystem/usr/..., -iquote/..., -idirafter/...
    regex_include_like = re.compile(r"^\-i[a-z]+\S*/")

    def match(self, program : str, args) -> bool:
        if not CompilerMatcher.regex_compiler.match(os.path.basename(program)):
            return False
        # Внутренний запуск фронтенда clang (-cc1, -cc1as) - не вызов компилятора
        if len(args) > 1 and args[1].startswith('-cc1'):
            return False
        return True

    def is_source(self, arg : str) -> bool:
        return not arg.startswith('-') and CompilerMatcher.regex_source.search(arg) is not None



def absolute_path(cwd : str, path : str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.normpath(os.path.join(cwd, path))



# --------------------------------------------------------------
# Разбор аргументов компилятора
#

@dataclass
class CompilerArgs:
    source: str
    flags : list[str]


def parse_compiler_args(args, cwd : str, console : Console = None, pid : int = None) -> CompilerArgs:
    matcher = CompilerMatcher()
    source  = None
    flags   = []
    seen    = set()

    def keep(flag):
        # Повторные флаги схлопываются в первое вхождение
        if flag not in seen:
            seen.add(flag)
            flags.append(flag)

    i = 1
    while i < len(args):
        arg = args[i]
        i += 1

        if arg == '-o':
            # Выходной файл для анализа не нужен
            i += 1

        elif arg.startswith('-std='):
            keep(arg)

        elif arg.startswith('-D') or arg.startswith('-I'):
            value = arg[2:]
            if not value:
                if i >= len(args):
                    continue
                value = args[i]
                i += 1
            if arg.startswith('-D'):
                keep('-D' + value)
            else:
                keep('-I' + absolute_path(cwd, value))

        elif CompilerMatcher.regex_include_like.match(arg):
            keep(arg)

        elif matcher.is_source(arg):
            if source is None:
                source = arg
            elif arg != source:
                if console is not None:
                    console.warning("multiple source files in compiler call [{}], using '{}', ignoring '{}'".format(pid, source, arg))

    if source is None:
        return None
    return CompilerArgs(source, flags)



# --------------------------------------------------------------
# Сбор единиц компиляции
#

class CompilerCallExtractor:
    # Внутрянка CMake: CMakeFiles/3.27.6/CompilerIdCXX/{CMakeCXXCompilerId.cpp,a.out,tmp}
    cmake_internal_sources : Final[frozenset] = frozenset([ 'CMakeCCompilerId.c', 'CMakeCXXCompilerId.cpp' ])

    def __init__(self, options : Options = None, console : Console = None):
        self.__options  : Options         = options if options is not None else Options()
        self.__console  : Console         = console if console is not None else Console(self.__options)
        self.__matcher  : CompilerMatcher = CompilerMatcher()

        # Абсолютный путь исходника -> флаги (последний вызов побеждает)
        self.units      : dict[str, list[str]] = {}
        self.calls      : int = 0


    def add(self, executed : Executed, cwd : str) -> str:
        if not self.__matcher.match(executed.program, executed.args):
            return None
        self.calls += 1

        command = list(executed.args)
        cc_args = parse_compiler_args(executed.args, cwd, self.__console, executed.pid)
        if cc_args is None:
            # Компоновка, проверка версии и т.д.
            self.__console.debug("no source file[{}]:".format(executed.pid), command)
            return None

        if os.path.basename(cc_args.source) in CompilerCallExtractor.cmake_internal_sources:
            self.__console.ignored(executed.pid, command, "CMake internal source")
            return None

        source = absolute_path(cwd, cc_args.source)
        if self.__options.check_sources and not os.path.exists(source):
            self.__console.ignored(executed.pid, command, "source file not found: {}".format(source))
            return None

        self.units[source] = cc_args.flags
        self.__console.verbose("COMPILER[{}]:".format(executed.pid), source, cc_args.flags)
        return source
