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
# Разбор строк трассы `strace -f`:
#
#   1234 clone(child_stack=NULL, flags=CLONE_CHILD_CLEARTID|SIGCHLD, ...) = 1235
#   1234 vfork( <unfinished ...>
#   1234 <... vfork resumed>) = 1236
#   1235 chdir("sub") = 0
#   1235 fchdir(3</build/sub>) = 0
#   1235 execve("/usr/bin/gcc", ["gcc", "-c", "a.c"], 0x7ffd... /* 20 vars */) = 0
#   1235 +++ exited with 0 +++
#
# --------------------------------------------------------------

import dataclasses
import re

from dataclasses import dataclass
from pathlib     import Path
from typing      import Final

from .errors   import MalformedTrace
from .unescape import unescape_c_string



# --------------------------------------------------------------
# События трассы
#

@dataclass(frozen=True)
class Event:
    pid   : int
    lineno: int

# Вызов fork/vfork/clone вернул pid потомка.
@dataclass(frozen=True)
class CreationReturned(Event):
    child : int

# Вызов fork/vfork/clone еще не вернулся (<unfinished ...>).
@dataclass(frozen=True)
class CreationUnfinished(Event):
    pass

# Процесс завершился (+++ exited with N +++ или +++ killed by SIG +++).
@dataclass(frozen=True)
class Exited(Event):
    status: str

# Смена рабочего каталога: путь уже декодирован, может быть относительным.
@dataclass(frozen=True)
class DirChanged(Event):
    path  : str

# Запуск программы.
@dataclass(frozen=True)
class Executed(Event):
    program: str
    args   : tuple

# Любая другая строка с pid.
@dataclass(frozen=True)
class Other(Event):
    pass



# --------------------------------------------------------------
# Разбор строки
#

class TraceLineParser:
    creation_syscalls : Final[frozenset] = frozenset([ 'fork', 'vfork', 'clone', 'clone2', 'clone3' ])
    chdir_syscalls    : Final[frozenset] = frozenset([ 'chdir', 'fchdir' ])

    # Строка с экранированием внутри кавычек
    quoted_string = r'"((?:[^"\\]|\\.)*)"'

    regex_line     = re.compile(r"^(?P<pid>\d+)\s+(?:(?P<ts>\d+(?:[:.]\d+)+)\s+)?(?P<rest>.*?)\s*$")
    regex_exit     = re.compile(r"^\+\+\+ (?:(?:exited with (?P<exitcode>-?\d+))|(?:killed by (?P<killedby>[A-Z0-9]+)(?: \(core dumped\))?)) \+\+\+$")
    regex_resumed  = re.compile(r"^<\.\.\. (?P<syscall>\w+) resumed>(?P<args>.*)$")
    regex_syscall  = re.compile(r"^(?P<syscall>\w+)\((?P<args>.*)$")
    regex_return   = re.compile(r"\)\s+=\s+(?P<returnvalue>-?\d+|\?)(?:\s[^=]*)?$")
    regex_chdir    = re.compile(r"^" + quoted_string)
    regex_fchdir   = re.compile(r"^\d+<((?:[^>\\]|\\.)*)>")
    regex_execve   = re.compile(r'^"(?P<program>(?:[^"\\]|\\.)*)", \[(?P<argv>(?:"(?:[^"\\]|\\.)*"(?:\.\.\.)?(?:, )?)*)(?:\.\.\.)?\],')
    regex_string   = re.compile(quoted_string)

    unfinished_marker : Final[str] = '<unfinished ...>'

    # Прерванные chdir/execve: результат известен только в строке "<... X resumed>",
    # до нее событие (уже разобранное) хранится по pid.
    def __init__(self):
        self.__pending : dict[int, tuple[str, Event]] = {}


    def parse(self, line : str, lineno : int) -> Event:
        m = TraceLineParser.regex_line.match(line)
        if m is None:
            return None

        pid  = int(m.group('pid'))
        rest = m.group('rest')

        if (me := TraceLineParser.regex_exit.match(rest)):
            self.__pending.pop(pid, None)
            if (code := me.group('exitcode')) is not None:
                return Exited(pid, lineno, code)
            return Exited(pid, lineno, me.group('killedby'))

        resumed = False
        if (ms := TraceLineParser.regex_resumed.match(rest)):
            resumed = True
        elif (ms := TraceLineParser.regex_syscall.match(rest)) is None:
            return Other(pid, lineno)

        syscall = ms.group('syscall')
        args    = ms.group('args')
        unfinished = args.endswith(TraceLineParser.unfinished_marker)

        returnvalue = None
        if (mr := TraceLineParser.regex_return.search(args)) and mr.group('returnvalue') != '?':
            returnvalue = int(mr.group('returnvalue'))

        if syscall in TraceLineParser.creation_syscalls:
            if unfinished and not resumed:
                return CreationUnfinished(pid, lineno)
            if returnvalue is not None and returnvalue > 0:
                return CreationReturned(pid, lineno, returnvalue)
            return Other(pid, lineno)

        if syscall != 'execve' and syscall not in TraceLineParser.chdir_syscalls:
            return Other(pid, lineno)

        if resumed:
            return self.__resume(pid, lineno, syscall, returnvalue)

        # Неуспешный вызов (например, поиск execve по PATH) ничего не меняет
        if returnvalue is not None and returnvalue < 0:
            return Other(pid, lineno)

        if syscall == 'execve':
            event = self.__parse_execve(pid, lineno, args)
        else:
            event = self.__parse_chdir(pid, lineno, syscall, args)

        if unfinished and not isinstance(event, Other):
            self.__pending[pid] = (syscall, event)
            return Other(pid, lineno)
        return event


    def __resume(self, pid, lineno, syscall, returnvalue):
        pending = self.__pending.pop(pid, None)
        if pending is None or pending[0] != syscall:
            return Other(pid, lineno)
        if returnvalue is None or returnvalue < 0:
            return Other(pid, lineno)
        # Вызов считается выполненным в строке возврата
        return dataclasses.replace(pending[1], lineno=lineno)


    def __parse_execve(self, pid, lineno, args):
        me = TraceLineParser.regex_execve.match(args)
        if me is None:
            return Other(pid, lineno)

        program = unescape_c_string(me.group('program'))
        argv    = tuple(unescape_c_string(s) for s in TraceLineParser.regex_string.findall(me.group('argv')))
        return Executed(pid, lineno, program, argv)


    def __parse_chdir(self, pid, lineno, syscall, args):
        regex = TraceLineParser.regex_chdir if syscall == 'chdir' else TraceLineParser.regex_fchdir
        if (mp := regex.match(args)) is None:
            raise MalformedTrace("cannot decode {} path: {}".format(syscall, args), pid, lineno)
        return DirChanged(pid, lineno, unescape_c_string(mp.group(1)))



# Разбор отдельной строки, без связи с предыдущими
def parse_line(line : str, lineno : int) -> Event:
    return TraceLineParser().parse(line, lineno)


def iter_events(lines):
    parser = TraceLineParser()
    for lineno, line in enumerate(lines, 1):
        event = parser.parse(line.rstrip('\n'), lineno)
        if event is not None:
            yield event


def iter_trace_file(path : Path):
    # Байты, не являющиеся UTF-8, сохраняются как есть (surrogateescape)
    with Path(path).open(encoding='utf-8', errors='surrogateescape') as file:
        yield from iter_events(file)
