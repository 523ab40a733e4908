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
import subprocess
import sys

from pathlib import Path
from typing  import Final

from .config  import Config
from .console import Console



# --------------------------------------------------------------
# Каталог запуска трассировки хранится рядом с трассой: <trace>.cwd
#

def trace_cwd_path(trace_path : Path) -> Path:
    trace_path = Path(trace_path)
    return trace_path.with_name(trace_path.name + '.cwd')


def read_trace_cwd(trace_path : Path) -> Path:
    path = trace_cwd_path(trace_path)
    if not path.exists():
        return None
    with path.open() as f:
        return Path(f.read().strip())



# --------------------------------------------------------------
# Запуск сборки под strace
#

class BuildTracer:
    def __init__(self, trace_path : Path, console : Console = None, strace_command : str = None):
        self.__trace_path     : Final[Path] = Path(trace_path).absolute()
        self.__console        : Console     = console if console is not None else Console()
        self.__strace_command : Final[str]  = strace_command if strace_command is not None else Config.strace_command


    def make_strace_args(self) -> list[str]:
        return [
            '-f'         , # один файл, строки начинаются с pid
            '-xx'        , # so strings are escaped
            '--string-limit={}'.format(os.sysconf('SC_ARG_MAX') if 'SC_ARG_MAX' in os.sysconf_names else 4194304),
            '--decode-fds=path', # fchdir(3</path>)
            '--output={}'.format(self.__trace_path),
            '-e', 'trace=fork,vfork,clone,?clone3,execve,chdir,fchdir',
        ]

    def make_command(self, build_command : list[str]) -> list[str]:
        return [ self.__strace_command ] + self.make_strace_args() + list(build_command)


    def run(self, build_command : list[str]) -> int:
        if not build_command:
            raise ValueError("empty build command")

        cwd : Final[Path] = Path.cwd()
        run_command = self.make_command(build_command)

        self.__trace_path.parent.mkdir(mode=0o755, parents=True, exist_ok=True)

        # Запись текущего рабочего каталога - корень дерева процессов
        with trace_cwd_path(self.__trace_path).open('w') as f:
            print(cwd, file=f, end='')

        self.__console.verbose("strace command:", run_command)
        self.__console.stage_start('trace')

        # Сброс буферов ДО
        sys.stdout.flush()
        sys.stderr.flush()

        # Необходимо использовать Popen для возможности привязки sys.stdin, sys.stdout, sys.stderr
        proc = subprocess.Popen(run_command, stdin=sys.stdin, stdout=sys.stdout, stderr=sys.stderr)
        proc.wait()

        # Сброс буферов ПОСЛЕ
        sys.stdout.flush()
        sys.stderr.flush()

        self.__console.stage_end('trace')
        self.__console.print("build exit code:", proc.returncode)
        return proc.returncode
