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
import sys
import time

from .config import Config, Options



# --------------------------------------------------------------
# Вывод
#

class Console:
    def __init__(self, options : Options = None, stream = None):
        options = options if options is not None else Options()
        self.__parallel = options.parallel
        self.__verbose  = options.verbose
        self.__debug    = options.debug
        self.__stream   = stream
        self.warnings   = 0

    @property
    def stream(self):
        # sys.stdout берем в момент вывода: его могут подменить (тесты, перенаправление)
        return self.__stream if self.__stream is not None else sys.stdout

    # --------------
    # Печать строки вывода
    #
    def print(self, *objects, sep=' ', end='\n', flush=True):
        s = ''
        if self.__parallel > 1:
            s += '{:7}:'.format(os.getpid())
            if len(objects) > 0:
                s += sep
        s += sep.join(str(item) for item in objects)
        s += end
        self.stream.write(s)
        if flush:
            self.stream.flush()

    def verbose(self, *objects):
        if self.__verbose or self.__debug:
            self.print(*objects)

    def debug(self, *objects):
        if self.__debug:
            self.print("DEBUG:", *objects)

    def warning(self, *objects):
        self.warnings += 1
        self.print("WARNING:", *objects)

    def ignored(self, pid, command, msg):
        self.warnings += 1
        self.print("IGNORED(" + msg + ")[" + str(pid) + "]:", command)

    def error(self, *objects):
        sys.stdout.flush()
        sys.stderr.write(Config.tool_name + ": error: " + ' '.join(str(item) for item in objects) + '\n')
        sys.stderr.flush()

    def stage_start(self, name):
        self.print((name.upper() + "-START").ljust(32, '-'))

    def stage_end(self, name):
        self.print((name.upper() + "-END").ljust(32, '-'))



# --------------------------------------------------------------
# Статистика работы
#

class Timer:
    def __init__(self):
        self.stages = []
        self.cut('') # запись времени начала работы

    def cut(self, name):
        self.stages.append((name, time.time()))

    def __format_summary_row(self, name, interval):
        return "{}: {:.3f}s".format(name, interval)

    def get_summary_pretty(self):
        ret = []
        l = len(self.stages)
        for i in range(1, l):
            ret.append(self.__format_summary_row(self.stages[i][0], (self.stages[i][1] - self.stages[i - 1][1])))
        ret.append(self.__format_summary_row("TOTAL", (self.stages[l - 1][1] - self.stages[0][1])))
        return ret
