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



# --------------------------------------------------------------
# Фатальные ошибки разбора трассы
#

class TraceError(Exception):
    def __init__(self, message : str, pid : int = None, lineno : int = None, dump : str = None):
        self.pid    = pid
        self.lineno = lineno
        self.dump   = dump
        super().__init__(message)

    def __str__(self):
        s = super().__str__()
        ctx = []
        if self.pid is not None:
            ctx.append("pid {}".format(self.pid))
        if self.lineno is not None:
            ctx.append("line {}".format(self.lineno))
        if ctx:
            s += " (" + ", ".join(ctx) + ")"
        if self.dump:
            s += "\n" + self.dump
        return s


# Строку, обязательную для разбора, не удалось разобрать.
class MalformedTrace(TraceError):
    pass

# Родитель для не корневой инкарнации так и не был найден.
class UnresolvedParent(TraceError):
    pass

# Не удалось получить рабочий каталог даже через родителей.
class UnresolvedWorkingDirectory(TraceError):
    pass

# Поиск инкарнации по (pid, строка) ничего не нашел.
class AmbiguousIncarnation(TraceError):
    pass



# --------------------------------------------------------------
# Ошибки входных файлов (конфиг анализатора, лог анализатора)
#

class ConfigError(Exception):
    def __init__(self, message : str, path = None, lineno : int = None):
        self.path   = path
        self.lineno = lineno
        super().__init__(message)

    def __str__(self):
        s = super().__str__()
        if self.path is not None:
            s = "{}:{}: {}".format(self.path, self.lineno if self.lineno is not None else '?', s)
        return s
