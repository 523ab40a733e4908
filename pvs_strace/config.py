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
# Настройка параметров через переменные окружения:
#
#   PVS_STRACE_STRACE_COMMAND - путь к strace (по умолчанию /usr/bin/strace).
#
#   PVS_STRACE_PVS_COMMAND - путь к анализатору (по умолчанию pvs-studio из PATH).
#
#   PVS_STRACE_TOLERANCE - окно допуска (в строках трассы) при поиске
#       завершенной инкарнации процесса. По умолчанию 1000.
#
# --------------------------------------------------------------

import os

from dataclasses import dataclass
from typing      import Final



# --------------------------------------------------------------
# Системные параметры
#

class Config:
    strace_command     : Final[str] = os.environ.get('PVS_STRACE_STRACE_COMMAND', '/usr/bin/strace')
    pvs_studio_command : Final[str] = os.environ.get('PVS_STRACE_PVS_COMMAND'   , 'pvs-studio'     )

    # Допуск в строках после выхода процесса, в течение которого строки
    # завершения clone() другой инкарнации того же pid еще относятся к нему.
    # Подобран эмпирически.
    default_tolerance  : Final[int] = int(os.environ.get('PVS_STRACE_TOLERANCE', '1000'))

    # Имя инструмента в сообщениях об ошибках
    tool_name          : Final[str] = 'pvs-strace'

    # Разделитель полей лога анализатора
    log_delimiter      : Final[str] = '<#~>'



# --------------------------------------------------------------
# Параметры обработки трассы
#

@dataclass
class Options:
    tolerance    : int  = Config.default_tolerance
    strict_roots : bool = False # Несколько корней дерева процессов - ошибка, а не предупреждение
    check_sources: bool = True  # Отбрасывать вызовы, исходник которых не существует на диске
    verbose      : bool = False
    debug        : bool = False
    parallel     : int  = 1
