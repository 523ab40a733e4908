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
# Лог анализатора: одна запись на строку, 13 полей через '<#~>':
#
#   0 tag, 1 mode, 2 line, 3 file, 4 kind, 5 code, 6 message,
#   7 false alarm, 8 level, 9 cwe, 10..12 context
#
# --------------------------------------------------------------

import os.path
import re

from dataclasses import dataclass
from pathlib     import Path
from typing      import Final

from .config  import Config
from .console import Console



class LogFormat:
    field_count   : Final[int] = 13

    field_line    : Final[int] = 2
    field_file    : Final[int] = 3
    field_code    : Final[int] = 5
    field_message : Final[int] = 6
    field_level   : Final[int] = 8
    field_context : Final[slice] = slice(10, 13)



@dataclass
class LogRecord:
    file   : str
    line   : int
    level  : int
    code   : str
    message: str
    context: str

    # Файлы одного каталога идут подряд
    @property
    def sort_key(self):
        return (os.path.dirname(self.file), os.path.basename(self.file), self.line)


@dataclass
class MalformedRecord:
    lineno : int
    text   : str
    fields : int



def parse_record(text : str, lineno : int, delimiter : str = Config.log_delimiter):
    fields = text.split(delimiter)
    if len(fields) != LogFormat.field_count:
        return MalformedRecord(lineno, text, len(fields))
    try:
        line  = int(fields[LogFormat.field_line])
        level = int(fields[LogFormat.field_level])
    except ValueError:
        return MalformedRecord(lineno, text, len(fields))
    return LogRecord(
        fields[LogFormat.field_file],
        line,
        level,
        fields[LogFormat.field_code],
        fields[LogFormat.field_message],
        ''.join(fields[LogFormat.field_context]),
    )



# --------------------------------------------------------------
# Фильтр и печать
#

class LogFilter:
    def __init__(self, max_level : int = None, codes = (), exclude_codes = (), context_regex : str = None):
        self.max_level     = max_level
        self.codes         = frozenset(codes)
        self.exclude_codes = frozenset(exclude_codes)
        self.context_regex = re.compile(context_regex) if context_regex else None

    def allow(self, record : LogRecord) -> bool:
        if self.max_level is not None and record.level > self.max_level:
            return False
        if self.codes and record.code not in self.codes:
            return False
        if record.code in self.exclude_codes:
            return False
        if self.context_regex is not None and not self.context_regex.search(record.context):
            return False
        return True


class LogViewer:
    def __init__(self, log_filter : LogFilter = None, console : Console = None):
        self.__filter  : LogFilter = log_filter if log_filter is not None else LogFilter()
        self.__console : Console   = console if console is not None else Console()
        self.malformed : list[MalformedRecord] = []


    def read(self, lines) -> list[LogRecord]:
        records = []
        for lineno, text in enumerate(lines, 1):
            text = text.rstrip('\n')
            if not text.strip():
                continue
            rec = parse_record(text, lineno)
            if isinstance(rec, MalformedRecord):
                self.malformed.append(rec)
                continue
            if self.__filter.allow(rec):
                records.append(rec)
        records.sort(key=lambda r: r.sort_key)
        return records


    def read_file(self, path : Path) -> list[LogRecord]:
        with Path(path).open(encoding='utf-8', errors='surrogateescape') as f:
            return self.read(f)


    def show(self, records : list[LogRecord]):
        for m in self.malformed:
            self.__console.warning("malformed record at line {} ({} fields): {}".format(m.lineno, m.fields, m.text))

        current_dir = None
        for r in records:
            directory = os.path.dirname(r.file)
            if directory != current_dir:
                if current_dir is not None:
                    self.__console.print()
                self.__console.print("==", directory or '.')
                current_dir = directory
            self.__console.print("  {}:{}: [{}] {}".format(os.path.basename(r.file), r.line, r.code, r.message))

        self.__console.print()
        self.__console.print("records:", len(records), "malformed:", len(self.malformed))
