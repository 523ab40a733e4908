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

import re

from typing import Final



# --------------------------------------------------------------
# Декодер строк в экранированном формате strace (C-строки)
#

_named_escapes : Final[dict] = {
    'a' : 0x07,
    'b' : 0x08,
    'f' : 0x0C,
    'n' : 0x0A,
    'r' : 0x0D,
    't' : 0x09,
    'v' : 0x0B,
    '\\': 0x5C,
    "'" : 0x27,
    '"' : 0x22,
    '?' : 0x3F,
}

_escape_regex = re.compile(r"\\(?:(?P<named>[abfnrtv\\'\"?])|(?P<oct>[0-7]{1,3})|x(?P<hex>[0-9A-Fa-f]{1,2}))")


def unescape_c_string(raw : str) -> str:
    """Decode C-style escapes found between double quotes in a strace line.

    Escapes produce raw bytes (``strace -xx`` prints every byte as ``\\xHH``),
    so the result is re-read as UTF-8 with ``surrogateescape``. Unknown escapes
    are kept as is.
    """
    if raw is None:
        return None
    if '\\' not in raw:
        return raw

    out = bytearray()
    pos = 0
    for m in _escape_regex.finditer(raw):
        out += raw[pos:m.start()].encode('utf-8', 'surrogateescape')
        if (named := m.group('named')) is not None:
            out.append(_named_escapes[named])
        elif (octal := m.group('oct')) is not None:
            out.append(int(octal, 8) & 0xFF)
        else:
            out.append(int(m.group('hex'), 16))
        pos = m.end()
    out += raw[pos:].encode('utf-8', 'surrogateescape')

    return out.decode('utf-8', 'surrogateescape')
