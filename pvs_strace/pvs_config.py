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
# Файл конфигурации PVS-Studio:
#
#   # комментарий
#   exclude-path = /usr/include
#   exclude-path = /usr/lib/gcc
#   platform = linux64
#
# Повторяющиеся ключи собираются в список.
#
# --------------------------------------------------------------

from pathlib import Path
from typing  import Final

from .errors import ConfigError



# --------------------------------------------------------------
# Параметры по умолчанию
#

class PVSConfigDefaults:
    entries : Final[dict] = {
        'exclude-path' : [ '/usr/include', '/usr/lib/gcc', '/usr/lib/clang' ],
        'platform'     : 'linux64',
        'preprocessor' : 'gcc',
        'language'     : 'C',
        'analysis-mode': '4',
    }

    # Ключи, значения которых не печатаются, и их маски
    secret_keys : Final[dict] = {
        'lic-name' : '****',
        'lic-key'  : '****-****-****-****',
    }


def make_config(lic_file = None, output_file = None, exclude_paths = None, preprocessor = None, platform = None, language = None) -> dict:
    entries = { k: (list(v) if isinstance(v, list) else v) for k, v in PVSConfigDefaults.entries.items() }
    if exclude_paths:
        entries['exclude-path'].extend(p for p in exclude_paths if p not in entries['exclude-path'])
    for key, value in (('preprocessor', preprocessor), ('platform', platform), ('language', language)):
        if value is not None:
            entries[key] = value
    if lic_file is not None:
        entries['lic-file'] = str(Path(lic_file).absolute())
    if output_file is not None:
        entries['output-file'] = str(Path(output_file).absolute())
    return entries



# --------------------------------------------------------------
# Запись / чтение
#

def write_config(path : Path, entries : dict):
    with Path(path).open('w') as f:
        for key, value in entries.items():
            values = value if isinstance(value, list) else [ value ]
            for v in values:
                print("{} = {}".format(key, v), file=f)


def parse_config(lines, path = None) -> dict:
    config = {}
    for lineno, line in enumerate(lines, 1):
        line = line.strip()
        if not line or line.startswith('#'):
            continue
        if '=' not in line:
            raise ConfigError("expected 'key = value': " + line, path, lineno)

        key, value = (s.strip() for s in line.split('=', 1))
        if not key:
            raise ConfigError("empty key: " + line, path, lineno)

        if key not in config:
            config[key] = value
        elif isinstance(config[key], list):
            config[key].append(value)
        else:
            config[key] = [ config[key], value ]
    return config


def read_config(path : Path) -> dict:
    with Path(path).open() as f:
        return parse_config(f, path)


def config_values(config : dict, key : str) -> list[str]:
    value = config.get(key)
    if value is None:
        return []
    return value if isinstance(value, list) else [ value ]
