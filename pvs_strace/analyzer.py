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

import json
import multiprocessing
import os.path
import shutil
import subprocess

from dataclasses import dataclass
from pathlib     import Path
from typing      import Final

from .config     import Config, Options
from .console    import Console
from .pvs_config import PVSConfigDefaults, config_values, read_config



# --------------------------------------------------------------
# Результат обработки
#

def dump_units(path : Path, units : dict[str, list[str]]):
    with Path(path).open('w') as f:
        json.dump([ { 'source_file': source, 'flags': flags } for source, flags in units.items() ], f, indent=4)


def load_units(path : Path) -> dict[str, list[str]]:
    with Path(path).open() as f:
        return { item['source_file']: item['flags'] for item in json.load(f) }



@dataclass
class AnalysisItem:
    index     : int
    total     : int
    source    : str
    flags     : list[str]
    output    : Path


@dataclass
class AnalysisResult:
    source    : str
    returncode: int
    output    : Path



# --------------------------------------------------------------
# Запуск анализатора по единицам компиляции
#

class PVSAnalyzer:
    def __init__(self, config_path : Path, output_dir : Path, options : Options = None, console : Console = None,
                 pvs_studio_command : str = None, external_args = ()):
        self.__config_path : Final[Path] = Path(config_path).absolute()
        self.__output_dir  : Final[Path] = Path(output_dir).absolute()
        self.__options     : Options     = options if options is not None else Options()
        self.__console     : Console     = console if console is not None else Console(self.__options)
        self.__pvs_studio_command : Final[str] = pvs_studio_command if pvs_studio_command is not None else Config.pvs_studio_command
        self.__external_args      : Final[list[str]] = list(external_args)

        self.__config = read_config(self.__config_path)


    @property
    def log_file(self) -> Path:
        if (output_file := config_values(self.__config, 'output-file')):
            return Path(output_file[-1])
        return self.__output_dir / 'pvs.log'

    @property
    def parts_dir(self) -> Path:
        return self.__output_dir / 'pvs-logs'


    # --------------
    # Маскировка лицензионных данных в выводе
    #
    def mask_lic_info(self, command):
        # --lic-name=****
        # --lic-key=****-****-****-****
        ret = []
        for arg in command:
            if isinstance(arg, str):
                for key, mask in PVSConfigDefaults.secret_keys.items():
                    if arg.startswith('--' + key + '='):
                        arg = '--' + key + '=' + mask
            ret.append(arg)
        return ret


    def make_command(self, item : AnalysisItem) -> list[str]:
        return [
            self.__pvs_studio_command,
            '--cfg'        , str(self.__config_path),
            '--source-file', item.source,
            '--output-file', str(item.output),
        ] + self.__external_args + [ '--cl-params' ] + item.flags + [ item.source ]


    # --------------
    # Обработка элемента
    #
    def processing_item(self, item : AnalysisItem) -> AnalysisResult:
        self.__console.print("[{}/{}]".format(item.index, item.total), item.source)

        command = self.make_command(item)
        self.__console.verbose("PVS command:", self.mask_lic_info(command))

        try:
            proc = subprocess.Popen(command, stdin=subprocess.DEVNULL, stdout=subprocess.PIPE, stderr=subprocess.STDOUT,
                                    universal_newlines=True, cwd=os.path.dirname(item.source))
        except OSError as e:
            self.__console.warning("cannot run analyzer for", item.source + ":", e)
            return AnalysisResult(item.source, -1, item.output)

        for line in proc.stdout:
            self.__console.verbose(line.rstrip())
        proc.wait()

        if proc.returncode != 0:
            self.__console.warning("analyzer exit code {} for {}, skipped".format(proc.returncode, item.source))
        return AnalysisResult(item.source, proc.returncode, item.output)


    def merge_logs(self, results : list[AnalysisResult]) -> int:
        records = set()
        for r in results:
            if r.returncode != 0 or not r.output.exists():
                continue
            with r.output.open(encoding='utf-8', errors='surrogateescape') as f:
                records.update(line.rstrip('\n') for line in f if line.strip())

        log_file = self.log_file
        log_file.parent.mkdir(mode=0o755, parents=True, exist_ok=True)
        with log_file.open('w', encoding='utf-8', errors='surrogateescape') as f:
            for line in sorted(records):
                print(line, file=f)
        return len(records)


    def run(self, units : dict[str, list[str]]) -> list[AnalysisResult]:
        shutil.rmtree(self.parts_dir, ignore_errors=True)
        self.parts_dir.mkdir(mode=0o755, parents=True, exist_ok=True)

        total = len(units)
        items = [ AnalysisItem(i, total, source, list(flags), self.parts_dir / '{:06}.log'.format(i))
                  for i, (source, flags) in enumerate(units.items(), 1) ]

        if self.__options.parallel > 1 and total > 1:
            with multiprocessing.Pool(processes=self.__options.parallel) as pool:
                results = pool.map(self.processing_item, items)
        else:
            results = [ self.processing_item(item) for item in items ]

        count = self.merge_logs(results)
        shutil.rmtree(self.parts_dir, ignore_errors=True)

        failed = sum(1 for r in results if r.returncode != 0)
        self.__console.print("analyzed:", total - failed, "failed:", failed, "records:", count, "log:", self.log_file)
        return results
