import os
import tempfile
import unittest
from pathlib import Path

from pvs_strace.analyzer   import AnalysisItem, PVSAnalyzer, dump_units, load_units
from pvs_strace.pvs_config import write_config

from .helpers import FAKE_ANALYZER, make_console


class AnalyzerTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.base = Path(self._tmp.name)
        self.cfg  = self.base / "PVS-Studio.cfg"
        write_config(self.cfg, {"platform": "linux64", "lic-name": "secret"})

        self.fake = self.base / "fake-pvs-studio"
        self.fake.write_text(FAKE_ANALYZER)
        os.chmod(self.fake, 0o755)

        (self.base / "src").mkdir()
        self.good = str(self.base / "src" / "good.c")
        self.bad  = str(self.base / "src" / "bad.c")
        for source in (self.good, self.bad):
            Path(source).write_text("int x;\n")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def analyzer(self, console, **kwargs):
        return PVSAnalyzer(self.cfg, self.base / "out", console=console, pvs_studio_command=str(self.fake), **kwargs)

    def test_make_command(self) -> None:
        console, _ = make_console()
        analyzer = self.analyzer(console, external_args=["--disableLicenseExpirationCheck"])
        item = AnalysisItem(1, 1, "/src/a.c", ["-I/src/inc", "-DX"], Path("/out/000001.log"))
        self.assertEqual(analyzer.make_command(item), [
            str(self.fake),
            "--cfg", str(self.cfg),
            "--source-file", "/src/a.c",
            "--output-file", "/out/000001.log",
            "--disableLicenseExpirationCheck",
            "--cl-params", "-I/src/inc", "-DX", "/src/a.c",
        ])

    def test_mask_lic_info(self) -> None:
        console, _ = make_console()
        masked = self.analyzer(console).mask_lic_info(["pvs-studio", "--lic-name=John", "--lic-key=1111-2222", "--cfg"])
        self.assertEqual(masked, ["pvs-studio", "--lic-name=****", "--lic-key=****-****-****-****", "--cfg"])

    def test_log_file_from_config(self) -> None:
        console, _ = make_console()
        self.assertEqual(self.analyzer(console).log_file, self.base / "out" / "pvs.log")
        write_config(self.cfg, {"output-file": str(self.base / "custom.log")})
        self.assertEqual(self.analyzer(console).log_file, self.base / "custom.log")

    def test_run_merges_successful_logs(self) -> None:
        console, stream = make_console()
        analyzer = self.analyzer(console)
        results = analyzer.run({self.good: ["-DX"], self.bad: []})

        self.assertEqual([(r.source, r.returncode) for r in results], [(self.good, 0), (self.bad, 3)])
        lines = analyzer.log_file.read_text().splitlines()
        self.assertEqual(len(lines), 2)
        self.assertEqual(lines, sorted(lines))
        self.assertTrue(any(self.good in l for l in lines))
        self.assertFalse(any(self.bad in l for l in lines))
        self.assertFalse(analyzer.parts_dir.exists())

        output = stream.getvalue()
        self.assertIn("[1/2] " + self.good, output)
        self.assertIn("WARNING: analyzer exit code 3 for " + self.bad + ", skipped", output)
        self.assertIn("analyzed: 1 failed: 1 records: 2", output)

    def test_duplicate_records_are_merged(self) -> None:
        other = str(self.base / "src" / "other.c")
        Path(other).write_text("int y;\n")
        console, _ = make_console()
        analyzer = self.analyzer(console)
        analyzer.run({self.good: [], other: []})
        # Запись про common.h приходит от обоих исходников
        self.assertEqual(len(analyzer.log_file.read_text().splitlines()), 3)

    def test_missing_analyzer_is_a_failed_unit(self) -> None:
        console, stream = make_console()
        analyzer = PVSAnalyzer(self.cfg, self.base / "out", console=console, pvs_studio_command=str(self.base / "nope"))
        results = analyzer.run({self.good: []})
        self.assertEqual(results[0].returncode, -1)
        self.assertIn("WARNING: cannot run analyzer for", stream.getvalue())
        self.assertEqual(analyzer.log_file.read_text(), "")


class UnitsFileTests(unittest.TestCase):
    def test_dump_and_load(self) -> None:
        units = {"/src/a.c": ["-I/src/inc", "-DX"], "/src/b.c": []}
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "compile_units.json"
            dump_units(path, units)
            self.assertIn('"source_file": "/src/a.c"', path.read_text())
            self.assertEqual(load_units(path), units)


if __name__ == "__main__":
    unittest.main()
