import tempfile
import unittest
from pathlib import Path

from pvs_strace.errors     import ConfigError
from pvs_strace.pvs_config import config_values, make_config, parse_config, read_config, write_config


class ParseConfigTests(unittest.TestCase):
    def test_comments_blank_lines_and_repeated_keys(self) -> None:
        config = parse_config([
            "# PVS-Studio\n",
            "\n",
            "exclude-path = /usr/include\n",
            "platform=linux64\n",
            "exclude-path = /opt/sdk\n",
            "  # indented comment\n",
            "exclude-path = /usr/lib/gcc\n",
        ])
        self.assertEqual(config, {
            "exclude-path": ["/usr/include", "/opt/sdk", "/usr/lib/gcc"],
            "platform": "linux64",
        })

    def test_value_may_contain_equals(self) -> None:
        self.assertEqual(parse_config(["rules-config = -V501=off\n"]), {"rules-config": "-V501=off"})

    def test_line_without_equals(self) -> None:
        with self.assertRaises(ConfigError) as ctx:
            parse_config(["platform = linux64", "garbage"], "PVS-Studio.cfg")
        self.assertEqual(ctx.exception.lineno, 2)
        self.assertIn("PVS-Studio.cfg:2:", str(ctx.exception))

    def test_empty_key(self) -> None:
        with self.assertRaises(ConfigError):
            parse_config([" = value"])

    def test_config_values(self) -> None:
        config = {"a": "1", "b": ["2", "3"]}
        self.assertEqual(config_values(config, "a"), ["1"])
        self.assertEqual(config_values(config, "b"), ["2", "3"])
        self.assertEqual(config_values(config, "c"), [])


class MakeConfigTests(unittest.TestCase):
    def test_defaults(self) -> None:
        entries = make_config()
        self.assertEqual(entries["exclude-path"], ["/usr/include", "/usr/lib/gcc", "/usr/lib/clang"])
        self.assertEqual(entries["preprocessor"], "gcc")
        self.assertNotIn("lic-file", entries)

    def test_defaults_are_not_shared(self) -> None:
        make_config(exclude_paths=["/opt/a"])
        self.assertNotIn("/opt/a", make_config()["exclude-path"])

    def test_overrides_and_extra_excludes(self) -> None:
        entries = make_config(lic_file="/etc/pvs.lic", exclude_paths=["/opt/sdk", "/usr/include"], preprocessor="clang", language="C++")
        self.assertEqual(entries["exclude-path"], ["/usr/include", "/usr/lib/gcc", "/usr/lib/clang", "/opt/sdk"])
        self.assertEqual(entries["preprocessor"], "clang")
        self.assertEqual(entries["language"], "C++")
        self.assertEqual(entries["lic-file"], "/etc/pvs.lic")

    def test_write_then_read(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "PVS-Studio.cfg"
            entries = make_config(output_file=Path(tmp) / "pvs.log")
            write_config(path, entries)
            self.assertIn("exclude-path = /usr/lib/gcc\n", path.read_text())
            self.assertEqual(read_config(path), entries)


if __name__ == "__main__":
    unittest.main()
