import os
import tempfile
import unittest
from pathlib import Path

from pvs_strace.compiler import CompilerCallExtractor, CompilerMatcher, parse_compiler_args
from pvs_strace.config   import Options
from pvs_strace.events   import Executed

from .helpers import make_console


class CompilerMatcherTests(unittest.TestCase):
    def test_compiler_names(self) -> None:
        matcher = CompilerMatcher()
        for program in ["gcc", "/usr/bin/cc", "/usr/bin/c++", "/usr/bin/g++", "clang", "/usr/lib/llvm/bin/CLANG++",
                        "/usr/bin/x86_64-linux-gnu-gcc-12", "/usr/bin/clang-17", "GCC"]:
            self.assertTrue(matcher.match(program, [os.path.basename(program), "-c", "a.c"]), program)

    def test_non_compiler_names(self) -> None:
        matcher = CompilerMatcher()
        for program in ["/usr/libexec/gcc/x86_64-linux-gnu/12/cc1", "/usr/bin/as", "/usr/bin/ld", "/usr/bin/gcc-ar",
                        "/usr/bin/clang-tidy", "/usr/bin/make", "/usr/bin/ccache"]:
            self.assertFalse(matcher.match(program, [os.path.basename(program)]), program)

    def test_clang_frontend_is_not_a_compiler_call(self) -> None:
        self.assertFalse(CompilerMatcher().match("/usr/bin/clang", ["/usr/bin/clang", "-cc1", "-triple", "x86_64"]))


class ParseArgsTests(unittest.TestCase):
    def test_include_and_define_normalization(self) -> None:
        args = ["gcc", "-Ifoo", "-I", "bar", "-I/abs/path", "-DFOO=1", "-D", "BAR=2", "-c", "a.c"]
        cc = parse_compiler_args(args, "/build")
        self.assertEqual(cc.source, "a.c")
        self.assertEqual(cc.flags, ["-I/build/foo", "-I/build/bar", "-I/abs/path", "-DFOO=1", "-DBAR=2"])

    def test_attached_and_split_forms_collapse(self) -> None:
        cc = parse_compiler_args(["gcc", "-Ifoo", "-I", "foo", "-DX=1", "-D", "X=1", "-c", "a.c"], "/build")
        self.assertEqual(cc.flags, ["-I/build/foo", "-DX=1"])

    def test_duplicate_flags_keep_first_position(self) -> None:
        cc = parse_compiler_args(["gcc", "-DA", "-std=c99", "-DB", "-DA", "-c", "a.c"], "/b")
        self.assertEqual(cc.flags, ["-DA", "-std=c99", "-DB"])

    def test_output_file_is_dropped(self) -> None:
        cc = parse_compiler_args(["gcc", "-o", "a.o", "-c", "a.c", "-O2", "-Wall", "-fPIC"], "/b")
        self.assertEqual(cc.source, "a.c")
        self.assertEqual(cc.flags, [])

    def test_std_and_include_like_flags_are_kept(self) -> None:
        cc = parse_compiler_args(["g++", "-std=gnu++17", "-isystem/opt/inc", "-iquote../inc", "-x", "c++", "main.CPP"], "/b")
        self.assertEqual(cc.source, "main.CPP")
        self.assertEqual(cc.flags, ["-std=gnu++17", "-isystem/opt/inc", "-iquote../inc"])

    def test_source_suffixes(self) -> None:
        for source in ["a.c", "a.cc", "a.cpp", "a.cx", "a.cxx", "A.C"]:
            self.assertEqual(parse_compiler_args(["cc", "-c", source], "/b").source, source)
        self.assertIsNone(parse_compiler_args(["cc", "-c", "a.h"], "/b"))

    def test_no_source_is_not_a_compilation(self) -> None:
        self.assertIsNone(parse_compiler_args(["gcc", "-o", "prog", "a.o", "b.o", "-lm"], "/b"))
        self.assertIsNone(parse_compiler_args(["gcc", "--version"], "/b"))

    def test_missing_value_at_end(self) -> None:
        cc = parse_compiler_args(["gcc", "-c", "a.c", "-I"], "/b")
        self.assertEqual(cc.flags, [])
        cc = parse_compiler_args(["gcc", "-c", "a.c", "-o"], "/b")
        self.assertEqual(cc.source, "a.c")

    def test_multiple_sources_warn_and_keep_first(self) -> None:
        console, stream = make_console()
        cc = parse_compiler_args(["gcc", "a.c", "b.c", "a.c"], "/b", console, 42)
        self.assertEqual(cc.source, "a.c")
        self.assertEqual(console.warnings, 1)
        self.assertIn("WARNING: multiple source files in compiler call [42], using 'a.c', ignoring 'b.c'", stream.getvalue())


class ExtractorTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        (self.root / "sub").mkdir()
        (self.root / "sub" / "a.c").write_text("int main(void) { return 0; }\n", encoding="utf-8")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_source_resolved_against_working_directory(self) -> None:
        console, _ = make_console()
        extractor = CompilerCallExtractor(Options(), console)
        source = extractor.add(Executed(11, 1, "/usr/bin/cc", ("cc", "-Iinc", "-c", "sub/a.c")), str(self.root))
        expected = str(self.root / "sub" / "a.c")
        self.assertEqual(source, expected)
        self.assertEqual(extractor.units, {expected: ["-I" + str(self.root / "inc")]})

    def test_missing_source_is_discarded_with_warning(self) -> None:
        console, stream = make_console()
        extractor = CompilerCallExtractor(Options(), console)
        self.assertIsNone(extractor.add(Executed(11, 1, "/usr/bin/cc", ("cc", "-c", "sub/missing.c")), str(self.root)))
        self.assertEqual(extractor.units, {})
        self.assertIn("IGNORED(source file not found: " + str(self.root / "sub" / "missing.c") + ")[11]", stream.getvalue())

    def test_missing_source_kept_without_check(self) -> None:
        console, _ = make_console()
        extractor = CompilerCallExtractor(Options(check_sources=False), console)
        extractor.add(Executed(11, 1, "/usr/bin/cc", ("cc", "-c", "gen/x.c")), "/nowhere")
        self.assertEqual(list(extractor.units), ["/nowhere/gen/x.c"])

    def test_last_call_wins(self) -> None:
        console, _ = make_console()
        extractor = CompilerCallExtractor(Options(), console)
        cwd = str(self.root)
        extractor.add(Executed(11, 1, "/usr/bin/cc", ("cc", "-DFIRST", "-c", "sub/a.c")), cwd)
        extractor.add(Executed(12, 2, "/usr/bin/cc", ("cc", "-DSECOND", "-c", str(self.root / "sub" / "a.c"))), "/")
        self.assertEqual(extractor.units, {str(self.root / "sub" / "a.c"): ["-DSECOND"]})
        self.assertEqual(extractor.calls, 2)

    def test_non_compiler_and_cmake_probe_are_skipped(self) -> None:
        (self.root / "CMakeCCompilerId.c").write_text("", encoding="utf-8")
        console, stream = make_console()
        extractor = CompilerCallExtractor(Options(), console)
        self.assertIsNone(extractor.add(Executed(11, 1, "/usr/bin/python3", ("python3", "sub/a.c")), str(self.root)))
        self.assertIsNone(extractor.add(Executed(11, 2, "/usr/bin/cc", ("cc", "CMakeCCompilerId.c")), str(self.root)))
        self.assertEqual(extractor.units, {})
        self.assertIn("IGNORED(CMake internal source)[11]", stream.getvalue())


if __name__ == "__main__":
    unittest.main()
