#     The Certora Prover
#     Copyright (C) 2025  Certora Ltd.
#
#     This program is free software: you can redistribute it and/or modify
#     it under the terms of the GNU General Public License as published by
#     the Free Software Foundation, version 3 of the License.
#
#     This program is distributed in the hope that it will be useful,
#     but WITHOUT ANY WARRANTY; without even the implied warranty of
#     MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#     GNU General Public License for more details.
#
#     You should have received a copy of the GNU General Public License
#     along with this program.  If not, see <https://www.gnu.org/licenses/>.

import argparse
import json
import sys
import tempfile
import unittest
from pathlib import Path

scripts_dir_path = Path(__file__).parent.parent.resolve()
sys.path.insert(0, str(scripts_dir_path))

from Symbolicator import symConfigIO as ConfigIO
from Shared.symUtils import SymbolicatorUserInputError
from compilationFixtures import SOLC_VERSION, token_compilation
from symbolicateRun import get_args, run_symbolicator


class TestConfContent(unittest.TestCase):
    def test_conf_fills_missing_options(self) -> None:
        context = get_args(["run.conf"])
        ConfigIO.check_conf_content({"files": ["build.json"], "no_strict_selectors": True, "quiet": True},
                                    context)
        self.assertEqual(context.files, ["build.json"])
        self.assertTrue(context.no_strict_selectors)
        self.assertTrue(context.quiet)

    def test_cli_shadows_conf(self) -> None:
        context = get_args(["run.conf", "--solc_version", "0.8.20"])
        with self.assertLogs("conf", level="WARNING"):
            ConfigIO.check_conf_content({"files": "build.json", "solc_version": "0.8.19"}, context)
        self.assertEqual(context.solc_version, "0.8.20")
        self.assertEqual(context.files, ["build.json"])

    def test_unknown_key(self) -> None:
        context = get_args(["run.conf"])
        with self.assertRaises(SymbolicatorUserInputError):
            ConfigIO.check_conf_content({"solc": "solc8.20"}, context)


class TestSymbolicatorConfig(unittest.TestCase):
    def test_build_info(self) -> None:
        config = ConfigIO.SymbolicatorConfig.from_context(get_args(["build.json", "--no_strict_selectors"]))
        self.assertEqual(config.build_info, Path("build.json"))
        self.assertFalse(config.strict_selectors)
        self.assertIsNone(config.output_file)

    def test_separate_input_and_output(self) -> None:
        config = ConfigIO.SymbolicatorConfig.from_context(get_args([
            "--compiler_input", "in.json", "--compiler_output", "out.json", "--solc_version", SOLC_VERSION]))
        self.assertIsNone(config.build_info)
        self.assertEqual(config.compiler_output, Path("out.json"))
        self.assertTrue(config.strict_selectors)

    def test_bad_combinations(self) -> None:
        for args in [[], ["a.json", "b.json"], ["build.txt"], ["--compiler_input", "in.json"],
                     ["build.json", "--compiler_output", "out.json"]]:
            with self.assertRaises(SymbolicatorUserInputError, msg=str(args)):
                ConfigIO.SymbolicatorConfig.from_context(get_args(args))


class TestRun(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp_dir = tempfile.TemporaryDirectory()
        self.tmp_path = Path(self.tmp_dir.name)
        compiler_input, compiler_output = token_compilation()
        self.build_info = self.tmp_path / "build.json"
        self.build_info.write_text(json.dumps({"solcVersion": SOLC_VERSION, "input": compiler_input,
                                               "output": compiler_output}))
        self.traceback_limit = getattr(sys, "tracebacklimit", None)

    def tearDown(self) -> None:
        if self.traceback_limit is None:
            if hasattr(sys, "tracebacklimit"):
                del sys.tracebacklimit
        else:
            sys.tracebacklimit = self.traceback_limit
        self.tmp_dir.cleanup()

    def test_run_with_conf_file(self) -> None:
        output_file = self.tmp_path / "model.json"
        conf_file = self.tmp_path / "run.conf"
        conf_file.write_text(f"""{{
            // json5 allows comments
            files: ["{self.build_info.as_posix()}"],
            output_file: "{output_file.as_posix()}",
            quiet: true,
        }}""")

        result = run_symbolicator([str(conf_file)])
        self.assertEqual([c.name for c in result.contracts], ["Token"])

        model = json.loads(output_file.read_text())
        self.assertEqual(model["contracts"][0]["name"], "Token")
        self.assertEqual(len(model["bytecodes"]), 2)

    def test_missing_build_info(self) -> None:
        with self.assertRaises(SymbolicatorUserInputError):
            run_symbolicator([str(self.tmp_path / "missing.json"), "--quiet"])

    def test_not_a_build_info(self) -> None:
        not_build_info = self.tmp_path / "other.json"
        not_build_info.write_text(json.dumps({"input": {}}))
        with self.assertRaises(SymbolicatorUserInputError):
            run_symbolicator([str(not_build_info), "--quiet"])

    def test_unknown_conf_key(self) -> None:
        conf_file = self.tmp_path / "bad.conf"
        conf_file.write_text('{"files": ["build.json"], "loop_iter": 3}')
        with self.assertRaises(SymbolicatorUserInputError):
            run_symbolicator([str(conf_file)])


if __name__ == '__main__':
    unittest.main()
