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
import json5
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from Shared import symUtils as Util

"""
This file is responsible for reading configuration files and the compilation they point to.
"""

conf_logger = logging.getLogger("conf")

CONF_SUFFIX = ".conf"
BUILD_INFO_SUFFIX = ".json"

# the options that may appear in a .conf file, by their command line destination name
CONF_KEYS = ["files", "compiler_input", "compiler_output", "solc_version", "output_file", "no_strict_selectors",
             "debug", "debug_topics", "show_debug_topics", "debug_log_file", "quiet"]


@dataclass
class SymbolicatorConfig:
    solc_version: Optional[str]
    build_info: Optional[Path]
    compiler_input: Optional[Path]
    compiler_output: Optional[Path]
    output_file: Optional[Path]
    strict_selectors: bool = True

    @classmethod
    def from_context(cls, context: argparse.Namespace) -> 'SymbolicatorConfig':
        """
        @param context: the command line options, after the conf file (if any) was merged into them
        @raise SymbolicatorUserInputError if the options don't describe a single compilation
        """
        files = context.files or []
        if len(files) > 1:
            raise Util.SymbolicatorUserInputError(f"Expected a single build info file, got {' '.join(files)}")

        build_info = Path(files[0]) if files else None
        if build_info is not None and build_info.suffix != BUILD_INFO_SUFFIX:
            raise Util.SymbolicatorUserInputError(f"{build_info} is not a {BUILD_INFO_SUFFIX} build info file")

        if build_info is None:
            missing = [opt for opt in ["compiler_input", "compiler_output", "solc_version"]
                       if getattr(context, opt) is None]
            if missing:
                raise Util.SymbolicatorUserInputError(
                    f"Without a build info file, {', '.join('--' + m for m in missing)} must be given")
        elif context.compiler_input is not None or context.compiler_output is not None:
            raise Util.SymbolicatorUserInputError("--compiler_input and --compiler_output can't be used together "
                                                  "with a build info file")

        return cls(solc_version=context.solc_version,
                   build_info=build_info,
                   compiler_input=Path(context.compiler_input) if context.compiler_input else None,
                   compiler_output=Path(context.compiler_output) if context.compiler_output else None,
                   output_file=Path(context.output_file) if context.output_file else None,
                   strict_selectors=not context.no_strict_selectors)

    def load_compilation(self) -> Tuple[str, Dict[str, Any], Dict[str, Any]]:
        """
        @return the solc version, the standard json input and the standard json output of the compilation
        """
        if self.build_info is not None:
            build_info = read_json(self.build_info)
            for key in ["solcVersion", "input", "output"]:
                if key not in build_info:
                    raise Util.SymbolicatorUserInputError(f"{self.build_info} is not a build info file, "
                                                          f"\"{key}\" is missing")
            # an explicit --solc_version wins over the recorded one
            solc_version = self.solc_version or build_info["solcVersion"]
            return solc_version, build_info["input"], build_info["output"]

        assert self.compiler_input is not None and self.compiler_output is not None and \
            self.solc_version is not None, "Expected a compiler input, a compiler output and a solc version"
        return self.solc_version, read_json(self.compiler_input), read_json(self.compiler_output)


def read_json(path: Path) -> Dict[str, Any]:
    if not path.is_file():
        raise Util.SymbolicatorUserInputError(f"File {path} does not exist")
    conf_logger.debug(f"Reading {path}")
    try:
        return Util.read_json_file(path)
    except ValueError as e:
        raise Util.SymbolicatorUserInputError(f"{path} is not a valid json file", e) from None


def is_conf_file(context: argparse.Namespace) -> bool:
    return bool(context.files) and len(context.files) == 1 and context.files[0].endswith(CONF_SUFFIX)


def read_from_conf_file(context: argparse.Namespace) -> None:
    """
    If the file in the command line is a conf file, read data from the configuration file and add each key to the
    context namespace if the key was not set in the command line (command line shadows conf data).
    @param context: A namespace containing options from the command line
    """
    conf_file_path = Path(context.files[0])
    assert conf_file_path.suffix == CONF_SUFFIX, f"conf file must be of type .conf, instead got {conf_file_path}"
    if not conf_file_path.is_file():
        raise Util.SymbolicatorUserInputError(f"File {conf_file_path} does not exist")

    with conf_file_path.open() as conf_file:
        try:
            configuration = json5.load(conf_file, allow_duplicate_keys=False)
        except ValueError as e:
            raise Util.SymbolicatorUserInputError(f"Error when reading {conf_file_path}: {str(e)}", e) from None
        try:
            check_conf_content(configuration, context)
        except Util.SymbolicatorUserInputError as e:
            raise Util.SymbolicatorUserInputError(f"Error when reading {conf_file_path}: {str(e)}", e) from None
    conf_logger.debug(f"Read the configuration of {conf_file_path}")


def check_conf_content(conf: Dict[str, Any], context: argparse.Namespace) -> None:
    """
    validating content read from the conf file
    Note: a command line definition trumps the definition in the file.
    @param conf: A json object in the conf file format
    @param context: A namespace containing options from the command line, if any
    """
    if not isinstance(conf, dict):
        raise Util.SymbolicatorUserInputError("A configuration must be a json object")

    for option in conf:
        if option == "files":
            continue
        if option not in CONF_KEYS or not hasattr(context, option):
            raise Util.SymbolicatorUserInputError(f"{option} appears in the conf file but is not a known attribute. ")
        val = getattr(context, option)
        if val is None or val is False:
            setattr(context, option, conf[option])
        elif val != conf[option]:
            cli_val = ' '.join(val) if isinstance(val, list) else str(val)
            conf_val = ' '.join(conf[option]) if isinstance(conf[option], list) else str(conf[option])
            conf_logger.warning(f"Note: attribute {option} value in CLI ({cli_val}) overrides value stored in conf"
                                f" file ({conf_val})")

    files = conf.get('files')
    if isinstance(files, str):
        files = [files]
    context.files = files
