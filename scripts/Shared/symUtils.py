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

import json
import logging
import re
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, NoReturn, Optional, Type, Union

# bash colors
BASH_ORANGE_COLOR = "\033[33m"
BASH_END_COLOR = "\033[0m"
BASH_GREEN_COLOR = "\033[32m"
BASH_RED_COLOR = "\033[31m"

# a selector is the first 4 bytes of the keccak hash of a canonical signature
SELECTOR_SIZE = 4
ADDRESS_SIZE = 20


class SymbolicationError(Exception):
    pass


# The compiler output does not have the shape we rely on (most likely an unsupported compiler version)
class IncompatibleCompilerOutputError(SymbolicationError):
    pass


class SelectorCorrectionError(SymbolicationError):
    pass


class CustomErrorBuildError(SymbolicationError):
    pass


# An ABI parameter entry that cannot be turned into a canonical type string
class InvalidAbiTypeError(SymbolicationError):
    pass


class SymbolicatorUserInputError(Exception):
    def __init__(self, message: str, orig: Optional[Exception] = None, more_info: str = '') -> None:
        super().__init__(message)
        self.orig = orig
        self.more_info = more_info


def fatal_error(logger: logging.Logger, msg: str,
                exc_type: Type[SymbolicationError] = IncompatibleCompilerOutputError) -> NoReturn:
    logger.fatal(msg)
    raise exc_type(msg)


def __colored_text(txt: str, color: str) -> str:
    return color + txt + BASH_END_COLOR


def orange_text(txt: str) -> str:
    return __colored_text(txt, BASH_ORANGE_COLOR)


def red_text(txt: str) -> str:
    return __colored_text(txt, BASH_RED_COLOR)


def green_text(txt: str) -> str:
    return __colored_text(txt, BASH_GREEN_COLOR)


def print_completion_message(txt: str, flush: bool = False) -> None:
    print(green_text(txt), flush=flush)


def read_json_file(file_name: Path) -> Dict[str, Any]:
    with file_name.open() as json_file:
        json_obj = json.load(json_file)
        return json_obj


def write_json_file(data: Union[Dict[str, Any], List[Dict[str, Any]]], file_name: Path) -> None:
    with file_name.open("w+") as json_file:
        json.dump(data, json_file, indent=4)


class NoValEnum(Enum):
    """
    A class for an enum where the numerical value has no meaning.
    """

    def __repr__(self) -> str:
        """
        Do not print the value of this enum, it is meaningless
        """
        return f'<{self.__class__.__name__}.{self.name}>'

    def __str__(self) -> str:
        return self.name.lower()


def strip_hex_prefix(s: str) -> str:
    """
    @param s: A hex string, with or without the '0x' prefix
    @return: The same string without the '0x' prefix
    """
    return re.sub(r'^0[xX]', '', s)