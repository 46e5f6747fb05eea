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

import sys
import unittest
from pathlib import Path

scripts_dir_path = Path(__file__).parent.parent.resolve()
sys.path.insert(0, str(scripts_dir_path))

from eth_abi import encode

from Symbolicator.symBuild import create_models_and_decode_bytecodes
from Symbolicator.symModel import CustomError
from Symbolicator.symReturnData import ERROR_SELECTOR, PANIC_SELECTOR, ReturnData
from Shared.symUtils import SymbolicationError
from compilationFixtures import SOLC_VERSION, token_compilation

# a string argument whose two bytes (0xfffe) are not valid utf-8
NON_UTF8_STRING_ARG = (encode(["uint256", "uint256"], [0x20, 2]) + bytes.fromhex("fffe")).ljust(96, b"\x00")


class TestReturnData(unittest.TestCase):
    def test_empty(self) -> None:
        return_data = ReturnData(b"")
        self.assertTrue(return_data.is_empty())
        self.assertIsNone(return_data.selector)
        self.assertFalse(return_data.is_error_return_data())
        self.assertEqual(return_data.decode_error(), "")

    def test_error(self) -> None:
        return_data = ReturnData(ERROR_SELECTOR + encode(["string"], ["not enough balance"]))
        self.assertTrue(return_data.is_error_return_data())
        self.assertFalse(return_data.is_panic_return_data())
        self.assertEqual(return_data.decode_error(), "not enough balance")
        with self.assertRaises(SymbolicationError):
            return_data.decode_panic()

    def test_panic(self) -> None:
        return_data = ReturnData(PANIC_SELECTOR + encode(["uint256"], [0x11]))
        self.assertTrue(return_data.is_panic_return_data())
        self.assertEqual(return_data.decode_panic(), 0x11)
        with self.assertRaises(SymbolicationError):
            return_data.decode_error()

    def test_malformed_payload(self) -> None:
        with self.assertRaises(SymbolicationError):
            ReturnData(ERROR_SELECTOR + b"\x00" * 4).decode_error()

    def test_non_utf8_error_message(self) -> None:
        return_data = ReturnData(ERROR_SELECTOR + NON_UTF8_STRING_ARG)
        self.assertTrue(return_data.is_error_return_data())
        with self.assertRaises(SymbolicationError):
            return_data.decode_error()

    def test_non_utf8_custom_error_argument(self) -> None:
        result = create_models_and_decode_bytecodes(SOLC_VERSION, *token_compilation())
        token = result.get_contract("Token")
        rejected = CustomError.from_abi("Rejected", [{"name": "reason", "type": "string"}])
        token.add_custom_error(rejected)
        with self.assertRaises(SymbolicationError):
            ReturnData(rejected.selector + NON_UTF8_STRING_ARG).decode_custom_error(token)

    def test_custom_error(self) -> None:
        result = create_models_and_decode_bytecodes(SOLC_VERSION, *token_compilation())
        token = result.get_contract("Token")
        [insufficient_balance] = token.custom_errors

        return_data = ReturnData(insufficient_balance.selector + encode(["uint256"], [42]))
        self.assertTrue(return_data.matches_selector(insufficient_balance.selector))
        custom_error, args = return_data.decode_custom_error(token)
        self.assertIs(custom_error, insufficient_balance)
        self.assertEqual(args, (42,))

        self.assertIsNone(ReturnData(bytes.fromhex("deadbeef")).decode_custom_error(token))
        self.assertIsNone(ReturnData(b"\x01").decode_custom_error(token))


if __name__ == '__main__':
    unittest.main()
