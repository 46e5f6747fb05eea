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

import copy
import sys
import unittest
from pathlib import Path

scripts_dir_path = Path(__file__).parent.parent.resolve()
sys.path.insert(0, str(scripts_dir_path))

from Crypto.Hash import keccak

from Symbolicator.symBuild import create_models_and_decode_bytecodes
from Symbolicator.symDiagnostics import DiagnosticKind
from Symbolicator.symModel import JumpType
from Shared.symUtils import SelectorCorrectionError
from compilationFixtures import (APPROVE_SNIPPET, CHILD_SOURCE_NAME, CHILD_UTIL_RUNTIME_CODE, CORRECT_F_SELECTOR,
                                 PARENT_SOURCE_NAME, PARENT_UTIL_RUNTIME_CODE, SOLC_VERSION, TOKEN_SNIPPET,
                                 TOKEN_SOURCE_NAME, TRANSFER_PAYMENT_SELECTOR, TRANSFER_SNIPPET,
                                 TRANSFER_WITH_DATA_SELECTOR, abi_error, inheritance_compilation,
                                 overloads_compilation, selector_correction_compilation, split_inheritance_compilation,
                                 token_compilation)


class TestTokenBuild(unittest.TestCase):
    def setUp(self) -> None:
        self.result = create_models_and_decode_bytecodes(SOLC_VERSION, *token_compilation())
        token = self.result.get_contract("Token")
        self.deployment = self.result.get_bytecode(token, True)
        self.runtime = self.result.get_bytecode(token, False)

    def test_bytecodes(self) -> None:
        self.assertEqual(len(self.result.bytecodes), 2)
        self.assertIs(self.deployment.contract, self.result.get_contract("Token", TOKEN_SOURCE_NAME))
        self.assertEqual(self.deployment.compiler_version, SOLC_VERSION)
        self.assertEqual(self.result.diagnostics, [])

    def test_library_is_zero_filled(self) -> None:
        self.assertEqual(self.deployment.library_address_positions, [1])
        self.assertEqual(self.deployment.normalized_code, bytes.fromhex("73" + "00" * 20 + "5b00"))
        self.assertEqual([i.pc for i in self.deployment.instructions], [0, 21, 22])
        self.assertEqual(self.deployment.instructions[0].push_data, bytes(20))

    def test_lengths_cover_the_code(self) -> None:
        for bytecode in self.result.bytecodes:
            total = sum(i.length for i in bytecode.instructions) + len(bytecode.trailing_data)
            self.assertEqual(total, len(bytecode.normalized_code))

    def test_instruction_locations(self) -> None:
        self.assertEqual(self.deployment.get_instruction(0).location.get_text(), TOKEN_SNIPPET)
        self.assertIsNone(self.deployment.get_instruction(21).location)

        push1, push2, jump = self.runtime.instructions
        self.assertEqual(push1.location.get_text(), TRANSFER_SNIPPET)
        self.assertTrue(push2.location.equals(push1.location))
        self.assertEqual(push1.location.get_containing_function().name, "transfer")
        self.assertEqual(jump.location.get_text(), APPROVE_SNIPPET)
        self.assertEqual(jump.jump_type, JumpType.INTO_FUNCTION)

    def test_custom_errors(self) -> None:
        token = self.result.get_contract("Token")
        [custom_error] = token.custom_errors
        k = keccak.new(digest_bits=256)
        k.update(b"InsufficientBalance(uint256)")
        self.assertEqual(custom_error.selector, k.digest()[:4])
        self.assertIs(token.get_custom_error(custom_error.selector), custom_error)

    def test_selectors_match_method_identifiers(self) -> None:
        token = self.result.get_contract("Token")
        for signature, selector in {"approve(address,uint256)": "095ea7b3", "balanceOf(address)": "70a08231",
                                    "transfer(address,uint256)": "a9059cbb"}.items():
            self.assertEqual(token.get_function_from_selector(bytes.fromhex(selector)).name, signature.split("(")[0])

    def test_as_dict(self) -> None:
        as_dict = self.result.as_dict()
        self.assertEqual([c["name"] for c in as_dict["contracts"]], ["Token"])
        self.assertEqual(as_dict["bytecodes"][1]["normalizedCode"], "6001600256")
        self.assertEqual(as_dict["freeFunctions"][0]["name"], "helper")


class TestInheritanceBuild(unittest.TestCase):
    def test_abstract_contract_has_no_bytecode(self) -> None:
        result = create_models_and_decode_bytecodes(SOLC_VERSION, *inheritance_compilation())
        self.assertEqual(sorted({b.contract.name for b in result.bytecodes}), ["A", "B"])
        self.assertIsNone(result.get_bytecode(result.get_contract("C"), True))
        self.assertIs(result.get_bytecode(result.get_contract("A"), True).contract, result.get_contract("A"))
        [diagnostic] = result.diagnostics
        self.assertEqual(diagnostic.kind, DiagnosticKind.ABSTRACT_CONTRACT)
        self.assertEqual(diagnostic.contract_name, "C")

    def test_inherited_function_resolves(self) -> None:
        result = create_models_and_decode_bytecodes(SOLC_VERSION, *inheritance_compilation())
        b = result.get_contract("B")
        f = b.get_function_from_selector(bytes.fromhex("26121ff0"))
        self.assertEqual(f.name, "f")
        self.assertIs(f.contract, result.get_contract("A"))


class TestSelectorCorrection(unittest.TestCase):
    def test_selectors_are_corrected_in_ancestors_and_inheritors(self) -> None:
        result = create_models_and_decode_bytecodes("0.5.17", *selector_correction_compilation())
        base = result.get_contract("Base")
        derived = result.get_contract("Derived")
        correct = bytes.fromhex(CORRECT_F_SELECTOR)

        f = base.get_function_from_selector(correct)
        self.assertIsNotNone(f)
        self.assertEqual(f.selector, correct)
        self.assertIs(derived.get_function_from_selector(correct), f)
        self.assertEqual(list(derived.functions_by_selector.keys()), [CORRECT_F_SELECTOR])
        self.assertEqual(result.diagnostics, [])

    def test_unknown_function_in_strict_mode(self) -> None:
        with self.assertRaises(SelectorCorrectionError):
            create_models_and_decode_bytecodes("0.5.17", *selector_correction_compilation({"h(uint256)": "11223344"}))

    def test_unknown_function_is_a_diagnostic(self) -> None:
        result = create_models_and_decode_bytecodes(
            "0.5.17", *selector_correction_compilation({"h(uint256)": "11223344"}), strict_selectors=False)
        self.assertEqual([d.kind for d in result.diagnostics], [DiagnosticKind.SELECTOR_NOT_CORRECTED] * 2)
        self.assertEqual([d.contract_name for d in result.diagnostics], ["Base", "Derived"])


class TestSplitSourcesBuild(unittest.TestCase):
    def test_bytecodes_of_contracts_sharing_a_name(self) -> None:
        result = create_models_and_decode_bytecodes(SOLC_VERSION, *split_inheritance_compilation(child_first=True))
        parent_util = result.get_contract("Util", PARENT_SOURCE_NAME)
        child_util = result.get_contract("Util", CHILD_SOURCE_NAME)
        self.assertEqual(result.get_bytecode(parent_util, False).normalized_code,
                         bytes.fromhex(PARENT_UTIL_RUNTIME_CODE))
        self.assertEqual(result.get_bytecode(child_util, False).normalized_code,
                         bytes.fromhex(CHILD_UTIL_RUNTIME_CODE))
        self.assertEqual(result.diagnostics, [])

    def test_inherited_selector_across_files(self) -> None:
        result = create_models_and_decode_bytecodes(SOLC_VERSION, *split_inheritance_compilation(child_first=True))
        f = result.get_contract("Child").get_function_from_selector(bytes.fromhex("26121ff0"))
        self.assertIs(f.contract, result.get_contract("Parent"))


class TestOverloadsBuild(unittest.TestCase):
    def test_strict_correction_accepts_all_overloads(self) -> None:
        result = create_models_and_decode_bytecodes(SOLC_VERSION, *overloads_compilation())
        wallet = result.get_contract("Wallet")
        self.assertEqual(sorted(wallet.functions_by_selector.keys()),
                         sorted(["a9059cbb", TRANSFER_WITH_DATA_SELECTOR, TRANSFER_PAYMENT_SELECTOR]))
        self.assertEqual(result.diagnostics, [])


class TestCustomErrorDiagnostics(unittest.TestCase):
    def test_bad_entries_are_skipped(self) -> None:
        compiler_input, compiler_output = token_compilation()
        compiler_output = copy.deepcopy(compiler_output)
        compiler_output["contracts"][TOKEN_SOURCE_NAME]["Token"]["abi"] += [
            abi_error("Odd", "uint7"),
            abi_error("Fine", "address", "bool"),
        ]
        with self.assertLogs("custom_errors", level="WARNING"):
            result = create_models_and_decode_bytecodes(SOLC_VERSION, compiler_input, compiler_output)

        token = result.get_contract("Token")
        self.assertEqual([e.name for e in token.custom_errors], ["InsufficientBalance", "Fine"])
        [diagnostic] = result.diagnostics
        self.assertEqual(diagnostic.kind, DiagnosticKind.CUSTOM_ERROR_SKIPPED)
        self.assertEqual(diagnostic.contract_name, "Token")


if __name__ == '__main__':
    unittest.main()
