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

from Symbolicator.symAbiTypes import compute_selector
from Symbolicator.symModel import (Bytecode, Contract, ContractFunction, ContractFunctionType,
                                   ContractFunctionVisibility, ContractType, CustomError, Instruction, JumpType,
                                   SourceFile, SourceLocation)
from Shared.symUtils import CustomErrorBuildError, SymbolicationError

SOURCE = """contract A {
    function f() public {
        uint x = 1;
    }
}
"""

# a string argument whose two bytes (0xfffe) are not valid utf-8
NON_UTF8_STRING_ARG = (encode(["uint256", "uint256"], [0x20, 2]) + bytes.fromhex("fffe")).ljust(96, b"\x00")


def public_function(name: str, contract: Contract, location: SourceLocation, signature_types: list) -> \
        ContractFunction:
    return ContractFunction(name, ContractFunctionType.FUNCTION, location, contract=contract,
                            visibility=ContractFunctionVisibility.PUBLIC,
                            selector=compute_selector(name, signature_types), param_types=signature_types)


class TestSourceLocation(unittest.TestCase):
    def setUp(self) -> None:
        self.file = SourceFile(0, "A.sol", SOURCE)
        self.contract_location = SourceLocation(self.file, 0, len(SOURCE) - 1)
        f_offset = SOURCE.index("function f()")
        self.f_location = SourceLocation(self.file, f_offset, SOURCE.index("}\n}") + 1 - f_offset)
        self.statement_location = SourceLocation(self.file, SOURCE.index("uint x"), len("uint x = 1;"))

    def test_text_and_line(self) -> None:
        self.assertEqual(self.statement_location.get_text(), "uint x = 1;")
        self.assertEqual(self.statement_location.get_starting_line_number(), 3)
        self.assertEqual(self.contract_location.get_starting_line_number(), 1)

    def test_contains(self) -> None:
        self.assertTrue(self.f_location.contains(self.statement_location))
        self.assertTrue(self.f_location.contains(self.f_location))
        self.assertFalse(self.statement_location.contains(self.f_location))
        other_file = SourceFile(1, "B.sol", SOURCE)
        self.assertFalse(self.f_location.contains(SourceLocation(other_file, self.statement_location.offset, 1)))

    def test_equals(self) -> None:
        same = SourceLocation(self.file, self.f_location.offset, self.f_location.length)
        self.assertTrue(same.equals(self.f_location))
        self.assertFalse(same.equals(self.statement_location))

    def test_containing_function_is_the_innermost(self) -> None:
        contract = Contract("A", ContractType.CONTRACT, self.contract_location)
        f = public_function("f", contract, self.f_location, [])
        modifier = ContractFunction("m", ContractFunctionType.MODIFIER, self.statement_location, contract=contract)
        self.file.add_function(f)
        self.assertIs(self.statement_location.get_containing_function(), f)
        self.file.add_function(modifier)
        self.assertIs(self.statement_location.get_containing_function(), modifier)
        self.assertIsNone(self.contract_location.get_containing_function())

    def test_utf8_offsets(self) -> None:
        content = "// ünïcode\ncontract B {}"
        file = SourceFile(2, "B.sol", content)
        offset = len(content[:content.index("contract")].encode("utf-8"))
        location = SourceLocation(file, offset, len("contract B {}"))
        self.assertEqual(location.get_text(), "contract B {}")
        self.assertEqual(location.get_starting_line_number(), 2)


class TestContract(unittest.TestCase):
    def setUp(self) -> None:
        self.file = SourceFile(0, "A.sol", SOURCE)
        self.location = SourceLocation(self.file, 0, 10)
        self.base = Contract("Base", ContractType.CONTRACT, self.location)
        self.derived = Contract("Derived", ContractType.CONTRACT, self.location)

    def test_add_local_function(self) -> None:
        f = public_function("f", self.base, self.location, [])
        self.base.add_local_function(f)
        self.assertIs(self.base.get_function_from_selector(bytes.fromhex("26121ff0")), f)
        with self.assertRaises(SymbolicationError):
            self.derived.add_local_function(f)

    def test_internal_functions_have_no_selector_entry(self) -> None:
        g = ContractFunction("g", ContractFunctionType.FUNCTION, self.location, contract=self.base,
                             visibility=ContractFunctionVisibility.INTERNAL)
        self.base.add_local_function(g)
        self.assertEqual(self.base.functions_by_selector, {})
        self.assertEqual(self.base.local_functions, [g])

    def test_special_functions(self) -> None:
        fallback = ContractFunction("", ContractFunctionType.FALLBACK, self.location, contract=self.base,
                                    visibility=ContractFunctionVisibility.EXTERNAL)
        receive = ContractFunction("", ContractFunctionType.RECEIVE, self.location, contract=self.base,
                                   visibility=ContractFunctionVisibility.EXTERNAL, is_payable=True)
        constructor = ContractFunction("", ContractFunctionType.CONSTRUCTOR, self.location, contract=self.derived,
                                       visibility=ContractFunctionVisibility.PUBLIC)
        self.base.add_local_function(fallback)
        self.base.add_local_function(receive)
        self.derived.add_local_function(constructor)
        self.derived.add_next_linearized_base_contract(self.base)
        self.assertIs(self.derived.fallback, fallback)
        self.assertIs(self.derived.receive, receive)
        self.assertIs(self.derived.constructor_function, constructor)
        self.assertIsNone(self.base.constructor_function)

    def test_local_functions_shadow_inherited_ones(self) -> None:
        base_f = public_function("f", self.base, self.location, [])
        base_g = public_function("g", self.base, self.location, ["uint256"])
        derived_f = public_function("f", self.derived, self.location, [])
        self.base.add_local_function(base_f)
        self.base.add_local_function(base_g)
        self.derived.add_local_function(derived_f)
        self.derived.add_next_linearized_base_contract(self.base)

        self.assertIs(self.derived.get_function_from_selector(base_f.selector), derived_f)
        self.assertIs(self.derived.get_function_from_selector(base_g.selector), base_g)
        self.assertEqual(self.derived.linearized_base_contracts, [self.base])
        with self.assertRaises(SymbolicationError):
            self.derived.add_next_linearized_base_contract(self.base)
        with self.assertRaises(SymbolicationError):
            self.derived.add_next_linearized_base_contract(self.derived)

    def test_correct_selector(self) -> None:
        f = public_function("f", self.base, self.location, [])
        self.base.add_local_function(f)
        new_selector = bytes.fromhex("11223344")
        self.assertTrue(self.base.correct_selector("f", new_selector))
        self.assertEqual(f.selector, new_selector)
        self.assertIs(self.base.get_function_from_selector(new_selector), f)
        self.assertIsNone(self.base.get_function_from_selector(bytes.fromhex("26121ff0")))
        self.assertFalse(self.base.correct_selector("unknown", new_selector))

    def test_overloads_are_not_corrected(self) -> None:
        self.base.add_local_function(public_function("set", self.base, self.location, ["uint256"]))
        self.base.add_local_function(public_function("set", self.base, self.location, ["address"]))
        self.assertFalse(self.base.correct_selector("set", bytes.fromhex("11223344")))

    def test_refresh_selectors_after_ancestor_correction(self) -> None:
        f = public_function("f", self.base, self.location, [])
        self.base.add_local_function(f)
        self.derived.add_next_linearized_base_contract(self.base)
        new_selector = bytes.fromhex("11223344")
        self.base.correct_selector("f", new_selector)

        self.assertIsNone(self.derived.get_function_from_selector(new_selector))
        self.derived.refresh_selectors()
        self.assertIs(self.derived.get_function_from_selector(new_selector), f)
        self.assertEqual(list(self.derived.functions_by_selector.keys()), ["11223344"])

    def test_function_and_contract_files_must_match(self) -> None:
        other_file = SourceFile(1, "B.sol", SOURCE)
        with self.assertRaises(SymbolicationError):
            public_function("f", self.base, SourceLocation(other_file, 0, 1), [])
        with self.assertRaises(SymbolicationError):
            ContractFunction("f", ContractFunctionType.FUNCTION, self.location)


class TestContractFunction(unittest.TestCase):
    def setUp(self) -> None:
        file = SourceFile(0, "A.sol", SOURCE)
        location = SourceLocation(file, 0, 10)
        self.contract = Contract("A", ContractType.CONTRACT, location)
        self.location = location

    def test_valid_calldata(self) -> None:
        transfer = public_function("transfer", self.contract, self.location, ["address", "uint256"])
        calldata = encode(["address", "uint256"], ["0x" + "11" * 20, 5])
        self.assertTrue(transfer.is_valid_calldata(calldata))
        self.assertFalse(transfer.is_valid_calldata(calldata[:40]))

    def test_non_utf8_string_calldata_is_invalid(self) -> None:
        set_name = public_function("setName", self.contract, self.location, ["string"])
        self.assertTrue(set_name.is_valid_calldata(encode(["string"], ["token"])))
        self.assertFalse(set_name.is_valid_calldata(NON_UTF8_STRING_ARG))

    def test_unknown_params_accept_any_calldata(self) -> None:
        f = ContractFunction("f", ContractFunctionType.FUNCTION, self.location, contract=self.contract,
                             visibility=ContractFunctionVisibility.PUBLIC, selector=bytes.fromhex("26121ff0"))
        self.assertTrue(f.is_valid_calldata(b"\x01"))

    def test_free_function(self) -> None:
        helper = ContractFunction("helper", ContractFunctionType.FREE_FUNCTION, self.location,
                                  visibility=ContractFunctionVisibility.INTERNAL)
        self.assertIsNone(helper.contract)
        self.assertEqual(repr(helper), "helper")
        self.assertEqual(helper.as_dict()["type"], "free_function")


class TestCustomError(unittest.TestCase):
    def test_from_abi(self) -> None:
        custom_error = CustomError.from_abi("InsufficientBalance", [{"name": "available", "type": "uint256"}])
        self.assertEqual(custom_error.param_types, ["uint256"])
        self.assertEqual(custom_error.selector, compute_selector("InsufficientBalance", ["uint256"]))
        self.assertEqual(custom_error.decode_args(encode(["uint256"], [7])), (7,))

    def test_tuple_params(self) -> None:
        custom_error = CustomError.from_abi("Bad", [{"type": "tuple[]", "components": [{"type": "address"},
                                                                                      {"type": "bool"}]}])
        self.assertEqual(custom_error.param_types, ["(address,bool)[]"])
        self.assertEqual(repr(custom_error), "Bad((address,bool)[])")

    def test_malformed_args(self) -> None:
        custom_error = CustomError.from_abi("Rejected", [{"name": "reason", "type": "string"}])
        with self.assertRaises(SymbolicationError):
            custom_error.decode_args(NON_UTF8_STRING_ARG)
        with self.assertRaises(SymbolicationError):
            custom_error.decode_args(b"\x00" * 4)

    def test_unsupported_entries(self) -> None:
        with self.assertRaises(CustomErrorBuildError):
            CustomError.from_abi("Odd", [{"type": "uint7"}])
        with self.assertRaises(CustomErrorBuildError):
            CustomError.from_abi(None, [])
        with self.assertRaises(CustomErrorBuildError):
            CustomError.from_abi("NoComponents", [{"type": "tuple"}])


class TestBytecode(unittest.TestCase):
    def test_get_instruction(self) -> None:
        file = SourceFile(0, "A.sol", SOURCE)
        contract = Contract("A", ContractType.CONTRACT, SourceLocation(file, 0, 10))
        instructions = [Instruction(0, 0x60, JumpType.NOT_JUMP, push_data=b"\x01"),
                        Instruction(2, 0x56, JumpType.INTERNAL_JUMP)]
        bytecode = Bytecode(contract, False, bytes.fromhex("600156"), instructions, [], [], "0.8.24")

        self.assertIs(bytecode.get_instruction(2), instructions[1])
        self.assertTrue(bytecode.has_instruction(0))
        self.assertFalse(bytecode.has_instruction(1))
        with self.assertRaises(SymbolicationError):
            bytecode.get_instruction(1)
        self.assertEqual(instructions[0].opcode_name, "PUSH1")
        self.assertEqual(instructions[0].length, 2)
        self.assertEqual(bytecode.as_dict()["instructions"][1]["opcode"], "JUMP")


if __name__ == '__main__':
    unittest.main()
