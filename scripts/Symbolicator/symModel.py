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

from dataclasses import dataclass
from enum import auto
from typing import Any, Dict, List, Optional, Tuple

from eth_abi import decode, is_encodable_type
from eth_abi.exceptions import DecodingError

from Symbolicator.symAbiTypes import abi_params_canonical_types, compute_selector
from Symbolicator.symOpcodes import get_opcode_length, opcode_name
from Shared.symUtils import NoValEnum, SymbolicationError, CustomErrorBuildError, InvalidAbiTypeError


class ContractType(NoValEnum):
    CONTRACT = auto()
    LIBRARY = auto()


class ContractFunctionType(NoValEnum):
    CONSTRUCTOR = auto()
    FUNCTION = auto()
    FALLBACK = auto()
    RECEIVE = auto()
    GETTER = auto()
    MODIFIER = auto()
    FREE_FUNCTION = auto()


class ContractFunctionVisibility(NoValEnum):
    PRIVATE = auto()
    INTERNAL = auto()
    PUBLIC = auto()
    EXTERNAL = auto()


class JumpType(NoValEnum):
    NOT_JUMP = auto()
    INTO_FUNCTION = auto()
    OUT_OF_FUNCTION = auto()
    INTERNAL_JUMP = auto()


EXTERNALLY_VISIBLE = (ContractFunctionVisibility.PUBLIC, ContractFunctionVisibility.EXTERNAL)
SELECTOR_FUNCTION_TYPES = (ContractFunctionType.FUNCTION, ContractFunctionType.GETTER)


class SourceFile:
    def __init__(self, file_id: int, source_name: str, content: str):
        self.file_id = file_id
        self.source_name = source_name
        self.content = content
        self.functions: List['ContractFunction'] = []
        # locations are byte offsets into the utf-8 encoding of the source
        self.__encoded_content = content.encode("utf-8")

    @property
    def encoded_content(self) -> bytes:
        return self.__encoded_content

    def add_function(self, func: 'ContractFunction') -> None:
        self.functions.append(func)

    def get_containing_function(self, location: 'SourceLocation') -> Optional['ContractFunction']:
        """
        @return the innermost function (or modifier) of this file whose location contains [location]
        """
        containing = [f for f in self.functions if f.location.contains(location)]
        if not containing:
            return None
        return min(containing, key=lambda f: f.location.length)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.file_id,
            "sourceName": self.source_name,
        }

    def __repr__(self) -> str:
        return f"SourceFile({self.file_id}, {self.source_name})"


class SourceLocation:
    """
    A byte range [offset, offset + length) in a source file. Built from an AST `start:length:fileIndex` triple.
    """
    def __init__(self, file: SourceFile, offset: int, length: int):
        self.file = file
        self.offset = offset
        self.length = length

    def get_text(self) -> str:
        return self.file.encoded_content[self.offset:self.offset + self.length].decode("utf-8", errors="replace")

    def get_starting_line_number(self) -> int:
        return self.file.encoded_content.count(b"\n", 0, self.offset) + 1

    def get_containing_function(self) -> Optional['ContractFunction']:
        return self.file.get_containing_function(self)

    def contains(self, other: 'SourceLocation') -> bool:
        if self.file is not other.file:
            return False
        if other.offset < self.offset:
            return False
        return other.offset + other.length <= self.offset + self.length

    def equals(self, other: 'SourceLocation') -> bool:
        return self.file is other.file and self.offset == other.offset and self.length == other.length

    def as_dict(self) -> Dict[str, Any]:
        return {
            "file": self.file.file_id,
            "offset": self.offset,
            "length": self.length,
        }

    def __repr__(self) -> str:
        return f"{self.file.source_name}:{self.offset}:{self.length}"


class ContractFunction:
    def __init__(self,
                 name: str,
                 func_type: ContractFunctionType,
                 location: SourceLocation,
                 contract: Optional['Contract'] = None,
                 visibility: Optional[ContractFunctionVisibility] = None,
                 is_payable: bool = False,
                 selector: Optional[bytes] = None,
                 param_types: Optional[List[str]] = None,
                 ):
        if contract is not None and contract.location.file is not location.file:
            raise SymbolicationError(f"Function {name} can't be defined in a different file than its contract "
                                     f"{contract.name}")
        if contract is None and func_type != ContractFunctionType.FREE_FUNCTION:
            raise SymbolicationError(f"Function {name} of type {func_type} must belong to a contract")
        self.name = name
        self.type = func_type
        self.location = location
        self.contract = contract
        self.visibility = visibility
        self.is_payable = is_payable
        self.selector = selector
        # the parameter types as declared in the matching ABI entry, None if no entry matched
        self.param_types = param_types

    def is_valid_calldata(self, calldata: bytes) -> bool:
        """
        @param calldata: the call arguments, without the selector
        @return True if the calldata decodes with this function's parameter types.
            If we don't know the parameter types, we assume the call is valid.
        """
        if self.param_types is None:
            return True
        try:
            decode(self.param_types, calldata)
            return True
        except (DecodingError, UnicodeDecodeError):
            return False

    def as_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": str(self.type),
            "location": self.location.as_dict(),
            "contract": None if self.contract is None else self.contract.name,
            "visibility": None if self.visibility is None else str(self.visibility),
            "isPayable": self.is_payable,
            "selector": None if self.selector is None else self.selector.hex(),
            "paramTypes": self.param_types,
        }

    def __repr__(self) -> str:
        contract_name = "" if self.contract is None else f"{self.contract.name}."
        return f"{contract_name}{self.name}"


class CustomError:
    def __init__(self, name: str, param_types: List[str], selector: bytes):
        self.name = name
        self.param_types = param_types
        self.selector = selector

    @staticmethod
    def from_abi(name: Optional[str], inputs: Optional[List[Dict[str, Any]]]) -> 'CustomError':
        """
        Builds a custom error from an ABI entry of type "error"
        @raise CustomErrorBuildError if the entry's parameter types are not supported
        """
        if not name:
            raise CustomErrorBuildError(f"Custom error ABI entry without a name (inputs: {inputs})")
        try:
            param_types = abi_params_canonical_types(inputs)
        except InvalidAbiTypeError as e:
            raise CustomErrorBuildError(f"Bad parameters for custom error {name}: {e}") from e
        for param_type in param_types:
            if not is_encodable_type(param_type):
                raise CustomErrorBuildError(f"Unsupported parameter type {param_type} for custom error {name}")
        return CustomError(name, param_types, compute_selector(name, param_types))

    def decode_args(self, payload: bytes) -> Tuple[Any, ...]:
        """
        @param payload: the revert data following the selector
        """
        try:
            return decode(self.param_types, payload)
        except (DecodingError, UnicodeDecodeError) as e:
            raise SymbolicationError(f"Malformed arguments for custom error {self!r}: {e}") from e

    def as_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "paramTypes": self.param_types,
            "selector": self.selector.hex(),
        }

    def __repr__(self) -> str:
        return f"{self.name}({','.join(self.param_types)})"


class Contract:
    def __init__(self, name: str, contract_type: ContractType, location: SourceLocation):
        self.name = name
        self.type = contract_type
        self.location = location
        self.local_functions: List[ContractFunction] = []
        self.custom_errors: List[CustomError] = []
        # most- to least-derived, excluding this contract and the (unmodeled) interfaces
        self.linearized_base_contracts: List['Contract'] = []
        self.constructor_function: Optional[ContractFunction] = None
        self.fallback: Optional[ContractFunction] = None
        self.receive: Optional[ContractFunction] = None
        # the effective external surface of the contract, including inherited functions
        self.__selector_hex_to_function: Dict[str, ContractFunction] = {}

    @property
    def functions_by_selector(self) -> Dict[str, ContractFunction]:
        return dict(self.__selector_hex_to_function)

    def add_local_function(self, func: ContractFunction) -> None:
        if func.contract is not self:
            raise SymbolicationError(f"Function {func.name} isn't local to {self.name}")

        if func.visibility in EXTERNALLY_VISIBLE:
            if func.type in SELECTOR_FUNCTION_TYPES:
                if func.selector is not None:
                    self.__selector_hex_to_function[func.selector.hex()] = func
            elif func.type == ContractFunctionType.CONSTRUCTOR:
                self.constructor_function = func
            elif func.type == ContractFunctionType.FALLBACK:
                self.fallback = func
            elif func.type == ContractFunctionType.RECEIVE:
                self.receive = func

        self.local_functions.append(func)

    def add_custom_error(self, custom_error: CustomError) -> None:
        self.custom_errors.append(custom_error)

    def add_next_linearized_base_contract(self, base_contract: 'Contract') -> None:
        if base_contract is self or base_contract in self.linearized_base_contracts:
            raise SymbolicationError(f"{base_contract.name} can't be linearized twice into {self.name}")
        self.linearized_base_contracts.append(base_contract)
        self.__inherit_from(base_contract)

    def __inherit_from(self, base_contract: 'Contract') -> None:
        if self.fallback is None and base_contract.fallback is not None:
            self.fallback = base_contract.fallback

        if self.receive is None and base_contract.receive is not None:
            self.receive = base_contract.receive

        for base_function in base_contract.local_functions:
            if base_function.type not in SELECTOR_FUNCTION_TYPES:
                continue
            if base_function.visibility not in EXTERNALLY_VISIBLE or base_function.selector is None:
                continue
            # a local re-declaration (or a more derived ancestor) takes precedence
            self.__selector_hex_to_function.setdefault(base_function.selector.hex(), base_function)

    def refresh_selectors(self) -> None:
        """
        Recomputes the selector table from the current selectors of the local and inherited functions
        """
        self.__selector_hex_to_function = {}
        for func in self.local_functions:
            if func.type in SELECTOR_FUNCTION_TYPES and func.visibility in EXTERNALLY_VISIBLE \
                    and func.selector is not None:
                self.__selector_hex_to_function[func.selector.hex()] = func
        for base_contract in self.linearized_base_contracts:
            self.__inherit_from(base_contract)

    def get_function_from_selector(self, selector: bytes) -> Optional[ContractFunction]:
        return self.__selector_hex_to_function.get(selector.hex())

    def get_custom_error(self, selector: bytes) -> Optional[CustomError]:
        for custom_error in self.custom_errors:
            if custom_error.selector == selector:
                return custom_error
        return None

    def correct_selector(self, function_name: str, selector: bytes) -> bool:
        """
        Sets the selector of the single externally visible function named [function_name].
        @return False if there is no such function, or if the name is overloaded
        """
        candidates = [f for f in self.__selector_hex_to_function.values() if f.name == function_name]
        candidates += [f for f in self.local_functions
                       if f.name == function_name and f.selector is None and f.type in SELECTOR_FUNCTION_TYPES
                       and f.visibility in EXTERNALLY_VISIBLE]
        if len(candidates) != 1:
            return False

        function_to_correct = candidates[0]
        if function_to_correct.selector is not None:
            self.__selector_hex_to_function.pop(function_to_correct.selector.hex(), None)

        function_to_correct.selector = selector
        self.__selector_hex_to_function[selector.hex()] = function_to_correct
        return True

    def as_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": str(self.type),
            "location": self.location.as_dict(),
            "localFunctions": [f.as_dict() for f in self.local_functions],
            "linearizedBaseContracts": [c.name for c in self.linearized_base_contracts],
            "customErrors": [e.as_dict() for e in self.custom_errors],
            "selectors": {selector: repr(f) for selector, f in self.__selector_hex_to_function.items()},
        }

    def __repr__(self) -> str:
        return f"Contract({self.name})"


@dataclass
class ImmutableReference:
    start: int
    length: int

    def as_dict(self) -> Dict[str, Any]:
        return {
            "start": self.start,
            "length": self.length,
        }


class Instruction:
    def __init__(self, pc: int, opcode: int, jump_type: JumpType,
                 push_data: Optional[bytes] = None,
                 location: Optional[SourceLocation] = None,
                 modifier_depth: int = 0):
        self.pc = pc
        self.opcode = opcode
        self.jump_type = jump_type
        self.push_data = push_data
        self.location = location
        self.modifier_depth = modifier_depth

    @property
    def opcode_name(self) -> str:
        return opcode_name(self.opcode)

    @property
    def length(self) -> int:
        return get_opcode_length(self.opcode)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "pc": self.pc,
            "opcode": self.opcode_name,
            "jumpType": str(self.jump_type),
            "pushData": None if self.push_data is None else self.push_data.hex(),
            "location": None if self.location is None else self.location.as_dict(),
        }

    def __repr__(self) -> str:
        push_data = "" if self.push_data is None else f" 0x{self.push_data.hex()}"
        return f"{self.pc}: {self.opcode_name}{push_data}"


class Bytecode:
    def __init__(self,
                 contract: Contract,
                 is_deployment: bool,
                 normalized_code: bytes,
                 instructions: List[Instruction],
                 library_address_positions: List[int],
                 immutable_references: List[ImmutableReference],
                 compiler_version: str,
                 trailing_data: bytes = b"",
                 ):
        self.contract = contract
        self.is_deployment = is_deployment
        self.normalized_code = normalized_code
        self.instructions = instructions
        self.library_address_positions = library_address_positions
        self.immutable_references = immutable_references
        self.compiler_version = compiler_version
        # bytes after the last complete instruction, e.g. the metadata hash or constructor arguments
        self.trailing_data = trailing_data
        self.__pc_to_instruction = {instruction.pc: instruction for instruction in instructions}

    def get_instruction(self, pc: int) -> Instruction:
        instruction = self.__pc_to_instruction.get(pc)
        if instruction is None:
            raise SymbolicationError(f"There's no instruction at pc {pc} of {self.contract.name}")
        return instruction

    def has_instruction(self, pc: int) -> bool:
        return pc in self.__pc_to_instruction

    def as_dict(self) -> Dict[str, Any]:
        return {
            "contract": self.contract.name,
            "isDeployment": self.is_deployment,
            "normalizedCode": self.normalized_code.hex(),
            "instructions": [i.as_dict() for i in self.instructions],
            "libraryAddressPositions": self.library_address_positions,
            "immutableReferences": [r.as_dict() for r in self.immutable_references],
            "compilerVersion": self.compiler_version,
            "trailingData": self.trailing_data.hex(),
        }

    def __repr__(self) -> str:
        kind = "deployment" if self.is_deployment else "runtime"
        return f"Bytecode({self.contract.name}, {kind}, {len(self.instructions)} instructions)"
