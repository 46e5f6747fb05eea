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

from typing import Any, List, Optional, Tuple

from eth_abi import decode
from eth_abi.exceptions import DecodingError

from Symbolicator.symModel import Contract, CustomError
from Shared.symUtils import SELECTOR_SIZE, SymbolicationError

# Error(string)
ERROR_SELECTOR = bytes.fromhex("08c379a0")
# Panic(uint256)
PANIC_SELECTOR = bytes.fromhex("4e487b71")


class ReturnData:
    """
    The data a call returned or reverted with
    """

    def __init__(self, value: bytes):
        self.value = value
        self.__selector = value[:SELECTOR_SIZE] if len(value) >= SELECTOR_SIZE else None

    @property
    def selector(self) -> Optional[bytes]:
        return self.__selector

    def is_empty(self) -> bool:
        return len(self.value) == 0

    def matches_selector(self, selector: bytes) -> bool:
        return self.__selector == selector

    def is_error_return_data(self) -> bool:
        return self.matches_selector(ERROR_SELECTOR)

    def is_panic_return_data(self) -> bool:
        return self.matches_selector(PANIC_SELECTOR)

    def __decode_payload(self, types: List[str], what: str) -> Tuple[Any, ...]:
        try:
            return decode(types, self.value[SELECTOR_SIZE:])
        except (DecodingError, UnicodeDecodeError) as e:
            raise SymbolicationError(f"Malformed {what} return data 0x{self.value.hex()}: {e}") from e

    def decode_error(self) -> str:
        if self.is_empty():
            return ""
        if not self.is_error_return_data():
            raise SymbolicationError("Expected return data to be an Error(string)")
        return self.__decode_payload(["string"], "Error(string)")[0]

    def decode_panic(self) -> int:
        if not self.is_panic_return_data():
            raise SymbolicationError("Expected return data to be a Panic(uint256)")
        return self.__decode_payload(["uint256"], "Panic(uint256)")[0]

    def decode_custom_error(self, contract: Contract) -> Optional[Tuple[CustomError, Tuple[Any, ...]]]:
        """
        @return the custom error of [contract] the data was reverted with and its decoded arguments, or None if
            the selector isn't one of the contract's custom errors
        """
        if self.__selector is None:
            return None
        custom_error = contract.get_custom_error(self.__selector)
        if custom_error is None:
            return None
        return custom_error, self.__decode_payload(custom_error.param_types, custom_error.name)
