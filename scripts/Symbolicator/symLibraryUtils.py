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

"""
Library linkage and immutable variable regions of compiler emitted bytecode.

An unlinked bytecode hex string contains a 40 character placeholder (`__$<34 hex chars>$__`, or the legacy
`__<path>:<Name>______` form) at every position where a library address is to be written. Both regions are zero
filled in the normalized code, so that it can be compared against deployed code.
"""

import logging
from typing import Any, Dict, List, Tuple

from Symbolicator.symModel import ImmutableReference
from Shared.symUtils import ADDRESS_SIZE, fatal_error, strip_hex_prefix

bytecode_logger = logging.getLogger("bytecode")

PLACEHOLDER_PREFIX = "__"
PLACEHOLDER_HEX_LENGTH = 2 * ADDRESS_SIZE


def get_library_address_positions(link_references: Dict[str, Dict[str, List[Dict[str, Any]]]]) -> List[int]:
    """
    @param link_references: the `linkReferences` of an evm bytecode output, {file: {library: [{start, length}]}}
    @return byte offsets of the library address regions, sorted
    """
    positions = []
    for file_name, libraries in link_references.items():
        for library_name, references in libraries.items():
            for reference in references:
                if reference.get("length") != ADDRESS_SIZE or not isinstance(reference.get("start"), int):
                    fatal_error(bytecode_logger, f"Bad link reference of library {library_name} in {file_name}: "
                                                 f"{reference}")
                positions.append(reference["start"])
    return sorted(set(positions))


def find_placeholder_positions(bytecode_hex: str) -> List[int]:
    """
    @return byte offsets of the library placeholders that are still in the hex string
    """
    positions = []
    i = bytecode_hex.find(PLACEHOLDER_PREFIX)
    while i != -1:
        # a placeholder is byte aligned, an odd index is an underscore in the middle of the previous placeholder
        if i % 2 == 0 and i + PLACEHOLDER_HEX_LENGTH <= len(bytecode_hex):
            positions.append(i // 2)
            i = bytecode_hex.find(PLACEHOLDER_PREFIX, i + PLACEHOLDER_HEX_LENGTH)
        else:
            i = bytecode_hex.find(PLACEHOLDER_PREFIX, i + 1)
    return positions


def normalize_compiler_output_bytecode(bytecode_hex: str,
                                       link_references: Dict[str, Dict[str, List[Dict[str, Any]]]]) \
        -> Tuple[bytes, List[int]]:
    """
    Zero fills the library address regions of a compiler output bytecode.
    @param bytecode_hex: the `object` field of an evm bytecode output, with or without a 0x prefix
    @return the normalized code, and the sorted byte offsets of the library address regions
    """
    bytecode_hex = strip_hex_prefix(bytecode_hex)
    positions = sorted(set(get_library_address_positions(link_references)) |
                       set(find_placeholder_positions(bytecode_hex)))

    zero_address = "0" * PLACEHOLDER_HEX_LENGTH
    for position in positions:
        hex_position = 2 * position
        if hex_position + PLACEHOLDER_HEX_LENGTH > len(bytecode_hex):
            fatal_error(bytecode_logger, f"Library address at {position} is out of the bytecode bounds")
        bytecode_hex = bytecode_hex[:hex_position] + zero_address + \
            bytecode_hex[hex_position + PLACEHOLDER_HEX_LENGTH:]

    try:
        normalized_code = bytes.fromhex(bytecode_hex)
    except ValueError as e:
        fatal_error(bytecode_logger, f"Bytecode is not a valid hex string after zero filling the library "
                                     f"addresses: {e}")
    bytecode_logger.debug(f"Normalized {len(normalized_code)} bytes with {len(positions)} library addresses")
    return normalized_code, positions


def get_immutable_references(immutable_references: Dict[str, List[Dict[str, Any]]],
                             code_length: int) -> List[ImmutableReference]:
    """
    Flattens the `immutableReferences` of a deployed bytecode output, {ast id: [{start, length}]}.
    Entries are taken in ascending ast id order.
    """
    def id_order(key: str) -> Tuple[int, int]:
        return (0, int(key)) if key.isdigit() else (1, 0)

    references = []
    # sorted is stable, non numeric keys stay in their original order after the numeric ones
    for ast_id in sorted(immutable_references.keys(), key=id_order):
        for reference in immutable_references[ast_id]:
            start = reference.get("start")
            length = reference.get("length")
            if not isinstance(start, int) or not isinstance(length, int):
                fatal_error(bytecode_logger, f"Bad immutable reference of {ast_id}: {reference}")
            if start < 0 or length < 0 or start + length > code_length:
                fatal_error(bytecode_logger, f"Immutable reference [{start}, {start + length}) of {ast_id} is out "
                                             f"of the bytecode bounds ({code_length} bytes)")
            references.append(ImmutableReference(start, length))
    return references
