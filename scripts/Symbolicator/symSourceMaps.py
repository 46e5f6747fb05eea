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
Decoding of the compressed source maps emitted by solc.

A source map is a `;` separated list of `s:l:f:j:m` entries, one per instruction: the byte offset, length and
file index of the source range that produced the instruction, its jump type letter and its modifier depth.
Every field that is left empty (or dropped from the end of an entry) keeps the value of the previous entry.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from Symbolicator.symModel import Instruction, JumpType, SourceFile, SourceLocation
from Symbolicator.symOpcodes import get_opcode_length, get_push_length, is_jump, is_push
from Shared.symUtils import fatal_error

bytecode_logger = logging.getLogger("bytecode")

ENTRY_SEPARATOR = ";"
FIELD_SEPARATOR = ":"
NO_FILE = -1


@dataclass
class SourceMapLocation:
    offset: int
    length: int
    file: int


@dataclass
class SourceMap:
    location: SourceMapLocation
    jump_type: JumpType
    modifier_depth: int


def jump_letter_to_jump_type(letter: str) -> JumpType:
    if letter == "i":
        return JumpType.INTO_FUNCTION
    if letter == "o":
        return JumpType.OUT_OF_FUNCTION
    return JumpType.NOT_JUMP


def _parse_int_field(field: str, entry: str) -> int:
    try:
        return int(field)
    except ValueError:
        fatal_error(bytecode_logger, f"Bad source map entry '{entry}': '{field}' is not a number")


def uncompress_source_maps(compressed_source_map: str) -> List[SourceMap]:
    """
    @return one SourceMap per entry, with every omitted field filled in from the previous entry
    """
    if not compressed_source_map:
        return []

    offset, length, file, jump, modifier_depth = 0, 0, NO_FILE, "-", 0
    maps = []
    for entry in compressed_source_map.split(ENTRY_SEPARATOR):
        fields = entry.split(FIELD_SEPARATOR)
        if len(fields) > 5:
            fatal_error(bytecode_logger, f"Bad source map entry '{entry}': too many fields")
        # pad the dropped trailing fields, they are inherited like the empty ones
        fields += [""] * (5 - len(fields))

        if fields[0] != "":
            offset = _parse_int_field(fields[0], entry)
        if fields[1] != "":
            length = _parse_int_field(fields[1], entry)
        if fields[2] != "":
            file = _parse_int_field(fields[2], entry)
        if fields[3] != "":
            jump = fields[3]
        if fields[4] != "":
            modifier_depth = _parse_int_field(fields[4], entry)

        maps.append(SourceMap(SourceMapLocation(offset, length, file), jump_letter_to_jump_type(jump),
                              modifier_depth))
    return maps


def _instruction_jump_type(opcode: int, source_map: Optional[SourceMap]) -> JumpType:
    jump_type = JumpType.NOT_JUMP if source_map is None else source_map.jump_type
    if jump_type == JumpType.NOT_JUMP and is_jump(opcode):
        return JumpType.INTERNAL_JUMP
    return jump_type


def _instruction_location(source_map: Optional[SourceMap],
                          files_by_id: Dict[int, SourceFile]) -> Optional[SourceLocation]:
    if source_map is None or source_map.location.file == NO_FILE:
        return None
    file = files_by_id.get(source_map.location.file)
    if file is None:
        bytecode_logger.debug(f"Source map refers to the unknown file {source_map.location.file}")
        return None
    return SourceLocation(file, source_map.location.offset, source_map.location.length)


def decode_instructions(code: bytes, compressed_source_map: str,
                        files_by_id: Dict[int, SourceFile]) -> Tuple[List[Instruction], bytes]:
    """
    Splits [code] into instructions, attaching to the n-th instruction the n-th source map entry.
    @return the instructions, and the bytes after the last complete instruction. These start at the first push
        whose immediate data runs past the end of the code (e.g. constructor arguments or metadata).
    """
    source_maps = uncompress_source_maps(compressed_source_map)
    instructions = []

    pc = 0
    while pc < len(code):
        opcode = code[pc]
        if is_push(opcode) and pc + get_opcode_length(opcode) > len(code):
            bytecode_logger.debug(f"Truncated push at pc {pc}, {len(code) - pc} bytes of trailing data")
            break

        source_map = source_maps[len(instructions)] if len(instructions) < len(source_maps) else None
        push_data = code[pc + 1:pc + 1 + get_push_length(opcode)] if is_push(opcode) else None
        instructions.append(Instruction(pc, opcode, _instruction_jump_type(opcode, source_map),
                                        push_data=push_data,
                                        location=_instruction_location(source_map, files_by_id),
                                        modifier_depth=0 if source_map is None else source_map.modifier_depth))
        pc += get_opcode_length(opcode)

    if len(instructions) < len(source_maps):
        bytecode_logger.debug(f"{len(source_maps) - len(instructions)} source map entries without an instruction")
    return instructions, code[pc:]
