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

from enum import Enum
from typing import Dict


class Opcode(Enum):
    STOP = 0x00
    ADD = 0x01
    MUL = 0x02
    SUB = 0x03
    DIV = 0x04
    SDIV = 0x05
    MOD = 0x06
    SMOD = 0x07
    ADDMOD = 0x08
    MULMOD = 0x09
    EXP = 0x0A
    SIGNEXTEND = 0x0B
    LT = 0x10
    GT = 0x11
    SLT = 0x12
    SGT = 0x13
    EQ = 0x14
    ISZERO = 0x15
    AND = 0x16
    OR = 0x17
    XOR = 0x18
    NOT = 0x19
    BYTE = 0x1A
    SHL = 0x1B
    SHR = 0x1C
    SAR = 0x1D
    KECCAK256 = 0x20
    ADDRESS = 0x30
    BALANCE = 0x31
    ORIGIN = 0x32
    CALLER = 0x33
    CALLVALUE = 0x34
    CALLDATALOAD = 0x35
    CALLDATASIZE = 0x36
    CALLDATACOPY = 0x37
    CODESIZE = 0x38
    CODECOPY = 0x39
    GASPRICE = 0x3A
    EXTCODESIZE = 0x3B
    EXTCODECOPY = 0x3C
    RETURNDATASIZE = 0x3D
    RETURNDATACOPY = 0x3E
    EXTCODEHASH = 0x3F
    BLOCKHASH = 0x40
    COINBASE = 0x41
    TIMESTAMP = 0x42
    NUMBER = 0x43
    PREVRANDAO = 0x44
    GASLIMIT = 0x45
    CHAINID = 0x46
    SELFBALANCE = 0x47
    BASEFEE = 0x48
    BLOBHASH = 0x49
    BLOBBASEFEE = 0x4A
    POP = 0x50
    MLOAD = 0x51
    MSTORE = 0x52
    MSTORE8 = 0x53
    SLOAD = 0x54
    SSTORE = 0x55
    JUMP = 0x56
    JUMPI = 0x57
    PC = 0x58
    MSIZE = 0x59
    GAS = 0x5A
    JUMPDEST = 0x5B
    TLOAD = 0x5C
    TSTORE = 0x5D
    MCOPY = 0x5E
    PUSH0 = 0x5F
    PUSH1 = 0x60
    PUSH20 = 0x73
    PUSH32 = 0x7F
    DUP1 = 0x80
    DUP16 = 0x8F
    SWAP1 = 0x90
    SWAP16 = 0x9F
    LOG0 = 0xA0
    LOG4 = 0xA4
    CREATE = 0xF0
    CALL = 0xF1
    CALLCODE = 0xF2
    RETURN = 0xF3
    DELEGATECALL = 0xF4
    CREATE2 = 0xF5
    STATICCALL = 0xFA
    REVERT = 0xFD
    INVALID = 0xFE
    SELFDESTRUCT = 0xFF


# Opcode name mapping for all the byte values the EVM assigns a meaning to
OPCODE_NAMES: Dict[int, str] = {}
for _op in Opcode:
    OPCODE_NAMES[_op.value] = _op.name
for _i in range(Opcode.PUSH1.value, Opcode.PUSH32.value + 1):
    OPCODE_NAMES[_i] = f"PUSH{_i - Opcode.PUSH0.value}"
for _i in range(Opcode.DUP1.value, Opcode.DUP16.value + 1):
    OPCODE_NAMES[_i] = f"DUP{_i - Opcode.DUP1.value + 1}"
for _i in range(Opcode.SWAP1.value, Opcode.SWAP16.value + 1):
    OPCODE_NAMES[_i] = f"SWAP{_i - Opcode.SWAP1.value + 1}"
for _i in range(Opcode.LOG0.value, Opcode.LOG4.value + 1):
    OPCODE_NAMES[_i] = f"LOG{_i - Opcode.LOG0.value}"


def opcode_name(opcode: int) -> str:
    return OPCODE_NAMES.get(opcode, f"UNRECOGNIZED_0x{opcode:02x}")


def is_push(opcode: int) -> bool:
    # PUSH0 has no immediate data
    return Opcode.PUSH1.value <= opcode <= Opcode.PUSH32.value


def get_push_length(opcode: int) -> int:
    return opcode - Opcode.PUSH0.value


def get_opcode_length(opcode: int) -> int:
    """
    @return the number of bytes the instruction occupies, including its immediate data
    """
    if not is_push(opcode):
        return 1
    return 1 + get_push_length(opcode)


def is_jump(opcode: int) -> bool:
    return opcode == Opcode.JUMP.value or opcode == Opcode.JUMPI.value
