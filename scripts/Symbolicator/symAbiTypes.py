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
Canonical ABI type strings and selector hashing.

A selector is the first 4 bytes of the keccak-256 hash of a canonical signature `name(type1,type2,...)`.
Parameter types reach us from two places: the AST of a function definition (when the compiler did not
write down the selector for us), and the ABI json entries (functions, getters and custom errors).
"""

import logging
import re
from typing import Any, Callable, Dict, List, Optional

from Crypto.Hash import keccak

from Symbolicator.symNodeFilters import NodeFilters
from Shared.symUtils import SELECTOR_SIZE, InvalidAbiTypeError

ast_logger = logging.getLogger("ast")

# ast node id -> ast node
NodeLookup = Callable[[int], Optional[Dict[str, Any]]]

TUPLE = "tuple"
# solc refuses to compile enums with more members than fit in a uint8
MAX_ENUM_MEMBERS = 256


def keccak256(data: bytes) -> bytes:
    k = keccak.new(digest_bits=256)
    k.update(data)
    return k.digest()


def compute_signature(name: str, param_types: List[str]) -> str:
    return name + "(" + ",".join(param_types) + ")"


def compute_selector(name: str, param_types: List[str]) -> bytes:
    return keccak256(str.encode(compute_signature(name, param_types)))[:SELECTOR_SIZE]


def canonical_elementary_name(name: str) -> str:
    """
    The ABI only knows the sized versions of the integer and fixed point aliases
    """
    if name == "uint":
        return "uint256"
    elif name == "int":
        return "int256"
    elif name == "fixed":
        return "fixed128x18"
    elif name == "ufixed":
        return "ufixed128x18"
    elif name == "byte":
        return "bytes1"
    else:
        return name


def abi_param_canonical_type(abi_param_entry: Dict[str, Any]) -> str:
    """
    Turns an ABI parameter entry into its canonical type string. Structs appear in the ABI as
    `tuple`, `tuple[]`, `tuple[2][]`, ... with their members listed under "components"; these are expanded
    to the `(t1,t2)` form that is hashed into selectors.
    """
    if not isinstance(abi_param_entry, dict) or "type" not in abi_param_entry:
        raise InvalidAbiTypeError(f"Invalid ABI parameter entry: {abi_param_entry}")

    type_str = abi_param_entry["type"]
    if not isinstance(type_str, str) or type_str == "":
        raise InvalidAbiTypeError(f"Invalid ABI parameter type: {type_str}")

    if type_str.startswith(TUPLE):
        array_suffix = type_str[len(TUPLE):]
        if not re.fullmatch(r"(\[\d*])*", array_suffix):
            raise InvalidAbiTypeError(f"Invalid ABI tuple type: {type_str}")
        components = abi_param_entry.get("components")
        if components is None:
            raise InvalidAbiTypeError(f"ABI tuple parameter without components: {abi_param_entry}")
        members = ",".join(abi_param_canonical_type(c) for c in components)
        return f"({members}){array_suffix}"

    return type_str


def abi_params_canonical_types(abi_params: Optional[List[Dict[str, Any]]]) -> List[str]:
    return [abi_param_canonical_type(p) for p in (abi_params or [])]


def ast_param_canonical_type(param: Dict[str, Any], lookup_reference: NodeLookup) -> str:
    """
    Canonicalizes the declared type of a function parameter (a VariableDeclaration node):
    contracts and interfaces are addresses, enums are uint8, arrays, mappings and function types keep the
    compiler's type string, user defined value types are their underlying type and structs are expanded
    into a tuple of their members.
    """
    if NodeFilters.is_contract_type(param):
        return "address"

    if NodeFilters.is_enum_type(param):
        enum_def = lookup_reference(param["typeName"].get("referencedDeclaration", -1))
        if enum_def is not None and len(enum_def.get("members", [])) > MAX_ENUM_MEMBERS:
            ast_logger.warning(f"Enum {enum_def.get('name')} has more than {MAX_ENUM_MEMBERS} members, "
                               f"its selector may be wrong")
        return "uint8"

    type_name = param["typeName"]
    if NodeFilters.TypeNameNode.ARRAY.is_this_node_type(type_name) or \
            NodeFilters.TypeNameNode.FUNCTION.is_this_node_type(type_name) or \
            NodeFilters.TypeNameNode.MAPPING.is_this_node_type(type_name):
        return type_name["typeDescriptions"]["typeString"]

    if NodeFilters.is_user_defined_type_name(param):
        return user_defined_canonical_type(param, lookup_reference)

    if NodeFilters.TypeNameNode.ELEMENTARY.is_this_node_type(type_name):
        return canonical_elementary_name(type_name["name"])

    type_string = type_name.get("typeDescriptions", {}).get("typeString", "")
    ast_logger.debug(f"Unknown type name node {type_name.get('nodeType')}, using its type string {type_string}")
    return type_string


def user_defined_canonical_type(param: Dict[str, Any], lookup_reference: NodeLookup) -> str:
    type_name = param["typeName"]
    def_node = lookup_reference(type_name["referencedDeclaration"]) \
        if "referencedDeclaration" in type_name else None

    if def_node is not None and NodeFilters.is_user_defined_value_type_definition(def_node):
        underlying = def_node["underlyingType"]
        return canonical_elementary_name(underlying["name"])

    if def_node is not None and NodeFilters.is_struct_definition(def_node):
        members = ",".join(ast_param_canonical_type(m, lookup_reference) for m in def_node["members"])
        return f"({members})"

    # we could not resolve the definition, the selector correction pass fixes what this gets wrong
    type_string = param["typeDescriptions"]["typeString"]
    ast_logger.debug(f"Could not canonicalize the user defined type {type_string}, using it as is")
    return type_string


def ast_getter_param_types(variable_declaration: Dict[str, Any], lookup_reference: NodeLookup) -> List[str]:
    """
    The parameters of a public state variable's getter: one per mapping key and one uint256 index per array
    dimension, walking down to the stored value type.
    """
    params: List[str] = []
    curr = variable_declaration["typeName"]
    while True:
        if NodeFilters.TypeNameNode.MAPPING.is_this_node_type(curr):
            key_type = curr["keyType"]
            params.append(ast_param_canonical_type({"typeName": key_type,
                                                    "typeDescriptions": key_type.get("typeDescriptions", {})},
                                                   lookup_reference))
            curr = curr["valueType"]
        elif NodeFilters.TypeNameNode.ARRAY.is_this_node_type(curr):
            params.append("uint256")
            curr = curr["baseType"]
        else:
            break
    return params
