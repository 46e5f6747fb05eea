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

from typing import Any, Dict, Optional, Type, TypeVar

from Shared.symUtils import NoValEnum

T = TypeVar("T", bound="NodeFilters.NodeType")


class NodeFilters:

    class NodeType(NoValEnum):

        def is_this_node_type(self, node: Dict[str, Any]) -> bool:
            return node.get("nodeType") == self.value

        @classmethod
        def from_node(cls: Type[T], node: Dict[str, Any]) -> Optional[T]:
            """
            @return the member of this closed set of node kinds matching the node, or None for any other node kind
            """
            for kind in cls:
                if kind.is_this_node_type(node):
                    return kind
            return None

    class SourceUnitNode(NodeType):
        CONTRACT = "ContractDefinition"
        FREE_FUNCTION = "FunctionDefinition"

    class ContractMemberNode(NodeType):
        FUNCTION = "FunctionDefinition"
        MODIFIER = "ModifierDefinition"
        VARIABLE = "VariableDeclaration"

    class TypeNameNode(NodeType):
        ELEMENTARY = "ElementaryTypeName"
        FUNCTION = "FunctionTypeName"
        USER_DEFINED = "UserDefinedTypeName"
        IDENTIFIER_PATH = "IdentifierPath"
        MAPPING = "Mapping"
        ARRAY = "ArrayTypeName"

    @staticmethod
    def is_struct_definition(node: Dict[str, Any]) -> bool:
        return node.get("nodeType") == "StructDefinition"

    @staticmethod
    def is_user_defined_value_type_definition(node: Dict[str, Any]) -> bool:
        return node.get("nodeType") == "UserDefinedValueTypeDefinition"

    @staticmethod
    def is_public_state_variable(node: Dict[str, Any]) -> bool:
        return node.get("nodeType") == "VariableDeclaration" and node.get("visibility") == "public"

    @staticmethod
    def __type_string_of(param: Dict[str, Any]) -> str:
        type_descriptions = param.get("typeDescriptions") or {}
        return type_descriptions.get("typeString") or ""

    @staticmethod
    def is_user_defined_type_name(param: Dict[str, Any]) -> bool:
        type_name = param.get("typeName") or {}
        return NodeFilters.TypeNameNode.USER_DEFINED.is_this_node_type(type_name) or \
            NodeFilters.TypeNameNode.IDENTIFIER_PATH.is_this_node_type(type_name)

    @staticmethod
    def is_contract_type(param: Dict[str, Any]) -> bool:
        # interfaces also carry a "contract " type string
        return NodeFilters.is_user_defined_type_name(param) and \
            NodeFilters.__type_string_of(param).startswith("contract ")

    @staticmethod
    def is_enum_type(param: Dict[str, Any]) -> bool:
        return NodeFilters.is_user_defined_type_name(param) and \
            NodeFilters.__type_string_of(param).startswith("enum ")
