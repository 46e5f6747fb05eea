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

import logging
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Optional

from Symbolicator.symAbiTypes import (abi_params_canonical_types, ast_getter_param_types, ast_param_canonical_type,
                                      compute_selector)
from Symbolicator.symModel import (Contract, ContractFunction, ContractFunctionType, ContractFunctionVisibility,
                                   ContractType, EXTERNALLY_VISIBLE, SourceFile, SourceLocation)
from Symbolicator.symNodeFilters import NodeFilters
from Shared.symUtils import InvalidAbiTypeError, fatal_error

ast_logger = logging.getLogger("ast")

CONTRACT_KINDS = {
    "contract": ContractType.CONTRACT,
    "library": ContractType.LIBRARY,
}

FUNCTION_KINDS = {
    "constructor": ContractFunctionType.CONSTRUCTOR,
    "fallback": ContractFunctionType.FALLBACK,
    "receive": ContractFunctionType.RECEIVE,
    "freeFunction": ContractFunctionType.FREE_FUNCTION,
}

VISIBILITIES = {
    "private": ContractFunctionVisibility.PRIVATE,
    "internal": ContractFunctionVisibility.INTERNAL,
    "public": ContractFunctionVisibility.PUBLIC,
    "external": ContractFunctionVisibility.EXTERNAL,
}


class AstModelBuilder:
    """
    Builds the source files, contracts and functions model out of the standard json input and output of solc.

    Contracts refer to their ancestors by ast id, and an ancestor may be defined in a source that was not processed
    yet. So all contracts are created first, and the linearized ancestors are resolved once every source was seen.
    """

    def __init__(self, compiler_input: Dict[str, Any], compiler_output: Dict[str, Any]):
        self.compiler_input = compiler_input
        self.compiler_output = compiler_output

        self.files_by_id: Dict[int, SourceFile] = {}
        self.contracts_by_id: Dict[int, Contract] = {}
        self.free_functions: List[ContractFunction] = []

        self.__linearized_base_contract_ids: Dict[int, List[int]] = {}
        self.__nodes_by_id: Dict[int, Dict[str, Any]] = {}

        self.__member_handlers: Dict[NodeFilters.ContractMemberNode,
                                     Callable[[Dict[str, Any], Contract, SourceFile,
                                               List[Dict[str, Any]]], None]] = {
            NodeFilters.ContractMemberNode.FUNCTION: self.__process_contract_function,
            NodeFilters.ContractMemberNode.MODIFIER: self.__process_modifier,
            NodeFilters.ContractMemberNode.VARIABLE: self.__process_variable_declaration,
        }

    def build(self) -> None:
        sources = self.__get_required(self.compiler_output, "sources", "compiler output")
        for source_name, source in sources.items():
            self.__create_source_file(source_name, source)

        for source_name, source in sources.items():
            self.__process_source_unit(source_name, source["ast"])

        self.__apply_contracts_inheritance()
        ast_logger.debug(f"Built {len(self.files_by_id)} source files, {len(self.contracts_by_id)} contracts and "
                         f"{len(self.free_functions)} free functions")

    @property
    def contracts(self) -> List[Contract]:
        return list(self.contracts_by_id.values())

    def lookup_node(self, node_id: int) -> Optional[Dict[str, Any]]:
        return self.__nodes_by_id.get(node_id)

    @staticmethod
    def __get_required(node: Dict[str, Any], key: str, description: str,
                       source_name: Optional[str] = None) -> Any:
        if not isinstance(node, dict) or key not in node:
            in_source = f" in {source_name}" if source_name is not None else ""
            fatal_error(ast_logger, f"Missing \"{key}\" in {description}{in_source}, "
                                    f"the compiler version is probably not supported")
        return node[key]

    def __create_source_file(self, source_name: str, source: Dict[str, Any]) -> None:
        file_id = self.__get_required(source, "id", "source output", source_name)
        ast = self.__get_required(source, "ast", "source output", source_name)

        input_sources = self.__get_required(self.compiler_input, "sources", "compiler input")
        input_source = self.__get_required(input_sources, source_name, "compiler input sources")
        content = self.__get_required(input_source, "content", "compiler input source", source_name)

        if file_id in self.files_by_id:
            fatal_error(ast_logger, f"Source file id {file_id} of {source_name} is already used by "
                                    f"{self.files_by_id[file_id].source_name}")
        self.files_by_id[file_id] = SourceFile(file_id, source_name, content)
        self.__collect_nodes(source_name, ast)

    def __collect_nodes(self, source_name: str, ast: Dict[str, Any]) -> None:
        """
        Flattens the ast of a source so that each node id is mapped to its node. Type canonicalization looks up the
        definitions of structs, enums and user defined value types through it, and they may live in other sources.
        """
        ast_logger.debug(f"Collecting the ast nodes of {source_name}")
        queue: Deque[Any] = deque([ast])
        while queue:
            pop = queue.popleft()
            if isinstance(pop, dict):
                if isinstance(pop.get("id"), int) and "nodeType" in pop:
                    self.__nodes_by_id[pop["id"]] = pop
                for key, value in pop.items():
                    if pop.get("nodeType") == "InlineAssembly" and key == "externalReferences":
                        continue
                    if isinstance(value, (dict, list)):
                        queue.append(value)
            elif isinstance(pop, list):
                queue.extend(pop)

    def __src_to_location(self, node: Dict[str, Any], source_name: str) -> SourceLocation:
        src = self.__get_required(node, "src", f"{node.get('nodeType')} node {node.get('id')}", source_name)
        try:
            offset, length, file_id = (int(part) for part in src.split(":"))
        except (AttributeError, ValueError):
            fatal_error(ast_logger, f"Malformed src \"{src}\" of node {node.get('id')} in {source_name}")

        file = self.files_by_id.get(file_id)
        if file is None:
            fatal_error(ast_logger, f"The src \"{src}\" of node {node.get('id')} in {source_name} refers to an "
                                    f"unknown source file")
        return SourceLocation(file, offset, length)

    def __contract_abi(self, source_name: str, contract_name: str) -> List[Dict[str, Any]]:
        contracts = self.compiler_output.get("contracts", {})
        return contracts.get(source_name, {}).get(contract_name, {}).get("abi", [])

    def __process_source_unit(self, source_name: str, ast: Dict[str, Any]) -> None:
        file = self.files_by_id[self.compiler_output["sources"][source_name]["id"]]
        for node in self.__get_required(ast, "nodes", "SourceUnit", source_name):
            kind = NodeFilters.SourceUnitNode.from_node(node)
            if kind == NodeFilters.SourceUnitNode.CONTRACT:
                self.__process_contract(node, file)
            elif kind == NodeFilters.SourceUnitNode.FREE_FUNCTION:
                free_function = self.__process_function_definition(node, None, file, [])
                if free_function is not None:
                    self.free_functions.append(free_function)

    def __process_contract(self, contract_node: Dict[str, Any], file: SourceFile) -> None:
        source_name = file.source_name
        name = self.__get_required(contract_node, "name", "ContractDefinition", source_name)
        contract_kind = contract_node.get("contractKind")
        contract_type = CONTRACT_KINDS.get(contract_kind)
        if contract_type is None:
            # interfaces have no code of their own
            ast_logger.debug(f"Skipping {contract_kind} {name} in {source_name}")
            return

        contract_id = self.__get_required(contract_node, "id", f"contract {name}", source_name)
        contract = Contract(name, contract_type, self.__src_to_location(contract_node, source_name))
        self.contracts_by_id[contract_id] = contract
        self.__linearized_base_contract_ids[contract_id] = \
            self.__get_required(contract_node, "linearizedBaseContracts", f"contract {name}", source_name)

        abi = self.__contract_abi(source_name, name)
        for node in self.__get_required(contract_node, "nodes", f"contract {name}", source_name):
            kind = NodeFilters.ContractMemberNode.from_node(node)
            if kind is None:
                continue
            node_name = node.get("name")
            named_abi_entries = [e for e in abi if e.get("type") == "function" and e.get("name") == node_name]
            self.__member_handlers[kind](node, contract, file, named_abi_entries)

    def __process_contract_function(self, node: Dict[str, Any], contract: Contract, file: SourceFile,
                                    abi_entries: List[Dict[str, Any]]) -> None:
        self.__process_function_definition(node, contract, file, abi_entries)

    def __process_function_definition(self, node: Dict[str, Any], contract: Optional[Contract],
                                      file: SourceFile,
                                      abi_entries: List[Dict[str, Any]]) -> Optional[ContractFunction]:
        if node.get("implemented") is False:
            return None

        source_name = file.source_name
        name = self.__get_required(node, "name", "FunctionDefinition", source_name)
        func_type = FUNCTION_KINDS.get(node.get("kind"), ContractFunctionType.FUNCTION)
        visibility = VISIBILITIES.get(self.__get_required(node, "visibility", f"function {name}", source_name))
        location = self.__src_to_location(node, source_name)

        selector = None
        if func_type == ContractFunctionType.FUNCTION and visibility in EXTERNALLY_VISIBLE:
            selector = self.__function_definition_selector(node, source_name)

        func = ContractFunction(name, func_type, location,
                                contract=contract,
                                visibility=visibility,
                                is_payable=node.get("stateMutability") == "payable",
                                selector=selector,
                                param_types=self.__match_abi_param_types(selector, abi_entries))
        self.__register_function(func, contract, file)
        return func

    def __function_definition_selector(self, node: Dict[str, Any], source_name: str) -> bytes:
        # only emitted by solc >= 0.6.0
        if "functionSelector" in node:
            return bytes.fromhex(node["functionSelector"])

        parameters = self.__get_required(node, "parameters", f"function {node['name']}", source_name)
        param_types = [ast_param_canonical_type(p, self.lookup_node)
                       for p in self.__get_required(parameters, "parameters", f"function {node['name']}",
                                                    source_name)]
        return compute_selector(node["name"], param_types)

    @staticmethod
    def __match_abi_param_types(selector: Optional[bytes],
                                abi_entries: List[Dict[str, Any]]) -> Optional[List[str]]:
        """
        Functions can be overloaded, so the ABI entry of a function is the one with the same name and selector
        """
        if selector is None:
            return None
        for entry in abi_entries:
            try:
                param_types = abi_params_canonical_types(entry.get("inputs"))
            except InvalidAbiTypeError as e:
                ast_logger.debug(f"Ignoring the ABI entry of {entry.get('name')}: {e}")
                continue
            if compute_selector(entry["name"], param_types) == selector:
                return param_types
        return None

    def __process_modifier(self, node: Dict[str, Any], contract: Contract, file: SourceFile,
                           abi_entries: List[Dict[str, Any]]) -> None:
        name = self.__get_required(node, "name", "ModifierDefinition", file.source_name)
        modifier = ContractFunction(name, ContractFunctionType.MODIFIER,
                                    self.__src_to_location(node, file.source_name),
                                    contract=contract)
        self.__register_function(modifier, contract, file)

    def __process_variable_declaration(self, node: Dict[str, Any], contract: Contract, file: SourceFile,
                                       abi_entries: List[Dict[str, Any]]) -> None:
        if not NodeFilters.is_public_state_variable(node):
            return

        name = self.__get_required(node, "name", "VariableDeclaration", file.source_name)
        if "functionSelector" in node:
            selector = bytes.fromhex(node["functionSelector"])
        else:
            type_name = self.__get_required(node, "typeName", f"state variable {name}", file.source_name)
            ast_logger.debug(f"Computing the getter selector of {name} from its {type_name.get('nodeType')} type")
            selector = compute_selector(name, ast_getter_param_types(node, self.lookup_node))

        getter = ContractFunction(name, ContractFunctionType.GETTER,
                                  self.__src_to_location(node, file.source_name),
                                  contract=contract,
                                  visibility=ContractFunctionVisibility.PUBLIC,
                                  selector=selector,
                                  param_types=self.__match_abi_param_types(selector, abi_entries))
        self.__register_function(getter, contract, file)

    @staticmethod
    def __register_function(func: ContractFunction, contract: Optional[Contract], file: SourceFile) -> None:
        if contract is not None:
            contract.add_local_function(func)
        file.add_function(func)

    def __apply_contracts_inheritance(self) -> None:
        for contract_id, contract in self.contracts_by_id.items():
            for base_id in self.__linearized_base_contract_ids[contract_id]:
                if base_id == contract_id:
                    continue
                base_contract = self.contracts_by_id.get(base_id)
                if base_contract is None:
                    # interfaces are not modeled
                    continue
                contract.add_next_linearized_base_contract(base_contract)
