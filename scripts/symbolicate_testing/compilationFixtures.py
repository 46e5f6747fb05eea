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
Synthetic solc standard json inputs and outputs, shaped like the ones solc >= 0.8 emits
"""

import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

scripts_dir_path = Path(__file__).parent.parent.resolve()
sys.path.insert(0, str(scripts_dir_path))

from Symbolicator.symAbiTypes import compute_selector

SOLC_VERSION = "0.8.24"
LIBRARY_PLACEHOLDER = "__$" + "a1" * 17 + "$__"


def src_of(content: str, snippet: str, file_id: int) -> str:
    offset = content.encode("utf-8").index(snippet.encode("utf-8"))
    return f"{offset}:{len(snippet.encode('utf-8'))}:{file_id}"


def elementary_type(name: str, type_string: Optional[str] = None) -> Dict[str, Any]:
    return {"nodeType": "ElementaryTypeName", "name": name,
            "typeDescriptions": {"typeString": type_string or name}}


def user_defined_type(type_string: str, referenced_declaration: int) -> Dict[str, Any]:
    return {"nodeType": "UserDefinedTypeName", "referencedDeclaration": referenced_declaration,
            "typeDescriptions": {"typeString": type_string}}


def mapping_type(key_type: Dict[str, Any], value_type: Dict[str, Any]) -> Dict[str, Any]:
    key_str = key_type["typeDescriptions"]["typeString"]
    value_str = value_type["typeDescriptions"]["typeString"]
    return {"nodeType": "Mapping", "keyType": key_type, "valueType": value_type,
            "typeDescriptions": {"typeString": f"mapping({key_str} => {value_str})"}}


def parameter(node_id: int, name: str, type_name: Dict[str, Any]) -> Dict[str, Any]:
    return {"nodeType": "VariableDeclaration", "id": node_id, "name": name, "typeName": type_name,
            "typeDescriptions": type_name["typeDescriptions"]}


def function_node(node_id: int, name: str, src: str, params: Optional[List[Dict[str, Any]]] = None,
                  visibility: str = "public", kind: str = "function", selector: Optional[str] = None,
                  implemented: bool = True, state_mutability: str = "nonpayable") -> Dict[str, Any]:
    node = {
        "nodeType": "FunctionDefinition",
        "id": node_id,
        "name": name,
        "kind": kind,
        "visibility": visibility,
        "stateMutability": state_mutability,
        "implemented": implemented,
        "src": src,
        "parameters": {"nodeType": "ParameterList", "parameters": params or []},
    }
    if selector is not None:
        node["functionSelector"] = selector
    return node


def modifier_node(node_id: int, name: str, src: str) -> Dict[str, Any]:
    return {"nodeType": "ModifierDefinition", "id": node_id, "name": name, "src": src, "visibility": "internal",
            "parameters": {"nodeType": "ParameterList", "parameters": []}}


def state_variable(node_id: int, name: str, src: str, type_name: Dict[str, Any], visibility: str = "public",
                   selector: Optional[str] = None) -> Dict[str, Any]:
    node = {
        "nodeType": "VariableDeclaration",
        "id": node_id,
        "name": name,
        "stateVariable": True,
        "visibility": visibility,
        "src": src,
        "typeName": type_name,
        "typeDescriptions": type_name["typeDescriptions"],
    }
    if selector is not None:
        node["functionSelector"] = selector
    return node


def contract_node(node_id: int, name: str, src: str, linearized: List[int], nodes: List[Dict[str, Any]],
                  kind: str = "contract") -> Dict[str, Any]:
    return {
        "nodeType": "ContractDefinition",
        "id": node_id,
        "name": name,
        "contractKind": kind,
        "linearizedBaseContracts": linearized,
        "nodes": nodes,
        "src": src,
    }


def source_unit(node_id: int, content: str, file_id: int, nodes: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"nodeType": "SourceUnit", "id": node_id, "src": f"0:{len(content.encode('utf-8'))}:{file_id}",
            "nodes": nodes}


def abi_function(name: str, *input_types: str) -> Dict[str, Any]:
    return {"type": "function", "name": name, "inputs": [{"name": "", "type": t} for t in input_types],
            "outputs": [], "stateMutability": "nonpayable"}


def abi_error(name: str, *input_types: str) -> Dict[str, Any]:
    return {"type": "error", "name": name, "inputs": [{"name": "", "type": t} for t in input_types]}


def bytecode_output(obj: str, source_map: str = "",
                    link_references: Optional[Dict[str, Any]] = None,
                    immutable_references: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    output = {"object": obj, "sourceMap": source_map, "linkReferences": link_references or {}, "opcodes": ""}
    if immutable_references is not None:
        output["immutableReferences"] = immutable_references
    return output


def contract_output(abi: List[Dict[str, Any]], bytecode: Dict[str, Any], deployed_bytecode: Dict[str, Any],
                    method_identifiers: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    evm: Dict[str, Any] = {"bytecode": bytecode, "deployedBytecode": deployed_bytecode}
    if method_identifiers is not None:
        evm["methodIdentifiers"] = method_identifiers
    return {"abi": abi, "evm": evm}


def abstract_output(abi: List[Dict[str, Any]]) -> Dict[str, Any]:
    return contract_output(abi, bytecode_output(""), bytecode_output(""), {})


def compilation(sources: Dict[str, Tuple[int, str, Dict[str, Any]]],
                contracts: Dict[str, Dict[str, Any]]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """
    @param sources: source name -> (file id, content, ast)
    @param contracts: source name -> contract name -> contract output
    @return the standard json input and output
    """
    compiler_input = {
        "language": "Solidity",
        "sources": {name: {"content": content} for name, (_, content, _) in sources.items()},
        "settings": {"optimizer": {"enabled": False}},
    }
    compiler_output = {
        "sources": {name: {"id": file_id, "ast": ast} for name, (file_id, _, ast) in sources.items()},
        "contracts": contracts,
    }
    return compiler_input, compiler_output


# Token.sol

TOKEN_SOURCE_NAME = "contracts/Token.sol"

IERC20_SNIPPET = """interface IERC20 {
    function transfer(address to, uint256 amount) external returns (bool);
}"""

BALANCE_OF_SNIPPET = "mapping(address => uint256) public balanceOf;"
ONLY_OWNER_SNIPPET = """modifier onlyOwner() {
        _;
    }"""
TRANSFER_SNIPPET = """function transfer(address to, uint amount) public onlyOwner returns (bool) {
        return true;
    }"""
APPROVE_SNIPPET = """function approve(IERC20 spender, uint256 amount) external returns (bool) {
        return true;
    }"""
MOVE_SNIPPET = """function _move(address from) internal {
    }"""
RECEIVE_SNIPPET = """receive() external payable {
    }"""

TOKEN_SNIPPET = f"""contract Token is IERC20 {{
    {BALANCE_OF_SNIPPET}

    error InsufficientBalance(uint256 available);

    {ONLY_OWNER_SNIPPET}

    {TRANSFER_SNIPPET}

    {APPROVE_SNIPPET}

    {MOVE_SNIPPET}

    {RECEIVE_SNIPPET}
}}"""

HELPER_SNIPPET = """function helper() pure returns (uint256) {
    return 1;
}"""

TOKEN_SOURCE = f"""// SPDX-License-Identifier: MIT
pragma solidity ^0.8.0;

{IERC20_SNIPPET}

{TOKEN_SNIPPET}

{HELPER_SNIPPET}
"""

TOKEN_DEPLOYMENT_CODE = "73" + LIBRARY_PLACEHOLDER + "5b00"
TOKEN_RUNTIME_CODE = "6001600256"
TOKEN_METHOD_IDENTIFIERS = {
    "approve(address,uint256)": "095ea7b3",
    "balanceOf(address)": "70a08231",
    "transfer(address,uint256)": "a9059cbb",
}


def token_compilation() -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """
    An ERC20 like token with a getter, a modifier, overloads of the interface function, a receive function, a custom
    error and a free function. Its deployment bytecode links a library.
    """
    file_id = 0

    def src(snippet: str) -> str:
        return src_of(TOKEN_SOURCE, snippet, file_id)

    interface = contract_node(1, "IERC20", src(IERC20_SNIPPET), [1], [
        function_node(2, "transfer", src("function transfer(address to, uint256 amount) external returns (bool);"),
                      visibility="external", implemented=False, selector="a9059cbb"),
    ], kind="interface")

    token = contract_node(10, "Token", src(TOKEN_SNIPPET), [10, 1], [
        state_variable(11, "balanceOf", src(BALANCE_OF_SNIPPET),
                       mapping_type(elementary_type("address"), elementary_type("uint256"))),
        modifier_node(12, "onlyOwner", src(ONLY_OWNER_SNIPPET)),
        # no functionSelector, as emitted by solc < 0.6.0
        function_node(13, "transfer", src(TRANSFER_SNIPPET), params=[
            parameter(14, "to", elementary_type("address")),
            parameter(15, "amount", elementary_type("uint", "uint256")),
        ]),
        function_node(16, "approve", src(APPROVE_SNIPPET), visibility="external", params=[
            parameter(17, "spender", user_defined_type("contract IERC20", 1)),
            parameter(18, "amount", elementary_type("uint256")),
        ]),
        function_node(19, "_move", src(MOVE_SNIPPET), visibility="internal", params=[
            parameter(20, "from", elementary_type("address")),
        ]),
        function_node(21, "", src(RECEIVE_SNIPPET), visibility="external", kind="receive",
                      state_mutability="payable"),
    ])

    helper = function_node(30, "helper", src(HELPER_SNIPPET), visibility="internal", kind="freeFunction",
                           state_mutability="pure")

    ast = source_unit(100, TOKEN_SOURCE, file_id, [interface, token, helper])

    transfer_src = src(TRANSFER_SNIPPET).rsplit(":", 1)[0]
    approve_src = src(APPROVE_SNIPPET).rsplit(":", 1)[0]
    contract_src = src(TOKEN_SNIPPET).rsplit(":", 1)[0]

    token_abi = [
        abi_function("balanceOf", "address"),
        abi_function("transfer", "address", "uint256"),
        abi_function("approve", "address", "uint256"),
        abi_error("InsufficientBalance", "uint256"),
        {"type": "receive", "stateMutability": "payable"},
    ]
    token_output = contract_output(
        token_abi,
        bytecode_output(TOKEN_DEPLOYMENT_CODE, f"{contract_src}:{file_id}:-",
                        link_references={"contracts/Lib.sol": {"Lib": [{"start": 1, "length": 20}]}}),
        bytecode_output(TOKEN_RUNTIME_CODE, f"{transfer_src}:{file_id}:-;;{approve_src}:{file_id}:i",
                        immutable_references={}),
        TOKEN_METHOD_IDENTIFIERS)

    return compilation({TOKEN_SOURCE_NAME: (file_id, TOKEN_SOURCE, ast)}, {
        TOKEN_SOURCE_NAME: {
            "IERC20": abstract_output([abi_function("transfer", "address", "uint256")]),
            "Token": token_output,
        }
    })


# Inheritance.sol

INHERITANCE_SOURCE_NAME = "contracts/Inheritance.sol"

I_SNIPPET = """interface I {
    function f() external;
}"""
A_F_SNIPPET = """function f() public {
    }"""
A_SNIPPET = f"""contract A is I {{
    {A_F_SNIPPET}
}}"""
B_SNIPPET = """contract B is A {
}"""
C_G_SNIPPET = "function g() public virtual;"
C_SNIPPET = f"""abstract contract C is A {{
    {C_G_SNIPPET}
}}"""

INHERITANCE_SOURCE = f"""pragma solidity ^0.8.0;

{I_SNIPPET}

{A_SNIPPET}

{B_SNIPPET}

{C_SNIPPET}
"""


def inheritance_compilation() -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """
    `B` inherits `f` from `A` without overriding it, `C` is abstract. `A` implements the interface `I`, which is not
    modeled.
    """
    file_id = 0

    def src(snippet: str) -> str:
        return src_of(INHERITANCE_SOURCE, snippet, file_id)

    nodes = [
        contract_node(10, "I", src(I_SNIPPET), [10], [
            function_node(11, "f", src("function f() external;"), visibility="external", implemented=False,
                          selector="26121ff0"),
        ], kind="interface"),
        contract_node(20, "A", src(A_SNIPPET), [20, 10], [
            function_node(21, "f", src(A_F_SNIPPET), selector="26121ff0"),
        ]),
        contract_node(30, "B", src(B_SNIPPET), [30, 20, 10], []),
        contract_node(40, "C", src(C_SNIPPET), [40, 20, 10], [
            function_node(41, "g", src(C_G_SNIPPET), implemented=False, selector="e2179b8e"),
        ]),
    ]
    ast = source_unit(1, INHERITANCE_SOURCE, file_id, nodes)

    def deployed() -> Dict[str, Any]:
        return contract_output([abi_function("f")], bytecode_output("6080604052", "0:1:0:-"),
                               bytecode_output("6001600201", ""), {"f()": "26121ff0"})

    return compilation({INHERITANCE_SOURCE_NAME: (file_id, INHERITANCE_SOURCE, ast)}, {
        INHERITANCE_SOURCE_NAME: {
            "I": abstract_output([abi_function("f")]),
            "A": deployed(),
            "B": deployed(),
            "C": abstract_output([abi_function("f"), abi_function("g")]),
        }
    })


# Structs.sol

STRUCTS_SOURCE_NAME = "contracts/Structs.sol"

BASE_F_SNIPPET = """function f(Types.S memory s) public {
    }"""
BASE_SNIPPET = f"""contract Base {{
    {BASE_F_SNIPPET}
}}"""
DERIVED_SNIPPET = """contract Derived is Base {
}"""
STRUCTS_SOURCE = f"""pragma solidity ^0.5.0;

{BASE_SNIPPET}

{DERIVED_SNIPPET}
"""

# the selector solc computes for f, the struct Types.S has a single uint256 member
CORRECT_F_SELECTOR = compute_selector("f", ["(uint256)"]).hex()


def selector_correction_compilation(extra_method_identifiers: Optional[Dict[str, str]] = None) \
        -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """
    An old solc output with no `functionSelector`s, where `f` takes a struct whose definition is not part of the
    compilation's asts, so its selector can only be fixed from the method identifiers.
    """
    file_id = 0

    def src(snippet: str) -> str:
        return src_of(STRUCTS_SOURCE, snippet, file_id)

    nodes = [
        contract_node(10, "Base", src(BASE_SNIPPET), [10], [
            function_node(11, "f", src(BASE_F_SNIPPET), params=[
                parameter(12, "s", user_defined_type("struct Types.S", 999)),
            ]),
        ]),
        contract_node(20, "Derived", src(DERIVED_SNIPPET), [20, 10], []),
    ]
    ast = source_unit(1, STRUCTS_SOURCE, file_id, nodes)

    method_identifiers = {"f((uint256))": CORRECT_F_SELECTOR}
    method_identifiers.update(extra_method_identifiers or {})

    def output() -> Dict[str, Any]:
        return contract_output([{"type": "function", "name": "f", "stateMutability": "nonpayable", "outputs": [],
                                 "inputs": [{"name": "s", "type": "tuple",
                                             "components": [{"name": "x", "type": "uint256"}]}]}],
                               bytecode_output("6080", ""), bytecode_output("6001", ""), dict(method_identifiers))

    return compilation({STRUCTS_SOURCE_NAME: (file_id, STRUCTS_SOURCE, ast)}, {
        STRUCTS_SOURCE_NAME: {
            "Base": output(),
            "Derived": output(),
        }
    })


# Wallet.sol

WALLET_SOURCE_NAME = "contracts/Wallet.sol"

PAYMENT_SNIPPET = """struct Payment {
        address to;
        uint256 amount;
    }"""
TRANSFER_PAIR_SNIPPET = """function transfer(address to, uint256 amount) public {
    }"""
TRANSFER_WITH_DATA_SNIPPET = """function transfer(address to, uint256 amount, bytes memory data) public {
    }"""
TRANSFER_PAYMENT_SNIPPET = """function transfer(Payment memory payment) public {
    }"""
WALLET_SNIPPET = f"""contract Wallet {{
    {PAYMENT_SNIPPET}

    {TRANSFER_PAIR_SNIPPET}

    {TRANSFER_WITH_DATA_SNIPPET}

    {TRANSFER_PAYMENT_SNIPPET}
}}"""
WALLET_SOURCE = f"""pragma solidity ^0.8.0;

{WALLET_SNIPPET}
"""

TRANSFER_WITH_DATA_SELECTOR = compute_selector("transfer", ["address", "uint256", "bytes"]).hex()
TRANSFER_PAYMENT_SELECTOR = compute_selector("transfer", ["(address,uint256)"]).hex()


def overloads_compilation() -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """
    Three overloads of `transfer`, one of them taking a struct. Only the first carries a `functionSelector`, the
    others are hashed from their parameters.
    """
    file_id = 0

    def src(snippet: str) -> str:
        return src_of(WALLET_SOURCE, snippet, file_id)

    wallet = contract_node(10, "Wallet", src(WALLET_SNIPPET), [10], [
        {"nodeType": "StructDefinition", "id": 11, "name": "Payment", "src": src(PAYMENT_SNIPPET), "members": [
            parameter(12, "to", elementary_type("address")),
            parameter(13, "amount", elementary_type("uint256")),
        ]},
        function_node(14, "transfer", src(TRANSFER_PAIR_SNIPPET), selector="a9059cbb", params=[
            parameter(15, "to", elementary_type("address")),
            parameter(16, "amount", elementary_type("uint256")),
        ]),
        function_node(17, "transfer", src(TRANSFER_WITH_DATA_SNIPPET), params=[
            parameter(18, "to", elementary_type("address")),
            parameter(19, "amount", elementary_type("uint256")),
            parameter(20, "data", elementary_type("bytes", "bytes memory")),
        ]),
        function_node(21, "transfer", src(TRANSFER_PAYMENT_SNIPPET), params=[
            parameter(22, "payment", user_defined_type("struct Wallet.Payment", 11)),
        ]),
    ])
    ast = source_unit(1, WALLET_SOURCE, file_id, [wallet])

    wallet_abi = [
        {"type": "function", "name": "transfer", "stateMutability": "nonpayable", "outputs": [],
         "inputs": [{"name": "payment", "type": "tuple", "internalType": "struct Wallet.Payment",
                     "components": [{"name": "to", "type": "address"}, {"name": "amount", "type": "uint256"}]}]},
        abi_function("transfer", "address", "uint256", "bytes"),
        abi_function("transfer", "address", "uint256"),
    ]
    method_identifiers = {
        "transfer(address,uint256)": "a9059cbb",
        "transfer(address,uint256,bytes)": TRANSFER_WITH_DATA_SELECTOR,
        "transfer((address,uint256))": TRANSFER_PAYMENT_SELECTOR,
    }

    return compilation({WALLET_SOURCE_NAME: (file_id, WALLET_SOURCE, ast)}, {
        WALLET_SOURCE_NAME: {
            "Wallet": contract_output(wallet_abi, bytecode_output("6080", ""), bytecode_output("6001", ""),
                                      method_identifiers),
        }
    })


# Parent.sol and Child.sol

PARENT_SOURCE_NAME = "contracts/Parent.sol"
CHILD_SOURCE_NAME = "contracts/Child.sol"

PARENT_F_SNIPPET = """function f() public {
    }"""
PARENT_SNIPPET = f"""contract Parent {{
    {PARENT_F_SNIPPET}
}}"""
PARENT_UTIL_SNIPPET = """contract Util {
}"""
PARENT_SOURCE = f"""pragma solidity ^0.8.0;

{PARENT_SNIPPET}

{PARENT_UTIL_SNIPPET}
"""

CHILD_SNIPPET = """contract Child is Parent {
}"""
CHILD_UTIL_SNIPPET = """contract Util {
    uint256 x;
}"""
CHILD_SOURCE = f"""pragma solidity ^0.8.0;

import "./Parent.sol";

{CHILD_SNIPPET}

{CHILD_UTIL_SNIPPET}
"""

PARENT_UTIL_RUNTIME_CODE = "6001"
CHILD_UTIL_RUNTIME_CODE = "6002"


def split_inheritance_compilation(child_first: bool) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """
    `Child` inherits `f` from `Parent`, which is declared in another file. With [child_first] the child's source
    comes first in the output, so its base contract is referenced before being declared. Both files declare a
    contract named `Util`.
    """
    parent_file_id = 0
    child_file_id = 1

    parent_ast = source_unit(1, PARENT_SOURCE, parent_file_id, [
        contract_node(10, "Parent", src_of(PARENT_SOURCE, PARENT_SNIPPET, parent_file_id), [10], [
            function_node(11, "f", src_of(PARENT_SOURCE, PARENT_F_SNIPPET, parent_file_id), selector="26121ff0"),
        ]),
        contract_node(12, "Util", src_of(PARENT_SOURCE, PARENT_UTIL_SNIPPET, parent_file_id), [12], []),
    ])
    child_ast = source_unit(2, CHILD_SOURCE, child_file_id, [
        {"nodeType": "ImportDirective", "id": 3, "absolutePath": PARENT_SOURCE_NAME, "sourceUnit": 1,
         "src": src_of(CHILD_SOURCE, 'import "./Parent.sol";', child_file_id)},
        contract_node(20, "Child", src_of(CHILD_SOURCE, CHILD_SNIPPET, child_file_id), [20, 10], []),
        contract_node(21, "Util", src_of(CHILD_SOURCE, CHILD_UTIL_SNIPPET, child_file_id), [21], []),
    ])

    def deployed(abi: List[Dict[str, Any]], runtime: str, method_identifiers: Dict[str, str]) -> Dict[str, Any]:
        return contract_output(abi, bytecode_output("6080", ""), bytecode_output(runtime, ""), method_identifiers)

    parent = (PARENT_SOURCE_NAME, (parent_file_id, PARENT_SOURCE, parent_ast), {
        "Parent": deployed([abi_function("f")], "6003", {"f()": "26121ff0"}),
        "Util": deployed([], PARENT_UTIL_RUNTIME_CODE, {}),
    })
    child = (CHILD_SOURCE_NAME, (child_file_id, CHILD_SOURCE, child_ast), {
        "Child": deployed([abi_function("f")], "6004", {"f()": "26121ff0"}),
        "Util": deployed([], CHILD_UTIL_RUNTIME_CODE, {}),
    })
    ordered = [child, parent] if child_first else [parent, child]

    return compilation({name: source for name, source, _ in ordered},
                       {name: contracts for name, _, contracts in ordered})
