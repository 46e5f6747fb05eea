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
from typing import Any, Dict, List, Tuple

from Symbolicator.symDiagnostics import BuildDiagnostic, DiagnosticKind
from Symbolicator.symLibraryUtils import get_immutable_references, normalize_compiler_output_bytecode
from Symbolicator.symModel import Bytecode, Contract, SourceFile
from Symbolicator.symSourceMaps import decode_instructions
from Shared.symUtils import fatal_error

bytecode_logger = logging.getLogger("bytecode")


def get_contract_evm_output(compiler_output: Dict[str, Any], contract: Contract) -> Dict[str, Any]:
    source_name = contract.location.file.source_name
    contract_output = compiler_output.get("contracts", {}).get(source_name, {}).get(contract.name)
    if contract_output is None:
        fatal_error(bytecode_logger, f"No compiler output for contract {contract.name} in {source_name}")
    if "evm" not in contract_output:
        fatal_error(bytecode_logger, f"No evm output for contract {contract.name} in {source_name}")
    return contract_output["evm"]


def decode_evm_bytecode(contract: Contract, solc_version: str, is_deployment: bool,
                        compiler_bytecode: Dict[str, Any], files_by_id: Dict[int, SourceFile]) -> Bytecode:
    """
    @param compiler_bytecode: the `evm.bytecode` (deployment) or `evm.deployedBytecode` (runtime) output of a
        contract
    """
    kind = "deployment" if is_deployment else "runtime"
    if "object" not in compiler_bytecode:
        fatal_error(bytecode_logger, f"No {kind} bytecode object for {contract.name}")

    normalized_code, library_address_positions = normalize_compiler_output_bytecode(
        compiler_bytecode["object"], compiler_bytecode.get("linkReferences") or {})
    immutable_references = get_immutable_references(compiler_bytecode.get("immutableReferences") or {},
                                                    len(normalized_code))
    instructions, trailing_data = decode_instructions(normalized_code, compiler_bytecode.get("sourceMap") or "",
                                                      files_by_id)

    bytecode_logger.debug(f"Decoded {len(instructions)} {kind} instructions of {contract.name}, "
                          f"{len(trailing_data)} trailing bytes")
    return Bytecode(contract, is_deployment, normalized_code, instructions, library_address_positions,
                    immutable_references, solc_version, trailing_data)


def decode_bytecodes(solc_version: str, compiler_output: Dict[str, Any], files_by_id: Dict[int, SourceFile],
                     contracts: List[Contract]) -> Tuple[List[Bytecode], List[BuildDiagnostic]]:
    """
    Decodes the deployment and the runtime bytecodes of every contract.
    Abstract contracts have no bytecode, they get a diagnostic instead.
    """
    bytecodes = []
    diagnostics = []
    for contract in contracts:
        evm_output = get_contract_evm_output(compiler_output, contract)
        deployment = evm_output.get("bytecode")
        runtime = evm_output.get("deployedBytecode")
        if deployment is None or runtime is None:
            fatal_error(bytecode_logger, f"Missing bytecode output for contract {contract.name}")

        if deployment.get("object", "") == "":
            bytecode_logger.debug(f"{contract.name} is abstract, it has no bytecode")
            diagnostics.append(BuildDiagnostic(DiagnosticKind.ABSTRACT_CONTRACT,
                                               f"{contract.name} has an empty bytecode", contract.name))
            continue

        bytecodes.append(decode_evm_bytecode(contract, solc_version, True, deployment, files_by_id))
        bytecodes.append(decode_evm_bytecode(contract, solc_version, False, runtime, files_by_id))

    return bytecodes, diagnostics
