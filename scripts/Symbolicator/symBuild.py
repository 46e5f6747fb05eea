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
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from Symbolicator.symAstBuilder import AstModelBuilder
from Symbolicator.symBytecodeDecoder import decode_bytecodes
from Symbolicator.symCustomErrors import collect_custom_errors
from Symbolicator.symDiagnostics import BuildDiagnostic
from Symbolicator.symModel import Bytecode, Contract, ContractFunction, SourceFile
from Symbolicator.symSelectors import correct_selectors, propagate_inherited_selectors

run_logger = logging.getLogger("run")


@dataclass
class ModelBuildResult:
    files: List[SourceFile] = field(default_factory=list)
    contracts: List[Contract] = field(default_factory=list)
    free_functions: List[ContractFunction] = field(default_factory=list)
    bytecodes: List[Bytecode] = field(default_factory=list)
    diagnostics: List[BuildDiagnostic] = field(default_factory=list)

    def get_contract(self, name: str, source_name: Optional[str] = None) -> Optional[Contract]:
        for contract in self.contracts:
            if contract.name == name and (source_name is None or contract.location.file.source_name == source_name):
                return contract
        return None

    def get_bytecode(self, contract: Contract, is_deployment: bool) -> Optional[Bytecode]:
        for bytecode in self.bytecodes:
            if bytecode.contract is contract and bytecode.is_deployment == is_deployment:
                return bytecode
        return None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "files": [f.as_dict() for f in self.files],
            "contracts": [c.as_dict() for c in self.contracts],
            "freeFunctions": [f.as_dict() for f in self.free_functions],
            "bytecodes": [b.as_dict() for b in self.bytecodes],
            "diagnostics": [d.as_dict() for d in self.diagnostics],
        }


def create_models_and_decode_bytecodes(solc_version: str, compiler_input: Dict[str, Any],
                                       compiler_output: Dict[str, Any],
                                       strict_selectors: bool = True) -> ModelBuildResult:
    """
    Builds the model of a single compilation: its sources, contracts and decoded bytecodes.

    @param compiler_input: the solc standard json input, for the source contents
    @param compiler_output: the solc standard json output. Its asts, abis and evm outputs are required.
    @param strict_selectors: fail when the compiler lists a selector that we can't assign to a function
    @raise IncompatibleCompilerOutputError if the output doesn't have the shape of a supported solc version
    """
    run_logger.debug(f"Building the model of a solc {solc_version} compilation")
    builder = AstModelBuilder(compiler_input, compiler_output)
    builder.build()
    contracts = builder.contracts

    result = ModelBuildResult(files=list(builder.files_by_id.values()),
                              contracts=contracts,
                              free_functions=builder.free_functions)

    result.diagnostics.extend(collect_custom_errors(compiler_output, contracts))

    bytecodes, decode_diagnostics = decode_bytecodes(solc_version, compiler_output, builder.files_by_id, contracts)
    result.bytecodes = bytecodes
    result.diagnostics.extend(decode_diagnostics)

    result.diagnostics.extend(correct_selectors(bytecodes, compiler_output, strict_selectors))
    propagate_inherited_selectors(contracts)

    for diagnostic in result.diagnostics:
        run_logger.debug(f"{diagnostic.kind}: {diagnostic.message}")
    run_logger.debug(f"Built {len(contracts)} contracts and {len(bytecodes)} bytecodes")
    return result
