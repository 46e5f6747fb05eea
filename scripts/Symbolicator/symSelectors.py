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
Fixes the selectors that could not be computed from the ast.

Function selectors of solc < 0.6.0 are hashed from ast parameter types, and some types (e.g. structs of other
sources) can't be canonicalized reliably. The compiler's `methodIdentifiers` are the ground truth: every selector
listed there that the contract doesn't know is assigned to the function of the same name.
"""

import logging
from typing import Any, Dict, List

from Symbolicator.symDiagnostics import BuildDiagnostic, DiagnosticKind
from Symbolicator.symModel import Bytecode, Contract
from Shared.symUtils import SelectorCorrectionError, fatal_error

selectors_logger = logging.getLogger("selectors")


def correct_selectors(bytecodes: List[Bytecode], compiler_output: Dict[str, Any],
                      strict: bool = True) -> List[BuildDiagnostic]:
    """
    @param strict: if set, a selector we can't assign raises a SelectorCorrectionError. Otherwise it is reported
        in the returned diagnostics.
    """
    diagnostics = []
    for bytecode in bytecodes:
        if bytecode.is_deployment:
            continue

        contract = bytecode.contract
        source_name = contract.location.file.source_name
        contract_output = compiler_output.get("contracts", {}).get(source_name, {}).get(contract.name, {})
        method_identifiers = contract_output.get("evm", {}).get("methodIdentifiers")
        if method_identifiers is None:
            selectors_logger.debug(f"No method identifiers for {contract.name}")
            continue

        for signature, selector_hex in method_identifiers.items():
            selector = bytes.fromhex(selector_hex)
            if contract.get_function_from_selector(selector) is not None:
                continue

            function_name = signature.split("(", 1)[0]
            if contract.correct_selector(function_name, selector):
                selectors_logger.debug(f"Corrected the selector of {contract.name}.{signature} to 0x{selector_hex}")
                continue

            msg = f"Couldn't compute the selector of {contract.name}.{signature} (0x{selector_hex}): " \
                  f"{function_name} is unknown or overloaded"
            if strict:
                fatal_error(selectors_logger, msg, SelectorCorrectionError)
            selectors_logger.warning(msg)
            diagnostics.append(BuildDiagnostic(DiagnosticKind.SELECTOR_NOT_CORRECTED, msg, contract.name))

    return diagnostics


def propagate_inherited_selectors(contracts: List[Contract]) -> None:
    """
    Ancestors may have had their selectors corrected after their inheritors copied the stale ones
    """
    for contract in contracts:
        contract.refresh_selectors()
