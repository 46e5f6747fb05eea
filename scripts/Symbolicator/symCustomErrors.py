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
from typing import Any, Dict, List

from Symbolicator.symDiagnostics import BuildDiagnostic, DiagnosticKind
from Symbolicator.symModel import Contract, CustomError
from Shared.symUtils import CustomErrorBuildError

custom_errors_logger = logging.getLogger("custom_errors")


def collect_custom_errors(compiler_output: Dict[str, Any], contracts: List[Contract]) -> List[BuildDiagnostic]:
    """
    Adds to every contract the custom errors of its ABI. This includes abstract contracts.
    An entry we can't model is skipped, the returned diagnostics list these.
    """
    diagnostics = []
    for contract in contracts:
        source_name = contract.location.file.source_name
        abi = compiler_output.get("contracts", {}).get(source_name, {}).get(contract.name, {}).get("abi", [])
        for abi_entry in abi:
            if abi_entry.get("type") != "error":
                continue
            try:
                custom_error = CustomError.from_abi(abi_entry.get("name"), abi_entry.get("inputs"))
            except CustomErrorBuildError as e:
                custom_errors_logger.warning(f"Couldn't build the custom error '{abi_entry.get('name')}' of "
                                             f"{contract.name}: {e}")
                diagnostics.append(BuildDiagnostic(DiagnosticKind.CUSTOM_ERROR_SKIPPED, str(e), contract.name))
                continue
            custom_errors_logger.debug(f"{contract.name}: {custom_error} is 0x{custom_error.selector.hex()}")
            contract.add_custom_error(custom_error)
    return diagnostics
