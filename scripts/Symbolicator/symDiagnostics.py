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

from dataclasses import dataclass
from enum import auto
from typing import Any, Dict, Optional

from Shared.symUtils import NoValEnum


class DiagnosticKind(NoValEnum):
    ABSTRACT_CONTRACT = auto()  # empty bytecode, no Bytecode was produced
    CUSTOM_ERROR_SKIPPED = auto()
    SELECTOR_NOT_CORRECTED = auto()


@dataclass
class BuildDiagnostic:
    """
    Something that was skipped while building the model. The rest of the model is still complete and usable.
    """
    kind: DiagnosticKind
    message: str
    contract_name: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "kind": str(self.kind),
            "message": self.message,
            "contract": self.contract_name,
        }
