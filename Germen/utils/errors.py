# Copyright 2025 CEA
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""
Error Taxonomy
==============

Exceptions raised by the assembly engine and the nucleation protocol.
Every error carries the stage at which it occurred so that a fatal
run termination identifies whether assembly, nucleation or communication
failed.

Classes:
--------
GermenError : Base class, stores the failing stage
ConfigurationError : Invalid setup (raised before the run starts)
CommunicationError : Failed or inconsistent collective operation
KernelContractError : Residual kernel broke its output contract
"""


class GermenError(Exception):
    """Base exception carrying the stage of the failure.

    Parameters
    ----------
    message : str Diagnostic message
    stage : str, optional Stage at which the error occurred
    """
    default_stage = "setup"

    def __init__(self, message, stage=None):
        self.stage = stage or self.default_stage
        super().__init__(f"[{self.stage}] {message}")


class ConfigurationError(GermenError, ValueError):
    """Invalid field, kernel, material or nucleation configuration."""
    default_stage = "setup"


class CommunicationError(GermenError, RuntimeError):
    """A collective operation failed or returned a mismatched payload."""
    default_stage = "communication"


class KernelContractError(GermenError, RuntimeError):
    """A residual kernel returned a malformed residual."""
    default_stage = "assembly"
