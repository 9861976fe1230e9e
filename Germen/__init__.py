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
Germen
======

Coupled phase-field assembly (matrix-free multi-field residual evaluation,
energy reductions) and distributed stochastic nucleation.
"""

from .utils.errors import (GermenError, ConfigurationError, CommunicationError,
                           KernelContractError)
from .utils.mpi.communicator import Communicator
from .Variables import (Field, FieldRequirements, FieldDeclaration, VariableRegistry,
                        FieldState, declare, SCALAR, VECTOR, PARABOLIC, ELLIPTIC)
from .Mesh import StructuredMesh, MeshFieldCollaborator
from .Models import MaterialModel, CoupledCHACMechanicsKernel, ResidualKernel
from .Assembly import MatrixFreeAssembler, compute_energy, compute_integral
from .Nucleation import (Nucleus, NucleationState, NucleationResult, NucleationSubsystem,
                         nucleation_preset, reconcile_candidates)
from .Problem import PhaseFieldProblem
from .Solve import Solve

__version__ = "0.1.0"
