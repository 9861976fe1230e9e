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
Phase-Field Problem
===================

Entry point of the assembly engine and of the nucleation subsystem for a
driver. A problem gathers the mesh collaborator, the residual kernel, the
variable registry built from the field declarations and, optionally, the
nucleation subsystem, and exposes:

- assemble_rhs(state) -> residual state
- apply_lhs_operator(target, trial, state) -> residual vector
- advance_nucleation(t, step, state, nucleation_state) -> NucleationResult
- compute_energy(state) -> (total, chemical, gradient, elastic)
- compute_integral(field, state) -> float
"""

from ..Assembly.assembler import MatrixFreeAssembler
from ..Assembly.energy import compute_energy, compute_integral
from ..Nucleation.nucleation import NucleationResult, NucleationState, NucleationSubsystem
from ..Variables.field_state import FieldState
from ..Variables.registry import VariableRegistry
from ..utils.mpi.communicator import print


class PhaseFieldProblem:
    """
    Parameters
    ----------
    mesh : MeshFieldCollaborator Mesh and distributed vectors
    kernel : ResidualKernel Physics
    declarations : list of FieldDeclaration, optional Field roster, defaults to
                   ``kernel.field_declarations()``
    nucleation : dict or NucleationSubsystem, optional Nucleation configuration
    """

    def __init__(self, mesh, kernel, declarations=None, nucleation=None):
        if declarations is None:
            declarations = kernel.field_declarations()
        self.mesh = mesh
        self.kernel = kernel
        self.registry = VariableRegistry(declarations, mesh.dim)
        self.assembler = MatrixFreeAssembler(mesh, self.registry, kernel)
        self.registry.summary()
        if nucleation is None or isinstance(nucleation, NucleationSubsystem):
            self.nucleation = nucleation
        else:
            self.nucleation = NucleationSubsystem(mesh, nucleation)
        if self.nucleation is not None:
            self.nucleation.check_fields(self.registry)

    def create_state(self):
        """Zero solution of every registered field."""
        return FieldState.zeros(self.mesh, self.registry)

    def assemble_rhs(self, state):
        return self.assembler.assemble_rhs(state)

    def apply_lhs_operator(self, target, trial, state):
        return self.assembler.apply_lhs_operator(target, trial, state)

    def advance_nucleation(self, t, step, state, nucleation_state=None):
        """
        Detect, reconcile, broadcast and seed nuclei; ``state`` is modified in place.

        Returns
        -------
        NucleationResult Canonical nuclei of the step and the local state to pass to the next step
        """
        if self.nucleation is None:
            return NucleationResult(canonical=[], state=nucleation_state or NucleationState())
        return self.nucleation.advance(t, step, state, nucleation_state)

    def compute_energy(self, state, tracked=None):
        energies = compute_energy(self.mesh, self.kernel, state, tracked)
        print("Total energy: {:.6e} (chemical {:.6e}, gradient {:.6e}, elastic {:.6e})".format(*energies))
        return energies

    def compute_integral(self, field, state):
        value = compute_integral(self.mesh, state[field])
        print(f"Integrated value of {field}: {value}")
        return value
