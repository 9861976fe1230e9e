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
Matrix-Free Assembler
=====================

Drives the cell / quadrature double loop of the residual evaluation:

1. one evaluation context per participating field is attached to the cell,
   the field dofs are read and only the declared value/gradient/hessian are
   interpolated;
2. the ModelVariable containers are filled and the kernel is called once
   for all the quadrature points of the cell;
3. every residual term the field declared is submitted, integrated and
   scatter-added into the field's destination vector. Residuals the kernel
   produced for other terms are never read.

The destination vectors are compressed by the mesh collaborator once the
cell loop is over. The input state is never written.
"""

from numpy import shape as np_shape

from ..utils.errors import ConfigurationError, KernelContractError
from ..Variables.field_state import FieldState
from ..Variables.model_variables import ModelResidual, ModelVariable, VariableSet


class MatrixFreeAssembler:
    """
    Parameters
    ----------
    mesh : MeshFieldCollaborator Mesh and distributed vectors
    registry : VariableRegistry Field roster and evaluation requirements
    kernel : ResidualKernel Physics evaluated at the quadrature points
    """

    def __init__(self, mesh, registry, kernel):
        if mesh.dim != registry.dim:
            raise ConfigurationError(
                f"Mesh dimension {mesh.dim} differs from registry dimension {registry.dim}")
        registry.check_kernel(kernel)
        self.mesh = mesh
        self.registry = registry
        self.kernel = kernel

    def _evaluators(self, table):
        return {info.name: self.mesh.create_evaluator(info.n_components) for info in table}

    @staticmethod
    def _load(evaluator, variable, vector, flags):
        value, gradient, hessian = flags
        evaluator.read_dof_values(vector)
        evaluator.evaluate(value, gradient, hessian)
        if value:
            variable.value = evaluator.get_value()
        if gradient:
            variable.grad = evaluator.get_gradient()
        if hessian:
            variable.hess = evaluator.get_hessian()

    def _submit(self, evaluator, name, residual, dst):
        requirements = self.registry.requirements(name)
        if requirements.value_residual:
            evaluator.submit_value(self._checked(name, "value", residual.value_residual,
                                                 evaluator.value_shape))
        if requirements.gradient_residual:
            evaluator.submit_gradient(self._checked(name, "gradient", residual.gradient_residual,
                                                    evaluator.gradient_shape))
        evaluator.integrate(requirements.value_residual, requirements.gradient_residual)
        evaluator.distribute_local_to_global(dst)

    @staticmethod
    def _checked(name, kind, data, expected):
        if data is None:
            raise KernelContractError(f"Kernel returned no {kind} residual for field {name}")
        if np_shape(data) != expected:
            raise KernelContractError(
                f"{kind} residual of field {name} has shape {np_shape(data)}, expected {expected}")
        return data

    def assemble_rhs(self, state):
        """
        Explicit residual of every field.

        Parameters
        ----------
        state : FieldState Current solution, read only

        Returns
        -------
        FieldState Compressed residual vectors; fields without residual terms get zeros
        """
        registry = self.registry
        table = registry.rhs_info
        evaluators = self._evaluators(table)
        variables = VariableSet.of(ModelVariable, registry.names)
        residuals = VariableSet.of(ModelResidual, registry.names)
        dst = FieldState((info.name, self.mesh.create_vector(info.n_components)) for info in table)
        emitting = [info.name for info in table if registry.requirements(info.name).has_residual]

        for cell in self.mesh.iterate_local_cells():
            variables.clear_all()
            residuals.clear_all()
            for info in table:
                evaluator = evaluators[info.name]
                evaluator.reinit(cell)
                requirements = registry.requirements(info.name)
                if requirements.in_rhs:
                    self._load(evaluator, variables[info.name], state[info.name],
                               requirements.rhs_flags())
            self.kernel.residual_rhs(variables, residuals)
            for name in emitting:
                self._submit(evaluators[name], name, residuals[name], dst[name])

        for name in emitting:
            self.mesh.compress(dst[name])
        return dst

    def apply_lhs_operator(self, target, src, state):
        """
        Action of the implicit operator of ``target`` on ``src``.

        Parameters
        ----------
        target : str or int Field name or global field index
        src : numpy.ndarray Perturbation of the target field
        state : FieldState Stored solution providing the other LHS fields

        Returns
        -------
        numpy.ndarray Compressed residual of the target field
        """
        registry = self.registry
        target_info = registry.lhs_target(target)
        table = registry.lhs_info
        evaluators = self._evaluators(table)
        variables = VariableSet.of(ModelVariable, [info.name for info in table])
        residual = ModelResidual(target_info.name)
        dst = self.mesh.create_vector(target_info.n_components)

        for cell in self.mesh.iterate_local_cells():
            variables.clear_all()
            residual.clear()
            for info in table:
                evaluator = evaluators[info.name]
                evaluator.reinit(cell)
                vector = src if info.name == target_info.name else state[info.name]
                self._load(evaluator, variables[info.name], vector,
                           registry.requirements(info.name).lhs_flags())
            self.kernel.residual_lhs(variables, target_info.name, residual)
            self._submit(evaluators[target_info.name], target_info.name, residual, dst)

        self.mesh.compress(dst)
        return dst
