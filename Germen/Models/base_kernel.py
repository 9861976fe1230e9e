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
Residual Kernel Interface
=========================

A residual kernel is the pluggable physics of the assembly engine: a pure
function from the values, gradients and hessians of the fields at a batch of
quadrature points to the value and gradient residual contributions tested
against the shape functions and their gradients.

Kernels declare what they consume and what they produce so that the variable
registry can be checked against them before any assembly takes place.
"""

from abc import ABC, abstractmethod

from ..utils.errors import KernelContractError


class ResidualKernel(ABC):
    """Abstract base class of the residual kernels."""

    @abstractmethod
    def required_derivatives(self, name, lhs=False):
        """
        Derivatives of a field read by the kernel.

        Parameters
        ----------
        name : str Field name
        lhs : bool Whether the LHS (implicit operator) kernel is meant

        Returns
        -------
        list of str Subset of ("value", "gradient", "hessian")
        """
        pass

    @abstractmethod
    def residual_outputs(self, name):
        """Residual terms the kernel can produce for a field, subset of ("value", "gradient")."""
        pass

    @abstractmethod
    def residual_rhs(self, variables, residuals):
        """
        Explicit residuals.

        Parameters
        ----------
        variables : VariableSet of ModelVariable Field data at the current lanes
        residuals : VariableSet of ModelResidual Filled by the kernel
        """
        pass

    def residual_lhs(self, variables, target, residual):
        """
        Action of the linearised operator on the perturbation of ``target``.

        ``variables[target]`` holds the perturbation, the other fields the
        stored solution. Only ``residual`` (the target's) is read back.
        """
        raise KernelContractError(f"{type(self).__name__} has no implicit operator for {target}")

    def energy_requirements(self):
        """Mapping field name -> set of derivatives needed by :meth:`energy_density`."""
        return {}

    def energy_density(self, variables):
        """Return the chemical, gradient and elastic energy densities at the lanes."""
        raise KernelContractError(f"{type(self).__name__} does not define an energy density")
