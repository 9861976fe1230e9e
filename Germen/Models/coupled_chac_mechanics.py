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
Coupled Cahn-Hilliard / Allen-Cahn / Elasticity Kernel
======================================================

Residuals of a forward-Euler step of a conserved composition ``c``, any number
of non-conserved order parameters ``n_i`` and, optionally, a quasi-static
displacement ``u``.

Free energy density:

    f = (1 - H) fa(c) + H fb(c) + W sum_i fbarrier(n_i)
        + sum_i 1/2 grad n_i . K_i grad n_i
        + 1/2 S : E2

with ``H = sum_i h(n_i)``, ``E2 = sym(grad u) - sum_i h_s(n_i) eps0_i(c)``,
``S = C(n) : E2`` and ``C(n) = C_alpha (1 - H) + C_beta H``.

Residuals (value and gradient terms tested against v and grad v):

    c   : rc = c,          rcx = -dt Mc grad mu,   mu = df/dc
    n_i : rn = n_i - dt Mn_i df/dn_i,              rnx = -dt Mn_i K_i grad n_i
    u   : rux = -S (explicit),  rux = C(n) : sym(grad du) (implicit operator)

When a misfit depends on the composition, ``mu`` contains the elastic
contribution ``-S : sum_i h_s(n_i) d eps0_i/dc`` whose gradient needs the
hessian of ``u``.
"""

from numpy import einsum, zeros, zeros_like

from .base_kernel import ResidualKernel
from .interpolation import barrier, barrier_derivative
from ..utils.errors import ConfigurationError, KernelContractError
from ..Variables.field import (Field, FieldDeclaration, FieldRequirements,
                               ELLIPTIC, PARABOLIC, SCALAR, VECTOR)


def sym(tensor):
    return 0.5 * (tensor + tensor.swapaxes(-1, -2))


class CoupledCHACMechanicsKernel(ResidualKernel):
    """
    Parameters
    ----------
    material : MaterialModel Explicit material configuration
    composition : str, optional Name of the conserved field
    order_parameters : sequence of str, optional Names of the order parameters
    displacement : str or None, optional Name of the displacement field, None without mechanics
    """

    def __init__(self, material, composition="c", order_parameters=("n",), displacement=None):
        self.material = material
        self.composition = composition
        self.order_parameters = list(order_parameters)
        self.displacement = displacement
        if len(self.order_parameters) != material.n_order_parameters:
            raise ConfigurationError(
                f"{len(self.order_parameters)} order parameters given, the material model "
                f"describes {material.n_order_parameters}")
        if (displacement is not None) != material.has_mechanics:
            raise ConfigurationError(
                "A displacement field requires a stiffness description and conversely")

    @property
    def names(self):
        names = [self.composition] + self.order_parameters
        if self.displacement is not None:
            names.append(self.displacement)
        return names

    def required_derivatives(self, name, lhs=False):
        mat = self.material
        if lhs:
            if name == self.displacement:
                return ["gradient"]
            if name in self.order_parameters and mat.n_dependent_stiffness:
                return ["value"]
            return []
        if name == self.composition or name in self.order_parameters:
            return ["value", "gradient"]
        if name == self.displacement:
            return ["gradient", "hessian"] if mat.c_dependent_misfit else ["gradient"]
        return []

    def residual_outputs(self, name):
        if name == self.composition or name in self.order_parameters:
            return ["value", "gradient"]
        if name == self.displacement:
            return ["gradient"]
        return []

    def field_declarations(self):
        """Field declarations matching exactly what the kernel reads and writes."""
        declarations = []
        for name in self.names:
            rhs = self.required_derivatives(name)
            lhs = self.required_derivatives(name, lhs=True)
            outputs = self.residual_outputs(name)
            if name == self.displacement:
                field = Field(name, VECTOR, ELLIPTIC)
            else:
                field = Field(name, SCALAR, PARABOLIC)
            requirements = FieldRequirements(
                need_value="value" in rhs, need_gradient="gradient" in rhs,
                need_hessian="hessian" in rhs,
                value_residual="value" in outputs, gradient_residual="gradient" in outputs,
                need_value_lhs="value" in lhs, need_gradient_lhs="gradient" in lhs,
                need_hessian_lhs="hessian" in lhs)
            declarations.append(FieldDeclaration(field, requirements))
        return declarations

    def _interpolation(self, variables):
        """H = sum_i h(n_i) at the current lanes."""
        mat = self.material
        c = variables[self.composition].value
        H = zeros_like(c)
        for name in self.order_parameters:
            H = H + mat.h(variables[name].value)
        return H

    def _elastic_state(self, variables, H):
        """Return ``(C, E2, S)``; C is per lane only for n-dependent stiffness."""
        mat = self.material
        c = variables[self.composition].value
        E2 = sym(variables[self.displacement].grad)
        for i, name in enumerate(self.order_parameters):
            E2 = E2 - mat.h_strain(variables[name].value)[:, None, None] * mat.misfit(i, c)
        if mat.n_dependent_stiffness:
            C = mat.stiffness(H)
            S = einsum("qijkl,qkl->qij", C, E2)
        else:
            C = mat.C_alpha
            S = einsum("ijkl,qkl->qij", C, E2)
        return C, E2, S

    def _elastic_potential_gradient(self, variables, H, C, E2, S):
        """Gradient of -S : sum_i h_s(n_i) a_i, with a_i the linear misfit coefficients."""
        mat = self.material
        c = variables[self.composition]
        hess_u = variables[self.displacement].hess
        nq, dim = c.grad.shape
        A = zeros((nq, dim, dim))
        dA = zeros((nq, dim, dim, dim))
        # dE2[q, k] = d E2 / d x_k
        dE2 = sym(hess_u.transpose(0, 3, 1, 2))
        dH = zeros((nq, dim))
        for i, name in enumerate(self.order_parameters):
            n = variables[name]
            hs = mat.h_strain(n.value)
            dhs_grad = mat.dh_strain(n.value)[:, None] * n.grad
            A += hs[:, None, None] * mat.sfts_linear[i]
            dA += einsum("qk,ij->qkij", dhs_grad, mat.sfts_linear[i])
            dE2 -= einsum("qk,qij->qkij", dhs_grad, mat.misfit(i, c.value))
            dE2 -= einsum("q,qk,ij->qkij", hs, c.grad, mat.sfts_linear[i])
            dH += mat.dh(n.value)[:, None] * n.grad
        if mat.n_dependent_stiffness:
            dS = einsum("qijkl,qmkl->qmij", C, dE2)
            dS += einsum("qm,ijkl,qkl->qmij", dH, mat.C_beta - mat.C_alpha, E2)
        else:
            dS = einsum("ijkl,qmkl->qmij", C, dE2)
        return -(einsum("qmij,qij->qm", dS, A) + einsum("qij,qmij->qm", S, dA))

    def residual_rhs(self, variables, residuals):
        mat = self.material
        c = variables[self.composition]
        H = self._interpolation(variables)
        dfa, dfb = mat.fa.deriv(), mat.fb.deriv()
        d2fa, d2fb = mat.fa.deriv(2), mat.fb.deriv(2)

        grad_mu = ((1 - H) * d2fa(c.value) + H * d2fb(c.value))[:, None] * c.grad
        for name in self.order_parameters:
            n = variables[name]
            grad_mu += ((dfb(c.value) - dfa(c.value)) * mat.dh(n.value))[:, None] * n.grad

        if mat.has_mechanics:
            C, E2, S = self._elastic_state(variables, H)
            if mat.c_dependent_misfit:
                grad_mu += self._elastic_potential_gradient(variables, H, C, E2, S)
            residuals[self.displacement].gradient_residual = -S

        residuals[self.composition].value_residual = c.value
        residuals[self.composition].gradient_residual = -mat.dt * mat.Mc * grad_mu

        for i, name in enumerate(self.order_parameters):
            n = variables[name]
            driving_force = ((mat.fb(c.value) - mat.fa(c.value)) * mat.dh(n.value)
                             + mat.W * barrier_derivative(n.value))
            if mat.has_mechanics:
                driving_force -= einsum("qij,qij->q", S,
                                        mat.dh_strain(n.value)[:, None, None] * mat.misfit(i, c.value))
                if mat.n_dependent_stiffness:
                    driving_force += 0.5 * mat.dh(n.value) * einsum(
                        "qij,ijkl,qkl->q", E2, mat.C_beta - mat.C_alpha, E2)
            residuals[name].value_residual = n.value - mat.dt * mat.Mn[i] * driving_force
            residuals[name].gradient_residual = -mat.dt * mat.Mn[i] * einsum(
                "ij,qj->qi", mat.Kn[i], n.grad)

    def residual_lhs(self, variables, target, residual):
        if target != self.displacement:
            raise KernelContractError(f"No implicit operator for the explicit field {target}")
        mat = self.material
        strain = sym(variables[self.displacement].grad)
        if mat.n_dependent_stiffness:
            H = sum(mat.h(variables[name].value) for name in self.order_parameters)
            residual.gradient_residual = einsum("qijkl,qkl->qij", mat.stiffness(H), strain)
        else:
            residual.gradient_residual = einsum("ijkl,qkl->qij", mat.C_alpha, strain)

    def energy_requirements(self):
        requirements = {self.composition: {"value"}}
        for name in self.order_parameters:
            requirements[name] = {"value", "gradient"}
        if self.displacement is not None:
            requirements[self.displacement] = {"gradient"}
        return requirements

    def energy_density(self, variables):
        mat = self.material
        c = variables[self.composition].value
        H = self._interpolation(variables)
        f_chem = (1 - H) * mat.fa(c) + H * mat.fb(c)
        f_grad = zeros_like(c)
        for i, name in enumerate(self.order_parameters):
            n = variables[name]
            f_chem = f_chem + mat.W * barrier(n.value)
            f_grad = f_grad + 0.5 * einsum("qi,ij,qj->q", n.grad, mat.Kn[i], n.grad)
        if mat.has_mechanics:
            _, E2, S = self._elastic_state(variables, H)
            f_el = 0.5 * einsum("qij,qij->q", S, E2)
        else:
            f_el = zeros_like(c)
        return f_chem, f_grad, f_el
