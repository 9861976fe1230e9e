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
Material Model
==============

Explicit configuration object of the coupled Cahn-Hilliard / Allen-Cahn /
elasticity kernel. It is built once from a parameter dictionary, validated
against the list of required parameters and then read by the kernel at every
quadrature point batch. It carries no state.

Parameters dictionary
---------------------
Required:
    fa, fb : list of float Free-energy polynomials of the matrix and of the
             precipitate phase, coefficients in increasing order
    Mc : float Composition mobility
    dt : float Time step
Optional:
    W : float Barrier height (default 0)
    Mn : float or list of float Order parameter mobilities (default 1)
    Kn : float, matrix, or list of either Gradient-energy tensors (default 0)
    interpolation : str "cubic" or "quintic" (default "cubic")
    strain_interpolation : str Interpolation of the misfit strain (default: interpolation)
    stiffness : dict {"alpha": {"model", "constants"}, "beta": {...}} Phase
                stiffnesses, "beta" defaults to "alpha". Omitted: no mechanics
    sfts_linear, sfts_const : matrix or list of matrices Misfit strain
                eps0_i(c) = sfts_linear_i * c + sfts_const_i (default 0)
"""

from numpy import allclose, asarray, broadcast_to, eye, zeros
from numpy.polynomial import Polynomial

from .interpolation import get_interpolation
from ..utils.errors import ConfigurationError
from ..utils.mpi.communicator import print
from ..utils.stiffness_builders import build_stiffness, voigt_to_tensor

MISFIT_TOLERANCE = 1e-12


class MaterialModel:
    """
    Parameters
    ----------
    params : dict Material parameters, see the module documentation
    dim : int Spatial dimension
    n_order_parameters : int, optional Number of Allen-Cahn order parameters
    """

    def required_parameters(self):
        return ["fa", "fb", "Mc", "dt"]

    def __init__(self, params, dim, n_order_parameters=1):
        self._validate_params(params)
        self.dim = dim
        self.n_order_parameters = n_order_parameters
        self.fa = Polynomial(params["fa"])
        self.fb = Polynomial(params["fb"])
        self.Mc = float(params["Mc"])
        self.dt = float(params["dt"])
        if self.dt <= 0:
            raise ConfigurationError(f"Time step must be positive, got {self.dt}")
        self.W = float(params.get("W", 0.0))
        self.Mn = self._per_order_parameter(params.get("Mn", 1.0), (), "Mn")
        self.Kn = self._gradient_tensors(params.get("Kn", 0.0))
        interpolation = params.get("interpolation", "cubic")
        self.h, self.dh = get_interpolation(interpolation)
        self.h_strain, self.dh_strain = get_interpolation(
            params.get("strain_interpolation", interpolation))
        self._set_mechanics(params)

        print(f"Free energies fa = {self.fa}, fb = {self.fb}, barrier height W = {self.W}")
        print(f"Mobilities Mc = {self.Mc}, Mn = {list(self.Mn)}, time step = {self.dt}")
        print(f"Mechanics: {self.has_mechanics}, n-dependent stiffness: {self.n_dependent_stiffness}, "
              f"c-dependent misfit: {self.c_dependent_misfit}")

    def _validate_params(self, params):
        required_params = self.required_parameters()
        missing_params = [param for param in required_params if param not in params]
        if missing_params:
            raise ConfigurationError(
                f"Missing required parameters for {self.__class__.__name__}: {missing_params}. "
                f"Required parameters are: {required_params}")

    def _per_order_parameter(self, value, shape, name):
        value = asarray(value, dtype=float)
        if value.shape == shape:
            return broadcast_to(value, (self.n_order_parameters,) + shape).copy()
        if value.shape == (self.n_order_parameters,) + shape:
            return value
        raise ConfigurationError(
            f"Parameter {name} of shape {value.shape} matches neither {shape} "
            f"nor one entry per order parameter ({self.n_order_parameters})")

    def _gradient_tensors(self, Kn):
        Kn = asarray(Kn, dtype=float)
        if Kn.ndim == 0 or (Kn.ndim == 1 and Kn.shape[0] == self.n_order_parameters):
            return Kn.reshape(-1, 1, 1) * eye(self.dim) + zeros((self.n_order_parameters, 1, 1))
        return self._per_order_parameter(Kn, (self.dim, self.dim), "Kn")

    def _set_mechanics(self, params):
        stiffness = params.get("stiffness")
        self.has_mechanics = stiffness is not None
        shape = (self.dim, self.dim)
        self.sfts_linear = self._per_order_parameter(params.get("sfts_linear", zeros(shape)), shape, "sfts_linear")
        self.sfts_const = self._per_order_parameter(params.get("sfts_const", zeros(shape)), shape, "sfts_const")
        self.c_dependent_misfit = self.has_mechanics and bool((abs(self.sfts_linear) > MISFIT_TOLERANCE).any())
        if not self.has_mechanics:
            self.C_alpha = self.C_beta = None
            self.n_dependent_stiffness = False
            return
        if "alpha" not in stiffness:
            raise ConfigurationError("Stiffness description needs at least an 'alpha' phase")
        self.C_alpha = self._phase_stiffness(stiffness["alpha"])
        self.C_beta = self._phase_stiffness(stiffness.get("beta", stiffness["alpha"]))
        self.n_dependent_stiffness = not allclose(self.C_alpha, self.C_beta)

    def _phase_stiffness(self, description):
        try:
            model, constants = description["model"], description["constants"]
        except KeyError as err:
            raise ConfigurationError(f"Phase stiffness needs 'model' and 'constants', missing {err}") from None
        return voigt_to_tensor(build_stiffness(model.upper(), constants), self.dim)

    def misfit(self, i, c):
        """Misfit strain of order parameter ``i`` at compositions ``c``, shape (nq, dim, dim)."""
        return c[:, None, None] * self.sfts_linear[i] + self.sfts_const[i]

    def stiffness(self, H):
        """Stiffness tensor C(n) = C_alpha (1 - H) + C_beta H, shape (nq, dim, dim, dim, dim)."""
        return (1 - H)[:, None, None, None, None] * self.C_alpha + H[:, None, None, None, None] * self.C_beta
