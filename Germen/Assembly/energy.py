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
Energy Accumulator
==================

Reduction of the total free energy and of its chemical, gradient and elastic
parts. Each cell contributes the vectorised sum of its lanes, lanes whose
tracked variable is negligible being excluded, and the per-cell sums are
merged into the process totals under a lock. A single global sum per energy
computation produces the identical result on every rank.
"""

from threading import Lock

from numpy import asarray, zeros

from ..Variables.model_variables import ModelVariable, VariableSet

NEGLIGIBLE_VALUE = 1e-10


class EnergyAccumulator:
    """Process-local totals (total, chemical, gradient, elastic)."""

    def __init__(self):
        self._lock = Lock()
        self._totals = zeros(4)

    def add(self, f_chem, f_grad, f_el, JxW, mask):
        """Merge the lanes of one cell where ``mask`` holds."""
        weights = JxW * mask
        chemical = float((f_chem * weights).sum())
        gradient = float((f_grad * weights).sum())
        elastic = float((f_el * weights).sum())
        with self._lock:
            self._totals += (chemical + gradient + elastic, chemical, gradient, elastic)

    def reset(self):
        with self._lock:
            self._totals[:] = 0.0

    @property
    def local_totals(self):
        return tuple(self._totals)

    def reduce(self, comm):
        """Global totals, identical on every rank."""
        return tuple(float(value) for value in comm.reduce_sum(self._totals.copy()))


def compute_energy(mesh, kernel, state, tracked=None, threshold=NEGLIGIBLE_VALUE):
    """
    Integrate the kernel energy densities over the domain.

    Parameters
    ----------
    mesh : MeshFieldCollaborator Mesh and collectives
    kernel : ResidualKernel Provides ``energy_density`` and ``energy_requirements``
    state : FieldState Current solution
    tracked : str, optional Field whose value must exceed ``threshold`` for a
              lane to count, defaults to the kernel composition field
    threshold : float, optional Negligibility threshold

    Returns
    -------
    tuple (total, chemical, gradient, elastic)
    """
    requirements = {name: set(needs) for name, needs in kernel.energy_requirements().items()}
    if tracked is None:
        tracked = getattr(kernel, "composition", None) or next(iter(requirements))
    requirements.setdefault(tracked, set()).add("value")
    evaluators = {name: mesh.create_evaluator(state[name].shape[1] if state[name].ndim == 2 else 1)
                  for name in requirements}
    variables = VariableSet.of(ModelVariable, list(requirements))
    accumulator = EnergyAccumulator()

    for cell in mesh.iterate_local_cells():
        variables.clear_all()
        for name, needs in requirements.items():
            evaluator = evaluators[name]
            evaluator.reinit(cell)
            evaluator.read_dof_values(state[name])
            evaluator.evaluate("value" in needs, "gradient" in needs, "hessian" in needs)
            variable = variables[name]
            if "value" in needs:
                variable.value = evaluator.get_value()
            if "gradient" in needs:
                variable.grad = evaluator.get_gradient()
            if "hessian" in needs:
                variable.hess = evaluator.get_hessian()
        f_chem, f_grad, f_el = kernel.energy_density(variables)
        mask = variables[tracked].value > threshold
        accumulator.add(f_chem, f_grad, f_el, evaluators[tracked].JxW(), mask)

    return accumulator.reduce(mesh.comm)


def compute_integral(mesh, vector):
    """
    Integral of a field over the domain, summed over all partitions.

    Returns
    -------
    float, or numpy.ndarray of the component integrals for a vector field
    """
    vector = asarray(vector)
    n_components = 1 if vector.ndim == 1 else vector.shape[1]
    evaluator = mesh.create_evaluator(n_components)
    local = 0.0 if n_components == 1 else zeros(n_components)
    for cell in mesh.iterate_local_cells():
        evaluator.reinit(cell)
        evaluator.read_dof_values(vector)
        evaluator.evaluate(value=True)
        weights = evaluator.JxW() if n_components == 1 else evaluator.JxW()[:, None]
        local = local + (evaluator.get_value() * weights).sum(axis=0)
    if n_components == 1:
        return float(mesh.comm.reduce_sum(float(local)))
    return mesh.comm.reduce_sum(asarray(local))
