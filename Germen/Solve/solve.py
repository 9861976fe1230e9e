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
Explicit time-stepping driver.

At every increment:
1. the parabolic fields are advanced by a forward-Euler step, the assembled
   residual being divided by the lumped mass;
2. each elliptic field is brought to equilibrium by a matrix-free conjugate
   gradient solve of ``LHS(du) = RHS(u)`` followed by ``u += du``;
3. ghost values are refreshed and nucleation runs on the updated fields;
4. every ``output_interval`` increments the energies are computed.

A problem made of elliptic fields only is solved in a single increment.
The driver works on the vectors held by the rank; with the structured mesh
these are replicated on every partition.
"""

from numpy import isclose, zeros
from scipy.sparse.linalg import LinearOperator, cg
from tqdm import tqdm

from ..Nucleation.nucleation import NucleationState
from ..Variables.field import ELLIPTIC, PARABOLIC
from ..utils.errors import ConfigurationError, GermenError
from ..utils.mpi.communicator import print


class Solve:
    """
    Parameters
    ----------
    problem : PhaseFieldProblem Problem to advance
    dictionnaire : dict Driver settings:
        dt : float Time step
        n_steps : int Number of increments (or final_time : float)
        output_interval : int, optional Increments between energy outputs (default 1)
        constraints : dict, optional Field name -> dofs held at their current value
        cg : dict, optional Keyword arguments of scipy.sparse.linalg.cg (default rtol 1e-10)
    state : FieldState, optional Initial solution, defaults to zero fields
    """

    def __init__(self, problem, dictionnaire, state=None):
        self.pb = problem
        self.state = problem.create_state() if state is None else state
        self.state.check_roster(problem.registry)
        self.set_time_step(dictionnaire)
        self.output_interval = int(dictionnaire.get("output_interval", 1))
        self.constraints = dictionnaire.get("constraints", {})
        self.cg_parameters = {"rtol": 1e-10}
        self.cg_parameters.update(dictionnaire.get("cg", {}))
        fields = problem.registry.fields
        self.parabolic = [field.name for field in fields if field.pde_type == PARABOLIC]
        self.elliptic = [field.name for field in fields if field.pde_type == ELLIPTIC]
        self.mass = problem.mesh.lumped_mass() if self.parabolic else None
        self.t = 0.0
        self.step = 0
        self.nucleation_state = NucleationState()
        self.nuclei = []
        self.energies = []
        self.completed = False

    def set_time_step(self, dictionnaire):
        if "dt" not in dictionnaire:
            raise ConfigurationError("Driver settings need a time step 'dt'")
        self.dt = float(dictionnaire["dt"])
        if "n_steps" in dictionnaire:
            self.n_steps = int(dictionnaire["n_steps"])
        elif "final_time" in dictionnaire:
            self.n_steps = int(round(dictionnaire["final_time"] / self.dt))
        else:
            raise ConfigurationError("Driver settings need 'n_steps' or 'final_time'")
        self.final_time = self.n_steps * self.dt

    def explicit_update(self):
        """Forward-Euler update of the parabolic fields."""
        residual = self.pb.assemble_rhs(self.state)
        for name in self.parabolic:
            vector = residual[name]
            mass = self.mass if vector.ndim == 1 else self.mass[:, None]
            self.state[name][...] = vector / mass

    def elliptic_update(self, name):
        """Matrix-free CG solve of the increment of one elliptic field."""
        vector = self.state[name]
        shape = vector.shape
        fixed = zeros(shape, dtype=bool)
        if name in self.constraints:
            fixed[self.constraints[name]] = True
        rhs = self.pb.assemble_rhs(self.state)[name].copy()
        rhs[fixed] = 0.0

        def matvec(x):
            trial = x.reshape(shape).copy()
            trial[fixed] = 0.0
            result = self.pb.apply_lhs_operator(name, trial, self.state)
            result[fixed] = x.reshape(shape)[fixed]
            return result.ravel()

        operator = LinearOperator((vector.size, vector.size), matvec=matvec, dtype=float)
        increment, info = cg(operator, rhs.ravel(), **self.cg_parameters)
        if info != 0:
            raise GermenError(f"CG solve of {name} did not converge (info = {info})",
                              stage="assembly")
        vector += increment.reshape(shape)

    def solve_increment(self):
        if self.parabolic:
            self.explicit_update()
        for name in self.elliptic:
            self.elliptic_update(name)
        for vector in self.state.values():
            self.pb.mesh.update_ghost_values(vector)
        result = self.pb.advance_nucleation(self.t, self.step, self.state, self.nucleation_state)
        self.nucleation_state = result.state
        self.nuclei = result.canonical

    def output(self):
        if self.step % self.output_interval == 0 or isclose(self.t, self.final_time):
            self.energies.append((self.t,) + tuple(self.pb.compute_energy(self.state)))

    def solve(self):
        """
        Run the time loop.

        Returns
        -------
        FieldState Final solution
        """
        n_steps = self.n_steps if self.parabolic else 1
        try:
            with tqdm(total=n_steps, desc="Progression", unit="step") as pbar:
                while self.step < n_steps:
                    self.step += 1
                    self.t += self.dt
                    self.solve_increment()
                    self.output()
                    pbar.update(1)
        except GermenError as err:
            print(f"Run aborted at step {self.step} (t = {self.t}) during {err.stage}: {err}")
            raise
        self.completed = True
        return self.state
