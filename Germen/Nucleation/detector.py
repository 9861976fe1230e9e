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
Nucleation Detector
===================

Per-partition proposal of candidate nuclei. At every locally owned mesh
point the probability ``J`` of the configured model is computed from the
composition, forced to zero where order parameters are already present or
once the nucleation end time is passed, and compared with a uniform draw.

Candidates closer than the minimum separation (strict) to a nucleus already
in the local list are rejected. The local list is the caller's: it persists
from step to step and is never shared with other partitions.
"""

from numpy import argsort, asarray, zeros
from numpy.random import default_rng

from .nucleus import Nucleus
from ..utils.errors import ConfigurationError

SEEDING_POLICIES = ("current", "origin")


class PointwiseDraws:
    """
    Uniform draws in [0, 1) attached to mesh points.

    With a seed, the draw of a point depends only on ``(seed, step, global
    point id)``, whatever the partitioning. Without a seed, every rank draws
    from its own unseeded generator.

    Parameters
    ----------
    n_global_points : int Number of mesh points over all partitions
    seed : int or None, optional Seed of the deterministic draws
    """

    def __init__(self, n_global_points, seed=None):
        self.n_global_points = n_global_points
        self.seed = seed
        self._rng = default_rng() if seed is None else None

    def draw(self, step, global_ids):
        global_ids = asarray(global_ids, dtype=int)
        if self.seed is None:
            return self._rng.random(len(global_ids))
        return default_rng([self.seed, step]).random(self.n_global_points)[global_ids]


def seeding_window(policy, t, window):
    """Return ``(seeded_time, seeding_time)`` of a nucleus detected at time ``t``."""
    if policy == "current":
        return t, window
    if policy == "origin":
        return 0.0, t + window
    raise ConfigurationError(f"Unknown seeding policy {policy}, choose among {SEEDING_POLICIES}")


class NucleationDetector:
    """
    Parameters
    ----------
    probability : BaseNucleationProbability Point-wise probability model
    draws : PointwiseDraws Random draws
    composition : str Composition field name
    order_parameters : list of str Order parameter names
    radius : float Radius given to the candidates
    min_distance : float Minimum separation between nuclei
    seeding_time : float Length of the seeding window
    seeding_policy : str "current" or "origin"
    threshold : float Order parameter sum above which no nucleus may appear
    max_step : int or None Last step with nucleation
    end_time : float or None Time after which no nucleus may appear
    """

    def __init__(self, probability, draws, composition, order_parameters, radius,
                 min_distance, seeding_time, seeding_policy="current", threshold=1e-6,
                 max_step=None, end_time=None):
        if seeding_policy not in SEEDING_POLICIES:
            raise ConfigurationError(
                f"Unknown seeding policy {seeding_policy}, choose among {SEEDING_POLICIES}")
        self.probability = probability
        self.draws = draws
        self.composition = composition
        self.order_parameters = list(order_parameters)
        self.radius = radius
        self.min_distance = min_distance
        self.seeding_time = seeding_time
        self.seeding_policy = seeding_policy
        self.threshold = threshold
        self.max_step = max_step
        self.end_time = end_time

    def within_step_limit(self, step):
        return self.max_step is None or step <= self.max_step

    def is_active(self, t, step):
        if not self.within_step_limit(step):
            return False
        return self.end_time is None or t <= self.end_time

    def probabilities(self, t, state, mesh, dofs):
        """Probability of every given dof, with the presence and time cut-offs applied."""
        c = asarray(state[self.composition])[dofs]
        J = self.probability.probability(c, mesh.cell_volume(), mesh.domain_volume())
        if self.order_parameters:
            order_sum = zeros(len(dofs))
            for name in self.order_parameters:
                order_sum += asarray(state[name])[dofs]
            J[order_sum > self.threshold] = 0.0
        if self.end_time is not None and t > self.end_time:
            J[:] = 0.0
        return J

    def detect(self, t, step, state, mesh, local_nuclei):
        """
        Propose the candidates of this step.

        Parameters
        ----------
        t : float Current time
        step : int Current step index
        state : FieldState Current solution
        mesh : MeshFieldCollaborator Point ownership and geometry
        local_nuclei : list of Nucleus Candidates already kept on this partition

        Returns
        -------
        list of Nucleus The local list extended by the accepted candidates
        """
        local_nuclei = list(local_nuclei)
        if not self.is_active(t, step):
            return local_nuclei
        dofs, points, owned = mesh.map_points_to_local_dofs()
        dofs, points = dofs[owned], points[owned]
        global_ids = asarray(mesh.global_dof_ids(dofs))
        J = self.probabilities(t, state, mesh, dofs)
        u = self.draws.draw(step, global_ids)
        seeded_time, seeding_time = seeding_window(self.seeding_policy, t, self.seeding_time)
        for k in argsort(global_ids, kind="stable"):
            if J[k] <= 0.0 or u[k] > J[k]:
                continue
            if any(nucleus.distance_to(points[k]) < self.min_distance for nucleus in local_nuclei):
                continue
            local_nuclei.append(Nucleus(index=len(local_nuclei),
                                        center=tuple(float(x) for x in points[k]),
                                        radius=self.radius,
                                        seeded_time=seeded_time,
                                        seeding_time=seeding_time))
        return local_nuclei
