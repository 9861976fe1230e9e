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
Nucleation Subsystem
====================

Per-step nucleation pipeline: detection on every partition, reconciliation
on the root, broadcast of the canonical list and seeding of the primary order
parameter.

The per-partition candidate list is the only state carried from one step to
the next. It is held in a NucleationState owned by the caller and passed to
:meth:`NucleationSubsystem.advance`, which returns the updated state together
with the canonical list of the step. Nothing is stored on the subsystem.

Configuration dictionary
------------------------
Required:
    min_distance : float Minimum separation between nuclei
    radius : float Seeded radius
    seeding_time : float Length of the seeding window
    probability : dict {"type": "Exponential" | "Linear", "params": {...}}
Optional:
    seeding_policy : "current" (window starts at detection, default) or
                     "origin" (window starts at t = 0 and ends seeding_time after detection)
    max_step : int Last step with nucleation and seeding (default: unlimited)
    end_time : float Time after which no nucleus appears (default: unlimited)
    threshold : float Order parameter sum preventing nucleation (default 1e-6)
    interface_width : float Width of the seeded profile (default: smallest cell size)
    margin : float Seeding distance beyond the radius (default 3 interface widths)
    seed : int Seed of the point-wise draws (default: unseeded)
    composition : str (default "c")
    order_parameters : list of str (default ["n"])
    seeded_field : str (default: first order parameter)
"""

from dataclasses import dataclass, field

from .detector import NucleationDetector, PointwiseDraws
from .probability import create_probability_model
from .reconciler import NucleationReconciler
from .seeder import NucleusSeeder
from ..utils.errors import ConfigurationError
from ..utils.mpi.communicator import print


@dataclass(frozen=True)
class NucleationState:
    """Candidate nuclei kept by one partition across steps."""
    local: tuple = ()


@dataclass(frozen=True)
class NucleationResult:
    """Outcome of one nucleation step."""
    canonical: list
    state: NucleationState
    seeded_points: int = 0
    candidates: list = field(default_factory=list)


class NucleationSubsystem:
    """
    Parameters
    ----------
    mesh : MeshFieldCollaborator Mesh, point ownership and collectives
    params : dict Configuration, see the module documentation
    """

    def required_parameters(self):
        return ["min_distance", "radius", "seeding_time", "probability"]

    def __init__(self, mesh, params):
        self._validate_params(params)
        self.mesh = mesh
        self.comm = mesh.comm
        self.min_distance = float(params["min_distance"])
        self.radius = float(params["radius"])
        if self.min_distance < 0 or self.radius <= 0:
            raise ConfigurationError("Nucleus radius must be positive and min_distance non-negative")
        self.composition = params.get("composition", "c")
        self.order_parameters = list(params.get("order_parameters", ["n"]))
        if not self.order_parameters and "seeded_field" not in params:
            raise ConfigurationError("A seeded field is needed when no order parameter is given")
        self.seeded_field = params.get("seeded_field", self.order_parameters[0] if self.order_parameters else None)
        interface_width = float(params.get("interface_width", mesh.min_cell_size()))
        margin = float(params.get("margin", 3 * interface_width))

        self.detector = NucleationDetector(
            probability=create_probability_model(params["probability"]),
            draws=PointwiseDraws(mesh.n_global_points, params.get("seed")),
            composition=self.composition,
            order_parameters=self.order_parameters,
            radius=self.radius,
            min_distance=self.min_distance,
            seeding_time=float(params["seeding_time"]),
            seeding_policy=params.get("seeding_policy", "current"),
            threshold=float(params.get("threshold", 1e-6)),
            max_step=params.get("max_step"),
            end_time=params.get("end_time"))
        self.reconciler = NucleationReconciler(self.comm, mesh.dim, self.min_distance)
        self.seeder = NucleusSeeder(self.seeded_field, interface_width, margin)

        print(f"Nucleation: radius = {self.radius}, minimum distance = {self.min_distance}, "
              f"seeding time = {params['seeding_time']} ({self.detector.seeding_policy} policy)")
        print(f"Nucleation seeds {self.seeded_field} with interface width {interface_width} "
              f"and margin {margin}")

    def _validate_params(self, params):
        required_params = self.required_parameters()
        missing_params = [param for param in required_params if param not in params]
        if missing_params:
            raise ConfigurationError(
                f"Missing required parameters for {self.__class__.__name__}: {missing_params}. "
                f"Required parameters are: {required_params}")

    def check_fields(self, registry):
        for name in [self.composition, self.seeded_field] + self.order_parameters:
            registry.field(name)
            if not registry.field(name).is_scalar:
                raise ConfigurationError(f"Nucleation field {name} must be scalar")

    def advance(self, t, step, state, nucleation_state=None):
        """
        Detect, reconcile, broadcast and seed (collective).

        Parameters
        ----------
        t : float Current time
        step : int Current step index
        state : FieldState Solution, the seeded field is overwritten in place
        nucleation_state : NucleationState, optional Local candidates of the previous steps

        Returns
        -------
        NucleationResult Canonical list of this step and updated local state
        """
        if nucleation_state is None:
            nucleation_state = NucleationState()
        # past max_step the canonical list is empty and nothing is seeded
        if not self.detector.within_step_limit(step):
            return NucleationResult(canonical=[], state=nucleation_state)
        previous = list(nucleation_state.local)
        local = self.detector.detect(t, step, state, self.mesh, previous)
        canonical = self.reconciler.reconcile(local)
        seeded_points = self.seeder.seed(t, canonical, state, self.mesh)
        print(f"total number of nuclei currently seeded : {len(canonical)}")
        return NucleationResult(canonical=canonical,
                                state=NucleationState(tuple(local)),
                                seeded_points=seeded_points,
                                candidates=local[len(previous):])


def nucleation_preset(name, mesh, dt, total_steps, output_interval=0, span=None, **overrides):
    """
    Configuration of the two reference nucleation setups.

    Parameters
    ----------
    name : str "binary" (composition + one order parameter, exponential model)
           or "precipitate" (composition + three order parameters, linear model)
    mesh : MeshFieldCollaborator Provides the cell size
    dt : float Time step
    total_steps : int Number of time steps of the run
    output_interval : int, optional Steps between outputs
    span : float, optional Domain length along x, read from the mesh when available
    **overrides : Entries replacing the preset values

    Returns
    -------
    dict Nucleation configuration
    """
    dx = mesh.min_cell_size()
    if name == "binary":
        if span is None:
            if not hasattr(mesh, "lengths"):
                raise ConfigurationError("The binary preset needs the domain span")
            span = float(mesh.lengths[0])
        params = {"min_distance": span / 10.0,
                  "radius": span / 50.0,
                  "seeding_time": 30 * dt,
                  "seeding_policy": "origin",
                  "max_step": total_steps - output_interval,
                  "interface_width": dx,
                  "margin": 3 * dx,
                  "composition": "c",
                  "order_parameters": ["n"],
                  "probability": {"type": "Exponential",
                                  "params": {"k1": 1e-4, "k2": 1.0, "c0": 0.3}}}
    elif name == "precipitate":
        radius = 2.5
        params = {"min_distance": 4 * radius,
                  "radius": radius,
                  "seeding_time": 10000 * dt,
                  "seeding_policy": "current",
                  "max_step": total_steps,
                  "end_time": 1e9 * dt,
                  "interface_width": 0.4,
                  "margin": radius,
                  "composition": "c",
                  "order_parameters": ["n1", "n2", "n3"],
                  "seeded_field": "n1",
                  "probability": {"type": "Linear",
                                  "params": {"c_matrix": 1e-6, "rate": 0.01}}}
    else:
        raise ConfigurationError(f"Unknown nucleation preset {name}")
    params.update(overrides)
    return params
