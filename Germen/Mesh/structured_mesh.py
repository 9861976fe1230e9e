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
Structured Box Mesh
===================

Tensor-product Q1 mesh of an axis-aligned box, distributed over the ranks of
a communicator in contiguous slabs of cell layers along the last axis.

Every rank holds the full (replicated) dof vectors, the partitioning only
decides which cells a rank assembles and which dofs it owns:

- the cells of the layers attributed to the rank are its local cells;
- a node belongs to the rank owning the cell layer just above it (the top
  node layer belongs to the owner of the last cell layer).

Compression sums the contributions of all ranks and the ghost update
broadcasts the owner values, both through one global reduction.

Nodes and cells are numbered with the first coordinate running fastest.
"""

from numpy import (arange, array, array_split, asarray, concatenate, empty,
                   isclose, meshgrid, nonzero, prod, ravel_multi_index,
                   stack, unique, unravel_index, where, zeros)

from .base_collaborator import MeshFieldCollaborator
from .quadrature import gauss_points_weights, q1_shape_functions, reference_vertices
from ..utils.errors import ConfigurationError
from ..utils.mpi.communicator import as_communicator, print


class StructuredMesh(MeshFieldCollaborator):
    """
    Q1 mesh of the box ``origin + [0, lengths]``.

    Parameters
    ----------
    n_cells : tuple of int Number of cells per direction
    lengths : tuple of float Box size per direction
    comm : Communicator or mpi4py communicator, optional Partitioning communicator
    origin : tuple of float, optional Lower corner, defaults to 0
    n_gauss : int, optional Gauss points per direction, defaults to 2
    """

    def __init__(self, n_cells, lengths, comm=None, origin=None, n_gauss=2):
        n_cells = tuple(int(n) for n in n_cells)
        lengths = tuple(float(length) for length in lengths)
        if len(n_cells) not in (1, 2, 3) or len(n_cells) != len(lengths):
            raise ConfigurationError(f"Inconsistent box description {n_cells}, {lengths}")
        if min(n_cells) < 1 or min(lengths) <= 0:
            raise ConfigurationError("Cell counts and box lengths must be positive")
        self.comm = as_communicator(comm)
        self._dim = len(n_cells)
        self.n_cells = n_cells
        self.lengths = array(lengths)
        self.origin = zeros(self._dim) if origin is None else asarray(origin, dtype=float)
        self.spacing = self.lengths / array(n_cells)
        self.node_shape = tuple(n + 1 for n in n_cells)
        self.n_nodes = int(prod(self.node_shape))
        self.points = self._build_points()
        self._cell_dofs = self._build_connectivity()
        self._tabulate(n_gauss)
        self._partition()

    def _build_points(self):
        coords = [self.origin[d] + self.spacing[d] * arange(self.node_shape[d])
                  for d in range(self._dim)]
        grids = meshgrid(*coords, indexing="ij")
        return stack([grid.ravel(order="F") for grid in grids], axis=1)

    def _build_connectivity(self):
        n_total = int(prod(self.n_cells))
        cell_index = array(unravel_index(arange(n_total), self.n_cells, order="F")).T
        vertices = reference_vertices(self._dim)
        cell_dofs = empty((n_total, len(vertices)), dtype=int)
        for a, bits in enumerate(vertices):
            cell_dofs[:, a] = ravel_multi_index((cell_index + bits).T, self.node_shape, order="F")
        return cell_dofs

    def _tabulate(self, n_gauss):
        x, w = gauss_points_weights(n_gauss, self._dim)
        N, dN_ref, d2N_ref = q1_shape_functions(x)
        inv_jac = 2.0 / self.spacing
        self._N = N
        self._dN = dN_ref * inv_jac
        self._d2N = d2N_ref * inv_jac[:, None] * inv_jac[None, :]
        self._jxw = w * prod(self.spacing / 2.0)

    def _partition(self):
        rank, size = self.comm.rank(), self.comm.world_size()
        n_layers = self.n_cells[-1]
        layer_owner = empty(n_layers, dtype=int)
        for owner, layers in enumerate(array_split(arange(n_layers), size)):
            layer_owner[layers] = owner
        cells_per_layer = int(prod(self.n_cells[:-1]))
        my_layers = nonzero(layer_owner == rank)[0]
        if len(my_layers) == 0:
            self._local_cells = arange(0)
        else:
            self._local_cells = arange(my_layers[0] * cells_per_layer,
                                       (my_layers[-1] + 1) * cells_per_layer)
        node_layer = arange(self.n_nodes) // int(prod(self.node_shape[:-1]))
        node_owner = layer_owner[node_layer.clip(max=n_layers - 1)]
        self._owned = node_owner == rank

    @property
    def dim(self):
        return self._dim

    @property
    def n_q_points(self):
        return len(self._jxw)

    @property
    def n_global_points(self):
        return self.n_nodes

    @property
    def owned_mask(self):
        return self._owned

    @property
    def local_cells(self):
        return self._local_cells

    def iterate_local_cells(self):
        return iter(self._local_cells)

    def cell_data(self, cell):
        return self._cell_dofs[cell], self._N, self._dN, self._d2N, self._jxw

    def create_vector(self, n_components=1):
        if n_components == 1:
            return zeros(self.n_nodes)
        return zeros((self.n_nodes, n_components))

    def compress(self, vector):
        vector[...] = self.comm.reduce_sum(vector)

    def update_ghost_values(self, vector):
        mask = self._owned if vector.ndim == 1 else self._owned[:, None]
        vector[...] = self.comm.reduce_sum(where(mask, vector, 0.0))

    def map_points_to_local_dofs(self):
        if len(self._local_cells) == 0:
            dofs = arange(0)
        else:
            dofs = unique(concatenate([self._cell_dofs[cell] for cell in self._local_cells]))
        return dofs, self.points[dofs], self._owned[dofs]

    def global_dof_ids(self, dofs):
        return asarray(dofs)

    def cell_volume(self):
        return float(prod(self.spacing))

    def domain_volume(self):
        return float(prod(self.lengths))

    def min_cell_size(self):
        return float(self.spacing.min())

    def boundary_dofs(self, axis, side="min"):
        """Dofs on the face ``x[axis] = min`` or ``x[axis] = max`` of the box."""
        bound = self.origin[axis] + (0.0 if side == "min" else self.lengths[axis])
        return nonzero(isclose(self.points[:, axis], bound))[0]

    def summary(self):
        print(f"Structured Q1 mesh: {self.n_cells} cells, {self.n_nodes} nodes, "
              f"spacing {self.spacing}, {self.comm.world_size()} partition(s)")
