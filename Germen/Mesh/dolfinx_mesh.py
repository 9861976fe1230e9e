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
dolfinx Mesh Adapter
====================

Exposes a dolfinx Lagrange space on a simplex mesh (affine geometry, degree
1 or 2) through the collaborator interface. Scalar fields use the dof layout
of the scalar space; vector fields use the same layout with one row of
``dim`` components per dof, matching a blocked dolfinx vector.

Basis values and reference derivatives are tabulated once with basix,
physical gradients and hessians are obtained per cell from the constant
Jacobian:

    grad N = J^-T grad_ref N,    hess N = J^-T hess_ref N J^-1
"""

import basix
from dolfinx import la
from dolfinx.fem import functionspace
from numpy import abs as np_abs, arange, einsum, zeros
from numpy.linalg import det, inv

from .base_collaborator import MeshFieldCollaborator
from ..utils.errors import ConfigurationError
from ..utils.mpi.communicator import as_communicator

_BASIX_CELLS = {"interval": basix.CellType.interval,
                "triangle": basix.CellType.triangle,
                "tetrahedron": basix.CellType.tetrahedron}


class DolfinxMesh(MeshFieldCollaborator):
    """
    Parameters
    ----------
    mesh : dolfinx.mesh.Mesh Simplex mesh
    degree : int, optional Lagrange degree, 1 or 2
    quadrature_degree : int, optional Defaults to ``2 * degree``
    """

    def __init__(self, mesh, degree=1, quadrature_degree=None):
        cell_name = mesh.topology.cell_name()
        if cell_name not in _BASIX_CELLS:
            raise ConfigurationError(f"Unsupported cell type {cell_name}, only simplices are handled")
        if degree not in (1, 2):
            raise ConfigurationError(f"Unsupported Lagrange degree {degree}")
        self.mesh = mesh
        self.comm = as_communicator(mesh.comm)
        self._dim = mesh.topology.dim
        self.V = functionspace(mesh, ("Lagrange", degree))
        self.index_map = self.V.dofmap.index_map
        self._n_local = self.index_map.size_local
        self._n_dofs = self._n_local + self.index_map.num_ghosts
        self._owned = arange(self._n_dofs) < self._n_local
        self._n_cells = mesh.topology.index_map(self._dim).size_local
        self.points = self.V.tabulate_dof_coordinates()[:, :self._dim]
        self._tabulate(_BASIX_CELLS[cell_name], degree, quadrature_degree or 2 * degree)
        self._compute_geometry()

    def _tabulate(self, cell_type, degree, quadrature_degree):
        element = basix.create_element(basix.ElementFamily.P, cell_type, degree,
                                       basix.LagrangeVariant.gll_warped)
        x, self._weights = basix.make_quadrature(cell_type, quadrature_degree)
        tab = element.tabulate(2, x)[:, :, :, 0]
        dim = self._dim
        first = [tuple(int(i == k) for i in range(dim)) for k in range(dim)]
        self._N = tab[0]
        self._dN_ref = zeros(tab.shape[1:] + (dim,))
        self._d2N_ref = zeros(tab.shape[1:] + (dim, dim))
        for k, dk in enumerate(first):
            self._dN_ref[:, :, k] = tab[basix.index(*dk)]
            for l, dl in enumerate(first):
                self._d2N_ref[:, :, k, l] = tab[basix.index(*(a + b for a, b in zip(dk, dl)))]

    def _compute_geometry(self):
        x = self.mesh.geometry.x[:, :self._dim]
        geometry_dofs = self.mesh.geometry.dofmap[:self._n_cells]
        vertices = x[geometry_dofs[:, :self._dim + 1]]
        self._jacobians = (vertices[:, 1:] - vertices[:, :1]).transpose(0, 2, 1)
        self._inverse_jacobians = inv(self._jacobians)
        self._dets = np_abs(det(self._jacobians))

    @property
    def dim(self):
        return self._dim

    @property
    def n_q_points(self):
        return len(self._weights)

    @property
    def n_global_points(self):
        return self.index_map.size_global

    @property
    def owned_mask(self):
        return self._owned

    def iterate_local_cells(self):
        return iter(range(self._n_cells))

    def cell_data(self, cell):
        K = self._inverse_jacobians[cell]
        dN = einsum("qdk,ki->qdi", self._dN_ref, K)
        d2N = einsum("qdkl,ki,lj->qdij", self._d2N_ref, K, K)
        return (self.V.dofmap.cell_dofs(cell), self._N, dN, d2N,
                self._weights * self._dets[cell])

    def create_vector(self, n_components=1):
        if n_components == 1:
            return zeros(self._n_dofs)
        return zeros((self._n_dofs, n_components))

    def _la_vector(self, vector):
        bs = 1 if vector.ndim == 1 else vector.shape[1]
        work = la.vector(self.index_map, bs)
        work.array[:] = vector.ravel()
        return work

    def compress(self, vector):
        work = self._la_vector(vector)
        work.scatter_reverse(la.InsertMode.add)
        work.scatter_forward()
        vector[...] = work.array.reshape(vector.shape)

    def update_ghost_values(self, vector):
        work = self._la_vector(vector)
        work.scatter_forward()
        vector[...] = work.array.reshape(vector.shape)

    def map_points_to_local_dofs(self):
        dofs = arange(self._n_dofs)
        return dofs, self.points, self._owned

    def global_dof_ids(self, dofs):
        return self.index_map.local_to_global(dofs.astype("int32"))

    def cell_volume(self):
        n_cells = self.comm.reduce_sum(self._n_cells)
        return self.domain_volume() / n_cells

    def domain_volume(self):
        reference_volume = self._weights.sum()
        return self.comm.reduce_sum(float(self._dets.sum() * reference_volume))

    def min_cell_size(self):
        h = self.mesh.h(self._dim, arange(self._n_cells, dtype="int32"))
        return self.comm.reduce_min(float(h.min()) if len(h) else float("inf"))
