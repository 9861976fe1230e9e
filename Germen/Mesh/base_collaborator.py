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
Mesh/Field Collaborator Interface
=================================

The assembly engine and the nucleation subsystem never touch mesh topology
directly. They go through a collaborator exposing:

- iteration over the locally owned cells and per-cell evaluation contexts
  (dof read, value/gradient/hessian evaluation at the quadrature points,
  residual submission, integration and scatter-add);
- distributed vectors (creation, compression of shared dofs, ghost update);
- point-wise access to the locally owned dofs used by the nucleation seeder.

Classes:
--------
CellEvaluator : Evaluation context working from tabulated basis functions
MeshFieldCollaborator : Abstract base of the concrete meshes
"""

from abc import ABC, abstractmethod

from numpy import add, asarray, einsum, ones_like, zeros

from ..utils.errors import KernelContractError


class CellEvaluator:
    """
    Evaluation context of one field on one cell.

    The collaborator supplies, per cell, the dof indices, the basis values
    ``N`` (nq, nd), physical gradients ``dN`` (nq, nd, dim), physical
    hessians ``d2N`` (nq, nd, dim, dim) and the integration weights ``JxW``.
    Derivatives are only computed when requested through :meth:`evaluate`.

    Parameters
    ----------
    collaborator : MeshFieldCollaborator Mesh providing the tabulations
    n_components : int 1 for a scalar field, ``dim`` for a vector field
    """

    def __init__(self, collaborator, n_components=1):
        self.collaborator = collaborator
        self.n_components = n_components
        self.is_scalar = n_components == 1
        self.cell = None

    def reinit(self, cell):
        """Attach the context to ``cell`` and discard previous evaluations."""
        self.cell = cell
        self.dofs, self.N, self.dN, self.d2N, self._jxw = self.collaborator.cell_data(cell)
        self._local = None
        self._value = self._gradient = self._hessian = None
        self._value_residual = self._gradient_residual = None
        self._cell_residual = None

    def read_dof_values(self, vector):
        self._local = asarray(vector)[self.dofs]

    def evaluate(self, value=False, gradient=False, hessian=False):
        """Interpolate the requested quantities at the quadrature points."""
        if self._local is None:
            raise RuntimeError("read_dof_values must be called before evaluate")
        if self.is_scalar:
            if value:
                self._value = self.N @ self._local
            if gradient:
                self._gradient = einsum("qdi,d->qi", self.dN, self._local)
            if hessian:
                self._hessian = einsum("qdij,d->qij", self.d2N, self._local)
        else:
            if value:
                self._value = einsum("qd,dc->qc", self.N, self._local)
            if gradient:
                self._gradient = einsum("qdj,dc->qcj", self.dN, self._local)
            if hessian:
                self._hessian = einsum("qdjk,dc->qcjk", self.d2N, self._local)

    def get_value(self):
        return self._checked(self._value, "value")

    def get_gradient(self):
        return self._checked(self._gradient, "gradient")

    def get_hessian(self):
        return self._checked(self._hessian, "hessian")

    @staticmethod
    def _checked(data, kind):
        if data is None:
            raise RuntimeError(f"The {kind} has not been evaluated on this cell")
        return data

    def submit_value(self, residual):
        self._value_residual = self._check_shape(residual, self.value_shape, "value")

    def submit_gradient(self, residual):
        self._gradient_residual = self._check_shape(residual, self.gradient_shape, "gradient")

    @property
    def n_q_points(self):
        return len(self._jxw)

    @property
    def value_shape(self):
        nq = self.n_q_points
        return (nq,) if self.is_scalar else (nq, self.n_components)

    @property
    def gradient_shape(self):
        return self.value_shape + (self.collaborator.dim,)

    @staticmethod
    def _check_shape(residual, expected, kind):
        residual = asarray(residual, dtype=float)
        if residual.shape != expected:
            raise KernelContractError(
                f"{kind} residual of shape {residual.shape}, expected {expected}")
        return residual

    def integrate(self, value=False, gradient=False):
        """Test the submitted residuals against the basis functions."""
        shape = (self.N.shape[1],) if self.is_scalar else (self.N.shape[1], self.n_components)
        cell_residual = zeros(shape)
        if value:
            weighted = self._checked(self._value_residual, "value residual") * self._weights()
            if self.is_scalar:
                cell_residual += einsum("qd,q->d", self.N, weighted)
            else:
                cell_residual += einsum("qd,qc->dc", self.N, weighted)
        if gradient:
            weighted = self._checked(self._gradient_residual, "gradient residual")
            if self.is_scalar:
                cell_residual += einsum("qdi,qi,q->d", self.dN, weighted, self._jxw)
            else:
                cell_residual += einsum("qdj,qcj,q->dc", self.dN, weighted, self._jxw)
        self._cell_residual = cell_residual

    def _weights(self):
        return self._jxw if self.is_scalar else self._jxw[:, None]

    def distribute_local_to_global(self, dst):
        """Scatter-add the integrated cell residual into ``dst``."""
        if self._cell_residual is None:
            raise RuntimeError("integrate must be called before distribute_local_to_global")
        add.at(dst, self.dofs, self._cell_residual)

    def JxW(self):
        return self._jxw


class MeshFieldCollaborator(ABC):
    """
    Abstract mesh and distributed vector provider.

    Attributes
    ----------
    comm : Communicator Collective primitives of the partitioning
    dim : int Spatial dimension
    """

    @property
    @abstractmethod
    def dim(self):
        pass

    @property
    @abstractmethod
    def n_q_points(self):
        pass

    @property
    @abstractmethod
    def n_global_points(self):
        """Number of mesh points (dofs of a scalar field) over all partitions."""
        pass

    @property
    @abstractmethod
    def owned_mask(self):
        """Boolean mask of the locally owned dofs in the local vector layout."""
        pass

    @abstractmethod
    def iterate_local_cells(self):
        pass

    @abstractmethod
    def cell_data(self, cell):
        """Return ``(dofs, N, dN, d2N, JxW)`` of a local cell."""
        pass

    @abstractmethod
    def create_vector(self, n_components=1):
        pass

    @abstractmethod
    def compress(self, vector):
        """Sum the contributions of every partition to shared dofs (collective)."""
        pass

    @abstractmethod
    def update_ghost_values(self, vector):
        """Copy owner values to every partition holding the dof (collective)."""
        pass

    @abstractmethod
    def map_points_to_local_dofs(self):
        """
        Returns
        -------
        tuple dofs : numpy.ndarray Local dof indices of the mesh points
              points : numpy.ndarray (n, dim) Coordinates
              owned : numpy.ndarray Boolean ownership mask
        """
        pass

    @abstractmethod
    def global_dof_ids(self, dofs):
        """Partition-independent identifiers of local dofs."""
        pass

    @abstractmethod
    def cell_volume(self):
        pass

    @abstractmethod
    def domain_volume(self):
        pass

    @abstractmethod
    def min_cell_size(self):
        pass

    def create_evaluator(self, n_components=1):
        return CellEvaluator(self, n_components)

    def read_field_at_dof(self, vector, dof):
        return vector[dof]

    def write_field_at_dof(self, vector, dof, value):
        """Overwrite a locally owned dof; ghost copies are refreshed by update_ghost_values."""
        if not self.owned_mask[dof]:
            raise RuntimeError(f"dof {dof} is not owned by this partition")
        vector[dof] = value

    def lumped_mass(self):
        """Row-sum lumped mass vector, compressed over all partitions."""
        mass = self.create_vector()
        evaluator = self.create_evaluator()
        for cell in self.iterate_local_cells():
            evaluator.reinit(cell)
            evaluator.submit_value(ones_like(evaluator.JxW()))
            evaluator.integrate(value=True)
            evaluator.distribute_local_to_global(mass)
        self.compress(mass)
        return mass
