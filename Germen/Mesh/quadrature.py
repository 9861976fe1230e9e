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
Tensor-product quadrature and Q1 shape functions on the reference cell [-1, 1]^dim.

The Gauss points are ordered with the first coordinate running fastest, the
cell vertices follow the same lexicographic order, so that vertex ``a`` has
reference coordinates ``2 * bits(a) - 1``.
"""

from itertools import product

from numpy import array, ones, prod, zeros
from numpy.polynomial.legendre import leggauss


def gauss_points_weights(n_points, dim):
    """
    Tensor-product Gauss-Legendre rule on [-1, 1]^dim.

    Parameters
    ----------
    n_points : int Number of Gauss points per direction
    dim : int Spatial dimension

    Returns
    -------
    tuple x : numpy.ndarray (n_points**dim, dim) Gauss points
          w : numpy.ndarray (n_points**dim,) Gauss weights, summing to 2**dim
    """
    if n_points < 1:
        raise ValueError(f"Unsupported number of Gauss points: {n_points}")
    x_1d, w_1d = leggauss(n_points)
    # reversed so that the first coordinate runs fastest
    x = array([pt[::-1] for pt in product(x_1d, repeat=dim)])
    w = array([prod(wt) for wt in product(w_1d, repeat=dim)])
    return x, w


def reference_vertices(dim):
    """Lexicographic vertex bits of the reference cell, first coordinate fastest."""
    return array([bits[::-1] for bits in product((0, 1), repeat=dim)])


def q1_shape_functions(points):
    """
    Tabulate the multilinear Q1 basis on the reference cell.

    Parameters
    ----------
    points : numpy.ndarray (nq, dim) Reference coordinates

    Returns
    -------
    tuple N : (nq, n_vertices) values
          dN : (nq, n_vertices, dim) reference gradients
          d2N : (nq, n_vertices, dim, dim) reference hessians
    """
    nq, dim = points.shape
    vertices = reference_vertices(dim)
    signs = 2 * vertices - 1
    n_vertices = len(vertices)
    # 1D factors phi = (1 + s xi) / 2 and their derivatives s / 2
    phi = 0.5 * (1 + signs[None, :, :] * points[:, None, :])
    dphi = 0.5 * signs[None, :, :] * ones((nq, 1, 1))
    N = prod(phi, axis=2)
    dN = zeros((nq, n_vertices, dim))
    d2N = zeros((nq, n_vertices, dim, dim))
    for i in range(dim):
        factors = phi.copy()
        factors[:, :, i] = dphi[:, :, i]
        dN[:, :, i] = prod(factors, axis=2)
        for j in range(dim):
            if j == i:
                continue
            mixed = factors.copy()
            mixed[:, :, j] = dphi[:, :, j]
            d2N[:, :, i, j] = prod(mixed, axis=2)
    return N, dN, d2N
