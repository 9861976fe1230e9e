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
Stiffness Matrix Builders
========================

This module provides utilities to construct stiffness matrices from material parameters
for various symmetry classes (isotropic, transversely isotropic, orthotropic, fully
anisotropic) and to convert them to the fourth-order tensors used at quadrature points.

Functions
---------
build_isotropic_stiffness : Build stiffness matrix for isotropic material
build_transverse_isotropic_stiffness : Build stiffness matrix for transversely isotropic material
build_orthotropic_stiffness : Build stiffness matrix for orthotropic material
build_anisotropic_stiffness : Build stiffness matrix from its 21 independent constants
build_stiffness : Dispatch on a material model name
voigt_to_tensor : Convert a 6x6 Voigt matrix to a dim^4 tensor
"""

import numpy as np
from scipy.linalg import block_diag
from numpy.linalg import inv as np_inv

from .errors import ConfigurationError
from .mpi.communicator import print

# Voigt convention [xx, yy, zz, yz, xz, xy]
VOIGT_INDEX = np.array([[0, 5, 4],
                        [5, 1, 3],
                        [4, 3, 2]])


def build_isotropic_stiffness(E, nu):
    """Build stiffness matrix for isotropic material.

    Parameters
    ----------
    E : float Young's modulus
    nu : float Poisson's ratio

    Returns
    -------
    ndarray 6x6 stiffness matrix in Voigt notation
    """
    print(f"Building isotropic stiffness tensor: E = {E}, nu = {nu}")
    lmbda = E * nu / ((1 + nu) * (1 - 2 * nu))
    mu = E / (2 * (1 + nu))
    C = np.zeros((6, 6))
    C[:3, :3] = lmbda
    C[:3, :3] += 2 * mu * np.eye(3)
    C[3:, 3:] = mu * np.eye(3)
    return C


def build_transverse_isotropic_stiffness(EL, ET, nuL, nuT, muL):
    """Build stiffness matrix for transversely isotropic material.

    Parameters
    ----------
    EL : float Young's modulus in longitudinal direction (fiber direction)
    ET : float Young's modulus in transverse direction
    nuL : float Poisson's ratio longitudinal-transverse (nuLT = nuLN)
    nuT : float Poisson's ratio transverse-transverse (nuTN)
    muL : float Shear modulus in longitudinal planes (muLT = muLN)

    Returns
    -------
    ndarray 6x6 stiffness matrix in Voigt notation

    Notes
    -----
    Assumes L is the longitudinal (fiber) direction, T and N are transverse directions.
    Convention: L=x, T=y, N=z in Voigt notation [xx, yy, zz, yz, xz, xy]
    """
    print("Building transversely isotropic stiffness tensor:")
    print(f"Young's modulus (longitudinal): {EL}")
    print(f"Young's modulus (transverse): {ET}")
    print(f"Poisson ratio (longitudinal): {nuL}")
    print(f"Poisson ratio (transverse): {nuT}")
    print(f"Shear modulus (longitudinal): {muL}")
    muT = ET / (2 * (1 + nuT))
    return build_orthotropic_stiffness(
        EL=EL, ET=ET, EN=ET,
        nuLT=nuL, nuLN=nuL, nuTN=nuT,
        muLT=muL, muLN=muL, muTN=muT
    )


def build_orthotropic_stiffness(EL, ET, EN, nuLT, nuLN, nuTN, muLT, muLN, muTN):
    """Build stiffness matrix for orthotropic material.

    Parameters
    ----------
    EL, ET, EN : float Young's moduli in L, T, N directions
    nuLT, nuLN, nuTN : float Poisson's ratios
    muLT, muLN, muTN : float Shear moduli

    Returns
    -------
    ndarray 6x6 stiffness matrix in Voigt notation
    """
    print(f"Building orthotropic stiffness tensor: E = ({EL}, {ET}, {EN}), "
          f"nu = ({nuLT}, {nuLN}, {nuTN}), mu = ({muLT}, {muLN}, {muTN})")
    S_diag = np.array([[1/EL, -nuLT/EL, -nuLN/EL],
                       [-nuLT/EL, 1/ET, -nuTN/ET],
                       [-nuLN/EL, -nuTN/ET, 1/EN]])
    S_shear = np.diag([1/muTN, 1/muLN, 1/muLT])  # [yz, xz, xy] order
    S = block_diag(S_diag, S_shear)
    return np_inv(S)


def build_anisotropic_stiffness(constants):
    """Build a symmetric stiffness matrix from its upper triangle (21 values, row major)."""
    constants = np.asarray(constants, dtype=float)
    if constants.size != 21:
        raise ConfigurationError(f"Anisotropic stiffness needs 21 constants, got {constants.size}")
    C = np.zeros((6, 6))
    C[np.triu_indices(6)] = constants
    return C + np.triu(C, 1).T


def build_stiffness(model, constants):
    """
    Build a Voigt stiffness matrix from a model name and its constants.

    Parameters
    ----------
    model : str One of "ISOTROPIC", "TRANSVERSE", "ORTHOTROPIC", "ANISOTROPIC"
    constants : sequence of float Model constants, in the order of the matching builder

    Returns
    -------
    ndarray 6x6 stiffness matrix in Voigt notation
    """
    builders = {"ISOTROPIC": (build_isotropic_stiffness, 2),
                "TRANSVERSE": (build_transverse_isotropic_stiffness, 5),
                "ORTHOTROPIC": (build_orthotropic_stiffness, 9)}
    if model == "ANISOTROPIC":
        return build_anisotropic_stiffness(constants)
    if model not in builders:
        raise ConfigurationError(f"Unknown elastic material model: {model}")
    builder, nb_constants = builders[model]
    if len(constants) != nb_constants:
        raise ConfigurationError(
            f"{model} stiffness needs {nb_constants} constants, got {len(constants)}")
    return builder(*constants)


def voigt_to_tensor(C, dim):
    """Convert a 6x6 Voigt stiffness matrix to a fourth-order tensor C[i, j, k, l].

    For dim < 3 the tensor is restricted to the in-plane components, which
    corresponds to a plane-strain state in 2D.
    """
    idx = VOIGT_INDEX[:dim, :dim]
    return np.asarray(C)[idx[:, :, None, None], idx[None, None, :, :]]
