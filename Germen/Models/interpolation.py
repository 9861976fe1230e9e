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
Interpolation and Barrier Functions
===================================

Phase interpolation functions h(n), with h(0) = 0, h(1) = 1 and vanishing
slopes at both ends, and the double-well barrier used by the Allen-Cahn
order parameters. All functions act element-wise on numpy arrays.
"""

from ..utils.errors import ConfigurationError


def cubic(n):
    return 3 * n**2 - 2 * n**3


def cubic_derivative(n):
    return 6 * n - 6 * n**2


def quintic(n):
    return n**3 * (6 * n**2 - 15 * n + 10)


def quintic_derivative(n):
    return 30 * n**2 * (n - 1)**2


def barrier(n):
    return n**2 - 2 * n**3 + n**4


def barrier_derivative(n):
    return 2 * n - 6 * n**2 + 4 * n**3


INTERPOLATIONS = {"cubic": (cubic, cubic_derivative),
                  "quintic": (quintic, quintic_derivative)}


def get_interpolation(name):
    """
    Return the pair ``(h, dh/dn)`` registered under ``name``.

    Raises
    ------
    ConfigurationError If the interpolation is unknown
    """
    try:
        return INTERPOLATIONS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown interpolation function {name}, choose among {list(INTERPOLATIONS)}") from None
