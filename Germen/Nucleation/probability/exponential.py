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
Exponential Nucleation Probability
==================================

Classical-nucleation-like probability, exponential in the supersaturation of
the composition with respect to a baseline:

    J = k1 exp(-k2 / (c - c0))

Points where ``c <= c0`` cannot nucleate (J = 0).
"""

from numpy import asarray, exp, where

from .base_probability import BaseNucleationProbability
from ...utils.mpi.communicator import print


class ExponentialProbability(BaseNucleationProbability):
    """
    Attributes
    ----------
    k1 : float Prefactor
    k2 : float Activation constant
    c0 : float Baseline composition
    """

    def required_parameters(self):
        return ["k1", "k2", "c0"]

    def __init__(self, params):
        super().__init__(params)
        self.k1 = float(params["k1"])
        self.k2 = float(params["k2"])
        self.c0 = float(params["c0"])
        print(f"Exponential nucleation probability: k1 = {self.k1}, k2 = {self.k2}, c0 = {self.c0}")

    def _probability(self, c, cell_volume, domain_volume):
        supersaturation = asarray(c, dtype=float) - self.c0
        return where(supersaturation > 0, self.k1 * exp(-self.k2 / supersaturation), 0.0)
