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
Linear Nucleation Probability
=============================

Probability proportional to the local composition relative to the matrix
composition, to the volume fraction of one cell and to a rate constant:

    J = c / c_matrix * cell_volume / domain_volume * rate

Points where ``c <= 0`` cannot nucleate (J = 0).
"""

from numpy import asarray, where

from .base_probability import BaseNucleationProbability
from ...utils.errors import ConfigurationError
from ...utils.mpi.communicator import print


class LinearProbability(BaseNucleationProbability):
    """
    Attributes
    ----------
    c_matrix : float Reference matrix composition
    rate : float Rate constant
    """

    def required_parameters(self):
        return ["c_matrix", "rate"]

    def __init__(self, params):
        super().__init__(params)
        self.c_matrix = float(params["c_matrix"])
        self.rate = float(params["rate"])
        if self.c_matrix <= 0:
            raise ConfigurationError(f"c_matrix must be positive, got {self.c_matrix}")
        print(f"Linear nucleation probability: c_matrix = {self.c_matrix}, rate = {self.rate}")

    def _probability(self, c, cell_volume, domain_volume):
        c = asarray(c, dtype=float)
        J = c / self.c_matrix * cell_volume / domain_volume * self.rate
        return where(c > 0, J, 0.0)
