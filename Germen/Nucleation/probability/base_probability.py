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
Base Nucleation Probability
===========================

Abstract base class of the point-wise nucleation probability models. A model
turns the local composition into the probability ``J`` that a nucleus appears
at a mesh point during the current step. Models are evaluated on arrays of
points; non-finite or degenerate values are clamped to zero.

Classes:
--------
BaseNucleationProbability : Abstract base class of the probability models
    Validates the model parameters
    Defines the vectorised probability evaluation
"""

from abc import ABC, abstractmethod

from numpy import errstate, isfinite, where

from ...utils.errors import ConfigurationError


class BaseNucleationProbability(ABC):
    """Abstract base class of the nucleation probability models."""

    def __init__(self, params):
        """Validate the parameters.

        Parameters
        ----------
        params : dict Model parameters, see ``required_parameters()``

        Raises
        ------
        ConfigurationError If any required parameter is missing
        """
        self._validate_params(params)

    def _validate_params(self, params):
        required_params = self.required_parameters()
        missing_params = [param for param in required_params if param not in params]
        if missing_params:
            class_name = self.__class__.__name__
            raise ConfigurationError(
                f"Missing required parameters for {class_name}: {missing_params}. "
                f"Required parameters are: {required_params}")

    @abstractmethod
    def required_parameters(self):
        """Return the list of required parameter names."""
        pass

    @abstractmethod
    def _probability(self, c, cell_volume, domain_volume):
        pass

    def probability(self, c, cell_volume, domain_volume):
        """
        Nucleation probability at the given compositions.

        Parameters
        ----------
        c : numpy.ndarray Composition at the mesh points
        cell_volume : float Volume of a mesh cell
        domain_volume : float Volume of the whole domain

        Returns
        -------
        numpy.ndarray Probabilities, zero where the model is degenerate
        """
        with errstate(divide="ignore", over="ignore", invalid="ignore"):
            J = self._probability(c, cell_volume, domain_volume)
        return where(isfinite(J), J, 0.0)
