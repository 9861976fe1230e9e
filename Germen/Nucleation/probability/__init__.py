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
Nucleation Probability Models
=============================

Available models:
- Exponential: J = k1 exp(-k2 / (c - c0))
- Linear: J = c / c_matrix * cell_volume / domain_volume * rate

Models are selected from a configuration dictionary
``{"type": "Exponential", "params": {...}}``.
"""

from .base_probability import BaseNucleationProbability
from .exponential import ExponentialProbability
from .linear import LinearProbability
from ...utils.errors import ConfigurationError

__all__ = ['BaseNucleationProbability', 'ExponentialProbability', 'LinearProbability',
           'create_probability_model']


def create_probability_model(config):
    """Factory building a probability model from its configuration.

    Parameters
    ----------
    config : dict or BaseNucleationProbability Model configuration containing 'type' and 'params'

    Returns
    -------
    BaseNucleationProbability Configured probability model
    """
    if isinstance(config, BaseNucleationProbability):
        return config
    try:
        probability_type = config["type"]
    except (KeyError, TypeError):
        raise ConfigurationError(f"Probability configuration needs a 'type': {config}") from None
    params = config.get("params", {})

    if probability_type == "Exponential":
        return ExponentialProbability(params)
    elif probability_type == "Linear":
        return LinearProbability(params)
    else:
        raise ConfigurationError(f"Unknown nucleation probability type: {probability_type}")
