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
Physics of the residual kernels: interpolation functions, material model and
the coupled Cahn-Hilliard / Allen-Cahn / elasticity kernel.
"""

from .base_kernel import ResidualKernel
from .material_model import MaterialModel
from .coupled_chac_mechanics import CoupledCHACMechanicsKernel
from .interpolation import get_interpolation

__all__ = ['ResidualKernel', 'MaterialModel', 'CoupledCHACMechanicsKernel', 'get_interpolation']
