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
Field Roster Module
===================

Field descriptors, evaluation requirements, the variable registry built from
them, the per-quadrature-point containers passed to residual kernels and the
solution storage of all fields.
"""

from .field import (Field, FieldRequirements, FieldDeclaration,
                    SCALAR, VECTOR, PARABOLIC, ELLIPTIC)
from .registry import VariableRegistry, VariableInfo, declare
from .model_variables import ModelVariable, ModelResidual, VariableSet
from .field_state import FieldState

__all__ = [
    'Field', 'FieldRequirements', 'FieldDeclaration',
    'SCALAR', 'VECTOR', 'PARABOLIC', 'ELLIPTIC',
    'VariableRegistry', 'VariableInfo', 'declare',
    'ModelVariable', 'ModelResidual', 'VariableSet',
    'FieldState'
]
