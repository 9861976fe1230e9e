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
Mesh/Field collaborators: structured Q1 box meshes and the dolfinx adapter.

The dolfinx adapter is imported lazily (``from Germen.Mesh.dolfinx_mesh import
DolfinxMesh``) as it requires the FEniCSx stack.
"""

from .base_collaborator import CellEvaluator, MeshFieldCollaborator
from .structured_mesh import StructuredMesh

__all__ = ['CellEvaluator', 'MeshFieldCollaborator', 'StructuredMesh']
