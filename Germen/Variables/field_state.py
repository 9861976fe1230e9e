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
"""Solution storage of all registered fields, keyed by field name."""

from ..utils.errors import ConfigurationError


class FieldState(dict):
    """
    Mapping field name -> dof vector.

    The vectors are created by the mesh collaborator, their layout is
    delegated to it (scalar fields: one value per dof, vector fields: one row
    of ``dim`` components per dof).
    """

    @classmethod
    def zeros(cls, mesh, registry):
        """Create zero vectors for every field of the registry."""
        return cls((field.name, mesh.create_vector(field.n_components(registry.dim)))
                   for field in registry.fields)

    def copy(self):
        return FieldState((name, vector.copy()) for name, vector in self.items())

    def check_roster(self, registry):
        missing = [name for name in registry.names if name not in self]
        if missing:
            raise ConfigurationError(f"Field state lacks vectors for {missing}")
