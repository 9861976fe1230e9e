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
Nucleus Seeder
==============

Writes the canonical nuclei into the primary order parameter. Every locally
owned point within ``radius + margin`` of an active nucleus is overwritten by
the hyperbolic-tangent profile

    n = 0.5 (1 - tanh((r - radius) / interface_width))

A nucleus is active strictly inside its window
``seeded_time < t < seeded_time + seeding_time``. Ghost copies are refreshed
through the mesh collaborator once all nuclei have been written.
"""

from numpy import asarray, nonzero, tanh
from numpy.linalg import norm


def tanh_profile(r, radius, interface_width):
    return 0.5 * (1.0 - tanh((r - radius) / interface_width))


class NucleusSeeder:
    """
    Parameters
    ----------
    field : str Name of the seeded order parameter
    interface_width : float Width of the tanh interface
    margin : float Distance beyond the radius up to which points are written
    """

    def __init__(self, field, interface_width, margin):
        self.field = field
        self.interface_width = interface_width
        self.margin = margin

    def seed(self, t, nuclei, state, mesh):
        """
        Overwrite the seeded field around the active nuclei (collective).

        Returns
        -------
        int Number of locally owned point writes
        """
        vector = state[self.field]
        dofs, points, owned = mesh.map_points_to_local_dofs()
        n_written = 0
        for nucleus in nuclei:
            if not nucleus.is_active(t):
                continue
            r = norm(points - asarray(nucleus.center), axis=1)
            for k in nonzero(owned & (r <= nucleus.radius + self.margin))[0]:
                mesh.write_field_at_dof(vector, dofs[k],
                                        tanh_profile(r[k], nucleus.radius, self.interface_width))
                n_written += 1
        mesh.update_ghost_values(vector)
        return n_written
