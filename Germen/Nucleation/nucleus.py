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
Nucleus Records
===============

A nucleus is an immutable value: centre, radius and activity window. Its
index is its position in the list it belongs to and is recomputed at every
reconciliation pass.

On the wire a nucleus travels as ``dim + 3`` doubles:
``(radius, seeded_time, seeding_time, *center)``.
"""

from dataclasses import dataclass, replace
from math import dist

from numpy import asarray, empty

N_SCALAR_ATTRIBUTES = 3


@dataclass(frozen=True)
class Nucleus:
    """
    Attributes
    ----------
    index : int Position in the owning list
    center : tuple of float Centre coordinates
    radius : float Seeded radius
    seeded_time : float Start of the activity window
    seeding_time : float Length of the activity window
    """
    index: int
    center: tuple
    radius: float
    seeded_time: float
    seeding_time: float

    def is_active(self, t):
        """True while ``seeded_time < t < seeded_time + seeding_time``."""
        return self.seeded_time < t < self.seeded_time + self.seeding_time

    def distance_to(self, point):
        return dist(self.center, tuple(point))

    def with_index(self, index):
        return replace(self, index=index)

    def pack(self):
        return [self.radius, self.seeded_time, self.seeding_time, *self.center]


def pack_nuclei(nuclei, dim):
    """Pack nuclei into a ``(n, dim + 3)`` float array."""
    packed = empty((len(nuclei), dim + N_SCALAR_ATTRIBUTES))
    for row, nucleus in enumerate(nuclei):
        packed[row] = nucleus.pack()
    return packed


def unpack_nuclei(packed):
    """Rebuild nuclei from a packed array, indices follow the row order."""
    packed = asarray(packed, dtype=float)
    return [Nucleus(index=row,
                    center=tuple(float(x) for x in values[N_SCALAR_ATTRIBUTES:]),
                    radius=float(values[0]),
                    seeded_time=float(values[1]),
                    seeding_time=float(values[2]))
            for row, values in enumerate(packed)]
