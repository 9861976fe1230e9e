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
Distributed nucleation: candidate detection, reconciliation over the
partitions, broadcast of the canonical nuclei and seeding.
"""

from .nucleus import Nucleus, pack_nuclei, unpack_nuclei
from .detector import NucleationDetector, PointwiseDraws, seeding_window
from .reconciler import NucleationReconciler, reconcile_candidates
from .seeder import NucleusSeeder, tanh_profile
from .nucleation import (NucleationState, NucleationResult, NucleationSubsystem,
                         nucleation_preset)

__all__ = ['Nucleus', 'pack_nuclei', 'unpack_nuclei',
           'NucleationDetector', 'PointwiseDraws', 'seeding_window',
           'NucleationReconciler', 'reconcile_candidates',
           'NucleusSeeder', 'tanh_profile',
           'NucleationState', 'NucleationResult', 'NucleationSubsystem',
           'nucleation_preset']
