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
Nucleation Reconciler and Broadcaster
=====================================

Turns the per-partition candidate lists into one canonical list, identical
on every partition:

1. every rank sends its candidate count to the root (tag 0), barrier;
2. every rank with candidates sends its packed ``(n, dim + 3)`` array
   (tag 1), the root checks it against the announced count, barrier;
3. the root deduplicates the union of the candidates;
4. the root broadcasts the canonical count, barrier, then the packed
   canonical list, barrier.

Deduplication scans the candidates in rank order, then local list order. A
candidate is discarded when a candidate of another partition lies within the
minimum separation (distance <= min_distance) and was seeded earlier, or at
the same time but earlier in the scan. Discarded candidates still discard
the later ones they are close to. Candidates of one partition are never
compared with each other: the detector already keeps them apart.
"""

from math import dist

from numpy import asarray, empty

from .nucleus import N_SCALAR_ATTRIBUTES, pack_nuclei, unpack_nuclei
from ..utils.errors import CommunicationError

COUNT_TAG = 0
PAYLOAD_TAG = 1


def _precedes(other, other_position, candidate, position):
    if other.seeded_time != candidate.seeded_time:
        return other.seeded_time < candidate.seeded_time
    return other_position < position


def reconcile_candidates(partition_candidates, min_distance):
    """
    Deduplicate the candidates of all partitions.

    Parameters
    ----------
    partition_candidates : sequence of sequences of Nucleus Candidates of every partition, in rank order
    min_distance : float Minimum separation of canonical nuclei

    Returns
    -------
    list of Nucleus Canonical nuclei in scan order, indexed sequentially
    """
    scan = [(rank, nucleus) for rank, local in enumerate(partition_candidates)
            for nucleus in local]
    canonical = []
    for position, (rank, candidate) in enumerate(scan):
        discarded = any(other_rank != rank
                        and dist(candidate.center, other.center) <= min_distance
                        and _precedes(other, other_position, candidate, position)
                        for other_position, (other_rank, other) in enumerate(scan))
        if not discarded:
            canonical.append(candidate.with_index(len(canonical)))
    return canonical


class NucleationReconciler:
    """
    Parameters
    ----------
    comm : Communicator Collective primitives
    dim : int Spatial dimension (sets the payload width)
    min_distance : float Minimum separation of canonical nuclei
    root : int, optional Coordinating rank
    """

    def __init__(self, comm, dim, min_distance, root=0):
        self.comm = comm
        self.dim = dim
        self.min_distance = min_distance
        self.root = root

    @property
    def width(self):
        return self.dim + N_SCALAR_ATTRIBUTES

    def gather(self, local_candidates):
        """Collect the packed candidates of every rank on the root, in rank order."""
        comm = self.comm
        packed = pack_nuclei(local_candidates, self.dim)
        if not comm.is_root(self.root):
            comm.send(len(packed), self.root, tag=COUNT_TAG)
            comm.barrier()
            if len(packed) > 0:
                comm.send(packed, self.root, tag=PAYLOAD_TAG)
            comm.barrier()
            return None

        counts = {}
        for rank in range(comm.world_size()):
            if rank != self.root:
                counts[rank] = comm.receive(rank, tag=COUNT_TAG)
        comm.barrier()
        payloads = []
        for rank in range(comm.world_size()):
            if rank == self.root:
                payloads.append(packed)
            elif counts[rank] > 0:
                payloads.append(self._checked_payload(comm.receive(rank, tag=PAYLOAD_TAG),
                                                      counts[rank], rank))
        comm.barrier()
        return payloads

    def _checked_payload(self, payload, count, rank):
        payload = asarray(payload, dtype=float)
        if payload.shape != (count, self.width):
            raise CommunicationError(
                f"rank {rank} announced {count} nuclei but sent a payload of shape "
                f"{payload.shape}, expected {(count, self.width)}")
        return payload

    def broadcast(self, canonical):
        """Distribute the root's canonical list; returns an identical list on every rank."""
        comm = self.comm
        is_root = comm.is_root(self.root)
        count = comm.broadcast(len(canonical) if is_root else None, root=self.root)
        comm.barrier()
        packed = comm.broadcast(pack_nuclei(canonical, self.dim) if is_root else None,
                                root=self.root)
        comm.barrier()
        packed = asarray(packed, dtype=float).reshape(-1, self.width) if count else empty((0, self.width))
        if len(packed) != count:
            raise CommunicationError(
                f"canonical broadcast announced {count} nuclei, received {len(packed)}")
        return unpack_nuclei(packed)

    def reconcile(self, local_candidates):
        """Run gather, deduplication and broadcast; returns the canonical list."""
        payloads = self.gather(local_candidates)
        canonical = []
        if payloads is not None:
            canonical = reconcile_candidates([unpack_nuclei(payload) for payload in payloads],
                                             self.min_distance)
        return self.broadcast(canonical)
