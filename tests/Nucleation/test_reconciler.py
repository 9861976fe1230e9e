from itertools import combinations
from math import dist

import pytest
from numpy import zeros
from numpy.random import default_rng

from Germen.Nucleation import (Nucleus, NucleationReconciler, pack_nuclei,
                               reconcile_candidates, unpack_nuclei)
from Germen.utils.errors import CommunicationError


def random_candidates(n, seed=0):
    rng = default_rng(seed)
    return [Nucleus(index=k,
                    center=tuple(float(x) for x in rng.random(2) * 10),
                    radius=0.5,
                    seeded_time=float(rng.integers(0, 4)),
                    seeding_time=2.0)
            for k in range(n)]


def locally_separated(candidates, size, min_distance):
    """Round-robin split keeping the candidates of one partition further apart than min_distance."""
    local = [[] for _ in range(size)]
    for k, candidate in enumerate(candidates):
        kept = local[k % size]
        if all(dist(candidate.center, other.center) > min_distance for other in kept):
            kept.append(candidate)
    return local


def canonical_attributes(nuclei):
    return sorted((n.center, n.radius, n.seeded_time, n.seeding_time) for n in nuclei)


def test_dedup_invariant():
    local = locally_separated(random_candidates(200), 4, 1.5)
    canonical = reconcile_candidates(local, min_distance=1.5)
    assert len(canonical) > 1
    for a, b in combinations(canonical, 2):
        assert dist(a.center, b.center) > 1.5, "Canonical nuclei closer than the minimum distance"
    assert [n.index for n in canonical] == list(range(len(canonical)))


def test_earlier_seeded_candidate_wins():
    late = Nucleus(0, (0.0, 0.0), 1.0, 2.0, 5.0)
    early = Nucleus(0, (0.5, 0.0), 1.0, 1.0, 5.0)
    canonical = reconcile_candidates([[late], [early]], min_distance=1.0)
    assert len(canonical) == 1 and canonical[0].seeded_time == 1.0


def test_discarded_candidates_still_discard_later_ones():
    chain = [[Nucleus(0, (0.0, 0.0), 0.1, 1.0, 5.0)],
             [Nucleus(0, (0.8, 0.0), 0.1, 2.0, 5.0)],
             [Nucleus(0, (1.6, 0.0), 0.1, 3.0, 5.0)]]
    canonical = reconcile_candidates(chain, min_distance=1.0)
    assert [n.seeded_time for n in canonical] == [1.0]


def test_equal_seed_times_decided_by_rank_order():
    first = Nucleus(0, (0.0, 0.0), 0.1, 1.0, 5.0)
    second = Nucleus(0, (0.5, 0.0), 0.1, 1.0, 5.0)
    canonical = reconcile_candidates([[first], [second]], min_distance=1.0)
    assert [n.center for n in canonical] == [(0.0, 0.0)]
    canonical = reconcile_candidates([[second], [first]], min_distance=1.0)
    assert [n.center for n in canonical] == [(0.5, 0.0)]


def test_candidates_of_one_partition_are_not_compared():
    close = [Nucleus(0, (0.0, 0.0), 0.1, 2.0, 5.0), Nucleus(1, (0.5, 0.0), 0.1, 1.0, 5.0)]
    assert len(reconcile_candidates([close], min_distance=1.0)) == 2


def test_cross_rank_dedup(partitions):
    def task(comm):
        seeded_time = 1.0 if comm.rank() == 0 else 2.0
        local = [Nucleus(0, (0.25, 0.75), 0.1, seeded_time, 10.0)]
        return NucleationReconciler(comm, dim=2, min_distance=0.5).reconcile(local)

    results = partitions(2, task)
    for canonical in results:
        assert len(canonical) == 1
        assert canonical[0].seeded_time == 1.0
        assert canonical[0].center == (0.25, 0.75)


def test_cross_rank_chain(partitions):
    centres = [(0.0, 0.0), (0.8, 0.0), (1.6, 0.0)]

    def task(comm):
        rank = comm.rank()
        local = [Nucleus(0, centres[rank], 0.1, float(rank + 1), 5.0)]
        return NucleationReconciler(comm, dim=2, min_distance=1.0).reconcile(local)

    for canonical in partitions(3, task):
        assert [n.seeded_time for n in canonical] == [1.0]


@pytest.mark.parametrize("size", [1, 2, 3, 5])
def test_partition_invariance(partitions, size):
    """With distinct seed times the result only depends on the union of the candidates."""
    candidates = [Nucleus(k, n.center, n.radius, float(k), n.seeding_time)
                  for k, n in enumerate(random_candidates(60, seed=4))]
    local = locally_separated(candidates, size, 1.5)
    union = [nucleus for nuclei in local for nucleus in nuclei]
    expected = canonical_attributes(reconcile_candidates([[n] for n in union], 1.5))

    def task(comm):
        return NucleationReconciler(comm, dim=2, min_distance=1.5).reconcile(local[comm.rank()])

    for canonical in partitions(size, task):
        assert canonical_attributes(canonical) == expected


def test_pack_round_trip_and_width():
    nuclei = random_candidates(3)
    packed = pack_nuclei(nuclei, 2)
    assert packed.shape == (3, 5)
    assert unpack_nuclei(packed) == nuclei


class MismatchComm:
    """Root side of a two-rank exchange where rank 1 under-delivers."""

    def __init__(self):
        self.messages = {0: 2, 1: zeros((1, 5))}

    def is_root(self, root=0):
        return True

    def world_size(self):
        return 2

    def receive(self, source, tag=0):
        return self.messages[tag]

    def barrier(self):
        pass


def test_payload_mismatch_raises():
    reconciler = NucleationReconciler(MismatchComm(), dim=2, min_distance=1.0)
    with pytest.raises(CommunicationError) as err:
        reconciler.gather([])
    assert err.value.stage == "communication"
