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
Shared fixtures: a threaded stand-in for an mpi4py communicator, so that N
partitions can be run inside one process, and small problem builders.
"""

import threading
from copy import deepcopy
from queue import Queue

import pytest
from mpi4py import MPI

from Germen.utils.mpi.communicator import Communicator

TIMEOUT = 60


class ThreadedWorld:
    """Shared state of N simulated partitions."""

    def __init__(self, size):
        self.size = size
        self.barrier = threading.Barrier(size, timeout=TIMEOUT)
        self.queues = {}
        self.lock = threading.Lock()
        self.slots = [None] * size

    def queue(self, source, destination, tag):
        with self.lock:
            return self.queues.setdefault((source, destination, tag), Queue())


class ThreadedComm:
    """Subset of the mpi4py communicator API used by Communicator."""

    def __init__(self, world, rank):
        self.world = world
        self.rank = rank

    def Get_rank(self):
        return self.rank

    def Get_size(self):
        return self.world.size

    def send(self, obj, dest, tag=0):
        self.world.queue(self.rank, dest, tag).put(deepcopy(obj))

    def recv(self, source, tag=0):
        return self.world.queue(source, self.rank, tag).get(timeout=TIMEOUT)

    def Barrier(self):
        self.world.barrier.wait()

    def bcast(self, obj, root=0):
        if self.rank == root:
            self.world.slots[root] = deepcopy(obj)
        self.world.barrier.wait()
        result = deepcopy(self.world.slots[root])
        self.world.barrier.wait()
        return result

    def allreduce(self, value, op=MPI.SUM):
        self.world.slots[self.rank] = deepcopy(value)
        self.world.barrier.wait()
        contributions = list(self.world.slots)
        self.world.barrier.wait()
        if op == MPI.MIN:
            return min(contributions)
        total = contributions[0]
        for contribution in contributions[1:]:
            total = total + contribution
        return total


def run_partitions(size, task):
    """
    Run ``task(comm)`` on ``size`` simulated partitions.

    Returns
    -------
    list Results of every rank, in rank order
    """
    world = ThreadedWorld(size)
    results = [None] * size
    errors = [None] * size

    def target(rank):
        try:
            results[rank] = task(Communicator(ThreadedComm(world, rank)))
        except BaseException as err:
            errors[rank] = err
            world.barrier.abort()

    threads = [threading.Thread(target=target, args=(rank,)) for rank in range(size)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    for err in errors:
        if err is not None and not isinstance(err, threading.BrokenBarrierError):
            raise err
    for err in errors:
        if err is not None:
            raise err
    return results


@pytest.fixture
def partitions():
    return run_partitions


@pytest.fixture
def chemistry_parameters():
    return {"fa": [0.0, 0.0, 1.0],
            "fb": [0.5, -1.0, 1.0],
            "Mc": 1.0,
            "Mn": 1.0,
            "Kn": 0.5,
            "W": 2.0,
            "dt": 1e-3}


@pytest.fixture
def mechanics_parameters(chemistry_parameters):
    params = dict(chemistry_parameters)
    params.update({"stiffness": {"alpha": {"model": "isotropic", "constants": [100.0, 0.3]},
                                 "beta": {"model": "isotropic", "constants": [150.0, 0.25]}},
                   "sfts_linear": [[0.01, 0.0], [0.0, 0.01]],
                   "sfts_const": [[0.005, 0.0], [0.0, 0.005]]})
    return params
