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
MPI Communication Module
========================

This module wraps the collective primitives used by the nucleation protocol
and by the mesh collaborators (point-to-point send/receive, broadcast,
barrier and global sums) around an mpi4py communicator.

Any failure of the underlying MPI layer is re-raised as a CommunicationError:
nucleation state must remain globally consistent, so no operation is retried.
"""

import builtins as __builtin__

from numpy import asarray, ndarray
from mpi4py import MPI

from ..errors import CommunicationError


def print(*args, **kwargs):
    """
    Override Python's print function to display output only once in MPI environments.

    Parameters
    ----------
    *args : tuple Arguments to pass to the original print function
    **kwargs : dict Keyword arguments to pass to the original print function
    """
    if MPI.COMM_WORLD.Get_rank() == 0:
        __builtin__.print(*args, **kwargs)


class Communicator:
    """Collective primitives over one mpi4py communicator.

    Parameters
    ----------
    comm : mpi4py.MPI.Comm, optional Wrapped communicator, defaults to COMM_WORLD
    """

    def __init__(self, comm=None):
        self.comm = MPI.COMM_WORLD if comm is None else comm

    def rank(self):
        return self.comm.Get_rank()

    def world_size(self):
        return self.comm.Get_size()

    def is_root(self, root=0):
        return self.rank() == root

    def send(self, payload, destination, tag=0):
        """Blocking send of a picklable payload."""
        try:
            self.comm.send(payload, dest=destination, tag=tag)
        except MPI.Exception as err:
            raise CommunicationError(f"send to rank {destination} failed: {err}") from err

    def receive(self, source, tag=0):
        """Blocking receive of a payload sent with :meth:`send`."""
        try:
            return self.comm.recv(source=source, tag=tag)
        except MPI.Exception as err:
            raise CommunicationError(f"receive from rank {source} failed: {err}") from err

    def broadcast(self, payload, root=0):
        """Broadcast ``payload`` from ``root``; returns the root's payload on every rank."""
        try:
            return self.comm.bcast(payload, root=root)
        except MPI.Exception as err:
            raise CommunicationError(f"broadcast from rank {root} failed: {err}") from err

    def barrier(self):
        try:
            self.comm.Barrier()
        except MPI.Exception as err:
            raise CommunicationError(f"barrier failed: {err}") from err

    def reduce_sum(self, value):
        """
        Global sum of a scalar or of a numpy array over all partitions.

        Parameters
        ----------
        value : float or numpy.ndarray Local contribution

        Returns
        -------
        float or numpy.ndarray Sum over all ranks, available on every rank
        """
        try:
            total = self.comm.allreduce(value, op=MPI.SUM)
        except MPI.Exception as err:
            raise CommunicationError(f"global reduction failed: {err}") from err
        if isinstance(value, ndarray):
            return asarray(total)
        return total

    def reduce_min(self, value):
        """Global minimum of a scalar, available on every rank."""
        try:
            return self.comm.allreduce(value, op=MPI.MIN)
        except MPI.Exception as err:
            raise CommunicationError(f"global reduction failed: {err}") from err


def as_communicator(comm):
    """Return ``comm`` as a :class:`Communicator`, wrapping raw communicators."""
    if isinstance(comm, Communicator):
        return comm
    return Communicator(comm)
