import pytest
from mpi4py import MPI
from numpy import array
from numpy.testing import assert_allclose

from Germen.utils.errors import (CommunicationError, ConfigurationError, GermenError,
                                 KernelContractError)
from Germen.utils.mpi.communicator import Communicator, as_communicator
from Germen.utils.stiffness_builders import build_stiffness


class FailingComm:
    def Get_rank(self):
        return 0

    def Get_size(self):
        return 1

    def Barrier(self):
        raise MPI.Exception(MPI.ERR_OTHER)

    def bcast(self, obj, root=0):
        raise MPI.Exception(MPI.ERR_OTHER)


def test_mpi_failures_become_communication_errors():
    comm = Communicator(FailingComm())
    with pytest.raises(CommunicationError):
        comm.barrier()
    with pytest.raises(CommunicationError) as err:
        comm.broadcast(1)
    assert err.value.stage == "communication"
    assert "[communication]" in str(err.value)


def test_collectives_over_partitions(partitions):
    def task(comm):
        total = comm.reduce_sum(array([comm.rank(), 1.0]))
        smallest = comm.reduce_min(comm.rank() + 2.0)
        root_value = comm.broadcast("root" if comm.is_root() else None)
        return total, smallest, root_value

    for total, smallest, root_value in partitions(3, task):
        assert_allclose(total, [3.0, 3.0])
        assert smallest == 2.0
        assert root_value == "root"


def test_world_communicator():
    comm = as_communicator(None)
    assert comm.world_size() >= 1
    assert as_communicator(comm) is comm
    assert comm.reduce_sum(2.0) == 2.0 * comm.world_size()


def test_error_taxonomy():
    assert issubclass(ConfigurationError, ValueError)
    assert issubclass(CommunicationError, RuntimeError)
    assert KernelContractError("bad shape").stage == "assembly"
    assert GermenError("seed failed", stage="nucleation").stage == "nucleation"
    with pytest.raises(ConfigurationError):
        build_stiffness("CUBIC", [1.0])
    with pytest.raises(ConfigurationError):
        build_stiffness("ISOTROPIC", [1.0])


def test_orthotropic_stiffness_reduces_to_isotropic():
    E, nu = 200.0, 0.3
    mu = E / (2 * (1 + nu))
    iso = build_stiffness("ISOTROPIC", [E, nu])
    ortho = build_stiffness("ORTHOTROPIC", [E, E, E, nu, nu, nu, mu, mu, mu])
    assert_allclose(ortho, iso, rtol=1e-10, atol=1e-8)
    upper = iso[[0, 0, 0, 0, 0, 0, 1, 1, 1, 1, 1, 2, 2, 2, 2, 3, 3, 3, 4, 4, 5],
                [0, 1, 2, 3, 4, 5, 1, 2, 3, 4, 5, 2, 3, 4, 5, 3, 4, 5, 4, 5, 5]]
    assert_allclose(build_stiffness("ANISOTROPIC", upper), iso)
