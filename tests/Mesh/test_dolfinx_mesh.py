import pytest
from numpy.testing import assert_allclose

dolfinx = pytest.importorskip("dolfinx")

from mpi4py import MPI  # noqa: E402

from Germen.Mesh.dolfinx_mesh import DolfinxMesh  # noqa: E402


@pytest.mark.parametrize("degree", [1, 2])
def test_dolfinx_adapter_integrates_and_differentiates(degree):
    domain = dolfinx.mesh.create_unit_square(MPI.COMM_WORLD, 4, 4)
    mesh = DolfinxMesh(domain, degree=degree)
    assert abs(mesh.domain_volume() - 1.0) < 1e-12
    x, y = mesh.points[:, 0], mesh.points[:, 1]
    evaluator = mesh.create_evaluator()
    for cell in mesh.iterate_local_cells():
        evaluator.reinit(cell)
        evaluator.read_dof_values(3 * x - 2 * y)
        evaluator.evaluate(gradient=True)
        assert_allclose(evaluator.get_gradient(), [[3.0, -2.0]] * mesh.n_q_points, atol=1e-10)
    mass = mesh.lumped_mass()
    local_total = mass[mesh.owned_mask].sum()
    assert abs(mesh.comm.reduce_sum(float(local_total)) - 1.0) < 1e-12
