import pytest
from numpy import allclose, arange, array, zeros
from numpy.testing import assert_allclose

from Germen.Mesh import StructuredMesh
from Germen.Mesh.quadrature import gauss_points_weights, q1_shape_functions
from Germen.utils.errors import ConfigurationError


def test_quadrature_and_partition_of_unity():
    x, w = gauss_points_weights(2, 3)
    assert x.shape == (8, 3)
    assert abs(w.sum() - 8.0) < 1e-14
    N, dN, d2N = q1_shape_functions(x)
    assert_allclose(N.sum(axis=1), 1.0)
    assert_allclose(dN.sum(axis=1), 0.0, atol=1e-14)
    assert_allclose(d2N.sum(axis=1), 0.0, atol=1e-14)


@pytest.mark.parametrize("dim", [1, 2, 3])
def test_lumped_mass_sums_to_volume(dim):
    lengths = (2.0, 1.5, 0.5)[:dim]
    mesh = StructuredMesh((3, 2, 2)[:dim], lengths)
    assert abs(mesh.lumped_mass().sum() - mesh.domain_volume()) < 1e-12
    n_cells = (3, 6, 12)[dim - 1]
    assert abs(mesh.cell_volume() * n_cells - mesh.domain_volume()) < 1e-12


def test_interpolation_of_linear_and_bilinear_fields():
    mesh = StructuredMesh((3, 2), (3.0, 1.0))
    x, y = mesh.points[:, 0], mesh.points[:, 1]
    evaluator = mesh.create_evaluator()
    for cell in mesh.iterate_local_cells():
        evaluator.reinit(cell)
        evaluator.read_dof_values(2 * x - y + x * y)
        evaluator.evaluate(value=True, gradient=True, hessian=True)
        hessian = evaluator.get_hessian()
        assert_allclose(hessian[:, 0, 1], 1.0)
        assert_allclose(hessian[:, 0, 0], 0.0, atol=1e-12)
    evaluator.reinit(0)
    evaluator.read_dof_values(2 * x - y)
    evaluator.evaluate(gradient=True)
    assert_allclose(evaluator.get_gradient(), [[2.0, -1.0]] * mesh.n_q_points)
    with pytest.raises(RuntimeError):
        evaluator.get_value()


def test_vector_field_layout():
    mesh = StructuredMesh((2, 2), (1.0, 1.0))
    u = mesh.create_vector(2)
    u[:, 0] = 0.01 * mesh.points[:, 0]
    u[:, 1] = -0.02 * mesh.points[:, 1]
    evaluator = mesh.create_evaluator(2)
    evaluator.reinit(3)
    evaluator.read_dof_values(u)
    evaluator.evaluate(gradient=True)
    assert_allclose(evaluator.get_gradient(), [[[0.01, 0.0], [0.0, -0.02]]] * 4, atol=1e-14)


@pytest.mark.parametrize("size", [1, 2, 3, 5])
def test_ownership_is_a_partition(partitions, size):
    def task(comm):
        mesh = StructuredMesh((4, 4), (1.0, 1.0), comm)
        return mesh.owned_mask.copy(), len(mesh.local_cells)

    results = partitions(size, task)
    owners = sum(mask.astype(int) for mask, _ in results)
    assert (owners == 1).all(), "Each mesh point must be owned by exactly one partition"
    assert sum(n_cells for _, n_cells in results) == 16


def test_compress_and_ghost_update(partitions):
    serial = StructuredMesh((2, 4), (1.0, 2.0)).lumped_mass()

    def task(comm):
        mesh = StructuredMesh((2, 4), (1.0, 2.0), comm)
        mass = mesh.lumped_mass()
        vector = zeros(mesh.n_nodes)
        vector[mesh.owned_mask] = comm.rank() + 1.0
        vector[~mesh.owned_mask] = -1.0
        mesh.update_ghost_values(vector)
        return mass, vector

    results = partitions(2, task)
    for mass, vector in results:
        assert_allclose(mass, serial)
        assert (vector > 0).all(), "Ghost values must come from the owner"
    assert allclose(results[0][1], results[1][1])


def test_point_access_and_geometry():
    mesh = StructuredMesh((2, 2), (1.0, 1.0), origin=(1.0, -1.0))
    dofs, points, owned = mesh.map_points_to_local_dofs()
    assert_allclose(dofs, arange(9))
    assert owned.all()
    assert_allclose(points[0], [1.0, -1.0])
    assert_allclose(mesh.boundary_dofs(1, "max"), [6, 7, 8])
    assert mesh.min_cell_size() == 0.5
    vector = mesh.create_vector()
    mesh.write_field_at_dof(vector, 4, 2.0)
    assert mesh.read_field_at_dof(vector, 4) == 2.0
    with pytest.raises(ConfigurationError):
        StructuredMesh((2, 0), (1.0, 1.0))
    with pytest.raises(ConfigurationError):
        StructuredMesh((2, 2), array([1.0]))
