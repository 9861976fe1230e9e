import pytest
from numpy import array, einsum
from numpy.testing import assert_allclose

from Germen.Models import MaterialModel, CoupledCHACMechanicsKernel
from Germen.Variables import ModelResidual, ModelVariable, VariableSet
from Germen.utils.errors import KernelContractError


def lane_variables(c, grad_c, n, grad_n, grad_u, hess_u):
    variables = VariableSet.of(ModelVariable, ["c", "n", "u"])
    variables["c"].value, variables["c"].grad = array([c]), array([grad_c])
    variables["n"].value, variables["n"].grad = array([n]), array([grad_n])
    variables["u"].grad, variables["u"].hess = array([grad_u]), array([hess_u])
    return variables


GRAD_U = [[0.003, 0.001], [0.002, -0.004]]
HESS_U = [[[0.01, 0.02], [0.02, -0.01]], [[0.03, 0.0], [0.0, 0.02]]]


def rhs(kernel, variables):
    residuals = VariableSet.of(ModelResidual, ["c", "n", "u"])
    kernel.residual_rhs(variables, residuals)
    return residuals


def total_energy(kernel, variables):
    return sum(part[0] for part in kernel.energy_density(variables))


def test_allen_cahn_driving_force_is_energy_derivative(mechanics_parameters):
    material = MaterialModel(mechanics_parameters, dim=2)
    kernel = CoupledCHACMechanicsKernel(material, displacement="u")
    n, eps = 0.35, 1e-6
    residuals = rhs(kernel, lane_variables(0.4, [0.1, 0.0], n, [0.2, -0.1], GRAD_U, HESS_U))
    driving_force = (n - residuals["n"].value_residual[0]) / (material.dt * material.Mn[0])
    plus = total_energy(kernel, lane_variables(0.4, [0.1, 0.0], n + eps, [0.2, -0.1], GRAD_U, HESS_U))
    minus = total_energy(kernel, lane_variables(0.4, [0.1, 0.0], n - eps, [0.2, -0.1], GRAD_U, HESS_U))
    assert abs(driving_force - (plus - minus) / (2 * eps)) < 1e-6


def elastic_potential(material, c, n, grad_u):
    """-S : h_s(n) a, a being the linear misfit coefficient."""
    c, n, grad_u = array([c]), array([n]), array([grad_u])
    E2 = 0.5 * (grad_u + grad_u.transpose(0, 2, 1)) - material.h_strain(n)[:, None, None] * material.misfit(0, c)
    S = einsum("qijkl,qkl->qij", material.stiffness(material.h(n)), E2)
    return -einsum("qij,ij->q", S, material.sfts_linear[0])[0] * material.h_strain(n)[0]


def test_composition_flux_contains_elastic_potential_gradient(mechanics_parameters):
    params = dict(mechanics_parameters, fa=[0.0], fb=[0.0])
    material = MaterialModel(params, dim=2)
    kernel = CoupledCHACMechanicsKernel(material, displacement="u")
    c0, grad_c = 0.4, array([0.1, -0.3])
    n0, grad_n = 0.6, array([0.2, 0.5])
    G, H = array(GRAD_U), array(HESS_U)
    residuals = rhs(kernel, lane_variables(c0, grad_c, n0, grad_n, G, H))
    grad_mu = -residuals["c"].gradient_residual[0] / (material.dt * material.Mc)
    eps = 1e-6
    for k in range(2):
        dx = eps * array([k == 0, k == 1], dtype=float)
        mu = [elastic_potential(material, c0 + grad_c @ s, n0 + grad_n @ s, G + H @ s) for s in (dx, -dx)]
        assert abs(grad_mu[k] - (mu[0] - mu[1]) / (2 * eps)) < 1e-7


def test_chemical_residuals(chemistry_parameters):
    material = MaterialModel(chemistry_parameters, dim=2)
    kernel = CoupledCHACMechanicsKernel(material)
    variables = VariableSet.of(ModelVariable, ["c", "n"])
    variables["c"].value, variables["c"].grad = array([0.5, 0.5]), array([[0.0, 0.0], [1.0, 0.0]])
    variables["n"].value, variables["n"].grad = array([0.0, 0.0]), array([[0.0, 0.0], [0.0, 2.0]])
    residuals = VariableSet.of(ModelResidual, ["c", "n"])
    kernel.residual_rhs(variables, residuals)
    assert_allclose(residuals["c"].value_residual, [0.5, 0.5])
    # fa'' = 2 in the matrix (H = 0)
    assert_allclose(residuals["c"].gradient_residual, [[0.0, 0.0], [-2e-3, 0.0]])
    assert_allclose(residuals["n"].value_residual, [0.0, 0.0])
    assert_allclose(residuals["n"].gradient_residual, [[0.0, 0.0], [0.0, -1e-3]])
    f_chem, f_grad, f_el = kernel.energy_density(variables)
    assert_allclose(f_chem, [0.25, 0.25])
    assert_allclose(f_grad, [0.0, 1.0])
    assert_allclose(f_el, [0.0, 0.0])


def test_lhs_operator_of_explicit_field_is_rejected(chemistry_parameters):
    kernel = CoupledCHACMechanicsKernel(MaterialModel(chemistry_parameters, dim=2))
    with pytest.raises(KernelContractError):
        kernel.residual_lhs(VariableSet.of(ModelVariable, ["c", "n"]), "c", ModelResidual("c"))
