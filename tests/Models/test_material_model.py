import pytest
from numpy import eye
from numpy.testing import assert_allclose

from Germen.Models import MaterialModel, CoupledCHACMechanicsKernel
from Germen.Models.interpolation import cubic, quintic, cubic_derivative, quintic_derivative
from Germen.utils.errors import ConfigurationError
from Germen.utils.stiffness_builders import build_isotropic_stiffness, voigt_to_tensor


def test_missing_required_parameters(chemistry_parameters):
    params = dict(chemistry_parameters)
    del params["Mc"]
    with pytest.raises(ConfigurationError, match="Mc"):
        MaterialModel(params, dim=2)


def test_invalid_choices(chemistry_parameters, mechanics_parameters):
    with pytest.raises(ConfigurationError):
        MaterialModel(dict(chemistry_parameters, interpolation="septic"), dim=2)
    with pytest.raises(ConfigurationError):
        MaterialModel(dict(mechanics_parameters,
                           stiffness={"alpha": {"model": "cubic", "constants": [1.0]}}), dim=2)
    with pytest.raises(ConfigurationError):
        MaterialModel(dict(mechanics_parameters,
                           stiffness={"alpha": {"model": "isotropic", "constants": [1.0]}}), dim=2)
    with pytest.raises(ConfigurationError):
        MaterialModel(dict(chemistry_parameters, Mn=[1.0, 2.0, 3.0]), dim=2, n_order_parameters=2)
    with pytest.raises(ConfigurationError):
        MaterialModel(dict(chemistry_parameters, dt=0.0), dim=2)


def test_per_order_parameter_normalisation(chemistry_parameters):
    material = MaterialModel(dict(chemistry_parameters, Mn=[1.0, 2.0, 3.0]), dim=2,
                             n_order_parameters=3)
    assert material.Mn.shape == (3,)
    assert material.Kn.shape == (3, 2, 2)
    assert_allclose(material.Kn[1], 0.5 * eye(2))
    assert not material.has_mechanics
    assert not material.c_dependent_misfit


def test_mechanics_flags(mechanics_parameters):
    material = MaterialModel(mechanics_parameters, dim=2)
    assert material.has_mechanics
    assert material.n_dependent_stiffness
    assert material.c_dependent_misfit
    kernel = CoupledCHACMechanicsKernel(material, displacement="u")
    assert kernel.required_derivatives("u") == ["gradient", "hessian"]
    assert kernel.required_derivatives("n", lhs=True) == ["value"]
    constant_misfit = MaterialModel(dict(mechanics_parameters, sfts_linear=[[0.0, 0.0], [0.0, 0.0]]),
                                    dim=2)
    assert not constant_misfit.c_dependent_misfit
    assert CoupledCHACMechanicsKernel(constant_misfit, displacement="u").required_derivatives("u") \
        == ["gradient"]


def test_kernel_roster_consistency(chemistry_parameters, mechanics_parameters):
    with pytest.raises(ConfigurationError):
        CoupledCHACMechanicsKernel(MaterialModel(chemistry_parameters, dim=2), order_parameters=("n1", "n2"))
    with pytest.raises(ConfigurationError):
        CoupledCHACMechanicsKernel(MaterialModel(chemistry_parameters, dim=2), displacement="u")
    with pytest.raises(ConfigurationError):
        CoupledCHACMechanicsKernel(MaterialModel(mechanics_parameters, dim=2))


def test_interpolation_functions():
    for h, dh in ((cubic, cubic_derivative), (quintic, quintic_derivative)):
        assert h(0.0) == 0.0 and h(1.0) == 1.0
        assert dh(0.0) == 0.0 and dh(1.0) == 0.0
        eps = 1e-6
        assert abs((h(0.3 + eps) - h(0.3 - eps)) / (2 * eps) - dh(0.3)) < 1e-8


def test_isotropic_tensor():
    C = voigt_to_tensor(build_isotropic_stiffness(200.0, 0.25), 3)
    assert_allclose(C, C.transpose(1, 0, 2, 3))
    assert_allclose(C, C.transpose(2, 3, 0, 1))
    mu = 200.0 / 2.5
    assert abs(C[0, 1, 0, 1] - mu) < 1e-10
