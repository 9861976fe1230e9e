import pytest

from Germen.Variables import (Field, FieldDeclaration, FieldRequirements, VariableRegistry,
                              FieldState, declare, VECTOR, ELLIPTIC)
from Germen.utils.errors import ConfigurationError


def mixed_roster():
    return [declare("c", need_value=True, need_gradient=True,
                    value_residual=True, gradient_residual=True),
            declare("u", VECTOR, ELLIPTIC, need_gradient=True, gradient_residual=True,
                    need_gradient_lhs=True),
            declare("n", need_value=True, value_residual=True)]


def test_offsets_of_mixed_roster():
    registry = VariableRegistry(mixed_roster(), dim=2)
    offsets = [info.global_field_index for info in registry.rhs_info]
    assert offsets == [0, 1, 3], "Vector fields must consume dim slots"
    assert registry.n_field_slots == 4
    local = [(info.name, info.is_scalar, info.scalar_or_vector_index) for info in registry.rhs_info]
    assert local == [("c", True, 0), ("u", False, 0), ("n", True, 1)]
    in_3d = VariableRegistry(mixed_roster(), dim=3)
    assert [info.global_field_index for info in in_3d.rhs_info] == [0, 1, 4]


def test_lhs_table_and_lookup():
    registry = VariableRegistry(mixed_roster(), dim=2)
    assert [info.name for info in registry.lhs_info] == ["u"]
    assert registry.lhs_target(1).name == "u", "Lookup by global field index failed"
    assert registry.lhs_target("u").global_field_index == 1
    with pytest.raises(ConfigurationError):
        registry.lhs_target("c")


def test_lhs_table_rebuilt_on_requirement_change():
    registry = VariableRegistry(mixed_roster(), dim=2)
    registry.set_lhs_requirements("n", value=True)
    assert [info.name for info in registry.lhs_info] == ["u", "n"]
    assert registry.lhs_target("n").scalar_or_vector_index == 0
    assert registry.requirements("n").need_value, "RHS flags must be preserved"
    registry.set_lhs_requirements("n")
    assert [info.name for info in registry.lhs_info] == ["u"]


def test_invalid_rosters():
    with pytest.raises(ConfigurationError):
        VariableRegistry([declare("c", need_value=True), declare("c", need_value=True)], dim=2)
    with pytest.raises(ConfigurationError):
        VariableRegistry([declare("c", value_residual=True)], dim=2)
    with pytest.raises(ConfigurationError):
        VariableRegistry([declare("u", VECTOR, need_gradient=True)], dim=1)
    with pytest.raises(ConfigurationError):
        VariableRegistry([], dim=2)
    with pytest.raises(ConfigurationError):
        Field("c", rank="TENSOR")
    with pytest.raises(ConfigurationError):
        FieldRequirements.from_dict({"need_laplacian": True})


def test_tuple_declarations_accepted():
    registry = VariableRegistry([(Field("c"), FieldRequirements(need_value=True))], dim=2)
    assert isinstance(registry.rhs_info[0].name, str)
    assert registry.field("c").is_scalar


class StubKernel:
    def __init__(self, rhs, lhs, outputs):
        self.rhs, self.lhs, self.outputs = rhs, lhs, outputs

    def required_derivatives(self, name, lhs=False):
        return (self.lhs if lhs else self.rhs).get(name, [])

    def residual_outputs(self, name):
        return self.outputs.get(name, [])


def test_kernel_check():
    registry = VariableRegistry(mixed_roster(), dim=2)
    outputs = {"c": ["value", "gradient"], "u": ["gradient"], "n": ["value"]}
    registry.check_kernel(StubKernel({"c": ["value", "gradient"]}, {"u": ["gradient"]}, outputs))
    with pytest.raises(ConfigurationError):
        registry.check_kernel(StubKernel({"c": ["hessian"]}, {}, outputs))
    with pytest.raises(ConfigurationError):
        registry.check_kernel(StubKernel({}, {"n": ["value"]}, outputs))
    with pytest.raises(ConfigurationError):
        registry.check_kernel(StubKernel({}, {}, {"c": ["value"], "u": ["gradient"], "n": ["value"]}))


def test_lhs_change_revalidated_against_checked_kernel():
    registry = VariableRegistry(mixed_roster(), dim=2)
    outputs = {"c": ["value", "gradient"], "u": ["gradient"], "n": ["value"]}
    registry.check_kernel(StubKernel({}, {"u": ["gradient"]}, outputs))
    registry.set_lhs_requirements("n", value=True)
    with pytest.raises(ConfigurationError):
        registry.set_lhs_requirements("u", value=True)
    assert registry.requirements("u").need_gradient_lhs
    assert [info.name for info in registry.lhs_info] == ["u", "n"]


def test_field_state_roster():
    from Germen.Mesh import StructuredMesh
    registry = VariableRegistry(mixed_roster(), dim=2)
    mesh = StructuredMesh((2, 2), (1.0, 1.0))
    state = FieldState.zeros(mesh, registry)
    assert state["u"].shape == (9, 2)
    assert state["c"].shape == (9,)
    copy = state.copy()
    copy["c"][0] = 1.0
    assert state["c"][0] == 0.0, "FieldState.copy must not share vectors"
    del copy["n"]
    with pytest.raises(ConfigurationError):
        copy.check_roster(registry)
    assert isinstance(FieldDeclaration(Field("x")).requirements, FieldRequirements)
