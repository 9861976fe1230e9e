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
Variable Registry
=================

The registry turns the runtime field roster into the VariableInfo tables read
by the assembler. Two tables are kept:

- the RHS table, one entry per registered field;
- the LHS table, one entry per field that takes part in the implicit
  operator (any of its LHS needs is set).

Field-vector offsets (``global_field_index``) are contiguous over the whole
roster: scalar fields occupy one slot, vector fields ``dim`` slots. The
``scalar_or_vector_index`` is the position of the field in the scalar store
or in the vector store of one assembly pass and is therefore table specific.

The LHS table is rebuilt whenever LHS requirements change through
:meth:`VariableRegistry.set_lhs_requirements`, after a new check against the
kernel the registry was last validated with.
"""

from dataclasses import dataclass

from .field import Field, FieldDeclaration, FieldRequirements
from ..utils.errors import ConfigurationError
from ..utils.mpi.communicator import print


@dataclass(frozen=True)
class VariableInfo:
    """Assembly metadata of one participating field."""
    name: str
    global_var_index: int
    global_field_index: int
    is_scalar: bool
    scalar_or_vector_index: int
    n_components: int


class VariableRegistry:
    """
    Static description of the field roster.

    Parameters
    ----------
    declarations : list of FieldDeclaration, or of (Field, FieldRequirements) pairs
    dim : int Spatial dimension (sets the slot count of vector fields)
    """

    def __init__(self, declarations, dim):
        if dim not in (1, 2, 3):
            raise ConfigurationError(f"Unsupported spatial dimension {dim}")
        if len(declarations) == 0:
            raise ConfigurationError("At least one field must be registered")
        self.dim = dim
        self.fields = []
        self._requirements = {}
        self.kernel = None
        for declaration in declarations:
            if not isinstance(declaration, FieldDeclaration):
                declaration = FieldDeclaration(*declaration)
            name = declaration.field.name
            if name in self._requirements:
                raise ConfigurationError(f"Field {name} registered twice")
            if not declaration.field.is_scalar and dim == 1:
                raise ConfigurationError(f"Vector field {name} needs a dimension of at least 2")
            if declaration.requirements.has_residual and not declaration.requirements.in_rhs:
                raise ConfigurationError(f"Field {name} declares a residual but no RHS requirement")
            self.fields.append(declaration.field)
            self._requirements[name] = declaration.requirements
        self._field_offsets = self._compute_offsets()
        self.rhs_info = self._build_table(lambda req: True)
        self.lhs_info = self._build_table(lambda req: req.in_lhs)

    def _compute_offsets(self):
        offsets = {}
        field_number = 0
        for field in self.fields:
            offsets[field.name] = field_number
            field_number += field.n_components(self.dim)
        return offsets

    def _build_table(self, participates):
        table = []
        scalar_index = 0
        vector_index = 0
        for var_index, field in enumerate(self.fields):
            if not participates(self._requirements[field.name]):
                continue
            if field.is_scalar:
                local_index = scalar_index
                scalar_index += 1
            else:
                local_index = vector_index
                vector_index += 1
            table.append(VariableInfo(name=field.name,
                                      global_var_index=var_index,
                                      global_field_index=self._field_offsets[field.name],
                                      is_scalar=field.is_scalar,
                                      scalar_or_vector_index=local_index,
                                      n_components=field.n_components(self.dim)))
        return table

    @property
    def names(self):
        return [field.name for field in self.fields]

    @property
    def n_field_slots(self):
        return sum(field.n_components(self.dim) for field in self.fields)

    def field(self, name):
        for field in self.fields:
            if field.name == name:
                return field
        raise ConfigurationError(f"Unknown field {name}")

    def requirements(self, name):
        try:
            return self._requirements[name]
        except KeyError:
            raise ConfigurationError(f"Unknown field {name}") from None

    def lhs_target(self, target):
        """
        LHS VariableInfo of the field perturbed by the implicit operator.

        Parameters
        ----------
        target : str or int Field name or global field index

        Raises
        ------
        ConfigurationError If the field does not take part in the LHS evaluation
        """
        for info in self.lhs_info:
            if target == info.name or target == info.global_field_index:
                return info
        raise ConfigurationError(f"Field {target} does not take part in the LHS evaluation")

    def set_lhs_requirements(self, name, value=False, gradient=False, hessian=False):
        """
        Replace the LHS needs of a field and rebuild the LHS table.

        When a kernel has been checked against the registry, the new needs are
        checked against it too and the previous needs are restored on failure.

        Raises
        ------
        ConfigurationError If the kernel reads a derivative that is no longer evaluated
        """
        previous = self.requirements(name)
        self._requirements[name] = previous.with_lhs(value, gradient, hessian)
        if self.kernel is not None:
            try:
                self.check_kernel(self.kernel)
            except ConfigurationError:
                self._requirements[name] = previous
                raise
        self.lhs_info = self._build_table(lambda req: req.in_lhs)

    def check_kernel(self, kernel):
        """
        Check that every derivative the kernel consumes is evaluated and that
        every declared residual can be produced by the kernel.

        Raises
        ------
        ConfigurationError On the first inconsistency found
        """
        for field in self.fields:
            req = self._requirements[field.name]
            declared_rhs = {name for name, flag in zip(("value", "gradient", "hessian"),
                                                       req.rhs_flags()) if flag}
            missing = set(kernel.required_derivatives(field.name, lhs=False)) - declared_rhs
            if missing:
                raise ConfigurationError(
                    f"Field {field.name} requires {sorted(missing)} for the RHS kernel "
                    f"but declares only {sorted(declared_rhs)}")
            declared_lhs = {name for name, flag in zip(("value", "gradient", "hessian"),
                                                       req.lhs_flags()) if flag}
            missing = set(kernel.required_derivatives(field.name, lhs=True)) - declared_lhs
            if missing:
                raise ConfigurationError(
                    f"Field {field.name} requires {sorted(missing)} for the LHS kernel "
                    f"but declares only {sorted(declared_lhs)}")
            outputs = set(kernel.residual_outputs(field.name))
            if req.value_residual and "value" not in outputs:
                raise ConfigurationError(
                    f"Kernel {type(kernel).__name__} cannot supply a value residual for {field.name}")
            if req.gradient_residual and "gradient" not in outputs:
                raise ConfigurationError(
                    f"Kernel {type(kernel).__name__} cannot supply a gradient residual for {field.name}")
        self.kernel = kernel

    def summary(self):
        """Print the RHS and LHS tables."""
        print("Registered fields:")
        for info in self.rhs_info:
            field = self.fields[info.global_var_index]
            print(f"  {info.name}: {field.rank} {field.pde_type}, field index {info.global_field_index}")
        print(f"Fields taking part in the LHS: {[info.name for info in self.lhs_info]}")


def declare(name, rank="SCALAR", pde_type="PARABOLIC", **flags):
    """Shortcut building a FieldDeclaration from keyword flags."""
    return FieldDeclaration(Field(name, rank, pde_type), FieldRequirements(**flags))
