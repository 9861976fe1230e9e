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
Field Descriptors
=================

A Field is the identity of an unknown evolved or constrained over the mesh:
its name, whether it is a scalar or a vector, and whether it is time-evolved
(parabolic) or a static constraint (elliptic). FieldRequirements store which
derivatives the residual kernel needs for the explicit (RHS) and implicit
(LHS) evaluations, and which residual terms the field receives.
"""

from dataclasses import dataclass, field as dc_field

from ..utils.errors import ConfigurationError

SCALAR = "SCALAR"
VECTOR = "VECTOR"
PARABOLIC = "PARABOLIC"
ELLIPTIC = "ELLIPTIC"


@dataclass(frozen=True)
class Field:
    """Immutable identity of a field.

    Attributes
    ----------
    name : str Field name, unique in a registry
    rank : str SCALAR or VECTOR
    pde_type : str PARABOLIC or ELLIPTIC
    """
    name: str
    rank: str = SCALAR
    pde_type: str = PARABOLIC

    def __post_init__(self):
        if self.rank not in (SCALAR, VECTOR):
            raise ConfigurationError(f"Field {self.name}: unknown rank {self.rank}")
        if self.pde_type not in (PARABOLIC, ELLIPTIC):
            raise ConfigurationError(f"Field {self.name}: unknown PDE type {self.pde_type}")

    @property
    def is_scalar(self):
        return self.rank == SCALAR

    def n_components(self, dim):
        return 1 if self.is_scalar else dim


@dataclass(frozen=True)
class FieldRequirements:
    """Evaluation flags of one field.

    The ``need_*`` flags select the derivatives evaluated before the kernel is
    invoked; ``value_residual``/``gradient_residual`` select which kernel
    outputs are submitted and integrated for this field.
    """
    need_value: bool = False
    need_gradient: bool = False
    need_hessian: bool = False
    value_residual: bool = False
    gradient_residual: bool = False
    need_value_lhs: bool = False
    need_gradient_lhs: bool = False
    need_hessian_lhs: bool = False

    @property
    def in_rhs(self):
        return self.need_value or self.need_gradient or self.need_hessian

    @property
    def in_lhs(self):
        return self.need_value_lhs or self.need_gradient_lhs or self.need_hessian_lhs

    @property
    def has_residual(self):
        return self.value_residual or self.gradient_residual

    def rhs_flags(self):
        return self.need_value, self.need_gradient, self.need_hessian

    def lhs_flags(self):
        return self.need_value_lhs, self.need_gradient_lhs, self.need_hessian_lhs

    def with_lhs(self, value=False, gradient=False, hessian=False):
        """Return a copy with replaced LHS needs."""
        return FieldRequirements(self.need_value, self.need_gradient, self.need_hessian,
                                 self.value_residual, self.gradient_residual,
                                 value, gradient, hessian)

    @classmethod
    def from_dict(cls, dictionnary):
        unknown = set(dictionnary) - set(cls.__dataclass_fields__)
        if unknown:
            raise ConfigurationError(f"Unknown field requirement flags: {sorted(unknown)}")
        return cls(**dictionnary)


@dataclass
class FieldDeclaration:
    """A field together with its evaluation requirements, as given at setup."""
    field: Field
    requirements: FieldRequirements = dc_field(default_factory=FieldRequirements)

    @property
    def name(self):
        return self.field.name
