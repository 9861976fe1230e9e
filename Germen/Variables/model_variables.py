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
Quadrature-point containers exchanged between the assembler and the kernel.

Both containers hold arrays batched over the quadrature points of one cell
(the vectorisation lanes). They are allocated once per assembly pass and
overwritten cell after cell.

Shapes, with ``nq`` quadrature points:

=========  ==========  ===============  ====================
           value       grad             hess
=========  ==========  ===============  ====================
scalar     (nq,)       (nq, dim)        (nq, dim, dim)
vector     (nq, dim)   (nq, dim, dim)   (nq, dim, dim, dim)
=========  ==========  ===============  ====================

Vector gradients are indexed ``[q, component, direction]``.
"""


class ModelVariable:
    """Value, gradient and hessian of one field at the current quadrature lanes."""
    __slots__ = ("name", "value", "grad", "hess")

    def __init__(self, name):
        self.name = name
        self.value = None
        self.grad = None
        self.hess = None

    def clear(self):
        self.value = None
        self.grad = None
        self.hess = None


class ModelResidual:
    """Value and gradient residual contributions of one field."""
    __slots__ = ("name", "value_residual", "gradient_residual")

    def __init__(self, name):
        self.name = name
        self.value_residual = None
        self.gradient_residual = None

    def clear(self):
        self.value_residual = None
        self.gradient_residual = None


class VariableSet(dict):
    """Name-indexed collection of ModelVariable (or ModelResidual) objects."""

    @classmethod
    def of(cls, item_type, names):
        return cls((name, item_type(name)) for name in names)

    def clear_all(self):
        for item in self.values():
            item.clear()
