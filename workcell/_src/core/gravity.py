# SPDX-FileCopyrightText: Copyright (c) 2025 The Workcell Developers
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
WORKCELL: Core: Gravity

Uniform gravity shared by a station world and the control model
built from it. Stored as a magnitude and a unit direction so that it
can be switched off without losing its setting.
"""

import numpy as np
import warp as wp

from .math import vec3_to_numpy
from .types import Descriptor, Vec3Like, override

###
# Module interface
###

__all__ = [
    "GRAVITY_ACCEL_DEFAULT",
    "GRAVITY_DIREC_DEFAULT",
    "GRAVITY_NAME_DEFAULT",
    "GravityDescriptor",
]


###
# Constants
###

GRAVITY_NAME_DEFAULT = "Earth"

GRAVITY_ACCEL_DEFAULT = 9.81
"""Standard gravitational acceleration at sea level, in m/s^2."""

GRAVITY_DIREC_DEFAULT = (0.0, 0.0, -1.0)
"""Gravity points down the world Z axis."""


###
# Containers
###


class GravityDescriptor(Descriptor):
    """
    Uniform gravity acting on every body of a world.

    Args:
        enabled (bool): Whether gravity acts on the bodies.
        acceleration (float): The non-negative magnitude in m/s^2.
        direction (Vec3Like): The direction of gravity, normalized on construction.
        name (str): The name of the descriptor.
        uid (str | None): Optional unique identifier, generated when `None`.

    Raises:
        ValueError: If the magnitude is negative or the direction is zero.
    """

    def __init__(
        self,
        enabled: bool = True,
        acceleration: float = GRAVITY_ACCEL_DEFAULT,
        direction: Vec3Like = GRAVITY_DIREC_DEFAULT,
        name: str = GRAVITY_NAME_DEFAULT,
        uid: str | None = None,
    ):
        super().__init__(name, uid)
        if acceleration < 0.0:
            raise ValueError(f"Gravitational acceleration must be non-negative, but got {acceleration}.")
        d = vec3_to_numpy(direction)
        norm = float(np.linalg.norm(d))
        if norm == 0.0:
            raise ValueError("The direction of gravity must be a non-zero vector.")
        self._enabled: bool = bool(enabled)
        self._acceleration: float = float(acceleration)
        self._direction: np.ndarray = d / norm

    @classmethod
    def from_vector(cls, g: Vec3Like, name: str = GRAVITY_NAME_DEFAULT) -> "GravityDescriptor":
        """Creates the descriptor of the gravity vector ``g``, disabled when ``g`` is zero."""
        g = vec3_to_numpy(g)
        magnitude = float(np.linalg.norm(g))
        if magnitude == 0.0:
            return cls(enabled=False, name=name)
        return cls(acceleration=magnitude, direction=g, name=name)

    @override
    def __repr__(self):
        state = "enabled" if self._enabled else "disabled"
        return f"GravityDescriptor(name={self.name}, {state}, g={self.vector().tolist()})"

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def acceleration(self) -> float:
        return self._acceleration

    @property
    def direction(self) -> wp.vec3:
        """The unit direction of gravity, kept when gravity is disabled."""
        return wp.vec3(*self._direction)

    def vector(self) -> np.ndarray:
        """Returns the gravity vector as a ``(3,)`` float64 array, zero when disabled."""
        if not self._enabled:
            return np.zeros(3)
        return self._acceleration * self._direction
