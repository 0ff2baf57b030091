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
WORKCELL: Core: Spatial Inertia

Provides the immutable :class:`SpatialInertia` value and the algebra
used to move inertias between frames and points and to combine them:

- :func:`reexpress` changes the frame in which the quantities are expressed.
- :func:`shift` changes the point about which they are taken.
- :func:`compose` sums two inertias about the same point and frame.

Also provides functions to compute moments of inertia for solid geometric bodies.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from .math import FLOAT64_EPS, mat33_to_numpy, rotation_to_numpy, skew, vec3_to_numpy
from .types import Mat33Like, QuatLike, TransformLike, Vec3Like

###
# Module interface
###

__all__ = [
    "SpatialInertia",
    "compose",
    "reexpress",
    "shift",
    "solid_cuboid_body_moment_of_inertia",
    "solid_cylinder_body_moment_of_inertia",
    "solid_sphere_body_moment_of_inertia",
]


###
# Types
###


@dataclass(frozen=True, eq=False)
class SpatialInertia:
    """
    The mass distribution of a rigid body, taken about a point P and expressed in a frame E.

    Instances are immutable: all the operations return new values.
    """

    mass: float = 0.0
    """The total mass of the body, must be non-negative."""

    center_of_mass: np.ndarray = field(default_factory=lambda: np.zeros(3))
    """
    The position of the center of mass measured from the point P.\n
    Shape of ``(3,)`` and expressed in frame E.
    """

    rotational_inertia: np.ndarray = field(default_factory=lambda: np.zeros((3, 3)))
    """
    The rotational inertia about the point P.\n
    Shape of ``(3, 3)`` and expressed in frame E.
    """

    point: str | None = None
    """Optional label of the point P about which the inertia is taken."""

    frame: str | None = None
    """Optional label of the frame E in which the inertia is expressed."""

    def __post_init__(self):
        mass = float(self.mass)
        if not np.isfinite(mass) or mass < 0.0:
            raise ValueError(f"Mass must be a finite non-negative value, but got {self.mass}.")
        com = vec3_to_numpy(self.center_of_mass)
        inertia = mat33_to_numpy(self.rotational_inertia)
        if not np.all(np.isfinite(com)) or not np.all(np.isfinite(inertia)):
            raise ValueError("Center of mass and rotational inertia must be finite.")
        # Freeze the underlying buffers
        com.setflags(write=False)
        inertia.setflags(write=False)
        object.__setattr__(self, "mass", mass)
        object.__setattr__(self, "center_of_mass", com)
        object.__setattr__(self, "rotational_inertia", inertia)

    def __add__(self, other: SpatialInertia) -> SpatialInertia:
        return compose(self, other)

    def __repr__(self):
        return (
            f"SpatialInertia(\n"
            f"mass={self.mass},\n"
            f"center_of_mass={self.center_of_mass},\n"
            f"rotational_inertia=\n{self.rotational_inertia},\n"
            f"point={self.point},\n"
            f"frame={self.frame}\n"
            f")"
        )

    @staticmethod
    def zero(point: str | None = None, frame: str | None = None) -> SpatialInertia:
        """Returns the massless inertia, the identity element of :func:`compose`."""
        return SpatialInertia(point=point, frame=frame)

    @staticmethod
    def from_center_of_mass(
        mass: float,
        center_of_mass: Vec3Like,
        inertia_about_com: Mat33Like,
        point: str | None = None,
        frame: str | None = None,
    ) -> SpatialInertia:
        """
        Creates an inertia about a point P given the rotational inertia about the center of mass.

        Args:
            mass (float): The total mass.
            center_of_mass (Vec3Like): The position of the center of mass measured from P.
            inertia_about_com (Mat33Like): The rotational inertia about the center of mass.
            point (str | None): Optional label of the point P.
            frame (str | None): Optional label of the expressed-in frame.
        """
        S_c = skew(center_of_mass)
        I_P = mat33_to_numpy(inertia_about_com) - float(mass) * (S_c @ S_c)
        return SpatialInertia(
            mass=mass, center_of_mass=center_of_mass, rotational_inertia=I_P, point=point, frame=frame
        )

    def calc_rotational_inertia_about_com(self) -> np.ndarray:
        """Returns the rotational inertia about the center of mass, expressed in the same frame."""
        S_c = skew(self.center_of_mass)
        return self.rotational_inertia + self.mass * (S_c @ S_c)

    def is_physically_valid(self, atol: float = 1e-9) -> bool:
        """
        Checks that the inertia could belong to a real body.

        The rotational inertia about the center of mass must be symmetric,
        positive semi-definite and its principal moments must satisfy the
        triangle inequality.
        """
        I_com = self.calc_rotational_inertia_about_com()
        if not np.allclose(I_com, I_com.T, atol=atol):
            return False
        moments = np.linalg.eigvalsh(0.5 * (I_com + I_com.T))
        if np.any(moments < -atol):
            return False
        I_1, I_2, I_3 = moments
        return bool(I_1 + I_2 >= I_3 - atol)

    def is_close(self, other: SpatialInertia, atol: float = 1e-9) -> bool:
        """Checks numerical closeness with another inertia, ignoring the labels."""
        return bool(
            abs(self.mass - other.mass) <= atol
            and np.allclose(self.center_of_mass, other.center_of_mass, atol=atol)
            and np.allclose(self.rotational_inertia, other.rotational_inertia, atol=atol)
        )


###
# Operations
###


def reexpress(
    inertia: SpatialInertia, rotation: Mat33Like | QuatLike | TransformLike, frame: str | None = None
) -> SpatialInertia:
    """
    Re-expresses an inertia in a new frame F.

    Args:
        inertia (SpatialInertia): The inertia expressed in frame E.
        rotation: The orientation ``R_FE`` of frame E in frame F.
        frame (str | None): Optional label of the new frame F.

    Returns:
        SpatialInertia: The same physical inertia, about the same point, expressed in F.
    """
    R = rotation_to_numpy(rotation)
    return SpatialInertia(
        mass=inertia.mass,
        center_of_mass=R @ inertia.center_of_mass,
        rotational_inertia=R @ inertia.rotational_inertia @ R.T,
        point=inertia.point,
        frame=frame,
    )


def shift(inertia: SpatialInertia, displacement: Vec3Like, point: str | None = None) -> SpatialInertia:
    """
    Shifts an inertia from its point P to a new point Q.

    Args:
        inertia (SpatialInertia): The inertia about P.
        displacement (Vec3Like): The position of Q measured from P, in the expressed-in frame.
        point (str | None): Optional label of the new point Q.

    Returns:
        SpatialInertia: The same physical inertia, in the same frame, taken about Q.
    """
    d = vec3_to_numpy(displacement)
    c_P = inertia.center_of_mass
    c_Q = c_P - d
    S_P = skew(c_P)
    S_Q = skew(c_Q)
    # Parallel-axis theorem applied through the center of mass
    I_Q = inertia.rotational_inertia + inertia.mass * (S_P @ S_P - S_Q @ S_Q)
    return SpatialInertia(
        mass=inertia.mass,
        center_of_mass=c_Q,
        rotational_inertia=I_Q,
        point=point,
        frame=inertia.frame,
    )


def _merge_label(kind: str, a: str | None, b: str | None) -> str | None:
    if a is not None and b is not None and a != b:
        raise ValueError(f"Cannot compose inertias about different {kind}s: '{a}' and '{b}'.")
    return a if a is not None else b


def compose(a: SpatialInertia, b: SpatialInertia) -> SpatialInertia:
    """
    Sums two inertias taken about the same point and expressed in the same frame.

    Labels are only compared when both operands carry one.

    Raises:
        ValueError: If the point or frame labels of the operands differ.
    """
    point = _merge_label("point", a.point, b.point)
    frame = _merge_label("frame", a.frame, b.frame)
    mass = a.mass + b.mass
    if mass > FLOAT64_EPS:
        com = (a.mass * a.center_of_mass + b.mass * b.center_of_mass) / mass
    else:
        com = np.zeros(3)
    return SpatialInertia(
        mass=mass,
        center_of_mass=com,
        rotational_inertia=a.rotational_inertia + b.rotational_inertia,
        point=point,
        frame=frame,
    )


###
# Solid bodies
###


def solid_sphere_body_moment_of_inertia(m: float, r: float) -> np.ndarray:
    Ia = 0.4 * m * r * r
    return np.diag([Ia, Ia, Ia])


def solid_cylinder_body_moment_of_inertia(m: float, r: float, h: float) -> np.ndarray:
    Ia = 1.0 / 12.0 * m * (3.0 * r * r + h * h)
    Ib = 0.5 * m * r * r
    return np.diag([Ia, Ia, Ib])


def solid_cuboid_body_moment_of_inertia(m: float, w: float, h: float, d: float) -> np.ndarray:
    Ia = (1.0 / 12.0) * m * (h * h + d * d)
    Ib = (1.0 / 12.0) * m * (w * w + d * d)
    Ic = (1.0 / 12.0) * m * (w * w + h * h)
    return np.diag([Ia, Ib, Ic])
