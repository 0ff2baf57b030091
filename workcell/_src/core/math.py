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
WORKCELL: Core: Math Operations

Host-side conversions between :mod:`warp` value types and
double-precision :mod:`numpy` arrays, plus the few 3D
helpers needed by the inertia algebra and the dynamics.
"""

from __future__ import annotations

import numpy as np
import warp as wp

from .types import Mat33Like, QuatLike, TransformLike, Vec3Like

###
# Module interface
###

__all__ = [
    "FLOAT64_EPS",
    "UNIT_X",
    "UNIT_Y",
    "UNIT_Z",
    "make_transform",
    "mat33_to_numpy",
    "quat_to_numpy",
    "rotation_to_numpy",
    "skew",
    "transform_from_numpy",
    "transform_to_numpy",
    "vec3_to_numpy",
]


###
# Constants
###

FLOAT64_EPS = float(np.finfo(np.float64).eps)
"""The machine epsilon of 64-bit floating-point values."""

UNIT_X = (1.0, 0.0, 0.0)
""" 3D unit vector for the X axis """

UNIT_Y = (0.0, 1.0, 0.0)
""" 3D unit vector for the Y axis """

UNIT_Z = (0.0, 0.0, 1.0)
""" 3D unit vector for the Z axis """


###
# Conversions
###


def vec3_to_numpy(v: Vec3Like) -> np.ndarray:
    """Converts any 3D vector representation to a ``(3,)`` float64 array."""
    if wp.types.type_is_vector(type(v)):
        return np.array([v[i] for i in range(3)], dtype=np.float64)
    return np.array(v, dtype=np.float64).reshape(3)


def quat_to_numpy(q: QuatLike) -> np.ndarray:
    """Converts any quaternion representation to a normalized ``(4,)`` float64 array in ``(x, y, z, w)`` order."""
    if wp.types.type_is_quaternion(type(q)):
        q = [q[i] for i in range(4)]
    q = np.array(q, dtype=np.float64).reshape(4)
    norm = np.linalg.norm(q)
    if norm < FLOAT64_EPS:
        raise ValueError("Cannot normalize a zero-norm quaternion.")
    return q / norm


def mat33_to_numpy(m: Mat33Like) -> np.ndarray:
    """Converts any 3x3 matrix representation to a ``(3, 3)`` float64 array."""
    if wp.types.type_is_matrix(type(m)):
        return np.array([[m[i][j] for j in range(3)] for i in range(3)], dtype=np.float64)
    return np.array(m, dtype=np.float64).reshape(3, 3)


def rotation_to_numpy(rotation: Mat33Like | QuatLike | TransformLike) -> np.ndarray:
    """
    Converts a rotation to a ``(3, 3)`` float64 rotation matrix.

    Args:
        rotation: Either a rotation matrix, a unit quaternion in ``(x, y, z, w)``
            order or a rigid transform, of which only the rotation is used.

    Returns:
        np.ndarray: The rotation matrix.
    """
    if wp.types.type_is_transformation(type(rotation)):
        rotation = rotation.q
    if wp.types.type_is_matrix(type(rotation)):
        return mat33_to_numpy(rotation)
    if wp.types.type_is_quaternion(type(rotation)) or np.size(rotation) == 4:
        x, y, z, w = quat_to_numpy(rotation)
        return np.array(
            [
                [1.0 - 2.0 * (y * y + z * z), 2.0 * (x * y - z * w), 2.0 * (x * z + y * w)],
                [2.0 * (x * y + z * w), 1.0 - 2.0 * (x * x + z * z), 2.0 * (y * z - x * w)],
                [2.0 * (x * z - y * w), 2.0 * (y * z + x * w), 1.0 - 2.0 * (x * x + y * y)],
            ],
            dtype=np.float64,
        )
    return mat33_to_numpy(rotation)


def transform_to_numpy(X: TransformLike) -> tuple[np.ndarray, np.ndarray]:
    """Splits a rigid transform into its ``(3, 3)`` rotation matrix and ``(3,)`` translation."""
    return rotation_to_numpy(X.q), vec3_to_numpy(X.p)


def transform_from_numpy(values: np.ndarray) -> wp.transform:
    """Builds a transform from a ``(7,)`` array laid out as ``[p, q]``, as returned by ``wp.array.numpy()``."""
    values = np.asarray(values).reshape(7)
    return wp.transform(wp.vec3(*values[0:3]), wp.quat(*values[3:7]))


def make_transform(
    p: Vec3Like | None = None,
    rpy: Vec3Like | None = None,
    q: QuatLike | None = None,
) -> wp.transform:
    """
    Creates a rigid transform from a translation and an orientation.

    The orientation can be given either as roll-pitch-yaw angles or as a
    quaternion, but not both. Missing parts default to the identity.
    """
    if rpy is not None and q is not None:
        raise ValueError("Only one of `rpy` or `q` can be specified.")
    p = wp.vec3(0.0, 0.0, 0.0) if p is None else wp.vec3(*vec3_to_numpy(p))
    if rpy is not None:
        roll, pitch, yaw = vec3_to_numpy(rpy)
        q = wp.quat_rpy(float(roll), float(pitch), float(yaw))
    elif q is not None:
        q = wp.quat(*quat_to_numpy(q))
    else:
        q = wp.quat_identity()
    return wp.transform(p, q)


###
# Operations
###


def skew(v: Vec3Like) -> np.ndarray:
    """Returns the skew-symmetric cross-product matrix ``S(v)`` such that ``S(v) @ u == cross(v, u)``."""
    x, y, z = vec3_to_numpy(v)
    return np.array([[0.0, -z, y], [z, 0.0, -x], [-y, x, 0.0]], dtype=np.float64)
