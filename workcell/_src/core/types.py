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
WORKCELL: Core: Types

Defines the common type aliases and the descriptor
base class shared by all sub-packages of the workcell.
"""

from __future__ import annotations

import sys
import uuid

import numpy as np
import warp as wp

if sys.version_info >= (3, 12):
    from typing import override
else:
    from typing_extensions import override

###
# Module interface
###

__all__ = [
    "Descriptor",
    "FloatArrayLike",
    "Mat33Like",
    "QuatLike",
    "TransformLike",
    "Vec3Like",
    "override",
]


###
# Descriptors
###


class Descriptor:
    """
    Base class of the named entities of a workcell, such as model
    descriptions and gravity. Each carries a non-empty name and a
    version-4 UUID string, generated when not given.
    """

    def __init__(self, name: str, uid: str | None = None):
        if not isinstance(name, str) or not name:
            raise ValueError(f"Descriptor name must be a non-empty string, but got '{name}'.")
        if uid is None:
            uid = str(uuid.uuid4())
        elif not isinstance(uid, str):
            raise TypeError(f"Descriptor UID must be a string, but got {type(uid)}.")
        try:
            uid = str(uuid.UUID(uid, version=4))
        except ValueError as err:
            raise ValueError(f"Invalid UID string: '{uid}'.") from err
        self._name: str = name
        self._uid: str = uid

    @property
    def name(self) -> str:
        return self._name

    @property
    def uid(self) -> str:
        return self._uid

    def __repr__(self):
        return f"{type(self).__name__}(name={self._name}, uid={self._uid})"


###
# Utilities
###

FloatArrayLike = np.ndarray | list[float] | list[list[float]]
"""Any flat or nested sequence of floats convertible to a numpy array."""

Vec3Like = wp.vec3 | np.ndarray | list[float] | tuple[float, float, float]
"""Any 3D vector representation accepted at the public interfaces."""

QuatLike = wp.quat | np.ndarray | list[float] | tuple[float, float, float, float]
"""Any unit-quaternion representation in ``(x, y, z, w)`` order."""

Mat33Like = wp.mat33 | np.ndarray | list[list[float]] | list[float]
"""Any 3x3 matrix representation, either nested row-major or flat."""

TransformLike = wp.transform
"""Rigid transforms are always carried as :class:`warp.transform`."""
