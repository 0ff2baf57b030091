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
WORKCELL: Simulation: Joints

Joints of a :class:`WorldModel`. The typed subclasses expose
the per-type accessors used to read and write the joint
coordinates stored in a :class:`WorldState`.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import warp as wp

from ..core.math import skew, transform_to_numpy, vec3_to_numpy
from .description import JointType
from .state import WorldState

###
# Module interface
###

__all__ = [
    "FixedJoint",
    "Joint",
    "PrismaticJoint",
    "RevoluteJoint",
    "make_joint",
]


###
# Types
###


@dataclass(eq=False)
class Joint:
    """A joint of a world model."""

    name: str
    """The name of the joint, unique within its model instance."""

    index: int
    """The index of the joint within the world model."""

    joint_type: JointType
    """The type of the joint."""

    instance: int
    """The index of the model instance that owns the joint."""

    parent_body: int
    """The index of the parent body."""

    child_body: int
    """The index of the child body."""

    X_PJ: wp.transform
    """The pose of the joint frame in the parent body frame."""

    X_CJ: wp.transform
    """The pose of the joint frame in the child body frame."""

    axis: tuple[float, float, float]
    """The unit joint axis expressed in the joint frame."""

    q_start: int = -1
    """The index of the first coordinate of the joint in the world state, assigned at finalization."""

    def __repr__(self):
        return f"{type(self).__name__}(name={self.name}, index={self.index}, instance={self.instance})"

    @property
    def num_dofs(self) -> int:
        return self.joint_type.num_dofs

    @property
    def dof_indices(self) -> list[int]:
        """Indices of the joint coordinates in the world state vectors."""
        if self.num_dofs > 0 and self.q_start < 0:
            raise RuntimeError(f"Joint '{self.name}' has no coordinates assigned until the world is finalized.")
        return list(range(self.q_start, self.q_start + self.num_dofs))

    def calc_joint_transform(self, q: float = 0.0) -> wp.transform:
        """Returns the transform across the joint frames for the joint coordinate ``q``."""
        return wp.transform_identity()

    def calc_relative_transform(self, q: float = 0.0) -> wp.transform:
        """Returns the pose ``X_PC`` of the child body in the parent body for the joint coordinate ``q``."""
        X_J = self.calc_joint_transform(q)
        return wp.transform_multiply(wp.transform_multiply(self.X_PJ, X_J), wp.transform_inverse(self.X_CJ))

    def calc_motion_subspace(self) -> np.ndarray:
        """
        Returns the ``(6, num_dofs)`` motion subspace of the joint expressed
        in the child body frame, using ``[angular; linear]`` ordering.
        """
        return np.zeros((6, 0))

    def _axis_and_origin_in_child(self) -> tuple[np.ndarray, np.ndarray]:
        R_CJ, p_CJ = transform_to_numpy(self.X_CJ)
        return R_CJ @ vec3_to_numpy(self.axis), p_CJ


class FixedJoint(Joint):
    """A weld between two bodies."""


class RevoluteJoint(Joint):
    """A rotational joint about the joint axis."""

    def calc_joint_transform(self, q: float = 0.0) -> wp.transform:
        return wp.transform(wp.vec3(0.0, 0.0, 0.0), wp.quat_from_axis_angle(wp.vec3(*self.axis), float(q)))

    def calc_motion_subspace(self) -> np.ndarray:
        a_C, p_CJ = self._axis_and_origin_in_child()
        return np.concatenate([a_C, skew(p_CJ) @ a_C]).reshape(6, 1)

    def get_angle(self, state: WorldState) -> float:
        return float(state.q[self.q_start])

    def set_angle(self, state: WorldState, angle: float):
        state.q[self.q_start] = angle

    def get_angular_rate(self, state: WorldState) -> float:
        return float(state.v[self.q_start])

    def set_angular_rate(self, state: WorldState, rate: float):
        state.v[self.q_start] = rate


class PrismaticJoint(Joint):
    """A translational joint along the joint axis."""

    def calc_joint_transform(self, q: float = 0.0) -> wp.transform:
        a = self.axis
        return wp.transform(wp.vec3(a[0] * q, a[1] * q, a[2] * q), wp.quat_identity())

    def calc_motion_subspace(self) -> np.ndarray:
        a_C, _ = self._axis_and_origin_in_child()
        return np.concatenate([np.zeros(3), a_C]).reshape(6, 1)

    def get_translation(self, state: WorldState) -> float:
        return float(state.q[self.q_start])

    def set_translation(self, state: WorldState, translation: float):
        state.q[self.q_start] = translation

    def get_translation_rate(self, state: WorldState) -> float:
        return float(state.v[self.q_start])

    def set_translation_rate(self, state: WorldState, rate: float):
        state.v[self.q_start] = rate


###
# Factories
###

_JOINT_CLASSES: dict[JointType, type[Joint]] = {
    JointType.FIXED: FixedJoint,
    JointType.REVOLUTE: RevoluteJoint,
    JointType.PRISMATIC: PrismaticJoint,
}


def make_joint(joint_type: JointType, **kwargs) -> Joint:
    """Creates the joint subclass matching the given type."""
    return _JOINT_CLASSES[JointType(joint_type)](joint_type=JointType(joint_type), **kwargs)
