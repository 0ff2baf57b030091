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
WORKCELL: Simulation: Model Descriptions

A :class:`ModelDescription` is the in-memory, world-independent
description of a multi-body model (a robot arm, a gripper, a table, ...).
It can be loaded any number of times into a :class:`WorldModel`
or into a fresh scratch world, each load creating a new model instance.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum

import numpy as np
import warp as wp

from ..core.inertia import SpatialInertia
from ..core.math import UNIT_X, vec3_to_numpy
from ..core.types import Descriptor, Vec3Like, override

###
# Module interface
###

__all__ = [
    "FrameDescriptor",
    "JointDescriptor",
    "JointType",
    "ModelDescription",
    "RigidBodyDescriptor",
]


###
# Types
###


class JointType(IntEnum):
    """An enumeration of the supported joint types."""

    FIXED = 0
    """A weld joint, removing all relative degrees of freedom."""

    REVOLUTE = 1
    """A single rotational degree of freedom about the joint axis."""

    PRISMATIC = 2
    """A single translational degree of freedom along the joint axis."""

    @override
    def __str__(self):
        """Returns a string representation of the joint type."""
        return f"JointType.{self.name}"

    @override
    def __repr__(self):
        """Returns a string representation of the joint type."""
        return self.__str__()

    @property
    def num_dofs(self) -> int:
        """Returns the number of degrees of freedom of the joint type."""
        return 0 if self == JointType.FIXED else 1


@dataclass(frozen=True)
class RigidBodyDescriptor:
    """A rigid body of a model description."""

    name: str
    """The name of the body, unique within its description."""

    inertia: SpatialInertia
    """The spatial inertia of the body about its origin, expressed in the body frame."""


@dataclass(frozen=True)
class JointDescriptor:
    """
    A joint of a model description connecting a parent body to a child body.

    The joint frame ``J`` is located by ``X_PJ`` in the parent body frame
    and by ``X_CJ`` in the child body frame. At zero configuration both
    coincide, so that the pose of the child in the parent is ``X_PJ * inv(X_CJ)``.
    """

    name: str
    """The name of the joint, unique within its description."""

    joint_type: JointType
    """The type of the joint."""

    parent: str
    """The name of the parent body."""

    child: str
    """The name of the child body."""

    X_PJ: wp.transform = field(default_factory=wp.transform_identity)
    """The pose of the joint frame in the parent body frame."""

    X_CJ: wp.transform = field(default_factory=wp.transform_identity)
    """The pose of the joint frame in the child body frame."""

    axis: tuple[float, float, float] = UNIT_X
    """The unit joint axis expressed in the joint frame, unused by fixed joints."""


@dataclass(frozen=True)
class FrameDescriptor:
    """A named frame rigidly attached to a body of a model description."""

    name: str
    """The name of the frame, unique within its description."""

    body: str
    """The name of the body the frame is attached to."""

    X_BF: wp.transform = field(default_factory=wp.transform_identity)
    """The pose of the frame in the body frame."""


###
# Descriptions
###


class ModelDescription(Descriptor):
    """
    An in-memory description of a multi-body model.

    Every body implicitly provides a frame of the same name. Bodies that
    are not the child of any joint are the roots of the model and must be
    welded to something when the description is loaded into a world.
    """

    def __init__(self, name: str, uid: str | None = None):
        super().__init__(name, uid)
        self._bodies: list[RigidBodyDescriptor] = []
        self._joints: list[JointDescriptor] = []
        self._frames: list[FrameDescriptor] = []

    @override
    def __repr__(self):
        return (
            f"ModelDescription(\n"
            f"name={self.name},\n"
            f"uid={self.uid},\n"
            f"bodies={self.body_names},\n"
            f"joints={self.joint_names},\n"
            f"frames={self.frame_names}\n"
            f")"
        )

    ###
    # Properties
    ###

    @property
    def bodies(self) -> tuple[RigidBodyDescriptor, ...]:
        return tuple(self._bodies)

    @property
    def joints(self) -> tuple[JointDescriptor, ...]:
        return tuple(self._joints)

    @property
    def frames(self) -> tuple[FrameDescriptor, ...]:
        return tuple(self._frames)

    @property
    def body_names(self) -> list[str]:
        return [b.name for b in self._bodies]

    @property
    def joint_names(self) -> list[str]:
        return [j.name for j in self._joints]

    @property
    def frame_names(self) -> list[str]:
        """Names of all frames, including the implicit body frames."""
        return self.body_names + [f.name for f in self._frames]

    @property
    def num_dofs(self) -> int:
        """The total number of joint degrees of freedom of the model."""
        return sum(j.joint_type.num_dofs for j in self._joints)

    @property
    def root_bodies(self) -> list[str]:
        """Names of the bodies that are not the child of any joint."""
        children = {j.child for j in self._joints}
        return [b.name for b in self._bodies if b.name not in children]

    ###
    # Queries
    ###

    def has_body(self, name: str) -> bool:
        return any(b.name == name for b in self._bodies)

    def has_frame(self, name: str) -> bool:
        return name in self.frame_names

    def get_body(self, name: str) -> RigidBodyDescriptor:
        for body in self._bodies:
            if body.name == name:
                return body
        raise ValueError(f"Model '{self.name}' has no body named '{name}'.")

    def get_frame(self, name: str) -> FrameDescriptor:
        """Returns the named frame, resolving body names to their body frames."""
        for frame in self._frames:
            if frame.name == name:
                return frame
        if self.has_body(name):
            return FrameDescriptor(name=name, body=name)
        raise ValueError(f"Model '{self.name}' has no frame named '{name}'.")

    ###
    # Construction
    ###

    def add_body(self, name: str, inertia: SpatialInertia | None = None) -> RigidBodyDescriptor:
        """
        Adds a rigid body to the description.

        Args:
            name (str): The unique name of the body.
            inertia (SpatialInertia | None): The inertia about the body origin,
                expressed in the body frame. Defaults to a massless body.
        """
        # Check that the body name is unique among all frame names
        if self.has_frame(name):
            raise ValueError(f"Model '{self.name}' already has a frame named '{name}'.")
        if inertia is None:
            inertia = SpatialInertia.zero()
        if not isinstance(inertia, SpatialInertia):
            raise TypeError(f"Body inertia must be a `SpatialInertia`, but got {type(inertia)}.")
        body = RigidBodyDescriptor(name=name, inertia=inertia)
        self._bodies.append(body)
        return body

    def add_joint(
        self,
        name: str,
        joint_type: JointType,
        parent: str,
        child: str,
        X_PJ: wp.transform | None = None,
        X_CJ: wp.transform | None = None,
        axis: Vec3Like = UNIT_X,
    ) -> JointDescriptor:
        """
        Adds a joint between two bodies of the description.

        Raises:
            ValueError: If the bodies are unknown, identical or if the child already has a parent.
        """
        if name in self.joint_names:
            raise ValueError(f"Model '{self.name}' already has a joint named '{name}'.")
        if not self.has_body(parent):
            raise ValueError(f"Joint '{name}' references unknown parent body '{parent}'.")
        if not self.has_body(child):
            raise ValueError(f"Joint '{name}' references unknown child body '{child}'.")
        if parent == child:
            raise ValueError(f"Joint '{name}' cannot connect body '{parent}' to itself.")
        if any(j.child == child for j in self._joints):
            raise ValueError(f"Body '{child}' already has a parent joint.")
        # Normalize the joint axis
        axis = vec3_to_numpy(axis)
        norm = np.linalg.norm(axis)
        if norm < 1e-12:
            raise ValueError(f"Joint '{name}' has a zero-length axis.")
        axis = tuple(float(a) for a in axis / norm)
        joint = JointDescriptor(
            name=name,
            joint_type=JointType(joint_type),
            parent=parent,
            child=child,
            X_PJ=wp.transform_identity() if X_PJ is None else X_PJ,
            X_CJ=wp.transform_identity() if X_CJ is None else X_CJ,
            axis=axis,
        )
        self._joints.append(joint)
        return joint

    def add_frame(self, name: str, body: str, X_BF: wp.transform | None = None) -> FrameDescriptor:
        """Adds a named frame attached to a body of the description."""
        if self.has_frame(name):
            raise ValueError(f"Model '{self.name}' already has a frame named '{name}'.")
        if not self.has_body(body):
            raise ValueError(f"Frame '{name}' references unknown body '{body}'.")
        frame = FrameDescriptor(name=name, body=body, X_BF=wp.transform_identity() if X_BF is None else X_BF)
        self._frames.append(frame)
        return frame
