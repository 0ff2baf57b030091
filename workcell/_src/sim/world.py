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
WORKCELL: Simulation: World Model

Provides the :class:`WorldModel`, a mutable multi-body model that is
populated by loading model descriptions and welding their frames, and
then finalized exactly once. Finalization freezes the topology and
assigns the layout of the generalized coordinates, after which the
model is used to create and query :class:`WorldState` containers.
"""

from __future__ import annotations

import weakref
from dataclasses import dataclass

import numpy as np
import warp as wp

from ..core.gravity import GravityDescriptor
from ..core.inertia import SpatialInertia
from ..core.math import transform_from_numpy
from ..utils import logger as msg
from .description import JointType, ModelDescription
from .joints import Joint, PrismaticJoint, RevoluteJoint, make_joint
from .kinematics import KinematicTree, compute_body_poses
from .state import WorldState

###
# Module interface
###

__all__ = [
    "WORLD_BODY_INDEX",
    "WORLD_BODY_NAME",
    "WORLD_INSTANCE_INDEX",
    "FrameHandle",
    "WorldModel",
]


###
# Constants
###

WORLD_BODY_NAME = "world"
"""The name of the world body and of its body frame."""

WORLD_BODY_INDEX = 0
"""The index of the world body."""

WORLD_INSTANCE_INDEX = 0
"""The index of the model instance that owns the world body."""


###
# Types
###


class FrameHandle:
    """
    A non-owning handle to a named frame of a :class:`WorldModel`.

    Handles only keep a weak reference to the world that issued them,
    and raise once that world no longer exists.
    """

    def __init__(self, world: WorldModel, name: str, body: int, instance: int, X_BF: wp.transform):
        self._world_ref = weakref.ref(world)
        self._name: str = name
        self._body: int = body
        self._instance: int = instance
        self._X_BF: wp.transform = X_BF

    def __repr__(self):
        return f"FrameHandle(name={self._name}, body={self._body}, instance={self._instance})"

    @property
    def world(self) -> WorldModel:
        """The world model that owns the frame."""
        world = self._world_ref()
        if world is None:
            raise RuntimeError(f"The world model owning frame '{self._name}' no longer exists.")
        return world

    @property
    def name(self) -> str:
        return self._name

    @property
    def body(self) -> int:
        """The index of the body to which the frame is attached."""
        return self._body

    @property
    def instance(self) -> int:
        """The index of the model instance that owns the frame."""
        return self._instance

    @property
    def X_BF(self) -> wp.transform:
        """The pose of the frame in its body frame."""
        return self._X_BF

    @property
    def is_world_frame(self) -> bool:
        return self._body == WORLD_BODY_INDEX

    def belongs_to(self, world: WorldModel) -> bool:
        return self._world_ref() is world


@dataclass
class _Body:
    name: str
    instance: int
    inertia: SpatialInertia


###
# Interfaces
###


class WorldModel:
    """
    A multi-body model of the world.

    Body zero is the world body, owned by model instance zero.
    Every other body must be connected to the tree through
    exactly one inbound joint by the time of finalization.
    All joints with degrees of freedom are actuated.
    """

    def __init__(
        self,
        time_step: float = 0.0,
        gravity: GravityDescriptor | None = None,
        device: wp.context.Devicelike = None,
    ):
        """
        Initialize the world model.

        Args:
            time_step (float): The discrete update period of the world, non-negative.
            gravity (GravityDescriptor | None): The gravity of the world, defaults to Earth's.
            device (Devicelike): The device on which the kinematics are evaluated.
        """
        if time_step < 0.0:
            raise ValueError(f"Time step must be non-negative, but got {time_step}.")
        self._time_step: float = float(time_step)
        self._gravity: GravityDescriptor = gravity if gravity is not None else GravityDescriptor()
        self._device = device
        self._finalized: bool = False

        # Model instances
        self._instance_names: list[str] = [WORLD_BODY_NAME]
        self._instance_descriptions: list[ModelDescription | None] = [None]

        # Multi-body elements
        self._bodies: list[_Body] = []
        self._joints: list[Joint] = []
        self._frames: list[FrameHandle] = []

        # Finalization products
        self._topological_joints: list[Joint] = []
        self._num_positions: int = 0
        self._tree: KinematicTree | None = None

        # Create the world body
        self._add_body(WORLD_BODY_NAME, SpatialInertia.zero(), WORLD_INSTANCE_INDEX)

    ###
    # Properties
    ###

    @property
    def time_step(self) -> float:
        return self._time_step

    @property
    def gravity(self) -> GravityDescriptor:
        return self._gravity

    @property
    def device(self) -> wp.context.Devicelike:
        return self._device

    @property
    def is_finalized(self) -> bool:
        return self._finalized

    @property
    def num_model_instances(self) -> int:
        return len(self._instance_names)

    @property
    def num_bodies(self) -> int:
        return len(self._bodies)

    @property
    def num_joints(self) -> int:
        return len(self._joints)

    @property
    def world_frame(self) -> FrameHandle:
        """The body frame of the world body."""
        return self._frames[0]

    @property
    def joints(self) -> tuple[Joint, ...]:
        return tuple(self._joints)

    @property
    def topological_joints(self) -> tuple[Joint, ...]:
        """The joints sorted so that every parent body precedes its children, available after finalization."""
        self._assert_finalized()
        return tuple(self._topological_joints)

    @property
    def kinematic_tree(self) -> KinematicTree:
        self._assert_finalized()
        return self._tree

    ###
    # Sequencing
    ###

    def _assert_finalized(self):
        if not self._finalized:
            raise RuntimeError("The world model must be finalized first.")

    def _assert_not_finalized(self):
        if self._finalized:
            raise RuntimeError("The world model is finalized and can no longer be modified.")

    def _assert_valid_instance(self, instance: int):
        if not (0 <= instance < len(self._instance_names)):
            raise ValueError(f"Invalid model instance index: {instance}.")

    def _assert_valid_body(self, body: int):
        if not (0 <= body < len(self._bodies)):
            raise ValueError(f"Invalid body index: {body}.")

    ###
    # Construction
    ###

    def _add_body(self, name: str, inertia: SpatialInertia, instance: int) -> int:
        body = len(self._bodies)
        self._bodies.append(_Body(name=name, instance=instance, inertia=inertia))
        self._frames.append(FrameHandle(self, name, body, instance, wp.transform_identity()))
        return body

    def add_model_instance(self, name: str, description: ModelDescription | None = None) -> int:
        """Adds a new, empty, model instance and returns its index."""
        self._assert_not_finalized()
        if self.has_model_instance_named(name):
            raise ValueError(f"A model instance named '{name}' already exists.")
        self._instance_names.append(name)
        self._instance_descriptions.append(description)
        return len(self._instance_names) - 1

    def add_rigid_body(self, name: str, inertia: SpatialInertia, instance: int) -> int:
        """Adds a rigid body to a model instance and returns its index."""
        self._assert_not_finalized()
        self._assert_valid_instance(instance)
        if self._find_frame(name, instance) is not None:
            raise ValueError(f"Model instance {instance} already has a frame named '{name}'.")
        return self._add_body(name, inertia, instance)

    def add_frame(
        self, name: str, body: int, X_BF: wp.transform | None = None, instance: int | None = None
    ) -> FrameHandle:
        """Adds a named frame attached to a body, owned by the body's instance unless specified."""
        self._assert_not_finalized()
        self._assert_valid_body(body)
        instance = self._bodies[body].instance if instance is None else instance
        self._assert_valid_instance(instance)
        if self._find_frame(name, instance) is not None:
            raise ValueError(f"Model instance {instance} already has a frame named '{name}'.")
        frame = FrameHandle(self, name, body, instance, wp.transform_identity() if X_BF is None else X_BF)
        self._frames.append(frame)
        return frame

    def add_joint(
        self,
        name: str,
        joint_type: JointType,
        parent_body: int,
        child_body: int,
        X_PJ: wp.transform | None = None,
        X_CJ: wp.transform | None = None,
        axis: tuple[float, float, float] = (1.0, 0.0, 0.0),
        instance: int | None = None,
    ) -> Joint:
        """
        Adds a joint between two bodies, owned by the child's instance unless specified.

        Raises:
            ValueError: If the bodies are invalid or the child already has an inbound joint.
        """
        self._assert_not_finalized()
        self._assert_valid_body(parent_body)
        self._assert_valid_body(child_body)
        if child_body == WORLD_BODY_INDEX:
            raise ValueError("The world body cannot be the child of a joint.")
        if parent_body == child_body:
            raise ValueError(f"Joint '{name}' cannot connect body {parent_body} to itself.")
        if any(j.child_body == child_body for j in self._joints):
            raise ValueError(f"Body '{self._bodies[child_body].name}' already has an inbound joint.")
        instance = self._bodies[child_body].instance if instance is None else instance
        self._assert_valid_instance(instance)
        if any(j.name == name and j.instance == instance for j in self._joints):
            raise ValueError(f"Model instance {instance} already has a joint named '{name}'.")
        joint = make_joint(
            joint_type,
            name=name,
            index=len(self._joints),
            instance=instance,
            parent_body=parent_body,
            child_body=child_body,
            X_PJ=wp.transform_identity() if X_PJ is None else X_PJ,
            X_CJ=wp.transform_identity() if X_CJ is None else X_CJ,
            axis=tuple(axis),
        )
        self._joints.append(joint)
        return joint

    def add_model(self, description: ModelDescription, name: str | None = None) -> int:
        """
        Loads a model description as a new model instance.

        Args:
            description (ModelDescription): The description to load.
            name (str | None): The name of the new instance, defaults to the description name.

        Returns:
            int: The index of the new model instance.
        """
        self._assert_not_finalized()
        if not isinstance(description, ModelDescription):
            raise TypeError(f"Expected a `ModelDescription`, but got {type(description)}.")
        name = description.name if name is None else name
        instance = self.add_model_instance(name, description)

        # Bodies and their frames
        bodies: dict[str, int] = {}
        for body in description.bodies:
            bodies[body.name] = self.add_rigid_body(body.name, body.inertia, instance)
        # Extra frames
        for frame in description.frames:
            self.add_frame(frame.name, bodies[frame.body], frame.X_BF, instance)
        # Joints
        for joint in description.joints:
            self.add_joint(
                joint.name,
                joint.joint_type,
                bodies[joint.parent],
                bodies[joint.child],
                joint.X_PJ,
                joint.X_CJ,
                joint.axis,
                instance,
            )
        msg.debug(f"Loaded model '{description.name}' as instance {instance} named '{name}'.")
        return instance

    def weld_frames(self, parent: FrameHandle, child: FrameHandle, X_PC: wp.transform | None = None) -> Joint:
        """
        Rigidly attaches the body of the child frame to the body of the parent frame.

        Args:
            parent (FrameHandle): The parent frame P.
            child (FrameHandle): The child frame C.
            X_PC (wp.transform | None): The pose of C in P, defaults to the identity.

        Returns:
            Joint: The weld joint, owned by the instance of the child frame.
        """
        self._assert_not_finalized()
        for frame in (parent, child):
            if not isinstance(frame, FrameHandle):
                raise TypeError(f"Expected a `FrameHandle`, but got {type(frame)}.")
            if not frame.belongs_to(self):
                raise ValueError(f"Frame '{frame.name}' does not belong to this world model.")
        X_PC = wp.transform_identity() if X_PC is None else X_PC
        return self.add_joint(
            f"{parent.name}_welds_to_{child.name}",
            JointType.FIXED,
            parent.body,
            child.body,
            X_PJ=wp.transform_multiply(parent.X_BF, X_PC),
            X_CJ=child.X_BF,
            instance=child.instance,
        )

    def finalize(self):
        """
        Freezes the topology of the world and assigns the layout of the generalized coordinates.

        Raises:
            RuntimeError: If the world model is already finalized.
            ValueError: If a body is not connected to the world through a chain of joints.
        """
        self._assert_not_finalized()

        # Index the inbound joint of every body
        inbound: dict[int, Joint] = {j.child_body: j for j in self._joints}
        for b, body in enumerate(self._bodies[1:], start=1):
            if b not in inbound:
                raise ValueError(
                    f"Body '{body.name}' of model instance '{self._instance_names[body.instance]}' "
                    "has no inbound joint and must be welded to another body."
                )

        # Sort the joints breadth-first from the world body
        children: dict[int, list[Joint]] = {}
        for joint in self._joints:
            children.setdefault(joint.parent_body, []).append(joint)
        order: list[Joint] = []
        frontier = [WORLD_BODY_INDEX]
        while frontier:
            body = frontier.pop(0)
            for joint in children.get(body, []):
                order.append(joint)
                frontier.append(joint.child_body)
        if len(order) != len(self._joints):
            disconnected = sorted({j.name for j in self._joints} - {j.name for j in order})
            raise ValueError(f"Joints {disconnected} form a loop that is not connected to the world.")

        # Assign the coordinates grouped by instance, in topological order within each instance
        q_start = 0
        for instance in range(len(self._instance_names)):
            for joint in order:
                if joint.instance == instance and joint.num_dofs > 0:
                    joint.q_start = q_start
                    q_start += joint.num_dofs
        self._num_positions = q_start
        self._topological_joints = order
        self._tree = KinematicTree.from_joints(len(self._bodies), order, device=self._device)
        self._finalized = True
        msg.info(
            f"Finalized world model with {self.num_model_instances} instances, "
            f"{self.num_bodies} bodies, {self.num_joints} joints and {self._num_positions} positions."
        )

    ###
    # Instance queries
    ###

    def has_model_instance_named(self, name: str) -> bool:
        return name in self._instance_names

    def get_model_instance_by_name(self, name: str) -> int:
        if name not in self._instance_names:
            raise ValueError(f"No model instance named '{name}'.")
        return self._instance_names.index(name)

    def get_model_instance_name(self, instance: int) -> str:
        self._assert_valid_instance(instance)
        return self._instance_names[instance]

    def get_model_instance_description(self, instance: int) -> ModelDescription | None:
        """Returns the description from which an instance was loaded, if any."""
        self._assert_valid_instance(instance)
        return self._instance_descriptions[instance]

    def get_bodies(self, instance: int) -> list[int]:
        self._assert_valid_instance(instance)
        return [b for b, body in enumerate(self._bodies) if body.instance == instance]

    def get_joints(self, instance: int) -> list[Joint]:
        """Returns the joints of an instance, in coordinate order once finalized."""
        self._assert_valid_instance(instance)
        joints = [j for j in self._joints if j.instance == instance]
        if self._finalized:
            joints = [j for j in self._topological_joints if j.instance == instance]
        return joints

    ###
    # Element queries
    ###

    def get_body_index(self, name: str, instance: int | None = None) -> int:
        matches = [b for b, body in enumerate(self._bodies) if body.name == name and instance in (None, body.instance)]
        if len(matches) == 0:
            raise ValueError(f"No body named '{name}' in model instance {instance}.")
        if len(matches) > 1:
            raise ValueError(f"Body name '{name}' is ambiguous, the model instance must be specified.")
        return matches[0]

    def get_body_name(self, body: int) -> str:
        self._assert_valid_body(body)
        return self._bodies[body].name

    def get_body_instance(self, body: int) -> int:
        self._assert_valid_body(body)
        return self._bodies[body].instance

    def get_body_inertia(self, body: int) -> SpatialInertia:
        """Returns the inertia of a body about its origin, expressed in its body frame."""
        self._assert_valid_body(body)
        return self._bodies[body].inertia

    def _find_frame(self, name: str, instance: int) -> FrameHandle | None:
        for frame in self._frames:
            if frame.name == name and frame.instance == instance:
                return frame
        return None

    def has_frame(self, name: str, instance: int) -> bool:
        return self._find_frame(name, instance) is not None

    def get_frame(self, name: str, instance: int | None = None) -> FrameHandle:
        """
        Returns a handle to the named frame.

        Raises:
            ValueError: If no frame matches, or if the name is ambiguous without an instance.
        """
        matches = [f for f in self._frames if f.name == name and instance in (None, f.instance)]
        if len(matches) == 0:
            raise ValueError(f"No frame named '{name}' in model instance {instance}.")
        if len(matches) > 1:
            raise ValueError(f"Frame name '{name}' is ambiguous, the model instance must be specified.")
        return matches[0]

    def get_joint(self, name: str, instance: int | None = None) -> Joint:
        matches = [j for j in self._joints if j.name == name and instance in (None, j.instance)]
        if len(matches) == 0:
            raise ValueError(f"No joint named '{name}' in model instance {instance}.")
        if len(matches) > 1:
            raise ValueError(f"Joint name '{name}' is ambiguous, the model instance must be specified.")
        return matches[0]

    def get_revolute_joint(self, name: str, instance: int | None = None) -> RevoluteJoint:
        """Returns the named joint, checking that it is revolute."""
        joint = self.get_joint(name, instance)
        if not isinstance(joint, RevoluteJoint):
            raise TypeError(f"Joint '{name}' is of type {joint.joint_type}, not revolute.")
        return joint

    def get_prismatic_joint(self, name: str, instance: int | None = None) -> PrismaticJoint:
        """Returns the named joint, checking that it is prismatic."""
        joint = self.get_joint(name, instance)
        if not isinstance(joint, PrismaticJoint):
            raise TypeError(f"Joint '{name}' is of type {joint.joint_type}, not prismatic.")
        return joint

    ###
    # Coordinate layout
    ###

    def num_positions(self, instance: int | None = None) -> int:
        self._assert_finalized()
        if instance is None:
            return self._num_positions
        return len(self.get_dof_indices(instance))

    def num_velocities(self, instance: int | None = None) -> int:
        return self.num_positions(instance)

    def get_dof_indices(self, instance: int) -> list[int]:
        """Returns the indices of the coordinates of an instance within the world state vectors."""
        self._assert_finalized()
        indices: list[int] = []
        for joint in self.get_joints(instance):
            indices.extend(joint.dof_indices)
        return indices

    ###
    # States
    ###

    def create_default_state(self) -> WorldState:
        """Creates a state with all coordinates and velocities at zero."""
        self._assert_finalized()
        n = self._num_positions
        return WorldState(q=np.zeros(n), v=np.zeros(n), time=0.0, generalized_contact_forces=np.zeros(n))

    def _check_state(self, state: WorldState):
        if state.q.shape != (self._num_positions,) or state.v.shape != (self._num_positions,):
            raise ValueError(f"State does not match the world model with {self._num_positions} positions.")

    def get_positions(self, state: WorldState, instance: int | None = None) -> np.ndarray:
        self._assert_finalized()
        self._check_state(state)
        if instance is None:
            return state.q.copy()
        return state.q[self.get_dof_indices(instance)]

    def set_positions(self, state: WorldState, q: np.ndarray, instance: int | None = None):
        self._assert_finalized()
        self._check_state(state)
        indices = list(range(self._num_positions)) if instance is None else self.get_dof_indices(instance)
        q = np.asarray(q, dtype=np.float64).reshape(-1)
        if q.size != len(indices):
            raise ValueError(f"Expected {len(indices)} positions, but got {q.size}.")
        state.q[indices] = q

    def get_velocities(self, state: WorldState, instance: int | None = None) -> np.ndarray:
        self._assert_finalized()
        self._check_state(state)
        if instance is None:
            return state.v.copy()
        return state.v[self.get_dof_indices(instance)]

    def set_velocities(self, state: WorldState, v: np.ndarray, instance: int | None = None):
        self._assert_finalized()
        self._check_state(state)
        indices = list(range(self._num_positions)) if instance is None else self.get_dof_indices(instance)
        v = np.asarray(v, dtype=np.float64).reshape(-1)
        if v.size != len(indices):
            raise ValueError(f"Expected {len(indices)} velocities, but got {v.size}.")
        state.v[indices] = v

    def get_instance_state(self, state: WorldState, instance: int) -> np.ndarray:
        """Returns the stacked ``[q; v]`` of a model instance."""
        return np.concatenate([self.get_positions(state, instance), self.get_velocities(state, instance)])

    def get_continuous_state(self, state: WorldState) -> np.ndarray:
        """Returns the stacked ``[q; v]`` of the whole world."""
        return np.concatenate([self.get_positions(state), self.get_velocities(state)])

    def get_generalized_contact_forces(self, state: WorldState, instance: int) -> np.ndarray:
        self._assert_finalized()
        return state.generalized_contact_forces[self.get_dof_indices(instance)]

    ###
    # Kinematics
    ###

    def calc_body_poses(self, state: WorldState) -> wp.array:
        """Returns the world pose of every body as an array of type :class:`transform`."""
        self._assert_finalized()
        self._check_state(state)
        return compute_body_poses(self._tree, state.q)

    def calc_body_pose_in_world(self, state: WorldState, body: int) -> wp.transform:
        self._assert_valid_body(body)
        return transform_from_numpy(self.calc_body_poses(state).numpy()[body])

    def calc_frame_pose_in_world(self, state: WorldState, frame: FrameHandle) -> wp.transform:
        return wp.transform_multiply(self.calc_body_pose_in_world(state, frame.body), frame.X_BF)

    def calc_fixed_pose_in_world(self, frame: FrameHandle) -> wp.transform | None:
        """
        Returns the world pose of a frame whose body is connected to the world only through welds.

        Returns ``None`` when a joint with degrees of freedom lies between the frame and the world.
        """
        inbound: dict[int, Joint] = {j.child_body: j for j in self._joints}
        X_WF = frame.X_BF
        body = frame.body
        while body != WORLD_BODY_INDEX:
            joint = inbound.get(body)
            if joint is None or joint.joint_type != JointType.FIXED:
                return None
            X_WF = wp.transform_multiply(joint.calc_relative_transform(), X_WF)
            body = joint.parent_body
        return X_WF
