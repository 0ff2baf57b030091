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
WORKCELL: Station: Workcell

Provides the :class:`Workcell` facade, which owns the world model, the
model registry and the network assembler of a station, and exposes the
registration, build and run-time query operations of the station.
"""

from __future__ import annotations

import numpy as np
import warp as wp

from ..core.types import FloatArrayLike
from ..models import station as models
from ..sim.description import ModelDescription
from ..sim.joints import PrismaticJoint, RevoluteJoint
from ..sim.state import WorldState
from ..sim.world import FrameHandle, WorldModel
from ..systems.framework import Network, NetworkContext
from ..systems.sensors import CameraProperties, NullRenderer, Renderer
from ..utils import logger as msg
from .assembler import END_EFFECTOR_CONTROLLER_BLOCK, MANIPULATOR_INTERPOLATOR_BLOCK, WORLD_BLOCK, NetworkAssembler
from .config import WorkcellConfig
from .registry import (
    AttachmentDescriptor,
    EndEffectorGains,
    ManipulatorGains,
    ModelRegistry,
    RegistryState,
    SensorDescriptor,
)

###
# Module interface
###

__all__ = [
    "Workcell",
]


###
# Interfaces
###


class Workcell:
    """
    A robotic workcell assembled from a manipulator, an end effector and cameras.

    A station goes through two phases. During registration, sub-assemblies
    are loaded into the world model, welded in place and registered in their
    role, while gains and cameras may be freely changed. :meth:`finalize`
    then builds the control model and the signal-flow network exactly once,
    after which the topology is frozen and only run-time data held in a
    :class:`NetworkContext` can change.

    Example:
        >>> station = Workcell()
        >>> station.setup_default_station()
        >>> network = station.finalize()
        >>> context = station.create_context()
        >>> network.fix_input(context, "manipulator_position", np.zeros(7))
        >>> network.fix_input(context, "end_effector_position", [0.1])
        >>> tau = network.eval_output(context, "manipulator_torque_commanded")
    """

    def __init__(self, config: WorkcellConfig | None = None, renderer: Renderer | None = None):
        """
        Initialize the station.

        Args:
            config (WorkcellConfig | None): The configurations of the station, defaults to `WorkcellConfig()`.
            renderer (Renderer | None): The renderer shared by all cameras, defaults to a `NullRenderer`.
        """
        if config is None:
            config = WorkcellConfig()
        if not isinstance(config, WorkcellConfig):
            raise TypeError(f"Invalid config: expected a `WorkcellConfig`, but got {type(config)}.")
        self._config: WorkcellConfig = config
        self._world = WorldModel(time_step=config.time_step, gravity=config.gravity, device=config.device)
        self._registry = ModelRegistry(self._world)
        self._assembler = NetworkAssembler(
            self._registry, self._world, NullRenderer() if renderer is None else renderer, config
        )

    ###
    # Properties
    ###

    @property
    def config(self) -> WorkcellConfig:
        return self._config

    @property
    def world(self) -> WorldModel:
        return self._world

    @property
    def registry(self) -> ModelRegistry:
        return self._registry

    @property
    def is_finalized(self) -> bool:
        return self._assembler.is_built

    @property
    def network(self) -> Network:
        """The network of the station, only available after :meth:`finalize`."""
        return self._assembler.network

    @property
    def control_model(self) -> WorldModel:
        """The reduced model of the manipulator controller, only available after :meth:`finalize`."""
        return self._assembler.control_model

    ###
    # Registration
    ###

    def _assert_not_finalized(self, operation: str):
        if self.is_finalized or self._registry.is_finalized:
            raise RuntimeError(f"Cannot {operation} after the station has been finalized.")

    def add_and_weld_model(
        self,
        description: ModelDescription,
        model_name: str,
        parent_frame: FrameHandle,
        child_frame_name: str,
        X_PC: wp.transform | None = None,
    ) -> int:
        """
        Loads a description as a new model instance and welds one of its frames to an existing frame.

        Args:
            description (ModelDescription): The description to load.
            model_name (str): The name of the new model instance.
            parent_frame (FrameHandle): The frame P on the existing structure.
            child_frame_name (str): The name of the frame C of the new instance.
            X_PC (wp.transform | None): The pose of C in P, defaults to the identity.

        Returns:
            int: The index of the new model instance.
        """
        self._assert_not_finalized("add a model")
        if not isinstance(description, ModelDescription):
            raise TypeError(f"Expected a `ModelDescription`, but got {type(description)}.")
        if not isinstance(parent_frame, FrameHandle):
            raise TypeError(f"Expected a `FrameHandle` as parent frame, but got {type(parent_frame)}.")
        if not parent_frame.belongs_to(self._world):
            raise ValueError(f"Parent frame '{parent_frame.name}' does not belong to the world model of the station.")
        if not (description.has_body(child_frame_name) or description.has_frame(child_frame_name)):
            raise ValueError(f"Model '{description.name}' has no frame named '{child_frame_name}'.")
        instance = self._world.add_model(description, model_name)
        self._world.weld_frames(parent_frame, self._world.get_frame(child_frame_name, instance), X_PC)
        return instance

    def add_manipulator(
        self,
        description: ModelDescription,
        model_name: str,
        child_frame_name: str,
        X_WC: wp.transform | None = None,
        gains: ManipulatorGains | None = None,
    ) -> int:
        """
        Loads the manipulator, anchors it to the world frame and registers it.

        When no gains are given, every joint uses the configured ``kp`` and ``ki``
        with the critically-damped ``kd = 2 * sqrt(kp)``.
        """
        if self._registry.state != RegistryState.EMPTY:
            raise RuntimeError(f"Cannot add a manipulator in registry state {self._registry.state}.")
        X_WC = wp.transform_identity() if X_WC is None else X_WC
        if gains is None:
            gains = ManipulatorGains.from_defaults(
                description.num_dofs, kp=self._config.manipulator_kp, ki=self._config.manipulator_ki
            )
        elif isinstance(gains, ManipulatorGains) and gains.num_dofs != description.num_dofs:
            raise ValueError(
                f"Manipulator gains must have length {description.num_dofs}, but have length {gains.num_dofs}."
            )
        instance = self.add_and_weld_model(description, model_name, self._world.world_frame, child_frame_name, X_WC)
        descriptor = AttachmentDescriptor(
            model_instance=instance,
            description=description,
            parent_frame=self._world.world_frame,
            child_frame=self._world.get_frame(child_frame_name, instance),
            X_PC=X_WC,
        )
        self._registry.register_manipulator(descriptor, gains)
        return instance

    def add_end_effector(
        self,
        description: ModelDescription,
        model_name: str,
        parent_frame_name: str,
        child_frame_name: str,
        X_PC: wp.transform | None = None,
        gains: EndEffectorGains | None = None,
    ) -> int:
        """Loads the end effector, welds it to a frame of the manipulator and registers it."""
        if self._registry.state != RegistryState.MANIPULATOR_REGISTERED:
            raise RuntimeError(f"Cannot add an end effector in registry state {self._registry.state}.")
        X_PC = wp.transform_identity() if X_PC is None else X_PC
        if gains is None:
            gains = EndEffectorGains(kp=self._config.end_effector_kp, kd=self._config.end_effector_kd)
        parent_frame = self._world.get_frame(parent_frame_name, self._registry.manipulator.model_instance)
        instance = self.add_and_weld_model(description, model_name, parent_frame, child_frame_name, X_PC)
        descriptor = AttachmentDescriptor(
            model_instance=instance,
            description=description,
            parent_frame=parent_frame,
            child_frame=self._world.get_frame(child_frame_name, instance),
            X_PC=X_PC,
        )
        self._registry.register_end_effector(descriptor, gains)
        return instance

    def register_camera(
        self,
        name: str,
        parent_frame: FrameHandle | None = None,
        X_PC: wp.transform | None = None,
        properties: CameraProperties | None = None,
    ):
        """Registers an RGB-D camera attached to a frame, the world frame by default."""
        self._assert_not_finalized("register a camera")
        descriptor = SensorDescriptor(
            parent_frame=self._world.world_frame if parent_frame is None else parent_frame,
            X_PC=wp.transform_identity() if X_PC is None else X_PC,
            properties=CameraProperties() if properties is None else properties,
        )
        self._registry.register_sensor(name, descriptor)

    def set_manipulator_gains(self, gains: ManipulatorGains):
        self._registry.set_manipulator_gains(gains)

    def set_manipulator_position_gains(self, kp: FloatArrayLike):
        self._registry.set_manipulator_position_gains(kp)

    def set_manipulator_integral_gains(self, ki: FloatArrayLike):
        self._registry.set_manipulator_integral_gains(ki)

    def set_manipulator_velocity_gains(self, kd: FloatArrayLike):
        self._registry.set_manipulator_velocity_gains(kd)

    def set_end_effector_gains(self, kp: float, kd: float):
        self._registry.set_end_effector_gains(EndEffectorGains(kp=kp, kd=kd))

    def setup_default_station(self, with_cupboard: bool = False):
        """
        Populates the station with the default arm, gripper, table and cameras.

        Args:
            with_cupboard (bool): Whether to also add a cupboard in front of the arm.
        """
        self._assert_not_finalized("set up the default station")
        world_frame = self._world.world_frame
        self.add_and_weld_model(models.build_table(), "amazon_table", world_frame, "table_link", models.X_WTable)
        if with_cupboard:
            self.add_and_weld_model(
                models.build_cupboard(), "cupboard", world_frame, "cupboard_body", models.X_WCupboard
            )
        self.add_manipulator(models.build_arm(), "iiwa", models.ARM_BASE_LINK_NAME)
        self.add_end_effector(
            models.build_gripper(), "gripper", models.ARM_END_LINK_NAME, models.GRIPPER_BODY_NAME, models.X_7G
        )
        properties = models.make_default_camera_properties()
        for name, X_WC in models.make_default_camera_poses().items():
            self.register_camera(name, world_frame, X_WC, properties)
        msg.info("Set up the default station.")

    ###
    # Build
    ###

    def finalize(self) -> Network:
        """
        Freezes the registry and builds the control model and the network of the station.

        Raises:
            RuntimeError: If the station is already finalized or misses its manipulator or end effector.
        """
        if self.is_finalized:
            raise RuntimeError("The station has already been finalized.")
        if not self._registry.is_finalized:
            self._registry.finalize()
        return self._assembler.build()

    def create_context(self) -> NetworkContext:
        return self.network.create_context()

    ###
    # Kinematics
    ###

    def _assert_built(self, operation: str):
        if not self.is_finalized:
            raise RuntimeError(f"Cannot {operation} before the station has been finalized.")

    def _get_world_state(self, context: NetworkContext) -> WorldState:
        return self.network.get_block_state(context, WORLD_BLOCK)

    def _get_manipulator_joints(self) -> list[RevoluteJoint]:
        instance = self._registry.manipulator.model_instance
        return [
            self._world.get_revolute_joint(joint.name, instance)
            for joint in self._world.get_joints(instance)
            if joint.num_dofs > 0
        ]

    def _get_finger_joints(self) -> tuple[PrismaticJoint, PrismaticJoint]:
        instance = self._registry.end_effector.model_instance
        left_name, right_name = self._config.end_effector_finger_joints
        left = self._world.get_prismatic_joint(left_name, instance)
        right = self._world.get_prismatic_joint(right_name, instance)
        return left, right

    def get_manipulator_positions(self, context: NetworkContext) -> np.ndarray:
        self._assert_built("get the manipulator positions")
        state = self._get_world_state(context)
        return np.array([joint.get_angle(state) for joint in self._get_manipulator_joints()])

    def set_manipulator_positions(self, context: NetworkContext, q: FloatArrayLike):
        """Sets the manipulator joint angles and re-initializes the commanded position history."""
        self._assert_built("set the manipulator positions")
        joints = self._get_manipulator_joints()
        q = np.asarray(q, dtype=np.float64).reshape(-1)
        if q.size != len(joints):
            raise ValueError(f"Expected {len(joints)} manipulator positions, but got {q.size}.")
        state = self._get_world_state(context)
        for joint, angle in zip(joints, q):
            joint.set_angle(state, float(angle))
        self.network.get_block(MANIPULATOR_INTERPOLATOR_BLOCK).set_initial_position(context, q)

    def get_manipulator_velocities(self, context: NetworkContext) -> np.ndarray:
        self._assert_built("get the manipulator velocities")
        state = self._get_world_state(context)
        return np.array([joint.get_angular_rate(state) for joint in self._get_manipulator_joints()])

    def set_manipulator_velocities(self, context: NetworkContext, v: FloatArrayLike):
        self._assert_built("set the manipulator velocities")
        joints = self._get_manipulator_joints()
        v = np.asarray(v, dtype=np.float64).reshape(-1)
        if v.size != len(joints):
            raise ValueError(f"Expected {len(joints)} manipulator velocities, but got {v.size}.")
        state = self._get_world_state(context)
        for joint, rate in zip(joints, v):
            joint.set_angular_rate(state, float(rate))

    def get_end_effector_position(self, context: NetworkContext) -> float:
        """Returns the separation of the fingers."""
        self._assert_built("get the end-effector position")
        state = self._get_world_state(context)
        left, right = self._get_finger_joints()
        return right.get_translation(state) - left.get_translation(state)

    def set_end_effector_position(self, context: NetworkContext, width: float):
        """Opens the fingers symmetrically to the given separation and re-initializes the commanded width history."""
        self._assert_built("set the end-effector position")
        state = self._get_world_state(context)
        left, right = self._get_finger_joints()
        left.set_translation(state, -0.5 * float(width))
        right.set_translation(state, 0.5 * float(width))
        self.network.get_block(END_EFFECTOR_CONTROLLER_BLOCK).set_initial_position(context, width)

    def get_end_effector_velocity(self, context: NetworkContext) -> float:
        self._assert_built("get the end-effector velocity")
        state = self._get_world_state(context)
        left, right = self._get_finger_joints()
        return right.get_translation_rate(state) - left.get_translation_rate(state)

    def set_end_effector_velocity(self, context: NetworkContext, rate: float):
        self._assert_built("set the end-effector velocity")
        state = self._get_world_state(context)
        left, right = self._get_finger_joints()
        left.set_translation_rate(state, -0.5 * float(rate))
        right.set_translation_rate(state, 0.5 * float(rate))

    ###
    # Cameras
    ###

    def get_camera_names(self) -> list[str]:
        return self._registry.sensor_names

    def get_static_camera_poses_in_world(self) -> dict[str, wp.transform]:
        """
        Returns the world poses of the cameras rigidly connected to the world, keyed by name.

        Cameras attached to a frame that moves with a joint are omitted.
        """
        poses = {}
        for name, sensor in self._registry.sensors.items():
            X_WP = self._world.calc_fixed_pose_in_world(sensor.parent_frame)
            if X_WP is None:
                continue
            poses[name] = wp.transform_multiply(X_WP, sensor.X_PC)
        return poses
