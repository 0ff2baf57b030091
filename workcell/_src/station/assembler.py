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
WORKCELL: Station: Network Assembler

Turns a finalized :class:`ModelRegistry` and its populated world model
into the immutable signal-flow network of the station, exactly once.
The exported port names form the fixed interface of the station.
"""

from __future__ import annotations

from enum import IntEnum

import numpy as np
import warp as wp

from ..core.types import override
from ..sim.world import WorldModel
from ..systems.controllers import InverseDynamicsController
from ..systems.end_effector import EndEffectorPositionController, EndEffectorStateConverter
from ..systems.framework import Network, NetworkBuilder
from ..systems.primitives import Adder, Demultiplexer, PassThrough, StateInterpolatorWithDiscreteDerivative
from ..systems.sensors import Renderer, RgbdCamera
from ..systems.world_block import WorldModelBlock
from ..utils import logger as msg
from .config import WorkcellConfig
from .control_model import build_control_model
from .registry import ModelRegistry

###
# Module interface
###

__all__ = [
    "END_EFFECTOR_CONTROLLER_BLOCK",
    "INPUT_PORT_NAMES",
    "MANIPULATOR_INTERPOLATOR_BLOCK",
    "OUTPUT_PORT_NAMES",
    "WORLD_BLOCK",
    "AssemblerState",
    "NetworkAssembler",
    "camera_output_port_names",
]


###
# Constants
###

WORLD_BLOCK = "world"
MANIPULATOR_INTERPOLATOR_BLOCK = "manipulator_desired_state_from_position"
MANIPULATOR_CONTROLLER_BLOCK = "manipulator_controller"
END_EFFECTOR_CONTROLLER_BLOCK = "end_effector_controller"

INPUT_PORT_NAMES = (
    "manipulator_position",
    "manipulator_feedforward_torque",
    "end_effector_position",
    "end_effector_force_limit",
)
"""The input ports exported by every station network."""

OUTPUT_PORT_NAMES = (
    "manipulator_position_commanded",
    "manipulator_position_measured",
    "manipulator_velocity_estimated",
    "manipulator_state_estimated",
    "manipulator_torque_commanded",
    "manipulator_torque_measured",
    "manipulator_torque_external",
    "end_effector_state_measured",
    "end_effector_force_measured",
    "pose_bundle",
    "plant_continuous_state",
    "geometry_poses",
    "contact_results",
)
"""The output ports exported by every station network, in addition to the camera ports."""


def camera_output_port_names(name: str) -> tuple[str, str, str]:
    """Returns the names of the color, depth and label output ports of a camera."""
    return f"camera_{name}_rgb_image", f"camera_{name}_depth_image", f"camera_{name}_label_image"


###
# Types
###


class AssemblerState(IntEnum):
    """The build phases of a :class:`NetworkAssembler`."""

    UNBUILT = 0
    BUILT = 1

    @override
    def __str__(self):
        return f"AssemblerState.{self.name}"

    @override
    def __repr__(self):
        return self.__str__()


###
# Interfaces
###


class NetworkAssembler:
    """Builds the signal-flow network of a station from its registry and world model."""

    def __init__(self, registry: ModelRegistry, world: WorldModel, renderer: Renderer, config: WorkcellConfig):
        self._registry = registry
        self._world = world
        self._renderer = renderer
        self._config = config
        self._state: AssemblerState = AssemblerState.UNBUILT
        self._network: Network | None = None
        self._control_model: WorldModel | None = None

    ###
    # Properties
    ###

    @property
    def state(self) -> AssemblerState:
        return self._state

    @property
    def is_built(self) -> bool:
        return self._state == AssemblerState.BUILT

    @property
    def network(self) -> Network:
        if self._network is None:
            raise RuntimeError("The network has not been built yet.")
        return self._network

    @property
    def control_model(self) -> WorldModel:
        if self._control_model is None:
            raise RuntimeError("The control model has not been built yet.")
        return self._control_model

    ###
    # Operations
    ###

    def _find_finger_joints(self, instance: int):
        left_name, right_name = self._config.end_effector_finger_joints
        left = self._world.get_prismatic_joint(left_name, instance)
        right = self._world.get_prismatic_joint(right_name, instance)
        return left, right

    def build(self) -> Network:
        """
        Builds the network of the station.

        Raises:
            RuntimeError: If the registry is not finalized or the network was already built.
        """
        if self._state == AssemblerState.BUILT:
            raise RuntimeError("The network has already been built.")
        if not self._registry.is_finalized:
            raise RuntimeError(f"The registry must be finalized first, but is in state {self._registry.state}.")
        registry = self._registry
        world = self._world
        config = self._config
        dt = config.time_step
        manipulator = registry.manipulator
        end_effector = registry.end_effector

        # Validate everything before the world is frozen, since finalizing cannot be undone
        if registry.world is not None and registry.world is not world:
            raise ValueError("The registry holds frames of a different world model than the one being assembled.")
        m = manipulator.model_instance
        e = end_effector.model_instance
        left, right = self._find_finger_joints(e)
        if left is right:
            raise ValueError(f"The left and right finger joints must differ, but both are '{left.name}'.")
        n = sum(joint.num_dofs for joint in world.get_joints(m))
        control_model = build_control_model(registry, world.gravity, device=config.device)
        if control_model.num_velocities() != n:
            raise ValueError(
                f"The control model has {control_model.num_velocities()} DoFs but the manipulator has {n}."
            )
        world.finalize()

        # Retrieve the coordinate layout of the end effector
        ee_dofs = world.get_dof_indices(e)
        fingers = (ee_dofs.index(left.q_start), ee_dofs.index(right.q_start))
        n_e = len(ee_dofs)

        builder = NetworkBuilder()

        # World model
        world_block = builder.add_block(WorldModelBlock(WORLD_BLOCK, world))
        manipulator_state = world_block.get_output_port(world_block.get_state_output_name(m))
        end_effector_state = world_block.get_output_port(world_block.get_state_output_name(e))

        # Manipulator commands
        position = builder.add_block(PassThrough("manipulator_position", n))
        interpolator = builder.add_block(StateInterpolatorWithDiscreteDerivative(MANIPULATOR_INTERPOLATOR_BLOCK, n, dt))
        builder.connect(position.get_output_port("y"), interpolator.get_input_port("position"))

        # Manipulator state estimation
        demux = builder.add_block(Demultiplexer("manipulator_state_demux", [n, n]))
        builder.connect(manipulator_state, demux.get_input_port("u"))

        # Manipulator control
        gains = registry.manipulator_gains
        controller = builder.add_block(
            InverseDynamicsController(
                MANIPULATOR_CONTROLLER_BLOCK, control_model, gains.kp, gains.ki, gains.kd, dt, device=config.device
            )
        )
        builder.connect(manipulator_state, controller.get_input_port("estimated_state"))
        builder.connect(interpolator.get_output_port("state"), controller.get_input_port("desired_state"))
        feedforward = builder.add_block(PassThrough("manipulator_feedforward_torque", n))
        adder = builder.add_block(Adder("manipulator_torque_adder", 2, n))
        builder.connect(controller.get_output_port("control"), adder.get_input_port("u0"))
        builder.connect(feedforward.get_output_port("y"), adder.get_input_port("u1"))
        builder.connect(
            adder.get_output_port("sum"), world_block.get_input_port(world_block.get_actuation_input_name(m))
        )

        # End-effector control
        ee_gains = registry.end_effector_gains
        ee_controller = builder.add_block(
            EndEffectorPositionController(END_EFFECTOR_CONTROLLER_BLOCK, n_e, fingers, dt, ee_gains.kp, ee_gains.kd)
        )
        builder.connect(end_effector_state, ee_controller.get_input_port("state"))
        builder.connect(
            ee_controller.get_output_port("generalized_force"),
            world_block.get_input_port(world_block.get_actuation_input_name(e)),
        )
        ee_converter = builder.add_block(EndEffectorStateConverter("end_effector_state_converter", n_e, fingers))
        builder.connect(end_effector_state, ee_converter.get_input_port("state"))

        # Any other actuated instance receives zero actuation unless fixed
        for instance in range(world.num_model_instances):
            if instance in (m, e) or world.num_velocities(instance) == 0:
                continue
            name = world_block.get_actuation_input_name(instance)
            default = np.zeros(world.num_velocities(instance))
            builder.export_input(world_block.get_input_port(name), name, default=default)

        # Perception
        for name, sensor in registry.sensors.items():
            X_BC = wp.transform_multiply(sensor.parent_frame.X_BF, sensor.X_PC)
            camera = builder.add_block(
                RgbdCamera(f"camera_{name}", sensor.parent_frame.body, X_BC, sensor.properties, self._renderer)
            )
            builder.connect(world_block.get_output_port("geometry_poses"), camera.get_input_port("geometry_poses"))
            rgb, depth, label = camera_output_port_names(name)
            builder.export_output(camera.get_output_port("color_image"), rgb)
            builder.export_output(camera.get_output_port("depth_image"), depth)
            builder.export_output(camera.get_output_port("label_image"), label)

        # Inputs
        builder.export_input(position.get_input_port("u"), "manipulator_position")
        builder.export_input(feedforward.get_input_port("u"), "manipulator_feedforward_torque", default=np.zeros(n))
        builder.export_input(ee_controller.get_input_port("desired_position"), "end_effector_position")
        builder.export_input(
            ee_controller.get_input_port("force_limit"),
            "end_effector_force_limit",
            default=np.array([config.end_effector_force_limit]),
        )

        # Outputs
        builder.export_output(position.get_output_port("y"), "manipulator_position_commanded")
        builder.export_output(demux.get_output_port("y0"), "manipulator_position_measured")
        builder.export_output(demux.get_output_port("y1"), "manipulator_velocity_estimated")
        builder.export_output(manipulator_state, "manipulator_state_estimated")
        builder.export_output(adder.get_output_port("sum"), "manipulator_torque_commanded")
        builder.export_output(adder.get_output_port("sum"), "manipulator_torque_measured")
        builder.export_output(
            world_block.get_output_port(world_block.get_contact_forces_output_name(m)), "manipulator_torque_external"
        )
        builder.export_output(ee_converter.get_output_port("state"), "end_effector_state_measured")
        builder.export_output(ee_controller.get_output_port("grip_force"), "end_effector_force_measured")
        builder.export_output(world_block.get_output_port("pose_bundle"), "pose_bundle")
        builder.export_output(world_block.get_output_port("continuous_state"), "plant_continuous_state")
        builder.export_output(world_block.get_output_port("geometry_poses"), "geometry_poses")
        builder.export_output(world_block.get_output_port("contact_results"), "contact_results")

        self._network = builder.build("workcell")
        self._control_model = control_model
        self._state = AssemblerState.BUILT
        msg.notif(
            f"Built workcell network with {n} manipulator DoFs, {n_e} end-effector DoFs "
            f"and {len(registry.sensors)} cameras."
        )
        return self._network
