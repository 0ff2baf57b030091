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
WORKCELL: Station: Model Registry

The registry accumulates, per logical role, how each sub-assembly of the
station is attached to the existing structure, together with the feedback
gains of the manipulator and of the end effector and the named sensors.

Registration is strictly ordered by the :class:`RegistryState` machine:

``EMPTY -> MANIPULATOR_REGISTERED -> END_EFFECTOR_REGISTERED -> FINALIZED``

Every failing call raises and leaves the registry unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from types import MappingProxyType

import numpy as np
import warp as wp

from ..core.types import FloatArrayLike, override
from ..sim.description import ModelDescription
from ..sim.world import FrameHandle, WorldModel
from ..systems.sensors import CameraProperties
from ..utils import logger as msg
from .config import END_EFFECTOR_KD_DEFAULT, END_EFFECTOR_KP_DEFAULT, MANIPULATOR_KI_DEFAULT, MANIPULATOR_KP_DEFAULT

###
# Module interface
###

__all__ = [
    "AttachmentDescriptor",
    "EndEffectorGains",
    "ManipulatorGains",
    "ModelRegistry",
    "RegistryState",
    "SensorDescriptor",
]


###
# Types
###


class RegistryState(IntEnum):
    """The registration phases of a :class:`ModelRegistry`."""

    EMPTY = 0
    MANIPULATOR_REGISTERED = 1
    END_EFFECTOR_REGISTERED = 2
    FINALIZED = 3

    @override
    def __str__(self):
        return f"RegistryState.{self.name}"

    @override
    def __repr__(self):
        return self.__str__()


def _check_transform(X_PC: wp.transform, role: str):
    if not wp.types.type_is_transformation(type(X_PC)):
        raise TypeError(f"{role}: `X_PC` must be a `wp.transform`, but got {type(X_PC)}.")


def _check_frame(frame: FrameHandle, role: str, field_name: str):
    if not isinstance(frame, FrameHandle):
        raise TypeError(f"{role}: `{field_name}` must be a `FrameHandle`, but got {type(frame)}.")


@dataclass(frozen=True)
class AttachmentDescriptor:
    """
    Describes how a sub-assembly is attached to the existing structure.

    The child frame C of the sub-assembly is welded to the parent frame P
    so that the pose of C in P is ``X_PC``.
    """

    model_instance: int
    """The index of the model instance of the sub-assembly."""

    description: ModelDescription
    """The description from which the model instance was loaded."""

    parent_frame: FrameHandle
    """The frame P on the existing structure."""

    child_frame: FrameHandle
    """The frame C on the sub-assembly."""

    X_PC: wp.transform
    """The pose of the child frame in the parent frame."""

    def __post_init__(self):
        if not isinstance(self.description, ModelDescription):
            raise TypeError(
                f"Attachment: `description` must be a `ModelDescription`, but got {type(self.description)}."
            )
        _check_frame(self.parent_frame, "Attachment", "parent_frame")
        _check_frame(self.child_frame, "Attachment", "child_frame")
        _check_transform(self.X_PC, "Attachment")
        if not self.child_frame.belongs_to(self.parent_frame.world):
            raise ValueError(
                f"Attachment: child frame '{self.child_frame.name}' and parent frame "
                f"'{self.parent_frame.name}' belong to different world models."
            )
        if self.child_frame.instance != self.model_instance:
            raise ValueError(
                f"Attachment: child frame '{self.child_frame.name}' belongs to model instance "
                f"{self.child_frame.instance}, not to the attached instance {self.model_instance}."
            )


@dataclass(frozen=True, eq=False)
class ManipulatorGains:
    """The per-joint PID gains of the manipulator controller."""

    kp: np.ndarray
    """The proportional gains, non-negative."""

    ki: np.ndarray
    """The integral gains, non-negative."""

    kd: np.ndarray
    """The derivative gains, non-negative."""

    def __post_init__(self):
        values = {}
        for name in ("kp", "ki", "kd"):
            K = np.array(getattr(self, name), dtype=np.float64).reshape(-1)
            invalid = np.flatnonzero(~np.isfinite(K) | (K < 0.0))
            if invalid.size > 0:
                i = int(invalid[0])
                raise ValueError(
                    f"Manipulator gains: `{name}[{i}]` must be finite and non-negative, but got {K[i]}."
                )
            K.setflags(write=False)
            values[name] = K
        if not (values["kp"].size == values["ki"].size == values["kd"].size):
            raise ValueError(
                "Manipulator gains: `kp`, `ki` and `kd` must have equal lengths, but have "
                f"{values['kp'].size}, {values['ki'].size} and {values['kd'].size}."
            )
        for name, K in values.items():
            object.__setattr__(self, name, K)

    @staticmethod
    def from_defaults(
        num_dofs: int,
        kp: float = MANIPULATOR_KP_DEFAULT,
        ki: float = MANIPULATOR_KI_DEFAULT,
        kd: float | None = None,
    ) -> ManipulatorGains:
        """Creates uniform gains, with a critically-damped ``kd = 2 * sqrt(kp)`` unless given."""
        if not np.isfinite(kp) or kp < 0.0:
            raise ValueError(f"Manipulator gains: `kp` must be finite and non-negative, but got {kp}.")
        kd = 2.0 * np.sqrt(kp) if kd is None else kd
        return ManipulatorGains(kp=np.full(num_dofs, kp), ki=np.full(num_dofs, ki), kd=np.full(num_dofs, kd))

    @property
    def num_dofs(self) -> int:
        return self.kp.size

    def replace(
        self,
        kp: FloatArrayLike | None = None,
        ki: FloatArrayLike | None = None,
        kd: FloatArrayLike | None = None,
    ) -> ManipulatorGains:
        """Returns a copy with some of the gain vectors replaced."""
        return ManipulatorGains(
            kp=self.kp if kp is None else kp,
            ki=self.ki if ki is None else ki,
            kd=self.kd if kd is None else kd,
        )


@dataclass(frozen=True)
class EndEffectorGains:
    """The PD gains of the finger separation controller."""

    kp: float = END_EFFECTOR_KP_DEFAULT
    """The proportional gain, non-negative."""

    kd: float = END_EFFECTOR_KD_DEFAULT
    """The derivative gain, non-negative."""

    def __post_init__(self):
        for name in ("kp", "kd"):
            value = float(getattr(self, name))
            if not np.isfinite(value) or value < 0.0:
                raise ValueError(f"End-effector gains: `{name}` must be non-negative, but got {value}.")
            object.__setattr__(self, name, value)


@dataclass(frozen=True)
class SensorDescriptor:
    """Describes an RGB-D camera rigidly attached to a frame."""

    parent_frame: FrameHandle
    """The frame P to which the camera is attached."""

    X_PC: wp.transform
    """The pose of the camera frame C in the parent frame."""

    properties: CameraProperties = CameraProperties()
    """The intrinsic properties of the camera."""

    def __post_init__(self):
        _check_frame(self.parent_frame, "Sensor", "parent_frame")
        _check_transform(self.X_PC, "Sensor")
        if not isinstance(self.properties, CameraProperties):
            raise TypeError(f"Sensor: `properties` must be `CameraProperties`, but got {type(self.properties)}.")


###
# Interfaces
###


class ModelRegistry:
    """
    A phase-tagged registry of the sub-assemblies, gains and sensors of a station.

    Every registered frame must belong to the world model of the registry.
    Without an explicit world model, the registry binds to the world model
    of the first frame it accepts.
    """

    def __init__(self, world: WorldModel | None = None):
        if world is not None and not isinstance(world, WorldModel):
            raise TypeError(f"Expected a `WorldModel`, but got {type(world)}.")
        self._world: WorldModel | None = world
        self._state: RegistryState = RegistryState.EMPTY
        self._manipulator: AttachmentDescriptor | None = None
        self._end_effector: AttachmentDescriptor | None = None
        self._manipulator_gains: ManipulatorGains | None = None
        self._end_effector_gains: EndEffectorGains | None = None
        self._sensors: dict[str, SensorDescriptor] = {}

    def __repr__(self):
        return (
            f"ModelRegistry(\n"
            f"state={self._state},\n"
            f"manipulator={self._manipulator},\n"
            f"end_effector={self._end_effector},\n"
            f"sensors={self.sensor_names}\n"
            f")"
        )

    ###
    # Properties
    ###

    @property
    def world(self) -> WorldModel | None:
        """The world model owning the registered frames, `None` until bound."""
        return self._world

    @property
    def state(self) -> RegistryState:
        return self._state

    @property
    def is_finalized(self) -> bool:
        return self._state == RegistryState.FINALIZED

    @property
    def manipulator(self) -> AttachmentDescriptor | None:
        return self._manipulator

    @property
    def end_effector(self) -> AttachmentDescriptor | None:
        return self._end_effector

    @property
    def manipulator_gains(self) -> ManipulatorGains | None:
        return self._manipulator_gains

    @property
    def end_effector_gains(self) -> EndEffectorGains | None:
        return self._end_effector_gains

    @property
    def sensors(self) -> MappingProxyType:
        """A read-only view of the registered sensors keyed by name."""
        return MappingProxyType(self._sensors)

    @property
    def sensor_names(self) -> list[str]:
        return list(self._sensors.keys())

    ###
    # Sequencing
    ###

    def _assert_state(self, expected: RegistryState, operation: str):
        if self._state != expected:
            raise RuntimeError(f"Cannot {operation} in state {self._state}, expected {expected}.")

    def _assert_not_finalized(self, operation: str):
        if self._state == RegistryState.FINALIZED:
            raise RuntimeError(f"Cannot {operation} after the registry has been finalized.")

    def _assert_in_world(self, frame: FrameHandle, role: str):
        world = self._world if self._world is not None else frame.world
        if not frame.belongs_to(world):
            raise ValueError(f"{role}: frame '{frame.name}' does not belong to the world model of the registry.")

    def _bind_world(self, frame: FrameHandle):
        if self._world is None:
            self._world = frame.world

    ###
    # Registration
    ###

    def register_manipulator(self, descriptor: AttachmentDescriptor, default_gains: ManipulatorGains | None = None):
        """
        Registers the manipulator, which must be anchored to the world frame.

        Args:
            descriptor (AttachmentDescriptor): The attachment of the manipulator.
            default_gains (ManipulatorGains | None): The initial gains, defaulting to
                ``kp = 100``, ``ki = 1`` and ``kd = 2 * sqrt(kp)`` for every joint.
        """
        if self._manipulator is not None:
            raise RuntimeError("A manipulator is already registered.")
        self._assert_state(RegistryState.EMPTY, "register the manipulator")
        if not isinstance(descriptor, AttachmentDescriptor):
            raise TypeError(f"Manipulator: expected an `AttachmentDescriptor`, but got {type(descriptor)}.")
        self._assert_in_world(descriptor.parent_frame, "Manipulator")
        if not descriptor.parent_frame.is_world_frame:
            raise ValueError(
                f"Manipulator: parent frame '{descriptor.parent_frame.name}' must be the world frame."
            )
        num_dofs = descriptor.description.num_dofs
        gains = ManipulatorGains.from_defaults(num_dofs) if default_gains is None else default_gains
        self._check_manipulator_gains(gains, num_dofs)
        self._bind_world(descriptor.parent_frame)
        self._manipulator = descriptor
        self._manipulator_gains = gains
        self._state = RegistryState.MANIPULATOR_REGISTERED
        msg.debug(f"Registered manipulator '{descriptor.description.name}' with {num_dofs} DoFs.")

    def register_end_effector(self, descriptor: AttachmentDescriptor, default_gains: EndEffectorGains | None = None):
        """
        Registers the end effector, which must be attached to a frame of the manipulator.

        Args:
            descriptor (AttachmentDescriptor): The attachment of the end effector.
            default_gains (EndEffectorGains | None): The initial gains, defaulting to ``kp = 200`` and ``kd = 5``.
        """
        if self._end_effector is not None:
            raise RuntimeError("An end effector is already registered.")
        self._assert_state(RegistryState.MANIPULATOR_REGISTERED, "register the end effector")
        if not isinstance(descriptor, AttachmentDescriptor):
            raise TypeError(f"End effector: expected an `AttachmentDescriptor`, but got {type(descriptor)}.")
        self._assert_in_world(descriptor.parent_frame, "End effector")
        manipulator = self._manipulator.model_instance
        if descriptor.parent_frame.instance != manipulator:
            raise ValueError(
                f"End effector: parent frame '{descriptor.parent_frame.name}' belongs to model instance "
                f"{descriptor.parent_frame.instance}, not to the manipulator instance {manipulator}."
            )
        gains = EndEffectorGains() if default_gains is None else default_gains
        if not isinstance(gains, EndEffectorGains):
            raise TypeError(f"End effector: expected `EndEffectorGains`, but got {type(gains)}.")
        self._end_effector = descriptor
        self._end_effector_gains = gains
        self._state = RegistryState.END_EFFECTOR_REGISTERED
        msg.debug(f"Registered end effector '{descriptor.description.name}' on '{descriptor.parent_frame.name}'.")

    def register_sensor(self, name: str, descriptor: SensorDescriptor):
        """Registers a named sensor, replacing any sensor registered under the same name."""
        self._assert_not_finalized("register a sensor")
        if not isinstance(name, str) or len(name) == 0:
            raise ValueError(f"Sensor: name must be a non-empty string, but got '{name}'.")
        if not isinstance(descriptor, SensorDescriptor):
            raise TypeError(f"Sensor '{name}': expected a `SensorDescriptor`, but got {type(descriptor)}.")
        self._assert_in_world(descriptor.parent_frame, f"Sensor '{name}'")
        if name in self._sensors:
            msg.warning(f"Sensor '{name}' is already registered and will be overwritten.")
        self._bind_world(descriptor.parent_frame)
        self._sensors[name] = descriptor
        msg.debug(f"Registered sensor '{name}' on '{descriptor.parent_frame.name}'.")

    ###
    # Gains
    ###

    def _check_manipulator_gains(self, gains: ManipulatorGains, num_dofs: int):
        if not isinstance(gains, ManipulatorGains):
            raise TypeError(f"Manipulator: expected `ManipulatorGains`, but got {type(gains)}.")
        if gains.num_dofs != num_dofs:
            raise ValueError(f"Manipulator gains must have length {num_dofs}, but have length {gains.num_dofs}.")

    def _assert_manipulator_registered(self):
        if self._manipulator is None:
            raise RuntimeError("The manipulator must be registered before its gains can be set.")

    def set_manipulator_gains(self, gains: ManipulatorGains):
        self._assert_not_finalized("set the manipulator gains")
        self._assert_manipulator_registered()
        self._check_manipulator_gains(gains, self._manipulator_gains.num_dofs)
        self._manipulator_gains = gains

    def set_manipulator_position_gains(self, kp: FloatArrayLike):
        self._assert_not_finalized("set the manipulator gains")
        self._assert_manipulator_registered()
        self.set_manipulator_gains(self._manipulator_gains.replace(kp=kp))

    def set_manipulator_integral_gains(self, ki: FloatArrayLike):
        self._assert_not_finalized("set the manipulator gains")
        self._assert_manipulator_registered()
        self.set_manipulator_gains(self._manipulator_gains.replace(ki=ki))

    def set_manipulator_velocity_gains(self, kd: FloatArrayLike):
        self._assert_not_finalized("set the manipulator gains")
        self._assert_manipulator_registered()
        self.set_manipulator_gains(self._manipulator_gains.replace(kd=kd))

    def set_end_effector_gains(self, gains: EndEffectorGains):
        self._assert_not_finalized("set the end-effector gains")
        if self._end_effector is None:
            raise RuntimeError("The end effector must be registered before its gains can be set.")
        if not isinstance(gains, EndEffectorGains):
            raise TypeError(f"End effector: expected `EndEffectorGains`, but got {type(gains)}.")
        self._end_effector_gains = gains

    ###
    # Finalization
    ###

    def finalize(self):
        """Freezes the registry, which must hold both a manipulator and an end effector."""
        if self._state == RegistryState.FINALIZED:
            raise RuntimeError("The registry has already been finalized.")
        if self._manipulator is None:
            raise RuntimeError("Cannot finalize the registry: no manipulator has been registered.")
        if self._end_effector is None:
            raise RuntimeError("Cannot finalize the registry: no end effector has been registered.")
        self._state = RegistryState.FINALIZED
        msg.info(f"Finalized model registry with {len(self._sensors)} sensors.")
