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

"""Defines the configurations of the workcell station."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from warp.context import Devicelike

from ..core.gravity import GravityDescriptor
from ..systems.end_effector import FORCE_LIMIT_DEFAULT

###
# Module interface
###

__all__ = [
    "END_EFFECTOR_FINGER_JOINTS_DEFAULT",
    "END_EFFECTOR_KD_DEFAULT",
    "END_EFFECTOR_KP_DEFAULT",
    "MANIPULATOR_KI_DEFAULT",
    "MANIPULATOR_KP_DEFAULT",
    "TIME_STEP_DEFAULT",
    "WorkcellConfig",
]


###
# Constants
###

TIME_STEP_DEFAULT = 1.0e-3
"""The default discrete update period of the station, in seconds."""

MANIPULATOR_KP_DEFAULT = 100.0
"""The default proportional gain of every manipulator joint."""

MANIPULATOR_KI_DEFAULT = 1.0
"""The default integral gain of every manipulator joint."""

END_EFFECTOR_KP_DEFAULT = 200.0
"""The default proportional gain of the finger separation controller."""

END_EFFECTOR_KD_DEFAULT = 5.0
"""The default derivative gain of the finger separation controller."""

END_EFFECTOR_FINGER_JOINTS_DEFAULT = ("left_finger_sliding_joint", "right_finger_sliding_joint")
"""The default names of the left and right finger joints of the end effector."""


###
# Types
###


@dataclass
class WorkcellConfig:
    """
    A data container to hold the host-side configurations of a workcell station.
    """

    time_step: float = TIME_STEP_DEFAULT
    """
    The discrete update period of the world model and of the controllers, in seconds.\n
    Must be positive.\n
    Defaults to `1.0e-3`.
    """

    gravity: GravityDescriptor = field(default_factory=GravityDescriptor)
    """
    The gravity shared by the world model and the control model.\n
    Defaults to Earth's gravity along -Z.
    """

    manipulator_kp: float = MANIPULATOR_KP_DEFAULT
    """
    The proportional gain applied to every manipulator joint unless overridden.\n
    The derivative gain defaults to the critically-damped ``2 * sqrt(kp)``.\n
    Defaults to `100.0`.
    """

    manipulator_ki: float = MANIPULATOR_KI_DEFAULT
    """
    The integral gain applied to every manipulator joint unless overridden.\n
    Defaults to `1.0`.
    """

    end_effector_kp: float = END_EFFECTOR_KP_DEFAULT
    """
    The proportional gain of the finger separation controller.\n
    Defaults to `200.0`.
    """

    end_effector_kd: float = END_EFFECTOR_KD_DEFAULT
    """
    The derivative gain of the finger separation controller.\n
    Defaults to `5.0`.
    """

    end_effector_force_limit: float = FORCE_LIMIT_DEFAULT
    """
    The grip force limit used when the force-limit input is not fixed, in N.\n
    Must be positive.\n
    Defaults to `40.0`.
    """

    end_effector_finger_joints: tuple[str, str] = END_EFFECTOR_FINGER_JOINTS_DEFAULT
    """
    The names of the left and right prismatic finger joints of the end effector.
    """

    device: Devicelike = "cpu"
    """
    The Warp device on which the kernels of the station are launched.\n
    Defaults to `"cpu"`.
    """

    def __post_init__(self) -> None:
        """
        Performs validation checks on the configuration values after initialization.
        """
        self.check_values()

    def check_values(self) -> None:
        """
        Validates configuration values.
        """
        if not math.isfinite(self.time_step) or self.time_step <= 0.0:
            raise ValueError(f"Invalid time_step: {self.time_step}. Must be finite and positive.")
        if not isinstance(self.gravity, GravityDescriptor):
            raise TypeError(f"Invalid gravity: expected a `GravityDescriptor`, but got {type(self.gravity)}.")
        for name in ("manipulator_kp", "manipulator_ki", "end_effector_kp", "end_effector_kd"):
            value = getattr(self, name)
            if not math.isfinite(value) or value < 0.0:
                raise ValueError(f"Invalid {name}: {value}. Must be finite and non-negative.")
        if not math.isfinite(self.end_effector_force_limit) or self.end_effector_force_limit <= 0.0:
            raise ValueError(f"Invalid end_effector_force_limit: {self.end_effector_force_limit}. Must be positive.")
        if len(self.end_effector_finger_joints) != 2:
            raise ValueError(
                f"Invalid end_effector_finger_joints: {self.end_effector_finger_joints}. Must name exactly two joints."
            )
