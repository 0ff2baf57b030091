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
WORKCELL: Models: Default Station

Provides the in-memory descriptions of the models of the default
station: a 7-DoF arm, a two-finger parallel-jaw gripper, a table
and a cupboard, together with the default camera setup.
"""

from __future__ import annotations

import math

import warp as wp

from ..core.inertia import (
    SpatialInertia,
    solid_cuboid_body_moment_of_inertia,
    solid_cylinder_body_moment_of_inertia,
)
from ..core.math import UNIT_X, UNIT_Z, make_transform
from ..sim.description import JointType, ModelDescription
from ..systems.sensors import CameraProperties, Fidelity

###
# Module interface
###

__all__ = [
    "ARM_BASE_LINK_NAME",
    "ARM_END_LINK_NAME",
    "ARM_JOINT_NAMES",
    "GRIPPER_BODY_NAME",
    "X_7G",
    "X_WCupboard",
    "X_WTable",
    "build_arm",
    "build_cupboard",
    "build_gripper",
    "build_table",
    "make_default_camera_poses",
    "make_default_camera_properties",
]


###
# Constants
###

ARM_JOINT_NAMES = tuple(f"iiwa_joint_{i}" for i in range(1, 8))
"""The names of the revolute joints of the default arm."""

ARM_BASE_LINK_NAME = "iiwa_link_0"
"""The name of the base link of the default arm, anchored to the world."""

ARM_END_LINK_NAME = "iiwa_link_7"
"""The name of the last link of the default arm, carrying the gripper."""

GRIPPER_BODY_NAME = "body"
"""The name of the palm body of the default gripper."""

X_7G = make_transform(p=(0.0, 0.0, 0.114), rpy=(math.pi / 2.0, 0.0, math.pi / 2.0))
"""The pose of the gripper body frame in the last arm link."""

X_WTable = make_transform(p=(0.3257, 0.0, -0.0127))
"""The pose of the table in the world."""

X_WCupboard = make_transform(p=(0.8, 0.0, 0.4), rpy=(0.0, 0.0, math.pi))
"""The pose of the cupboard in the world."""


###
# Arm
###

# Per-link mass, center of mass and diagonal inertia about the center of mass
_ARM_LINKS = (
    (5.00, (0.000, -0.030, 0.120), (0.0500, 0.0600, 0.0300)),
    (5.76, (0.000, -0.030, 0.120), (0.0333, 0.0330, 0.0123)),
    (6.35, (0.000, 0.059, 0.042), (0.0305, 0.0304, 0.0110)),
    (3.50, (0.000, 0.030, 0.130), (0.0250, 0.0238, 0.0076)),
    (3.50, (0.000, 0.067, 0.034), (0.0170, 0.0164, 0.0060)),
    (3.50, (0.000, 0.021, 0.076), (0.0100, 0.0087, 0.0045)),
    (1.80, (0.000, 0.0006, 0.0004), (0.0049, 0.0047, 0.0036)),
    (1.20, (0.000, 0.000, 0.020), (0.0010, 0.0010, 0.0010)),
)

# Per-joint translation and orientation of the joint frame in the parent link
_ARM_JOINTS = (
    ((0.0, 0.0, 0.1575), (0.0, 0.0, 0.0)),
    ((0.0, 0.0, 0.2025), (math.pi / 2.0, 0.0, math.pi)),
    ((0.0, 0.2045, 0.0), (math.pi / 2.0, 0.0, math.pi)),
    ((0.0, 0.0, 0.2155), (math.pi / 2.0, 0.0, 0.0)),
    ((0.0, 0.1845, 0.0), (-math.pi / 2.0, math.pi, 0.0)),
    ((0.0, 0.0, 0.2155), (math.pi / 2.0, 0.0, 0.0)),
    ((0.0, 0.081, 0.0), (-math.pi / 2.0, math.pi, 0.0)),
)


def build_arm(name: str = "iiwa7") -> ModelDescription:
    """Builds the description of a 7-DoF serial arm with revolute joints about their local Z axes."""
    arm = ModelDescription(name)
    for i, (m, com, moments) in enumerate(_ARM_LINKS):
        arm.add_body(
            f"iiwa_link_{i}",
            SpatialInertia.from_center_of_mass(m, com, [[moments[0], 0, 0], [0, moments[1], 0], [0, 0, moments[2]]]),
        )
    for i, (p, rpy) in enumerate(_ARM_JOINTS):
        arm.add_joint(
            ARM_JOINT_NAMES[i],
            JointType.REVOLUTE,
            parent=f"iiwa_link_{i}",
            child=f"iiwa_link_{i + 1}",
            X_PJ=make_transform(p=p, rpy=rpy),
            axis=UNIT_Z,
        )
    return arm


###
# Gripper
###


def build_gripper(name: str = "wsg", finger_mass: float = 0.05, finger_offset: float = 0.0605) -> ModelDescription:
    """
    Builds the description of a parallel-jaw gripper.

    Two fingers slide along the X axis of the palm body, the left finger
    on negative and the right finger on positive coordinates. At zero
    travel both finger frames sit at ``finger_offset`` along the palm Y axis.
    """
    gripper = ModelDescription(name)
    gripper.add_body(
        GRIPPER_BODY_NAME,
        SpatialInertia.from_center_of_mass(
            0.988, (0.0, -0.0125, 0.0), solid_cuboid_body_moment_of_inertia(0.988, 0.146, 0.0725, 0.049)
        ),
    )
    for side, sign in (("left", -1.0), ("right", 1.0)):
        gripper.add_body(
            f"{side}_finger",
            SpatialInertia.from_center_of_mass(
                finger_mass,
                (sign * 0.0085, 0.0, 0.0),
                solid_cuboid_body_moment_of_inertia(finger_mass, 0.017, 0.054, 0.019),
            ),
        )
        gripper.add_joint(
            f"{side}_finger_sliding_joint",
            JointType.PRISMATIC,
            parent=GRIPPER_BODY_NAME,
            child=f"{side}_finger",
            X_PJ=make_transform(p=(0.0, finger_offset, 0.0)),
            axis=UNIT_X,
        )
    return gripper


###
# Furniture
###


def build_table(name: str = "table") -> ModelDescription:
    """Builds the description of a single-body table whose top surface is at the origin."""
    table = ModelDescription(name)
    table.add_body(
        "table_link",
        SpatialInertia.from_center_of_mass(
            20.0, (0.0, 0.0, -0.4), solid_cuboid_body_moment_of_inertia(20.0, 0.8, 0.6, 0.8)
        ),
    )
    return table


def build_cupboard(name: str = "cupboard") -> ModelDescription:
    """Builds the description of a single-body cupboard."""
    cupboard = ModelDescription(name)
    cupboard.add_body(
        "cupboard_body",
        SpatialInertia.from_center_of_mass(
            15.0, (0.0, 0.0, 0.0), solid_cuboid_body_moment_of_inertia(15.0, 0.3, 0.6, 0.8)
        ),
    )
    cupboard.add_frame("top_shelf", "cupboard_body", make_transform(p=(0.0, 0.0, 0.2)))
    # Cylindrical handle as a reference for graspable furniture
    cupboard.add_body(
        "handle",
        SpatialInertia.from_center_of_mass(
            0.1, (0.0, 0.0, 0.0), solid_cylinder_body_moment_of_inertia(0.1, 0.01, 0.12)
        ),
    )
    cupboard.add_joint(
        "handle_weld",
        JointType.FIXED,
        parent="cupboard_body",
        child="handle",
        X_PJ=make_transform(p=(-0.16, 0.25, 0.0)),
    )
    return cupboard


###
# Cameras
###


def make_default_camera_poses() -> dict[str, wp.transform]:
    """Returns the poses in the world of the three default cameras, keyed by name."""
    return {
        "0": make_transform(p=(-0.233066, -0.451461, 0.466761), rpy=(1.69101, 0.176488, 0.432721)),
        "1": make_transform(p=(-0.197236, 0.468471, 0.436499), rpy=(-1.68974, 0.20245, -0.706783)),
        "2": make_transform(p=(0.786905, -0.0284378, 1.04287), rpy=(0.0438918, 1.03776, -3.13612)),
    }


def make_default_camera_properties() -> CameraProperties:
    """Returns the properties of the default depth cameras."""
    return CameraProperties.from_focal_length(
        width=848,
        height=480,
        focal_y=645.0,
        z_near=0.1,
        z_far=2.0,
        fidelity=Fidelity.LOW,
    )
