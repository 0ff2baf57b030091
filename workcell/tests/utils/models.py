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

"""Provides utility functions to build simple models and stations for testing."""

import math

import numpy as np
from scipy.spatial.transform import Rotation

from workcell._src.core.inertia import SpatialInertia, solid_cuboid_body_moment_of_inertia
from workcell._src.core.math import UNIT_Y, UNIT_Z, make_transform
from workcell._src.models.station import build_gripper
from workcell._src.sim.description import JointType, ModelDescription
from workcell._src.station.config import WorkcellConfig
from workcell._src.station.workcell import Workcell
from workcell.tests import test_context

###
# Bodies
###


def make_box_inertia(mass: float = 1.0, com=(0.0, 0.0, 0.0), size=(0.1, 0.2, 0.3)) -> SpatialInertia:
    """Returns the inertia of a solid box about its body origin, offset from its center of mass by ``com``."""
    return SpatialInertia.from_center_of_mass(mass, com, solid_cuboid_body_moment_of_inertia(mass, *size))


###
# Descriptions
###


def build_single_body(name: str = "box", mass: float = 1.0) -> ModelDescription:
    """
    Builds a description holding a single box body named ``body``.
    """
    description = ModelDescription(name)
    description.add_body("body", make_box_inertia(mass))
    return description


def build_pendulum(mass: float = 2.0, length: float = 0.5) -> ModelDescription:
    """
    Builds a point-mass pendulum swinging about the Y axis of its base.

    The link carries all of its mass at ``length`` along its X axis, so
    that at zero angle gravity along -Z exerts ``mass * g * length`` about +Y.
    """
    description = ModelDescription("pendulum")
    description.add_body("base", make_box_inertia(1.0))
    description.add_body("link", SpatialInertia.from_center_of_mass(mass, (length, 0.0, 0.0), np.zeros((3, 3))))
    description.add_joint("hinge", JointType.REVOLUTE, parent="base", child="link", axis=UNIT_Y)
    return description


def build_planar_arm(num_links: int = 2, link_length: float = 0.3, link_mass: float = 1.0) -> ModelDescription:
    """
    Builds a serial arm whose revolute joints all rotate about their local Z axes.

    The arm has a massive base link ``link_0`` and ``num_links`` moving links,
    each link extending along its X axis.
    """
    description = ModelDescription(f"arm_{num_links}")
    description.add_body("link_0", make_box_inertia(4.0))
    for i in range(1, num_links + 1):
        description.add_body(
            f"link_{i}",
            make_box_inertia(link_mass, com=(0.5 * link_length, 0.0, 0.0), size=(link_length, 0.05, 0.05)),
        )
        description.add_joint(
            f"joint_{i}",
            JointType.REVOLUTE,
            parent=f"link_{i - 1}",
            child=f"link_{i}",
            X_PJ=make_transform(p=(link_length if i > 1 else 0.0, 0.0, 0.1 if i == 1 else 0.0)),
            axis=UNIT_Z,
        )
    description.add_frame("tool", f"link_{num_links}", make_transform(p=(link_length, 0.0, 0.0)))
    return description


def build_tilted_arm() -> ModelDescription:
    """Builds a two-link arm whose second joint rotates about a horizontal axis."""
    description = ModelDescription("tilted_arm")
    description.add_body("link_0", make_box_inertia(4.0))
    description.add_body("link_1", make_box_inertia(1.5, com=(0.0, 0.0, 0.2)))
    description.add_body("link_2", make_box_inertia(1.0, com=(0.15, 0.0, 0.0)))
    description.add_joint(
        "joint_1", JointType.REVOLUTE, "link_0", "link_1", make_transform(p=(0.0, 0.0, 0.1)), axis=UNIT_Z
    )
    description.add_joint(
        "joint_2",
        JointType.REVOLUTE,
        "link_1",
        "link_2",
        make_transform(p=(0.0, 0.0, 0.4), rpy=(math.pi / 2.0, 0.0, 0.0)),
        axis=UNIT_Z,
    )
    return description


###
# Stations
###


def make_test_station(num_links: int = 2, num_cameras: int = 0, config: WorkcellConfig | None = None) -> Workcell:
    """
    Builds, without finalizing, a station made of a planar arm carrying the default gripper.
    """
    station = Workcell(config=config)
    station.add_manipulator(build_planar_arm(num_links), "arm", "link_0")
    station.add_end_effector(
        build_gripper(),
        "gripper",
        "tool",
        "body",
        make_transform(rpy=(0.0, math.pi / 2.0, 0.0)),
    )
    for i in range(num_cameras):
        station.register_camera(f"{i}", X_PC=make_transform(p=(1.0, 0.0, 0.5 + 0.1 * i)))
    return station


def random_rotation_matrices(num: int, seed: int | None = None) -> np.ndarray:
    """Returns ``num`` uniformly-distributed random rotation matrices, seeded by the test context by default."""
    if seed is None:
        seed = test_context.seed
    return Rotation.random(num, random_state=seed).as_matrix()
