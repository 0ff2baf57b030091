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
WORKCELL: Simulation: Composite Inertia

Lumps a sub-assembly, a base body plus the satellite bodies attached
to it, into a single rigid-body inertia about the base body origin,
expressed in the base body frame. The sub-assembly is evaluated at
its zero configuration.
"""

from __future__ import annotations

from collections.abc import Iterable

import warp as wp

from ..core.inertia import SpatialInertia, compose, reexpress, shift
from ..core.math import vec3_to_numpy
from ..utils import logger as msg
from .description import ModelDescription
from .world import WorldModel

###
# Module interface
###

__all__ = [
    "calc_satellite_pose",
    "make_composite_body_inertia",
    "synthesize_composite_inertia",
]


###
# Functions
###


def calc_satellite_pose(X_BJ: wp.transform, X_SJ: wp.transform) -> wp.transform:
    """
    Returns the pose ``X_BS`` of a satellite body S in its base body B.

    Args:
        X_BJ (wp.transform): The pose of the connecting joint frame in the base body.
        X_SJ (wp.transform): The pose of the connecting joint frame in the satellite body.
    """
    return wp.transform_multiply(X_BJ, wp.transform_inverse(X_SJ))


def synthesize_composite_inertia(
    base: SpatialInertia,
    satellites: Iterable[tuple[SpatialInertia, wp.transform]],
) -> SpatialInertia:
    """
    Sums the inertias of a base body and of its satellites about the base origin.

    Each satellite inertia is taken about its own body origin and expressed
    in its own body frame. It is first re-expressed in the base frame using
    the rotation of ``X_BS``, then shifted from the satellite origin to the
    base origin, and finally composed with the running sum.

    Args:
        base (SpatialInertia): The inertia of the base body about its origin, in its frame.
        satellites (Iterable[tuple[SpatialInertia, wp.transform]]): Pairs of satellite
            inertias and poses ``X_BS`` of the satellite bodies in the base body.

    Returns:
        SpatialInertia: The composite inertia about the base origin, in the base frame.
    """
    # Drop the labels so that operands from different sources can be summed
    total = SpatialInertia(
        mass=base.mass, center_of_mass=base.center_of_mass, rotational_inertia=base.rotational_inertia
    )
    for inertia, X_BS in satellites:
        M_S_B = reexpress(inertia, X_BS.q)
        M_B_B = shift(M_S_B, -vec3_to_numpy(X_BS.p))
        total = compose(total, M_B_B)
    return total


def make_composite_body_inertia(description: ModelDescription, base_frame_name: str) -> SpatialInertia:
    """
    Computes the composite inertia of a model description about one of its frames.

    The description is loaded into a private scratch world, with the body of
    the base frame welded to the world. Every body reachable from the base body
    through outbound joints is a satellite, at its zero-configuration pose.

    Args:
        description (ModelDescription): The description of the sub-assembly.
        base_frame_name (str): The name of the frame of the base body.

    Returns:
        SpatialInertia: The composite inertia about the base frame origin, in the base frame.
    """
    # Load the sub-assembly into a scratch world
    world = WorldModel()
    instance = world.add_model(description)
    base_frame = world.get_frame(base_frame_name, instance)
    world.weld_frames(world.world_frame, base_frame)
    world.finalize()

    # Accumulate the poses of all descendants of the base body
    base_body = base_frame.body
    X_BD: dict[int, wp.transform] = {base_body: wp.transform_identity()}
    for joint in world.topological_joints:
        if joint.parent_body in X_BD:
            X_BD[joint.child_body] = wp.transform_multiply(
                X_BD[joint.parent_body], calc_satellite_pose(joint.X_PJ, joint.X_CJ)
            )
    satellites = [(world.get_body_inertia(b), X) for b, X in X_BD.items() if b != base_body]
    composite = synthesize_composite_inertia(world.get_body_inertia(base_body), satellites)

    # Move the result from the base body origin to the base frame
    X_BF = base_frame.X_BF
    composite = reexpress(shift(composite, vec3_to_numpy(X_BF.p)), wp.quat_inverse(X_BF.q))
    msg.debug(
        f"Composite inertia of '{description.name}' about '{base_frame_name}' "
        f"lumps {len(satellites)} satellites for a total mass of {composite.mass}."
    )
    return composite
