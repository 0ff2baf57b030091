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
WORKCELL: Station: Control Model

Builds the reduced model used by the manipulator controller: the
manipulator alone, anchored as in the station, carrying a single rigid
body equivalent to the whole end effector at its zero-travel pose.
"""

from __future__ import annotations

from warp.context import Devicelike

from ..core.gravity import GravityDescriptor
from ..sim.composite import make_composite_body_inertia
from ..sim.world import WorldModel
from ..utils import logger as msg
from .registry import ModelRegistry

###
# Module interface
###

__all__ = [
    "END_EFFECTOR_EQUIVALENT_BODY_NAME",
    "build_control_model",
]


###
# Constants
###

END_EFFECTOR_EQUIVALENT_BODY_NAME = "end_effector_equivalent"
"""The name of the body lumping the end effector in the control model."""


###
# Builders
###


def build_control_model(
    registry: ModelRegistry,
    gravity: GravityDescriptor,
    device: Devicelike = None,
) -> WorldModel:
    """
    Builds and finalizes the control model of a finalized registry.

    Args:
        registry (ModelRegistry): The finalized registry of the station.
        gravity (GravityDescriptor): The gravity of the station world.
        device (Devicelike): The device of the control model kinematics.

    Returns:
        WorldModel: A finalized model whose degrees of freedom are exactly those of the manipulator.
    """
    if not registry.is_finalized:
        raise RuntimeError(
            f"The control model requires a finalized registry, but the registry is in state {registry.state}."
        )
    manipulator = registry.manipulator
    end_effector = registry.end_effector

    # Load the manipulator and anchor it as in the station
    model = WorldModel(gravity=gravity, device=device)
    instance = model.add_model(manipulator.description)
    model.weld_frames(model.world_frame, model.get_frame(manipulator.child_frame.name, instance), manipulator.X_PC)

    # Lump the end effector into a single body whose origin is its attachment frame
    composite = make_composite_body_inertia(end_effector.description, end_effector.child_frame.name)
    body = model.add_rigid_body(END_EFFECTOR_EQUIVALENT_BODY_NAME, composite, instance)
    model.weld_frames(
        model.get_frame(end_effector.parent_frame.name, instance),
        model.get_frame(END_EFFECTOR_EQUIVALENT_BODY_NAME, instance),
        end_effector.X_PC,
    )
    model.finalize()
    msg.info(
        f"Built control model of '{manipulator.description.name}' with {model.num_velocities()} DoFs "
        f"and an end-effector equivalent body {body} of mass {composite.mass}."
    )
    return model
