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
WORKCELL: Systems: World Block

Wraps a finalized :class:`WorldModel` as a signal-flow block. The block
state is the :class:`WorldState` of the world, which is advanced by the
integrator driving the network and read by the block outputs. The
actuation inputs are exposed so that the driver can apply them.
"""

from __future__ import annotations

import numpy as np
import warp as wp

from ..core.math import transform_from_numpy
from ..sim.state import WorldState
from ..sim.world import WorldModel
from .framework import Block, BlockContext

###
# Module interface
###

__all__ = [
    "WorldModelBlock",
]


###
# Blocks
###


class WorldModelBlock(Block):
    """
    The signal-flow view of a world model.

    Per model instance ``<name>`` with degrees of freedom, the block has
    an ``<name>_actuation`` input and the ``<name>_state`` and
    ``<name>_generalized_contact_forces`` outputs. World-wide outputs are
    ``continuous_state``, ``geometry_poses``, ``pose_bundle`` and
    ``contact_results``.
    """

    def __init__(self, name: str, world: WorldModel):
        super().__init__(name)
        if not world.is_finalized:
            raise RuntimeError("The world model must be finalized before it can be wrapped in a block.")
        self._world = world

        # Per-instance ports
        for instance in range(world.num_model_instances):
            n = world.num_velocities(instance)
            if n == 0:
                continue
            instance_name = world.get_model_instance_name(instance)
            self.declare_input_port(f"{instance_name}_actuation", n)
            self.declare_output_port(f"{instance_name}_state", self._make_state_calc(instance), 2 * n)
            self.declare_output_port(
                f"{instance_name}_generalized_contact_forces", self._make_contact_forces_calc(instance), n
            )

        # World-wide ports
        nx = 2 * world.num_positions()
        self.declare_output_port("continuous_state", self._calc_continuous_state, nx)
        self.declare_output_port("geometry_poses", self._calc_geometry_poses)
        self.declare_output_port("pose_bundle", self._calc_pose_bundle)
        self.declare_output_port("contact_results", self._calc_contact_results)

    @property
    def world(self) -> WorldModel:
        return self._world

    def create_default_state(self) -> WorldState:
        return self._world.create_default_state()

    def get_actuation_input_name(self, instance: int) -> str:
        return f"{self._world.get_model_instance_name(instance)}_actuation"

    def get_state_output_name(self, instance: int) -> str:
        return f"{self._world.get_model_instance_name(instance)}_state"

    def get_contact_forces_output_name(self, instance: int) -> str:
        return f"{self._world.get_model_instance_name(instance)}_generalized_contact_forces"

    ###
    # Outputs
    ###

    def _make_state_calc(self, instance: int):
        def calc(ctx: BlockContext) -> np.ndarray:
            return self._world.get_instance_state(ctx.state, instance)

        return calc

    def _make_contact_forces_calc(self, instance: int):
        def calc(ctx: BlockContext) -> np.ndarray:
            return self._world.get_generalized_contact_forces(ctx.state, instance)

        return calc

    def _calc_continuous_state(self, ctx: BlockContext) -> np.ndarray:
        return self._world.get_continuous_state(ctx.state)

    def _calc_geometry_poses(self, ctx: BlockContext) -> wp.array:
        return self._world.calc_body_poses(ctx.state)

    def _calc_pose_bundle(self, ctx: BlockContext) -> dict[str, wp.transform]:
        """Returns the world pose of every body keyed by ``<instance>::<body>``."""
        poses = self._world.calc_body_poses(ctx.state).numpy()
        bundle = {}
        for body in range(self._world.num_bodies):
            instance = self._world.get_model_instance_name(self._world.get_body_instance(body))
            bundle[f"{instance}::{self._world.get_body_name(body)}"] = transform_from_numpy(poses[body])
        return bundle

    def _calc_contact_results(self, ctx: BlockContext) -> list:
        return list(ctx.state.contact_results)
