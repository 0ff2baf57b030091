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
WORKCELL: Systems: Parallel-Jaw End Effector

Blocks driving a two-finger parallel-jaw gripper whose fingers slide on
two prismatic joints, the left one moving along negative coordinates and
the right one along positive coordinates. The commanded quantity is the
finger separation ``q_right - q_left``.
"""

from __future__ import annotations

import numpy as np

from .framework import Block, BlockContext, NetworkContext

###
# Module interface
###

__all__ = [
    "CONSTRAINT_KD_DEFAULT",
    "CONSTRAINT_KP_DEFAULT",
    "FORCE_LIMIT_DEFAULT",
    "EndEffectorPositionController",
    "EndEffectorStateConverter",
]


###
# Constants
###

CONSTRAINT_KP_DEFAULT = 2000.0
"""The default stiffness keeping the fingers centered on the gripper body."""

CONSTRAINT_KD_DEFAULT = 5.0
"""The default damping keeping the fingers centered on the gripper body."""

FORCE_LIMIT_DEFAULT = 40.0
"""The default limit of the grip force, in N."""


###
# Blocks
###


class EndEffectorStateConverter(Block):
    """
    Maps the ``[q; v]`` state of the gripper instance to the ``[width; width_rate]`` state of the jaws.

    Args:
        name (str): The name of the block.
        num_positions (int): The number of positions of the gripper instance.
        finger_indices (tuple[int, int]): The indices of the left and right finger coordinates within the instance.
    """

    def __init__(self, name: str, num_positions: int, finger_indices: tuple[int, int]):
        super().__init__(name)
        self._n = num_positions
        self._left, self._right = finger_indices
        self.declare_input_port("state", 2 * num_positions)
        self.declare_output_port("state", self._calc_state, 2)

    def _calc_state(self, ctx: BlockContext) -> np.ndarray:
        x = np.asarray(ctx.eval_input("state"), dtype=np.float64).reshape(-1)
        q, v = x[: self._n], x[self._n :]
        return np.array([q[self._right] - q[self._left], v[self._right] - v[self._left]])


class EndEffectorPositionController(Block):
    """
    A PD controller of the finger separation with a saturated grip force.

    The fingers are kept centered by a stiff virtual spring on the sum of their
    coordinates, while the difference of the finger forces tracks the desired
    separation and is clamped to the force limit:

    - ``f_sum = -kp_c * (q_l + q_r) - kd_c * (v_l + v_r)``
    - ``f_diff = clamp(kp * (w_d - w) + kd * (w_dot_d - w_dot), -f_max, f_max)``
    - ``f_l = (f_sum - f_diff) / 2`` and ``f_r = (f_sum + f_diff) / 2``

    The desired separation rate is obtained by a discrete derivative of the
    desired separation, which must be re-initialized together with the state.

    Inputs:
        ``desired_position``: the desired separation ``w_d``.
        ``force_limit``: the maximum magnitude of the grip force ``f_max``.
        ``state``: ``[q; v]`` of the gripper instance.

    Outputs:
        ``generalized_force``: the actuation of the gripper instance.
        ``grip_force``: the magnitude of the grip force ``|f_diff|``.
    """

    def __init__(
        self,
        name: str,
        num_positions: int,
        finger_indices: tuple[int, int],
        time_step: float,
        kp_command: float,
        kd_command: float,
        kp_constraint: float = CONSTRAINT_KP_DEFAULT,
        kd_constraint: float = CONSTRAINT_KD_DEFAULT,
    ):
        super().__init__(name)
        if time_step <= 0.0:
            raise ValueError(f"Time step must be positive, but got {time_step}.")
        for gain_name, gain in (
            ("kp_command", kp_command),
            ("kd_command", kd_command),
            ("kp_constraint", kp_constraint),
            ("kd_constraint", kd_constraint),
        ):
            if gain < 0.0:
                raise ValueError(f"Gain `{gain_name}` must be non-negative, but got {gain}.")
        self._n = num_positions
        self._left, self._right = finger_indices
        self._time_step = float(time_step)
        self._kp_command = float(kp_command)
        self._kd_command = float(kd_command)
        self._kp_constraint = float(kp_constraint)
        self._kd_constraint = float(kd_constraint)
        self.declare_input_port("desired_position", 1)
        self.declare_input_port("force_limit", 1)
        self.declare_input_port("state", 2 * num_positions)
        self.declare_output_port("generalized_force", self._calc_generalized_force, num_positions)
        self.declare_output_port("grip_force", self._calc_grip_force, 1)

    @property
    def gains(self) -> tuple[float, float]:
        return self._kp_command, self._kd_command

    def create_default_state(self) -> np.ndarray:
        return np.zeros(1)

    def calc_next_state(self, ctx: BlockContext) -> np.ndarray:
        return np.asarray(ctx.eval_input("desired_position"), dtype=np.float64).reshape(1).copy()

    def set_initial_position(self, context: NetworkContext, position: float):
        """Re-initializes the latched desired separation so that a constant command yields a zero rate."""
        context.block_states[self.name] = np.array([float(position)])

    def _calc_finger_forces(self, ctx: BlockContext) -> tuple[float, float, float]:
        # Retrieve the desired separation and its rate
        w_d = float(np.asarray(ctx.eval_input("desired_position")).reshape(1)[0])
        w_dot_d = (w_d - float(ctx.state[0])) / self._time_step
        f_max = float(np.asarray(ctx.eval_input("force_limit")).reshape(1)[0])
        if f_max <= 0.0:
            raise ValueError(f"Force limit must be positive, but got {f_max}.")

        # Retrieve the finger coordinates
        x = np.asarray(ctx.eval_input("state"), dtype=np.float64).reshape(-1)
        q, v = x[: self._n], x[self._n :]
        q_l, q_r = q[self._left], q[self._right]
        v_l, v_r = v[self._left], v[self._right]

        # Centering and separation forces
        f_sum = -self._kp_constraint * (q_l + q_r) - self._kd_constraint * (v_l + v_r)
        f_diff = self._kp_command * (w_d - (q_r - q_l)) + self._kd_command * (w_dot_d - (v_r - v_l))
        f_diff = float(np.clip(f_diff, -f_max, f_max))
        return 0.5 * (f_sum - f_diff), 0.5 * (f_sum + f_diff), f_diff

    def _calc_generalized_force(self, ctx: BlockContext) -> np.ndarray:
        f_l, f_r, _ = self._calc_finger_forces(ctx)
        tau = np.zeros(self._n)
        tau[self._left] = f_l
        tau[self._right] = f_r
        return tau

    def _calc_grip_force(self, ctx: BlockContext) -> np.ndarray:
        _, _, f_diff = self._calc_finger_forces(ctx)
        return np.array([abs(f_diff)])
