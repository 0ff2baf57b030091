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

"""Inverse-Dynamics Controller Interfaces"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import warp as wp
from warp.context import Devicelike

from ..core.types import FloatArrayLike
from ..sim.dynamics import calc_inverse_dynamics
from ..sim.world import WorldModel
from .framework import Block, BlockContext

###
# Module interface
###

__all__ = [
    "InverseDynamicsController",
    "PIDControllerData",
    "compute_jointspace_pid_acceleration",
    "update_jointspace_pid_integrator",
]


###
# Module configs
###

wp.set_module_options({"enable_backward": False})


###
# Types
###


@dataclass
class PIDControllerData:
    """A data container for joint-space PID controller gains."""

    K_p: wp.array | None = None
    """The proportional gains."""
    K_i: wp.array | None = None
    """The integral gains."""
    K_d: wp.array | None = None
    """The derivative gains."""

    @staticmethod
    def from_gains(
        K_p: FloatArrayLike, K_i: FloatArrayLike, K_d: FloatArrayLike, device: Devicelike = None
    ) -> PIDControllerData:
        """Creates the gain arrays, checking that all gains are non-negative and of equal length."""
        K_p = np.asarray(K_p, dtype=np.float32).reshape(-1)
        K_i = np.asarray(K_i, dtype=np.float32).reshape(-1)
        K_d = np.asarray(K_d, dtype=np.float32).reshape(-1)
        if K_i.size != K_p.size:
            raise ValueError(f"K_i must have length {K_p.size}, but has length {K_i.size}.")
        if K_d.size != K_p.size:
            raise ValueError(f"K_d must have length {K_p.size}, but has length {K_d.size}.")
        for name, K in (("K_p", K_p), ("K_i", K_i), ("K_d", K_d)):
            if np.any(K < 0.0):
                raise ValueError(f"{name} must be non-negative, but got {K}.")
        return PIDControllerData(
            K_p=wp.array(K_p, dtype=wp.float32, device=device),
            K_i=wp.array(K_i, dtype=wp.float32, device=device),
            K_d=wp.array(K_d, dtype=wp.float32, device=device),
        )

    @property
    def num_dofs(self) -> int:
        return self.K_p.shape[0]


###
# Kernels
###


@wp.kernel
def _compute_jointspace_pid_acceleration(
    # Inputs
    q_j: wp.array(dtype=wp.float32),
    dq_j: wp.array(dtype=wp.float32),
    q_j_ref: wp.array(dtype=wp.float32),
    dq_j_ref: wp.array(dtype=wp.float32),
    integrator: wp.array(dtype=wp.float32),
    controller_K_p: wp.array(dtype=wp.float32),
    controller_K_i: wp.array(dtype=wp.float32),
    controller_K_d: wp.array(dtype=wp.float32),
    # Outputs
    ddq_j_c: wp.array(dtype=wp.float32),
):
    # Retrieve the the DoF index from the thread indices
    dof = wp.tid()

    # Compute the tracking errors
    q_j_err = q_j_ref[dof] - q_j[dof]
    dq_j_err = dq_j_ref[dof] - dq_j[dof]

    # Compute the PID commanded accelerations
    ddq_j_c[dof] = (
        controller_K_p[dof] * q_j_err + controller_K_d[dof] * dq_j_err + controller_K_i[dof] * integrator[dof]
    )


@wp.kernel
def _update_jointspace_pid_integrator(
    # Inputs
    dt: wp.float32,
    q_j: wp.array(dtype=wp.float32),
    q_j_ref: wp.array(dtype=wp.float32),
    # Outputs
    integrator: wp.array(dtype=wp.float32),
):
    # Retrieve the the DoF index from the thread indices
    dof = wp.tid()

    # Integrate the position tracking error
    integrator[dof] = integrator[dof] + (q_j_ref[dof] - q_j[dof]) * dt


###
# Launchers
###


def _to_float32_array(values: np.ndarray, device: Devicelike) -> wp.array:
    return wp.array(np.asarray(values, dtype=np.float32).reshape(-1), dtype=wp.float32, device=device)


def compute_jointspace_pid_acceleration(
    controller: PIDControllerData,
    q_j: np.ndarray,
    dq_j: np.ndarray,
    q_j_ref: np.ndarray,
    dq_j_ref: np.ndarray,
    integrator: np.ndarray,
    device: Devicelike = None,
) -> np.ndarray:
    """
    A kernel launcher to compute the joint-space PID commanded accelerations.
    """
    n = controller.num_dofs
    ddq_j_c = wp.zeros(n, dtype=wp.float32, device=device)
    wp.launch(
        _compute_jointspace_pid_acceleration,
        dim=n,
        inputs=[
            # Inputs
            _to_float32_array(q_j, device),
            _to_float32_array(dq_j, device),
            _to_float32_array(q_j_ref, device),
            _to_float32_array(dq_j_ref, device),
            _to_float32_array(integrator, device),
            controller.K_p,
            controller.K_i,
            controller.K_d,
            # Outputs
            ddq_j_c,
        ],
        device=device,
    )
    return ddq_j_c.numpy().astype(np.float64)


def update_jointspace_pid_integrator(
    dt: float,
    q_j: np.ndarray,
    q_j_ref: np.ndarray,
    integrator: np.ndarray,
    device: Devicelike = None,
) -> np.ndarray:
    """
    A kernel launcher to advance the integral of the position tracking error by one step.
    """
    integrator_wp = _to_float32_array(integrator, device)
    wp.launch(
        _update_jointspace_pid_integrator,
        dim=integrator_wp.shape[0],
        inputs=[
            # Inputs
            float(dt),
            _to_float32_array(q_j, device),
            _to_float32_array(q_j_ref, device),
            # Outputs
            integrator_wp,
        ],
        device=device,
    )
    return integrator_wp.numpy().astype(np.float64)


###
# Interfaces
###


class InverseDynamicsController(Block):
    """
    A joint-space inverse-dynamics controller with PID feedback.

    The PID law produces commanded accelerations which are mapped to
    generalized forces through the inverse dynamics of a private control
    model, which also compensates gravity.

    Inputs:
        ``estimated_state``: ``[q; v]`` of the controlled model.
        ``desired_state``: ``[q_d; v_d]`` of the controlled model.

    Outputs:
        ``control``: the generalized forces of the controlled model.
    """

    def __init__(
        self,
        name: str,
        control_model: WorldModel,
        K_p: FloatArrayLike,
        K_i: FloatArrayLike,
        K_d: FloatArrayLike,
        time_step: float,
        device: Devicelike = None,
    ):
        """
        Initializes the controller.

        Args:
            name (str): The name of the block.
            control_model (WorldModel): The finalized model used for the inverse dynamics.
            K_p (FloatArrayLike): Proportional gains per degree of freedom.
            K_i (FloatArrayLike): Integral gains per degree of freedom.
            K_d (FloatArrayLike): Derivative gains per degree of freedom.
            time_step (float): The period of the discrete integral update.
            device (Devicelike): Device to use for allocations and execution.
        """
        super().__init__(name)
        if not control_model.is_finalized:
            raise RuntimeError("The control model must be finalized.")
        if time_step <= 0.0:
            raise ValueError(f"Time step must be positive, but got {time_step}.")
        self._device: Devicelike = device
        self._model: WorldModel = control_model
        self._time_step: float = float(time_step)
        self._data: PIDControllerData = PIDControllerData.from_gains(K_p, K_i, K_d, device=device)

        # Check that the gains match the control model
        self._num_dofs: int = control_model.num_velocities()
        if self._data.num_dofs != self._num_dofs:
            raise ValueError(f"K_p must have length {self._num_dofs}, but has length {self._data.num_dofs}.")

        # Declare the ports
        self.declare_input_port("estimated_state", 2 * self._num_dofs)
        self.declare_input_port("desired_state", 2 * self._num_dofs)
        self.declare_output_port("control", self._calc_control, self._num_dofs)

    ###
    # Properties
    ###

    @property
    def control_model(self) -> WorldModel:
        return self._model

    @property
    def data(self) -> PIDControllerData:
        return self._data

    @property
    def num_dofs(self) -> int:
        return self._num_dofs

    ###
    # Operations
    ###

    def _split_inputs(self, ctx: BlockContext) -> tuple[np.ndarray, ...]:
        n = self._num_dofs
        x = np.asarray(ctx.eval_input("estimated_state"), dtype=np.float64).reshape(-1)
        x_d = np.asarray(ctx.eval_input("desired_state"), dtype=np.float64).reshape(-1)
        return x[:n], x[n:], x_d[:n], x_d[n:]

    def create_default_state(self) -> np.ndarray:
        return np.zeros(self._num_dofs)

    def calc_next_state(self, ctx: BlockContext) -> np.ndarray:
        q, _, q_d, _ = self._split_inputs(ctx)
        return update_jointspace_pid_integrator(self._time_step, q, q_d, ctx.state, device=self._device)

    def _calc_control(self, ctx: BlockContext) -> np.ndarray:
        q, v, q_d, v_d = self._split_inputs(ctx)
        vd_c = compute_jointspace_pid_acceleration(self._data, q, v, q_d, v_d, ctx.state, device=self._device)
        return calc_inverse_dynamics(self._model, q, v, vd_c)
