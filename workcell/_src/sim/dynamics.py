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
WORKCELL: Simulation: Inverse Dynamics

Implements the recursive Newton-Euler algorithm over a finalized
:class:`WorldModel`, in double precision on the host.

Spatial vectors use the ``[angular; linear]`` ordering, and every
body quantity is expressed in the body frame about the body origin.
Gravity is accounted for by accelerating the world body upwards.
"""

from __future__ import annotations

import numpy as np

from ..core.inertia import SpatialInertia
from ..core.math import skew, transform_to_numpy
from .world import WORLD_BODY_INDEX, WorldModel

###
# Module interface
###

__all__ = [
    "calc_gravity_generalized_forces",
    "calc_inverse_dynamics",
    "motion_transform",
    "spatial_inertia_matrix",
]


###
# Spatial algebra
###


def motion_transform(R_PC: np.ndarray, p_PC: np.ndarray) -> np.ndarray:
    """Returns the ``(6, 6)`` transform of motion vectors from frame P coordinates to frame C coordinates."""
    E = R_PC.T
    X = np.zeros((6, 6))
    X[0:3, 0:3] = E
    X[3:6, 0:3] = -E @ skew(p_PC)
    X[3:6, 3:6] = E
    return X


def spatial_inertia_matrix(inertia: SpatialInertia) -> np.ndarray:
    """Returns the ``(6, 6)`` spatial inertia matrix of a body about its origin."""
    m = inertia.mass
    S_c = skew(inertia.center_of_mass)
    M = np.zeros((6, 6))
    M[0:3, 0:3] = inertia.rotational_inertia
    M[0:3, 3:6] = m * S_c
    M[3:6, 0:3] = m * S_c.T
    M[3:6, 3:6] = m * np.eye(3)
    return M


def _cross_motion(V: np.ndarray) -> np.ndarray:
    S_w = skew(V[0:3])
    X = np.zeros((6, 6))
    X[0:3, 0:3] = S_w
    X[3:6, 0:3] = skew(V[3:6])
    X[3:6, 3:6] = S_w
    return X


###
# Algorithms
###


def calc_inverse_dynamics(world: WorldModel, q: np.ndarray, v: np.ndarray, vd: np.ndarray) -> np.ndarray:
    """
    Computes the generalized forces realizing the given accelerations.

    Args:
        world (WorldModel): A finalized world model.
        q (np.ndarray): The generalized coordinates, shape ``(num_positions,)``.
        v (np.ndarray): The generalized velocities, shape ``(num_velocities,)``.
        vd (np.ndarray): The desired generalized accelerations, shape ``(num_velocities,)``.

    Returns:
        np.ndarray: The generalized forces, shape ``(num_velocities,)``, including gravity compensation.
    """
    nv = world.num_velocities()
    q = np.asarray(q, dtype=np.float64).reshape(-1)
    v = np.asarray(v, dtype=np.float64).reshape(-1)
    vd = np.asarray(vd, dtype=np.float64).reshape(-1)
    if q.size != nv or v.size != nv or vd.size != nv:
        raise ValueError(f"Expected vectors of size {nv}, but got {q.size}, {v.size} and {vd.size}.")

    nb = world.num_bodies
    V = np.zeros((nb, 6))
    A = np.zeros((nb, 6))
    F = np.zeros((nb, 6))
    A[WORLD_BODY_INDEX, 3:6] = -world.gravity.vector()

    # Forward pass: body velocities, accelerations and net forces
    joints = world.topological_joints
    X_up: dict[int, np.ndarray] = {}
    S_j: dict[int, np.ndarray] = {}
    for joint in joints:
        i, p = joint.child_body, joint.parent_body
        idx = joint.dof_indices
        q_j = q[idx[0]] if idx else 0.0
        R_PC, p_PC = transform_to_numpy(joint.calc_relative_transform(q_j))
        X = motion_transform(R_PC, p_PC)
        S = joint.calc_motion_subspace()
        V_J = S @ v[idx]
        V[i] = X @ V[p] + V_J
        A[i] = X @ A[p] + S @ vd[idx] + _cross_motion(V[i]) @ V_J
        M = spatial_inertia_matrix(world.get_body_inertia(i))
        F[i] = M @ A[i] - _cross_motion(V[i]).T @ (M @ V[i])
        X_up[i] = X
        S_j[i] = S

    # Backward pass: project the forces onto the joint axes
    tau = np.zeros(nv)
    for joint in reversed(joints):
        i, p = joint.child_body, joint.parent_body
        idx = joint.dof_indices
        if idx:
            tau[idx] = S_j[i].T @ F[i]
        F[p] += X_up[i].T @ F[i]
    return tau


def calc_gravity_generalized_forces(world: WorldModel, q: np.ndarray) -> np.ndarray:
    """Returns the generalized forces exerted by gravity at rest, ``tau_g(q)``."""
    nv = world.num_velocities()
    return -calc_inverse_dynamics(world, q, np.zeros(nv), np.zeros(nv))
