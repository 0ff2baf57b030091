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
WORKCELL: Simulation: Forward Kinematics

Evaluates the world poses of all bodies of a finalized world
model from its generalized coordinates. The joints are
traversed in topological order so that every parent pose
is available before the poses of its children.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import warp as wp

from .description import JointType

###
# Module interface
###

__all__ = [
    "KinematicTree",
    "compute_body_poses",
]


###
# Module configs
###

wp.set_module_options({"enable_backward": False})


###
# Types
###


@dataclass
class KinematicTree:
    """
    A container to hold the device-side description of a kinematic tree.

    All per-joint arrays are ordered topologically.
    """

    num_bodies: int = 0
    """The number of bodies of the tree, including the world body at index zero."""

    num_joints: int = 0
    """The number of joints of the tree."""

    joint_type: wp.array | None = None
    """
    The type of each joint.\n
    Shape of ``(num_joints,)`` and type :class:`int32`.
    """

    joint_parent: wp.array | None = None
    """
    The parent body index of each joint.\n
    Shape of ``(num_joints,)`` and type :class:`int32`.
    """

    joint_child: wp.array | None = None
    """
    The child body index of each joint.\n
    Shape of ``(num_joints,)`` and type :class:`int32`.
    """

    joint_q_start: wp.array | None = None
    """
    The index of the coordinate of each joint, ``-1`` for welds.\n
    Shape of ``(num_joints,)`` and type :class:`int32`.
    """

    joint_X_PJ: wp.array | None = None
    """
    The pose of each joint frame in its parent body frame.\n
    Shape of ``(num_joints,)`` and type :class:`transform`.
    """

    joint_X_CJ: wp.array | None = None
    """
    The pose of each joint frame in its child body frame.\n
    Shape of ``(num_joints,)`` and type :class:`transform`.
    """

    joint_axis: wp.array | None = None
    """
    The unit axis of each joint in its joint frame.\n
    Shape of ``(num_joints,)`` and type :class:`vec3`.
    """

    device: wp.context.Devicelike = None
    """The device on which the arrays are allocated."""

    @staticmethod
    def from_joints(num_bodies: int, joints: list, device: wp.context.Devicelike = None) -> KinematicTree:
        """
        Creates the kinematic tree from a list of joints sorted in topological order.

        Args:
            num_bodies (int): The number of bodies including the world body.
            joints (list[Joint]): The joints of the world model in topological order.
            device (Devicelike): The device on which to allocate the arrays.
        """
        tree = KinematicTree(num_bodies=num_bodies, num_joints=len(joints), device=device)
        tree.joint_type = wp.array([int(j.joint_type) for j in joints], dtype=wp.int32, device=device)
        tree.joint_parent = wp.array([j.parent_body for j in joints], dtype=wp.int32, device=device)
        tree.joint_child = wp.array([j.child_body for j in joints], dtype=wp.int32, device=device)
        tree.joint_q_start = wp.array([j.q_start for j in joints], dtype=wp.int32, device=device)
        tree.joint_X_PJ = wp.array([j.X_PJ for j in joints], dtype=wp.transform, device=device)
        tree.joint_X_CJ = wp.array([j.X_CJ for j in joints], dtype=wp.transform, device=device)
        tree.joint_axis = wp.array([wp.vec3(*j.axis) for j in joints], dtype=wp.vec3, device=device)
        return tree


###
# Kernels
###


@wp.kernel
def _compute_body_poses(
    # Inputs:
    num_joints: wp.int32,
    joint_type: wp.array(dtype=wp.int32),
    joint_parent: wp.array(dtype=wp.int32),
    joint_child: wp.array(dtype=wp.int32),
    joint_q_start: wp.array(dtype=wp.int32),
    joint_X_PJ: wp.array(dtype=wp.transform),
    joint_X_CJ: wp.array(dtype=wp.transform),
    joint_axis: wp.array(dtype=wp.vec3),
    q: wp.array(dtype=wp.float32),
    # Outputs:
    body_q: wp.array(dtype=wp.transform),
):
    # The world body is the root of the tree
    body_q[0] = wp.transform_identity()

    # Traverse the joints sequentially since each pose depends on its parent
    for j in range(num_joints):
        j_type = joint_type[j]
        X_J = wp.transform_identity()
        if j_type == JointType.REVOLUTE:
            X_J = wp.transform(wp.vec3(0.0), wp.quat_from_axis_angle(joint_axis[j], q[joint_q_start[j]]))
        if j_type == JointType.PRISMATIC:
            X_J = wp.transform(joint_axis[j] * q[joint_q_start[j]], wp.quat_identity())

        # Compose the parent pose with the pose across the joint
        X_WP = body_q[joint_parent[j]]
        X_PC = wp.transform_multiply(wp.transform_multiply(joint_X_PJ[j], X_J), wp.transform_inverse(joint_X_CJ[j]))
        body_q[joint_child[j]] = wp.transform_multiply(X_WP, X_PC)


###
# Launchers
###


def compute_body_poses(tree: KinematicTree, q: np.ndarray, body_q: wp.array | None = None) -> wp.array:
    """
    Computes the world poses of all bodies of a kinematic tree.

    Args:
        tree (KinematicTree): The kinematic tree.
        q (np.ndarray): The generalized coordinates of the world.
        body_q (wp.array | None): Optional output array of shape ``(num_bodies,)``
            and type :class:`transform`, allocated when not provided.

    Returns:
        wp.array: The world pose of each body, indexed by body.
    """
    # Allocate the output array if needed
    if body_q is None:
        body_q = wp.empty(tree.num_bodies, dtype=wp.transform, device=tree.device)
    elif body_q.shape[0] != tree.num_bodies:
        raise ValueError(f"Output array must have shape ({tree.num_bodies},), but has {body_q.shape}.")

    # A tree without joints only holds the world body
    if tree.num_joints == 0:
        body_q.fill_(wp.transform_identity())
        return body_q

    # Upload the coordinates, padding the empty case to keep a valid array
    q = np.asarray(q, dtype=np.float32).reshape(-1)
    if q.size == 0:
        q = np.zeros(1, dtype=np.float32)
    q_wp = wp.array(q, dtype=wp.float32, device=tree.device)

    wp.launch(
        _compute_body_poses,
        dim=1,
        inputs=[
            # Inputs:
            tree.num_joints,
            tree.joint_type,
            tree.joint_parent,
            tree.joint_child,
            tree.joint_q_start,
            tree.joint_X_PJ,
            tree.joint_X_CJ,
            tree.joint_axis,
            q_wp,
            # Outputs:
            body_q,
        ],
        device=tree.device,
    )
    return body_q
