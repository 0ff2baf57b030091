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
WORKCELL: Simulation Module
"""

from .composite import calc_satellite_pose, make_composite_body_inertia, synthesize_composite_inertia
from .description import FrameDescriptor, JointDescriptor, JointType, ModelDescription, RigidBodyDescriptor
from .dynamics import calc_gravity_generalized_forces, calc_inverse_dynamics
from .joints import FixedJoint, Joint, PrismaticJoint, RevoluteJoint
from .kinematics import KinematicTree, compute_body_poses
from .state import WorldState
from .world import WORLD_BODY_INDEX, WORLD_BODY_NAME, WORLD_INSTANCE_INDEX, FrameHandle, WorldModel

###
# Module interface
###

__all__ = [
    "WORLD_BODY_INDEX",
    "WORLD_BODY_NAME",
    "WORLD_INSTANCE_INDEX",
    "FixedJoint",
    "FrameDescriptor",
    "FrameHandle",
    "Joint",
    "JointDescriptor",
    "JointType",
    "KinematicTree",
    "ModelDescription",
    "PrismaticJoint",
    "RevoluteJoint",
    "RigidBodyDescriptor",
    "WorldModel",
    "WorldState",
    "calc_gravity_generalized_forces",
    "calc_inverse_dynamics",
    "calc_satellite_pose",
    "compute_body_poses",
    "make_composite_body_inertia",
    "synthesize_composite_inertia",
]
