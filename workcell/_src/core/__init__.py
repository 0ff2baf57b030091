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
WORKCELL: Core Module
"""

from .gravity import GRAVITY_ACCEL_DEFAULT, GRAVITY_DIREC_DEFAULT, GRAVITY_NAME_DEFAULT, GravityDescriptor
from .inertia import (
    SpatialInertia,
    compose,
    reexpress,
    shift,
    solid_cuboid_body_moment_of_inertia,
    solid_cylinder_body_moment_of_inertia,
    solid_sphere_body_moment_of_inertia,
)
from .math import make_transform
from .types import Descriptor

###
# Module interface
###

__all__ = [
    "GRAVITY_ACCEL_DEFAULT",
    "GRAVITY_DIREC_DEFAULT",
    "GRAVITY_NAME_DEFAULT",
    "Descriptor",
    "GravityDescriptor",
    "SpatialInertia",
    "compose",
    "make_transform",
    "reexpress",
    "shift",
    "solid_cuboid_body_moment_of_inertia",
    "solid_cylinder_body_moment_of_inertia",
    "solid_sphere_body_moment_of_inertia",
]
