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

# ==================================================================================
# default station models
# ==================================================================================
from ._src.models.station import (
    X_7G,
    X_WCupboard,
    X_WTable,
    build_arm,
    build_cupboard,
    build_gripper,
    build_table,
    make_default_camera_poses,
    make_default_camera_properties,
)

__all__ = [
    "X_7G",
    "X_WCupboard",
    "X_WTable",
    "build_arm",
    "build_cupboard",
    "build_gripper",
    "build_table",
    "make_default_camera_poses",
    "make_default_camera_properties",
]
