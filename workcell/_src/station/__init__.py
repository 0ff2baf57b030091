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
WORKCELL: Station Module
"""

from .assembler import (
    INPUT_PORT_NAMES,
    OUTPUT_PORT_NAMES,
    AssemblerState,
    NetworkAssembler,
    camera_output_port_names,
)
from .config import WorkcellConfig
from .control_model import END_EFFECTOR_EQUIVALENT_BODY_NAME, build_control_model
from .registry import (
    AttachmentDescriptor,
    EndEffectorGains,
    ManipulatorGains,
    ModelRegistry,
    RegistryState,
    SensorDescriptor,
)
from .workcell import Workcell


__all__ = [
    "END_EFFECTOR_EQUIVALENT_BODY_NAME",
    "INPUT_PORT_NAMES",
    "OUTPUT_PORT_NAMES",
    "AssemblerState",
    "AttachmentDescriptor",
    "EndEffectorGains",
    "ManipulatorGains",
    "ModelRegistry",
    "NetworkAssembler",
    "RegistryState",
    "SensorDescriptor",
    "Workcell",
    "WorkcellConfig",
    "build_control_model",
    "camera_output_port_names",
]
