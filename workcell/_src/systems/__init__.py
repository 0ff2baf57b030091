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
WORKCELL: Systems Module
"""

from .controllers import InverseDynamicsController, PIDControllerData
from .end_effector import EndEffectorPositionController, EndEffectorStateConverter
from .framework import Block, BlockContext, InputPort, Network, NetworkBuilder, NetworkContext, OutputPort
from .primitives import Adder, Demultiplexer, PassThrough, StateInterpolatorWithDiscreteDerivative
from .sensors import CameraProperties, Fidelity, NullRenderer, Renderer, RgbdCamera
from .world_block import WorldModelBlock

###
# Module interface
###

__all__ = [
    "Adder",
    "Block",
    "BlockContext",
    "CameraProperties",
    "Demultiplexer",
    "EndEffectorPositionController",
    "EndEffectorStateConverter",
    "Fidelity",
    "InputPort",
    "InverseDynamicsController",
    "Network",
    "NetworkBuilder",
    "NetworkContext",
    "NullRenderer",
    "OutputPort",
    "PIDControllerData",
    "PassThrough",
    "Renderer",
    "RgbdCamera",
    "StateInterpolatorWithDiscreteDerivative",
    "WorldModelBlock",
]
