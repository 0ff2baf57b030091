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
# core
# ==================================================================================
from ._src.core import (
    GravityDescriptor,
    SpatialInertia,
    compose,
    make_transform,
    reexpress,
    shift,
)
from ._version import __version__

__all__ = [
    "GravityDescriptor",
    "SpatialInertia",
    "__version__",
    "compose",
    "make_transform",
    "reexpress",
    "shift",
]

# ==================================================================================
# sim
# ==================================================================================
from ._src.sim import (  # noqa: E402
    FrameHandle,
    JointType,
    ModelDescription,
    WorldModel,
    WorldState,
    make_composite_body_inertia,
)

__all__ += [
    "FrameHandle",
    "JointType",
    "ModelDescription",
    "WorldModel",
    "WorldState",
    "make_composite_body_inertia",
]

# ==================================================================================
# systems
# ==================================================================================
from ._src.systems import (  # noqa: E402
    CameraProperties,
    Network,
    NetworkContext,
    NullRenderer,
    Renderer,
)

__all__ += [
    "CameraProperties",
    "Network",
    "NetworkContext",
    "NullRenderer",
    "Renderer",
]

# ==================================================================================
# station
# ==================================================================================
from ._src.station import (  # noqa: E402
    EndEffectorGains,
    ManipulatorGains,
    ModelRegistry,
    RegistryState,
    Workcell,
    WorkcellConfig,
)

__all__ += [
    "EndEffectorGains",
    "ManipulatorGains",
    "ModelRegistry",
    "RegistryState",
    "Workcell",
    "WorkcellConfig",
]

# ==================================================================================
# submodule APIs
# ==================================================================================
from . import models, utils  # noqa: E402

__all__ += [
    "models",
    "utils",
]
