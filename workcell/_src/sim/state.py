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

"""Defines the time-varying state container of a :class:`WorldModel`."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import numpy as np

###
# Module interface
###

__all__ = [
    "WorldState",
]


###
# Types
###


@dataclass
class WorldState:
    """
    The time-varying state of a world model.

    The generalized coordinates and velocities of all joints
    are stored contiguously, in the order assigned when the
    world model was finalized.
    """

    q: np.ndarray = field(default_factory=lambda: np.zeros(0))
    """
    The generalized coordinates of the world.\n
    Shape of ``(num_positions,)`` and type :class:`float64`.
    """

    v: np.ndarray = field(default_factory=lambda: np.zeros(0))
    """
    The generalized velocities of the world.\n
    Shape of ``(num_velocities,)`` and type :class:`float64`.
    """

    time: float = 0.0
    """The simulation time of the state, in seconds."""

    generalized_contact_forces: np.ndarray = field(default_factory=lambda: np.zeros(0))
    """
    The generalized forces due to contact, as reported by the integrator driving the world.\n
    Shape of ``(num_velocities,)`` and type :class:`float64`.
    """

    contact_results: list[Any] = field(default_factory=list)
    """The contact pairs reported by the integrator driving the world."""

    def copy(self) -> WorldState:
        """Returns a deep copy of the state."""
        return WorldState(
            q=self.q.copy(),
            v=self.v.copy(),
            time=self.time,
            generalized_contact_forces=self.generalized_contact_forces.copy(),
            contact_results=list(self.contact_results),
        )
