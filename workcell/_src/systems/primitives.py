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
WORKCELL: Systems: Primitive Blocks
"""

from __future__ import annotations

import numpy as np

from .framework import Block, BlockContext, NetworkContext

###
# Module interface
###

__all__ = [
    "Adder",
    "Demultiplexer",
    "PassThrough",
    "StateInterpolatorWithDiscreteDerivative",
]


###
# Blocks
###


def _as_vector(value, size: int, name: str) -> np.ndarray:
    value = np.asarray(value, dtype=np.float64).reshape(-1)
    if value.size != size:
        raise ValueError(f"Signal '{name}' must have size {size}, but has size {value.size}.")
    return value


class PassThrough(Block):
    """Copies its input ``u`` to its output ``y``."""

    def __init__(self, name: str, size: int):
        super().__init__(name)
        self._size = size
        self.declare_input_port("u", size)
        self.declare_output_port("y", self._calc_output, size)

    def _calc_output(self, ctx: BlockContext) -> np.ndarray:
        return _as_vector(ctx.eval_input("u"), self._size, "u").copy()


class Demultiplexer(Block):
    """Splits its input ``u`` into consecutive outputs ``y0, y1, ...`` of the given sizes."""

    def __init__(self, name: str, output_sizes: list[int]):
        super().__init__(name)
        if len(output_sizes) == 0 or any(s <= 0 for s in output_sizes):
            raise ValueError(f"Output sizes must be positive, but got {output_sizes}.")
        self._size = int(sum(output_sizes))
        self._offsets = np.cumsum([0, *output_sizes])
        self.declare_input_port("u", self._size)
        for i, size in enumerate(output_sizes):
            self.declare_output_port(f"y{i}", self._make_calc(i), size)

    def _make_calc(self, i: int):
        start, end = int(self._offsets[i]), int(self._offsets[i + 1])

        def calc(ctx: BlockContext) -> np.ndarray:
            return _as_vector(ctx.eval_input("u"), self._size, "u")[start:end].copy()

        return calc


class Adder(Block):
    """Sums its inputs ``u0, u1, ...`` into its output ``sum``."""

    def __init__(self, name: str, num_inputs: int, size: int):
        super().__init__(name)
        if num_inputs < 1:
            raise ValueError(f"An adder needs at least one input, but got {num_inputs}.")
        self._size = size
        self._num_inputs = num_inputs
        for i in range(num_inputs):
            self.declare_input_port(f"u{i}", size)
        self.declare_output_port("sum", self._calc_sum, size)

    def _calc_sum(self, ctx: BlockContext) -> np.ndarray:
        total = np.zeros(self._size)
        for i in range(self._num_inputs):
            total += _as_vector(ctx.eval_input(f"u{i}"), self._size, f"u{i}")
        return total


class StateInterpolatorWithDiscreteDerivative(Block):
    """
    Turns a position signal into a ``[position; velocity]`` state signal.

    The velocity is the finite difference between the current input and
    the input latched at the previous discrete update. Unless re-initialized
    with :meth:`set_initial_position`, the first output after a jump of the
    input carries a large velocity transient.
    """

    def __init__(self, name: str, size: int, time_step: float):
        super().__init__(name)
        if time_step <= 0.0:
            raise ValueError(f"Time step must be positive, but got {time_step}.")
        self._size = size
        self._time_step = float(time_step)
        self.declare_input_port("position", size)
        self.declare_output_port("state", self._calc_state, 2 * size)

    @property
    def time_step(self) -> float:
        return self._time_step

    def create_default_state(self) -> np.ndarray:
        return np.zeros(self._size)

    def calc_next_state(self, ctx: BlockContext) -> np.ndarray:
        return _as_vector(ctx.eval_input("position"), self._size, "position").copy()

    def _calc_state(self, ctx: BlockContext) -> np.ndarray:
        position = _as_vector(ctx.eval_input("position"), self._size, "position")
        velocity = (position - ctx.state) / self._time_step
        return np.concatenate([position, velocity])

    def set_initial_position(self, context: NetworkContext, position: np.ndarray):
        """Re-initializes the latched position so that a constant input yields a zero velocity."""
        context.block_states[self.name] = _as_vector(position, self._size, "position").copy()
