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
WORKCELL: Systems: Signal-Flow Framework

A small discrete-time signal-flow framework:

- A :class:`Block` declares named input and output ports. Outputs are
  computed on demand from the inputs and from the block's discrete state.
- A :class:`NetworkBuilder` adds blocks, connects output ports to input
  ports and exports the ports that form the outer interface.
- A :class:`Network` is the immutable result of a build. All time-varying
  values live in a :class:`NetworkContext` created by the network.

Outputs are evaluated by pulling values through the connections. A
discrete update first computes the next state of every block from the
current context, and only then commits all of them.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

import numpy as np

from ..utils import logger as msg

###
# Module interface
###

__all__ = [
    "Block",
    "BlockContext",
    "InputPort",
    "Network",
    "NetworkBuilder",
    "NetworkContext",
    "OutputPort",
]


###
# Types
###


@dataclass(frozen=True)
class InputPort:
    """An input port of a block."""

    block: str
    """The name of the block that owns the port."""

    name: str
    """The name of the port, unique within its block."""

    size: int | None = None
    """The size of the vector-valued signal, or ``None`` for abstract values."""


@dataclass(frozen=True)
class OutputPort:
    """An output port of a block."""

    block: str
    """The name of the block that owns the port."""

    name: str
    """The name of the port, unique within its block."""

    size: int | None = None
    """The size of the vector-valued signal, or ``None`` for abstract values."""


@dataclass
class NetworkContext:
    """The time-varying values of a network."""

    time: float = 0.0
    """The time of the context, in seconds."""

    block_states: dict[str, Any] = field(default_factory=dict)
    """The discrete state of every stateful block, keyed by block name."""

    fixed_inputs: dict[str, Any] = field(default_factory=dict)
    """The values fixed on the exported input ports, keyed by port name."""


class BlockContext:
    """The view of a network context offered to a single block."""

    def __init__(self, network: Network, context: NetworkContext, block: Block):
        self._network = network
        self._context = context
        self._block = block

    @property
    def time(self) -> float:
        return self._context.time

    @property
    def state(self) -> Any:
        """The discrete state of the block."""
        return self._context.block_states.get(self._block.name)

    def eval_input(self, name: str) -> Any:
        """Evaluates the value arriving at one of the block's input ports."""
        return self._network._eval_input(self._context, self._block.get_input_port(name))


###
# Blocks
###


class Block:
    """
    Base class of all signal-flow blocks.

    Subclasses declare their ports in their constructor and may override
    :meth:`create_default_state` and :meth:`calc_next_state` to hold a
    discrete state.
    """

    def __init__(self, name: str):
        if not isinstance(name, str) or len(name) == 0:
            raise ValueError(f"Block name must be a non-empty string, but got '{name}'.")
        self._name: str = name
        self._inputs: dict[str, InputPort] = {}
        self._outputs: dict[str, OutputPort] = {}
        self._calcs: dict[str, Callable[[BlockContext], Any]] = {}

    def __repr__(self):
        return f"{type(self).__name__}(name={self._name})"

    @property
    def name(self) -> str:
        return self._name

    @property
    def input_port_names(self) -> list[str]:
        return list(self._inputs.keys())

    @property
    def output_port_names(self) -> list[str]:
        return list(self._outputs.keys())

    def declare_input_port(self, name: str, size: int | None = None) -> InputPort:
        if name in self._inputs:
            raise ValueError(f"Block '{self._name}' already has an input port named '{name}'.")
        port = InputPort(block=self._name, name=name, size=size)
        self._inputs[name] = port
        return port

    def declare_output_port(
        self, name: str, calc: Callable[[BlockContext], Any], size: int | None = None
    ) -> OutputPort:
        if name in self._outputs:
            raise ValueError(f"Block '{self._name}' already has an output port named '{name}'.")
        port = OutputPort(block=self._name, name=name, size=size)
        self._outputs[name] = port
        self._calcs[name] = calc
        return port

    def get_input_port(self, name: str) -> InputPort:
        if name not in self._inputs:
            raise ValueError(f"Block '{self._name}' has no input port named '{name}'.")
        return self._inputs[name]

    def get_output_port(self, name: str) -> OutputPort:
        if name not in self._outputs:
            raise ValueError(f"Block '{self._name}' has no output port named '{name}'.")
        return self._outputs[name]

    def calc_output(self, name: str, ctx: BlockContext) -> Any:
        return self._calcs[name](ctx)

    def create_default_state(self) -> Any:
        """Returns the initial discrete state of the block, ``None`` for stateless blocks."""
        return None

    def calc_next_state(self, ctx: BlockContext) -> Any:
        """Returns the discrete state after one update, the current one by default."""
        return ctx.state


###
# Networks
###


class Network:
    """An immutable network of connected blocks with exported input and output ports."""

    def __init__(
        self,
        name: str,
        blocks: dict[str, Block],
        connections: dict[InputPort, OutputPort],
        exported_inputs: dict[str, InputPort],
        exported_outputs: dict[str, OutputPort],
        input_defaults: dict[str, Any],
    ):
        self._name = name
        self._blocks = MappingProxyType(dict(blocks))
        self._connections = MappingProxyType(dict(connections))
        self._exported_inputs = MappingProxyType(dict(exported_inputs))
        self._exported_outputs = MappingProxyType(dict(exported_outputs))
        self._input_defaults = MappingProxyType(dict(input_defaults))
        # Reverse lookup of exported input ports
        self._exported_names = MappingProxyType({port: name for name, port in exported_inputs.items()})

    def __repr__(self):
        return f"Network(name={self._name}, blocks={list(self._blocks.keys())})"

    ###
    # Properties
    ###

    @property
    def name(self) -> str:
        return self._name

    @property
    def input_port_names(self) -> list[str]:
        return list(self._exported_inputs.keys())

    @property
    def output_port_names(self) -> list[str]:
        return list(self._exported_outputs.keys())

    @property
    def block_names(self) -> list[str]:
        return list(self._blocks.keys())

    def has_input_port(self, name: str) -> bool:
        return name in self._exported_inputs

    def has_output_port(self, name: str) -> bool:
        return name in self._exported_outputs

    def get_block(self, name: str) -> Block:
        if name not in self._blocks:
            raise ValueError(f"Network '{self._name}' has no block named '{name}'.")
        return self._blocks[name]

    def get_input_port(self, name: str) -> InputPort:
        if name not in self._exported_inputs:
            raise ValueError(f"Network '{self._name}' has no input port named '{name}'.")
        return self._exported_inputs[name]

    def get_output_port(self, name: str) -> OutputPort:
        if name not in self._exported_outputs:
            raise ValueError(f"Network '{self._name}' has no output port named '{name}'.")
        return self._exported_outputs[name]

    ###
    # Contexts
    ###

    def create_context(self) -> NetworkContext:
        """Creates a context holding the default state of every block."""
        states = {}
        for name, block in self._blocks.items():
            state = block.create_default_state()
            if state is not None:
                states[name] = state
        return NetworkContext(time=0.0, block_states=states, fixed_inputs={})

    def get_block_state(self, context: NetworkContext, name: str) -> Any:
        self.get_block(name)
        return context.block_states.get(name)

    def block_context(self, context: NetworkContext, name: str) -> BlockContext:
        return BlockContext(self, context, self.get_block(name))

    def fix_input(self, context: NetworkContext, name: str, value: Any):
        """Fixes the value of an exported input port in a context."""
        port = self.get_input_port(name)
        if port.size is not None:
            value = np.asarray(value, dtype=np.float64).reshape(-1)
            if value.size != port.size:
                raise ValueError(f"Input port '{name}' expects a vector of size {port.size}, but got {value.size}.")
        context.fixed_inputs[name] = value

    ###
    # Evaluation
    ###

    def _eval_port(self, context: NetworkContext, port: OutputPort) -> Any:
        block = self._blocks[port.block]
        return block.calc_output(port.name, BlockContext(self, context, block))

    def _eval_input(self, context: NetworkContext, port: InputPort) -> Any:
        # Connected inputs pull from their source
        source = self._connections.get(port)
        if source is not None:
            return self._eval_port(context, source)
        # Exported inputs read the fixed value, or fall back to their default
        name = self._exported_names.get(port)
        if name is not None:
            if name in context.fixed_inputs:
                return context.fixed_inputs[name]
            if name in self._input_defaults:
                return self._input_defaults[name]
            raise RuntimeError(f"Input port '{name}' of network '{self._name}' has no value.")
        raise RuntimeError(f"Input port '{port.name}' of block '{port.block}' is not connected.")

    def eval_output(self, context: NetworkContext, name: str) -> Any:
        """Evaluates an exported output port of the network."""
        return self._eval_port(context, self.get_output_port(name))

    def eval_block_output(self, context: NetworkContext, block: str, port: str) -> Any:
        """Evaluates any output port of any block of the network."""
        return self._eval_port(context, self.get_block(block).get_output_port(port))

    def eval_block_input(self, context: NetworkContext, block: str, port: str) -> Any:
        """Evaluates the value arriving at any input port of any block of the network."""
        return self._eval_input(context, self.get_block(block).get_input_port(port))

    def update(self, context: NetworkContext):
        """Applies one discrete update to all blocks, all computed from the same context."""
        next_states = {}
        for name in context.block_states:
            block = self._blocks[name]
            next_states[name] = block.calc_next_state(BlockContext(self, context, block))
        context.block_states.update(next_states)


###
# Builders
###


class NetworkBuilder:
    """Incrementally assembles a :class:`Network`, and can only build once."""

    def __init__(self):
        self._blocks: dict[str, Block] = {}
        self._connections: dict[InputPort, OutputPort] = {}
        self._exported_inputs: dict[str, InputPort] = {}
        self._exported_outputs: dict[str, OutputPort] = {}
        self._input_defaults: dict[str, Any] = {}
        self._built: bool = False

    def _assert_not_built(self):
        if self._built:
            raise RuntimeError("The network has already been built by this builder.")

    def _assert_owned(self, port: InputPort | OutputPort):
        block = self._blocks.get(port.block)
        if block is None:
            raise ValueError(f"Port '{port.name}' belongs to block '{port.block}' which is not part of the network.")

    @property
    def block_names(self) -> list[str]:
        return list(self._blocks.keys())

    def add_block(self, block: Block) -> Block:
        self._assert_not_built()
        if not isinstance(block, Block):
            raise TypeError(f"Expected a `Block`, but got {type(block)}.")
        if block.name in self._blocks:
            raise ValueError(f"A block named '{block.name}' already exists.")
        self._blocks[block.name] = block
        return block

    def connect(self, source: OutputPort, destination: InputPort):
        """Connects an output port to an input port, each input accepting a single source."""
        self._assert_not_built()
        self._assert_owned(source)
        self._assert_owned(destination)
        if destination in self._connections or destination in self._exported_inputs.values():
            raise ValueError(f"Input port '{destination.name}' of block '{destination.block}' is already connected.")
        if source.size is not None and destination.size is not None and source.size != destination.size:
            raise ValueError(
                f"Cannot connect '{source.block}.{source.name}' of size {source.size} "
                f"to '{destination.block}.{destination.name}' of size {destination.size}."
            )
        self._connections[destination] = source

    def export_input(self, port: InputPort, name: str, default: Any = None) -> str:
        """Exports a block input port as a network input, with an optional default value."""
        self._assert_not_built()
        self._assert_owned(port)
        if name in self._exported_inputs:
            raise ValueError(f"An input port named '{name}' is already exported.")
        if port in self._connections or port in self._exported_inputs.values():
            raise ValueError(f"Input port '{port.name}' of block '{port.block}' is already connected.")
        self._exported_inputs[name] = port
        if default is not None:
            self._input_defaults[name] = default
        return name

    def export_output(self, port: OutputPort, name: str) -> str:
        """Exports a block output port as a network output, the same port may be exported under several names."""
        self._assert_not_built()
        self._assert_owned(port)
        if name in self._exported_outputs:
            raise ValueError(f"An output port named '{name}' is already exported.")
        self._exported_outputs[name] = port
        return name

    def build(self, name: str = "network") -> Network:
        """Builds the network, after which the builder can no longer be used."""
        self._assert_not_built()
        # Check that every block input has a source
        for block in self._blocks.values():
            for port_name in block.input_port_names:
                port = block.get_input_port(port_name)
                if port not in self._connections and port not in self._exported_inputs.values():
                    raise ValueError(
                        f"Input port '{port_name}' of block '{block.name}' is neither connected nor exported."
                    )
        self._built = True
        network = Network(
            name=name,
            blocks=self._blocks,
            connections=self._connections,
            exported_inputs=self._exported_inputs,
            exported_outputs=self._exported_outputs,
            input_defaults=self._input_defaults,
        )
        msg.debug(
            f"Built network '{name}' with {len(self._blocks)} blocks, {len(self._connections)} connections, "
            f"{len(self._exported_inputs)} inputs and {len(self._exported_outputs)} outputs."
        )
        return network
