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
WORKCELL: Systems: Perception

Provides the RGB-D camera block together with the rendering
interface it delegates to. A single renderer is shared by all
the cameras of a network.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import IntEnum
from typing import Protocol

import numpy as np
import warp as wp

from ..core.math import transform_from_numpy
from ..core.types import override
from .framework import Block, BlockContext

###
# Module interface
###

__all__ = [
    "DEPTH_TOO_FAR",
    "LABEL_EMPTY",
    "CameraProperties",
    "Fidelity",
    "NullRenderer",
    "Renderer",
    "RgbdCamera",
]


###
# Constants
###

DEPTH_TOO_FAR = np.iinfo(np.uint16).max
"""The 16-bit depth value, in millimeters, reported where nothing is visible within range."""

LABEL_EMPTY = np.int16(32766)
"""The label reported where no geometry is visible."""


###
# Types
###


class Fidelity(IntEnum):
    """The rendering fidelity of a camera."""

    LOW = 0
    HIGH = 1

    @override
    def __str__(self):
        return f"Fidelity.{self.name}"

    @override
    def __repr__(self):
        return self.__str__()


@dataclass(frozen=True)
class CameraProperties:
    """The intrinsic properties of a pinhole RGB-D camera."""

    width: int = 848
    """The image width, in pixels."""

    height: int = 480
    """The image height, in pixels."""

    fov_y: float = 2.0 * math.atan(240.0 / 645.0)
    """The vertical field of view, in radians."""

    z_near: float = 0.1
    """The near clipping distance of the depth range, in meters."""

    z_far: float = 2.0
    """The far clipping distance of the depth range, in meters."""

    fidelity: Fidelity = Fidelity.LOW
    """The rendering fidelity."""

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Image size must be positive, but got {self.width}x{self.height}.")
        if not (0.0 < self.fov_y < math.pi):
            raise ValueError(f"Field of view must lie in (0, pi), but got {self.fov_y}.")
        if not (0.0 < self.z_near < self.z_far):
            raise ValueError(f"Depth range must satisfy 0 < z_near < z_far, but got [{self.z_near}, {self.z_far}].")

    @staticmethod
    def from_focal_length(width: int, height: int, focal_y: float, **kwargs) -> CameraProperties:
        """Creates the properties of a camera from its vertical focal length in pixels."""
        return CameraProperties(width=width, height=height, fov_y=2.0 * math.atan(0.5 * height / focal_y), **kwargs)

    @property
    def focal_y(self) -> float:
        """The vertical focal length, in pixels."""
        return 0.5 * self.height / math.tan(0.5 * self.fov_y)


class Renderer(Protocol):
    """The interface of the rendering collaborator shared by the cameras."""

    def render_color_image(self, body_poses: wp.array, X_WC: wp.transform, properties: CameraProperties) -> np.ndarray:
        """Returns an RGBA image of shape ``(height, width, 4)`` and type :class:`uint8`."""
        ...

    def render_depth_image(self, body_poses: wp.array, X_WC: wp.transform, properties: CameraProperties) -> np.ndarray:
        """Returns a depth image in millimeters of shape ``(height, width, 1)`` and type :class:`uint16`."""
        ...

    def render_label_image(self, body_poses: wp.array, X_WC: wp.transform, properties: CameraProperties) -> np.ndarray:
        """Returns a label image of shape ``(height, width, 1)`` and type :class:`int16`."""
        ...


class NullRenderer:
    """A renderer of an empty scene."""

    def render_color_image(self, body_poses: wp.array, X_WC: wp.transform, properties: CameraProperties) -> np.ndarray:
        return np.zeros((properties.height, properties.width, 4), dtype=np.uint8)

    def render_depth_image(self, body_poses: wp.array, X_WC: wp.transform, properties: CameraProperties) -> np.ndarray:
        return np.full((properties.height, properties.width, 1), DEPTH_TOO_FAR, dtype=np.uint16)

    def render_label_image(self, body_poses: wp.array, X_WC: wp.transform, properties: CameraProperties) -> np.ndarray:
        return np.full((properties.height, properties.width, 1), LABEL_EMPTY, dtype=np.int16)


###
# Blocks
###


class RgbdCamera(Block):
    """
    An RGB-D camera rigidly attached to a body.

    Inputs:
        ``geometry_poses``: the world poses of all bodies, indexed by body.

    Outputs:
        ``color_image``, ``depth_image`` and ``label_image``.
    """

    def __init__(
        self,
        name: str,
        parent_body: int,
        X_BC: wp.transform,
        properties: CameraProperties,
        renderer: Renderer,
    ):
        super().__init__(name)
        self._parent_body = parent_body
        self._X_BC = X_BC
        self._properties = properties
        self._renderer = renderer
        self.declare_input_port("geometry_poses")
        self.declare_output_port("color_image", self._calc_color_image)
        self.declare_output_port("depth_image", self._calc_depth_image)
        self.declare_output_port("label_image", self._calc_label_image)

    @property
    def properties(self) -> CameraProperties:
        return self._properties

    @property
    def renderer(self) -> Renderer:
        return self._renderer

    def calc_camera_pose(self, ctx: BlockContext) -> wp.transform:
        """Returns the world pose of the camera."""
        body_poses = ctx.eval_input("geometry_poses")
        X_WB = transform_from_numpy(body_poses.numpy()[self._parent_body])
        return wp.transform_multiply(X_WB, self._X_BC)

    def _calc_color_image(self, ctx: BlockContext) -> np.ndarray:
        return self._renderer.render_color_image(
            ctx.eval_input("geometry_poses"), self.calc_camera_pose(ctx), self._properties
        )

    def _calc_depth_image(self, ctx: BlockContext) -> np.ndarray:
        return self._renderer.render_depth_image(
            ctx.eval_input("geometry_poses"), self.calc_camera_pose(ctx), self._properties
        )

    def _calc_label_image(self, ctx: BlockContext) -> np.ndarray:
        return self._renderer.render_label_image(
            ctx.eval_input("geometry_poses"), self.calc_camera_pose(ctx), self._properties
        )
