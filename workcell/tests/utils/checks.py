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

"""Numeric comparison helpers for unit tests."""

import unittest

import numpy as np
import warp as wp

from workcell._src.core.inertia import SpatialInertia
from workcell._src.core.math import transform_to_numpy

###
# Array comparisons
###


def arrays_equal(arr1, arr2, tolerance=1e-6) -> bool:
    return np.allclose(arr1, arr2, atol=tolerance)


def matrices_equal(m1, m2, tolerance=1e-6) -> bool:
    return np.allclose(m1, m2, atol=tolerance)


def vectors_equal(v1, v2, tolerance=1e-6) -> bool:
    return np.allclose(v1, v2, atol=tolerance)


def transforms_equal(X1: wp.transform, X2: wp.transform, tolerance=1e-5) -> bool:
    R1, p1 = transform_to_numpy(X1)
    R2, p2 = transform_to_numpy(X2)
    return np.allclose(R1, R2, atol=tolerance) and np.allclose(p1, p2, atol=tolerance)


###
# Container comparisons
###


def assert_inertias_close(
    fixture: unittest.TestCase,
    inertia1: SpatialInertia,
    inertia2: SpatialInertia,
    tolerance: float = 1e-9,
):
    """
    Compares the numeric fields of two inertias, ignoring their labels.
    """
    fixture.assertAlmostEqual(inertia1.mass, inertia2.mass, delta=tolerance)
    fixture.assertTrue(
        vectors_equal(inertia1.center_of_mass, inertia2.center_of_mass, tolerance),
        f"Center of mass mismatch:\nleft:\n{inertia1.center_of_mass}\nright:\n{inertia2.center_of_mass}",
    )
    fixture.assertTrue(
        matrices_equal(inertia1.rotational_inertia, inertia2.rotational_inertia, tolerance),
        f"Rotational inertia mismatch:\nleft:\n{inertia1.rotational_inertia}\nright:\n{inertia2.rotational_inertia}",
    )
