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

"""Unit tests for the `workcell.sim.dynamics` module"""

import unittest

import numpy as np
import warp as wp

from workcell._src.core.gravity import GravityDescriptor
from workcell._src.core.inertia import SpatialInertia, shift
from workcell._src.sim.dynamics import (
    calc_gravity_generalized_forces,
    calc_inverse_dynamics,
    motion_transform,
    spatial_inertia_matrix,
)
from workcell._src.sim.world import WorldModel
from workcell._src.utils import logger as msg
from workcell.tests import setup_tests, test_context
from workcell.tests.utils.checks import matrices_equal, vectors_equal
from workcell.tests.utils.models import build_pendulum, build_planar_arm, build_tilted_arm, make_box_inertia

###
# Utilities
###


def make_world(description, gravity: GravityDescriptor | None = None) -> WorldModel:
    world = WorldModel(gravity=gravity)
    instance = world.add_model(description)
    world.weld_frames(world.world_frame, world.get_frame(description.root_bodies[0], instance))
    world.finalize()
    return world


###
# Tests
###


class TestSpatialAlgebra(unittest.TestCase):
    def setUp(self):
        if not test_context.setup_done:
            setup_tests(clear_cache=False)
        self.default_device = wp.get_device(test_context.device)
        self.verbose = test_context.verbose  # Set to True to enable verbose output

        # Set debug-level logging to print verbose test output to console
        if self.verbose:
            print("\n")  # Add newline before test output for better readability
            msg.set_log_level(msg.LogLevel.DEBUG)
        else:
            msg.set_log_level(msg.LogLevel.WARNING)

    def tearDown(self):
        self.default_device = None
        msg.reset_log_level()

    def test_00_identity_motion_transform(self):
        self.assertTrue(matrices_equal(motion_transform(np.eye(3), np.zeros(3)), np.eye(6)))

    def test_01_spatial_inertia_matrix(self):
        M = make_box_inertia(2.0, com=(0.1, 0.2, 0.3))
        S = spatial_inertia_matrix(M)
        self.assertTrue(matrices_equal(S, S.T))
        self.assertTrue(np.all(np.linalg.eigvalsh(S) > 0.0))
        self.assertTrue(matrices_equal(S[3:6, 3:6], 2.0 * np.eye(3)))

    def test_02_shift_agrees_with_spatial_transform(self):
        M = make_box_inertia(1.5, com=(0.1, -0.2, 0.05))
        d = np.array([0.3, 0.1, -0.4])
        # Transforming the spatial inertia matrix to a point displaced by d must match the shifted inertia
        X = motion_transform(np.eye(3), d)
        X_inv = motion_transform(np.eye(3), -d)
        expected = X_inv.T @ spatial_inertia_matrix(M) @ X_inv
        self.assertTrue(matrices_equal(spatial_inertia_matrix(shift(M, d)), expected))
        self.assertTrue(matrices_equal(X @ X_inv, np.eye(6)))

    def test_03_point_mass(self):
        M = spatial_inertia_matrix(SpatialInertia(mass=3.0))
        self.assertTrue(matrices_equal(M, np.diag([0.0, 0.0, 0.0, 3.0, 3.0, 3.0])))


class TestInverseDynamics(unittest.TestCase):
    def setUp(self):
        if not test_context.setup_done:
            setup_tests(clear_cache=False)
        self.default_device = wp.get_device(test_context.device)
        self.verbose = test_context.verbose  # Set to True to enable verbose output

        # Set debug-level logging to print verbose test output to console
        if self.verbose:
            print("\n")  # Add newline before test output for better readability
            msg.set_log_level(msg.LogLevel.DEBUG)
        else:
            msg.set_log_level(msg.LogLevel.WARNING)

    def tearDown(self):
        self.default_device = None
        msg.reset_log_level()

    def test_00_pendulum_holding_torque(self):
        mass, length = 2.0, 0.5
        world = make_world(build_pendulum(mass, length))
        tau = calc_inverse_dynamics(world, [0.0], [0.0], [0.0])
        msg.info(f"tau: {tau}")
        # Gravity along -Z pulls the mass about +Y, which must be held by a torque about -Y
        self.assertAlmostEqual(tau[0], -mass * 9.81 * length, places=9)
        self.assertTrue(vectors_equal(calc_gravity_generalized_forces(world, [0.0]), [mass * 9.81 * length]))

        # Hanging straight down the pendulum needs no torque
        self.assertAlmostEqual(calc_inverse_dynamics(world, [np.pi / 2.0], [0.0], [0.0])[0], 0.0, places=9)

    def test_01_pendulum_acceleration(self):
        mass, length = 2.0, 0.5
        world = make_world(build_pendulum(mass, length), gravity=GravityDescriptor(enabled=False))
        tau = calc_inverse_dynamics(world, [0.3], [0.0], [1.5])
        self.assertAlmostEqual(tau[0], mass * length**2 * 1.5, places=9)

    def test_02_pendulum_centripetal_force_does_no_work(self):
        world = make_world(build_pendulum(), gravity=GravityDescriptor(enabled=False))
        self.assertAlmostEqual(calc_inverse_dynamics(world, [0.7], [3.0], [0.0])[0], 0.0, places=9)

    def test_03_vertical_axis_ignores_gravity(self):
        world = make_world(build_planar_arm(3))
        q = np.array([0.3, -0.5, 1.2])
        self.assertTrue(vectors_equal(calc_gravity_generalized_forces(world, q), np.zeros(3), tolerance=1e-9))

    def test_04_mass_matrix_is_symmetric_positive_definite(self):
        world = make_world(build_tilted_arm(), gravity=GravityDescriptor(enabled=False))
        q = np.array([0.4, -0.9])
        n = world.num_velocities()
        H = np.column_stack([calc_inverse_dynamics(world, q, np.zeros(n), e) for e in np.eye(n)])
        self.assertTrue(matrices_equal(H, H.T, tolerance=1e-9))
        self.assertTrue(np.all(np.linalg.eigvalsh(H) > 0.0))

    def test_05_gravity_work_matches_potential_energy(self):
        world = make_world(build_tilted_arm())
        q = np.array([0.2, 0.6])
        h = 1e-3

        # The potential energy of each body from the world poses of their centers of mass
        def potential(q_eval):
            state = world.create_default_state()
            world.set_positions(state, q_eval)
            energy = 0.0
            for body in range(1, world.num_bodies):
                X_WB = world.calc_body_pose_in_world(state, body)
                inertia = world.get_body_inertia(body)
                p_WC = wp.transform_point(X_WB, wp.vec3(*inertia.center_of_mass))
                energy += inertia.mass * 9.81 * float(p_WC[2])
            return energy

        expected = np.array([-(potential(q + h * e) - potential(q - h * e)) / (2.0 * h) for e in np.eye(2)])
        self.assertTrue(vectors_equal(calc_gravity_generalized_forces(world, q), expected, tolerance=1e-2))

    def test_06_invalid_sizes(self):
        world = make_world(build_pendulum())
        with self.assertRaises(ValueError):
            calc_inverse_dynamics(world, [0.0, 0.0], [0.0], [0.0])

    def test_07_gravity_descriptor(self):
        mass, length = 2.0, 0.5
        gravity = GravityDescriptor.from_vector((0.0, 0.0, -4.905))
        self.assertTrue(gravity.enabled)
        self.assertAlmostEqual(gravity.acceleration, 4.905)
        self.assertTrue(vectors_equal(gravity.vector(), (0.0, 0.0, -4.905)))
        world = make_world(build_pendulum(mass, length), gravity=gravity)
        self.assertAlmostEqual(calc_inverse_dynamics(world, [0.0], [0.0], [0.0])[0], -mass * 4.905 * length, places=9)

        # Disabled gravity keeps its direction
        disabled = GravityDescriptor.from_vector((0.0, 0.0, 0.0))
        self.assertFalse(disabled.enabled)
        self.assertTrue(vectors_equal(disabled.vector(), np.zeros(3)))
        self.assertTrue(vectors_equal(np.array(disabled.direction), (0.0, 0.0, -1.0)))

        with self.assertRaises(ValueError):
            GravityDescriptor(acceleration=-1.0)
        with self.assertRaises(ValueError):
            GravityDescriptor(direction=(0.0, 0.0, 0.0))


###
# Test execution
###

if __name__ == "__main__":
    # Test setup
    setup_tests()

    # Run all tests
    unittest.main(verbosity=2)
