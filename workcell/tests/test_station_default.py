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

"""Unit tests for the default station models"""

import unittest

import numpy as np
import warp as wp

from workcell._src.models import station as models
from workcell._src.sim.dynamics import calc_inverse_dynamics
from workcell._src.station.workcell import Workcell
from workcell._src.utils import logger as msg
from workcell.tests import setup_tests, test_context
from workcell.tests.utils.checks import transforms_equal, vectors_equal

###
# Tests
###


class TestDefaultModels(unittest.TestCase):
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

    def test_00_arm(self):
        arm = models.build_arm()
        self.assertEqual(arm.num_dofs, 7)
        self.assertTrue(arm.has_body(models.ARM_BASE_LINK_NAME))
        self.assertTrue(arm.has_body(models.ARM_END_LINK_NAME))

    def test_01_gripper(self):
        gripper = models.build_gripper()
        self.assertEqual(gripper.num_dofs, 2)
        self.assertTrue(gripper.has_body(models.GRIPPER_BODY_NAME))

    def test_02_cameras(self):
        poses = models.make_default_camera_poses()
        self.assertEqual(list(poses.keys()), ["0", "1", "2"])
        properties = models.make_default_camera_properties()
        self.assertEqual((properties.width, properties.height), (848, 480))
        self.assertAlmostEqual(properties.focal_y, 645.0)


class TestDefaultStation(unittest.TestCase):
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

        self.station = Workcell()
        self.station.setup_default_station()

    def tearDown(self):
        self.default_device = None
        self.station = None
        msg.reset_log_level()

    def test_00_registration(self):
        world = self.station.world
        for name in ("amazon_table", "iiwa", "gripper"):
            self.assertTrue(world.has_model_instance_named(name))
        self.assertFalse(world.has_model_instance_named("cupboard"))
        self.assertEqual(self.station.get_camera_names(), ["0", "1", "2"])
        self.assertEqual(self.station.registry.manipulator.description.num_dofs, 7)

    def test_01_static_camera_poses(self):
        poses = self.station.get_static_camera_poses_in_world()
        for name, X_WC in models.make_default_camera_poses().items():
            self.assertTrue(transforms_equal(poses[name], X_WC))

    def test_02_finalize(self):
        network = self.station.finalize()
        self.assertEqual(self.station.control_model.num_velocities(), 7)
        self.assertEqual(self.station.world.num_velocities(), 9)
        context = self.station.create_context()
        poses = network.eval_output(context, "geometry_poses")
        self.assertEqual(poses.dtype, wp.transform)
        self.assertEqual(poses.shape[0], self.station.world.num_bodies)

        # The table stays where it was welded
        bundle = network.eval_output(context, "pose_bundle")
        self.assertTrue(transforms_equal(bundle["amazon_table::table_link"], models.X_WTable))
        self.assertIn("iiwa::iiwa_link_7", bundle)

    def test_03_holding_still(self):
        network = self.station.finalize()
        context = self.station.create_context()
        q = np.array([0.0, 0.6, 0.0, -1.75, 0.0, 1.0, 0.0])
        self.station.set_manipulator_positions(context, q)
        self.station.set_end_effector_position(context, 0.1)
        network.fix_input(context, "manipulator_position", q)
        network.fix_input(context, "end_effector_position", [0.1])
        self.assertTrue(vectors_equal(self.station.get_manipulator_positions(context), q))

        # Holding still only needs the gravity compensation of the control model
        tau = network.eval_output(context, "manipulator_torque_commanded")
        tau_g = calc_inverse_dynamics(self.station.control_model, q, np.zeros(7), np.zeros(7))
        self.assertTrue(vectors_equal(tau, tau_g, tolerance=1e-9))
        self.assertGreater(np.linalg.norm(tau), 1.0)
        self.assertTrue(vectors_equal(network.eval_output(context, "end_effector_force_measured"), [0.0]))
        self.assertEqual(network.eval_output(context, "camera_2_depth_image").shape, (480, 848, 1))


class TestDefaultStationWithCupboard(unittest.TestCase):
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

    def test_00_cupboard(self):
        station = Workcell()
        station.setup_default_station(with_cupboard=True)
        world = station.world
        cupboard = world.get_model_instance_by_name("cupboard")
        self.assertEqual(world.num_velocities(cupboard), 0)
        X_WS = world.calc_fixed_pose_in_world(world.get_frame("top_shelf", cupboard))
        self.assertTrue(vectors_equal(np.array(X_WS.p), (0.8, 0.0, 0.6), tolerance=1e-5))
        network = station.finalize()
        # Instances without degrees of freedom add no actuation input
        self.assertEqual(len(network.input_port_names), 4)


###
# Test execution
###

if __name__ == "__main__":
    # Test setup
    setup_tests()

    # Run all tests
    unittest.main(verbosity=2)
