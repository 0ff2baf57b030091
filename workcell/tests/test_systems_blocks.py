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

"""Unit tests for the blocks of the `workcell.systems` module"""

import math
import unittest

import numpy as np
import warp as wp

from workcell._src.core.math import make_transform
from workcell._src.sim.dynamics import calc_inverse_dynamics
from workcell._src.sim.world import WorldModel
from workcell._src.systems.controllers import (
    InverseDynamicsController,
    PIDControllerData,
    compute_jointspace_pid_acceleration,
    update_jointspace_pid_integrator,
)
from workcell._src.systems.end_effector import EndEffectorPositionController, EndEffectorStateConverter
from workcell._src.systems.framework import Block, Network, NetworkBuilder
from workcell._src.systems.primitives import Adder, Demultiplexer, StateInterpolatorWithDiscreteDerivative
from workcell._src.systems.sensors import (
    DEPTH_TOO_FAR,
    LABEL_EMPTY,
    CameraProperties,
    Fidelity,
    NullRenderer,
    RgbdCamera,
)
from workcell._src.systems.world_block import WorldModelBlock
from workcell._src.utils import logger as msg
from workcell.tests import setup_tests, test_context
from workcell.tests.utils.checks import transforms_equal, vectors_equal
from workcell.tests.utils.models import build_pendulum

###
# Utilities
###


def make_block_network(block: Block, defaults: dict | None = None) -> Network:
    """Wraps a single block in a network exporting all of its ports under their own names."""
    defaults = {} if defaults is None else defaults
    builder = NetworkBuilder()
    builder.add_block(block)
    for name in block.input_port_names:
        builder.export_input(block.get_input_port(name), name, default=defaults.get(name))
    for name in block.output_port_names:
        builder.export_output(block.get_output_port(name), name)
    return builder.build(block.name)


def make_pendulum_world(mass: float = 2.0, length: float = 0.5) -> WorldModel:
    world = WorldModel()
    instance = world.add_model(build_pendulum(mass, length))
    world.weld_frames(world.world_frame, world.get_frame("base", instance))
    world.finalize()
    return world


###
# Tests
###


class TestPrimitives(unittest.TestCase):
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

    def test_00_demultiplexer(self):
        network = make_block_network(Demultiplexer("demux", [2, 1]))
        context = network.create_context()
        network.fix_input(context, "u", [1.0, 2.0, 3.0])
        self.assertTrue(vectors_equal(network.eval_output(context, "y0"), [1.0, 2.0]))
        self.assertTrue(vectors_equal(network.eval_output(context, "y1"), [3.0]))
        with self.assertRaises(ValueError):
            Demultiplexer("demux", [])

    def test_01_adder(self):
        network = make_block_network(Adder("adder", 3, 2))
        context = network.create_context()
        network.fix_input(context, "u0", [1.0, 2.0])
        network.fix_input(context, "u1", [10.0, 20.0])
        network.fix_input(context, "u2", [-1.0, -2.0])
        self.assertTrue(vectors_equal(network.eval_output(context, "sum"), [10.0, 20.0]))

    def test_02_interpolator_reinitialization(self):
        dt = 0.01
        interpolator = StateInterpolatorWithDiscreteDerivative("interpolator", 2, dt)
        network = make_block_network(interpolator)
        context = network.create_context()
        position = np.array([0.5, -1.0])
        network.fix_input(context, "position", position)

        # Without re-initialization the jump from zero shows up as a velocity transient
        self.assertTrue(vectors_equal(network.eval_output(context, "state"), [0.5, -1.0, 50.0, -100.0]))

        # Re-initializing the history removes the transient
        interpolator.set_initial_position(context, position)
        self.assertTrue(vectors_equal(network.eval_output(context, "state"), [0.5, -1.0, 0.0, 0.0]))

        # A step of the input is differentiated once and then latched
        network.fix_input(context, "position", [0.6, -1.0])
        self.assertTrue(vectors_equal(network.eval_output(context, "state"), [0.6, -1.0, 10.0, 0.0]))
        network.update(context)
        self.assertTrue(vectors_equal(network.eval_output(context, "state"), [0.6, -1.0, 0.0, 0.0]))


class TestInverseDynamicsController(unittest.TestCase):
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

    def test_00_pid_data(self):
        data = PIDControllerData.from_gains([1.0, 2.0], [0.0, 0.1], [3.0, 4.0], device=self.default_device)
        self.assertEqual(data.num_dofs, 2)
        self.assertEqual(data.K_p.dtype, wp.float32)
        with self.assertRaises(ValueError):
            PIDControllerData.from_gains([1.0, 2.0], [0.0], [3.0, 4.0])
        with self.assertRaises(ValueError):
            PIDControllerData.from_gains([1.0, -2.0], [0.0, 0.0], [3.0, 4.0])

    def test_01_pid_kernels(self):
        data = PIDControllerData.from_gains([100.0, 10.0], [1.0, 2.0], [20.0, 5.0], device=self.default_device)
        q, dq = np.array([0.0, 1.0]), np.array([0.5, 0.0])
        q_ref, dq_ref = np.array([0.25, 1.0]), np.array([0.0, 2.0])
        integrator = np.array([0.5, -1.0])
        ddq = compute_jointspace_pid_acceleration(data, q, dq, q_ref, dq_ref, integrator, device=self.default_device)
        expected = np.array([100.0 * 0.25 - 20.0 * 0.5 + 1.0 * 0.5, 5.0 * 2.0 - 2.0])
        self.assertTrue(vectors_equal(ddq, expected, tolerance=1e-5))
        updated = update_jointspace_pid_integrator(0.1, q, q_ref, integrator, device=self.default_device)
        self.assertTrue(vectors_equal(updated, [0.525, -1.0], tolerance=1e-6))

    def test_02_zero_error_yields_gravity_compensation(self):
        world = make_pendulum_world()
        controller = InverseDynamicsController(
            "controller", world, [100.0], [1.0], [20.0], 1e-3, device=self.default_device
        )
        network = make_block_network(controller)
        context = network.create_context()
        network.fix_input(context, "estimated_state", [0.3, 0.0])
        network.fix_input(context, "desired_state", [0.3, 0.0])
        tau = network.eval_output(context, "control")
        self.assertTrue(vectors_equal(tau, calc_inverse_dynamics(world, [0.3], [0.0], [0.0]), tolerance=1e-9))

    def test_03_tracking_error(self):
        mass, length = 2.0, 0.5
        world = make_pendulum_world(mass, length)
        controller = InverseDynamicsController(
            "controller", world, [100.0], [0.0], [0.0], 1e-3, device=self.default_device
        )
        network = make_block_network(controller)
        context = network.create_context()
        network.fix_input(context, "estimated_state", [0.0, 0.0])
        network.fix_input(context, "desired_state", [0.1, 0.0])
        tau = network.eval_output(context, "control")
        expected = mass * length**2 * 10.0 - mass * 9.81 * length
        self.assertAlmostEqual(float(tau[0]), expected, places=4)

        # The integral of the error advances with every discrete update
        network.update(context)
        self.assertTrue(vectors_equal(network.get_block_state(context, "controller"), [1e-4], tolerance=1e-8))

    def test_04_invalid_construction(self):
        world = make_pendulum_world()
        with self.assertRaises(ValueError):
            InverseDynamicsController("controller", world, [1.0, 1.0], [0.0, 0.0], [1.0, 1.0], 1e-3)
        with self.assertRaises(ValueError):
            InverseDynamicsController("controller", world, [1.0], [0.0], [1.0], 0.0)
        unfinalized = WorldModel()
        with self.assertRaises(RuntimeError):
            InverseDynamicsController("controller", unfinalized, [], [], [], 1e-3)


class TestEndEffector(unittest.TestCase):
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

        # Gripper state laid out as [body_welds, left, right] with the fingers at indices 0 and 1
        self.dt = 1e-3
        self.controller = EndEffectorPositionController("controller", 2, (0, 1), self.dt, 200.0, 5.0)
        self.network = make_block_network(self.controller, defaults={"force_limit": np.array([40.0])})

    def tearDown(self):
        self.default_device = None
        self.controller = None
        self.network = None
        msg.reset_log_level()

    def test_00_state_converter(self):
        network = make_block_network(EndEffectorStateConverter("converter", 2, (0, 1)))
        context = network.create_context()
        network.fix_input(context, "state", [-0.03, 0.04, -0.1, 0.2])
        self.assertTrue(vectors_equal(network.eval_output(context, "state"), [0.07, 0.3]))

    def test_01_symmetric_fingers_at_rest(self):
        width = 0.1
        context = self.network.create_context()
        self.controller.set_initial_position(context, width)
        self.network.fix_input(context, "desired_position", [width])
        self.network.fix_input(context, "state", [-0.5 * width, 0.5 * width, 0.0, 0.0])
        self.assertTrue(vectors_equal(self.network.eval_output(context, "generalized_force"), [0.0, 0.0]))
        self.assertTrue(vectors_equal(self.network.eval_output(context, "grip_force"), [0.0]))

    def test_02_opening_command(self):
        width = 0.1
        context = self.network.create_context()
        self.controller.set_initial_position(context, width + 0.01)
        self.network.fix_input(context, "desired_position", [width + 0.01])
        self.network.fix_input(context, "state", [-0.5 * width, 0.5 * width, 0.0, 0.0])
        # The fingers are pushed apart symmetrically
        self.assertTrue(vectors_equal(self.network.eval_output(context, "generalized_force"), [-1.0, 1.0]))
        self.assertTrue(vectors_equal(self.network.eval_output(context, "grip_force"), [2.0]))

        # The separation force saturates at the force limit
        self.network.fix_input(context, "force_limit", [0.5])
        self.assertTrue(vectors_equal(self.network.eval_output(context, "generalized_force"), [-0.25, 0.25]))
        self.network.fix_input(context, "force_limit", [0.0])
        with self.assertRaises(ValueError):
            self.network.eval_output(context, "grip_force")

    def test_03_centering_force(self):
        context = self.network.create_context()
        self.network.fix_input(context, "desired_position", [0.0])
        # Both fingers shifted to the right by 1 mm
        self.network.fix_input(context, "state", [0.001, 0.001, 0.0, 0.0])
        tau = self.network.eval_output(context, "generalized_force")
        self.assertTrue(vectors_equal(tau, [-2.0, -2.0]))

    def test_04_command_history(self):
        context = self.network.create_context()
        self.network.fix_input(context, "desired_position", [0.05])
        self.network.update(context)
        self.assertTrue(vectors_equal(self.network.get_block_state(context, "controller"), [0.05]))
        self.assertEqual(self.controller.gains, (200.0, 5.0))


class TestSensors(unittest.TestCase):
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

    def test_00_camera_properties(self):
        properties = CameraProperties()
        self.assertEqual((properties.width, properties.height), (848, 480))
        self.assertAlmostEqual(properties.focal_y, 645.0)
        self.assertEqual(properties.fidelity, Fidelity.LOW)
        other = CameraProperties.from_focal_length(640, 480, 500.0, fidelity=Fidelity.HIGH)
        self.assertAlmostEqual(other.fov_y, 2.0 * math.atan(240.0 / 500.0))
        with self.assertRaises(ValueError):
            CameraProperties(width=0)
        with self.assertRaises(ValueError):
            CameraProperties(z_near=2.0, z_far=1.0)

    def test_01_null_renderer(self):
        properties = CameraProperties(width=8, height=6)
        renderer = NullRenderer()
        poses = wp.zeros(1, dtype=wp.transform)
        color = renderer.render_color_image(poses, wp.transform_identity(), properties)
        depth = renderer.render_depth_image(poses, wp.transform_identity(), properties)
        label = renderer.render_label_image(poses, wp.transform_identity(), properties)
        self.assertEqual(color.shape, (6, 8, 4))
        self.assertEqual(color.dtype, np.uint8)
        self.assertEqual(depth.shape, (6, 8, 1))
        self.assertTrue(np.all(depth == DEPTH_TOO_FAR))
        self.assertEqual(label.dtype, np.int16)
        self.assertTrue(np.all(label == LABEL_EMPTY))

    def test_02_camera_on_moving_body(self):
        world = make_pendulum_world()
        link = world.get_body_index("link")
        X_BC = make_transform(p=(0.0, 0.0, 0.2))
        properties = CameraProperties(width=8, height=6)

        builder = NetworkBuilder()
        plant = builder.add_block(WorldModelBlock("world", world))
        camera = builder.add_block(RgbdCamera("camera", link, X_BC, properties, NullRenderer()))
        builder.connect(plant.get_output_port("geometry_poses"), camera.get_input_port("geometry_poses"))
        builder.export_input(plant.get_input_port("pendulum_actuation"), "actuation", default=np.zeros(1))
        builder.export_output(camera.get_output_port("depth_image"), "depth")
        network = builder.build()

        context = network.create_context()
        state = network.get_block_state(context, "world")
        world.set_positions(state, [np.pi / 2.0])
        X_WC = camera.calc_camera_pose(network.block_context(context, "camera"))
        # A quarter turn about Y maps the camera offset along Z onto X
        self.assertTrue(vectors_equal(np.array(X_WC.p), (0.2, 0.0, 0.0), tolerance=1e-5))
        self.assertEqual(network.eval_output(context, "depth").shape, (6, 8, 1))


class TestWorldModelBlock(unittest.TestCase):
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

    def test_00_ports(self):
        world = make_pendulum_world()
        block = WorldModelBlock("world", world)
        instance = world.get_model_instance_by_name("pendulum")
        self.assertEqual(block.input_port_names, ["pendulum_actuation"])
        self.assertEqual(block.get_actuation_input_name(instance), "pendulum_actuation")
        self.assertEqual(block.get_state_output_name(instance), "pendulum_state")
        self.assertEqual(block.get_contact_forces_output_name(instance), "pendulum_generalized_contact_forces")
        for name in ("continuous_state", "geometry_poses", "pose_bundle", "contact_results"):
            self.assertIn(name, block.output_port_names)
        with self.assertRaises(RuntimeError):
            WorldModelBlock("world", WorldModel())

    def test_01_outputs(self):
        world = make_pendulum_world()
        network = make_block_network(WorldModelBlock("world", world))
        context = network.create_context()
        state = network.get_block_state(context, "world")
        world.set_positions(state, [0.25])
        world.set_velocities(state, [-1.0])
        self.assertTrue(vectors_equal(network.eval_output(context, "pendulum_state"), [0.25, -1.0]))
        self.assertTrue(vectors_equal(network.eval_output(context, "continuous_state"), [0.25, -1.0]))
        self.assertTrue(vectors_equal(network.eval_output(context, "pendulum_generalized_contact_forces"), [0.0]))
        self.assertEqual(network.eval_output(context, "contact_results"), [])

        bundle = network.eval_output(context, "pose_bundle")
        self.assertEqual(set(bundle.keys()), {"world::world", "pendulum::base", "pendulum::link"})
        self.assertTrue(transforms_equal(bundle["pendulum::link"], make_transform(rpy=(0.0, 0.25, 0.0))))
        msg.info(f"bundle: {bundle}")


###
# Test execution
###

if __name__ == "__main__":
    # Test setup
    setup_tests()

    # Run all tests
    unittest.main(verbosity=2)
