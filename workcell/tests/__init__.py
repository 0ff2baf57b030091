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
WORKCELL: Unit Tests

Holds the global context shared by all test modules. Each module calls
:func:`setup_tests` lazily from its ``setUp`` so that it can run on its
own, while ``python -m workcell.tests`` configures it once up front.
"""

from dataclasses import dataclass

import numpy as np
import warp as wp
from warp.context import Devicelike

from workcell._src.utils import logger as msg

__all__ = ["setup_tests", "test_context"]

###
# Global test context
###


@dataclass
class TestContext:
    setup_done: bool = False
    """ Whether the global test setup has already run """

    verbose: bool = False
    """ Global default verbosity flag to be used by unit tests """

    device: Devicelike | None = None
    """ Global default device on which the worlds and controllers of the tests launch their kernels """

    seed: int = 0
    """ Global default seed of the randomized fixtures """


test_context = TestContext()


###
# Functions
###


def setup_tests(
    verbose: bool = False,
    device: Devicelike | str | None = None,
    clear_cache: bool = False,
    seed: int = 0,
):
    """
    Configures NumPy, Warp and the package logger for the unit tests.

    Args:
        verbose (bool): Whether tests print their intermediate results.
        device (Devicelike | str | None): The device of the tests, the Warp default device if `None`.
        clear_cache (bool): Whether to clear the Warp kernel caches first.
        seed (int): The seed of the randomized fixtures.
    """
    # Print small vectors and transforms on one line
    np.set_printoptions(linewidth=200, precision=6, suppress=True)

    # Warp configuration
    wp.config.quiet = not verbose
    wp.config.mode = "release"
    wp.config.enable_backward = False
    wp.config.verify_fp = False
    wp.init()
    if clear_cache:
        wp.clear_kernel_cache()

    # Tag the test output of the package logger
    msg.set_log_header("[WORKCELL-TESTS]")

    test_context.verbose = verbose
    test_context.device = wp.get_device(device)
    test_context.seed = seed
    test_context.setup_done = True
