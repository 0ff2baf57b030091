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

"""Runs the unit tests of the workcell package: ``python -m workcell.tests``"""

import argparse
import os
import sys
import unittest
from collections import Counter

from workcell.tests import setup_tests

###
# Utilities
###


class WorkcellTestResult(unittest.TextTestResult):
    """Groups the verbose output by test module and tallies the failures of each module."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._module = None
        self.failures_per_module = Counter()

    def startTest(self, test):
        module = test.__class__.__module__
        if module != self._module:
            self._module = module
            self.stream.write(f"\n\n--- {module.rsplit('.', 1)[-1]} ---\n\n")
            self.stream.flush()
        super().startTest(test)

    def addFailure(self, test, err):
        self.failures_per_module[test.__class__.__module__] += 1
        super().addFailure(test, err)

    def addError(self, test, err):
        self.failures_per_module[test.__class__.__module__] += 1
        super().addError(test, err)


class WorkcellTestRunner(unittest.TextTestRunner):
    resultclass = WorkcellTestResult

    def run(self, test):
        result = super().run(test)
        if result.failures_per_module:
            self.stream.writeln("Modules with failures or errors:")
            for module, count in sorted(result.failures_per_module.items()):
                self.stream.writeln(f"  {module}: {count}")
        return result


###
# Test execution
###

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Runs the unit tests of the workcell package.")
    parser.add_argument("--device", type=str, default="cpu", help="The Warp device of the worlds and controllers.")
    parser.add_argument("--pattern", type=str, default="test_*.py", help="The file pattern of the test modules.")
    parser.add_argument("--seed", type=int, default=0, help="The seed of the randomized fixtures.")
    parser.add_argument("--failfast", action="store_true", help="Stops on the first failure or error.")
    parser.add_argument(
        "--clear-cache",
        default=False,
        action=argparse.BooleanOptionalAction,
        help="Whether to clear the Warp kernel caches first.",
    )
    parser.add_argument(
        "--verbose",
        default=False,
        action=argparse.BooleanOptionalAction,
        help="Whether tests print their intermediate results.",
    )
    args = parser.parse_args()

    setup_tests(verbose=args.verbose, device=args.device, clear_cache=args.clear_cache, seed=args.seed)

    # The package root sits two levels above this folder
    tests_dir = os.path.dirname(os.path.abspath(__file__))
    suite = unittest.defaultTestLoader.discover(
        tests_dir, pattern=args.pattern, top_level_dir=os.path.dirname(os.path.dirname(tests_dir))
    )

    result = WorkcellTestRunner(verbosity=2, failfast=args.failfast).run(suite)
    sys.exit(0 if result.wasSuccessful() else 1)
