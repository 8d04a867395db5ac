# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
import numpy as np
from GridSolverEngine.enumerations import StateVectorScalingMode
from GridSolverEngine.exceptions import InvalidOptionError
from GridSolverEngine.Simulations.options_template import OptionsTemplate

DEFAULT_MAX_ITER = 15
DEFAULT_TOLERANCE = 1e-4
DEFAULT_LINE_SEARCH_MAX_ITER = 10
DEFAULT_LINE_SEARCH_STEP_FOLD = 2.0 / 3.0
DEFAULT_MAX_DV = 0.1
DEFAULT_MAX_DPHI = float(np.radians(10.0))
DEFAULT_MIN_REALISTIC_VOLTAGE = 0.5
DEFAULT_MAX_REALISTIC_VOLTAGE = 2.0


class NewtonRaphsonOptions(OptionsTemplate):
    """
    Newton-Raphson options
    """

    def __init__(self,
                 max_iter: int = DEFAULT_MAX_ITER,
                 tolerance: float = DEFAULT_TOLERANCE,
                 scaling_mode: StateVectorScalingMode = StateVectorScalingMode.NONE,
                 line_search_max_iter: int = DEFAULT_LINE_SEARCH_MAX_ITER,
                 line_search_step_fold: float = DEFAULT_LINE_SEARCH_STEP_FOLD,
                 max_dv: float = DEFAULT_MAX_DV,
                 max_dphi: float = DEFAULT_MAX_DPHI,
                 min_realistic_voltage: float = DEFAULT_MIN_REALISTIC_VOLTAGE,
                 max_realistic_voltage: float = DEFAULT_MAX_REALISTIC_VOLTAGE,
                 always_update_network: bool = False,
                 detailed_report: bool = False,
                 verbose: int = 0):
        """
        Newton-Raphson options
        :param max_iter: Maximum number of iterations (>= 1)
        :param tolerance: Convergence tolerance per equation
        :param scaling_mode: State vector scaling strategy
        :param line_search_max_iter: Maximum number of step folds per line search
        :param line_search_step_fold: Factor applied to the step at every fold, in (0, 1)
        :param max_dv: Maximum voltage module change per iteration (p.u.)
        :param max_dphi: Maximum voltage angle change per iteration (rad)
        :param min_realistic_voltage: Lowest voltage module of a realistic solution (p.u.)
        :param max_realistic_voltage: Highest voltage module of a realistic solution (p.u.)
        :param always_update_network: Write the state into the network even if the solver did not converge
        :param detailed_report: Log the norm and the largest mismatches of every iteration
        :param verbose: Print additional details in the console (0: no details, 1: some details, 2: all details)
        """
        OptionsTemplate.__init__(self, name='NewtonRaphsonOptions')

        self.max_iter = max_iter

        self.tolerance = tolerance

        self.scaling_mode = scaling_mode

        self.line_search_max_iter = line_search_max_iter

        self.line_search_step_fold = line_search_step_fold

        self.max_dv = max_dv

        self.max_dphi = max_dphi

        self.min_realistic_voltage = min_realistic_voltage

        self.max_realistic_voltage = max_realistic_voltage

        self.always_update_network = always_update_network

        self.detailed_report = detailed_report

        self.verbose = verbose

        self.register(key="max_iter", tpe=int, definition="Maximum number of iterations")
        self.register(key="tolerance", tpe=float, definition="Convergence tolerance per equation")
        self.register(key="scaling_mode", tpe=StateVectorScalingMode, definition="State vector scaling")
        self.register(key="line_search_max_iter", tpe=int, definition="Maximum number of line search folds")
        self.register(key="line_search_step_fold", tpe=float, definition="Line search step fold factor")
        self.register(key="max_dv", tpe=float, units="p.u.", definition="Maximum voltage module change")
        self.register(key="max_dphi", tpe=float, units="rad", definition="Maximum voltage angle change")
        self.register(key="min_realistic_voltage", tpe=float, units="p.u.", definition="Lowest realistic voltage")
        self.register(key="max_realistic_voltage", tpe=float, units="p.u.", definition="Highest realistic voltage")
        self.register(key="always_update_network", tpe=bool, definition="Update the network even if not converged")
        self.register(key="detailed_report", tpe=bool, definition="Detailed per iteration report")
        self.register(key="verbose", tpe=int, definition="Verbosity level")

        self.validate()

    def validate(self):
        """
        Validate the options
        :raises InvalidOptionError: on invalid values
        """
        OptionsTemplate.validate(self)

        if self.max_iter < 1:
            raise InvalidOptionError("max_iter", self.max_iter, "Must be at least 1")

        if self.tolerance <= 0:
            raise InvalidOptionError("tolerance", self.tolerance, "Must be positive")

        if self.line_search_max_iter < 1:
            raise InvalidOptionError("line_search_max_iter", self.line_search_max_iter, "Must be at least 1")

        if not (0.0 < self.line_search_step_fold < 1.0):
            raise InvalidOptionError("line_search_step_fold", self.line_search_step_fold, "Must be in (0, 1)")

        if self.max_dv <= 0:
            raise InvalidOptionError("max_dv", self.max_dv, "Must be positive")

        if self.max_dphi <= 0:
            raise InvalidOptionError("max_dphi", self.max_dphi, "Must be positive")

        if self.min_realistic_voltage >= self.max_realistic_voltage:
            raise InvalidOptionError("min_realistic_voltage", self.min_realistic_voltage,
                                     "Must be lower than max_realistic_voltage")
