# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
from __future__ import annotations

from typing import Tuple, Union
import numpy as np
from GridSolverEngine.basic_structures import Vec, Logger
from GridSolverEngine.enumerations import StateVectorScalingMode, VariableType
from GridSolverEngine.Simulations.Equations.equation_system import EquationSystem
from GridSolverEngine.Simulations.PowerFlow.newton_raphson_options import NewtonRaphsonOptions
from GridSolverEngine.Simulations.PowerFlow.stopping_criteria import StoppingCriteria, StoppingCriteriaResult
from GridSolverEngine.Utils.NumericalMethods.common import clip_by_mask


class StateVectorScaling:
    """
    Rescaling of the Newton step, one of a closed set of strategies selected by StateVectorScalingMode:

    NONE: the step is applied as it is.
    MAX_VOLTAGE_CHANGE: every voltage module (angle) component of the step is clipped to max_dv (max_dphi).
    LINE_SEARCH: once the step is applied, while the mismatch norm does not improve on the previous
                 iteration's norm, the step is shortened by the fold factor and the mismatch re-evaluated.
    """

    def __init__(self,
                 mode: StateVectorScalingMode,
                 options: NewtonRaphsonOptions,
                 initial_test_result: Union[StoppingCriteriaResult, None] = None,
                 logger: Union[Logger, None] = None):
        """

        :param mode: StateVectorScalingMode
        :param options: NewtonRaphsonOptions holding the bounds and line search settings
        :param initial_test_result: test of the initial mismatch, the reference of the first line search
        :param logger: Logger
        """
        self.mode = mode
        self.max_dv = options.max_dv
        self.max_dphi = options.max_dphi
        self.line_search_max_iter = options.line_search_max_iter
        self.step_fold = options.line_search_step_fold
        self.logger = logger if logger is not None else Logger()

        # max voltage change counters
        self.last_v_cut_count = 0
        self.last_phi_cut_count = 0
        self.total_v_cut_count = 0
        self.total_phi_cut_count = 0

        # line search state
        self.last_dx: Union[Vec, None] = None
        self.last_test_result: Union[StoppingCriteriaResult, None] = initial_test_result
        self.last_step_size = 1.0
        self.last_fold_count = 0

    @classmethod
    def from_options(cls, options: NewtonRaphsonOptions,
                     initial_test_result: Union[StoppingCriteriaResult, None] = None,
                     logger: Union[Logger, None] = None) -> "StateVectorScaling":
        """
        Build the scaling selected in the options
        :param options: NewtonRaphsonOptions
        :param initial_test_result: test of the initial mismatch
        :param logger: Logger
        :return: StateVectorScaling
        """
        return cls(mode=options.scaling_mode, options=options,
                   initial_test_result=initial_test_result, logger=logger)

    def apply(self, dx: Vec, equation_system: EquationSystem) -> Vec:
        """
        Rescale the raw step in place, before it is subtracted from the state vector
        :param dx: Newton step
        :param equation_system: EquationSystem (gives the type of every row)
        :return: dx
        """
        if self.mode == StateVectorScalingMode.MAX_VOLTAGE_CHANGE:
            self._apply_max_voltage_change(dx, equation_system)

        elif self.mode == StateVectorScalingMode.LINE_SEARCH:
            self.last_dx = dx.copy()

        return dx

    def _apply_max_voltage_change(self, dx: Vec, equation_system: EquationSystem) -> None:
        v_rows = equation_system.get_variable_positions(VariableType.BUS_V)
        phi_rows = equation_system.get_variable_positions(VariableType.BUS_PHI)

        self.last_v_cut_count = clip_by_mask(dx, v_rows, self.max_dv) if len(v_rows) else 0
        self.last_phi_cut_count = clip_by_mask(dx, phi_rows, self.max_dphi) if len(phi_rows) else 0
        self.total_v_cut_count += self.last_v_cut_count
        self.total_phi_cut_count += self.last_phi_cut_count

        if self.last_v_cut_count > 0:
            self.logger.add_info("Voltage magnitude changes have been cut",
                                 value=self.last_v_cut_count, expected_value=self.max_dv)
        if self.last_phi_cut_count > 0:
            self.logger.add_info("Voltage angle changes have been cut",
                                 value=self.last_phi_cut_count, expected_value=self.max_dphi)

    def apply_after(self,
                    equation_system: EquationSystem,
                    fx: Vec,
                    stopping_criteria: StoppingCriteria,
                    test_result: StoppingCriteriaResult) -> Tuple[StoppingCriteriaResult, Vec]:
        """
        Adjust the state once the new mismatch and its norm are known
        :param equation_system: EquationSystem holding the updated state vector
        :param fx: mismatch at the updated state vector
        :param stopping_criteria: StoppingCriteria
        :param test_result: test of fx
        :return: the (possibly new) test result and mismatch
        """
        if self.mode != StateVectorScalingMode.LINE_SEARCH:
            return test_result, fx

        self.last_fold_count = 0
        self.last_step_size = 1.0

        if self.last_test_result is not None and self.last_dx is not None:
            step_size = 1.0
            current = test_result
            x_full = equation_system.get_state_vector()
            iteration = 0
            # a NaN norm never improves
            while not current.norm < self.last_test_result.norm and iteration < self.line_search_max_iter:
                # x(i+1)' = x(i) - mu * dx = x(i+1) + (1 - mu) * dx
                step_size *= self.step_fold
                equation_system.set_state_vector(x_full + (1.0 - step_size) * self.last_dx)
                fx = equation_system.get_mismatch()
                current = stopping_criteria.test(fx)
                iteration += 1

            if iteration > 0:
                self.logger.add_debug("Line search", "folds", iteration, "step size", step_size,
                                      "norm", current.norm)

            self.last_fold_count = iteration
            self.last_step_size = step_size
            test_result = current

        self.last_test_result = test_result
        return test_result, fx

    def __str__(self):
        return str(self.mode)
