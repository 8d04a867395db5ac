# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
from __future__ import annotations

import time
from typing import List, Tuple, Union
import numpy as np
from GridSolverEngine.basic_structures import Vec, Logger
from GridSolverEngine.enumerations import NewtonRaphsonStatus, EquationType, VariableType
from GridSolverEngine.exceptions import LinearSolverError
from GridSolverEngine.Simulations.Equations.equation_system import EquationSystem
from GridSolverEngine.Simulations.Equations.voltage_initializer import (VoltageInitializer,
                                                                        UniformValueVoltageInitializer)
from GridSolverEngine.Simulations.PowerFlow.newton_raphson_options import NewtonRaphsonOptions
from GridSolverEngine.Simulations.PowerFlow.newton_raphson_results import NewtonRaphsonResult
from GridSolverEngine.Simulations.PowerFlow.state_vector_scaling import StateVectorScaling
from GridSolverEngine.Simulations.PowerFlow.stopping_criteria import StoppingCriteria
from GridSolverEngine.Simulations.PowerFlow.solver_hooks import SolverHooks
from GridSolverEngine.Utils.NumericalMethods.sparse_solve import LinearSolver


def find_largest_mismatches(equation_system: EquationSystem,
                            mismatch: Vec,
                            count: int = 5,
                            threshold: float = 1e-7) -> List[Tuple[str, EquationType, float]]:
    """
    Largest equation mismatches in absolute value
    :param equation_system: EquationSystem
    :param mismatch: mismatch vector
    :param count: maximum number of entries
    :param threshold: mismatches below this value are ignored
    :return: list of (element id, equation type, mismatch), largest first
    """
    order = np.argsort(-np.abs(mismatch), kind='stable')
    res = list()
    for pos in order[:count]:
        val = float(mismatch[pos])
        if abs(val) > threshold:
            _, tpe = equation_system.equations[pos]
            res.append((equation_system.get_equation_element_name(int(pos)), tpe, val))
    return res


class NewtonRaphson:
    """
    Newton-Raphson driver over an EquationSystem.

    Every iteration solves J(x) dx = f(x) - target, rescales dx, applies x <- x - dx,
    re-evaluates the mismatch and tests the stopping criteria.
    """

    def __init__(self,
                 equation_system: EquationSystem,
                 options: Union[NewtonRaphsonOptions, None] = None,
                 hooks: Union[SolverHooks, None] = None,
                 logger: Union[Logger, None] = None):
        """

        :param equation_system: EquationSystem to solve
        :param options: NewtonRaphsonOptions
        :param hooks: SolverHooks (none by default)
        :param logger: Logger
        """
        self.equation_system = equation_system
        self.options = options if options is not None else NewtonRaphsonOptions()
        self.hooks = hooks if hooks is not None else SolverHooks()
        self.logger = logger if logger is not None else Logger()

        self.stopping_criteria = StoppingCriteria(tolerance=self.options.tolerance)

        self.linear_solver = LinearSolver()

        self.iteration = 0

        self.scaling: Union[StateVectorScaling, None] = None

        self.last_result: Union[NewtonRaphsonResult, None] = None

        # state of the last converged solve, used to warm start the next one
        self._converged_x: Union[Vec, None] = None

    def _init_state_vector(self, initializer: VoltageInitializer) -> Vec:
        """
        Initial state vector: the last converged solution if any, otherwise the initializer one
        """
        if self._converged_x is not None and len(self._converged_x) == self.equation_system.n_var:
            self.equation_system.set_state_vector(self._converged_x)
            if self.options.verbose > 0:
                print("Newton-Raphson warm start from the previous solution")
            return self.equation_system.get_state_vector()
        else:
            return self.equation_system.create_state_vector(initializer)

    def _run_iteration(self, fx: Vec) -> Tuple[Union[NewtonRaphsonStatus, None], Vec, float]:
        """
        One Newton-Raphson iteration
        :param fx: current mismatch
        :return: terminal status (None to continue), new mismatch, new norm
        """
        self.hooks.fire('before_iteration', self.iteration)

        try:
            # solve J dx = f(x)
            try:
                self.linear_solver.factorize(self.equation_system.get_jacobian())
                dx = self.linear_solver.solve(fx)
            except LinearSolverError as e:
                self.logger.add_error("Newton-Raphson linear solver failure", value=e.message,
                                      device_property=f"iteration {self.iteration}")
                return NewtonRaphsonStatus.SOLVER_FAILED, fx, np.nan

            self.hooks.fire('after_solve', self.iteration, dx)

            self.scaling.apply(dx, self.equation_system)

            # update x
            x = self.equation_system.get_state_vector() - dx
            self.equation_system.set_state_vector(x)
            self.hooks.fire('after_state_update', self.iteration, x)

            # f(x) - target
            fx = self.equation_system.get_mismatch()

            test_result = self.stopping_criteria.test(fx)
            test_result, fx = self.scaling.apply_after(equation_system=self.equation_system,
                                                       fx=fx,
                                                       stopping_criteria=self.stopping_criteria,
                                                       test_result=test_result)

            self.hooks.fire('after_mismatch', self.iteration, fx, test_result.norm)

            if self.options.detailed_report:
                self._report_iteration(fx, test_result.norm)

            if self.options.verbose > 1:
                print(f"It {self.iteration}, |f(x)| {test_result.norm}, converged {test_result.stop}")

            if test_result.stop:
                return NewtonRaphsonStatus.CONVERGED, fx, test_result.norm

            return None, fx, test_result.norm

        finally:
            self.iteration += 1

    def _report_iteration(self, fx: Vec, fx_norm: float) -> None:
        """
        Log the norm and the largest mismatches of the current iteration
        """
        self.logger.add_info("Newton-Raphson iteration norm", value=fx_norm,
                             device_property=f"iteration {self.iteration}")
        for element, tpe, val in find_largest_mismatches(self.equation_system, fx, count=5):
            self.logger.add_info("Largest mismatch", device=element, value=val, device_class=str(tpe),
                                 device_property=f"iteration {self.iteration}")

    def is_state_unrealistic(self) -> bool:
        """
        Is any voltage module out of the realistic range?
        """
        rows = self.equation_system.get_variable_positions(VariableType.BUS_V)
        if len(rows) == 0:
            return False

        x = self.equation_system.get_state_vector()
        vm = x[rows]
        bad = np.where((vm < self.options.min_realistic_voltage) | (vm > self.options.max_realistic_voltage))[0]

        for pos in bad:
            element, _ = self.equation_system.variables[rows[pos]]
            self.logger.add_error("Unrealistic voltage magnitude",
                                  device=self.equation_system.nc.bus_idtag[element],
                                  value=vm[pos],
                                  expected_value=f"[{self.options.min_realistic_voltage}, "
                                                 f"{self.options.max_realistic_voltage}]")
        return len(bad) > 0

    def run(self, initializer: Union[VoltageInitializer, None] = None) -> NewtonRaphsonResult:
        """
        Solve
        :param initializer: VoltageInitializer (flat start by default), ignored when warm starting
        :return: NewtonRaphsonResult
        """
        start = time.time()

        if initializer is None:
            initializer = UniformValueVoltageInitializer()

        self.iteration = 0
        self._init_state_vector(initializer)

        fx = self.equation_system.get_mismatch()
        initial_test = self.stopping_criteria.test(fx)

        if self.options.verbose > 0:
            print(f"Newton-Raphson |f(x0)| {initial_test.norm}")

        self.scaling = StateVectorScaling.from_options(self.options, initial_test_result=initial_test,
                                                       logger=self.logger)

        status = NewtonRaphsonStatus.NO_CALCULATION
        fx_norm = initial_test.norm
        norm_evolution = list()

        try:
            while self.iteration < self.options.max_iter:
                new_status, fx, fx_norm = self._run_iteration(fx)

                if self.options.detailed_report:
                    norm_evolution.append(fx_norm)

                if new_status is not None:
                    status = new_status
                    break

            if status == NewtonRaphsonStatus.NO_CALCULATION:
                status = NewtonRaphsonStatus.MAX_ITERATION_REACHED
                self.logger.add_warning("Newton-Raphson maximum number of iterations reached",
                                        value=self.iteration, expected_value=self.options.max_iter)
        finally:
            self.linear_solver.close()

        if status == NewtonRaphsonStatus.CONVERGED:
            if self.is_state_unrealistic():
                status = NewtonRaphsonStatus.UNREALISTIC_STATE
                self._converged_x = None
            else:
                self._converged_x = self.equation_system.get_state_vector()
        else:
            self._converged_x = None

        if status in (NewtonRaphsonStatus.CONVERGED, NewtonRaphsonStatus.UNREALISTIC_STATE) \
                or self.options.always_update_network:
            self.equation_system.update_network()

        slack_p_mismatch = self.equation_system.get_slack_p_mismatch()

        self.hooks.fire('after_convergence', status, self.iteration)

        if self.options.verbose > 0:
            print(f"Newton-Raphson {status} after {self.iteration} iterations, |f(x)| {fx_norm}")

        self.last_result = NewtonRaphsonResult(status=status,
                                               iterations=self.iteration,
                                               slack_p_mismatch=slack_p_mismatch,
                                               norm=float(fx_norm),
                                               elapsed=time.time() - start,
                                               norm_evolution=norm_evolution)
        return self.last_result

    def reset(self) -> None:
        """
        Forget the last converged solution (the next run starts from the initializer)
        """
        self._converged_x = None
        self.last_result = None
