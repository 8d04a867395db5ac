# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
import numpy as np
from GridSolverEngine.api import *
from tests.conftest import build_three_bus_ac


class LinearScalarSystem(EquationSystem):
    """
    One voltage module variable with f(x) = x and a zero target
    """

    def __init__(self, x0: float):
        EquationSystem.__init__(self, nc=None)
        self._add_variable(0, VariableType.BUS_V)
        self._add_equation(0, EquationType.BUS_TARGET_Q)
        self.x = np.array([x0])

    def evaluate_equations(self):
        return self.x.copy()

    def get_target_vector(self):
        return np.zeros(1)


def test_line_search_folds_an_overshooting_step():
    """
    x0 = 1 and a step of 2.5 overshoots to -1.5 (norm 1.5 >= 1);
    one fold of 2/3 brings the state back to -2/3
    """
    options = NewtonRaphsonOptions(scaling_mode=StateVectorScalingMode.LINE_SEARCH)
    criteria = StoppingCriteria(tolerance=1e-4)
    eq = LinearScalarSystem(x0=1.0)

    scaling = StateVectorScaling.from_options(options, initial_test_result=criteria.test(eq.get_mismatch()))

    dx = np.array([2.5])
    scaling.apply(dx, eq)
    eq.set_state_vector(eq.get_state_vector() - dx)
    fx = eq.get_mismatch()

    test_result, fx = scaling.apply_after(eq, fx, criteria, criteria.test(fx))

    assert scaling.last_fold_count == 1
    assert np.isclose(scaling.last_step_size, 2.0 / 3.0)
    assert np.isclose(eq.x[0], -2.0 / 3.0)
    assert np.isclose(test_result.norm, 2.0 / 3.0)
    assert np.isclose(fx[0], -2.0 / 3.0)


def test_line_search_keeps_an_improving_step():
    """
    A step that already improves the norm is not folded
    """
    options = NewtonRaphsonOptions(scaling_mode=StateVectorScalingMode.LINE_SEARCH)
    criteria = StoppingCriteria()
    eq = LinearScalarSystem(x0=1.0)
    scaling = StateVectorScaling.from_options(options, initial_test_result=criteria.test(eq.get_mismatch()))

    dx = np.array([0.9])
    scaling.apply(dx, eq)
    eq.set_state_vector(eq.get_state_vector() - dx)
    fx = eq.get_mismatch()
    test_result, _ = scaling.apply_after(eq, fx, criteria, criteria.test(fx))

    assert scaling.last_fold_count == 0
    assert scaling.last_step_size == 1.0
    assert np.isclose(eq.x[0], 0.1)
    assert scaling.last_test_result is test_result


def test_line_search_fold_cap():
    """
    A step in the wrong direction is folded up to the cap and then accepted as it is
    """
    options = NewtonRaphsonOptions(scaling_mode=StateVectorScalingMode.LINE_SEARCH, line_search_max_iter=3)
    criteria = StoppingCriteria()
    eq = LinearScalarSystem(x0=1.0)
    scaling = StateVectorScaling.from_options(options, initial_test_result=criteria.test(eq.get_mismatch()))

    dx = np.array([-1.0])
    scaling.apply(dx, eq)
    eq.set_state_vector(eq.get_state_vector() - dx)
    fx = eq.get_mismatch()
    test_result, _ = scaling.apply_after(eq, fx, criteria, criteria.test(fx))

    assert scaling.last_fold_count == 3
    assert np.isclose(scaling.last_step_size, (2.0 / 3.0) ** 3)
    assert test_result.norm >= 1.0


def test_line_search_power_flow_is_monotonic():
    """
    With the line search every iteration ends with a norm not larger than the previous one
    """
    nc = compile_network_data(build_three_bus_ac())
    options = NewtonRaphsonOptions(scaling_mode=StateVectorScalingMode.LINE_SEARCH)

    norms = list()
    hooks = SolverHooks()
    hooks.after_mismatch.append(lambda it, fx, fx_norm: norms.append(fx_norm))

    eq = AcEquationSystem(nc)
    eq.create_state_vector(UniformValueVoltageInitializer())
    initial_norm = StoppingCriteria().test(eq.get_mismatch()).norm

    res = NewtonRaphson(eq, options=options, hooks=hooks).run()

    assert res.converged
    sequence = [initial_norm] + norms
    for prev, nxt in zip(sequence[:-1], sequence[1:]):
        assert nxt <= prev


def test_max_voltage_change_clips():
    """
    Angle rows are clipped to max_dphi and module rows to max_dv, with deterministic counts
    """
    nc = compile_network_data(build_three_bus_ac())
    eq = AcEquationSystem(nc)
    options = NewtonRaphsonOptions(scaling_mode=StateVectorScalingMode.MAX_VOLTAGE_CHANGE)

    # variables: angle of B1, angle of B2, module of B2
    for _ in range(2):
        scaling = StateVectorScaling.from_options(options)
        dx = np.array([0.5, -0.01, -0.3])
        scaling.apply(dx, eq)

        assert np.isclose(dx[0], options.max_dphi)
        assert dx[1] == -0.01
        assert np.isclose(dx[2], -options.max_dv)
        assert scaling.last_phi_cut_count == 1
        assert scaling.last_v_cut_count == 1


def test_max_voltage_change_power_flow():
    """
    The clipped solve reaches the same solution, never moving a module more than max_dv per iteration
    """
    nc1 = compile_network_data(build_three_bus_ac())
    nc2 = compile_network_data(build_three_bus_ac())

    options = NewtonRaphsonOptions(scaling_mode=StateVectorScalingMode.MAX_VOLTAGE_CHANGE, max_dv=0.005)
    eq = AcEquationSystem(nc2)
    v_rows = eq.get_variable_positions(VariableType.BUS_V)

    steps = list()
    hooks = SolverHooks()
    hooks.after_state_update.append(lambda it, x: steps.append(x[v_rows].copy()))

    res1 = NewtonRaphson(AcEquationSystem(nc1)).run()
    res2 = NewtonRaphson(eq, options=options, hooks=hooks).run()

    assert res1.converged and res2.converged
    assert np.allclose(nc1.Vm0, nc2.Vm0, atol=1e-4)
    assert np.allclose(nc1.Va0, nc2.Va0, atol=1e-4)

    previous = np.ones(len(v_rows))
    for vm in steps:
        assert np.all(np.abs(vm - previous) <= 0.005 + 1e-12)
        previous = vm


def test_no_scaling_leaves_the_step():
    """
    NONE mode does not touch the step
    """
    nc = compile_network_data(build_three_bus_ac())
    eq = AcEquationSystem(nc)
    scaling = StateVectorScaling.from_options(NewtonRaphsonOptions())
    dx = np.array([0.5, -0.01, -0.3])
    scaling.apply(dx, eq)
    assert np.array_equal(dx, [0.5, -0.01, -0.3])
    assert str(scaling) == str(StateVectorScalingMode.NONE)


class BoundedScalarSystem(LinearScalarSystem):
    """
    f(x) = x, not defined (NaN) for |x| >= 10
    """

    def evaluate_equations(self):
        if abs(self.x[0]) >= 10.0:
            return np.full(1, np.nan)
        return self.x.copy()


def test_line_search_folds_a_non_finite_mismatch():
    """
    x0 = 1 and a step of 100 lands where the mismatch is NaN; the step is folded
    until the norm is finite and lower than the previous one
    """
    options = NewtonRaphsonOptions(scaling_mode=StateVectorScalingMode.LINE_SEARCH, line_search_max_iter=20)
    criteria = StoppingCriteria()
    eq = BoundedScalarSystem(x0=1.0)
    scaling = StateVectorScaling.from_options(options, initial_test_result=criteria.test(eq.get_mismatch()))

    dx = np.array([100.0])
    scaling.apply(dx, eq)
    eq.set_state_vector(eq.get_state_vector() - dx)
    fx = eq.get_mismatch()
    test_result, fx = scaling.apply_after(eq, fx, criteria, criteria.test(fx))

    assert scaling.last_fold_count == 10
    assert np.isfinite(test_result.norm)
    assert test_result.norm < 1.0
    assert np.isclose(eq.x[0], 1.0 - 100.0 * (2.0 / 3.0) ** 10)
    assert np.all(np.isfinite(fx))


def test_line_search_non_finite_mismatch_fold_cap():
    """
    When the cap is reached first the folds are all spent
    """
    options = NewtonRaphsonOptions(scaling_mode=StateVectorScalingMode.LINE_SEARCH, line_search_max_iter=3)
    criteria = StoppingCriteria()
    eq = BoundedScalarSystem(x0=1.0)
    scaling = StateVectorScaling.from_options(options, initial_test_result=criteria.test(eq.get_mismatch()))

    dx = np.array([100.0])
    scaling.apply(dx, eq)
    eq.set_state_vector(eq.get_state_vector() - dx)
    fx = eq.get_mismatch()
    scaling.apply_after(eq, fx, criteria, criteria.test(fx))

    assert scaling.last_fold_count == 3
