# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
import numpy as np
import pytest
from GridSolverEngine.api import *
from tests.conftest import build_three_bus_ac, build_five_bus_dc


def test_ac_power_flow_converges():
    """
    Flat start power flow of the three bus case: the solution must satisfy the
    power balance of every pv and pq bus
    """
    nc = compile_network_data(build_three_bus_ac())
    eq = AcEquationSystem(nc)
    solver = NewtonRaphson(equation_system=eq)
    res = solver.run()

    print(res.to_df())

    assert res.status == NewtonRaphsonStatus.CONVERGED
    assert res.converged
    assert 1 < res.iterations <= 6
    assert np.max(np.abs(eq.get_mismatch())) < 1e-4

    # the set points are kept
    assert np.isclose(eq.Vm[0], 1.02)
    assert np.isclose(eq.Vm[1], 1.01)
    assert eq.Va[0] == 0.0

    # the loaded bus sags and lags
    assert eq.Vm[2] < 1.01
    assert eq.Va[2] < 0.0


def test_network_updated_only_on_convergence():
    """
    The stored voltages are written when the solver converges and left alone when it does not
    """
    nc = compile_network_data(build_three_bus_ac())
    vm_before = nc.Vm0.copy()

    res = NewtonRaphson(AcEquationSystem(nc), options=NewtonRaphsonOptions(max_iter=1)).run()
    assert res.status == NewtonRaphsonStatus.MAX_ITERATION_REACHED
    assert np.array_equal(nc.Vm0, vm_before)

    res = NewtonRaphson(AcEquationSystem(nc)).run()
    assert res.status == NewtonRaphsonStatus.CONVERGED
    assert not np.array_equal(nc.Vm0, vm_before)


def test_always_update_network():
    """
    With always_update_network the state is written even without convergence
    """
    nc = compile_network_data(build_three_bus_ac())
    options = NewtonRaphsonOptions(max_iter=1, always_update_network=True)
    res = NewtonRaphson(AcEquationSystem(nc), options=options).run()
    assert res.status == NewtonRaphsonStatus.MAX_ITERATION_REACHED
    assert nc.Va0[2] != 0.0


def test_max_iteration_reached_logs_warning():
    """
    Running out of iterations is reported with a warning
    """
    nc = compile_network_data(build_three_bus_ac())
    logger = Logger()
    res = NewtonRaphson(AcEquationSystem(nc), options=NewtonRaphsonOptions(max_iter=1), logger=logger).run()
    assert res.status == NewtonRaphsonStatus.MAX_ITERATION_REACHED
    assert res.iterations == 1
    assert logger.count(LogSeverity.Warning) == 1


def test_solver_failed_on_singular_jacobian():
    """
    A pq bus without any branch makes the jacobian singular
    """
    grid = build_three_bus_ac()
    grid.add_bus(name="lonely", idtag="B3")
    nc = compile_network_data(grid)

    logger = Logger()
    res = NewtonRaphson(AcEquationSystem(nc), logger=logger).run()

    assert res.status == NewtonRaphsonStatus.SOLVER_FAILED
    assert res.iterations == 1
    assert logger.error_count() == 1


def test_unrealistic_state():
    """
    A converged state with a voltage out of the realistic range is flagged,
    and it is still written into the network
    """
    nc = compile_network_data(build_three_bus_ac())
    options = NewtonRaphsonOptions(min_realistic_voltage=1.0, max_realistic_voltage=2.0)
    logger = Logger()
    solver = NewtonRaphson(AcEquationSystem(nc), options=options, logger=logger)
    res = solver.run()

    assert res.status == NewtonRaphsonStatus.UNREALISTIC_STATE
    assert not res.converged
    assert nc.Vm0[2] < 1.0
    assert any(e.device == "B2" for e in logger.entries)

    # no warm start from an unrealistic state
    assert solver._converged_x is None


def test_warm_start():
    """
    A second solve of the same system starts from the converged state
    """
    nc = compile_network_data(build_three_bus_ac())
    solver = NewtonRaphson(AcEquationSystem(nc))

    res1 = solver.run()
    res2 = solver.run()

    assert res1.converged and res2.converged
    assert res2.iterations == 1
    assert res2.iterations < res1.iterations

    solver.reset()
    res3 = solver.run()
    assert res3.iterations == res1.iterations


def test_initializers():
    """
    Previous values and DC values initializers
    """
    nc = compile_network_data(build_three_bus_ac())
    nc.Vm0[:] = [1.02, 1.01, 0.97]
    nc.Va0[:] = [0.0, -0.01, -0.05]

    Vm, Va = get_voltage_initializer(VoltageInitMode.PREVIOUS_VALUES).initialize(nc)
    assert np.allclose(Vm, [1.02, 1.01, 0.97])
    assert np.allclose(Va, [0.0, -0.01, -0.05])

    Vm, Va = get_voltage_initializer(VoltageInitMode.UNIFORM_VALUES).initialize(nc)
    assert np.allclose(Vm, 1.0)
    assert np.allclose(Va, 0.0)

    Vm, Va = get_voltage_initializer(VoltageInitMode.DC_VALUES).initialize(nc)
    assert np.allclose(Vm, 1.0)
    assert Va[0] == 0.0
    assert Va[2] < 0.0

    # starting from the DC angles converges too
    res = run_newton_raphson(nc, init_mode=VoltageInitMode.DC_VALUES)
    assert res.converged


def test_dc_power_flow_single_iteration():
    """
    The DC system is linear: Newton-Raphson solves it in one iteration and the
    slack bus takes the whole imbalance
    """
    nc = compile_network_data(build_five_bus_dc())
    eq = DcEquationSystem(nc)
    res = NewtonRaphson(eq).run()

    assert res.converged
    assert res.iterations == 1

    flows = eq.get_branch_flows()
    Pbus = nc.get_Pbus()

    # power balance at every bus: injections equal the net branch outflows
    outflow = np.zeros(nc.nbus)
    np.add.at(outflow, nc.F, flows)
    np.add.at(outflow, nc.T, -flows)
    assert np.allclose(outflow[eq.buses], Pbus[eq.buses], atol=1e-8)
    assert np.isclose(res.slack_p_mismatch, 0.0, atol=1e-8)

    # the antenna evacuates its generator
    k = nc.branch_index("L24")
    assert np.isclose(flows[k] * nc.Sbase, -50.0)


def test_hooks_are_called():
    """
    Every lifecycle point is reached once per iteration, the convergence one once per solve
    """
    nc = compile_network_data(build_three_bus_ac())

    calls = {'before': list(), 'solve': list(), 'update': list(), 'mismatch': list(), 'end': list()}
    hooks = SolverHooks()
    hooks.before_iteration.append(lambda it: calls['before'].append(it))
    hooks.after_solve.append(lambda it, dx: calls['solve'].append(len(dx)))
    hooks.after_state_update.append(lambda it, x: calls['update'].append(it))
    hooks.after_mismatch.append(lambda it, fx, fx_norm: calls['mismatch'].append(fx_norm))
    hooks.after_convergence.append(lambda status, it: calls['end'].append(status))

    assert not hooks.is_empty()

    res = NewtonRaphson(AcEquationSystem(nc), hooks=hooks).run()

    assert calls['before'] == list(range(res.iterations))
    assert calls['solve'] == [3] * res.iterations
    assert len(calls['update']) == res.iterations
    assert len(calls['mismatch']) == res.iterations
    assert calls['end'] == [NewtonRaphsonStatus.CONVERGED]
    assert np.isclose(calls['mismatch'][-1], res.norm)


def test_detailed_report():
    """
    The detailed report logs the norm of every iteration and keeps its evolution
    """
    nc = compile_network_data(build_three_bus_ac())
    logger = Logger()
    res = NewtonRaphson(AcEquationSystem(nc), options=NewtonRaphsonOptions(detailed_report=True),
                        logger=logger).run()

    assert len(res.norm_evolution) == res.iterations
    df = res.norm_evolution_df()
    assert df.shape == (res.iterations, 1)
    assert logger.count(LogSeverity.Information) >= res.iterations


def test_largest_mismatches():
    """
    The largest mismatches are listed in decreasing absolute value, small ones are skipped
    """
    nc = compile_network_data(build_three_bus_ac())
    eq = AcEquationSystem(nc)
    eq.create_state_vector(UniformValueVoltageInitializer())
    fx = np.array([0.1, -0.5, 1e-9])

    res = find_largest_mismatches(eq, fx, count=5)

    assert len(res) == 2
    assert res[0][0] == "B2"
    assert res[0][2] == -0.5
    assert res[1][0] == "B1"


def test_stopping_criteria():
    """
    The threshold scales with the square root of the number of equations
    """
    criteria = StoppingCriteria(tolerance=1e-4)

    assert criteria.test(np.full(4, 0.9e-4)).stop
    assert not criteria.test(np.full(4, 1.1e-4)).stop
    assert criteria.test(np.zeros(0)).stop

    res = criteria.test(np.array([3e-4, 4e-4]))
    assert np.isclose(res.norm, 5e-4)
    assert not res.stop


def test_api_runs_dc_and_ac():
    """
    The api entry point compiles the grid and picks the equation system
    """
    res = run_newton_raphson(build_five_bus_dc(), dc=True)
    assert res.converged

    res = run_newton_raphson(build_three_bus_ac())
    assert res.converged

    with pytest.raises(InvalidOptionError):
        run_newton_raphson(build_three_bus_ac(), options=NewtonRaphsonOptions(max_iter=0))


def test_equation_indexing_and_branch_flows():
    """
    Stable lookups of variables and equations, and a lossy solution of the AC case
    """
    nc = compile_network_data(build_three_bus_ac())
    eq = AcEquationSystem(nc)
    NewtonRaphson(equation_system=eq).run()

    assert eq.get_variable_index(1, VariableType.BUS_PHI) == 0
    assert eq.get_variable_index(2, VariableType.BUS_V) == 2
    assert eq.get_equation_index(2, EquationType.BUS_TARGET_P) == 1
    assert eq.has_equation(2, EquationType.BUS_TARGET_Q)
    assert not eq.has_equation(1, EquationType.BUS_TARGET_Q)

    # the slack bus has no variable
    with pytest.raises(NetworkError):
        eq.get_variable_index(0, VariableType.BUS_PHI)

    Sf, St = eq.get_branch_power_flows()
    losses = (Sf + St).real
    assert np.all(losses > 0.0)
    assert np.isclose(losses.sum(), eq.get_Scalc().real.sum())

    g = nc.gen_index("G1")
    assert nc.gen_bus[g] == nc.bus_index("B1")
    with pytest.raises(NetworkError):
        nc.gen_index("nope")
