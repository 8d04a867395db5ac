# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
import numpy as np
import pytest
from GridSolverEngine.api import *
from GridSolverEngine.Simulations.ContingencyAnalysis.computed_elements import (create_contingency_elements,
                                                                                calculate_element_states,
                                                                                set_computed_element_indexes,
                                                                                fill_rhs)
from GridSolverEngine.Simulations.ContingencyAnalysis.dc_security_analysis import compute_post_contingency_flows
from tests.conftest import build_five_bus_dc, build_two_bus_parallel_lines, solve_dc_reference


def get_contingency_setup(nc: NetworkData, branch_ids):
    """
    Base case, element states and engine for a set of removed branches
    """
    context = DcLoadFlowContext(nc)
    theta0 = context.run()
    idx = [nc.branch_index(bid) for bid in branch_ids]
    elements = create_contingency_elements(nc, idx)
    states = calculate_element_states(context, elements)
    engine = WoodburyEngine(states)
    return context, theta0, elements, engine


@pytest.mark.parametrize("branch_ids", [["L01"], ["L12"], ["PST13"], ["L01", "L23"], ["L02", "PST13", "L03"]])
def test_contingency_matches_full_resolve(branch_ids):
    """
    Post contingency flows from the Woodbury identity equal those of a network
    rebuilt and factorized without the branches
    """
    nc = compile_network_data(build_five_bus_dc())
    context, theta0, elements, engine = get_contingency_setup(nc, branch_ids)

    theta = engine.run(elements, theta0)
    flows = compute_post_contingency_flows(context, elements, theta)
    context.close()

    nc2 = nc.copy()
    for bid in branch_ids:
        nc2.branch_active[nc2.branch_index(bid)] = False
    theta_ref, flows_ref = solve_dc_reference(nc2)

    assert np.allclose(theta, theta_ref, atol=1e-10)
    assert np.allclose(flows, flows_ref, atol=1e-10)
    for elm in elements:
        assert flows[elm.branch_idx] == 0.0


def test_single_closed_form_equals_general_system():
    """
    The closed form alpha of one element equals the 1x1 dense system solution
    """
    nc = compile_network_data(build_five_bus_dc())
    context, theta0, elements, engine = get_contingency_setup(nc, ["PST13"])

    a1 = engine.compute_alphas(elements, theta0)
    a2 = engine.compute_alphas(elements, theta0, force_general=True)

    assert a1.shape == (1, 1)
    assert np.allclose(a1, a2, atol=1e-12)
    assert engine.dense_solve_count == 1

    # the alpha of a removed branch is the flow it would carry after its removal
    elm = elements[0]
    z = engine.get_element_state(elm)
    s = z[elm.f] - z[elm.t]
    expected = (theta0[elm.f] - theta0[elm.t] + elm.phi) / (1.0 / elm.b - s)
    assert np.isclose(elm.alpha, expected)
    context.close()


def test_multiple_state_columns():
    """
    All the columns of a state matrix are solved at once, each one as if alone
    """
    nc = compile_network_data(build_five_bus_dc())
    context, theta0, elements, engine = get_contingency_setup(nc, ["L01", "L23"])

    states = np.c_[theta0, 2.0 * theta0, np.zeros(nc.nbus)]
    post = engine.run(elements, states, with_phase_shift=False)

    for j in range(states.shape[1]):
        single = engine.run(elements, states[:, j], with_phase_shift=False)
        assert np.allclose(post[:, j], single)

    # without the phase shift term a zero state stays zero
    assert np.allclose(post[:, 2], 0.0)
    context.close()


def test_two_bus_parallel_lines_full_transfer():
    """
    Losing one of two parallel lines transfers all of its flow to the other one
    """
    nc = compile_network_data(build_two_bus_parallel_lines())
    context, theta0, elements, engine = get_contingency_setup(nc, ["L1"])
    flows0 = context.compute_flows(theta0)

    theta = engine.run(elements, theta0)
    flows = compute_post_contingency_flows(context, elements, theta)

    assert np.allclose(flows0 * nc.Sbase, [50.0, 50.0])
    assert abs(flows[1] * nc.Sbase - 100.0) < 1e-6
    assert flows[0] == 0.0
    context.close()


def test_tap_action_matches_full_resolve():
    """
    Moving the phase shifter tap equals re-solving the network at the new position
    """
    nc = compile_network_data(build_five_bus_dc())
    action = TapPositionAction(branch_id="PST13", tap_position=1, idtag="tap1")

    context = DcLoadFlowContext(nc)
    theta0 = context.run()
    elm = ComputedActionElement(nc, action)
    set_computed_element_indexes([elm])
    action_states = calculate_element_states(context, [elm])
    engine = WoodburyEngine(np.zeros((nc.nbus, 0)), action_states)

    theta = engine.run([elm], theta0)
    flows = compute_post_contingency_flows(context, [elm], theta)
    context.close()

    nc2 = nc.copy()
    nc2.set_tap_position(nc2.branch_index("PST13"), 1)
    theta_ref, flows_ref = solve_dc_reference(nc2)

    assert np.allclose(flows, flows_ref, atol=1e-10)
    assert np.allclose(theta, theta_ref, atol=1e-10)


def test_pure_phase_shift_action_matches_full_resolve():
    """
    A tap move that keeps the reactance only changes the phase shift injection
    """
    grid = build_five_bus_dc()
    pst = grid.get_branch_by_idtag("PST13")
    pst.tap_changer = TapChanger(m=[1.0, 1.0], tau=[0.0, 0.08], x_factor=[1.0, 1.0], tap_position=0)
    nc = compile_network_data(grid)

    context = DcLoadFlowContext(nc)
    theta0 = context.run()
    elm = ComputedActionElement(nc, TapPositionAction(branch_id="PST13", tap_position=1))
    assert elm.delta_b == 0.0
    set_computed_element_indexes([elm])
    engine = WoodburyEngine(np.zeros((nc.nbus, 0)), calculate_element_states(context, [elm]))

    theta = engine.run([elm], theta0)
    flows = compute_post_contingency_flows(context, [elm], theta)
    context.close()

    nc2 = nc.copy()
    nc2.set_tap_position(nc2.branch_index("PST13"), 1)
    theta_ref, flows_ref = solve_dc_reference(nc2)

    assert np.allclose(flows, flows_ref, atol=1e-10)


def test_contingency_and_actions_together():
    """
    Opening a line, then closing an open line and moving the tap in the same perturbation
    """
    grid = build_five_bus_dc()
    b1 = grid.buses[1]
    b3 = grid.buses[3]
    grid.add_line(b1, b3, name="L13", idtag="L13", X=0.3, active=False)
    nc = compile_network_data(grid)

    context = DcLoadFlowContext(nc)
    theta0 = context.run()

    cnt_elements = create_contingency_elements(nc, [nc.branch_index("L03")])
    cnt_states = calculate_element_states(context, cnt_elements)

    act_elements = [ComputedActionElement(nc, SwitchAction(branch_id="L13", open_branch=False)),
                    ComputedActionElement(nc, TapPositionAction(branch_id="PST13", tap_position=1))]
    set_computed_element_indexes(act_elements)
    act_states = calculate_element_states(context, act_elements)

    engine = WoodburyEngine(cnt_states, act_states)
    elements = cnt_elements + act_elements
    theta = engine.run(elements, theta0)
    flows = compute_post_contingency_flows(context, elements, theta)
    context.close()

    nc2 = nc.copy()
    nc2.branch_active[nc2.branch_index("L03")] = False
    nc2.branch_active[nc2.branch_index("L13")] = True
    nc2.set_tap_position(nc2.branch_index("PST13"), 1)
    theta_ref, flows_ref = solve_dc_reference(nc2)

    assert np.allclose(theta, theta_ref, atol=1e-10)
    assert np.allclose(flows, flows_ref, atol=1e-10)
    assert engine.dense_solve_count == 1


def test_element_states():
    """
    Every element state column answers a +1/-1 injection at the branch ends
    """
    nc = compile_network_data(build_five_bus_dc())
    context = DcLoadFlowContext(nc)
    elements = create_contingency_elements(nc, [nc.branch_index("L12"), nc.branch_index("L01"),
                                                nc.branch_index("L12")])

    # repeated branches give a single element
    assert [elm.branch_id for elm in elements] == ["L12", "L01"]
    assert [elm.global_index for elm in elements] == [0, 1]

    rhs = fill_rhs(nc.nbus, elements)
    assert rhs[nc.bus_index("B1"), 0] == 1.0
    assert rhs[nc.bus_index("B2"), 0] == -1.0

    states = calculate_element_states(context, elements)
    assert states.shape == (nc.nbus, 2)
    assert np.allclose(states[context.slack, :], 0.0)

    # B z = e_f - e_t over the non slack buses
    eq = context.equation_system
    B = eq.Bbus.toarray()
    res = B @ states
    assert np.allclose(res[eq.buses, :], rhs[eq.buses, :])
    context.close()


def test_empty_perturbation():
    """
    No element leaves the state as it is
    """
    engine = WoodburyEngine(np.zeros((3, 0)))
    theta = np.array([0.0, 0.1, 0.2])
    post = engine.run([], theta)
    assert np.array_equal(post, theta)
    assert post is not theta
    assert engine.compute_alphas([], theta).shape == (0, 1)


def test_capacity_check():
    """
    Perturbation matrices that do not fit in a single dense array are refused before allocation
    """
    rows = 1000
    max_cols = max_dense_columns(rows)
    assert max_cols == (2 ** 31 - 1) // (rows * 8)

    check_dense_capacity(rows, max_cols)

    with pytest.raises(PerturbationCapacityError) as e:
        check_dense_capacity(rows, max_cols + 1)

    assert e.value.columns == max_cols + 1
    assert e.value.max_columns == max_cols

    with pytest.raises(PerturbationCapacityError):
        allocate_dense(50000, 50000)


def test_singular_perturbation_is_logged():
    """
    Removing every path to a bus makes the perturbation singular: it raises and is logged
    """
    nc = compile_network_data(build_two_bus_parallel_lines())
    elements = create_contingency_elements(nc, [nc.branch_index("L1"), nc.branch_index("L2")])
    b = elements[0].b
    theta0 = np.array([0.0, -0.5])

    # exact element states of the two parallel lines: each sees half of the total susceptance
    logger = Logger()
    states = np.zeros((2, 2))
    states[1, :] = -0.5 / b
    engine = WoodburyEngine(states, logger=logger)

    # one line out is fine
    engine.run(elements[:1], theta0)
    assert logger.error_count() == 0

    with pytest.raises(LinearSolverError):
        engine.run(elements, theta0)
    assert logger.error_count() == 1

    # a single bridge branch
    states[1, :] = -1.0 / b
    with np.errstate(divide='ignore', invalid='ignore'):
        with pytest.raises(LinearSolverError):
            engine.run(elements[:1], theta0)
    assert logger.error_count() == 2


def test_default_loggers_are_not_shared():
    e1 = WoodburyEngine(np.zeros((2, 0)))
    e2 = WoodburyEngine(np.zeros((2, 0)))
    assert e1.logger is not e2.logger
