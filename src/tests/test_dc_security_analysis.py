# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
import numpy as np
import pytest
from GridSolverEngine.api import *
from tests.conftest import build_five_bus_dc, build_four_bus_ring, build_two_bus_parallel_lines, solve_dc_reference


def reference_flows_mw(nc: NetworkData, open_branches=(), disabled_buses=(), tap=None):
    """
    Flows (MW) of a modified copy of the network solved from scratch
    """
    nc2 = nc.copy()
    for bid in open_branches:
        nc2.branch_active[nc2.branch_index(bid)] = False
    for bus_id in disabled_buses:
        nc2.bus_active[nc2.bus_index(bus_id)] = False
    if tap is not None:
        nc2.set_tap_position(nc2.branch_index(tap[0]), tap[1])
    theta, flows = solve_dc_reference(nc2)
    return theta, flows * nc.Sbase


def test_non_breaking_contingencies():
    """
    Every contingency keeping the connectivity matches a full re-solve
    """
    nc = compile_network_data(build_five_bus_dc())
    contingencies = [Contingency(["L01"], idtag="C1"),
                     Contingency(["PST13"], idtag="C2"),
                     Contingency(["L02", "L23"], idtag="C3")]

    logger = Logger()
    res = run_dc_security_analysis(nc, contingencies, logger=logger)

    _, base = reference_flows_mw(nc)
    assert np.allclose(res.base_flows, base, atol=1e-8)

    for cnt in contingencies:
        theta_ref, flows_ref = reference_flows_mw(nc, open_branches=cnt.branch_ids)
        i = res.contingency_ids.index(cnt.idtag)
        assert res.get_status(cnt.idtag) == ContingencyStatus.SUCCESS
        assert np.allclose(res.flows[i, :], flows_ref, atol=1e-8)
        assert np.allclose(res.theta[i, :], theta_ref, atol=1e-10)
        assert res.groups[cnt.idtag] == -1

    assert logger.error_count() == 0
    assert logger.has_logs()


def test_two_bus_full_transfer():
    """
    The remaining parallel line takes the whole 100 MW
    """
    res = run_dc_security_analysis(build_two_bus_parallel_lines(), [Contingency(["L1"], idtag="C1")])

    assert np.allclose(res.base_flows, [50.0, 50.0])
    assert abs(res.get_flow("C1", "L2") - 100.0) < 1e-6
    assert res.get_flow("C1", "L1") == 0.0

    loading = res.get_loading_df()
    assert np.isclose(loading.loc["C1", "L2"], 100.0 / 80.0)


def test_no_impact_contingency():
    """
    A contingency on unknown or open branches reports the base case
    """
    grid = build_five_bus_dc()
    grid.get_branch_by_idtag("L12").active = False
    nc = compile_network_data(grid)

    res = run_dc_security_analysis(nc, [Contingency(["L12"], idtag="C1"), Contingency(["nope"], idtag="C2")])

    for cid in ["C1", "C2"]:
        assert res.get_status(cid) == ContingencyStatus.NO_IMPACT
        i = res.contingency_ids.index(cid)
        assert np.allclose(res.flows[i, :], res.base_flows)


def test_breaking_group_matches_reduced_network():
    """
    Losing the antenna drops its generator; the core is balanced again by the remaining
    participating generator. With an extra line lost, the identity is applied on top
    """
    nc = compile_network_data(build_five_bus_dc())
    contingencies = [Contingency(["L24"], idtag="C1"), Contingency(["L24", "L01"], idtag="C2")]
    analysis = DcSecurityAnalysis(nc, contingencies)
    res = analysis.run()

    assert res.groups["C1"] == res.groups["C2"] == 0
    assert res.group_breaking_branches == [["L24"]]
    assert res.group_reconnected_branches == [["L24"]]
    assert analysis.connectivity.start_count == 1

    b4 = nc.bus_index("B4")
    core = [i for i in range(nc.nbus) if i != b4]

    for cnt in contingencies:
        theta_ref, flows_ref = reference_flows_mw(nc, open_branches=cnt.branch_ids, disabled_buses=["B4"])
        i = res.contingency_ids.index(cnt.idtag)
        assert res.get_status(cnt.idtag) == ContingencyStatus.SUCCESS
        assert np.allclose(res.flows[i, :], flows_ref, atol=1e-8)
        assert np.allclose(res.theta[i, core], theta_ref[core], atol=1e-10)
        assert np.isnan(res.theta[i, b4])
        assert res.get_flow(cnt.idtag, "L24") == 0.0

    # the generator at B4 is lost: G0 produces the 250 MW of load alone
    i = res.contingency_ids.index("C1")
    k = [nc.branch_index(b) for b in ["L01", "L02", "L03"]]
    assert np.isclose(res.flows[i, k].sum(), 250.0)


def test_ring_breaking_contingency():
    """
    Isolating B1 of the ring sheds its load
    """
    nc = compile_network_data(build_four_bus_ring())
    res = run_dc_security_analysis(nc, [Contingency(["L01", "L12"], idtag="C1")])

    _, flows_ref = reference_flows_mw(nc, open_branches=["L01", "L12"], disabled_buses=["B1"])
    assert np.allclose(res.flows[0, :], flows_ref, atol=1e-8)
    assert res.get_flow("C1", "L01") == 0.0
    assert res.get_flow("C1", "L12") == 0.0
    assert len(res.group_reconnected_branches[0]) == 1


def test_network_is_restored():
    """
    The disconnections done while processing the breaking groups are undone
    """
    nc = compile_network_data(build_five_bus_dc())
    state = NetworkState.save(nc)

    options = DcSecurityAnalysisOptions()
    actions = [SwitchAction(branch_id="L24", idtag="A1")]
    strategies = [OperatorStrategy(contingency_id="C2", action_ids=["A1"], idtag="S1")]
    run_dc_security_analysis(nc, [Contingency(["L24"], idtag="C1"), Contingency(["L03"], idtag="C2")],
                             options=options, actions=actions, operator_strategies=strategies)

    assert not state.differs_from(nc)
    assert nc.gen_active.all()
    assert nc.load_active.all()


def test_operator_strategies():
    """
    Contingencies followed by remedial actions, with and without loss of connectivity
    """
    nc = compile_network_data(build_five_bus_dc())
    contingencies = [Contingency(["L03"], idtag="C1")]
    actions = [TapPositionAction(branch_id="PST13", tap_position=1, idtag="tap"),
               SwitchAction(branch_id="L24", open_branch=True, idtag="open24"),
               SwitchAction(branch_id="L03", open_branch=False, idtag="close03")]
    strategies = [OperatorStrategy(contingency_id="C1", action_ids=["tap"], idtag="S1"),
                  OperatorStrategy(contingency_id="C1", action_ids=["tap", "open24"], idtag="S2"),
                  OperatorStrategy(contingency_id="C1", action_ids=["close03"], idtag="S3")]

    logger = Logger()
    res = run_dc_security_analysis(nc, contingencies, actions=actions, operator_strategies=strategies,
                                   logger=logger)

    _, ref1 = reference_flows_mw(nc, open_branches=["L03"], tap=("PST13", 1))
    assert res.operator_strategy_status["S1"] == ContingencyStatus.SUCCESS
    assert np.allclose(res.operator_strategy_flows["S1"], ref1, atol=1e-8)

    _, ref2 = reference_flows_mw(nc, open_branches=["L03"], disabled_buses=["B4"], tap=("PST13", 1))
    assert np.allclose(res.operator_strategy_flows["S2"], ref2, atol=1e-8)

    # an action on a branch opened by the contingency is ignored
    _, ref3 = reference_flows_mw(nc, open_branches=["L03"])
    assert np.allclose(res.operator_strategy_flows["S3"], ref3, atol=1e-8)
    assert logger.count(LogSeverity.Warning) == 1

    df = res.get_operator_strategy_flows_df()
    assert list(df.index) == ["S1", "S2", "S3"]
    assert res.operator_strategy_contingency["S2"] == "C1"


def test_operator_strategy_errors():
    """
    Strategies referring to unknown actions or contingencies are rejected
    """
    nc = compile_network_data(build_five_bus_dc())
    contingencies = [Contingency(["L03"], idtag="C1")]

    with pytest.raises(NetworkError):
        run_dc_security_analysis(nc, contingencies, actions=[],
                                 operator_strategies=[OperatorStrategy("C1", ["missing"], idtag="S1")])

    with pytest.raises(NetworkError):
        run_dc_security_analysis(nc, contingencies,
                                 actions=[SwitchAction("L24", idtag="A1")],
                                 operator_strategies=[OperatorStrategy("C9", ["A1"], idtag="S1")])


def test_slack_bus_takes_the_imbalance():
    """
    Without slack distribution the lost generation is taken by the slack bus only
    """
    nc = compile_network_data(build_five_bus_dc())
    options = DcSecurityAnalysisOptions(distributed_slack=False)
    res = run_dc_security_analysis(nc, [Contingency(["L24"], idtag="C1")], options=options)

    k = [nc.branch_index(b) for b in ["L01", "L02", "L03"]]
    assert np.isclose(res.flows[0, k].sum(), 250.0)


def test_results_exports():
    """
    DataFrame views of the results
    """
    nc = compile_network_data(build_five_bus_dc())
    res = run_dc_security_analysis(nc, [Contingency(["L01"], idtag="C1"), Contingency(["L24"], idtag="C2")])

    assert res.get_base_flows_df().shape == (nc.nbr, 1)
    assert res.get_flows_df().shape == (2, nc.nbr)
    assert res.get_angles_df().shape == (2, nc.nbus)
    assert list(res.get_flows_df().columns) == list(nc.branch_idtag)

    status = res.get_status_df()
    assert list(status['status']) == [str(ContingencyStatus.SUCCESS)] * 2
    assert list(status['group']) == [-1, 0]

    data = res.get_results_dict()
    assert len(data['flows']) == 2
    assert data['groups'] == {"C1": -1, "C2": 0}


def test_options_validation():
    """
    The connectivity threshold must be in [0, 1) and the types must match
    """
    with pytest.raises(InvalidOptionError):
        DcSecurityAnalysisOptions(connectivity_loss_threshold=1.0)

    with pytest.raises(InvalidOptionError):
        DcSecurityAnalysisOptions(distributed_slack="yes")

    options = DcSecurityAnalysisOptions()
    options.set_value("balance_type", "PROPORTIONAL_TO_LOAD")
    assert options.balance_type == BalanceType.PROPORTIONAL_TO_LOAD
    assert options.to_dict()["balance_type"] == "PROPORTIONAL_TO_LOAD"

    with pytest.raises(InvalidOptionError):
        options.get_value("nope")
