# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
from __future__ import annotations

import time
from typing import Dict, List, Sequence, Set, Union
import numpy as np
from GridSolverEngine.basic_structures import Vec, Logger
from GridSolverEngine.enumerations import ContingencyStatus
from GridSolverEngine.exceptions import LinearSolverError, NetworkError
from GridSolverEngine.DataStructures.network_data import NetworkData
from GridSolverEngine.DataStructures.network_state import NetworkState
from GridSolverEngine.Topology.graph_connectivity import GraphConnectivity
from GridSolverEngine.Simulations.ContingencyAnalysis.contingency import (Contingency, PropagatedContingency,
                                                                          BranchAction, OperatorStrategy)
from GridSolverEngine.Simulations.ContingencyAnalysis.computed_elements import (ComputedElement,
                                                                                ComputedContingencyElement,
                                                                                ComputedActionElement,
                                                                                set_computed_element_indexes,
                                                                                calculate_element_states)
from GridSolverEngine.Simulations.ContingencyAnalysis.connectivity_break_analysis import (
    ConnectivityBreakAnalysis, ConnectivityBreakAnalysisResults, ConnectivityAnalysisResult)
from GridSolverEngine.Simulations.ContingencyAnalysis.dc_load_flow_context import DcLoadFlowContext
from GridSolverEngine.Simulations.ContingencyAnalysis.dc_security_analysis_options import DcSecurityAnalysisOptions
from GridSolverEngine.Simulations.ContingencyAnalysis.contingency_analysis_results import DcSecurityAnalysisResults
from GridSolverEngine.Simulations.ContingencyAnalysis.woodbury_engine import WoodburyEngine


def compute_post_contingency_flows(context: DcLoadFlowContext, elements: Sequence[ComputedElement],
                                   theta: Vec) -> Vec:
    """
    Branch flows of a post perturbation state.
    The opened branches carry exactly zero and the modified ones use their new characteristic
    :param context: DcLoadFlowContext
    :param elements: modified elements
    :param theta: post perturbation angles
    :return: branch flows (p.u.)
    """
    flows = context.compute_flows(theta)
    for elm in elements:
        if isinstance(elm, ComputedContingencyElement) or elm.b_after == 0.0:
            flows[elm.branch_idx] = 0.0
        else:
            flows[elm.branch_idx] = elm.b_after * (theta[elm.f] - theta[elm.t] + elm.phi_after)
    return flows


def disable_injections(nc: NetworkData, buses: Set[int]) -> None:
    """
    Disconnect the generators and loads of some buses (call within a NetworkState snapshot)
    :param nc: NetworkData
    :param buses: bus indices
    """
    if len(buses) == 0:
        return
    bus_list = list(buses)
    nc.gen_active[np.isin(nc.gen_bus, bus_list)] = False
    nc.load_active[np.isin(nc.load_bus, bus_list)] = False


class DcSecurityAnalysis:
    """
    DC contingency analysis over a single factorization.

    The base case is solved once; every contingency that keeps the network connected is derived
    from it through the Woodbury identity. The contingencies that split the network are processed
    by groups: the injections of the lost buses are removed, the base case is solved again with
    the same factors and the Woodbury step is applied to the elements that do not split the network.
    """

    def __init__(self,
                 nc: NetworkData,
                 contingencies: List[Contingency],
                 options: Union[DcSecurityAnalysisOptions, None] = None,
                 actions: Union[List[BranchAction], None] = None,
                 operator_strategies: Union[List[OperatorStrategy], None] = None,
                 logger: Union[Logger, None] = None):
        """

        :param nc: NetworkData
        :param contingencies: list of Contingency
        :param options: DcSecurityAnalysisOptions
        :param actions: remedial actions referenced by the operator strategies
        :param operator_strategies: list of OperatorStrategy
        :param logger: Logger
        """
        self.nc = nc
        self.contingencies = contingencies
        self.options = options if options is not None else DcSecurityAnalysisOptions()
        self.actions = actions if actions is not None else list()
        self.operator_strategies = operator_strategies if operator_strategies is not None else list()
        self.logger = logger if logger is not None else Logger()

        self.connectivity_analysis: Union[ConnectivityBreakAnalysisResults, None] = None
        self.connectivity: Union[GraphConnectivity, None] = None

        self.results: Union[DcSecurityAnalysisResults, None] = None

        self.elapsed = 0.0

    def _run_woodbury(self, context: DcLoadFlowContext, engine: WoodburyEngine,
                      elements: Sequence[ComputedElement], theta0: Vec, idtag: str):
        """
        Post perturbation angles and flows, or None when the perturbation cannot be solved
        """
        try:
            theta = engine.run(elements, theta0, with_phase_shift=True)
        except LinearSolverError as e:
            self.logger.add_error("Post contingency state not computed", device=idtag, value=e.message)
            return None, None

        return theta, compute_post_contingency_flows(context, elements, theta)

    def _solve_broken_network(self, context: DcLoadFlowContext, disabled_buses: Set[int]) -> Vec:
        """
        Base case of a network that lost some buses, solved with the base factors.
        Must be called within a NetworkState snapshot
        """
        disable_injections(self.nc, disabled_buses)
        return context.run()

    @staticmethod
    def _apply_disabled(flows: Vec, theta: Vec, group: ConnectivityAnalysisResult) -> None:
        """
        Zero the flows of the branches touching the lost buses and mark their angles as unknown
        """
        if len(group.partial_disabled_branches):
            flows[list(group.partial_disabled_branches)] = 0.0
        if len(group.disabled_buses):
            theta[list(group.disabled_buses)] = np.nan

    def process_breaking_group(self, context: DcLoadFlowContext, engine: WoodburyEngine,
                               group: ConnectivityAnalysisResult,
                               element_by_branch: Dict[int, ComputedContingencyElement],
                               results: DcSecurityAnalysisResults) -> None:
        """
        Contingencies sharing the same connectivity break
        :param context: DcLoadFlowContext
        :param engine: WoodburyEngine
        :param group: ConnectivityAnalysisResult
        :param element_by_branch: branch index -> ComputedContingencyElement
        :param results: DcSecurityAnalysisResults to fill
        """
        state = NetworkState.save(self.nc)
        try:
            theta_group = self._solve_broken_network(context, group.disabled_buses)

            for pc in group.contingencies:
                elements = [element_by_branch[k] for k in pc.branch_indices
                            if k not in group.elements_to_reconnect]

                theta, flows = self._run_woodbury(context, engine, elements, theta_group, pc.idtag)
                if theta is None:
                    continue

                # the reconnected elements are open as well
                for k in pc.branch_indices:
                    flows[k] = 0.0

                self._apply_disabled(flows, theta, group)
                results.set_contingency(pc.idtag, flows, theta, ContingencyStatus.SUCCESS)
        finally:
            state.restore()

    def create_action_elements(self) -> Dict[str, ComputedActionElement]:
        """
        One computed element per action referenced by the operator strategies, with global indices set
        :return: action id -> ComputedActionElement
        """
        actions_by_id = {act.idtag: act for act in self.actions}
        res = dict()
        for strategy in self.operator_strategies:
            for aid in strategy.action_ids:
                if aid in res:
                    continue
                if aid not in actions_by_id:
                    raise NetworkError(f"Action {aid} of the operator strategy {strategy.idtag} not found")
                res[aid] = ComputedActionElement(self.nc, actions_by_id[aid])

        set_computed_element_indexes(list(res.values()))
        return res

    def process_operator_strategies(self, context: DcLoadFlowContext, propagated: List[PropagatedContingency],
                                    theta0: Vec, results: DcSecurityAnalysisResults) -> None:
        """
        Contingencies followed by remedial actions
        :param context: DcLoadFlowContext
        :param propagated: list of PropagatedContingency
        :param theta0: base case angles
        :param results: DcSecurityAnalysisResults to fill
        """
        action_elements = self.create_action_elements()
        action_states = calculate_element_states(context, list(action_elements.values()))

        cba = ConnectivityBreakAnalysis(threshold=self.options.connectivity_loss_threshold,
                                        logger=self.logger,
                                        check_reconnection=self.options.check_reconnection)

        contingency_states = self.connectivity_analysis.contingency_states
        element_by_branch = self.connectivity_analysis.contingency_element_by_branch
        engine = WoodburyEngine(contingency_states, action_states, logger=self.logger)
        pc_by_id = {pc.idtag: pc for pc in propagated}

        for strategy in self.operator_strategies:

            if strategy.contingency_id not in pc_by_id:
                raise NetworkError(f"Contingency {strategy.contingency_id} of the operator strategy "
                                   f"{strategy.idtag} not found")
            pc = pc_by_id[strategy.contingency_id]

            elements: List[ComputedElement] = list()
            for aid in strategy.action_ids:
                elm = action_elements[aid]
                if elm.branch_idx in pc.branch_indices:
                    self.logger.add_warning("Action on a branch opened by the contingency, ignored",
                                            device=elm.action_id, device_class="OperatorStrategy")
                else:
                    elements.append(elm)

            cnt_elements = [element_by_branch[k] for k in pc.branch_indices]

            group = cba.run_for_operator_strategy(contingency=pc,
                                                  contingency_element_by_branch=element_by_branch,
                                                  contingency_states=contingency_states,
                                                  action_elements=elements,
                                                  action_states=action_states,
                                                  connectivity=self.connectivity)

            if group is None:
                theta, flows = self._run_woodbury(context, engine, cnt_elements + elements, theta0, strategy.idtag)
                if theta is not None:
                    results.set_operator_strategy(strategy.idtag, pc.idtag, flows, ContingencyStatus.SUCCESS)
                continue

            state = NetworkState.save(self.nc)
            try:
                theta_group = self._solve_broken_network(context, group.disabled_buses)
                all_elements = [elm for elm in cnt_elements + elements
                                if elm.branch_idx not in group.elements_to_reconnect]

                theta, flows = self._run_woodbury(context, engine, all_elements, theta_group, strategy.idtag)
                if theta is not None:
                    for elm in group.breaking_elements:
                        flows[elm.branch_idx] = 0.0
                    self._apply_disabled(flows, theta, group)
                    results.set_operator_strategy(strategy.idtag, pc.idtag, flows, ContingencyStatus.SUCCESS)
            finally:
                state.restore()

    def run(self) -> DcSecurityAnalysisResults:
        """
        Run the analysis
        :return: DcSecurityAnalysisResults
        """
        start = time.time()
        nc = self.nc

        propagated = PropagatedContingency.create_list(nc, self.contingencies, logger=self.logger)

        results = DcSecurityAnalysisResults(bus_ids=nc.bus_idtag,
                                            branch_ids=nc.branch_idtag,
                                            contingency_ids=[pc.idtag for pc in propagated],
                                            rates=nc.rates,
                                            Sbase=nc.Sbase)

        with DcLoadFlowContext(nc,
                               distributed_slack=self.options.distributed_slack,
                               balance_type=self.options.balance_type,
                               logger=self.logger) as context:

            self.connectivity = GraphConnectivity.from_network(nc)

            # base case
            theta0 = context.run()
            flows0 = context.compute_flows(theta0)
            results.set_base(flows0, theta0)

            for pc in propagated:
                if pc.has_no_impact:
                    results.set_contingency(pc.idtag, flows0, theta0, ContingencyStatus.NO_IMPACT)

            # classification
            cba = ConnectivityBreakAnalysis(threshold=self.options.connectivity_loss_threshold,
                                            logger=self.logger,
                                            check_reconnection=self.options.check_reconnection,
                                            verbose=self.options.verbose)
            self.connectivity_analysis = cba.run(context, propagated, self.connectivity)
            element_by_branch = self.connectivity_analysis.contingency_element_by_branch

            engine = WoodburyEngine(self.connectivity_analysis.contingency_states, logger=self.logger)

            # contingencies keeping the connectivity
            for pc in self.connectivity_analysis.non_breaking_contingencies:
                elements = [element_by_branch[k] for k in pc.branch_indices]
                theta, flows = self._run_woodbury(context, engine, elements, theta0, pc.idtag)
                if theta is not None:
                    results.set_contingency(pc.idtag, flows, theta, ContingencyStatus.SUCCESS)

            # contingencies breaking the connectivity, by group
            for g, group in enumerate(self.connectivity_analysis.connectivity_analysis_results):
                for pc in group.contingencies:
                    results.groups[pc.idtag] = g
                results.group_breaking_branches.append([nc.branch_idtag[k] for k in sorted(group.breaking_branches)])
                results.group_reconnected_branches.append([nc.branch_idtag[k]
                                                           for k in sorted(group.elements_to_reconnect)])
                self.process_breaking_group(context, engine, group, element_by_branch, results)

            if len(self.operator_strategies):
                self.process_operator_strategies(context, propagated, theta0, results)

        self.elapsed = time.time() - start

        if self.options.verbose > 0:
            print(f"DC security analysis of {len(propagated)} contingencies in {self.elapsed} s")

        self.results = results
        return results
