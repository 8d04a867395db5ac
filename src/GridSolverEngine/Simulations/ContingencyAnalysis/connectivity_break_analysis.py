# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
"""
Detection of the contingencies that split the network.

A +1/-1 injection at the ends of an element is carried by the rest of the network. When the
elements of a contingency carry (in absolute value) the whole of that injection, nothing else
links both ends and removing them jointly may break the connectivity. This cheap test discards
most contingencies; the remaining ones are grouped by the elements responsible for the
potential break and every group is confirmed with a single cut of the graph.
"""
from __future__ import annotations

from typing import Dict, FrozenSet, List, Sequence, Set, Union
from GridSolverEngine.basic_structures import Mat, Logger
from GridSolverEngine.Simulations.ContingencyAnalysis.computed_elements import (ComputedElement,
                                                                                ComputedContingencyElement,
                                                                                ComputedActionElement,
                                                                                calculate_element_states,
                                                                                create_contingency_elements)
from GridSolverEngine.Simulations.ContingencyAnalysis.contingency import PropagatedContingency
from GridSolverEngine.Simulations.ContingencyAnalysis.dc_load_flow_context import DcLoadFlowContext
from GridSolverEngine.Topology.graph_connectivity import GraphConnectivity

DEFAULT_CONNECTIVITY_LOSS_THRESHOLD = 1e-6


class ConnectivityAnalysisResult:
    """
    Contingencies sharing the same connectivity break, and what the break disconnects
    """

    def __init__(self,
                 breaking_elements: List[ComputedElement],
                 elements_to_reconnect: Set[int],
                 disabled_buses: Set[int],
                 partial_disabled_branches: Set[int],
                 slack_connected_component: Set[int]):
        """

        :param breaking_elements: elements whose removal splits the network
        :param elements_to_reconnect: branch indices that, kept in service, join every component again
        :param disabled_buses: buses out of the slack component after the break
        :param partial_disabled_branches: branches with at least one end in a disabled bus
        :param slack_connected_component: buses of the slack component after the break
        """
        self.breaking_elements = breaking_elements
        self.elements_to_reconnect = elements_to_reconnect
        self.disabled_buses = disabled_buses
        self.partial_disabled_branches = partial_disabled_branches
        self.slack_connected_component = slack_connected_component

        self.contingencies: List[PropagatedContingency] = list()

    @property
    def breaking_branches(self) -> FrozenSet[int]:
        """
        Branch indices of the breaking elements
        """
        return frozenset(elm.branch_idx for elm in self.breaking_elements)

    def __repr__(self):
        return (f"ConnectivityAnalysisResult(breaking={sorted(self.breaking_branches)}, "
                f"reconnect={sorted(self.elements_to_reconnect)}, contingencies={len(self.contingencies)})")


class ConnectivityBreakAnalysisResults:
    """
    Classification of a list of contingencies
    """

    def __init__(self,
                 non_breaking_contingencies: List[PropagatedContingency],
                 connectivity_analysis_results: List[ConnectivityAnalysisResult],
                 contingency_states: Mat,
                 contingency_element_by_branch: Dict[int, ComputedContingencyElement]):
        """

        :param non_breaking_contingencies: contingencies that keep the network connected
        :param connectivity_analysis_results: one entry per group of breaking contingencies
        :param contingency_states: element states of the contingency elements (nbus x n)
        :param contingency_element_by_branch: branch index -> ComputedContingencyElement
        """
        self.non_breaking_contingencies = non_breaking_contingencies
        self.connectivity_analysis_results = connectivity_analysis_results
        self.contingency_states = contingency_states
        self.contingency_element_by_branch = contingency_element_by_branch

    @property
    def n_breaking(self) -> int:
        """
        Number of contingencies that break the connectivity
        """
        return sum(len(res.contingencies) for res in self.connectivity_analysis_results)

    def get_group_of(self, contingency_id: str) -> Union[ConnectivityAnalysisResult, None]:
        """
        Group holding a contingency
        :param contingency_id: contingency id
        :return: ConnectivityAnalysisResult or None if the contingency does not break the connectivity
        """
        for res in self.connectivity_analysis_results:
            for pc in res.contingencies:
                if pc.idtag == contingency_id:
                    return res
        return None


def get_element_states_column(element: ComputedElement, contingency_states: Mat,
                              action_states: Union[Mat, None]) -> Mat:
    """
    Element states matrix where the column of an element lives
    """
    if isinstance(element, ComputedActionElement):
        return action_states
    return contingency_states


class ConnectivityBreakAnalysis:
    """
    Classifies contingencies into connectivity preserving and connectivity breaking
    """

    def __init__(self, threshold: float = DEFAULT_CONNECTIVITY_LOSS_THRESHOLD,
                 logger: Union[Logger, None] = None, check_reconnection: bool = True, verbose: int = 0):
        """

        :param threshold: tolerance of the sensitivity test (the sum must exceed 1 - threshold)
        :param logger: Logger
        :param check_reconnection: log an error when a reconnection set does not join every component
        :param verbose: verbosity level
        """
        self.threshold = threshold
        self.check_reconnection = check_reconnection
        self.logger = logger if logger is not None else Logger()
        self.verbose = verbose

    def get_responsible_elements(self, elements: Sequence[ComputedElement], contingency_states: Mat,
                                 action_states: Union[Mat, None] = None) -> List[ComputedElement]:
        """
        Sensitivity test over a group of simultaneously removed elements.
        For every element whose +1/-1 injection is fully carried by the group, the elements
        carrying a share of it are responsible for a potential break
        :param elements: removed elements
        :param contingency_states: element states of the contingency elements
        :param action_states: element states of the action elements
        :return: responsible elements, empty when the connectivity is surely kept
        """
        responsible = list()
        for elm in elements:
            states = get_element_states_column(elm, contingency_states, action_states)
            values = [abs(elm2.calculate_sensi(states, elm.global_index)) for elm2 in elements]

            if sum(values) > 1.0 - self.threshold:
                for elm2, val in zip(elements, values):
                    if val > self.threshold and elm2 not in responsible:
                        responsible.append(elm2)

        return responsible

    def compute_elements_to_reconnect(self, connectivity: GraphConnectivity,
                                      breaking_elements: Sequence[ComputedElement],
                                      base_separated_buses: Set[int]) -> Set[int]:
        """
        Smallest set of breaking elements that joins every component again.
        The elements are virtually put back one by one, keeping those that merge two groups of components
        :param connectivity: GraphConnectivity with the elements removed
        :param breaking_elements: elements whose ends are in different components
        :param base_separated_buses: buses already out of the main component before the removal
        :return: branch indices
        """
        to_reconnect = set()

        # union-find over the component numbers
        parent: Dict[int, int] = dict()

        def find(c: int) -> int:
            parent.setdefault(c, c)
            while parent[c] != c:
                parent[c] = parent[parent[c]]
                c = parent[c]
            return c

        for elm in breaking_elements:
            r1 = find(connectivity.get_component_number(elm.f))
            r2 = find(connectivity.get_component_number(elm.t))
            if r1 != r2:
                to_reconnect.add(elm.branch_idx)
                parent[r2] = r1

        # components made of buses that were connected before the removal
        expected = {c for c, comp in enumerate(connectivity.get_components()) if not comp <= base_separated_buses}
        roots = {find(c) for c in expected}
        if self.check_reconnection and len(roots) != 1:
            self.logger.add_error("Elements to reconnect computed do not reconnect all connected components together",
                                  value=sorted(to_reconnect), device_class="ConnectivityBreakAnalysis")

        return to_reconnect

    def compute_connectivity_analysis_result(self, connectivity: GraphConnectivity,
                                             candidates: Sequence[ComputedElement]
                                             ) -> Union[ConnectivityAnalysisResult, None]:
        """
        Confirm a break by removing the candidates from the graph once, then undoing the removal
        :param connectivity: GraphConnectivity (left unchanged)
        :param candidates: elements to remove
        :return: ConnectivityAnalysisResult or None if the network stays connected
        """
        base_separated_buses = connectivity.get_vertices_removed_from_main_component()
        base_separated_branches = connectivity.get_edges_removed_from_main_component()

        result = None
        connectivity.start_temporary_changes()
        try:
            for elm in candidates:
                elm.apply_to_connectivity(connectivity)

            breaking = [elm for elm in candidates
                        if connectivity.get_component_number(elm.f) != connectivity.get_component_number(elm.t)]

            if len(breaking):
                to_reconnect = self.compute_elements_to_reconnect(connectivity, breaking, base_separated_buses)
                disabled = connectivity.get_vertices_removed_from_main_component() - base_separated_buses
                partial = connectivity.get_edges_removed_from_main_component() - base_separated_branches
                result = ConnectivityAnalysisResult(breaking_elements=breaking,
                                                    elements_to_reconnect=to_reconnect,
                                                    disabled_buses=disabled,
                                                    partial_disabled_branches=partial,
                                                    slack_connected_component=set(connectivity.get_main_component()))
        finally:
            connectivity.undo_temporary_changes()

        return result

    def run(self, context: DcLoadFlowContext, contingencies: List[PropagatedContingency],
            connectivity: Union[GraphConnectivity, None] = None) -> ConnectivityBreakAnalysisResults:
        """
        Classify a list of contingencies
        :param context: DcLoadFlowContext with the factorized matrix
        :param contingencies: list of PropagatedContingency (those without impact are ignored)
        :param connectivity: GraphConnectivity of the network (built from it if None)
        :return: ConnectivityBreakAnalysisResults
        """
        if connectivity is None:
            connectivity = GraphConnectivity.from_network(context.nc)

        contingencies = [pc for pc in contingencies if not pc.has_no_impact]

        # one element per distinct branch, and its +1/-1 response
        all_branches = [k for pc in contingencies for k in pc.branch_indices]
        elements = create_contingency_elements(context.nc, all_branches)
        element_by_branch = {elm.branch_idx: elm for elm in elements}
        states = calculate_element_states(context, elements)

        # sensitivity based pre-filter, grouping by responsible elements
        non_breaking = list()
        groups: Dict[FrozenSet[int], List[PropagatedContingency]] = dict()
        responsible_by_key: Dict[FrozenSet[int], List[ComputedElement]] = dict()
        for pc in contingencies:
            pc_elements = [element_by_branch[k] for k in pc.branch_indices]
            responsible = self.get_responsible_elements(pc_elements, states)
            if len(responsible):
                key = frozenset(elm.branch_idx for elm in responsible)
                groups.setdefault(key, list()).append(pc)
                responsible_by_key.setdefault(key, responsible)
            else:
                non_breaking.append(pc)

        n_potential = sum(len(lst) for lst in groups.values())
        self.logger.add_info("After sensitivity based connectivity analysis",
                             value=f"{len(non_breaking)} do not break connectivity, "
                                   f"{n_potential} potentially break connectivity",
                             device_class="ConnectivityBreakAnalysis")

        # graph based confirmation, one cut per group
        results = list()
        for key, group_contingencies in groups.items():
            res = self.compute_connectivity_analysis_result(connectivity, responsible_by_key[key])
            if res is None:
                non_breaking.extend(group_contingencies)
            else:
                res.contingencies = group_contingencies
                results.append(res)

        # keep the input order among the non breaking contingencies
        non_breaking.sort(key=lambda pc: pc.index)

        n_breaking = sum(len(res.contingencies) for res in results)
        self.logger.add_info("After graph based connectivity analysis",
                             value=f"{len(non_breaking)} do not break connectivity, "
                                   f"{n_breaking} break connectivity in {len(results)} groups",
                             device_class="ConnectivityBreakAnalysis")

        if self.verbose > 0:
            print(f"Connectivity analysis: {len(non_breaking)} non breaking, {n_breaking} breaking "
                  f"({len(results)} groups, {connectivity.start_count} graph cuts)")

        return ConnectivityBreakAnalysisResults(non_breaking_contingencies=non_breaking,
                                                connectivity_analysis_results=results,
                                                contingency_states=states,
                                                contingency_element_by_branch=element_by_branch)

    def run_for_operator_strategy(self,
                                  contingency: PropagatedContingency,
                                  contingency_element_by_branch: Dict[int, ComputedContingencyElement],
                                  contingency_states: Mat,
                                  action_elements: Sequence[ComputedActionElement],
                                  action_states: Mat,
                                  connectivity: GraphConnectivity) -> Union[ConnectivityAnalysisResult, None]:
        """
        Connectivity of a contingency followed by some actions (only the opening ones may break it)
        :param contingency: PropagatedContingency
        :param contingency_element_by_branch: branch index -> ComputedContingencyElement
        :param contingency_states: element states of the contingency elements
        :param action_elements: elements of the actions
        :param action_states: element states of the action elements
        :param connectivity: GraphConnectivity
        :return: ConnectivityAnalysisResult or None if the network stays connected
        """
        candidates: List[ComputedElement] = [contingency_element_by_branch[k] for k in contingency.branch_indices]
        candidates += [elm for elm in action_elements if elm.opens_branch]

        responsible = self.get_responsible_elements(candidates, contingency_states, action_states)
        if len(responsible) == 0:
            return None

        res = self.compute_connectivity_analysis_result(connectivity, responsible)
        if res is not None:
            res.contingencies = [contingency]
        return res
