# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
from __future__ import annotations

import time
from typing import List, Sequence, Set, Union
import numpy as np
from GridSolverEngine.basic_structures import Mat, Logger
from GridSolverEngine.enumerations import ContingencyStatus
from GridSolverEngine.exceptions import LinearSolverError, NetworkError
from GridSolverEngine.DataStructures.network_data import NetworkData
from GridSolverEngine.Topology.graph_connectivity import GraphConnectivity
from GridSolverEngine.Simulations.Equations.dc_equation_system import compute_dc_flows
from GridSolverEngine.Simulations.ContingencyAnalysis.contingency import Contingency, PropagatedContingency
from GridSolverEngine.Simulations.ContingencyAnalysis.computed_elements import ComputedElement
from GridSolverEngine.Simulations.ContingencyAnalysis.connectivity_break_analysis import (
    ConnectivityBreakAnalysis, ConnectivityAnalysisResult)
from GridSolverEngine.Simulations.ContingencyAnalysis.dc_load_flow_context import DcLoadFlowContext
from GridSolverEngine.Simulations.ContingencyAnalysis.dc_security_analysis_options import DcSecurityAnalysisOptions
from GridSolverEngine.Simulations.ContingencyAnalysis.contingency_analysis_results import DcSensitivityAnalysisResults
from GridSolverEngine.Simulations.ContingencyAnalysis.participation import WeightedVariableSet
from GridSolverEngine.Simulations.ContingencyAnalysis.woodbury_engine import WoodburyEngine
from GridSolverEngine.Utils.NumericalMethods.dense_solve import allocate_dense


class DcSensitivityAnalysis:
    """
    Sensitivities of the branch flows to bus injections and GLSK injections.

    Every injection variable is a right hand side column (compensated by the participating elements
    when the slack is distributed); its angles give the sensitivities, and the Woodbury identity
    gives them after every contingency. The phase shifts do not enter the sensitivities.
    """

    def __init__(self,
                 nc: NetworkData,
                 bus_ids: Union[List[str], None] = None,
                 variable_sets: Union[List[WeightedVariableSet], None] = None,
                 contingencies: Union[List[Contingency], None] = None,
                 options: Union[DcSecurityAnalysisOptions, None] = None,
                 logger: Union[Logger, None] = None):
        """

        :param nc: NetworkData
        :param bus_ids: ids of the buses whose injection is a variable (all buses if both this and variable_sets are None)
        :param variable_sets: GLSK variables
        :param contingencies: list of Contingency
        :param options: DcSecurityAnalysisOptions
        :param logger: Logger
        """
        self.nc = nc
        self.variable_sets = variable_sets if variable_sets is not None else list()
        if bus_ids is None:
            bus_ids = list(nc.bus_idtag) if len(self.variable_sets) == 0 else list()
        self.bus_ids = list(bus_ids)
        self.contingencies = contingencies if contingencies is not None else list()
        self.options = options if options is not None else DcSecurityAnalysisOptions()
        self.logger = logger if logger is not None else Logger()

        self.results: Union[DcSensitivityAnalysisResults, None] = None

        self.elapsed = 0.0

    @property
    def variable_ids(self) -> List[str]:
        """
        Ids of the injection variables: buses first, then GLSK
        """
        return self.bus_ids + [vs.idtag for vs in self.variable_sets]

    def build_injections(self, context: DcLoadFlowContext, excluded_buses: Union[Set[int], None] = None) -> Mat:
        """
        One injection column per variable.
        Variables with no bus left in the main component get a NaN column
        :param context: DcLoadFlowContext
        :param excluded_buses: buses out of the main component
        :return: nbus x nvar matrix
        """
        if excluded_buses is None:
            excluded_buses = set()

        nvar = len(self.bus_ids) + len(self.variable_sets)
        rhs = allocate_dense(self.nc.nbus, nvar)

        for j, bus_id in enumerate(self.bus_ids):
            i = self.nc.bus_index(bus_id)
            if i in excluded_buses:
                rhs[:, j] = np.nan
            else:
                rhs[i, j] = 1.0

        for j, vs in enumerate(self.variable_sets):
            col = len(self.bus_ids) + j
            try:
                rhs[:, col] = vs.get_bus_weights(self.nc, excluded_buses=excluded_buses, logger=self.logger)
            except NetworkError as e:
                self.logger.add_warning("GLSK without buses in the main component", device=vs.idtag, value=e.message)
                rhs[:, col] = np.nan

        if self.options.distributed_slack:
            participation = context.get_participation_vector(excluded_buses)
            rhs -= np.outer(participation, np.ones(nvar))

        return rhs

    def solve_states(self, context: DcLoadFlowContext, injections: Mat) -> Mat:
        """
        Angles of every injection column (NaN columns stay NaN)
        """
        states = np.full(injections.shape, np.nan)
        valid = np.where(np.all(np.isfinite(injections), axis=0))[0]
        if len(valid):
            states[:, valid] = context.solve_full(injections[:, valid])
        return states

    def compute_sensitivities(self, context: DcLoadFlowContext, states: Mat,
                              opened: Union[Sequence[int], Set[int]] = ()) -> Mat:
        """
        b * (theta_f - theta_t) for every state column, zero for the opened branches
        (except in the NaN columns)
        :param context: DcLoadFlowContext
        :param states: nbus x nvar angles
        :param opened: branches carrying no flow
        :return: nbr x nvar sensitivities
        """
        sensi = compute_dc_flows(self.nc, states, b=context.b)
        opened = list(opened)
        if len(opened):
            # NaN columns of the variables lost by a break stay NaN
            valid = np.where(np.all(np.isfinite(states), axis=0))[0]
            sensi[np.ix_(opened, valid)] = 0.0
        return sensi

    def _post_contingency(self, context: DcLoadFlowContext, engine: WoodburyEngine,
                          elements: Sequence[ComputedElement], states: Mat, pc: PropagatedContingency,
                          results: DcSensitivityAnalysisResults,
                          group: Union[ConnectivityAnalysisResult, None] = None) -> None:
        """
        Sensitivities after a contingency
        """
        post = np.full(states.shape, np.nan)
        valid = np.where(np.all(np.isfinite(states), axis=0))[0]
        try:
            if len(valid):
                post[:, valid] = engine.run(elements, states[:, valid], with_phase_shift=False)
        except LinearSolverError as e:
            self.logger.add_error("Post contingency sensitivities not computed", device=pc.idtag, value=e.message)
            results.status[pc.idtag] = ContingencyStatus.FAILED
            return

        opened = set(int(k) for k in pc.branch_indices)
        if group is not None:
            opened |= group.partial_disabled_branches

        results.contingency_sensitivities[pc.idtag] = self.compute_sensitivities(context, post, opened)
        results.status[pc.idtag] = ContingencyStatus.SUCCESS

    def run(self) -> DcSensitivityAnalysisResults:
        """
        Run the analysis
        :return: DcSensitivityAnalysisResults
        """
        start = time.time()

        propagated = PropagatedContingency.create_list(self.nc, self.contingencies, logger=self.logger)

        results = DcSensitivityAnalysisResults(branch_ids=self.nc.branch_idtag,
                                               variable_ids=self.variable_ids,
                                               contingency_ids=[pc.idtag for pc in propagated])

        with DcLoadFlowContext(self.nc,
                               distributed_slack=self.options.distributed_slack,
                               balance_type=self.options.balance_type,
                               logger=self.logger) as context:

            states = self.solve_states(context, self.build_injections(context))
            results.sensitivities = self.compute_sensitivities(context, states)

            for pc in propagated:
                if pc.has_no_impact:
                    results.contingency_sensitivities[pc.idtag] = results.sensitivities.copy()
                    results.status[pc.idtag] = ContingencyStatus.NO_IMPACT

            cba = ConnectivityBreakAnalysis(threshold=self.options.connectivity_loss_threshold,
                                            logger=self.logger,
                                            check_reconnection=self.options.check_reconnection,
                                            verbose=self.options.verbose)
            analysis = cba.run(context, propagated, GraphConnectivity.from_network(self.nc))
            element_by_branch = analysis.contingency_element_by_branch
            engine = WoodburyEngine(analysis.contingency_states, logger=self.logger)

            for pc in analysis.non_breaking_contingencies:
                elements = [element_by_branch[k] for k in pc.branch_indices]
                self._post_contingency(context, engine, elements, states, pc, results)

            for group in analysis.connectivity_analysis_results:
                group_states = self.solve_states(context, self.build_injections(context, group.disabled_buses))
                for pc in group.contingencies:
                    elements = [element_by_branch[k] for k in pc.branch_indices
                                if k not in group.elements_to_reconnect]
                    self._post_contingency(context, engine, elements, group_states, pc, results, group)

        self.elapsed = time.time() - start

        if self.options.verbose > 0:
            print(f"DC sensitivity analysis of {len(self.variable_ids)} variables and "
                  f"{len(propagated)} contingencies in {self.elapsed} s")

        self.results = results
        return results
