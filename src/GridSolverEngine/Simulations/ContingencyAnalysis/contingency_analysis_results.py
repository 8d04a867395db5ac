# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
from __future__ import annotations

from typing import Dict, List
import numpy as np
import pandas as pd
from GridSolverEngine.basic_structures import Vec, Mat, StrVec
from GridSolverEngine.enumerations import ContingencyStatus


class DcSecurityAnalysisResults:
    """
    DC security analysis results.
    Flows are stored in MW, angles in radians
    """

    def __init__(self, bus_ids: StrVec, branch_ids: StrVec, contingency_ids: List[str],
                 rates: Vec, Sbase: float = 100.0):
        """

        :param bus_ids: bus ids
        :param branch_ids: branch ids
        :param contingency_ids: contingency ids, in the analysed order
        :param rates: branch rates (MVA)
        :param Sbase: base power (MVA)
        """
        ncon = len(contingency_ids)
        nbr = len(branch_ids)
        nbus = len(bus_ids)

        self.bus_ids = bus_ids
        self.branch_ids = branch_ids
        self.contingency_ids = list(contingency_ids)
        self.rates = rates
        self.Sbase = Sbase

        self.base_flows: Vec = np.zeros(nbr)
        self.base_theta: Vec = np.zeros(nbus)

        self.flows: Mat = np.full((ncon, nbr), np.nan)
        self.theta: Mat = np.full((ncon, nbus), np.nan)
        self.status: List[ContingencyStatus] = [ContingencyStatus.FAILED] * ncon

        # contingency id -> connectivity group number (-1 when the connectivity is kept)
        self.groups: Dict[str, int] = {cid: -1 for cid in self.contingency_ids}
        self.group_breaking_branches: List[List[str]] = list()
        self.group_reconnected_branches: List[List[str]] = list()

        # operator strategy id -> (contingency id, flows (MW), status)
        self.operator_strategy_contingency: Dict[str, str] = dict()
        self.operator_strategy_flows: Dict[str, Vec] = dict()
        self.operator_strategy_status: Dict[str, ContingencyStatus] = dict()

        self._index = {cid: i for i, cid in enumerate(self.contingency_ids)}

    def set_base(self, flows_pu: Vec, theta: Vec) -> None:
        """
        Store the pre contingency state
        :param flows_pu: branch flows (p.u.)
        :param theta: bus angles (rad)
        """
        self.base_flows = flows_pu * self.Sbase
        self.base_theta = theta.copy()

    def set_contingency(self, contingency_id: str, flows_pu: Vec, theta: Vec, status: ContingencyStatus) -> None:
        """
        Store the post contingency state of a contingency
        :param contingency_id: contingency id
        :param flows_pu: branch flows (p.u.)
        :param theta: bus angles (rad)
        :param status: ContingencyStatus
        """
        i = self._index[contingency_id]
        self.flows[i, :] = flows_pu * self.Sbase
        self.theta[i, :] = theta
        self.status[i] = status

    def set_operator_strategy(self, strategy_id: str, contingency_id: str, flows_pu: Vec,
                              status: ContingencyStatus) -> None:
        """
        Store the state after a contingency and its remedial actions
        :param strategy_id: operator strategy id
        :param contingency_id: contingency id
        :param flows_pu: branch flows (p.u.)
        :param status: ContingencyStatus
        """
        self.operator_strategy_contingency[strategy_id] = contingency_id
        self.operator_strategy_flows[strategy_id] = flows_pu * self.Sbase
        self.operator_strategy_status[strategy_id] = status

    def get_flow(self, contingency_id: str, branch_id: str) -> float:
        """
        Post contingency flow of a branch (MW)
        """
        j = list(self.branch_ids).index(branch_id)
        return float(self.flows[self._index[contingency_id], j])

    def get_status(self, contingency_id: str) -> ContingencyStatus:
        """
        Status of a contingency
        """
        return self.status[self._index[contingency_id]]

    def get_base_flows_df(self) -> pd.DataFrame:
        """
        Pre contingency flows (MW)
        """
        return pd.DataFrame(data=self.base_flows, index=self.branch_ids, columns=['P (MW)'])

    def get_flows_df(self) -> pd.DataFrame:
        """
        Post contingency flows (MW), one row per contingency
        """
        return pd.DataFrame(data=self.flows, index=self.contingency_ids, columns=self.branch_ids)

    def get_angles_df(self) -> pd.DataFrame:
        """
        Post contingency angles (rad), one row per contingency
        """
        return pd.DataFrame(data=self.theta, index=self.contingency_ids, columns=self.bus_ids)

    def get_loading_df(self) -> pd.DataFrame:
        """
        Post contingency loading (p.u. of the rate), one row per contingency
        """
        rates = np.where(self.rates > 0, self.rates, np.nan)
        return pd.DataFrame(data=np.abs(self.flows) / rates, index=self.contingency_ids, columns=self.branch_ids)

    def get_status_df(self) -> pd.DataFrame:
        """
        Status and connectivity group of every contingency
        """
        data = {'status': [str(st) for st in self.status],
                'group': [self.groups[cid] for cid in self.contingency_ids]}
        return pd.DataFrame(data=data, index=self.contingency_ids)

    def get_operator_strategy_flows_df(self) -> pd.DataFrame:
        """
        Flows after the remedial actions (MW), one row per operator strategy
        """
        ids = list(self.operator_strategy_flows.keys())
        if len(ids):
            data = np.array([self.operator_strategy_flows[sid] for sid in ids])
        else:
            data = np.zeros((0, len(self.branch_ids)))
        return pd.DataFrame(data=data, index=ids, columns=self.branch_ids)

    def get_results_dict(self) -> Dict[str, object]:
        """
        Results sorted in a dictionary
        """
        return {
            'base_flows': self.base_flows.tolist(),
            'flows': self.flows.tolist(),
            'theta': self.theta.tolist(),
            'status': [str(st) for st in self.status],
            'groups': self.groups,
        }


class DcSensitivityAnalysisResults:
    """
    Branch flow sensitivities (MW/MW) to injection variables, before and after the contingencies
    """

    def __init__(self, branch_ids: StrVec, variable_ids: List[str], contingency_ids: List[str]):
        """

        :param branch_ids: branch ids
        :param variable_ids: injection variable ids (bus ids or GLSK ids)
        :param contingency_ids: contingency ids
        """
        self.branch_ids = branch_ids
        self.variable_ids = list(variable_ids)
        self.contingency_ids = list(contingency_ids)

        self.sensitivities: Mat = np.zeros((len(branch_ids), len(variable_ids)))

        # contingency id -> nbr x nvar matrix
        self.contingency_sensitivities: Dict[str, Mat] = dict()
        self.status: Dict[str, ContingencyStatus] = dict()

    def get_sensitivity(self, branch_id: str, variable_id: str, contingency_id: str = None) -> float:
        """
        Sensitivity of a branch flow to a variable
        :param branch_id: branch id
        :param variable_id: variable id
        :param contingency_id: contingency id (None for the pre contingency state)
        :return: sensitivity
        """
        i = list(self.branch_ids).index(branch_id)
        j = self.variable_ids.index(variable_id)
        if contingency_id is None:
            return float(self.sensitivities[i, j])
        return float(self.contingency_sensitivities[contingency_id][i, j])

    def get_sensitivities_df(self, contingency_id: str = None) -> pd.DataFrame:
        """
        Sensitivities as a DataFrame (branches x variables)
        :param contingency_id: contingency id (None for the pre contingency state)
        """
        data = self.sensitivities if contingency_id is None else self.contingency_sensitivities[contingency_id]
        return pd.DataFrame(data=data, index=self.branch_ids, columns=self.variable_ids)

    def get_status_df(self) -> pd.DataFrame:
        """
        Status of every contingency
        """
        return pd.DataFrame(data={'status': [str(self.status[cid]) for cid in self.contingency_ids]},
                            index=self.contingency_ids)
