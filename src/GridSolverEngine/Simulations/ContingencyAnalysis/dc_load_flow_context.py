# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
from __future__ import annotations

from typing import Set, Union
import numpy as np
from GridSolverEngine.basic_structures import Vec, Mat, Logger
from GridSolverEngine.enumerations import BalanceType
from GridSolverEngine.DataStructures.network_data import NetworkData
from GridSolverEngine.Simulations.Equations.dc_equation_system import DcEquationSystem, compute_dc_flows
from GridSolverEngine.Simulations.ContingencyAnalysis.participation import (get_participation_vector,
                                                                            distribute_slack)
from GridSolverEngine.Utils.NumericalMethods.sparse_solve import LinearSolver


class DcLoadFlowContext:
    """
    DC system of a network with its matrix factorized once.
    Every solve (base case, element states, re-solves of reduced networks) reuses the same factors.
    The susceptances and phase shifts are those of the network when the context was built
    """

    def __init__(self,
                 nc: NetworkData,
                 distributed_slack: bool = True,
                 balance_type: BalanceType = BalanceType.PROPORTIONAL_TO_GENERATION_P_MAX,
                 logger: Union[Logger, None] = None):
        """

        :param nc: NetworkData
        :param distributed_slack: share the imbalance among the participating elements
        :param balance_type: BalanceType
        :param logger: Logger
        """
        self.nc = nc
        self.distributed_slack = distributed_slack
        self.balance_type = balance_type
        self.logger = logger if logger is not None else Logger()

        self.equation_system = DcEquationSystem(nc)

        self.linear_solver = LinearSolver()
        self.linear_solver.factorize(self.equation_system.get_jacobian())

    @property
    def slack(self) -> int:
        """
        Slack bus index
        """
        return self.equation_system.slack

    @property
    def b(self) -> Vec:
        """
        Branch susceptances of the factorized matrix
        """
        return self.equation_system.b

    @property
    def phi(self) -> Vec:
        """
        Branch phase shifts of the factorized matrix
        """
        return self.equation_system.phi

    def solve_full(self, rhs: Union[Vec, Mat]) -> Union[Vec, Mat]:
        """
        Solve B theta = rhs over the non slack buses
        :param rhs: nbus (x m) right hand side
        :return: nbus (x m) angles, zero at the slack and at the inactive buses
        """
        buses = self.equation_system.buses
        x = np.zeros(rhs.shape, dtype=float)
        if len(buses):
            x[buses] = self.linear_solver.solve(rhs[buses])
        return x

    def get_participation_vector(self, excluded_buses: Union[Set[int], None] = None) -> Vec:
        """
        Participation vector of the current network state
        :param excluded_buses: buses whose elements do not participate
        :return: nbus vector
        """
        return get_participation_vector(self.nc, self.balance_type, excluded_buses=excluded_buses,
                                        logger=self.logger)

    def compute_injections(self, excluded_buses: Union[Set[int], None] = None) -> Vec:
        """
        Bus active power injections (p.u.) of the current network state, balanced
        when the slack is distributed
        :param excluded_buses: buses that neither inject nor participate
        :return: nbus vector
        """
        P = self.nc.get_Pbus()
        if excluded_buses:
            P[list(excluded_buses)] = 0.0

        if self.distributed_slack:
            P, imbalance = distribute_slack(P, self.get_participation_vector(excluded_buses))
            if abs(imbalance) > 0:
                self.logger.add_debug("Distributed imbalance (p.u.)", imbalance)

        return P

    def get_rhs(self, injections: Vec) -> Vec:
        """
        Right hand side of B theta = P - C^T (b phi)
        :param injections: bus injections (p.u.)
        :return: nbus vector
        """
        return injections - self.equation_system.get_phase_shift_injections()

    def run(self, excluded_buses: Union[Set[int], None] = None) -> Vec:
        """
        Solve the bus angles of the current network state
        :param excluded_buses: buses that neither inject nor participate
        :return: nbus angles (rad)
        """
        P = self.compute_injections(excluded_buses)
        theta = self.solve_full(self.get_rhs(P))
        self.equation_system.theta = theta
        return theta

    def compute_flows(self, theta: Union[Vec, Mat]) -> Union[Vec, Mat]:
        """
        Branch flows (p.u.) of some angles with the factorized susceptances and phase shifts
        :param theta: nbus (x m) angles
        :return: nbr (x m) flows
        """
        return compute_dc_flows(self.nc, theta, b=self.b, phi=self.phi)

    def close(self) -> None:
        """
        Release the factorization
        """
        self.linear_solver.close()

    def __enter__(self) -> "DcLoadFlowContext":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
