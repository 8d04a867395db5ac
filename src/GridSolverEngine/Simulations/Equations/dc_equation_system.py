# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
from __future__ import annotations

from typing import TYPE_CHECKING
import numpy as np
import scipy.sparse as sp
from GridSolverEngine.basic_structures import Vec, IntVec, CscMat
from GridSolverEngine.enumerations import VariableType, EquationType
from GridSolverEngine.DataStructures.network_data import NetworkData
from GridSolverEngine.Simulations.Equations.equation_system import EquationSystem

if TYPE_CHECKING:
    from GridSolverEngine.Simulations.Equations.voltage_initializer import VoltageInitializer


def get_branch_phase_shift(nc: NetworkData) -> Vec:
    """
    DC phase shift term of every branch: the flow is b * (theta_f - theta_t + phi), with phi = -tau
    :param nc: NetworkData
    :return: phi (rad)
    """
    return -nc.tap_phase


def get_incidence(nc: NetworkData) -> CscMat:
    """
    Branch-bus incidence matrix C = Cf - Ct
    :param nc: NetworkData
    :return: CscMat (nbr x nbus)
    """
    return sp.csc_matrix(nc.get_Cf() - nc.get_Ct())


def compute_dc_flows(nc: NetworkData, theta: Vec, b: Vec = None, phi: Vec = None) -> Vec:
    """
    DC branch flows (p.u.) for one or several angle states
    :param nc: NetworkData
    :param theta: bus angles (nbus) or (nbus x m)
    :param b: branch susceptances (the network ones by default)
    :param phi: branch phase shifts (the network ones by default, zero when theta is a matrix)
    :return: flows (nbr) or (nbr x m)
    """
    if b is None:
        b = nc.get_dc_susceptance()

    diff = theta[nc.F] - theta[nc.T]

    if theta.ndim == 1:
        if phi is None:
            phi = get_branch_phase_shift(nc)
        return b * (diff + phi)
    else:
        if phi is None:
            return b[:, np.newaxis] * diff
        return b[:, np.newaxis] * (diff + phi[:, np.newaxis])


class DcEquationSystem(EquationSystem):
    """
    DC approximation of the power flow.
    Variables: BUS_PHI of every active non slack bus.
    Equations: BUS_TARGET_P of the same buses.
    Branch flow term: p = b * (theta_f - theta_t + phi), b = 1 / x
    """

    def __init__(self, nc: NetworkData):
        """

        :param nc: NetworkData
        """
        EquationSystem.__init__(self, nc=nc)

        self.slack = nc.slack

        self.buses: IntVec = np.array([i for i in range(nc.nbus) if i != self.slack and nc.bus_active[i]],
                                      dtype=int)

        for i in self.buses:
            self._add_variable(int(i), VariableType.BUS_PHI)

        for i in self.buses:
            self._add_equation(int(i), EquationType.BUS_TARGET_P)

        self.C: CscMat = get_incidence(nc)
        self.b: Vec = np.zeros(nc.nbr)
        self.phi: Vec = np.zeros(nc.nbr)
        self.Bbus: CscMat = sp.csc_matrix((nc.nbus, nc.nbus))
        self.Pbus: Vec = np.zeros(nc.nbus)
        self.theta: Vec = np.zeros(nc.nbus)

        self.rebuild()

        self.x = np.zeros(self.n_var)

    def rebuild(self) -> None:
        """
        Recompute the susceptances, phase shifts and injections from the network
        """
        self.b = self.nc.get_dc_susceptance()
        self.phi = get_branch_phase_shift(self.nc)
        self.Bbus = sp.csc_matrix(self.C.T @ sp.diags(self.b) @ self.C)
        self.Pbus = self.nc.get_Pbus()

    def get_phase_shift_injections(self) -> Vec:
        """
        Bus injections produced by the branch phase shifts: C^T (b phi)
        """
        return self.C.T @ (self.b * self.phi)

    def create_state_vector(self, initializer: "VoltageInitializer") -> Vec:
        """
        Build the initial state vector from an initializer and store it
        :param initializer: VoltageInitializer
        :return: state vector
        """
        _, Va = initializer.initialize(self.nc)
        self.theta = np.array(Va, dtype=float)
        self.set_state_vector(self.theta[self.buses])
        return self.get_state_vector()

    def set_state_vector(self, x: Vec) -> None:
        """
        Store a state vector and spread it over the angles array
        :param x: state vector
        """
        EquationSystem.set_state_vector(self, x)
        self.theta[self.buses] = self.x

    def get_Pcalc(self) -> Vec:
        """
        Computed active power injections at every bus
        """
        return self.Bbus @ self.theta + self.get_phase_shift_injections()

    def evaluate_equations(self) -> Vec:
        """
        Value of every equation at the current state vector: f(x)
        """
        return self.get_Pcalc()[self.buses]

    def get_target_vector(self) -> Vec:
        """
        Target of every equation
        """
        return self.Pbus[self.buses]

    def get_jacobian(self) -> CscMat:
        """
        Jacobian of f, constant in the DC approximation
        """
        return sp.csc_matrix(self.Bbus[np.ix_(self.buses, self.buses)])

    def get_slack_p_mismatch(self) -> float:
        """
        Computed minus scheduled active power of the slack bus (p.u.)
        """
        return float(self.get_Pcalc()[self.slack] - self.Pbus[self.slack])

    def get_branch_flows(self) -> Vec:
        """
        Branch active power flows (p.u.) at the current state
        """
        return compute_dc_flows(self.nc, self.theta, b=self.b, phi=self.phi)

    def update_network(self) -> None:
        """
        Write the angles into the network stored values
        """
        self.nc.Va0[:] = self.theta
