# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
from __future__ import annotations

from typing import Tuple, TYPE_CHECKING
import numpy as np
import scipy.sparse as sp
from GridSolverEngine.basic_structures import Vec, CxVec, IntVec, CscMat
from GridSolverEngine.enumerations import VariableType, EquationType
from GridSolverEngine.DataStructures.network_data import NetworkData
from GridSolverEngine.Simulations.Equations.equation_system import EquationSystem
from GridSolverEngine.Simulations.Derivatives.ac_derivatives import polar_jacobian

if TYPE_CHECKING:
    from GridSolverEngine.Simulations.Equations.voltage_initializer import VoltageInitializer


def compute_admittances(nc: NetworkData) -> Tuple[CscMat, CscMat, CscMat]:
    """
    Pi-model admittance matrices of the active branches
    :param nc: NetworkData
    :return: Ybus, Yf, Yt
    """
    active = (nc.branch_active & nc.bus_active[nc.F] & nc.bus_active[nc.T]).astype(float)
    ys = active / (nc.R + 1j * nc.get_effective_x())
    bc2 = active * 1j * nc.B / 2.0
    m = nc.tap_module
    tau = nc.tap_phase

    Yff = (ys + bc2) / (m * m)
    Yft = -ys / (m * np.exp(-1j * tau))
    Ytf = -ys / (m * np.exp(1j * tau))
    Ytt = ys + bc2

    Cf = nc.get_Cf()
    Ct = nc.get_Ct()
    Yf = sp.diags(Yff) @ Cf + sp.diags(Yft) @ Ct
    Yt = sp.diags(Ytf) @ Cf + sp.diags(Ytt) @ Ct
    Ybus = Cf.T @ Yf + Ct.T @ Yt

    return sp.csc_matrix(Ybus), sp.csc_matrix(Yf), sp.csc_matrix(Yt)


class AcEquationSystem(EquationSystem):
    """
    Polar AC power flow equations.
    Variables: BUS_PHI of the pv and pq buses, then BUS_V of the pq buses.
    Equations: BUS_TARGET_P of the pv and pq buses, then BUS_TARGET_Q of the pq buses.
    The slack bus voltage and the pv bus modules are fixed.
    """

    def __init__(self, nc: NetworkData):
        """

        :param nc: NetworkData
        """
        EquationSystem.__init__(self, nc=nc)

        active = nc.bus_active
        self.pv: IntVec = np.array([i for i in nc.pv if active[i]], dtype=int)
        self.pq: IntVec = np.array([i for i in nc.pq if active[i]], dtype=int)
        self.pvpq: IntVec = np.sort(np.r_[self.pv, self.pq]).astype(int)
        self.slack = nc.slack

        for i in self.pvpq:
            self._add_variable(int(i), VariableType.BUS_PHI)
        for i in self.pq:
            self._add_variable(int(i), VariableType.BUS_V)

        for i in self.pvpq:
            self._add_equation(int(i), EquationType.BUS_TARGET_P)
        for i in self.pq:
            self._add_equation(int(i), EquationType.BUS_TARGET_Q)

        self.npvpq = len(self.pvpq)

        self.Ybus, self.Yf, self.Yt = compute_admittances(nc)

        self.Sbus: CxVec = nc.get_Sbus()

        # full voltage arrays, the fixed entries keep their set values
        self.Vm: Vec = np.ones(nc.nbus)
        self.Va: Vec = np.zeros(nc.nbus)

        self.x = np.zeros(self.n_var)

    def rebuild(self) -> None:
        """
        Recompute the admittances and injections after the network has been modified
        """
        self.Ybus, self.Yf, self.Yt = compute_admittances(self.nc)
        self.Sbus = self.nc.get_Sbus()

    def create_state_vector(self, initializer: "VoltageInitializer") -> Vec:
        """
        Build the initial state vector from an initializer and store it
        :param initializer: VoltageInitializer
        :return: state vector
        """
        Vm, Va = initializer.initialize(self.nc)
        self.Vm = np.array(Vm, dtype=float)
        self.Va = np.array(Va, dtype=float)

        # voltage controlled buses keep their set point
        fixed_v = np.r_[self.pv, [self.slack]].astype(int)
        self.Vm[fixed_v] = self.nc.Vset[fixed_v]

        x = np.r_[self.Va[self.pvpq], self.Vm[self.pq]]
        self.set_state_vector(x)
        return self.get_state_vector()

    def set_state_vector(self, x: Vec) -> None:
        """
        Store a state vector and spread it over the voltage arrays
        :param x: state vector
        """
        EquationSystem.set_state_vector(self, x)
        self.Va[self.pvpq] = self.x[:self.npvpq]
        self.Vm[self.pq] = self.x[self.npvpq:]

    @property
    def V(self) -> CxVec:
        """
        Complex voltages
        """
        return self.Vm * np.exp(1j * self.Va)

    def get_Scalc(self) -> CxVec:
        """
        Computed power injections
        """
        V = self.V
        return V * np.conj(self.Ybus @ V)

    def evaluate_equations(self) -> Vec:
        """
        Value of every equation at the current state vector: f(x)
        """
        Scalc = self.get_Scalc()
        return np.r_[Scalc.real[self.pvpq], Scalc.imag[self.pq]]

    def get_target_vector(self) -> Vec:
        """
        Target of every equation
        """
        return np.r_[self.Sbus.real[self.pvpq], self.Sbus.imag[self.pq]]

    def get_jacobian(self) -> CscMat:
        """
        Jacobian of f at the current state vector
        """
        return polar_jacobian(Ybus=self.Ybus, V=self.V, pvpq=self.pvpq, pq=self.pq)

    def get_slack_p_mismatch(self) -> float:
        """
        Computed minus scheduled active power of the slack bus (p.u.)
        """
        Scalc = self.get_Scalc()
        return float(Scalc.real[self.slack] - self.Sbus.real[self.slack])

    def get_branch_power_flows(self) -> Tuple[CxVec, CxVec]:
        """
        Branch power flows (p.u.)
        :return: Sf, St
        """
        V = self.V
        Sf = V[self.nc.F] * np.conj(self.Yf @ V)
        St = V[self.nc.T] * np.conj(self.Yt @ V)
        return Sf, St

    def update_network(self) -> None:
        """
        Write the voltages into the network stored values
        """
        self.nc.Vm0[:] = self.Vm
        self.nc.Va0[:] = self.Va
