# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
from __future__ import annotations

from typing import Tuple
import numpy as np
from GridSolverEngine.basic_structures import Vec
from GridSolverEngine.enumerations import VoltageInitMode
from GridSolverEngine.DataStructures.network_data import NetworkData
from GridSolverEngine.Utils.NumericalMethods.sparse_solve import LinearSolver
from GridSolverEngine.Simulations.Equations.dc_equation_system import DcEquationSystem


class VoltageInitializer:
    """
    Provides the voltage module and angle every bus starts from
    """

    mode: VoltageInitMode = VoltageInitMode.UNIFORM_VALUES

    def initialize(self, nc: NetworkData) -> Tuple[Vec, Vec]:
        """
        Initial voltages
        :param nc: NetworkData
        :return: Vm (p.u.), Va (rad)
        """
        raise NotImplementedError()


class UniformValueVoltageInitializer(VoltageInitializer):
    """
    Flat start: 1 p.u. and 0 rad everywhere
    """

    mode = VoltageInitMode.UNIFORM_VALUES

    def initialize(self, nc: NetworkData) -> Tuple[Vec, Vec]:
        return np.ones(nc.nbus), np.zeros(nc.nbus)


class PreviousValueVoltageInitializer(VoltageInitializer):
    """
    Start from the voltages stored in the network (the last written solution)
    """

    mode = VoltageInitMode.PREVIOUS_VALUES

    def initialize(self, nc: NetworkData) -> Tuple[Vec, Vec]:
        return nc.Vm0.copy(), nc.Va0.copy()


class DcValueVoltageInitializer(VoltageInitializer):
    """
    Start from 1 p.u. modules and the angles of a DC power flow
    """

    mode = VoltageInitMode.DC_VALUES

    def initialize(self, nc: NetworkData) -> Tuple[Vec, Vec]:
        dc = DcEquationSystem(nc)
        Va = np.zeros(nc.nbus)
        if dc.n_var > 0:
            with LinearSolver(dc.get_jacobian()) as solver:
                rhs = dc.get_target_vector() - dc.get_phase_shift_injections()[dc.buses]
                Va[dc.buses] = solver.solve(rhs)
        return np.ones(nc.nbus), Va


def get_voltage_initializer(mode: VoltageInitMode) -> VoltageInitializer:
    """
    Initializer matching a mode
    :param mode: VoltageInitMode
    :return: VoltageInitializer
    """
    if mode == VoltageInitMode.UNIFORM_VALUES:
        return UniformValueVoltageInitializer()
    elif mode == VoltageInitMode.PREVIOUS_VALUES:
        return PreviousValueVoltageInitializer()
    elif mode == VoltageInitMode.DC_VALUES:
        return DcValueVoltageInitializer()
    else:
        raise ValueError(f"Unknown voltage initialization mode {mode}")
