# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
from GridSolverEngine.Simulations.Equations.equation_system import EquationSystem
from GridSolverEngine.Simulations.Equations.ac_equation_system import AcEquationSystem, compute_admittances
from GridSolverEngine.Simulations.Equations.dc_equation_system import DcEquationSystem, compute_dc_flows
from GridSolverEngine.Simulations.Equations.voltage_initializer import (VoltageInitializer,
                                                                        UniformValueVoltageInitializer,
                                                                        PreviousValueVoltageInitializer,
                                                                        DcValueVoltageInitializer,
                                                                        get_voltage_initializer)
