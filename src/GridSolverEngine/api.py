# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
from typing import List, Union
from GridSolverEngine.basic_structures import *
from GridSolverEngine.enumerations import *
from GridSolverEngine.exceptions import *
from GridSolverEngine.Devices import *
from GridSolverEngine.DataStructures import *
from GridSolverEngine.Topology import *
from GridSolverEngine.Utils.NumericalMethods import *
from GridSolverEngine.Simulations import *


def compile_grid(grid: Union[Grid, NetworkData], logger: Logger = Logger()) -> NetworkData:
    """
    Get the NetworkData of a grid
    :param grid: Grid or an already compiled NetworkData
    :param logger: Logger
    :return: NetworkData
    """
    if isinstance(grid, NetworkData):
        return grid
    return compile_network_data(grid, logger=logger)


def run_newton_raphson(grid: Union[Grid, NetworkData],
                       options: Union[NewtonRaphsonOptions, None] = None,
                       init_mode: VoltageInitMode = VoltageInitMode.UNIFORM_VALUES,
                       dc: bool = False,
                       logger: Union[Logger, None] = None) -> NewtonRaphsonResult:
    """
    Run a Newton-Raphson power flow, writing the solution into the NetworkData
    :param grid: Grid or NetworkData
    :param options: NewtonRaphsonOptions
    :param init_mode: VoltageInitMode
    :param dc: solve the DC approximation instead of the AC power flow
    :param logger: Logger
    :return: NewtonRaphsonResult
    """
    if logger is None:
        logger = Logger()

    nc = compile_grid(grid, logger=logger)
    equation_system = DcEquationSystem(nc) if dc else AcEquationSystem(nc)
    solver = NewtonRaphson(equation_system=equation_system, options=options, logger=logger)
    return solver.run(initializer=get_voltage_initializer(init_mode))


def run_dc_security_analysis(grid: Union[Grid, NetworkData],
                             contingencies: List[Contingency],
                             options: Union[DcSecurityAnalysisOptions, None] = None,
                             actions: Union[List[BranchAction], None] = None,
                             operator_strategies: Union[List[OperatorStrategy], None] = None,
                             logger: Union[Logger, None] = None) -> DcSecurityAnalysisResults:
    """
    Run a DC contingency analysis
    :param grid: Grid or NetworkData
    :param contingencies: list of Contingency
    :param options: DcSecurityAnalysisOptions
    :param actions: remedial actions
    :param operator_strategies: list of OperatorStrategy
    :param logger: Logger
    :return: DcSecurityAnalysisResults
    """
    if logger is None:
        logger = Logger()

    analysis = DcSecurityAnalysis(nc=compile_grid(grid, logger=logger),
                                  contingencies=contingencies,
                                  options=options,
                                  actions=actions,
                                  operator_strategies=operator_strategies,
                                  logger=logger)
    return analysis.run()


def run_dc_sensitivity_analysis(grid: Union[Grid, NetworkData],
                                bus_ids: Union[List[str], None] = None,
                                variable_sets: Union[List[WeightedVariableSet], None] = None,
                                contingencies: Union[List[Contingency], None] = None,
                                options: Union[DcSecurityAnalysisOptions, None] = None,
                                logger: Union[Logger, None] = None) -> DcSensitivityAnalysisResults:
    """
    Run a DC sensitivity analysis
    :param grid: Grid or NetworkData
    :param bus_ids: bus injection variables
    :param variable_sets: GLSK injection variables
    :param contingencies: list of Contingency
    :param options: DcSecurityAnalysisOptions
    :param logger: Logger
    :return: DcSensitivityAnalysisResults
    """
    if logger is None:
        logger = Logger()

    analysis = DcSensitivityAnalysis(nc=compile_grid(grid, logger=logger),
                                     bus_ids=bus_ids,
                                     variable_sets=variable_sets,
                                     contingencies=contingencies,
                                     options=options,
                                     logger=logger)
    return analysis.run()
