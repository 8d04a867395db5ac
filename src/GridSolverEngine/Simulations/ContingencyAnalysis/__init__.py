# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
from GridSolverEngine.Simulations.ContingencyAnalysis.contingency import (Contingency, PropagatedContingency,
                                                                          BranchAction, SwitchAction, TapPositionAction,
                                                                          OperatorStrategy)
from GridSolverEngine.Simulations.ContingencyAnalysis.computed_elements import (ComputedContingencyElement,
                                                                                ComputedActionElement)
from GridSolverEngine.Simulations.ContingencyAnalysis.participation import (ParticipatingElement,
                                                                            WeightedVariable,
                                                                            WeightedVariableSet)
from GridSolverEngine.Simulations.ContingencyAnalysis.dc_load_flow_context import DcLoadFlowContext
from GridSolverEngine.Simulations.ContingencyAnalysis.woodbury_engine import WoodburyEngine
from GridSolverEngine.Simulations.ContingencyAnalysis.connectivity_break_analysis import (
    ConnectivityBreakAnalysis, ConnectivityAnalysisResult, ConnectivityBreakAnalysisResults)
from GridSolverEngine.Simulations.ContingencyAnalysis.dc_security_analysis_options import DcSecurityAnalysisOptions
from GridSolverEngine.Simulations.ContingencyAnalysis.contingency_analysis_results import (
    DcSecurityAnalysisResults, DcSensitivityAnalysisResults)
from GridSolverEngine.Simulations.ContingencyAnalysis.dc_security_analysis import DcSecurityAnalysis
from GridSolverEngine.Simulations.ContingencyAnalysis.dc_sensitivity_analysis import DcSensitivityAnalysis
