# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
from GridSolverEngine.Simulations.PowerFlow.newton_raphson_options import NewtonRaphsonOptions
from GridSolverEngine.Simulations.PowerFlow.newton_raphson_results import NewtonRaphsonResult
from GridSolverEngine.Simulations.PowerFlow.stopping_criteria import StoppingCriteria, StoppingCriteriaResult
from GridSolverEngine.Simulations.PowerFlow.state_vector_scaling import StateVectorScaling
from GridSolverEngine.Simulations.PowerFlow.solver_hooks import SolverHooks
from GridSolverEngine.Simulations.PowerFlow.newton_raphson import NewtonRaphson, find_largest_mismatches
