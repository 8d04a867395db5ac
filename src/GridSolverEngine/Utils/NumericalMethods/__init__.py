# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
from GridSolverEngine.Utils.NumericalMethods.common import max_abs, norm, clip_by_mask, all_finite
from GridSolverEngine.Utils.NumericalMethods.sparse_solve import LinearSolver
from GridSolverEngine.Utils.NumericalMethods.dense_solve import (dense_solve, dense_solve_vec, allocate_dense,
                                                                check_dense_capacity, max_dense_columns)
