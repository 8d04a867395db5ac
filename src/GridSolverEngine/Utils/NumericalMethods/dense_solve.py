# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
import numpy as np
from scipy.linalg import lu_factor, lu_solve, LinAlgWarning
import warnings
from GridSolverEngine.basic_structures import Mat, Vec
from GridSolverEngine.exceptions import LinearSolverError, PerturbationCapacityError

# largest number of bytes a single dense perturbation array may hold
MAX_DENSE_ARRAY_BYTES = 2 ** 31 - 1

FLOAT_BYTES = 8


def max_dense_columns(rows: int) -> int:
    """
    Maximum number of float64 columns of a dense array with the given number of rows
    :param rows: number of rows
    :return: number of columns
    """
    if rows <= 0:
        return MAX_DENSE_ARRAY_BYTES // FLOAT_BYTES
    return MAX_DENSE_ARRAY_BYTES // (rows * FLOAT_BYTES)


def check_dense_capacity(rows: int, columns: int) -> None:
    """
    Check, before allocating, that a rows x columns float64 array fits
    :param rows: number of rows
    :param columns: number of columns
    :raises PerturbationCapacityError: when it does not fit
    """
    max_cols = max_dense_columns(rows)
    if columns > max_cols:
        raise PerturbationCapacityError(rows=rows, columns=columns, max_columns=max_cols)


def allocate_dense(rows: int, columns: int) -> Mat:
    """
    Allocate a zeroed dense column-major matrix after checking its capacity
    :param rows: number of rows
    :param columns: number of columns
    :return: Mat
    """
    check_dense_capacity(rows, columns)
    return np.zeros((rows, columns), dtype=float, order='F')


def dense_solve(A: Mat, b: Mat) -> Mat:
    """
    Solve the small dense system A x = b through its LU factors
    :param A: k x k matrix
    :param b: k x m right hand side
    :return: k x m solution
    """
    k = A.shape[0]
    if k == 0:
        return np.zeros_like(b, dtype=float)

    with warnings.catch_warnings():
        warnings.simplefilter("error", LinAlgWarning)
        try:
            lu_piv = lu_factor(A)
        except (ValueError, LinAlgWarning, np.linalg.LinAlgError) as e:
            raise LinearSolverError(str(e))

    if np.any(np.diag(lu_piv[0]) == 0.0):
        raise LinearSolverError("Singular dense perturbation matrix")

    x = lu_solve(lu_piv, b)

    if not np.all(np.isfinite(x)):
        raise LinearSolverError("The solution of the dense perturbation system is not finite")

    return x


def dense_solve_vec(A: Mat, b: Vec) -> Vec:
    """
    Vector version of dense_solve
    :param A: k x k matrix
    :param b: k right hand side
    :return: k solution
    """
    return dense_solve(A, b.reshape(-1, 1))[:, 0]
