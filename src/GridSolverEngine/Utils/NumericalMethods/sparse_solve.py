# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
from __future__ import annotations

import numpy as np
from typing import Union
from scipy.sparse import csc_matrix
from scipy.sparse.linalg import splu
from GridSolverEngine.basic_structures import Vec, Mat
from GridSolverEngine.exceptions import LinearSolverError


def _check_solution(x: Union[Vec, Mat]) -> Union[Vec, Mat]:
    """
    Raise if the solution contains NaN or Inf
    :param x: solution
    :return: the same solution
    """
    if not np.all(np.isfinite(x)):
        raise LinearSolverError("The solution of the linear system is not finite (singular matrix?)")
    return x


class LinearSolver:
    """
    Factorize once, solve many times.
    Holds the LU factors of a square sparse matrix until close() is called.
    """

    def __init__(self, A: Union[csc_matrix, None] = None):
        """

        :param A: optional matrix to factorize right away
        """
        self._lu = None
        self.n = 0
        self.factorization_count = 0
        self.solve_count = 0

        if A is not None:
            self.factorize(A)

    @property
    def is_factorized(self) -> bool:
        """
        Are there LU factors available?
        """
        return self._lu is not None

    def factorize(self, A: csc_matrix) -> None:
        """
        Compute the LU factors of A
        :param A: square sparse matrix
        :raises LinearSolverError: if A is singular
        """
        if A.shape[0] != A.shape[1]:
            raise LinearSolverError(f"The matrix must be square, found {A.shape[0]}x{A.shape[1]}")

        self.n = A.shape[0]

        if self.n == 0:
            self._lu = None
            return

        try:
            self._lu = splu(csc_matrix(A, dtype=float))
        except RuntimeError as e:
            self._lu = None
            raise LinearSolverError(str(e))

        self.factorization_count += 1

    def _get_lu(self):
        if self._lu is None:
            raise LinearSolverError("The matrix has not been factorized (or has been released)")
        return self._lu

    def solve(self, b: Union[Vec, Mat]) -> Union[Vec, Mat]:
        """
        Solve A x = b
        :param b: right hand side vector or matrix (one system per column)
        :return: solution with the shape of b
        """
        if self.n == 0:
            return np.zeros_like(b, dtype=float)
        self.solve_count += 1
        return _check_solution(self._get_lu().solve(np.asarray(b, dtype=float)))

    def solve_transposed(self, b: Union[Vec, Mat]) -> Union[Vec, Mat]:
        """
        Solve A^T x = b
        :param b: right hand side vector or matrix (one system per column)
        :return: solution with the shape of b
        """
        if self.n == 0:
            return np.zeros_like(b, dtype=float)
        self.solve_count += 1
        return _check_solution(self._get_lu().solve(np.asarray(b, dtype=float), trans='T'))

    def close(self) -> None:
        """
        Release the LU factors
        """
        self._lu = None

    def __enter__(self) -> "LinearSolver":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
