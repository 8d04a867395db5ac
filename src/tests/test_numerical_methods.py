# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
import numpy as np
import pytest
from scipy.sparse import csc_matrix
from GridSolverEngine.exceptions import LinearSolverError
from GridSolverEngine.Utils.NumericalMethods.common import norm, max_abs, clip_by_mask, all_finite
from GridSolverEngine.Utils.NumericalMethods.dense_solve import dense_solve, dense_solve_vec
from GridSolverEngine.Utils.NumericalMethods.sparse_solve import LinearSolver


def test_linear_solver_factorizes_once():
    """
    Several solves reuse the same factors
    """
    A = csc_matrix(np.array([[4.0, 1.0], [1.0, 3.0]]))

    with LinearSolver(A) as solver:
        x1 = solver.solve(np.array([1.0, 2.0]))
        x2 = solver.solve(np.array([[1.0, 0.0], [2.0, 1.0]]))
        xt = solver.solve_transposed(np.array([1.0, 2.0]))

        assert np.allclose(A @ x1, [1.0, 2.0])
        assert np.allclose(x2[:, 0], x1)
        assert np.allclose(A.T @ xt, [1.0, 2.0])
        assert solver.factorization_count == 1
        assert solver.solve_count == 3

    assert not solver.is_factorized
    with pytest.raises(LinearSolverError):
        solver.solve(np.array([1.0, 2.0]))


def test_linear_solver_errors():
    """
    Singular and non square matrices are reported as LinearSolverError
    """
    with pytest.raises(LinearSolverError):
        LinearSolver(csc_matrix(np.array([[1.0, 0.0], [0.0, 0.0]])))

    with pytest.raises(LinearSolverError):
        LinearSolver(csc_matrix(np.ones((2, 3))))

    # empty systems have an empty solution
    solver = LinearSolver(csc_matrix((0, 0)))
    assert solver.solve(np.zeros(0)).shape == (0,)


def test_dense_solve():
    """
    Small dense systems, singular ones raise
    """
    A = np.array([[2.0, 1.0], [1.0, 3.0]])
    x = dense_solve(A, np.array([[3.0, 1.0], [4.0, 0.0]]))
    assert np.allclose(A @ x, [[3.0, 1.0], [4.0, 0.0]])
    assert np.allclose(dense_solve_vec(A, np.array([3.0, 4.0])), [1.0, 1.0])

    with pytest.raises(LinearSolverError):
        dense_solve(np.array([[1.0, 2.0], [2.0, 4.0]]), np.ones((2, 1)))

    assert dense_solve(np.zeros((0, 0)), np.zeros((0, 3))).shape == (0, 3)


def test_vector_helpers():
    assert norm(np.array([3.0, -4.0])) == 5.0
    assert max_abs(np.array([0.5, -2.0, 1.0])) == 2.0
    assert all_finite(np.array([0.0, 1.0]))
    assert not all_finite(np.array([0.0, np.nan]))


def test_clip_by_mask():
    """
    Only the masked positions are clipped
    """
    dx = np.array([0.5, -0.2, 0.05, 3.0])
    count = clip_by_mask(dx, np.array([0, 1, 2], dtype=int), 0.1)

    assert count == 2
    assert np.allclose(dx, [0.1, -0.1, 0.05, 3.0])
