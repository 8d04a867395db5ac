# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
import numpy as np
import numba as nb
from GridSolverEngine.basic_structures import Vec, IntVec


@nb.njit(cache=True)
def max_abs(x: Vec) -> float:
    """
    Compute max abs efficiently
    :param x:
    :return:
    """
    max_val = 0.0
    for x_val in x:
        x_abs = abs(x_val)
        if x_abs > max_val:
            max_val = x_abs

    return max_val


@nb.njit(cache=True)
def norm(x: Vec) -> float:
    """
    Compute the euclidean norm efficiently
    :param x:
    :return:
    """
    x_sum = 0.0
    for x_val in x:
        x_sum += x_val * x_val

    return np.sqrt(x_sum)


@nb.njit(cache=True)
def clip_by_mask(dx: Vec, mask: IntVec, bound: float) -> int:
    """
    Clip in place the entries of dx selected by mask to [-bound, bound]
    :param dx: step vector (modified)
    :param mask: positions to check
    :param bound: absolute bound
    :return: number of clipped entries
    """
    count = 0
    for i in mask:
        if abs(dx[i]) > bound:
            dx[i] = np.copysign(bound, dx[i])
            count += 1
    return count


@nb.njit(cache=True)
def all_finite(x: Vec) -> bool:
    """
    Check that there are no NaN or Inf values in x
    :param x:
    :return:
    """
    for x_val in x:
        if not np.isfinite(x_val):
            return False
    return True
