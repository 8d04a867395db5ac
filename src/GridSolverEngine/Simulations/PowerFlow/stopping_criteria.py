# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
from dataclasses import dataclass
import numpy as np
from GridSolverEngine.basic_structures import Vec
from GridSolverEngine.Utils.NumericalMethods.common import norm


@dataclass
class StoppingCriteriaResult:
    """
    Outcome of a stopping criteria test
    """
    stop: bool
    norm: float


class StoppingCriteria:
    """
    Euclidean norm criterion: stop when |f(x)| < sqrt(n * eps^2),
    that is, when the mismatch is on average below eps per equation
    """

    def __init__(self, tolerance: float = 1e-4):
        """

        :param tolerance: tolerance per equation
        """
        self.tolerance = tolerance

    def test(self, fx: Vec) -> StoppingCriteriaResult:
        """
        Test a mismatch vector
        :param fx: mismatch vector
        :return: StoppingCriteriaResult
        """
        if len(fx) == 0:
            return StoppingCriteriaResult(stop=True, norm=0.0)

        fx_norm = norm(fx)
        threshold = np.sqrt(self.tolerance * self.tolerance * len(fx))
        return StoppingCriteriaResult(stop=bool(fx_norm < threshold), norm=float(fx_norm))
