# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List
import pandas as pd
from GridSolverEngine.enumerations import NewtonRaphsonStatus


@dataclass(frozen=True)
class NewtonRaphsonResult:
    """
    Outcome of one Newton-Raphson solve
    """
    status: NewtonRaphsonStatus
    iterations: int
    slack_p_mismatch: float
    norm: float = 0.0
    elapsed: float = 0.0
    norm_evolution: List[float] = field(default_factory=list)

    @property
    def converged(self) -> bool:
        """
        Did it converge?
        """
        return self.status == NewtonRaphsonStatus.CONVERGED

    def to_df(self) -> pd.DataFrame:
        """
        Summary as a one row DataFrame
        :return: DataFrame
        """
        return pd.DataFrame(data=[[self.status.value, self.iterations, self.slack_p_mismatch,
                                   self.norm, self.elapsed]],
                            columns=['Status', 'Iterations', 'Slack P mismatch (p.u.)', 'Norm', 'Elapsed (s)'])

    def norm_evolution_df(self) -> pd.DataFrame:
        """
        Norm of the mismatch after every iteration (filled when the detailed report is enabled)
        :return: DataFrame
        """
        return pd.DataFrame(data={'Norm': self.norm_evolution},
                            index=pd.RangeIndex(1, len(self.norm_evolution) + 1, name='Iteration'))
