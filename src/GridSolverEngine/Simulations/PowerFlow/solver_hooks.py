# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Any

Hook = Callable[..., Any]


@dataclass
class SolverHooks:
    """
    Optional callbacks invoked at the named points of a Newton-Raphson solve.

    before_iteration(iteration)
    after_solve(iteration, dx)              dx is the raw Newton step
    after_state_update(iteration, x)        x is the updated state vector
    after_mismatch(iteration, fx, norm)     fx is the mismatch after the scaling adjustments
    after_convergence(status, iteration)    called once at the end of the solve
    """
    before_iteration: List[Hook] = field(default_factory=list)
    after_solve: List[Hook] = field(default_factory=list)
    after_state_update: List[Hook] = field(default_factory=list)
    after_mismatch: List[Hook] = field(default_factory=list)
    after_convergence: List[Hook] = field(default_factory=list)

    def fire(self, name: str, *args) -> None:
        """
        Call every hook registered under a name
        :param name: lifecycle point name
        :param args: arguments passed to the hooks
        """
        for hook in getattr(self, name):
            hook(*args)

    def is_empty(self) -> bool:
        """
        Are there no hooks at all?
        """
        return not (self.before_iteration or self.after_solve or self.after_state_update
                    or self.after_mismatch or self.after_convergence)
