# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
from GridSolverEngine.enumerations import BalanceType
from GridSolverEngine.exceptions import InvalidOptionError
from GridSolverEngine.Simulations.options_template import OptionsTemplate
from GridSolverEngine.Simulations.ContingencyAnalysis.connectivity_break_analysis import \
    DEFAULT_CONNECTIVITY_LOSS_THRESHOLD


class DcSecurityAnalysisOptions(OptionsTemplate):
    """
    DC security and sensitivity analysis options
    """

    def __init__(self,
                 connectivity_loss_threshold: float = DEFAULT_CONNECTIVITY_LOSS_THRESHOLD,
                 distributed_slack: bool = True,
                 balance_type: BalanceType = BalanceType.PROPORTIONAL_TO_GENERATION_P_MAX,
                 check_reconnection: bool = True,
                 verbose: int = 0):
        """
        DC security analysis options
        :param connectivity_loss_threshold: Tolerance of the sensitivity based connectivity test
        :param distributed_slack: Share the active power imbalance among the participating elements
        :param balance_type: How the imbalance is shared
        :param check_reconnection: Check that the reconnection sets join every component again
        :param verbose: Print additional details in the console (0: no details, 1: some details, 2: all details)
        """
        OptionsTemplate.__init__(self, name='DcSecurityAnalysisOptions')

        self.connectivity_loss_threshold = connectivity_loss_threshold

        self.distributed_slack = distributed_slack

        self.balance_type = balance_type

        self.check_reconnection = check_reconnection

        self.verbose = verbose

        self.register(key="connectivity_loss_threshold", tpe=float,
                      definition="Tolerance of the sensitivity based connectivity test")
        self.register(key="distributed_slack", tpe=bool, definition="Distributed slack")
        self.register(key="balance_type", tpe=BalanceType, definition="Slack distribution criterion")
        self.register(key="check_reconnection", tpe=bool, definition="Check the reconnection sets")
        self.register(key="verbose", tpe=int, definition="Verbosity level")

        self.validate()

    def validate(self):
        """
        Validate the options
        :raises InvalidOptionError: on invalid values
        """
        OptionsTemplate.validate(self)

        if not (0.0 <= self.connectivity_loss_threshold < 1.0):
            raise InvalidOptionError("connectivity_loss_threshold", self.connectivity_loss_threshold,
                                     "Must be in [0, 1)")
