# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
from typing import Union
from GridSolverEngine.Devices.device import Device


class Bus(Device):
    """
    Electrical node
    """

    def __init__(self,
                 name: str = "Bus",
                 idtag: Union[str, None] = None,
                 Vnom: float = 10.0,
                 is_slack: bool = False,
                 active: bool = True,
                 Vm0: float = 1.0,
                 Va0: float = 0.0):
        """
        Bus
        :param name: name of the bus
        :param idtag: unique identifier
        :param Vnom: nominal voltage (kV)
        :param is_slack: is this the reference bus?
        :param active: is the bus in service?
        :param Vm0: stored voltage module (p.u.), used by the previous-values initializer
        :param Va0: stored voltage angle (rad), used by the previous-values initializer
        """
        Device.__init__(self, name=name, idtag=idtag, active=active)

        self.Vnom = Vnom

        self.is_slack = is_slack

        self.Vm0 = Vm0

        self.Va0 = Va0
