# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
from typing import Union
from GridSolverEngine.Devices.device import Device
from GridSolverEngine.Devices.bus import Bus


class Generator(Device):
    """
    Generator
    """

    def __init__(self,
                 bus: Bus,
                 name: str = "Gen",
                 idtag: Union[str, None] = None,
                 P: float = 0.0,
                 Q: float = 0.0,
                 Pmax: float = 9999.0,
                 Pmin: float = 0.0,
                 Vset: float = 1.0,
                 is_controlled: bool = True,
                 participates: bool = True,
                 active: bool = True):
        """
        Generator
        :param bus: connection bus
        :param P: active power (MW)
        :param Q: reactive power (MVAr), used when is_controlled is False
        :param Pmax: maximum active power (MW)
        :param Pmin: minimum active power (MW)
        :param Vset: voltage set point (p.u.)
        :param is_controlled: does it control the voltage (makes the bus PV)?
        :param participates: does it take part in the slack distribution?
        :param active: is it in service?
        """
        Device.__init__(self, name=name, idtag=idtag, active=active)

        self.bus = bus

        self.P = P

        self.Q = Q

        self.Pmax = Pmax

        self.Pmin = Pmin

        self.Vset = Vset

        self.is_controlled = is_controlled

        self.participates = participates


class Load(Device):
    """
    Constant power load
    """

    def __init__(self,
                 bus: Bus,
                 name: str = "Load",
                 idtag: Union[str, None] = None,
                 P: float = 0.0,
                 Q: float = 0.0,
                 active: bool = True):
        """
        Load
        :param bus: connection bus
        :param P: active power (MW)
        :param Q: reactive power (MVAr)
        :param active: is it in service?
        """
        Device.__init__(self, name=name, idtag=idtag, active=active)

        self.bus = bus

        self.P = P

        self.Q = Q
