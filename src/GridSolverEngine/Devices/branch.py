# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
from __future__ import annotations

from typing import Union, List
import numpy as np
from GridSolverEngine.basic_structures import Vec
from GridSolverEngine.Devices.device import Device
from GridSolverEngine.Devices.bus import Bus
from GridSolverEngine.exceptions import NetworkError


class TapChanger:
    """
    Tap changer described by its table of positions
    """

    def __init__(self,
                 m: Union[List[float], Vec],
                 tau: Union[List[float], Vec, None] = None,
                 x_factor: Union[List[float], Vec, None] = None,
                 tap_position: int = 0):
        """
        Tap changer
        :param m: tap module per position (p.u.)
        :param tau: tap phase shift per position (rad)
        :param x_factor: series reactance multiplier per position
        :param tap_position: current position index
        """
        self.m_array: Vec = np.array(m, dtype=float)
        n = len(self.m_array)
        self.tau_array: Vec = np.zeros(n) if tau is None else np.array(tau, dtype=float)
        self.x_factor_array: Vec = np.ones(n) if x_factor is None else np.array(x_factor, dtype=float)

        if len(self.tau_array) != n or len(self.x_factor_array) != n:
            raise NetworkError("All the tap changer tables must have the same number of positions")

        self._tap_position = 0
        self.tap_position = tap_position

    @property
    def total_positions(self) -> int:
        """
        Number of positions
        """
        return len(self.m_array)

    @property
    def tap_position(self) -> int:
        """
        Current position index
        """
        return self._tap_position

    @tap_position.setter
    def tap_position(self, val: int):
        if not (0 <= int(val) < self.total_positions):
            raise NetworkError(f"Tap position {val} out of range [0, {self.total_positions})")
        self._tap_position = int(val)


class Branch(Device):
    """
    Pi-model branch joining two buses
    """

    def __init__(self,
                 bus_from: Bus,
                 bus_to: Bus,
                 name: str = "Branch",
                 idtag: Union[str, None] = None,
                 R: float = 0.0,
                 X: float = 1e-4,
                 B: float = 0.0,
                 rate: float = 9999.0,
                 active: bool = True):
        """
        Branch
        :param bus_from: from bus
        :param bus_to: to bus
        :param name: name
        :param idtag: unique identifier
        :param R: series resistance (p.u.)
        :param X: series reactance (p.u.)
        :param B: total shunt susceptance (p.u.)
        :param rate: rating (MVA)
        :param active: is the branch closed?
        """
        Device.__init__(self, name=name, idtag=idtag, active=active)

        if bus_from is bus_to:
            raise NetworkError(f"Branch {name} connects bus {bus_from.name} with itself")

        self.bus_from = bus_from

        self.bus_to = bus_to

        self.R = R

        self.X = X

        self.B = B

        self.rate = rate


class Line(Branch):
    """
    Transmission line
    """

    def __init__(self, bus_from: Bus, bus_to: Bus, name: str = "Line", idtag: Union[str, None] = None,
                 R: float = 0.0, X: float = 1e-4, B: float = 0.0, rate: float = 9999.0, active: bool = True):
        Branch.__init__(self, bus_from=bus_from, bus_to=bus_to, name=name, idtag=idtag,
                        R=R, X=X, B=B, rate=rate, active=active)


class Transformer2W(Branch):
    """
    Two winding transformer, optionally with a ratio / phase tap changer
    """

    def __init__(self,
                 bus_from: Bus,
                 bus_to: Bus,
                 name: str = "Transformer",
                 idtag: Union[str, None] = None,
                 R: float = 0.0,
                 X: float = 1e-4,
                 B: float = 0.0,
                 rate: float = 9999.0,
                 active: bool = True,
                 tap_module: float = 1.0,
                 tap_phase: float = 0.0,
                 tap_changer: Union[TapChanger, None] = None):
        """
        Transformer
        :param tap_module: fixed tap module, used when there is no tap changer
        :param tap_phase: fixed phase shift (rad), used when there is no tap changer
        :param tap_changer: TapChanger
        """
        Branch.__init__(self, bus_from=bus_from, bus_to=bus_to, name=name, idtag=idtag,
                        R=R, X=X, B=B, rate=rate, active=active)

        self.tap_module = tap_module

        self.tap_phase = tap_phase

        self.tap_changer = tap_changer
