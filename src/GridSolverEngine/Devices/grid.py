# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
from __future__ import annotations

from typing import List, Union, Dict
from GridSolverEngine.Devices.bus import Bus
from GridSolverEngine.Devices.branch import Branch, Line, Transformer2W
from GridSolverEngine.Devices.injections import Generator, Load
from GridSolverEngine.exceptions import NetworkError


class Grid:
    """
    Object-oriented grid model.
    It holds the devices and is compiled into array form (NetworkData) for the simulations
    """

    def __init__(self, name: str = "Grid", Sbase: float = 100.0):
        """

        :param name: name of the grid
        :param Sbase: base power (MVA)
        """
        self.name = name

        self.Sbase = Sbase

        self.buses: List[Bus] = list()

        self.branches: List[Branch] = list()

        self.generators: List[Generator] = list()

        self.loads: List[Load] = list()

    def _check_new(self, idtag: str, existing: Dict[str, object]):
        if idtag in existing:
            raise NetworkError(f"Duplicated device id {idtag}")

    def add_bus(self, obj: Union[Bus, None] = None, **kwargs) -> Bus:
        """
        Add a bus
        :param obj: Bus instance (if None, one is created with kwargs)
        :return: the added Bus
        """
        if obj is None:
            obj = Bus(**kwargs)
        self._check_new(obj.idtag, {b.idtag: b for b in self.buses})
        self.buses.append(obj)
        return obj

    def add_branch(self, obj: Branch) -> Branch:
        """
        Add a branch (Line, Transformer2W, ...)
        :param obj: Branch instance
        :return: the added Branch
        """
        self._check_new(obj.idtag, {b.idtag: b for b in self.branches})
        if obj.bus_from not in self.buses or obj.bus_to not in self.buses:
            raise NetworkError(f"Branch {obj.idtag} refers to buses that are not in the grid")
        self.branches.append(obj)
        return obj

    def add_line(self, bus_from: Bus, bus_to: Bus, **kwargs) -> Line:
        """
        Create and add a line
        :param bus_from: from bus
        :param bus_to: to bus
        :return: Line
        """
        return self.add_branch(Line(bus_from=bus_from, bus_to=bus_to, **kwargs))

    def add_transformer2w(self, bus_from: Bus, bus_to: Bus, **kwargs) -> Transformer2W:
        """
        Create and add a two winding transformer
        :param bus_from: from bus
        :param bus_to: to bus
        :return: Transformer2W
        """
        return self.add_branch(Transformer2W(bus_from=bus_from, bus_to=bus_to, **kwargs))

    def add_generator(self, bus: Bus, obj: Union[Generator, None] = None, **kwargs) -> Generator:
        """
        Add a generator
        :param bus: connection bus
        :param obj: Generator instance (if None, one is created with kwargs)
        :return: Generator
        """
        if obj is None:
            obj = Generator(bus=bus, **kwargs)
        else:
            obj.bus = bus
        if bus not in self.buses:
            raise NetworkError(f"Generator {obj.idtag} refers to a bus that is not in the grid")
        self._check_new(obj.idtag, {g.idtag: g for g in self.generators})
        self.generators.append(obj)
        return obj

    def add_load(self, bus: Bus, obj: Union[Load, None] = None, **kwargs) -> Load:
        """
        Add a load
        :param bus: connection bus
        :param obj: Load instance (if None, one is created with kwargs)
        :return: Load
        """
        if obj is None:
            obj = Load(bus=bus, **kwargs)
        else:
            obj.bus = bus
        if bus not in self.buses:
            raise NetworkError(f"Load {obj.idtag} refers to a bus that is not in the grid")
        self._check_new(obj.idtag, {ld.idtag: ld for ld in self.loads})
        self.loads.append(obj)
        return obj

    def get_branch_by_idtag(self, idtag: str) -> Branch:
        """
        Get a branch by its id
        :param idtag: branch id
        :return: Branch
        """
        for br in self.branches:
            if br.idtag == idtag:
                return br
        raise NetworkError(f"Branch {idtag} not found")
