# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
from __future__ import annotations

from typing import List, Set, Tuple, Union
import numpy as np
import networkx as nx
from GridSolverEngine.basic_structures import IntVec, BoolVec
from GridSolverEngine.DataStructures.network_data import NetworkData
from GridSolverEngine.exceptions import NetworkError


class GraphConnectivity:
    """
    Bus-branch graph supporting temporary edge removals.

    Branches are the edges of a multigraph (parallel branches are kept apart, keyed by
    their branch index). Removals done after start_temporary_changes() are reverted by
    undo_temporary_changes(); both calls are counted so that the number of cut / reset
    cycles can be checked.
    """

    def __init__(self, nbus: int, F: IntVec, T: IntVec, active: Union[BoolVec, None] = None, main_bus: int = 0):
        """

        :param nbus: number of buses
        :param F: array of branch from bus indices
        :param T: array of branch to bus indices
        :param active: array of branch active states (all active if None)
        :param main_bus: bus whose component is the main component (the slack bus)
        """
        self.graph = nx.MultiGraph()
        self.graph.add_nodes_from(range(nbus))

        if active is None:
            active = np.ones(len(F), dtype=bool)

        for k, (f, t) in enumerate(zip(F, T)):
            if active[k]:
                self.graph.add_edge(int(f), int(t), key=k)

        self.main_bus = main_bus

        self._edges_by_index = {k: (int(f), int(t)) for k, (f, t) in enumerate(zip(F, T))}

        # stack of removed edges per level of temporary changes
        self._changes: List[List[Tuple[int, int, int]]] = list()

        self._components: Union[List[Set[int]], None] = None

        self.start_count = 0
        self.undo_count = 0

    @classmethod
    def from_network(cls, nc: NetworkData) -> "GraphConnectivity":
        """
        Build the connectivity of a NetworkData
        :param nc: NetworkData
        :return: GraphConnectivity
        """
        active = nc.branch_active & nc.bus_active[nc.F] & nc.bus_active[nc.T]
        return cls(nbus=nc.nbus, F=nc.F, T=nc.T, active=active, main_bus=nc.slack)

    def start_temporary_changes(self) -> None:
        """
        Open a new level of reversible changes
        """
        self._changes.append(list())
        self.start_count += 1

    def undo_temporary_changes(self) -> None:
        """
        Revert every removal done since the last start_temporary_changes()
        """
        if len(self._changes) == 0:
            raise NetworkError("There are no temporary changes to undo")

        for f, t, k in reversed(self._changes.pop()):
            self.graph.add_edge(f, t, key=k)

        self._components = None
        self.undo_count += 1

    @property
    def in_temporary_changes(self) -> bool:
        """
        Is there an open level of temporary changes?
        """
        return len(self._changes) > 0

    def remove_edge(self, k: int) -> None:
        """
        Remove branch k from the graph
        :param k: branch index
        """
        f, t = self._edges_by_index[k]
        if self.graph.has_edge(f, t, key=k):
            self.graph.remove_edge(f, t, key=k)
            if len(self._changes):
                self._changes[-1].append((f, t, k))
            self._components = None

    def has_edge(self, k: int) -> bool:
        """
        Is branch k currently in the graph?
        """
        f, t = self._edges_by_index[k]
        return self.graph.has_edge(f, t, key=k)

    def _get_components(self) -> List[Set[int]]:
        """
        Connected components, the main one first, then sorted by their smallest bus
        """
        if self._components is None:
            comps = [set(c) for c in nx.connected_components(self.graph)]
            main = [c for c in comps if self.main_bus in c]
            others = sorted([c for c in comps if self.main_bus not in c], key=lambda c: min(c))
            self._components = main + others
        return self._components

    def get_components(self) -> List[Set[int]]:
        """
        Connected components (sets of bus indices); position 0 holds the main component
        """
        return self._get_components()

    def get_nb_connected_components(self) -> int:
        """
        Number of connected components
        """
        return len(self._get_components())

    def get_component_number(self, bus: int) -> int:
        """
        Number of the component holding a bus (0 is the main component)
        :param bus: bus index
        :return: component number
        """
        for c, comp in enumerate(self._get_components()):
            if bus in comp:
                return c
        raise NetworkError(f"Bus {bus} not in the graph")

    def get_bus_components(self) -> IntVec:
        """
        Component number of every bus
        """
        res = np.zeros(self.graph.number_of_nodes(), dtype=int)
        for c, comp in enumerate(self._get_components()):
            for i in comp:
                res[i] = c
        return res

    def get_main_component(self) -> Set[int]:
        """
        Buses of the component holding the main bus
        """
        return self._get_components()[0]

    def get_vertices_removed_from_main_component(self) -> Set[int]:
        """
        Buses that are not in the main component
        """
        main = self.get_main_component()
        return set(range(self.graph.number_of_nodes())) - main

    def get_edges_removed_from_main_component(self) -> Set[int]:
        """
        Branches (present in the graph or not) with at least one end outside the main component
        """
        main = self.get_main_component()
        return {k for k, (f, t) in self._edges_by_index.items() if f not in main or t not in main}
