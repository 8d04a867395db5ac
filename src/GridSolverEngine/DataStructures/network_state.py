# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
from __future__ import annotations

from typing import Dict, Tuple
import numpy as np
from GridSolverEngine.DataStructures.network_data import NetworkData

# attributes of NetworkData that a contingency simulation is allowed to modify, per entity
BUS_STATE_FIELDS: Tuple[str, ...] = ('bus_active', 'Vm0', 'Va0', 'Vset', 'bus_types', 'is_slack')
BRANCH_STATE_FIELDS: Tuple[str, ...] = ('branch_active', 'tap_position', 'tap_module', 'tap_phase', 'x_factor')
GEN_STATE_FIELDS: Tuple[str, ...] = ('gen_p', 'gen_q', 'gen_active', 'gen_participates')
LOAD_STATE_FIELDS: Tuple[str, ...] = ('load_p', 'load_q', 'load_active')


class NetworkState:
    """
    Snapshot of the mutable part of a NetworkData.
    Each field is an array indexed by the stable element position (an arena of per-element records)
    """

    def __init__(self, network: NetworkData, fields: Dict[str, np.ndarray]):
        """
        Use NetworkState.save
        :param network: the network the snapshot belongs to
        :param fields: attribute name -> copied array
        """
        self.network = network
        self.fields = fields

    @staticmethod
    def save(network: NetworkData) -> "NetworkState":
        """
        Take a snapshot
        :param network: NetworkData
        :return: NetworkState
        """
        fields = dict()
        for name in BUS_STATE_FIELDS + BRANCH_STATE_FIELDS + GEN_STATE_FIELDS + LOAD_STATE_FIELDS:
            fields[name] = getattr(network, name).copy()
        return NetworkState(network=network, fields=fields)

    def restore(self) -> None:
        """
        Write the snapshot back into the network it was taken from
        """
        for name, arr in self.fields.items():
            getattr(self.network, name)[:] = arr

    def bus_record(self, i: int) -> Dict[str, object]:
        """
        Saved values of bus i
        """
        return {name: self.fields[name][i] for name in BUS_STATE_FIELDS}

    def branch_record(self, k: int) -> Dict[str, object]:
        """
        Saved values of branch k
        """
        return {name: self.fields[name][k] for name in BRANCH_STATE_FIELDS}

    def differs_from(self, network: NetworkData) -> bool:
        """
        Does the network hold values different from the snapshot?
        :param network: NetworkData
        :return: bool
        """
        for name, arr in self.fields.items():
            if not np.array_equal(getattr(network, name), arr):
                return True
        return False

    def __enter__(self) -> "NetworkState":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.restore()
