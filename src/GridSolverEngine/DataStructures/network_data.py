# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
from __future__ import annotations

from typing import List, Tuple, Union
import numpy as np
import scipy.sparse as sp
from GridSolverEngine.basic_structures import Vec, IntVec, BoolVec, CxVec, StrVec, CscMat
from GridSolverEngine.basic_structures import get_indices_by_key
from GridSolverEngine.enumerations import BusMode
from GridSolverEngine.exceptions import NetworkError


class NetworkData:
    """
    Array representation of a grid, the structure every simulation works with.
    Element positions are stable: bus i, branch k, generator g and load l keep
    their index for the whole life of the structure
    """

    def __init__(self, nbus: int, nbr: int, ngen: int, nload: int, Sbase: float = 100.0):
        """

        :param nbus: number of buses
        :param nbr: number of branches
        :param ngen: number of generators
        :param nload: number of loads
        :param Sbase: base power (MVA)
        """
        self.nbus = nbus
        self.nbr = nbr
        self.ngen = ngen
        self.nload = nload
        self.Sbase = Sbase

        # buses
        self.bus_idtag: StrVec = np.empty(nbus, dtype=object)
        self.bus_names: StrVec = np.empty(nbus, dtype=object)
        self.bus_active: BoolVec = np.ones(nbus, dtype=bool)
        self.Vnom: Vec = np.ones(nbus, dtype=float)
        self.Vm0: Vec = np.ones(nbus, dtype=float)
        self.Va0: Vec = np.zeros(nbus, dtype=float)
        self.Vset: Vec = np.ones(nbus, dtype=float)
        self.bus_types: IntVec = np.full(nbus, BusMode.PQ_tpe.value, dtype=int)
        self.is_slack: BoolVec = np.zeros(nbus, dtype=bool)

        # branches
        self.branch_idtag: StrVec = np.empty(nbr, dtype=object)
        self.branch_names: StrVec = np.empty(nbr, dtype=object)
        self.F: IntVec = np.zeros(nbr, dtype=int)
        self.T: IntVec = np.zeros(nbr, dtype=int)
        self.R: Vec = np.zeros(nbr, dtype=float)
        self.X: Vec = np.zeros(nbr, dtype=float)
        self.B: Vec = np.zeros(nbr, dtype=float)
        self.rates: Vec = np.zeros(nbr, dtype=float)
        self.branch_active: BoolVec = np.ones(nbr, dtype=bool)
        self.tap_module: Vec = np.ones(nbr, dtype=float)
        self.tap_phase: Vec = np.zeros(nbr, dtype=float)
        self.x_factor: Vec = np.ones(nbr, dtype=float)
        self.tap_position: IntVec = np.full(nbr, -1, dtype=int)  # -1: no tap changer
        self.tap_m_tables: List[Union[Vec, None]] = [None] * nbr
        self.tap_tau_tables: List[Union[Vec, None]] = [None] * nbr
        self.tap_x_tables: List[Union[Vec, None]] = [None] * nbr

        # generators
        self.gen_idtag: StrVec = np.empty(ngen, dtype=object)
        self.gen_names: StrVec = np.empty(ngen, dtype=object)
        self.gen_bus: IntVec = np.zeros(ngen, dtype=int)
        self.gen_p: Vec = np.zeros(ngen, dtype=float)
        self.gen_q: Vec = np.zeros(ngen, dtype=float)
        self.gen_pmax: Vec = np.zeros(ngen, dtype=float)
        self.gen_pmin: Vec = np.zeros(ngen, dtype=float)
        self.gen_vset: Vec = np.ones(ngen, dtype=float)
        self.gen_active: BoolVec = np.ones(ngen, dtype=bool)
        self.gen_controlled: BoolVec = np.ones(ngen, dtype=bool)
        self.gen_participates: BoolVec = np.ones(ngen, dtype=bool)

        # loads
        self.load_idtag: StrVec = np.empty(nload, dtype=object)
        self.load_names: StrVec = np.empty(nload, dtype=object)
        self.load_bus: IntVec = np.zeros(nload, dtype=int)
        self.load_p: Vec = np.zeros(nload, dtype=float)
        self.load_q: Vec = np.zeros(nload, dtype=float)
        self.load_active: BoolVec = np.ones(nload, dtype=bool)

    # ------------------------------------------------------------------------------------------------------------------
    # topology helpers
    # ------------------------------------------------------------------------------------------------------------------

    @property
    def slack(self) -> int:
        """
        Index of the slack bus
        """
        idx = np.where(self.bus_types == BusMode.Slack_tpe.value)[0]
        if len(idx) == 0:
            raise NetworkError("There is no slack bus")
        return int(idx[0])

    @property
    def pv(self) -> IntVec:
        """
        PV bus indices
        """
        return np.where(self.bus_types == BusMode.PV_tpe.value)[0]

    @property
    def pq(self) -> IntVec:
        """
        PQ bus indices
        """
        return np.where(self.bus_types == BusMode.PQ_tpe.value)[0]

    def update_bus_types(self) -> None:
        """
        Compute the bus types from the generators and the slack flags.
        If no bus is flagged as slack, the bus with the largest controlled generation capacity is used
        """
        self.bus_types[:] = BusMode.PQ_tpe.value

        for g in range(self.ngen):
            if self.gen_active[g] and self.gen_controlled[g]:
                i = self.gen_bus[g]
                self.bus_types[i] = BusMode.PV_tpe.value
                self.Vset[i] = self.gen_vset[g]

        slack_idx = np.where(self.is_slack)[0]
        if len(slack_idx) > 0:
            self.bus_types[slack_idx[0]] = BusMode.Slack_tpe.value
        else:
            cap = np.zeros(self.nbus)
            for g in range(self.ngen):
                if self.gen_active[g] and self.gen_controlled[g]:
                    cap[self.gen_bus[g]] += self.gen_pmax[g]
            if self.nbus > 0 and cap.max() > 0:
                i = int(np.argmax(cap))
                self.is_slack[i] = True
                self.bus_types[i] = BusMode.Slack_tpe.value
            else:
                raise NetworkError("No slack bus defined and no controlled generator to pick one from")

    def get_Cf(self) -> CscMat:
        """
        Branch-from bus connectivity matrix (nbr x nbus)
        """
        data = np.ones(self.nbr)
        return sp.csc_matrix((data, (np.arange(self.nbr), self.F)), shape=(self.nbr, self.nbus))

    def get_Ct(self) -> CscMat:
        """
        Branch-to bus connectivity matrix (nbr x nbus)
        """
        data = np.ones(self.nbr)
        return sp.csc_matrix((data, (np.arange(self.nbr), self.T)), shape=(self.nbr, self.nbus))

    # ------------------------------------------------------------------------------------------------------------------
    # lookups
    # ------------------------------------------------------------------------------------------------------------------

    def bus_index(self, idtag: str) -> int:
        """
        Position of a bus
        :param idtag: bus id
        :return: index
        """
        idx, missing = get_indices_by_key(list(self.bus_idtag), [idtag])
        if len(missing):
            raise NetworkError(f"Bus {idtag} not found")
        return int(idx[0])

    def branch_index(self, idtag: str) -> int:
        """
        Position of a branch
        :param idtag: branch id
        :return: index
        """
        idx, missing = get_indices_by_key(list(self.branch_idtag), [idtag])
        if len(missing):
            raise NetworkError(f"Branch {idtag} not found")
        return int(idx[0])

    def get_branch_indices(self, idtags: List[str]) -> Tuple[IntVec, List[str]]:
        """
        Positions of a list of branches
        :param idtags: branch ids
        :return: found indices, ids not found
        """
        return get_indices_by_key(list(self.branch_idtag), idtags)

    def gen_index(self, idtag: str) -> int:
        """
        Position of a generator
        :param idtag: generator id
        :return: index
        """
        idx, missing = get_indices_by_key(list(self.gen_idtag), [idtag])
        if len(missing):
            raise NetworkError(f"Generator {idtag} not found")
        return int(idx[0])

    # ------------------------------------------------------------------------------------------------------------------
    # tap changers
    # ------------------------------------------------------------------------------------------------------------------

    def has_tap_changer(self, k: int) -> bool:
        """
        Does branch k have a tap changer?
        """
        return self.tap_m_tables[k] is not None

    def get_tap_values(self, k: int, position: int) -> Tuple[float, float, float]:
        """
        Tap values of branch k at a position, without changing the branch
        :param k: branch index
        :param position: tap position
        :return: tap module, tap phase (rad), reactance multiplier
        """
        if not self.has_tap_changer(k):
            raise NetworkError(f"Branch {self.branch_idtag[k]} has no tap changer")
        m_tbl = self.tap_m_tables[k]
        if not (0 <= position < len(m_tbl)):
            raise NetworkError(f"Tap position {position} out of range for branch {self.branch_idtag[k]}")
        return float(m_tbl[position]), float(self.tap_tau_tables[k][position]), float(self.tap_x_tables[k][position])

    def set_tap_position(self, k: int, position: int) -> None:
        """
        Move the tap changer of branch k
        :param k: branch index
        :param position: new tap position
        """
        m, tau, xf = self.get_tap_values(k, position)
        self.tap_position[k] = position
        self.tap_module[k] = m
        self.tap_phase[k] = tau
        self.x_factor[k] = xf

    # ------------------------------------------------------------------------------------------------------------------
    # electrical magnitudes
    # ------------------------------------------------------------------------------------------------------------------

    def get_effective_x(self) -> Vec:
        """
        Series reactance of every branch at its current tap position
        """
        return self.X * self.x_factor

    def get_dc_susceptance(self) -> Vec:
        """
        DC susceptance b = 1/x of every branch, 0 for the open ones
        """
        b = np.zeros(self.nbr)
        act = self.branch_active & self.bus_active[self.F] & self.bus_active[self.T]
        b[act] = 1.0 / self.get_effective_x()[act]
        return b

    def get_Sbus(self) -> CxVec:
        """
        Complex power injections (p.u.), generation minus load
        """
        S = np.zeros(self.nbus, dtype=complex)
        for g in range(self.ngen):
            if self.gen_active[g]:
                S[self.gen_bus[g]] += self.gen_p[g] + 1j * self.gen_q[g]
        for l in range(self.nload):
            if self.load_active[l]:
                S[self.load_bus[l]] -= self.load_p[l] + 1j * self.load_q[l]
        S[~self.bus_active] = 0.0
        return S / self.Sbase

    def get_Pbus(self) -> Vec:
        """
        Active power injections (p.u.)
        """
        return self.get_Sbus().real

    def copy(self) -> "NetworkData":
        """
        Deep copy of this structure
        :return: NetworkData
        """
        data = NetworkData(nbus=self.nbus, nbr=self.nbr, ngen=self.ngen, nload=self.nload, Sbase=self.Sbase)
        for key, val in self.__dict__.items():
            if isinstance(val, np.ndarray):
                setattr(data, key, val.copy())
            elif isinstance(val, list):
                setattr(data, key, [None if v is None else v.copy() for v in val])
        return data
