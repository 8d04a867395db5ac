# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
from __future__ import annotations

from typing import List, Set, Tuple, Union
import numpy as np
from GridSolverEngine.basic_structures import Vec, Logger
from GridSolverEngine.enumerations import BalanceType
from GridSolverEngine.DataStructures.network_data import NetworkData
from GridSolverEngine.exceptions import NetworkError


class ParticipatingElement:
    """
    Generator or load taking a share of the active power imbalance
    """

    def __init__(self, element_id: str, bus: int, factor: float):
        """

        :param element_id: id of the generator or load
        :param bus: bus index of the element
        :param factor: participation factor (normalized by normalize_participation_factors)
        """
        self.element_id = element_id
        self.bus = bus
        self.factor = factor

    def __repr__(self):
        return f"ParticipatingElement({self.element_id}, {self.factor})"


def normalize_participation_factors(elements: List[ParticipatingElement], element_type: str = "elements") -> None:
    """
    Scale the factors so that they add up to one
    :param elements: list of ParticipatingElement
    :param element_type: name of the kind of element, for the error message
    """
    factor_sum = sum(elm.factor for elm in elements)
    if factor_sum == 0:
        raise NetworkError(f"No more {element_type} participating to slack distribution")
    for elm in elements:
        elm.factor /= factor_sum


def get_participating_elements(nc: NetworkData,
                               balance_type: BalanceType = BalanceType.PROPORTIONAL_TO_GENERATION_P_MAX,
                               excluded_buses: Union[Set[int], None] = None) -> List[ParticipatingElement]:
    """
    Normalized participating elements of a network.
    Only connected elements at active buses participate
    :param nc: NetworkData
    :param balance_type: BalanceType
    :param excluded_buses: buses whose elements do not participate
    :return: list of ParticipatingElement
    """
    if excluded_buses is None:
        excluded_buses = set()

    elements = list()

    if balance_type == BalanceType.PROPORTIONAL_TO_LOAD:
        for l in range(nc.nload):
            i = int(nc.load_bus[l])
            if nc.load_active[l] and nc.bus_active[i] and i not in excluded_buses and nc.load_p[l] > 0:
                elements.append(ParticipatingElement(nc.load_idtag[l], i, nc.load_p[l]))
        element_type = "loads"

    else:
        for g in range(nc.ngen):
            i = int(nc.gen_bus[g])
            if nc.gen_active[g] and nc.gen_participates[g] and nc.bus_active[i] and i not in excluded_buses:

                if balance_type == BalanceType.PROPORTIONAL_TO_GENERATION_P_MAX:
                    factor = nc.gen_pmax[g]
                elif balance_type == BalanceType.PROPORTIONAL_TO_GENERATION_P:
                    factor = nc.gen_p[g]
                else:
                    raise NetworkError(f"Unsupported balance type {balance_type}")

                if factor > 0:
                    elements.append(ParticipatingElement(nc.gen_idtag[g], i, factor))
        element_type = "generators"

    normalize_participation_factors(elements, element_type)
    return elements


def get_participation_vector(nc: NetworkData,
                             balance_type: BalanceType = BalanceType.PROPORTIONAL_TO_GENERATION_P_MAX,
                             excluded_buses: Union[Set[int], None] = None,
                             logger: Logger = Logger()) -> Vec:
    """
    Participation factor of every bus (the factors of its elements added up).
    When nothing participates the vector is zero and the slack bus takes the whole imbalance
    :param nc: NetworkData
    :param balance_type: BalanceType
    :param excluded_buses: buses that do not participate
    :param logger: Logger
    :return: nbus vector adding up to 1 (or 0)
    """
    vec = np.zeros(nc.nbus)
    try:
        elements = get_participating_elements(nc, balance_type, excluded_buses)
    except NetworkError as e:
        logger.add_warning("Slack distribution not possible, the slack bus takes the imbalance",
                           value=e.message, device_class=str(balance_type))
        return vec

    for elm in elements:
        vec[elm.bus] += elm.factor
    return vec


def distribute_slack(P: Vec, participation: Vec) -> Tuple[Vec, float]:
    """
    Share the active power imbalance among the participating buses
    :param P: bus injections (p.u.)
    :param participation: participation vector (adding up to 1 or 0)
    :return: balanced injections, imbalance that was distributed
    """
    if participation.sum() == 0:
        return P.copy(), 0.0
    imbalance = float(P.sum())
    return P - imbalance * participation, imbalance


class WeightedVariable:
    """
    Bus taking part in a weighted injection with a given weight
    """

    def __init__(self, bus_id: str, weight: float):
        """

        :param bus_id: bus id
        :param weight: weight (not normalized)
        """
        if np.isnan(weight):
            raise ValueError(f"Invalid weight: {weight}")
        self.bus_id = bus_id
        self.weight = weight

    def __repr__(self):
        return f"WeightedVariable({self.bus_id}, {self.weight})"


class WeightedVariableSet:
    """
    GLSK: an injection spread over several buses with given weights
    """

    def __init__(self, idtag: str, variables: List[WeightedVariable]):
        """

        :param idtag: id of the set
        :param variables: list of WeightedVariable
        """
        self.idtag = idtag
        self.variables = list(variables)

    def get_bus_weights(self, nc: NetworkData, excluded_buses: Union[Set[int], None] = None,
                        logger: Logger = Logger()) -> Vec:
        """
        Normalized weight of every bus.
        Buses that are inactive, excluded or unknown are dropped and the rest rescaled
        :param nc: NetworkData
        :param excluded_buses: buses to drop (outside the main component)
        :param logger: Logger
        :return: nbus vector adding up to 1
        """
        if excluded_buses is None:
            excluded_buses = set()

        vec = np.zeros(nc.nbus)
        for var in self.variables:
            try:
                i = nc.bus_index(var.bus_id)
            except NetworkError:
                logger.add_warning("GLSK bus not found", device=var.bus_id, device_class=self.idtag)
                continue

            if nc.bus_active[i] and i not in excluded_buses:
                vec[i] += var.weight

        total = vec.sum()
        if total == 0:
            raise NetworkError(f"No bus of the weighted set {self.idtag} is in the main component")

        return vec / total

    def __str__(self):
        return self.idtag
