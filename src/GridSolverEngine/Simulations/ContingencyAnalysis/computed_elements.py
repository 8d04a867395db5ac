# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
from __future__ import annotations

from typing import List, Sequence, Union, TYPE_CHECKING
import numpy as np
from GridSolverEngine.basic_structures import Mat, Vec
from GridSolverEngine.DataStructures.network_data import NetworkData
from GridSolverEngine.Simulations.ContingencyAnalysis.contingency import (BranchAction, SwitchAction,
                                                                          TapPositionAction)
from GridSolverEngine.Simulations.Equations.dc_equation_system import get_branch_phase_shift
from GridSolverEngine.Topology.graph_connectivity import GraphConnectivity
from GridSolverEngine.Utils.NumericalMethods.dense_solve import allocate_dense
from GridSolverEngine.exceptions import NetworkError

if TYPE_CHECKING:
    from GridSolverEngine.Simulations.ContingencyAnalysis.dc_load_flow_context import DcLoadFlowContext


class ComputedElement:
    """
    Branch whose DC characteristic (b, phi) changes to (b_after, phi_after) in a perturbation.

    global_index: column of the element in the element states matrix (response to a +1/-1
                  injection at the branch ends), assigned once for the whole analysis.
    local_index: position of the element in the dense system of the perturbation being solved.
    """

    def __init__(self, nc: NetworkData, branch_idx: int, b: float, phi: float, b_after: float, phi_after: float):
        """

        :param nc: NetworkData
        :param branch_idx: branch index
        :param b: susceptance before the change
        :param phi: phase shift before the change
        :param b_after: susceptance after the change
        :param phi_after: phase shift after the change
        """
        self.branch_idx = int(branch_idx)
        self.branch_id = str(nc.branch_idtag[branch_idx])
        self.f = int(nc.F[branch_idx])
        self.t = int(nc.T[branch_idx])
        self.b = float(b)
        self.phi = float(phi)
        self.b_after = float(b_after)
        self.phi_after = float(phi_after)

        self.global_index = -1
        self.local_index = -1

        # alpha of the last single column computation
        self.alpha = np.nan

    @property
    def delta_b(self) -> float:
        """
        Susceptance change
        """
        return self.b_after - self.b

    @property
    def delta_bphi(self) -> float:
        """
        Change of the b * phi product (the phase shift injection)
        """
        return self.b_after * self.phi_after - self.b * self.phi

    @property
    def opens_branch(self) -> bool:
        """
        Does the change open the branch?
        """
        return self.b_after == 0.0 and self.b != 0.0

    def get_angle_difference(self, states: Mat) -> Union[float, Vec]:
        """
        theta_f - theta_t for every column of states (the a^T x product)
        :param states: nbus x m matrix (or nbus vector)
        :return: m vector (or scalar)
        """
        return states[self.f] - states[self.t]

    def calculate_sensi(self, element_states: Mat, column: int) -> float:
        """
        Flow through this branch (with its initial b) produced by a column of the element states matrix
        :param element_states: nbus x n matrix
        :param column: column index
        :return: flow
        """
        return self.b * (element_states[self.f, column] - element_states[self.t, column])

    def apply_to_connectivity(self, connectivity: GraphConnectivity) -> None:
        """
        Remove the branch from the connectivity when the change opens it
        :param connectivity: GraphConnectivity
        """
        if self.b_after == 0.0:
            connectivity.remove_edge(self.branch_idx)

    def __str__(self):
        return self.branch_id

    def __repr__(self):
        return f"{self.__class__.__name__}({self.branch_id})"


class ComputedContingencyElement(ComputedElement):
    """
    Branch opened by a contingency
    """

    def __init__(self, nc: NetworkData, branch_idx: int, b: Union[float, None] = None):
        """

        :param nc: NetworkData
        :param branch_idx: branch index
        :param b: susceptance of the branch (the network one by default)
        """
        if b is None:
            b = nc.get_dc_susceptance()[branch_idx]
        phi = get_branch_phase_shift(nc)[branch_idx]
        ComputedElement.__init__(self, nc=nc, branch_idx=branch_idx, b=b, phi=phi, b_after=0.0, phi_after=phi)


class ComputedActionElement(ComputedElement):
    """
    Branch modified by a remedial action
    """

    def __init__(self, nc: NetworkData, action: BranchAction):
        """

        :param nc: NetworkData
        :param action: SwitchAction or TapPositionAction
        """
        k = nc.branch_index(action.branch_id)
        b = nc.get_dc_susceptance()[k]
        phi = get_branch_phase_shift(nc)[k]

        if isinstance(action, TapPositionAction):
            if b == 0.0:
                raise NetworkError(f"Tap action {action.idtag} on the open branch {action.branch_id}")
            m, tau, x_factor = nc.get_tap_values(k, action.tap_position)
            b_after = 1.0 / (nc.X[k] * x_factor)
            phi_after = -tau

        elif isinstance(action, SwitchAction):
            phi_after = phi
            if action.open_branch:
                b_after = 0.0
            else:
                b_after = 1.0 / nc.get_effective_x()[k]

        else:
            raise NetworkError(f"Unsupported action {action}")

        ComputedElement.__init__(self, nc=nc, branch_idx=k, b=b, phi=phi, b_after=b_after, phi_after=phi_after)

        self.action = action

    @property
    def action_id(self) -> str:
        """
        Action id
        """
        return self.action.idtag


def set_computed_element_indexes(elements: Sequence[ComputedElement]) -> None:
    """
    Assign the columns of the element states matrix
    :param elements: computed elements
    """
    for i, elm in enumerate(elements):
        elm.global_index = i


def set_local_indexes(elements: Sequence[ComputedElement]) -> None:
    """
    Assign the positions of the elements in the dense system of one perturbation
    :param elements: computed elements
    """
    for i, elm in enumerate(elements):
        elm.local_index = i


def fill_rhs(nbus: int, elements: Sequence[ComputedElement]) -> Mat:
    """
    One column per element with +1 at the from bus and -1 at the to bus
    :param nbus: number of buses
    :param elements: computed elements with their global index set
    :return: nbus x n matrix
    """
    rhs = allocate_dense(nbus, len(elements))
    for elm in elements:
        rhs[elm.f, elm.global_index] += 1.0
        rhs[elm.t, elm.global_index] -= 1.0
    return rhs


def calculate_element_states(context: "DcLoadFlowContext", elements: Sequence[ComputedElement]) -> Mat:
    """
    Response of the network to a +1/-1 injection at the ends of every element,
    solved with the already factorized matrix
    :param context: DcLoadFlowContext
    :param elements: computed elements with their global index set
    :return: nbus x n matrix (slack row at zero)
    """
    if len(elements) == 0:
        return np.zeros((context.nc.nbus, 0))
    rhs = fill_rhs(context.nc.nbus, elements)
    return context.solve_full(rhs)


def create_contingency_elements(nc: NetworkData, branch_indices: Sequence[int]) -> List[ComputedContingencyElement]:
    """
    One computed element per distinct branch, in order of first appearance, with global indices set
    :param nc: NetworkData
    :param branch_indices: branch indices (possibly repeated)
    :return: list of ComputedContingencyElement
    """
    b = nc.get_dc_susceptance()
    seen = dict()
    for k in branch_indices:
        if int(k) not in seen:
            seen[int(k)] = ComputedContingencyElement(nc=nc, branch_idx=int(k), b=b[k])
    elements = list(seen.values())
    set_computed_element_indexes(elements)
    return elements
