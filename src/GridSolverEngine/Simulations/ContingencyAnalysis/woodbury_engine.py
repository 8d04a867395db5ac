# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
"""
Post perturbation states from the pre perturbation ones without refactorizing.

For a DC system B theta = r, changing the branches j = 1..k from (b_j, phi_j) to (b'_j, phi'_j)
gives theta' = theta + sum_j alpha_j z_j, where z_j = B^-1 (e_f - e_t) is the element state of
branch j. The alphas solve the k x k system

    alpha_j / (b_j - b'_j) - sum_i s_ji alpha_i = (theta_f - theta_t)_j + c_j / (b'_j - b_j)

with s_ji = z_i[f_j] - z_i[t_j] and c_j = b'_j phi'_j - b_j phi_j. A row whose susceptance does
not change reduces to alpha_j = -c_j. For a removed branch (b' = 0) this is the classic
alpha = (theta_f - theta_t + phi) / (1 / b - s), which is the flow the branch would carry.
"""
from __future__ import annotations

from typing import Sequence, Union
import numpy as np
from GridSolverEngine.basic_structures import Mat, Vec, Logger
from GridSolverEngine.Simulations.ContingencyAnalysis.computed_elements import (ComputedElement,
                                                                                ComputedContingencyElement,
                                                                                ComputedActionElement,
                                                                                set_local_indexes)
from GridSolverEngine.Utils.NumericalMethods.dense_solve import dense_solve, check_dense_capacity
from GridSolverEngine.exceptions import LinearSolverError


def as_matrix(states: Union[Vec, Mat]) -> Mat:
    """
    View a single state vector as a one column matrix
    """
    if states.ndim == 1:
        return states.reshape(-1, 1)
    return states


class WoodburyEngine:
    """
    Applies the Woodbury identity over the element states of the contingency and action elements
    """

    def __init__(self,
                 contingency_states: Mat,
                 action_states: Union[Mat, None] = None,
                 logger: Union[Logger, None] = None):
        """

        :param contingency_states: nbus x nc matrix, column g is the state of the contingency element of global index g
        :param action_states: nbus x na matrix, column g is the state of the action element of global index g
        :param logger: Logger
        """
        self.contingency_states = contingency_states
        self.action_states = action_states if action_states is not None else np.zeros((contingency_states.shape[0], 0))
        self.logger = logger if logger is not None else Logger()

        self.dense_solve_count = 0

    def get_element_state(self, element: ComputedElement) -> Vec:
        """
        Element state column of an element
        :param element: ComputedContingencyElement or ComputedActionElement
        :return: nbus vector
        """
        if isinstance(element, ComputedActionElement):
            return self.action_states[:, element.global_index]
        return self.contingency_states[:, element.global_index]

    def get_self_sensi(self, element: ComputedElement, other: ComputedElement) -> float:
        """
        s: angle difference across element produced by the state of other
        """
        z = self.get_element_state(other)
        return z[element.f] - z[element.t]

    # ------------------------------------------------------------------------------------------------------------------
    # alphas
    # ------------------------------------------------------------------------------------------------------------------

    def compute_single_contingency_alphas(self, element: ComputedContingencyElement, states: Mat,
                                          with_phase_shift: bool = True) -> Vec:
        """
        Closed form alphas for a single removed branch: a * alpha = b with
        a = 1 / b_branch - s and b = theta_f - theta_t (+ phi)
        :param element: ComputedContingencyElement
        :param states: nbus x m pre perturbation states
        :param with_phase_shift: the states are flow states (include the phase shift term)
        :return: m alphas
        """
        a = 1.0 / element.b - self.get_self_sensi(element, element)
        rhs = element.get_angle_difference(states)
        if with_phase_shift:
            rhs = rhs + element.phi
        return rhs / a

    def compute_single_action_alphas(self, element: ComputedActionElement, states: Mat,
                                     with_phase_shift: bool = True) -> Vec:
        """
        Closed form alphas for a single modified branch
        :param element: ComputedActionElement
        :param states: nbus x m pre perturbation states
        :param with_phase_shift: the states are flow states (include the phase shift term)
        :return: m alphas
        """
        m = states.shape[1]
        delta_b = element.delta_b
        c = element.delta_bphi

        if delta_b == 0.0:
            # only the phase shift injection changes
            return np.full(m, -c if with_phase_shift else 0.0)

        a = 1.0 / (element.b - element.b_after) - self.get_self_sensi(element, element)
        rhs = element.get_angle_difference(states)
        if with_phase_shift:
            rhs = rhs + c / delta_b
        return rhs / a

    def build_perturbation_system(self, elements: Sequence[ComputedElement], states: Mat,
                                  with_phase_shift: bool = True):
        """
        Dense k x k matrix and k x m right hand side of a perturbation
        :param elements: the k modified elements (their local index is set here)
        :param states: nbus x m pre perturbation states
        :param with_phase_shift: the states are flow states (include the phase shift term)
        :return: matrix, rhs
        """
        k = len(elements)
        m = states.shape[1]
        check_dense_capacity(k, k)
        check_dense_capacity(k, m)

        set_local_indexes(elements)
        matrix = np.zeros((k, k))
        rhs = np.zeros((k, m))

        for elm in elements:
            j = elm.local_index
            delta_b = elm.delta_b

            if delta_b == 0.0:
                matrix[j, j] = 1.0
                rhs[j, :] = -elm.delta_bphi if with_phase_shift else 0.0
                continue

            rhs[j, :] = elm.get_angle_difference(states)
            if with_phase_shift:
                rhs[j, :] += elm.delta_bphi / delta_b

            for elm2 in elements:
                value = 1.0 / (elm.b - elm.b_after) if elm is elm2 else 0.0
                matrix[j, elm2.local_index] = value - self.get_self_sensi(elm, elm2)

        return matrix, rhs

    def compute_alphas(self, elements: Sequence[ComputedElement], states: Union[Vec, Mat],
                       with_phase_shift: bool = True, force_general: bool = False) -> Mat:
        """
        Alphas of every element for every state column.
        The single element cases use their closed form; the general case
        solves one dense system for all the state columns at once
        :param elements: modified elements
        :param states: nbus (x m) pre perturbation states
        :param with_phase_shift: the states are flow states (include the phase shift term)
        :param force_general: always use the dense system (even for one element)
        :return: k x m alphas
        """
        states = as_matrix(states)
        k = len(elements)
        m = states.shape[1]

        if k == 0:
            return np.zeros((0, m))

        if k == 1 and not force_general:
            elm = elements[0]
            set_local_indexes(elements)
            if isinstance(elm, ComputedActionElement):
                alphas = self.compute_single_action_alphas(elm, states, with_phase_shift).reshape(1, m)
            else:
                alphas = self.compute_single_contingency_alphas(elm, states, with_phase_shift).reshape(1, m)

            if not np.all(np.isfinite(alphas)):
                self.logger.add_error("Singular perturbation", device=elm.branch_id)
                raise LinearSolverError(f"Singular perturbation for element {elm.branch_id}")
        else:
            matrix, rhs = self.build_perturbation_system(elements, states, with_phase_shift)
            try:
                alphas = dense_solve(matrix, rhs)
            except LinearSolverError:
                self.logger.add_error("Singular perturbation",
                                      device=", ".join(elm.branch_id for elm in elements))
                raise
            self.dense_solve_count += 1

        for elm in elements:
            elm.alpha = float(alphas[elm.local_index, 0])

        return alphas

    # ------------------------------------------------------------------------------------------------------------------
    # post perturbation states
    # ------------------------------------------------------------------------------------------------------------------

    def compute_post_states(self, elements: Sequence[ComputedElement], states: Union[Vec, Mat],
                            alphas: Mat) -> Union[Vec, Mat]:
        """
        states + sum_j alpha_j z_j
        :param elements: modified elements (local indices set)
        :param states: nbus (x m) pre perturbation states
        :param alphas: k x m alphas
        :return: post perturbation states with the shape of states
        """
        is_vec = states.ndim == 1
        post = as_matrix(states).copy()
        for elm in elements:
            post += np.outer(self.get_element_state(elm), alphas[elm.local_index, :])
        return post[:, 0] if is_vec else post

    def run(self, elements: Sequence[ComputedElement], states: Union[Vec, Mat],
            with_phase_shift: bool = True) -> Union[Vec, Mat]:
        """
        Post perturbation states
        :param elements: modified elements
        :param states: nbus (x m) pre perturbation states
        :param with_phase_shift: the states are flow states (include the phase shift term)
        :return: post perturbation states with the shape of states
        """
        if len(elements) == 0:
            return states.copy()
        alphas = self.compute_alphas(elements, states, with_phase_shift=with_phase_shift)
        return self.compute_post_states(elements, states, alphas)
