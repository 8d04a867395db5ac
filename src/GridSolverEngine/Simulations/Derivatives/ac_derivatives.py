# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
import numpy as np
from typing import Tuple
from scipy.sparse import diags, csc_matrix, vstack, hstack
from GridSolverEngine.basic_structures import CxVec, IntVec


def dSbus_dV(Ybus: csc_matrix, V: CxVec) -> Tuple[csc_matrix, csc_matrix]:
    """
    Derivatives of the power Injections w.r.t the voltage
    :param Ybus: Admittance matrix
    :param V: complex voltage arrays
    :return: dSbus_dVa, dSbus_dVm
    """
    diagV = diags(V)
    diagE = diags(V / np.abs(V))
    Ibus = Ybus @ V
    diagIbus = diags(Ibus)

    dSbus_dVa = 1j * diagV @ (diagIbus - Ybus @ diagV).conj()  # dSbus / dVa
    dSbus_dVm = diagV @ (Ybus @ diagE).conj() + diagIbus.conj() @ diagE  # dSbus / dVm

    return csc_matrix(dSbus_dVa), csc_matrix(dSbus_dVm)


def polar_jacobian(Ybus: csc_matrix, V: CxVec, pvpq: IntVec, pq: IntVec) -> csc_matrix:
    """
    Power flow Jacobian in polar coordinates
        | dP/dVa[pvpq, pvpq]  dP/dVm[pvpq, pq] |
        | dQ/dVa[pq, pvpq]    dQ/dVm[pq, pq]   |
    :param Ybus: Admittance matrix
    :param V: complex voltage arrays
    :param pvpq: array of pv and pq bus indices
    :param pq: array of pq bus indices
    :return: Jacobian
    """
    dS_dVa, dS_dVm = dSbus_dV(Ybus, V)

    J11 = dS_dVa[np.ix_(pvpq, pvpq)].real
    J12 = dS_dVm[np.ix_(pvpq, pq)].real
    J21 = dS_dVa[np.ix_(pq, pvpq)].imag
    J22 = dS_dVm[np.ix_(pq, pq)].imag

    return csc_matrix(vstack([hstack([J11, J12]), hstack([J21, J22])], format="csc"))
