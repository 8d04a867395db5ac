# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
from __future__ import annotations

from typing import List, Tuple, Dict, TYPE_CHECKING
import numpy as np
from GridSolverEngine.basic_structures import Vec, IntVec, CscMat
from GridSolverEngine.enumerations import VariableType, EquationType
from GridSolverEngine.DataStructures.network_data import NetworkData
from GridSolverEngine.exceptions import NetworkError

if TYPE_CHECKING:
    from GridSolverEngine.Simulations.Equations.voltage_initializer import VoltageInitializer


class EquationSystem:
    """
    Square nonlinear system f(x) = target built over a NetworkData.

    Variables are (element index, VariableType) pairs, each one owning a row of the
    state vector; equations are (element index, EquationType) pairs, each one owning a
    position of the mismatch vector. Both orderings are fixed at construction.
    """

    def __init__(self, nc: NetworkData):
        """

        :param nc: NetworkData
        """
        self.nc = nc

        self.variables: List[Tuple[int, VariableType]] = list()

        self.equations: List[Tuple[int, EquationType]] = list()

        self._variable_index: Dict[Tuple[int, VariableType], int] = dict()

        self._equation_index: Dict[Tuple[int, EquationType], int] = dict()

        self.x: Vec = np.zeros(0)

    def _add_variable(self, element: int, tpe: VariableType) -> int:
        idx = len(self.variables)
        self.variables.append((element, tpe))
        self._variable_index[(element, tpe)] = idx
        return idx

    def _add_equation(self, element: int, tpe: EquationType) -> int:
        idx = len(self.equations)
        self.equations.append((element, tpe))
        self._equation_index[(element, tpe)] = idx
        return idx

    @property
    def n_var(self) -> int:
        """
        Number of state variables
        """
        return len(self.variables)

    @property
    def n_eq(self) -> int:
        """
        Number of equations
        """
        return len(self.equations)

    def get_variable_index(self, element: int, tpe: VariableType) -> int:
        """
        Row of a variable in the state vector
        :param element: element (bus) index
        :param tpe: VariableType
        :return: row
        """
        try:
            return self._variable_index[(element, tpe)]
        except KeyError:
            raise NetworkError(f"There is no {tpe} variable for element {element}")

    def get_equation_index(self, element: int, tpe: EquationType) -> int:
        """
        Position of an equation in the mismatch vector
        :param element: element (bus) index
        :param tpe: EquationType
        :return: position
        """
        try:
            return self._equation_index[(element, tpe)]
        except KeyError:
            raise NetworkError(f"There is no {tpe} equation for element {element}")

    def has_equation(self, element: int, tpe: EquationType) -> bool:
        """
        Is there such equation?
        """
        return (element, tpe) in self._equation_index

    def get_variable_positions(self, tpe: VariableType) -> IntVec:
        """
        Rows of all the variables of a type
        :param tpe: VariableType
        :return: array of rows
        """
        return np.array([i for i, (_, t) in enumerate(self.variables) if t == tpe], dtype=int)

    def get_equation_element_name(self, position: int) -> str:
        """
        Identifier of the element an equation belongs to
        :param position: equation position
        :return: element id
        """
        element, _ = self.equations[position]
        return str(self.nc.bus_idtag[element])

    # ------------------------------------------------------------------------------------------------------------------
    # state vector
    # ------------------------------------------------------------------------------------------------------------------

    def create_state_vector(self, initializer: "VoltageInitializer") -> Vec:
        """
        Build the initial state vector from an initializer and store it
        :param initializer: VoltageInitializer
        :return: state vector
        """
        raise NotImplementedError()

    def set_state_vector(self, x: Vec) -> None:
        """
        Store a state vector (the equations are evaluated at it from now on)
        :param x: state vector
        """
        if len(x) != self.n_var:
            raise ValueError(f"State vector of size {len(x)} for {self.n_var} variables")
        self.x = np.array(x, dtype=float)

    def get_state_vector(self) -> Vec:
        """
        Copy of the current state vector
        """
        return self.x.copy()

    # ------------------------------------------------------------------------------------------------------------------
    # evaluation
    # ------------------------------------------------------------------------------------------------------------------

    def evaluate_equations(self) -> Vec:
        """
        Value of every equation at the current state vector: f(x)
        """
        raise NotImplementedError()

    def get_target_vector(self) -> Vec:
        """
        Target of every equation
        """
        raise NotImplementedError()

    def get_mismatch(self) -> Vec:
        """
        f(x) - target at the current state vector
        """
        return self.evaluate_equations() - self.get_target_vector()

    def get_jacobian(self) -> CscMat:
        """
        Jacobian of f at the current state vector (n_eq x n_var, rows follow the equation order)
        """
        raise NotImplementedError()

    def get_slack_p_mismatch(self) -> float:
        """
        Computed minus scheduled active power of the slack bus (p.u.) at the current state vector
        """
        raise NotImplementedError()

    def update_network(self) -> None:
        """
        Write the current state vector into the network stored values
        """
        raise NotImplementedError()
