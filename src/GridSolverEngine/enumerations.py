# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0

from enum import Enum


class LogSeverity(Enum):
    """
    Enumeration of logs severities
    """
    Error = 'Error'
    Warning = 'Warning'
    Information = 'Information'
    Divergence = 'Divergence'

    def __str__(self):
        return self.value

    def __repr__(self):
        return str(self)

    @staticmethod
    def argparse(s):
        """

        :param s:
        :return:
        """
        try:
            return LogSeverity[s]
        except KeyError:
            return s


class NewtonRaphsonStatus(Enum):
    """
    Final status of a Newton-Raphson run
    """
    NO_CALCULATION = 'No calculation'
    CONVERGED = 'Converged'
    MAX_ITERATION_REACHED = 'Max iteration reached'
    SOLVER_FAILED = 'Solver failed'
    UNREALISTIC_STATE = 'Unrealistic state'

    def __str__(self):
        return self.value

    def __repr__(self):
        return str(self)

    @staticmethod
    def argparse(s):
        """

        :param s:
        :return:
        """
        try:
            return NewtonRaphsonStatus[s]
        except KeyError:
            return s


class StateVectorScalingMode(Enum):
    """
    Strategies to rescale the Newton step before it is applied
    """
    NONE = 'None'
    LINE_SEARCH = 'Line search'
    MAX_VOLTAGE_CHANGE = 'Max voltage change'

    def __str__(self):
        return self.value

    def __repr__(self):
        return str(self)

    @staticmethod
    def argparse(s):
        """

        :param s:
        :return:
        """
        try:
            return StateVectorScalingMode[s]
        except KeyError:
            return s


class VariableType(Enum):
    """
    Kind of state variable of an equation system
    """
    BUS_V = 'Bus voltage module'
    BUS_PHI = 'Bus voltage angle'

    def __str__(self):
        return self.value

    def __repr__(self):
        return str(self)


class EquationType(Enum):
    """
    Kind of mismatch equation of an equation system
    """
    BUS_TARGET_P = 'Bus active power target'
    BUS_TARGET_Q = 'Bus reactive power target'
    BUS_TARGET_V = 'Bus voltage target'
    BUS_TARGET_PHI = 'Bus angle target'

    def __str__(self):
        return self.value

    def __repr__(self):
        return str(self)


class VoltageInitMode(Enum):
    """
    How the voltage state is initialized before a Newton-Raphson run
    """
    UNIFORM_VALUES = 'Uniform values'
    PREVIOUS_VALUES = 'Previous values'
    DC_VALUES = 'DC values'

    def __str__(self):
        return self.value

    def __repr__(self):
        return str(self)

    @staticmethod
    def argparse(s):
        """

        :param s:
        :return:
        """
        try:
            return VoltageInitMode[s]
        except KeyError:
            return s


class BalanceType(Enum):
    """
    How the active power imbalance is shared among the participating elements
    """
    PROPORTIONAL_TO_GENERATION_P_MAX = 'Proportional to generation Pmax'
    PROPORTIONAL_TO_GENERATION_P = 'Proportional to generation P'
    PROPORTIONAL_TO_LOAD = 'Proportional to load'

    def __str__(self):
        return self.value

    def __repr__(self):
        return str(self)

    @staticmethod
    def argparse(s):
        """

        :param s:
        :return:
        """
        try:
            return BalanceType[s]
        except KeyError:
            return s


class ContingencyStatus(Enum):
    """
    Outcome of the post-contingency computation
    """
    SUCCESS = 'Success'
    NO_IMPACT = 'No impact'
    FAILED = 'Failed'

    def __str__(self):
        return self.value

    def __repr__(self):
        return str(self)


class ActionType(Enum):
    """
    Kind of remedial action
    """
    SWITCH = 'Switch'
    TAP_POSITION = 'Tap position'

    def __str__(self):
        return self.value

    def __repr__(self):
        return str(self)


class BusMode(Enum):
    """
    Bus modes
    """
    PQ_tpe = 1  # control P, Q
    PV_tpe = 2  # Control P, Vm
    Slack_tpe = 3  # Control Vm, Va (slack)

    def __str__(self):
        return str(self.value)

    def __repr__(self):
        return str(self)
