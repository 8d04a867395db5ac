# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0


class GridSolverError(Exception):
    """Base class for exceptions in this package."""
    pass


class LinearSolverError(GridSolverError):
    """Exception raised when a sparse factorization or solve fails (i.e. singular matrix)."""

    def __init__(self, message="The linear system could not be solved"):
        self.message = message
        super().__init__(self.message)


class PerturbationCapacityError(GridSolverError):
    """Exception raised when a perturbation matrix would not fit in a single dense array."""

    def __init__(self, rows: int, columns: int, max_columns: int,
                 message="Too many perturbations for a single right hand side"):
        self.rows = rows
        self.columns = columns
        self.max_columns = max_columns
        self.message = f"{message}: {columns} columns of {rows} rows requested, at most {max_columns} allowed"
        super().__init__(self.message)


class NetworkError(GridSolverError):
    """Exception raised when the network data is inconsistent (unknown ids, missing slack, ...)."""

    def __init__(self, message="Invalid network"):
        self.message = message
        super().__init__(self.message)


class InvalidOptionError(GridSolverError, ValueError):
    """Exception raised when an option value is out of its valid domain."""

    def __init__(self, name: str, value, message="Invalid option value"):
        self.name = name
        self.value = value
        self.message = f"{message}: {name}={value}"
        super().__init__(self.message)
