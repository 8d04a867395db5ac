# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
from GridSolverEngine.DataStructures.network_data import NetworkData
from GridSolverEngine.DataStructures.network_state import NetworkState
from GridSolverEngine.DataStructures.circuit_to_data import compile_network_data
