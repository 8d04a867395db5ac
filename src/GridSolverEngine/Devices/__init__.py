# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
from GridSolverEngine.Devices.device import Device
from GridSolverEngine.Devices.bus import Bus
from GridSolverEngine.Devices.branch import Branch, Line, Transformer2W, TapChanger
from GridSolverEngine.Devices.injections import Generator, Load
from GridSolverEngine.Devices.grid import Grid
