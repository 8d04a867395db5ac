# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0

_current_year_ = 2026
__GridSolverEngine_VERSION__ = "1.0.0"

about_msg = "GridSolverEngine v" + str(__GridSolverEngine_VERSION__) + '\n\n'
about_msg += ("Newton-Raphson power flow and Woodbury-based incremental contingency analysis "
              "for steady-state grid simulation.\n\n")
about_msg += "This program comes with ABSOLUTELY NO WARRANTY. \n"
about_msg += "This is free software, and you are welcome to redistribute it under the conditions set by the license"
