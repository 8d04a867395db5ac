# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
from GridSolverEngine.Devices.grid import Grid
from GridSolverEngine.Devices.branch import Transformer2W
from GridSolverEngine.DataStructures.network_data import NetworkData
from GridSolverEngine.basic_structures import Logger
from GridSolverEngine.exceptions import NetworkError


def compile_network_data(grid: Grid, logger: Logger = Logger()) -> NetworkData:
    """
    Compile a Grid into its array representation
    :param grid: Grid
    :param logger: Logger
    :return: NetworkData
    """
    nc = NetworkData(nbus=len(grid.buses),
                     nbr=len(grid.branches),
                     ngen=len(grid.generators),
                     nload=len(grid.loads),
                     Sbase=grid.Sbase)

    bus_dict = dict()
    for i, bus in enumerate(grid.buses):
        bus_dict[bus] = i
        nc.bus_idtag[i] = bus.idtag
        nc.bus_names[i] = bus.name
        nc.bus_active[i] = bus.active
        nc.Vnom[i] = bus.Vnom
        nc.Vm0[i] = bus.Vm0
        nc.Va0[i] = bus.Va0
        nc.is_slack[i] = bus.is_slack

    for k, br in enumerate(grid.branches):
        nc.branch_idtag[k] = br.idtag
        nc.branch_names[k] = br.name
        nc.F[k] = bus_dict[br.bus_from]
        nc.T[k] = bus_dict[br.bus_to]
        nc.R[k] = br.R
        nc.X[k] = br.X
        nc.B[k] = br.B
        nc.rates[k] = br.rate
        nc.branch_active[k] = br.active

        if br.X == 0.0:
            raise NetworkError(f"Branch {br.idtag} has zero reactance")

        if isinstance(br, Transformer2W):
            if br.tap_changer is not None:
                tc = br.tap_changer
                nc.tap_m_tables[k] = tc.m_array.copy()
                nc.tap_tau_tables[k] = tc.tau_array.copy()
                nc.tap_x_tables[k] = tc.x_factor_array.copy()
                nc.set_tap_position(k, tc.tap_position)
            else:
                nc.tap_module[k] = br.tap_module
                nc.tap_phase[k] = br.tap_phase

    for g, gen in enumerate(grid.generators):
        nc.gen_idtag[g] = gen.idtag
        nc.gen_names[g] = gen.name
        nc.gen_bus[g] = bus_dict[gen.bus]
        nc.gen_p[g] = gen.P
        nc.gen_q[g] = gen.Q
        nc.gen_pmax[g] = gen.Pmax
        nc.gen_pmin[g] = gen.Pmin
        nc.gen_vset[g] = gen.Vset
        nc.gen_active[g] = gen.active
        nc.gen_controlled[g] = gen.is_controlled
        nc.gen_participates[g] = gen.participates

    for l, load in enumerate(grid.loads):
        nc.load_idtag[l] = load.idtag
        nc.load_names[l] = load.name
        nc.load_bus[l] = bus_dict[load.bus]
        nc.load_p[l] = load.P
        nc.load_q[l] = load.Q
        nc.load_active[l] = load.active

    nc.update_bus_types()

    if nc.is_slack.sum() > 1:
        logger.add_warning("More than one bus flagged as slack, only the first one is used",
                           device=grid.name, value=int(nc.is_slack.sum()))

    return nc
