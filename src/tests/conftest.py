# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
from pathlib import Path

import numpy as np
import pytest
from GridSolverEngine.api import *

ROOT_PATH = Path(__file__).parent


@pytest.fixture
def root_path():
    return ROOT_PATH


def build_two_bus_parallel_lines() -> Grid:
    """
    Slack generator at B0 feeding a 100 MW load at B1 through two identical lines
    """
    grid = Grid(name="two buses")
    b0 = grid.add_bus(name="B0", idtag="B0", is_slack=True)
    b1 = grid.add_bus(name="B1", idtag="B1")
    grid.add_line(b0, b1, name="L1", idtag="L1", X=0.1, rate=80)
    grid.add_line(b0, b1, name="L2", idtag="L2", X=0.1, rate=80)
    grid.add_generator(b0, name="G0", idtag="G0", P=100.0, Pmax=200.0)
    grid.add_load(b1, name="D1", idtag="D1", P=100.0)
    return grid


def build_three_bus_ac() -> Grid:
    """
    Slack, PV and PQ bus meshed with three lines
    """
    grid = Grid(name="three buses")
    b0 = grid.add_bus(name="B0", idtag="B0", is_slack=True)
    b1 = grid.add_bus(name="B1", idtag="B1")
    b2 = grid.add_bus(name="B2", idtag="B2")
    grid.add_line(b0, b1, name="L01", idtag="L01", R=0.01, X=0.1, B=0.02)
    grid.add_line(b1, b2, name="L12", idtag="L12", R=0.01, X=0.1, B=0.02)
    grid.add_line(b0, b2, name="L02", idtag="L02", R=0.02, X=0.2, B=0.02)
    grid.add_generator(b0, name="G0", idtag="G0", P=0.0, Vset=1.02)
    grid.add_generator(b1, name="G1", idtag="G1", P=40.0, Vset=1.01)
    grid.add_load(b2, name="D2", idtag="D2", P=90.0, Q=30.0)
    return grid


def build_four_bus_ring() -> Grid:
    """
    Ring B0-B1-B2-B3-B0 with a generator at B0 and loads at B1 and B2
    """
    grid = Grid(name="ring")
    buses = [grid.add_bus(name=f"B{i}", idtag=f"B{i}", is_slack=(i == 0)) for i in range(4)]
    for i in range(4):
        j = (i + 1) % 4
        grid.add_line(buses[i], buses[j], name=f"L{i}{j}", idtag=f"L{i}{j}", X=0.1 + 0.05 * i)
    grid.add_generator(buses[0], name="G0", idtag="G0", P=150.0, Pmax=300.0)
    grid.add_load(buses[1], name="D1", idtag="D1", P=60.0)
    grid.add_load(buses[2], name="D2", idtag="D2", P=90.0)
    return grid


def build_five_bus_dc() -> Grid:
    """
    Meshed core B0-B1-B2-B3 with a phase shifting transformer between B1 and B3
    (three tap positions) and an antenna B4 hanging from B2 with its own generator
    """
    grid = Grid(name="five buses")
    b0 = grid.add_bus(name="B0", idtag="B0", is_slack=True)
    b1 = grid.add_bus(name="B1", idtag="B1")
    b2 = grid.add_bus(name="B2", idtag="B2")
    b3 = grid.add_bus(name="B3", idtag="B3")
    b4 = grid.add_bus(name="B4", idtag="B4")

    grid.add_line(b0, b1, name="L01", idtag="L01", X=0.1, rate=100)
    grid.add_line(b0, b2, name="L02", idtag="L02", X=0.15, rate=100)
    grid.add_line(b1, b2, name="L12", idtag="L12", X=0.2, rate=100)
    grid.add_line(b2, b3, name="L23", idtag="L23", X=0.1, rate=100)
    grid.add_line(b0, b3, name="L03", idtag="L03", X=0.25, rate=100)
    grid.add_transformer2w(b1, b3, name="PST13", idtag="PST13", X=0.05, rate=100,
                           tap_changer=TapChanger(m=[1.0, 1.0, 1.0],
                                                  tau=[-0.05, 0.0, 0.05],
                                                  x_factor=[1.1, 1.0, 1.1],
                                                  tap_position=2))
    grid.add_line(b2, b4, name="L24", idtag="L24", X=0.1, rate=100)

    grid.add_generator(b0, name="G0", idtag="G0", P=200.0, Pmax=400.0)
    grid.add_generator(b4, name="G4", idtag="G4", P=50.0, Pmax=100.0)
    grid.add_load(b1, name="D1", idtag="D1", P=80.0)
    grid.add_load(b2, name="D2", idtag="D2", P=70.0)
    grid.add_load(b3, name="D3", idtag="D3", P=100.0)
    return grid


def solve_dc_reference(nc: NetworkData, distributed_slack: bool = True,
                       balance_type: BalanceType = BalanceType.PROPORTIONAL_TO_GENERATION_P_MAX):
    """
    Angles and flows of a network solved from scratch with its own factorization
    """
    with DcLoadFlowContext(nc, distributed_slack=distributed_slack, balance_type=balance_type) as context:
        theta = context.run()
        flows = context.compute_flows(theta)
    return theta, flows


@pytest.fixture
def two_bus_grid() -> Grid:
    return build_two_bus_parallel_lines()


@pytest.fixture
def three_bus_grid() -> Grid:
    return build_three_bus_ac()


@pytest.fixture
def ring_grid() -> Grid:
    return build_four_bus_ring()


@pytest.fixture
def five_bus_grid() -> Grid:
    return build_five_bus_dc()


@pytest.fixture
def five_bus_nc() -> NetworkData:
    return compile_network_data(build_five_bus_dc())
