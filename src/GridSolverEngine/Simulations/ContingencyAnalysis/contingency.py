# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
from __future__ import annotations

import uuid
from typing import List, Union
import numpy as np
from GridSolverEngine.basic_structures import IntVec, Logger
from GridSolverEngine.enumerations import ActionType
from GridSolverEngine.DataStructures.network_data import NetworkData
from GridSolverEngine.exceptions import NetworkError


class Contingency:
    """
    Set of branches to open simultaneously
    """

    def __init__(self, branch_ids: List[str], idtag: Union[str, None] = None, name: str = "Contingency"):
        """

        :param branch_ids: ids of the branches to open
        :param idtag: unique identifier
        :param name: name
        """
        self.idtag = uuid.uuid4().hex if idtag is None or idtag == '' else idtag
        self.name = name
        self.branch_ids = list(branch_ids)

    def __str__(self):
        return self.idtag

    def __repr__(self):
        return f"Contingency({self.idtag}: {', '.join(self.branch_ids)})"


class BranchAction:
    """
    Discrete change of a branch
    """

    action_type: ActionType = ActionType.SWITCH

    def __init__(self, branch_id: str, idtag: Union[str, None] = None):
        """

        :param branch_id: id of the modified branch
        :param idtag: unique identifier
        """
        self.idtag = uuid.uuid4().hex if idtag is None or idtag == '' else idtag
        self.branch_id = branch_id

    def __str__(self):
        return self.idtag


class SwitchAction(BranchAction):
    """
    Open or close a branch
    """

    action_type = ActionType.SWITCH

    def __init__(self, branch_id: str, open_branch: bool = True, idtag: Union[str, None] = None):
        """

        :param branch_id: id of the branch
        :param open_branch: open it (True) or close it (False)
        :param idtag: unique identifier
        """
        BranchAction.__init__(self, branch_id=branch_id, idtag=idtag)
        self.open_branch = open_branch


class TapPositionAction(BranchAction):
    """
    Move the tap changer of a transformer to a new position
    """

    action_type = ActionType.TAP_POSITION

    def __init__(self, branch_id: str, tap_position: int, idtag: Union[str, None] = None):
        """

        :param branch_id: id of the transformer
        :param tap_position: new tap position
        :param idtag: unique identifier
        """
        BranchAction.__init__(self, branch_id=branch_id, idtag=idtag)
        self.tap_position = tap_position


class OperatorStrategy:
    """
    Actions applied after a given contingency
    """

    def __init__(self, contingency_id: str, action_ids: List[str], idtag: Union[str, None] = None):
        """

        :param contingency_id: id of the contingency the strategy reacts to
        :param action_ids: ids of the actions to apply
        :param idtag: unique identifier
        """
        self.idtag = uuid.uuid4().hex if idtag is None or idtag == '' else idtag
        self.contingency_id = contingency_id
        self.action_ids = list(action_ids)

    def __str__(self):
        return self.idtag


class PropagatedContingency:
    """
    Contingency resolved against a network: only the branches that exist and are closed remain
    """

    def __init__(self, index: int, contingency: Contingency, branch_indices: IntVec):
        """

        :param index: position of the contingency in the analysed list
        :param contingency: Contingency
        :param branch_indices: indices of the branches to open
        """
        self.index = index
        self.contingency = contingency
        self.branch_indices = np.array(branch_indices, dtype=int)

    @property
    def idtag(self) -> str:
        """
        Contingency id
        """
        return self.contingency.idtag

    @property
    def has_no_impact(self) -> bool:
        """
        Is there nothing left to open?
        """
        return len(self.branch_indices) == 0

    @staticmethod
    def create_list(nc: NetworkData, contingencies: List[Contingency],
                    logger: Logger = Logger()) -> List["PropagatedContingency"]:
        """
        Resolve the contingencies against a network.
        Unknown branches and branches already open are dropped; a contingency left
        with no branch has no impact.
        :param nc: NetworkData
        :param contingencies: list of Contingency
        :param logger: Logger
        :return: list of PropagatedContingency, in the same order
        """
        res = list()
        ids = set()
        for i, cnt in enumerate(contingencies):
            if cnt.idtag in ids:
                raise NetworkError(f"Duplicated contingency id {cnt.idtag}")
            ids.add(cnt.idtag)

            idx, missing = nc.get_branch_indices(cnt.branch_ids)
            for br_id in missing:
                logger.add_warning("Contingency branch not found in the network",
                                   device=cnt.idtag, value=br_id, device_class="Contingency")

            keep = list()
            for k in idx:
                closed = nc.branch_active[k] and nc.bus_active[nc.F[k]] and nc.bus_active[nc.T[k]]
                if not closed:
                    logger.add_info("Contingency branch already disconnected",
                                    device=cnt.idtag, value=nc.branch_idtag[k], device_class="Contingency")
                elif k not in keep:
                    keep.append(int(k))

            pc = PropagatedContingency(index=i, contingency=cnt, branch_indices=np.array(keep, dtype=int))
            if pc.has_no_impact:
                logger.add_info("Contingency without impact", device=cnt.idtag, device_class="Contingency")
            res.append(pc)

        return res

    def __str__(self):
        return self.idtag

    def __repr__(self):
        return f"PropagatedContingency({self.idtag}: {list(self.branch_indices)})"
