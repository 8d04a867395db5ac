# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
import uuid
from typing import Union


class Device:
    """
    Parent class of every grid element
    """

    def __init__(self, name: str, idtag: Union[str, None] = None, active: bool = True):
        """

        :param name: Name of the device
        :param idtag: unique id of the device (if None or "" a new one is generated)
        :param active: is the device in service?
        """
        self.name = name

        if idtag is None or idtag == '':
            self.idtag = uuid.uuid4().hex
        else:
            self.idtag = str(idtag)

        self.active = active

    def __str__(self):
        return self.name

    def __repr__(self):
        return f"{self.__class__.__name__}({self.name})"
