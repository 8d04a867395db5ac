# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
from __future__ import annotations

import datetime
from typing import List, Any, Dict, Union, Tuple
import numpy as np
import numpy.typing as npt
import pandas as pd
from scipy.sparse import csc_matrix, csr_matrix
from GridSolverEngine.enumerations import LogSeverity

IntList = List[int]
Numeric = Union[int, float, bool, complex]
Vec = npt.NDArray[np.float64]
IntVec = npt.NDArray[np.int_]
BoolVec = npt.NDArray[np.bool_]
CxVec = npt.NDArray[np.complex128]
StrVec = npt.NDArray[np.str_]
ObjVec = npt.NDArray[np.object_]
Mat = npt.NDArray[np.float64]
CxMat = npt.NDArray[np.complex128]
IntMat = npt.NDArray[np.int_]
CscMat = csc_matrix
CsrMat = csr_matrix


class LogEntry:
    """
    Logger entry
    """

    def __init__(self,
                 time: Union[str, None] = None,
                 msg="",
                 severity: LogSeverity = LogSeverity.Information,
                 device="",
                 value="",
                 expected_value="",
                 device_class="",
                 device_property=""):
        if time is None:
            self.time = "{date:%H:%M:%S}".format(date=datetime.datetime.now())
        else:
            self.time = time
        self.msg = str(msg)
        self.severity = severity
        self.device = device
        self.device_class = device_class
        self.device_property = device_property
        self.value = value
        self.expected_value = str(expected_value)

    def to_list(self) -> List[Any]:
        """
        Get list representation of this entry
        :return:
        """
        return [self.time, self.severity.value, self.msg,
                self.device_class, self.device_property, self.device,
                self.value, self.expected_value]

    def to_list_reduced(self) -> List[Any]:
        """
        Get list representation of this entry without the severity and message
        :return:
        """
        return [self.time, self.device_class, self.device_property, self.device, self.value, self.expected_value]

    def __str__(self):
        return "{0} {1}: {2} {3} {4} {5}".format(self.time,
                                                 self.severity.value,
                                                 self.msg,
                                                 self.device,
                                                 self.value,
                                                 self.expected_value)


class Logger:
    """
    Logger class
    """

    def __init__(self) -> None:

        self.entries: List[LogEntry] = list()

        self.debug_entries: List[str] = list()

    def add_debug(self, *args):
        """
        Add debug entry
        :param args:
        :return:
        """
        self.debug_entries.append(" ".join([str(x) for x in args]))

    def append(self, txt: str):
        """
        simple text log
        :param txt: some message text
        """
        self.entries.append(LogEntry(msg=txt))

    def has_logs(self) -> bool:
        """
        Are there any logs?
        :return: True / False
        """
        return len(self.entries) > 0

    def add_info(self, msg: str, device="", value="", expected_value="", device_class='', device_property=''):
        """
        Add info entry
        :param msg: message
        :param device: device identifier
        :param value: value
        :param expected_value: expected value
        :param device_class: device class
        :param device_property: device property
        """
        self.add(msg=msg, severity=LogSeverity.Information, device=device, value=value,
                 expected_value=expected_value, device_class=device_class, device_property=device_property)

    def add_warning(self, msg: str, device="", value="", expected_value="", device_class='', device_property=''):
        """
        Add warning entry
        :param msg: message
        :param device: device identifier
        :param value: value
        :param expected_value: expected value
        :param device_class: device class
        :param device_property: device property
        """
        self.add(msg=msg, severity=LogSeverity.Warning, device=device, value=value,
                 expected_value=expected_value, device_class=device_class, device_property=device_property)

    def add_error(self, msg: str, device="", value="", expected_value="", device_class='', device_property=''):
        """
        Add error entry
        :param msg: message
        :param device: device identifier
        :param value: value
        :param expected_value: expected value
        :param device_class: device class
        :param device_property: device property
        """
        self.add(msg=msg, severity=LogSeverity.Error, device=device, value=value,
                 expected_value=expected_value, device_class=device_class, device_property=device_property)

    def add(self, msg: str, severity: LogSeverity = LogSeverity.Error, device="", value="", expected_value="",
            device_class='', device_property=''):
        """
        Add general entry
        :param msg: message
        :param severity: LogSeverity
        :param device: device identifier
        :param value: value
        :param expected_value: expected value
        :param device_class: device class
        :param device_property: device property
        """
        self.entries.append(LogEntry(msg=str(msg),
                                     severity=severity,
                                     device=str(device),
                                     value=str(value),
                                     expected_value=str(expected_value),
                                     device_class=str(device_class),
                                     device_property=str(device_property)))

    def count(self, severity: LogSeverity) -> int:
        """
        Number of entries of a given severity
        :param severity: LogSeverity
        :return: integer
        """
        return sum(1 for e in self.entries if e.severity == severity)

    def error_count(self) -> int:
        """
        Number of error entries
        """
        return self.count(LogSeverity.Error)

    def messages(self, severity: Union[LogSeverity, None] = None) -> List[str]:
        """
        Get the list of messages, optionally filtered by severity
        :param severity: LogSeverity or None for all
        :return: list of strings
        """
        return [e.msg for e in self.entries if severity is None or e.severity == severity]

    def to_dict(self) -> Dict[str, Dict[str, List[List[str]]]]:
        """
        Get the logs sorted by severity and message
        :return: Dictionary[Dictionary[List[time, device, value, expected value]]]
        """
        by_severity = dict()

        for e in self.entries:

            if e.severity.value not in by_severity.keys():
                by_severity[e.severity.value] = dict()

            by_msg = by_severity[e.severity.value]

            if e.msg in by_msg.keys():
                by_msg[e.msg].append(e.to_list_reduced())
            else:
                by_msg[e.msg] = [e.to_list_reduced()]

        return by_severity

    def to_df(self) -> pd.DataFrame:
        """
        Get DataFrame
        :return: DataFrame
        """
        data = [e.to_list() for e in self.entries]
        df = pd.DataFrame(data=data, columns=['Time', 'Severity', 'Message', 'Class',
                                              'Property', 'Device', 'Value', 'Expected value'])
        df.set_index('Time', inplace=True)
        return df

    def print(self, msg: str = ""):
        """
        Print the logs
        :param msg: header
        """
        if len(msg):
            print(msg)
        for e in self.entries:
            print(e)

    def __str__(self):
        val = ""
        for e in self.entries:
            val += str(e) + "\n"
        return val

    def __len__(self):
        return len(self.entries)

    def __add__(self, other: "Logger") -> "Logger":
        """
        Add two loggers
        :param other: other logger
        :return: Logger
        """
        if other is None:
            return self

        self.entries += other.entries
        self.debug_entries += other.debug_entries
        return self


def get_indices_by_key(keys: List[str], values: List[str]) -> Tuple[IntVec, List[str]]:
    """
    Get the positions of values in a list of keys
    :param keys: list of keys (i.e. element ids) in their natural order
    :param values: values to search
    :return: array of found positions, list of values not found
    """
    index = {k: i for i, k in enumerate(keys)}
    found = list()
    missing = list()
    for v in values:
        i = index.get(v, None)
        if i is None:
            missing.append(v)
        else:
            found.append(i)
    return np.array(found, dtype=int), missing
