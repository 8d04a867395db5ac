# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
from __future__ import annotations

from enum import Enum
from typing import Dict, List, Any, Union, Type
from GridSolverEngine.exceptions import InvalidOptionError

OPTION_TYPES = Union[Type[int], Type[bool], Type[float], Type[str], Type[Enum]]


class OptionProp:
    """
    Registered option property
    """

    def __init__(self, prop_name: str, tpe: OPTION_TYPES, units: str = '', definition: str = ''):
        """

        :param prop_name: name of the attribute
        :param tpe: data type
        :param units: units of the property
        :param definition: Definition of the property
        """
        self.name = prop_name

        self.tpe = tpe

        self.units = units

        self.definition = definition

    def __str__(self):
        return self.name

    def __repr__(self):
        return self.name


class OptionsTemplate:
    """
    Options template
    """

    def __init__(self, name: str):
        """

        :param name: name of the options set
        """
        self.name = name

        self.registered_properties: Dict[str, OptionProp] = dict()

        self.property_list: List[OptionProp] = list()

    def register(self, key: str, tpe: OPTION_TYPES, units: str = '', definition: str = ''):
        """
        Register property
        The property must exist
        :param key: attribute name
        :param tpe: type of the attribute
        :param units: string with the declared units
        :param definition: Definition of the property
        """
        assert (hasattr(self, key))  # the property must exist, this avoids bugs when registering

        if key in self.registered_properties.keys():
            raise Exception(f"Property {key} already registered!")

        prop = OptionProp(prop_name=key, tpe=tpe, units=units, definition=definition)
        self.registered_properties[key] = prop
        self.property_list.append(prop)

    def check_types(self):
        """
        Verify that every registered property holds a value of its declared type
        :raises InvalidOptionError: on type mismatch
        """
        for key, prop in self.registered_properties.items():
            val = getattr(self, key)
            if prop.tpe is float:
                ok = isinstance(val, (int, float)) and not isinstance(val, bool)
            elif prop.tpe is int:
                ok = isinstance(val, int) and not isinstance(val, bool)
            else:
                ok = isinstance(val, prop.tpe)

            if not ok:
                raise InvalidOptionError(name=key, value=val,
                                         message=f"Expected {getattr(prop.tpe, '__name__', prop.tpe)}")

    def validate(self):
        """
        Validate the options. Subclasses add their range checks after calling this
        :raises InvalidOptionError: on invalid values
        """
        self.check_types()

    def get_value(self, key: str) -> Any:
        """
        Get a registered value
        :param key: property name
        :return: value
        """
        if key not in self.registered_properties:
            raise InvalidOptionError(name=key, value=None, message="Unknown option")
        return getattr(self, key)

    def set_value(self, key: str, value: Any):
        """
        Set a registered value, with type check
        :param key: property name
        :param value: new value
        """
        prop = self.registered_properties.get(key, None)
        if prop is None:
            raise InvalidOptionError(name=key, value=value, message="Unknown option")

        if issubclass(prop.tpe, Enum) and not isinstance(value, prop.tpe):
            # accept the member name as well
            try:
                value = prop.tpe[value]
            except KeyError:
                raise InvalidOptionError(name=key, value=value, message="Unknown enumeration value")

        setattr(self, key, value)
        self.validate()

    def to_dict(self) -> Dict[str, Any]:
        """
        Get a dictionary representation of the registered options
        :return: Dict[str, Any]
        """
        data = dict()
        for key, prop in self.registered_properties.items():
            val = getattr(self, key)
            data[key] = val.name if isinstance(val, Enum) else val
        return data

    def __str__(self):
        return self.name
