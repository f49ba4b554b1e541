"""Base class for domain services.

A service is a bag of ports plus the operations that coordinate them. Declaring
the ports as annotations is enough: every subclass becomes a dataclass, so
dishka can build it from its type hints and tests can pass fakes by keyword.
"""

from dataclasses import dataclass
from typing import dataclass_transform


@dataclass_transform()
class _ServiceMeta(type):
    def __new__(mcs, name: str, bases: tuple, namespace: dict):
        cls = super().__new__(mcs, name, bases, namespace)
        is_subclass = any(isinstance(base, mcs) for base in bases)
        if is_subclass:
            return dataclass(cls)
        return cls


class Service(metaclass=_ServiceMeta):
    pass
