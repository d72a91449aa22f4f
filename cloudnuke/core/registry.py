"""
Resource Registry
=================

An explicit, ordered list of resource types, built once at startup and
passed into the run.

Order is significant: it is the processing order of a nuke and encodes
deletion dependencies, e.g. ECS services before ECS clusters and every VPC
child resource type before ``vpc``. The order is curated by hand and never
computed.

Example
-------
>>> registry = Registry([ECSServices, ECSClusters, VPCs])
>>> registry.select(include=["ecsserv"])
[<class 'ECSServices'>]
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, List, Optional, Sequence, Type

from cloudnuke.core.exceptions import ConfigError
from cloudnuke.core.resource import ResourceType

# Module logger
logger = logging.getLogger(__name__)

ALL_RESOURCE_TYPES = "all"


class Registry:
    """
    Ordered, immutable collection of resource type classes.

    Parameters
    ----------
    resource_types : sequence of type
        :class:`ResourceType` subclasses in processing order.

    Raises
    ------
    ValueError
        On an unnamed type or a duplicate name.
    """

    def __init__(self, resource_types: Sequence[Type[ResourceType]]) -> None:
        seen = set()
        for resource_type in resource_types:
            if not resource_type.name:
                raise ValueError(f"{resource_type.__name__} has no name")
            if resource_type.name in seen:
                raise ValueError(f"Duplicate resource type: {resource_type.name}")
            seen.add(resource_type.name)
        self._types = tuple(resource_types)

    def __iter__(self) -> Iterator[Type[ResourceType]]:
        return iter(self._types)

    def __len__(self) -> int:
        return len(self._types)

    def __contains__(self, name: object) -> bool:
        return name in self.names

    @property
    def names(self) -> List[str]:
        return [t.name for t in self._types]

    def get(self, name: str) -> Type[ResourceType]:
        for resource_type in self._types:
            if resource_type.name == name:
                return resource_type
        raise KeyError(name)

    def regional(self) -> List[Type[ResourceType]]:
        return [t for t in self._types if not t.is_global]

    def global_types(self) -> List[Type[ResourceType]]:
        return [t for t in self._types if t.is_global]

    def select(
        self,
        include: Optional[Iterable[str]] = None,
        exclude: Optional[Iterable[str]] = None,
    ) -> "Registry":
        """
        Narrow the registry to the requested types, keeping registry order.

        Parameters
        ----------
        include : iterable of str, optional
            Type names to keep. Empty, None or containing ``"all"`` keeps
            every type.
        exclude : iterable of str, optional
            Type names to drop. Applied after ``include``.

        Returns
        -------
        Registry

        Raises
        ------
        ConfigError
            If a name is unknown, or both lists are used together.
        """
        include = [n for n in (include or []) if n]
        exclude = [n for n in (exclude or []) if n]

        if include and exclude and ALL_RESOURCE_TYPES not in include:
            raise ConfigError(
                "Specify either resource types to include or to exclude, not both"
            )

        unknown = [
            n for n in include + exclude
            if n != ALL_RESOURCE_TYPES and n not in self.names
        ]
        if unknown:
            raise ConfigError(
                f"Unknown resource type(s): {', '.join(unknown)}",
                details={"valid": self.names},
            )

        keep_all = not include or ALL_RESOURCE_TYPES in include
        selected = [
            t for t in self._types
            if (keep_all or t.name in include) and t.name not in exclude
        ]
        logger.debug(f"Selected resource types: {', '.join(t.name for t in selected)}")
        return Registry(selected)

    def __repr__(self) -> str:
        return f"Registry({self.names})"
