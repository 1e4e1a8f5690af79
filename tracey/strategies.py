"""Named, described enumerations of critical path strategies and types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from tracey.paths import CriticalPathType, Strategy


@dataclass(frozen=True)
class TypeData:
    """Metadata for one member of a type enumeration."""

    type: int
    name: str
    description: str


class TypeEnumeration:
    """An ordered set of types with names and descriptions.

    The first type added is the default. Descriptions may have aliases, which
    resolve to the same type.
    """

    def __init__(self) -> None:
        self._ordered: list[TypeData] = []
        self._by_type: dict[int, TypeData] = {}
        self._by_name: dict[str, TypeData] = {}
        self._by_description: dict[str, TypeData] = {}

    def with_type(self, type_, name: str, description: str) -> "TypeEnumeration":
        """Adds a type with its name and description, returning self."""
        if type_ in self._by_type:
            raise ValueError(f"type {type_!r} is already enumerated")
        if name in self._by_name:
            raise ValueError(f"type name '{name}' is already in use")
        data = TypeData(type=type_, name=name, description=description)
        self._ordered.append(data)
        self._by_type[type_] = data
        self._by_name[name] = data
        self._by_description[description] = data
        return self

    def with_description_aliases(self, description: str, *args: str) -> "TypeEnumeration":
        """Makes each alias resolve to the type with the given description."""
        data = self._by_description.get(description)
        if data is None:
            raise ValueError(f"no type has the description '{description}'")
        for alias in args:
            self._by_description[alias] = data
        return self

    def default(self) -> TypeData:
        """Returns the first type added."""
        if not self._ordered:
            raise LookupError("type enumeration is empty")
        return self._ordered[0]

    def type_data(self, type_) -> TypeData:
        try:
            return self._by_type[type_]
        except KeyError:
            raise KeyError(f"unknown type {type_!r}") from None

    def by_name(self, name: str) -> TypeData:
        try:
            return self._by_name[name]
        except KeyError:
            raise KeyError(f"unknown type name '{name}'") from None

    def by_description(self, description: str) -> TypeData:
        try:
            return self._by_description[description]
        except KeyError:
            raise KeyError(f"unknown type description '{description}'") from None

    def __iter__(self) -> Iterator[TypeData]:
        return iter(self._ordered)

    def __len__(self) -> int:
        return len(self._ordered)


def new_strategies() -> TypeEnumeration:
    """Returns a new, empty enumeration of critical path strategies."""
    return TypeEnumeration()


def new_types() -> TypeEnumeration:
    """Returns a new, empty enumeration of critical path types."""
    return TypeEnumeration()


CUSTOM_CRITICAL_PATH_TYPE_DATA = TypeData(
    type=CriticalPathType.CUSTOM,
    name="custom",
    description="Custom",
)

COMMON_STRATEGIES = (
    new_strategies()
    .with_type(Strategy.PREFER_MOST_WORK, "most_work", "Maximize work")
    .with_description_aliases("Maximize work", "Maximize work (can be slow!)")
    .with_type(
        Strategy.PREFER_TEMPORAL_MOST_WORK,
        "temporal_most_work",
        "Temporal Max work (non causal)",
    )
    .with_type(
        Strategy.PREFER_MOST_PROXIMATE,
        "most_prox",
        "Traverse latest-resolving dependencies",
    )
    .with_type(
        Strategy.PREFER_PREDECESSOR,
        "predecessor",
        "Prefer traversing sequential dependencies",
    )
    .with_type(Strategy.PREFER_LEAST_WORK, "least_work", "Maximize dependency delay")
    .with_description_aliases(
        "Maximize dependency delay", "Maximize dependency delay (can be slow!)"
    )
    .with_type(
        Strategy.PREFER_LEAST_PROXIMATE,
        "least_prox",
        "Traverse earliest-resolving dependencies",
    )
    .with_type(Strategy.PREFER_CAUSAL, "causal", "Prefer traversing causal dependencies")
)