from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from .schema import REGISTRY, SchemaRegistry


@dataclass(frozen=True)
class Record:
    """One row of funding data with values aligned to the registry's field order."""
    values: tuple[Any, ...]
    registry: SchemaRegistry = REGISTRY

    def __post_init__(self) -> None:
        if len(self.values) != len(self.registry):
            raise ValueError(
                f"Record has {len(self.values)} values, expected {len(self.registry)}"
            )

    @classmethod
    def from_row(cls, row: Sequence[Any], registry: SchemaRegistry = REGISTRY) -> Record:
        """Align a positional row: extra cells are dropped, missing ones become None."""
        width = len(registry)
        values = tuple(row[:width]) + (None,) * max(0, width - len(row))
        return cls(values=values, registry=registry)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any], registry: SchemaRegistry = REGISTRY) -> Record:
        unknown = [k for k in mapping if k not in registry]
        if unknown:
            raise KeyError(f"Unknown field(s): {', '.join(sorted(unknown))}")
        return cls(values=tuple(mapping.get(name) for name in registry.names()), registry=registry)

    def get(self, name: str) -> Any:
        return self.values[self.registry.get(name).ordinal]

    def __getitem__(self, name: str) -> Any:
        return self.get(name)

    def as_dict(self) -> dict[str, Any]:
        return dict(zip(self.registry.names(), self.values))

    def is_blank(self) -> bool:
        return all(v is None for v in self.values)
