"""Source maps: generated Lua lines → LoveScript source lines.

Written next to each compiled unit as ``<unit>.lua.map`` when the
``source_map`` option is on, so runtime errors reported against Lua line
numbers can be traced back to the .lvs source.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field


@dataclass
class SourceLocation:
    """A location in the LoveScript source."""
    line: int
    column: int = 0

    def to_dict(self) -> dict:
        return {"line": self.line, "column": self.column}


@dataclass
class Mapping:
    """Maps one generated Lua line (1-indexed) to its source location."""
    lua_line: int
    source: SourceLocation

    def to_dict(self) -> dict:
        return {"lua_line": self.lua_line, "source": self.source.to_dict()}


@dataclass
class SourceMap:
    """Complete source map for one compiled unit."""
    source_file: str = ""
    output_file: str = ""
    mappings: list[Mapping] = field(default_factory=list)

    def add_mapping(self, mapping: Mapping) -> None:
        self.mappings.append(mapping)

    def to_dict(self) -> dict:
        return {
            "version": 1,
            "source_file": self.source_file,
            "output_file": self.output_file,
            "mappings": [m.to_dict() for m in self.mappings],
        }

    def to_json(self, pretty: bool = False) -> str:
        indent = 2 if pretty else None
        return json.dumps(self.to_dict(), indent=indent)
