"""Data structures for evaluated pattern trees."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence, Tuple, Union

PatternValue = Union[int, float, bool, str, None]


@dataclass(frozen=True)
class PatternNode:
    """A single placed pattern and the patterns nested inside it."""

    name: str
    type_name: str
    offset: int
    size: int
    value: PatternValue = None
    display: Optional[str] = None
    endian: str = "little"
    color: int = 0
    children: Tuple["PatternNode", ...] = field(default_factory=tuple)

    @property
    def end(self) -> int:
        return self.offset + self.size

    def formatted_value(self) -> str:
        if self.display is not None:
            return self.display
        if self.value is None:
            return ""
        if isinstance(self.value, bool):
            return "true" if self.value else "false"
        if isinstance(self.value, int):
            sign = "-" if self.value < 0 else ""
            return f"{self.value} ({sign}0x{abs(self.value):X})"
        if isinstance(self.value, str):
            return repr(self.value)
        return str(self.value)

    def describe(self) -> str:
        value = self.formatted_value()
        suffix = f" = {value}" if value else ""
        return (
            f"{self.type_name} {self.name} @ 0x{self.offset:X} "
            f"[{self.size} byte(s)]{suffix}"
        )

    def walk(self) -> Iterator["PatternNode"]:
        yield self
        for child in self.children:
            yield from child.walk()


@dataclass(frozen=True)
class PatternTree:
    """Complete result of one successful evaluation."""

    roots: Tuple[PatternNode, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.roots)

    def __iter__(self) -> Iterator[PatternNode]:
        return iter(self.roots)

    def walk(self) -> Iterator[PatternNode]:
        for root in self.roots:
            yield from root.walk()

    def node_count(self) -> int:
        return sum(1 for _ in self.walk())

    def find(self, path: str) -> Optional[PatternNode]:
        """Return the node addressed by a dotted ``path`` such as ``hdr.magic``."""

        nodes: Sequence[PatternNode] = self.roots
        found: Optional[PatternNode] = None
        for part in path.split("."):
            found = next((node for node in nodes if node.name == part), None)
            if found is None:
                return None
            nodes = found.children
        return found

    def shape(self) -> List[tuple]:
        """Structural fingerprint used to compare evaluations."""

        def _shape(node: PatternNode) -> tuple:
            return (
                node.name,
                node.type_name,
                node.offset,
                node.size,
                node.value,
                tuple(_shape(child) for child in node.children),
            )

        return [_shape(root) for root in self.roots]


# Default highlight colours, ABGR like the hex view expects.
DEFAULT_PALETTE: Tuple[int, ...] = (
    0x70B4771F,
    0x700E7FFF,
    0x702CA02C,
    0x702827D6,
    0x70BD6794,
    0x704B568C,
    0x70C277E3,
    0x707F7F7F,
    0x7022BDBC,
    0x70CFBE17,
)


class ColorPalette:
    """Hand out highlight colours in a fixed rotation."""

    def __init__(self, colors: Sequence[int] = DEFAULT_PALETTE) -> None:
        if not colors:
            raise ValueError("palette must contain at least one colour")
        self._colors = tuple(colors)
        self._index = 0

    def next_color(self) -> int:
        color = self._colors[self._index % len(self._colors)]
        self._index += 1
        return color
