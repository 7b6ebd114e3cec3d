from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Union

logger = logging.getLogger(__name__)

SEPARATOR = "."


class InvalidKeyError(ValueError):
    pass


def split_key(key: str) -> list[str]:
    return key.split(SEPARATOR)


def join_key(segments: Iterable[str]) -> str:
    return SEPARATOR.join(segments)


@dataclass(frozen=True, order=True)
class PathKey:
    """
    Dot-separated resource key (e.g. `home.title`).

    Segments never contain the separator and are never empty. There is no
    escaping: a literal "." inside a segment cannot be expressed.
    """

    segments: tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.segments or any(not s for s in self.segments):
            raise InvalidKeyError(f"Invalid resource key: {join_key(self.segments)!r}")
        if any(SEPARATOR in s for s in self.segments):
            raise InvalidKeyError(f"Segment contains separator: {self.segments!r}")

    @classmethod
    def parse(cls, key: str) -> PathKey:
        return cls(tuple(split_key(key)))

    def __str__(self) -> str:
        return join_key(self.segments)

    def __len__(self) -> int:
        return len(self.segments)

    @property
    def first(self) -> str:
        return self.segments[0]

    @property
    def last(self) -> str:
        return self.segments[-1]

    @property
    def is_nested(self) -> bool:
        return len(self.segments) > 1

    def prefix(self, n: int) -> tuple[str, ...]:
        return self.segments[:n]

    def child(self, segment: str) -> PathKey:
        return PathKey(self.segments + (segment,))


@dataclass
class Leaf:
    text: str


@dataclass
class ObjectNode:
    children: dict[str, Node] = field(default_factory=dict)


Node = Union[Leaf, ObjectNode]


def resolve(root: ObjectNode, segments: Iterable[str]) -> Node | None:
    """Descend segment by segment; None when the path is missing or runs through a Leaf."""
    node: Node = root
    for seg in segments:
        if not isinstance(node, ObjectNode):
            return None
        nxt = node.children.get(seg)
        if nxt is None:
            return None
        node = nxt
    return node


def _chain(segments: tuple[str, ...], text: str) -> Node:
    node: Node = Leaf(text)
    for seg in reversed(segments):
        node = ObjectNode(children={seg: node})
    return node


class TreeBuilder:
    """
    Builds one locale's nested tree from dotted keys.

    Overlapping keys are resolved by insertion order:
    - a one-segment key, or a key whose parent path is an Object, always sets
      (or overwrites) its Leaf
    - otherwise the remaining segments are grafted below the deepest existing
      Object prefix (the root when there is none), but only if that child name
      is still free. A taken name means an existing Leaf would have to become
      an Object, so the key is dropped.
    """

    def __init__(self) -> None:
        self._root = ObjectNode()
        self.dropped: list[PathKey] = []

    def add(self, key: PathKey, text: str) -> bool:
        segments = key.segments
        if len(segments) == 1:
            self._root.children[key.first] = Leaf(text)
            return True

        parent = resolve(self._root, key.prefix(-1))
        if isinstance(parent, ObjectNode):
            parent.children[key.last] = Leaf(text)
            return True

        depth, collision = self._collision_point(key)
        name = segments[depth]
        if name in collision.children:
            logger.debug("Dropping %s: %s is already a leaf", key, join_key(segments[: depth + 1]))
            self.dropped.append(key)
            return False

        collision.children[name] = _chain(segments[depth + 1 :], text)
        return True

    def add_all(self, pairs: Iterable[tuple[PathKey, str]]) -> TreeBuilder:
        for key, text in pairs:
            self.add(key, text)
        return self

    def _collision_point(self, key: PathKey) -> tuple[int, ObjectNode]:
        # Longest proper prefix first.
        for n in range(len(key) - 1, 0, -1):
            node = resolve(self._root, key.prefix(n))
            if isinstance(node, ObjectNode):
                return n, node
        return 0, self._root

    def build(self) -> ObjectNode:
        return self._root


def unflatten(pairs: Iterable[tuple[PathKey, str]]) -> ObjectNode:
    return TreeBuilder().add_all(pairs).build()


def iter_leaves(node: Node, prefix: tuple[str, ...] = ()) -> Iterator[tuple[PathKey, str]]:
    if isinstance(node, Leaf):
        yield PathKey(prefix), node.text
        return
    for name, child in node.children.items():
        yield from iter_leaves(child, prefix + (name,))


def flatten(root: ObjectNode) -> list[tuple[PathKey, str]]:
    """Depth-first, children in insertion order."""
    return list(iter_leaves(root))


# ----------------------------
# JSON conversion
# ----------------------------


class ResourceFormatError(ValueError):
    pass


def _scalar_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def from_json(data) -> ObjectNode:
    """
    Convert a decoded JSON document into a tree.

    Only strings round-trip. Other scalars are stringified and arrays become
    a Leaf holding their compact JSON text rather than one leaf per element.
    Empty objects produce no leaves at all, not a "{}" leaf.
    """
    if not isinstance(data, dict):
        raise ResourceFormatError(f"Expected a JSON object, got {type(data).__name__}")
    return _object_from_json(data)


def _object_from_json(data: dict) -> ObjectNode:
    children: dict[str, Node] = {}
    for name, value in data.items():
        if isinstance(value, dict):
            children[name] = _object_from_json(value)
        elif isinstance(value, list):
            children[name] = Leaf(json.dumps(value, ensure_ascii=False, separators=(",", ":")))
        elif isinstance(value, str):
            children[name] = Leaf(value)
        else:
            children[name] = Leaf(_scalar_text(value))
    return ObjectNode(children=children)


def to_json(node: Node):
    if isinstance(node, Leaf):
        return node.text
    return {name: to_json(child) for name, child in node.children.items()}
