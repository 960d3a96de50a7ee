"""System topology: NUMA nodes with their caches, distances and memory."""

from __future__ import annotations

import enum
import os
from dataclasses import dataclass, field
from typing import Any

from hwscan.linuxpath import _join, paths_from_options
from hwscan.marshal import safe_json, safe_yaml
from hwscan.memory import Area, area_for_node
from hwscan.memory_cache import Cache, caches_for_node
from hwscan.option import Option, merge


class Architecture(enum.IntEnum):
    """Overall hardware architecture: SMP or NUMA."""

    SMP = 0
    NUMA = 1

    def __str__(self) -> str:
        return self.name

    def to_json(self) -> str:
        """Serialised (lower-case) name of the architecture."""
        return self.name.lower()


def architecture_from_json(value: str) -> Architecture:
    """Parse a serialised architecture name, in any case."""
    if not isinstance(value, str):
        raise TypeError(f"architecture must be a string, not {type(value).__name__}")
    key = value.lower()
    for member in Architecture:
        if member.to_json() == key:
            return member
    raise ValueError(f"unknown architecture: {key!r}")


def _serialise(item: Any) -> Any:
    to_dict = getattr(item, "to_dict", None)
    return to_dict() if callable(to_dict) else item


@dataclass
class Node:
    """A collection of processors and the memory caches they share."""

    id: int
    cores: list[Any] = field(default_factory=list)
    caches: list[Cache] = field(default_factory=list)
    distances: list[int] = field(default_factory=list)
    memory: Area | None = None

    def __str__(self) -> str:
        return f"node #{self.id} ({len(self.cores)} cores)"

    def to_dict(self) -> dict:
        """Serialisable form of the node."""
        return {
            "id": self.id,
            "cores": [_serialise(core) for core in self.cores],
            "caches": [cache.to_dict() for cache in self.caches],
            "distances": list(self.distances),
            "memory": None if self.memory is None else self.memory.to_dict(),
        }


@dataclass
class TopologyInfo:
    """The system topology of the host hardware."""

    architecture: Architecture = Architecture.SMP
    nodes: list[Node] = field(default_factory=list)
    opts: Option | None = field(default=None, repr=False, compare=False)

    def __str__(self) -> str:
        arch = "NUMA" if self.architecture == Architecture.NUMA else "SMP"
        return f"topology {arch} ({len(self.nodes)} nodes)"

    def _warn_fn(self):
        return self.opts.warn if self.opts is not None else None

    def to_dict(self) -> dict:
        """Serialisable form of the topology."""
        return {
            "architecture": self.architecture.to_json(),
            "nodes": [node.to_dict() for node in self.nodes],
        }

    def yaml_string(self) -> str:
        """The topology as YAML under a top-level "topology" key."""
        return safe_yaml({"topology": self.to_dict()}, self._warn_fn())

    def json_string(self, indent: bool = False) -> str:
        """The topology as JSON under a top-level "topology" key."""
        return safe_json({"topology": self.to_dict()}, indent, self._warn_fn())

    def _load(self) -> None:
        opts = self.opts if self.opts is not None else merge()
        self.nodes = _topology_nodes(opts)
        self.architecture = Architecture.SMP if len(self.nodes) == 1 else Architecture.NUMA


def new(*args: Option) -> TopologyInfo:
    """Describe the NUMA topology of the host system."""
    info = TopologyInfo(opts=merge(*args))
    info._load()
    for node in info.nodes:
        node.caches.sort(key=Cache.sort_key)
    return info


def _topology_nodes(opts: Option) -> list[Node]:
    paths = paths_from_options(opts)
    nodes: list[Node] = []
    try:
        names = sorted(os.listdir(paths.sys_devices_system_node))
    except OSError as err:
        opts.warn("failed to determine nodes: %s\n", err)
        return nodes

    for name in names:
        if not name.startswith("node"):
            continue
        try:
            node_id = int(name[4:])
        except ValueError as err:
            opts.warn("failed to determine node ID: %s\n", err)
            return nodes
        try:
            caches = caches_for_node(opts, node_id)
        except OSError as err:
            opts.warn("failed to determine caches for node: %s\n", err)
            return nodes
        try:
            distances = distances_for_node(opts, node_id)
        except (OSError, ValueError) as err:
            opts.warn("failed to determine node distances for node: %s\n", err)
            return nodes
        try:
            area = area_for_node(opts, node_id)
        except (OSError, ValueError, LookupError) as err:
            opts.warn("failed to determine memory area for node: %s\n", err)
            return nodes
        nodes.append(Node(id=node_id, caches=caches, distances=distances, memory=area))
    return nodes


def distances_for_node(opts: Option | None, node_id: int) -> list[int]:
    """Read the distances from a NUMA node to every node.

    Raises OSError if the file cannot be read and ValueError if it is malformed.
    """
    paths = paths_from_options(opts if opts is not None else merge())
    path = _join(paths.sys_devices_system_node, f"node{node_id}", "distance")
    with open(path, encoding="utf-8") as handle:
        data = handle.read()
    return [int(item) for item in data.split()]