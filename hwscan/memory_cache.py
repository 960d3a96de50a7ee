"""CPU memory caches as described by the Linux sysfs NUMA node tree."""

from __future__ import annotations

import enum
import os
from dataclasses import dataclass

from hwscan.linuxpath import Paths, _join, paths_from_options
from hwscan.option import Option
from hwscan.units import KB


class CacheType(enum.IntEnum):
    """What kind of memory a cache stores."""

    UNIFIED = 0
    INSTRUCTION = 1
    DATA = 2

    def __str__(self) -> str:
        return self.name.capitalize()

    def to_json(self) -> str:
        """Serialised (lower-case) name of the cache type."""
        return str(self).lower()


def cache_type_from_json(value: str) -> CacheType:
    """Parse a serialised cache type name, in any case."""
    if not isinstance(value, str):
        raise TypeError(f"memory cache type must be a string, not {type(value).__name__}")
    key = value.lower()
    for member in CacheType:
        if member.to_json() == key:
            return member
    raise ValueError(f"unknown memory cache type: {key!r}")


@dataclass
class Cache:
    """A single memory cache on a physical CPU package."""

    level: int
    type: CacheType
    size_bytes: int
    logical_processors: list[int] | None = None

    def __str__(self) -> str:
        size_kb = self.size_bytes // KB
        type_str = {CacheType.INSTRUCTION: "i", CacheType.DATA: "d"}.get(self.type, "")
        processor_map = ""
        if self.logical_processors is not None:
            processor_map = " shared with logical processors: " + ",".join(
                str(lp) for lp in self.logical_processors
            )
        return f"L{self.level}{type_str} cache ({size_kb} KB){processor_map}"

    def to_dict(self) -> dict:
        """Serialisable form of the cache."""
        return {
            "level": self.level,
            "type": self.type.to_json(),
            "size_bytes": self.size_bytes,
            "logical_processors": self.logical_processors,
        }

    def sort_key(self) -> tuple:
        """Order by level, then type, then lowest logical processor."""
        return (self.level, self.type, self.logical_processors[0])


def _read_trimmed(path: str, trim: int) -> str:
    with open(path, encoding="utf-8", errors="replace") as handle:
        contents = handle.read()
    return contents[:-trim] if trim else contents


def _read_int(opts: Option, path: str, trim: int) -> int:
    try:
        contents = _read_trimmed(path, trim)
    except OSError as err:
        opts.warn("%s", err)
        return -1
    try:
        return int(contents)
    except ValueError:
        opts.warn("Unable to parse int from %s", contents)
        return -1


def _cache_level(opts: Option, paths: Paths, node_id: int, lp_id: int, index: int) -> int:
    return _read_int(opts, _join(paths.node_cpu_cache_index(node_id, lp_id, index), "level"), 1)


def _cache_size(opts: Option, paths: Paths, node_id: int, lp_id: int, index: int) -> int:
    # the file holds e.g. "32K\n": drop the unit and the newline
    return _read_int(opts, _join(paths.node_cpu_cache_index(node_id, lp_id, index), "size"), 2)


def _cache_type(opts: Option, paths: Paths, node_id: int, lp_id: int, index: int) -> CacheType:
    path = _join(paths.node_cpu_cache_index(node_id, lp_id, index), "type")
    try:
        contents = _read_trimmed(path, 1)
    except OSError as err:
        opts.warn("%s", err)
        return CacheType.UNIFIED
    return {"Data": CacheType.DATA, "Instruction": CacheType.INSTRUCTION}.get(
        contents, CacheType.UNIFIED
    )


def _cache_shared_cpu_map(opts: Option, paths: Paths, node_id: int, lp_id: int, index: int) -> str:
    path = _join(paths.node_cpu_cache_index(node_id, lp_id, index), "shared_cpu_map")
    try:
        return _read_trimmed(path, 1)
    except OSError as err:
        opts.warn("%s", err)
        return ""


def _numeric_suffix(name: str, prefix: str) -> int:
    try:
        return int(name[len(prefix):])
    except ValueError:
        return 0


def caches_for_node(opts: Option | None, node_id: int) -> list[Cache]:
    """Return the distinct caches of the logical processors in a NUMA node.

    Raises OSError if the node directory cannot be read.
    """
    opts = opts if opts is not None else Option()
    paths = paths_from_options(opts)
    node_path = _join(paths.sys_devices_system_node, f"node{node_id}")
    caches: dict[str, Cache] = {}

    for filename in sorted(os.listdir(node_path)):
        if not filename.startswith("cpu") or filename in ("cpumap", "cpulist"):
            continue
        lp_id = _numeric_suffix(filename, "cpu")
        cache_path = _join(node_path, filename, "cache")
        if not os.path.lexists(cache_path):
            continue
        for entry in sorted(os.listdir(cache_path)):
            if not entry.startswith("index"):
                continue
            cache_index = _numeric_suffix(entry, "index")
            level = _cache_level(opts, paths, node_id, lp_id, cache_index)
            cache_type = _cache_type(opts, paths, node_id, lp_id, cache_index)
            shared_map = _cache_shared_cpu_map(opts, paths, node_id, lp_id, cache_index)
            key = f"{level}-{int(cache_type)}-{shared_map}"
            cache = caches.get(key)
            if cache is None:
                # the size is looked up under the cache level, as the index
                size = _cache_size(opts, paths, node_id, lp_id, level)
                cache = Cache(
                    level=level,
                    type=cache_type,
                    size_bytes=size * KB,
                    logical_processors=[],
                )
                caches[key] = cache
            cache.logical_processors.append(lp_id)

    for cache in caches.values():
        cache.logical_processors.sort()
    return list(caches.values())