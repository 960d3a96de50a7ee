"""System memory: usable and physical amounts, huge pages and DIMM modules."""

from __future__ import annotations

import gzip
import math
import os
import re
from dataclasses import asdict, dataclass, field

from hwscan.linuxpath import Paths, paths_from_options
from hwscan.marshal import safe_json, safe_yaml
from hwscan.option import Option, merge
from hwscan.units import KB, amount_string
from hwscan.util import UNKNOWN

_WARN_CANNOT_DETERMINE_PHYSICAL_MEMORY = """
Could not determine total physical bytes of memory. This may
be due to the host being a virtual machine or container with no
/var/log/syslog file or /sys/devices/system/memory directory, or
the current user may not have necessary privileges to read the syslog.
We are falling back to setting the total physical amount of memory to
the total usable amount of memory
"""

# System log lines look like: ... kernel: [0.000000] Memory: 24633272K/25155024K ...
_SYSLOG_MEMLINE_RE = re.compile(r"Memory:\s+\d+K/(\d+)K")
# A memory block entry in /sys/devices/system/memory or .../node/nodeX
_MEMORY_BLOCK_DIRNAME_RE = re.compile(r"memory\d+\Z")

_HUGE_PAGE_FILES = {
    "nr_hugepages": "total",
    "free_hugepages": "free",
    "surplus_hugepages": "surplus",
    "resv_hugepages": "reserved",
}


@dataclass
class Module:
    """A single physical memory module (DIMM)."""

    label: str = ""
    location: str = ""
    serial_number: str = ""
    size_bytes: int = 0
    vendor: str = ""


@dataclass
class HugePageAmounts:
    """Huge page counts for one page size.

    ``reserved`` is not available from the per-NUMA-node tree.
    """

    total: int = 0
    free: int = 0
    surplus: int = 0
    reserved: int = 0


def _format_amount(amount: int) -> str:
    if amount <= 0:
        return UNKNOWN
    unit, suffix = amount_string(amount)
    return f"{math.ceil(amount / unit)}{suffix}"


@dataclass
class Area:
    """A set of physical memory: the whole system or one NUMA node."""

    total_physical_bytes: int = 0
    total_usable_bytes: int = 0
    supported_page_sizes: list[int] = field(default_factory=list)
    default_huge_page_size: int = 0
    total_huge_page_bytes: int = 0
    huge_page_amounts_by_size: dict[int, HugePageAmounts] = field(default_factory=dict)
    modules: list[Module] | None = None

    def __str__(self) -> str:
        physical = _format_amount(self.total_physical_bytes)
        usable = _format_amount(self.total_usable_bytes)
        return f"memory ({physical} physical, {usable} usable)"

    def to_dict(self) -> dict:
        """Serialisable form of the memory area."""
        return {
            "total_physical_bytes": self.total_physical_bytes,
            "total_usable_bytes": self.total_usable_bytes,
            "supported_page_sizes": list(self.supported_page_sizes),
            "default_huge_page_size": self.default_huge_page_size,
            "total_huge_page_bytes": self.total_huge_page_bytes,
            "huge_page_amounts_by_size": {
                str(size): asdict(amounts)
                for size, amounts in self.huge_page_amounts_by_size.items()
            },
            "modules": None
            if self.modules is None
            else [asdict(module) for module in self.modules],
        }


@dataclass
class MemoryInfo(Area):
    """Memory information for the host system."""

    opts: Option | None = field(default=None, repr=False, compare=False)

    def __str__(self) -> str:
        return Area.__str__(self)

    def _warn_fn(self):
        return self.opts.warn if self.opts is not None else None

    def yaml_string(self) -> str:
        """The memory information as YAML under a top-level "memory" key."""
        return safe_yaml({"memory": self.to_dict()}, self._warn_fn())

    def json_string(self, indent: bool = False) -> str:
        """The memory information as JSON under a top-level "memory" key."""
        return safe_json({"memory": self.to_dict()}, indent, self._warn_fn())

    def _load(self) -> None:
        opts = self.opts if self.opts is not None else merge()
        paths = paths_from_options(opts)
        usable = _total_usable_bytes(paths)
        if usable < 1:
            raise RuntimeError("Could not determine total usable bytes of memory")
        self.total_usable_bytes = usable
        physical = _total_physical_bytes(paths)
        self.total_physical_bytes = physical
        if physical < 1:
            opts.warn(_WARN_CANNOT_DETERMINE_PHYSICAL_MEMORY)
            self.total_physical_bytes = usable
        try:
            self.supported_page_sizes = supported_page_sizes(paths.sys_kernel_mm_hugepages)
        except (OSError, ValueError):
            self.supported_page_sizes = []
        try:
            self.default_huge_page_size = _default_huge_page_size(paths.proc_meminfo)
        except (OSError, ValueError, LookupError):
            self.default_huge_page_size = 0
        try:
            self.total_huge_page_bytes = _huge_tlb(paths.proc_meminfo)
        except (OSError, ValueError, LookupError):
            self.total_huge_page_bytes = -1
        self.huge_page_amounts_by_size = {
            size: huge_page_info(paths.sys_kernel_mm_hugepages, size)
            for size in self.supported_page_sizes
        }


def new(*args: Option) -> MemoryInfo:
    """Describe the memory of the host system.

    Raises RuntimeError if the usable amount of memory cannot be determined.
    """
    info = MemoryInfo(opts=merge(*args))
    info._load()
    return info


def area_for_node(opts: Option | None, node_id: int) -> Area:
    """Describe the memory attached to one NUMA node."""
    opts = opts if opts is not None else merge()
    paths = paths_from_options(opts)
    node_path = os.path.join(paths.sys_devices_system_node, f"node{node_id}")

    total_usable = get_meminfo_field(os.path.join(node_path, "meminfo"), "MemTotal")

    try:
        block_size = memory_block_size_bytes(paths.sys_devices_system_memory)
    except (OSError, ValueError):
        # some platforms (e.g. ARM) have no block_size_bytes file
        total_physical = total_physical_bytes_from_syslog(paths)
    else:
        total_physical = total_physical_bytes_from_path(node_path, block_size)

    hp_dir = os.path.join(node_path, "hugepages")
    page_sizes = supported_page_sizes(hp_dir)
    default_size = _default_huge_page_size(paths.proc_meminfo)
    huge_tlb = _huge_tlb(paths.proc_meminfo)
    amounts = {size: huge_page_info(hp_dir, size) for size in page_sizes}

    return Area(
        total_physical_bytes=total_physical,
        total_usable_bytes=total_usable,
        supported_page_sizes=page_sizes,
        default_huge_page_size=default_size,
        total_huge_page_bytes=huge_tlb,
        huge_page_amounts_by_size=amounts,
    )


def memory_block_size_bytes(directory: str) -> int:
    """Read the hexadecimal memory block size from ``directory``."""
    with open(os.path.join(directory, "block_size_bytes"), encoding="utf-8") as handle:
        return int(handle.read().strip(), 16)


def _total_physical_bytes(paths: Paths) -> int:
    directory = paths.sys_devices_system_memory
    try:
        total = total_physical_bytes_from_path(directory, memory_block_size_bytes(directory))
    except (OSError, ValueError):
        total = -1
    if total < 0:
        total = total_physical_bytes_from_syslog(paths)
    return total


def total_physical_bytes_from_path(directory: str, block_size: int) -> int:
    """Sum the sizes of the online memory blocks listed in ``directory``."""
    total = 0
    for name in sorted(os.listdir(directory)):
        if not _MEMORY_BLOCK_DIRNAME_RE.search(name):
            continue
        with open(os.path.join(directory, name, "state"), encoding="utf-8") as handle:
            state = handle.read().strip()
        if state == "online":
            total += block_size
    return total


def _find_physical_bytes(line: str) -> int:
    match = _SYSLOG_MEMLINE_RE.search(line)
    if match is None:
        return -1
    return int(match.group(1)) * 1024


def _scan_syslog(path: str, compressed: bool) -> int:
    opener = gzip.open if compressed else open
    with opener(path, "rt", encoding="utf-8", errors="replace") as handle:
        for line in handle:
            size = _find_physical_bytes(line)
            if size > 0:
                return size
    return -1


def total_physical_bytes_from_syslog(paths: Paths) -> int:
    """Find the physical memory size in the boot messages of the system logs.

    Returns -1 when it cannot be found.
    """
    log_dir = paths.var_log
    try:
        names = sorted(os.listdir(log_dir))
    except OSError:
        return -1
    for name in names:
        if not name.startswith("syslog"):
            continue
        try:
            size = _scan_syslog(os.path.join(log_dir, name), name.endswith(".gz"))
        except (OSError, EOFError):
            return -1
        if size > 0:
            return size
    return -1


def _total_usable_bytes(paths: Paths) -> int:
    try:
        return get_meminfo_field(paths.proc_meminfo, "MemTotal")
    except (OSError, ValueError, LookupError):
        return -1


def supported_page_sizes(hp_dir: str) -> list[int]:
    """Return the huge page sizes, in bytes, listed as hugepages-<N>kB in ``hp_dir``."""
    sizes = []
    for name in sorted(os.listdir(hp_dir)):
        parts = name.split("-")
        if len(parts) < 2:
            raise ValueError(f"unexpected huge page directory name: {name!r}")
        sizes.append(int(parts[1][:-2]) * KB)
    return sizes


def _read_int(path: str) -> int:
    with open(path, encoding="utf-8") as handle:
        return int(handle.read().strip())


def huge_page_info(hp_dir: str, size_bytes: int) -> HugePageAmounts:
    """Read the huge page counts for one page size under ``hp_dir``."""
    target = os.path.join(hp_dir, f"hugepages-{size_bytes // KB}kB")
    values = {
        _HUGE_PAGE_FILES[name]: _read_int(os.path.join(target, name))
        for name in os.listdir(target)
        if name in _HUGE_PAGE_FILES
    }
    return HugePageAmounts(**values)


def _default_huge_page_size(meminfo_path: str) -> int:
    return get_meminfo_field(meminfo_path, "Hugepagesize")


def _huge_tlb(meminfo_path: str) -> int:
    return get_meminfo_field(meminfo_path, "Hugetlb")


def get_meminfo_field(path: str, key: str) -> int:
    """Return the value of the first meminfo line whose key contains ``key``.

    Values given in kB are converted to bytes. Raises LookupError if no
    line matches and ValueError if the value is not an integer.
    """
    with open(path, encoding="utf-8", errors="replace") as handle:
        for raw_line in handle:
            line = raw_line.rstrip("\n").rstrip("\r")
            parts = line.split(":")
            if key not in parts[0]:
                continue
            if len(parts) < 2:
                raise ValueError(f"malformed meminfo line: {line!r}")
            raw_value = parts[1]
            value = int(raw_value.removesuffix("kB").strip())
            if raw_value.endswith("kB"):
                value *= KB
            return value
    raise LookupError(f"failed to find '{key}' entry in path {path!r}")