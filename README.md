# hwscan

`hwscan` reads what the Linux kernel exposes under `/proc` and `/sys` and
turns it into plain Python objects:

- **memory** (`hwscan.memory`): total physical and usable bytes, supported
  huge page sizes, the default huge page size, and huge page counts for each
  size;
- **memory caches** (`hwscan.memory_cache`): the caches of each NUMA node and
  the logical processors that share each cache;
- **network** (`hwscan.net`): the interface controllers, their MAC and PCI
  addresses, link speed, duplex and capabilities (it runs `ethtool` when it is
  installed and tools are enabled, and otherwise reads speed and duplex from
  sysfs);
- **topology** (`hwscan.topology`): SMP or NUMA, the nodes, the caches and
  distances of each node, and the memory of each node.

Smaller helpers: `hwscan.pciaddress.from_string()` parses PCI addresses,
`hwscan.units.amount_string()` picks a display unit for a byte count,
`hwscan.util.parse_bool()` accepts `on`/`off`/`yes`/`no` as well as the usual
boolean spellings, and `hwscan.marshal.safe_json()` / `safe_yaml()` render data
and return `""` after a warning if that fails.

## Installation

```
pip install hwscan
```

To run the test suite:

```
pip install "hwscan[test]"
pytest
```

## Usage

```python
from hwscan import memory, net, topology

mem = memory.new()
print(mem)                        # memory (32GB physical, 31GB usable)
print(mem.json_string(indent=True))
print(mem.yaml_string())

nics = net.new()
for nic in nics.nics:
    print(nic, nic.mac_address, nic.pci_address, nic.speed)

topo = topology.new()
print(topo)                       # topology NUMA (2 nodes)
for node in topo.nodes:
    print(node, node.distances, node.memory)
    for cache in node.caches:
        print("  ", cache)        # L1d cache (32 KB) shared with logical processors: 0,1
```

`memory.new()` raises `RuntimeError` when the usable amount of memory cannot
be read. When the physical amount cannot be found either from
`/sys/devices/system/memory` or from the boot messages in `/var/log/syslog*`,
it warns and reports the usable amount as physical.

```python
from hwscan.pciaddress import from_string

addr = from_string("03:00.A")
print(addr)                       # 0000:03:00.a
print(from_string("not-an-address"))  # None
```

### Options

Every `new()` takes any number of options from `hwscan.option`, which are
merged by `option.merge()`; the last one to set a value wins. Anything left
unset is taken from the environment.

```python
from hwscan import option, topology

topo = topology.new(
    option.with_chroot("/host"),
    option.with_path_overrides({"/proc": "/host-proc", "/sys": "/host-sys"}),
    option.with_disable_tools(),
    option.with_null_alerter(),
)
```

Path overrides replace the roots `/etc`, `/proc`, `/run`, `/sys` and `/var`;
the chroot is put in front of them. `option.with_alerter(fn)` sends each
warning, as a string, to `fn`.

| Variable                 | Effect                                             |
|--------------------------|----------------------------------------------------|
| `GHW_CHROOT`             | root directory that all paths are built from       |
| `GHW_DISABLE_WARNINGS`   | stop printing warnings to stderr                   |
| `GHW_DISABLE_TOOLS`      | never run external tools such as `ethtool`         |
| `GHW_SNAPSHOT_PATH`      | stored in the merged `SnapshotOptions.path`        |
| `GHW_SNAPSHOT_ROOT`      | stored in the merged `SnapshotOptions.root`        |
| `GHW_SNAPSHOT_EXCLUSIVE` | sets the merged `SnapshotOptions.exclusive`        |
| `GHW_SNAPSHOT_PRESERVE`  | read by `option.env_or_default_snapshot_preserve()` |

## What it does not do

- It cannot capture, pack or unpack snapshots of the pseudo-files. The
  snapshot settings are kept in `Option.snapshot`, but nothing reads a
  snapshot; to inspect a saved tree, point `option.with_chroot()` at it.
- It does not detect CPU cores: `Node.cores` in a topology is always empty.
- It does not look up PCI vendor or product names; it only parses PCI
  addresses and finds the PCI address behind a network interface.
- It has no command-line program; it is used as a library.
- It reads Linux interfaces only; on other systems `memory.new()` fails and
  the other modules find nothing.