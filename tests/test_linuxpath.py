import pytest

from hwscan.linuxpath import (
    PathRoots,
    default_path_roots,
    path_roots_from_options,
    paths_from_options,
)
from hwscan.option import merge, with_chroot, with_path_overrides


def test_path_root_follows_environment(monkeypatch):
    monkeypatch.delenv("GHW_CHROOT", raising=False)
    paths = paths_from_options(merge())
    assert paths.proc_cpuinfo == "/proc/cpuinfo"

    monkeypatch.setenv("GHW_CHROOT", "/host")
    paths = paths_from_options(merge())
    assert paths.proc_cpuinfo == "/host/proc/cpuinfo"


def test_path_specific_roots(monkeypatch):
    monkeypatch.delenv("GHW_CHROOT", raising=False)
    opts = merge(with_path_overrides({"/proc": "/host-proc", "/sys": "/host-sys"}))
    paths = paths_from_options(opts)
    assert paths.proc_cpuinfo == "/host-proc/cpuinfo"
    assert paths.sys_bus_pci_devices == "/host-sys/bus/pci/devices"


def test_path_chroot_and_specifics():
    opts = merge(
        with_path_overrides({"/proc": "/host2-proc", "/sys": "/host2-sys"}),
        with_chroot("/redirect"),
    )
    paths = paths_from_options(opts)
    assert paths.proc_cpuinfo == "/redirect/host2-proc/cpuinfo"
    assert paths.sys_bus_pci_devices == "/redirect/host2-sys/bus/pci/devices"


def test_default_path_roots():
    assert default_path_roots() == PathRoots(
        etc="/etc", proc="/proc", run="/run", sys="/sys", var="/var"
    )


def test_path_roots_only_override_given_keys():
    roots = path_roots_from_options(merge(with_path_overrides({"/run": "/host-run"})))
    assert roots.run == "/host-run"
    assert roots.var == "/var"
    assert roots.sys == "/sys"


@pytest.mark.parametrize(
    "attr, expected",
    [
        ("var_log", "/var/log"),
        ("proc_meminfo", "/proc/meminfo"),
        ("proc_mounts", "/proc/self/mounts"),
        ("sys_kernel_mm_hugepages", "/sys/kernel/mm/hugepages"),
        ("sys_block", "/sys/block"),
        ("sys_devices_system_node", "/sys/devices/system/node"),
        ("sys_devices_system_memory", "/sys/devices/system/memory"),
        ("sys_devices_system_cpu", "/sys/devices/system/cpu"),
        ("sys_class_drm", "/sys/class/drm"),
        ("sys_class_dmi", "/sys/class/dmi"),
        ("sys_class_net", "/sys/class/net"),
        ("run_udev_data", "/run/udev/data"),
    ],
)
def test_default_paths(attr, expected):
    paths = paths_from_options(merge(with_chroot("/")))
    assert getattr(paths, attr) == expected


def test_node_cpu_paths():
    paths = paths_from_options(merge(with_chroot("/")))
    assert paths.node_cpu(0, 3) == "/sys/devices/system/node/node0/cpu3"
    assert paths.node_cpu_cache(1, 2) == "/sys/devices/system/node/node1/cpu2/cache"
    assert (
        paths.node_cpu_cache_index(1, 2, 0)
        == "/sys/devices/system/node/node1/cpu2/cache/index0"
    )


def test_paths_under_temporary_chroot(tmp_path):
    paths = paths_from_options(merge(with_chroot(str(tmp_path))))
    assert paths.sys_class_net == str(tmp_path / "sys" / "class" / "net")