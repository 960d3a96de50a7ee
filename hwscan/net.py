"""Network interface controllers (NICs) of the host system."""

from __future__ import annotations

import os
import shutil
import subprocess
from dataclasses import dataclass, field

from hwscan.linuxpath import Paths, _join, paths_from_options
from hwscan.marshal import safe_json, safe_yaml
from hwscan.option import Option, merge
from hwscan.util import parse_bool

_WARN_ETHTOOL_NOT_INSTALLED = "ethtool not installed. Cannot grab NIC capabilities"
_SKIPPED_VALUES = frozenset({"Not reported", "Unknown"})


@dataclass
class NICCapability:
    """A feature of a NIC and whether it is, or can be, enabled."""

    name: str
    is_enabled: bool = False
    can_enable: bool = False

    def __str__(self) -> str:
        enabled = "true" if self.is_enabled else "false"
        can_enable = "true" if self.can_enable else "false"
        return f"{{Name:{self.name} IsEnabled:{enabled} CanEnable:{can_enable}}}"

    def to_dict(self) -> dict:
        """Serialisable form of the capability."""
        return {
            "name": self.name,
            "is_enabled": self.is_enabled,
            "can_enable": self.can_enable,
        }


@dataclass
class NIC:
    """A single network interface controller."""

    name: str = ""
    mac_address: str = ""
    is_virtual: bool = False
    capabilities: list[NICCapability] = field(default_factory=list)
    pci_address: str | None = None
    speed: str = ""
    duplex: str = ""
    supported_link_modes: list[str] | None = None
    supported_ports: list[str] | None = None
    supported_fec_modes: list[str] | None = None
    advertised_link_modes: list[str] | None = None
    advertised_fec_modes: list[str] | None = None

    def __str__(self) -> str:
        return f"{self.name} (virtual)" if self.is_virtual else self.name

    def to_dict(self) -> dict:
        """Serialisable form of the NIC; unset optional fields are left out."""
        result: dict = {
            "name": self.name,
            "mac_address": self.mac_address,
            "is_virtual": self.is_virtual,
            "capabilities": [cap.to_dict() for cap in self.capabilities],
        }
        if self.pci_address is not None:
            result["pci_address"] = self.pci_address
        result["speed"] = self.speed
        result["duplex"] = self.duplex
        for key in (
            "supported_link_modes",
            "supported_ports",
            "supported_fec_modes",
            "advertised_link_modes",
            "advertised_fec_modes",
        ):
            value = getattr(self, key)
            if value:
                result[key] = list(value)
        return result

    def _apply_ethtool_settings(self, attrs: dict[str, list[str]]) -> None:
        self.capabilities.append(auto_neg_cap(attrs))
        self.capabilities.append(pause_frame_use_cap(attrs))
        self.speed = "".join(attrs.get("Speed", []))
        self.duplex = "".join(attrs.get("Duplex", []))
        self.supported_link_modes = attrs.get("Supported link modes")
        self.supported_ports = attrs.get("Supported ports")
        self.supported_fec_modes = attrs.get("Supported FEC modes")
        self.advertised_link_modes = attrs.get("Advertised link modes")
        self.advertised_fec_modes = attrs.get("Advertised FEC modes")


@dataclass
class NetInfo:
    """All network interface controllers of the host system."""

    nics: list[NIC] = field(default_factory=list)
    opts: Option | None = field(default=None, repr=False, compare=False)

    def __str__(self) -> str:
        return f"net ({len(self.nics)} NICs)"

    def _warn_fn(self):
        return self.opts.warn if self.opts is not None else None

    def to_dict(self) -> dict:
        """Serialisable form of the network information."""
        return {"nics": [nic.to_dict() for nic in self.nics]}

    def yaml_string(self) -> str:
        """The network information as YAML under a top-level "network" key."""
        return safe_yaml({"network": self.to_dict()}, self._warn_fn())

    def json_string(self, indent: bool = False) -> str:
        """The network information as JSON under a top-level "network" key."""
        return safe_json({"network": self.to_dict()}, indent, self._warn_fn())


def new(*args: Option) -> NetInfo:
    """Describe the network interface controllers of the host system."""
    opts = merge(*args)
    return NetInfo(nics=_nics(opts), opts=opts)


def _read_file(path: str) -> str:
    try:
        with open(path, encoding="utf-8", errors="replace") as handle:
            return handle.read().strip()
    except OSError:
        return ""


def _readlink(path: str) -> str | None:
    try:
        return os.readlink(path)
    except OSError:
        return None


def _nics(opts: Option) -> list[NIC]:
    paths = paths_from_options(opts)
    try:
        names = sorted(os.listdir(paths.sys_class_net))
    except OSError:
        return []

    ethtool = None
    if opts.enable_tools:
        ethtool = shutil.which("ethtool")
        if ethtool is None:
            opts.warn(_WARN_ETHTOOL_NOT_INSTALLED)

    result = []
    for name in names:
        if name == "lo":
            continue
        dest = _readlink(_join(paths.sys_class_net, name)) or ""
        nic = NIC(name=name, is_virtual="devices/virtual/net" in dest)
        nic.mac_address = mac_address(paths, name)
        if ethtool is not None:
            _parse_ethtool(opts, nic, ethtool, name)
        else:
            nic.capabilities = []
            nic.speed = _read_file(_join(paths.sys_class_net, name, "speed"))
            nic.duplex = _read_file(_join(paths.sys_class_net, name, "duplex"))
        nic.pci_address = pci_address_for_device(paths.sys_class_net, name)
        result.append(nic)
    return result


def _run(command: list[str]) -> str:
    completed = subprocess.run(command, capture_output=True, text=True, check=True)
    return completed.stdout


def _parse_ethtool(opts: Option, nic: NIC, ethtool: str, dev: str) -> None:
    try:
        output = _run([ethtool, dev])
    except (OSError, subprocess.SubprocessError) as err:
        opts.warn("could not grab NIC link info for %s: %s", dev, err)
    else:
        nic._apply_ethtool_settings(parse_nic_attr_ethtool(output))

    try:
        output = _run([ethtool, "-k", dev])
    except (OSError, subprocess.SubprocessError) as err:
        opts.warn("could not grab NIC capabilities for %s: %s", dev, err)
        return
    # the first line is a "Features for <dev>:" header
    for line in _lines(output)[1:]:
        if not line.strip():
            continue
        nic.capabilities.append(parse_ethtool_feature(line.removeprefix("\t")))


def _lines(text: str) -> list[str]:
    lines = [line.rstrip("\r") for line in text.split("\n")]
    if lines and lines[-1] == "":
        lines.pop()
    return lines


def mac_address(paths: Paths, dev: str) -> str:
    """Return the permanent MAC address of ``dev``, or "" if it is random or unknown."""
    try:
        with open(_join(paths.sys_class_net, dev, "addr_assign_type"), encoding="utf-8") as handle:
            assign_type = handle.read().strip()
    except OSError:
        return ""
    if assign_type != "0":
        return ""
    try:
        with open(_join(paths.sys_class_net, dev, "address"), encoding="utf-8") as handle:
            return handle.read().strip()
    except OSError:
        return ""


def parse_ethtool_feature(line: str) -> NICCapability:
    """Parse one line of ``ethtool -k`` output, e.g. "tx-checksum-sctp: off [fixed]".

    Raises ValueError if the line has no name and state.
    """
    parts = line.split()
    if len(parts) < 2:
        raise ValueError(f"malformed ethtool feature line: {line!r}")
    fixed = len(parts) == 3 and parts[2] == "[fixed]"
    return NICCapability(
        name=parts[0].removesuffix(":"),
        is_enabled=parts[1] == "on",
        can_enable=not fixed,
    )


def parse_nic_attr_ethtool(text: str) -> dict[str, list[str]]:
    """Parse plain ``ethtool <dev>`` output into a map of setting name to words.

    Continuation lines are added to the preceding setting; values reported
    as "Not reported" or "Unknown" are left out.
    """
    attrs: dict[str, list[str]] = {}
    name = ""
    for line in _lines(text)[1:]:
        if ":" in line:
            parts = line.split(":")
            name = parts[0].strip()
            value = parts[1].strip().strip("[]")
            if value in _SKIPPED_VALUES:
                continue
            fields = value.split()
        else:
            fields = line.strip().strip("[]").split()
        for item in fields:
            attrs.setdefault(name, []).append(item.strip())
    return attrs


def _bool_setting(attrs: dict[str, list[str]], key: str) -> bool:
    try:
        return parse_bool("".join(attrs.get(key, [])))
    except ValueError:
        return False


def auto_neg_cap(attrs: dict[str, list[str]]) -> NICCapability:
    """Auto-negotiation capability derived from parsed ethtool settings."""
    return NICCapability(
        name="auto-negotiation",
        is_enabled=_bool_setting(attrs, "Auto-negotiation")
        and _bool_setting(attrs, "Advertised auto-negotiation"),
        can_enable=_bool_setting(attrs, "Supports auto-negotiation"),
    )


def pause_frame_use_cap(attrs: dict[str, list[str]]) -> NICCapability:
    """Pause-frame-use capability derived from parsed ethtool settings."""
    return NICCapability(
        name="pause-frame-use",
        is_enabled=_bool_setting(attrs, "Advertised pause frame use"),
        can_enable=_bool_setting(attrs, "Supports pause frame use"),
    )


def pci_address_for_device(net_dev_dir: str, name: str) -> str | None:
    """Follow sysfs links from a network interface to its PCI address.

    Returns None if the interface is not backed by a PCI device.
    """
    dest = _readlink(_join(net_dev_dir, name))
    if dest is None:
        return None
    net_dev = _join(net_dev_dir, dest)
    dest = _readlink(_join(net_dev, "device"))
    if dest is None:
        return None
    dev_path = _join(net_dev, dest)
    dest = _readlink(_join(dev_path, "subsystem"))
    if dest is None or not dest.endswith("/bus/pci"):
        return None
    return os.path.basename(dev_path)