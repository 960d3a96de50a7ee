import json
import os
import subprocess
from unittest import mock

import pytest

from hwscan import net
from hwscan.linuxpath import paths_from_options
from hwscan.option import Option, with_alerter, with_chroot, with_disable_tools, with_null_alerter

ETHTOOL_OUTPUT = """Settings for eth0:
\tSupported ports: [ TP ]
\tSupported link modes:   10baseT/Half 10baseT/Full
\t                        100baseT/Half 100baseT/Full
\t                        1000baseT/Full
\tSupported pause frame use: No
\tSupports auto-negotiation: Yes
\tSupported FEC modes: Not reported
\tAdvertised link modes:  10baseT/Half 10baseT/Full
\t                        100baseT/Half 100baseT/Full
\t                        1000baseT/Full
\tAdvertised pause frame use: No
\tAdvertised auto-negotiation: Yes
\tAdvertised FEC modes: Not reported
\tSpeed: 1000Mb/s
\tDuplex: Full
\tAuto-negotiation: on
\tPort: Twisted Pair
\tPHYAD: 1
\tTransceiver: internal
\tMDI-X: off (auto)
\tSupports Wake-on: pumbg
\tWake-on: d
        Current message level: 0x00000007 (7)
                               drv probe link
\tLink detected: yes
"""

FEATURES_OUTPUT = """Features for eth0:
rx-checksumming: on
tx-checksumming: off
\ttx-checksum-ipv4: off
\ttx-checksum-ip-generic: off [fixed]
"""

LINK_MODES = [
    "10baseT/Half",
    "10baseT/Full",
    "100baseT/Half",
    "100baseT/Full",
    "1000baseT/Full",
]

FAKE_MAC = "00:00:5e:00:53:01"


@pytest.mark.parametrize(
    "line, expected",
    [
        ("scatter-gather: off", net.NICCapability("scatter-gather", False, True)),
        ("scatter-gather: on", net.NICCapability("scatter-gather", True, True)),
        ("scatter-gather: off [fixed]", net.NICCapability("scatter-gather", False, False)),
    ],
)
def test_parse_ethtool_feature(line, expected):
    assert net.parse_ethtool_feature(line) == expected


def test_parse_ethtool_feature_malformed():
    with pytest.raises(ValueError):
        net.parse_ethtool_feature("scatter-gather:")


def test_parse_nic_attr_ethtool():
    attrs = net.parse_nic_attr_ethtool(ETHTOOL_OUTPUT)
    nic = net.NIC()
    nic._apply_ethtool_settings(attrs)
    expected = net.NIC(
        speed="1000Mb/s",
        duplex="Full",
        supported_ports=["TP"],
        advertised_link_modes=LINK_MODES,
        supported_link_modes=LINK_MODES,
        capabilities=[
            net.NICCapability("auto-negotiation", True, True),
            net.NICCapability("pause-frame-use", False, False),
        ],
    )
    assert nic == expected
    assert attrs.get("Supported FEC modes") is None
    assert attrs["Current message level"] == ["0x00000007", "(7)", "drv", "probe", "link"]


def test_auto_neg_and_pause_caps_default_false():
    assert net.auto_neg_cap({}) == net.NICCapability("auto-negotiation", False, False)
    assert net.pause_frame_use_cap({"Advertised pause frame use": ["bogus"]}) == (
        net.NICCapability("pause-frame-use", False, False)
    )


def test_pause_frame_use_enabled():
    cap = net.pause_frame_use_cap(
        {"Advertised pause frame use": ["Yes"], "Supports pause frame use": ["yes"]}
    )
    assert (cap.is_enabled, cap.can_enable) == (True, True)


def test_string_forms():
    assert str(net.NICCapability("tso", True, False)) == "{Name:tso IsEnabled:true CanEnable:false}"
    assert str(net.NIC(name="br0", is_virtual=True)) == "br0 (virtual)"
    assert str(net.NIC(name="eth0")) == "eth0"
    assert str(net.NetInfo(nics=[net.NIC(name="a")])) == "net (1 NICs)"


def test_nic_to_dict_omits_empty_optionals():
    data = net.NIC(name="eth0").to_dict()
    assert "pci_address" not in data
    assert "supported_link_modes" not in data
    assert data["capabilities"] == []
    assert data["name"] == "eth0"


def _make_tree(root):
    sys_dir = root / "sys"
    class_net = sys_dir / "class" / "net"
    class_net.mkdir(parents=True)
    (sys_dir / "bus" / "pci").mkdir(parents=True)

    pci_dev = sys_dir / "devices" / "pci0000:00" / "0000:00:1f.6"
    eth0 = pci_dev / "net" / "eth0"
    eth0.mkdir(parents=True)
    (eth0 / "addr_assign_type").write_text("0\n")
    (eth0 / "address").write_text(FAKE_MAC + "\n")
    (eth0 / "speed").write_text("1000\n")
    (eth0 / "duplex").write_text("full\n")
    os.symlink("../../../0000:00:1f.6", eth0 / "device")
    os.symlink("../../../bus/pci", pci_dev / "subsystem")
    os.symlink("../../devices/pci0000:00/0000:00:1f.6/net/eth0", class_net / "eth0")

    br0 = sys_dir / "devices" / "virtual" / "net" / "br0"
    br0.mkdir(parents=True)
    (br0 / "addr_assign_type").write_text("3\n")
    (br0 / "address").write_text("02:00:00:00:00:01\n")
    os.symlink("../../devices/virtual/net/br0", class_net / "br0")

    lo = sys_dir / "devices" / "virtual" / "net" / "lo"
    lo.mkdir(parents=True)
    os.symlink("../../devices/virtual/net/lo", class_net / "lo")
    return class_net


def test_new_from_sysfs_tree(tmp_path):
    _make_tree(tmp_path)
    info = net.new(with_chroot(str(tmp_path)), with_disable_tools(), with_null_alerter())
    by_name = {nic.name: nic for nic in info.nics}
    assert sorted(by_name) == ["br0", "eth0"]
    eth0 = by_name["eth0"]
    assert eth0.mac_address == FAKE_MAC
    assert eth0.is_virtual is False
    assert eth0.pci_address == "0000:00:1f.6"
    assert (eth0.speed, eth0.duplex) == ("1000", "full")
    br0 = by_name["br0"]
    assert br0.is_virtual is True
    assert br0.mac_address == ""
    assert br0.pci_address is None
    assert str(info) == "net (2 NICs)"
    for nic in info.nics:
        assert nic.name != ""


def test_json_and_yaml_output(tmp_path):
    _make_tree(tmp_path)
    info = net.new(with_chroot(str(tmp_path)), with_disable_tools(), with_null_alerter())
    decoded = json.loads(info.json_string(True))
    names = sorted(nic["name"] for nic in decoded["network"]["nics"])
    assert names == ["br0", "eth0"]
    assert "network:" in info.yaml_string()


def test_missing_net_dir_gives_no_nics(tmp_path):
    info = net.new(with_chroot(str(tmp_path)), with_disable_tools(), with_null_alerter())
    assert info.nics == []


def test_mac_address_missing_files(tmp_path):
    paths = paths_from_options(with_chroot(str(tmp_path)))
    assert net.mac_address(paths, "eth9") == ""


def test_pci_address_non_pci_subsystem(tmp_path):
    class_net = _make_tree(tmp_path)
    subsystem = tmp_path / "sys" / "devices" / "pci0000:00" / "0000:00:1f.6" / "subsystem"
    subsystem.unlink()
    os.symlink("../../../bus/usb", subsystem)
    assert net.pci_address_for_device(str(class_net), "eth0") is None


def test_ethtool_missing_warns_and_falls_back(tmp_path):
    _make_tree(tmp_path)
    warnings = []
    with mock.patch("hwscan.net.shutil.which", return_value=None):
        info = net.new(
            with_chroot(str(tmp_path)), Option(enable_tools=True), with_alerter(warnings.append)
        )
    assert any("ethtool not installed" in w for w in warnings)
    eth0 = next(nic for nic in info.nics if nic.name == "eth0")
    assert eth0.speed == "1000"


def test_ethtool_used_when_available(tmp_path):
    _make_tree(tmp_path)

    def fake_run(command, **kwargs):
        output = FEATURES_OUTPUT if "-k" in command else ETHTOOL_OUTPUT
        return subprocess.CompletedProcess(command, 0, stdout=output, stderr="")

    with mock.patch("hwscan.net.shutil.which", return_value="/usr/sbin/ethtool"), mock.patch(
        "hwscan.net.subprocess.run", side_effect=fake_run
    ):
        info = net.new(with_chroot(str(tmp_path)), Option(enable_tools=True), with_null_alerter())
    eth0 = next(nic for nic in info.nics if nic.name == "eth0")
    assert eth0.speed == "1000Mb/s"
    assert eth0.supported_link_modes == LINK_MODES
    assert [cap.name for cap in eth0.capabilities] == [
        "auto-negotiation",
        "pause-frame-use",
        "rx-checksumming",
        "tx-checksumming",
        "tx-checksum-ipv4",
        "tx-checksum-ip-generic",
    ]
    assert eth0.capabilities[-1] == net.NICCapability("tx-checksum-ip-generic", False, False)


def test_ethtool_failure_warns(tmp_path):
    _make_tree(tmp_path)
    warnings = []

    def failing_run(command, **kwargs):
        raise subprocess.CalledProcessError(1, command)

    with mock.patch("hwscan.net.shutil.which", return_value="/usr/sbin/ethtool"), mock.patch(
        "hwscan.net.subprocess.run", side_effect=failing_run
    ):
        info = net.new(
            with_chroot(str(tmp_path)), Option(enable_tools=True), with_alerter(warnings.append)
        )
    assert any("could not grab NIC link info for eth0" in w for w in warnings)
    assert any("could not grab NIC capabilities for eth0" in w for w in warnings)
    eth0 = next(nic for nic in info.nics if nic.name == "eth0")
    assert eth0.capabilities == []