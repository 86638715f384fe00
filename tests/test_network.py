"""
네트워크 보조 모듈 테스트
"""

import subprocess
from unittest.mock import MagicMock, patch

from towalink_bootstrap.network import (
    NetworkChecker, lookup_cname, read_default_route_interface, resolve_canonical
)

ROUTE_TABLE = """Iface\tDestination\tGateway\tFlags\tRefCnt\tUse\tMetric\tMask\tMTU\tWindow\tIRTT
tlwg_mgmt\t00000000\t00000000\t0001\t0\t0\t0\t00000000\t0\t0\t0
ens3\t0002A8C0\t00000000\t0001\t0\t0\t0\t00FFFFFF\t0\t0\t0
ens3\t00000000\t0102A8C0\t0003\t0\t0\t100\t00000000\t0\t0\t0
"""


def test_read_default_route_interface(tmp_path):
    route_file = tmp_path / "route"
    route_file.write_text(ROUTE_TABLE)
    assert read_default_route_interface(str(route_file)) == "ens3"


def test_read_default_route_without_default(tmp_path):
    route_file = tmp_path / "route"
    route_file.write_text(ROUTE_TABLE.splitlines()[0] + "\n")
    assert read_default_route_interface(str(route_file)) is None
    assert read_default_route_interface(str(tmp_path / "missing")) is None


def test_resolve_canonical_follows_chain():
    chain = {"a.example.com": "b.example.net", "b.example.net": "c.example.org"}
    assert resolve_canonical("a.example.com", lookup=chain.get) == "c.example.org"


def test_resolve_canonical_without_cname():
    assert resolve_canonical("host.example.com", lookup=lambda name: None) == "host.example.com"


def test_resolve_canonical_stops_on_loop():
    """CNAME 루프에서 무한 반복하지 않음"""
    chain = {"a": "b", "b": "a"}
    calls = []

    def lookup(name):
        calls.append(name)
        return chain.get(name)

    assert resolve_canonical("a", lookup=lookup) == "b"
    assert calls == ["a", "b"]


def test_resolve_canonical_depth_bound():
    calls = []

    def lookup(name):
        calls.append(name)
        return name + "x"

    assert resolve_canonical("h", max_depth=4, lookup=lookup) == "hxxxx"
    assert len(calls) == 4


@patch('towalink_bootstrap.network.subprocess.run')
def test_lookup_cname_parses_alias(mock_run):
    mock_run.return_value = MagicMock(
        returncode=0,
        stdout="aabbccddeeff.bootstrap.towalink.net is an alias for ctrl.example.net.\n"
    )
    assert lookup_cname("aabbccddeeff.bootstrap.towalink.net") == "ctrl.example.net"
    assert mock_run.call_args[0][0] == ["host", "-t", "cname", "aabbccddeeff.bootstrap.towalink.net"]


@patch('towalink_bootstrap.network.subprocess.run')
def test_lookup_cname_without_alias(mock_run):
    mock_run.return_value = MagicMock(returncode=0, stdout="example.com has no CNAME record\n")
    assert lookup_cname("example.com") is None

    mock_run.return_value = MagicMock(returncode=1, stdout="Host not found: 3(NXDOMAIN)\n")
    assert lookup_cname("missing.example.com") is None


@patch('towalink_bootstrap.network.subprocess.run')
def test_lookup_cname_tool_missing(mock_run):
    mock_run.side_effect = FileNotFoundError("host")
    assert lookup_cname("example.com") is None


@patch('towalink_bootstrap.network.subprocess.run')
def test_check_ping_with_interface(mock_run):
    """링크 로컬 주소는 인터페이스를 붙여 핑"""
    mock_run.return_value = MagicMock(returncode=0)
    checker = NetworkChecker()

    assert checker.check_ping("fe80::1", interface="tlwg_mgmt", timeout=3) is True
    cmd = mock_run.call_args[0][0]
    assert cmd[0] == "ping"
    assert cmd[-1] == "fe80::1%tlwg_mgmt"


@patch('towalink_bootstrap.network.subprocess.run')
def test_check_ping_failure(mock_run):
    checker = NetworkChecker()

    mock_run.return_value = MagicMock(returncode=1)
    assert checker.check_ping("fe80::1") is False

    mock_run.side_effect = subprocess.TimeoutExpired(cmd="ping", timeout=8)
    assert checker.check_ping("fe80::1") is False
