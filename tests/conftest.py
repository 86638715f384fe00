"""
공용 테스트 픽스처
실제 wg/wg-quick/ping/HTTP 대신 기록용 가짜 객체를 사용한다
"""

import os
import pytest

from towalink_bootstrap.client import Response, ResponseStatus
from towalink_bootstrap.config import Config
from towalink_bootstrap.context import RunContext
from towalink_bootstrap.identity import KeyStore, NodeIdentity
from towalink_bootstrap.network import NetworkChecker
from towalink_bootstrap.state import StateStore
from towalink_bootstrap.tunnel import TunnelManager

MAC = "aa:bb:cc:dd:ee:ff"


class FakeTools:
    """wg 키 생성 도구 대체 (호출 횟수 기록)"""

    def __init__(self):
        self.generated = 0

    def genpsk(self):
        self.generated += 1
        return f"psk-{self.generated}"

    def genkey(self):
        self.generated += 1
        return f"priv-{self.generated}"

    def pubkey(self, private_key):
        return f"pub-of-{private_key}"


class FakeClient:
    """컨트롤러 대체. responses 는 Response 또는 Response 를 반환하는 함수"""

    def __init__(self, negotiate_response=None, recovery_response=None, installer_response=None):
        self.negotiate_response = negotiate_response or Response(ResponseStatus.TRANSPORT_ERROR, error="unreachable")
        self.recovery_response = recovery_response or Response(ResponseStatus.HTTP_ERROR, http_code=404)
        self.installer_response = installer_response or Response(ResponseStatus.TRANSPORT_ERROR, error="offline")
        self.negotiations = []
        self.recovery_hosts = []

    @staticmethod
    def _resolve(response):
        return response() if callable(response) else response

    def negotiate(self, controller, request):
        self.negotiations.append((controller, request))
        return self._resolve(self.negotiate_response)

    def fetch_recovery(self, host):
        self.recovery_hosts.append(host)
        return self._resolve(self.recovery_response)

    def fetch_installer(self, url):
        return self._resolve(self.installer_response)


class FakeTunnel(TunnelManager):
    """wg-quick/ping 대신 기록만 하는 터널"""

    def __init__(self, interface, config_file, reachable=True):
        super().__init__(interface, config_file)
        self.reachable = reachable
        self.bring_up_calls = 0
        self.probe_calls = 0

    def bring_up(self):
        self.bring_up_calls += 1
        return True, "up"

    def probe(self, address="fe80::1", timeout=3):
        self.probe_calls += 1
        return self.reachable


def downloaded(body):
    return Response(ResponseStatus.DOWNLOADED, body=body, content=body.encode(), http_code=200)


def bootstrap_document(key=None, terminator=True, controller=None):
    """컨트롤러가 내려주는 부트스트랩 문서 예시"""
    lines = [
        "tunnel:",
        "  address:",
        "    - fe80::2/64",
        "  listen_port: 51820",
        "  peers:",
        "    - public_key: \"controllerpublickey=\"",
        "      endpoint: \"vpn.example.net:51820\"",
        "      allowed_ips: [\"fe80::1/128\", \"10.0.0.0/24\"]",
        "      persistent_keepalive: 25",
        "      preshared_key: true",
    ]
    if controller:
        lines.append(f"controller: \"{controller}\"")
    if key:
        lines.append(f"config_key: \"{key}\"")
    if terminator:
        lines.append("# EOF")
    return "\n".join(lines) + "\n"


@pytest.fixture
def config(tmp_path):
    """임시 디렉토리를 가리키는 설정"""
    cfg = Config(str(tmp_path / "missing.yaml"))
    cfg.paths.config_dir = str(tmp_path / "etc")
    cfg.paths.state_dir = str(tmp_path / "etc" / "bootstrap")
    cfg.paths.install_dir = str(tmp_path / "opt")
    cfg.paths.install_file = str(tmp_path / "opt" / "towalink-bootstrap")
    cfg.paths.wireguard_dir = str(tmp_path / "wireguard")
    cfg.paths.log_file = str(tmp_path / "log" / "bootstrap.log")
    cfg.paths.os_release = str(tmp_path / "os-release")
    cfg.paths.sys_class_net = str(tmp_path / "sys" / "class" / "net")
    return cfg


@pytest.fixture
def tools():
    return FakeTools()


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def fake_tunnel(config):
    return FakeTunnel(config.tunnel.interface, config.tunnel_config_file)


@pytest.fixture
def store(config):
    return StateStore(config.paths.state_dir)


@pytest.fixture
def context(config, store, tools, fake_client, fake_tunnel):
    return RunContext(
        config=config,
        store=store,
        keys=KeyStore(store, tools),
        client=fake_client,
        tunnel=fake_tunnel,
        network=NetworkChecker(config.paths.sys_class_net, route_reader=lambda: "eth0", sleep=lambda s: None),
        identity=NodeIdentity(interface="eth0", mac=MAC),
    )


def file_mode(path):
    return os.stat(path).st_mode & 0o777
