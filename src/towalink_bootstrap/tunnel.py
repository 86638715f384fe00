"""
관리 터널 모듈 (WireGuard)
키 생성 도구 호출, wg-quick 설정 파일 생성, 인터페이스 기동 및 연결 확인
"""

import os
import subprocess
from typing import List, Optional, Tuple
from jinja2 import Template

from .errors import KeyMaterialError
from .logger import get_logger
from .network import NetworkChecker
from .state import atomic_write

WG_QUICK_TEMPLATE = """# Managed by towalink-bootstrap. Do not edit.
[Interface]
PrivateKey = {{ private_key }}
ListenPort = {{ listen_port }}
{%- for address in addresses %}
Address = {{ address }}
{%- endfor %}
{% for peer in peers %}
[Peer]
PublicKey = {{ peer.public_key }}
{%- if peer.preshared_key %}
PresharedKey = {{ shared_key }}
{%- endif %}
{%- if peer.endpoint %}
Endpoint = {{ peer.endpoint }}
{%- endif %}
AllowedIPs = {{ peer.allowed_ips | join(', ') }}
{%- if peer.persistent_keepalive %}
PersistentKeepalive = {{ peer.persistent_keepalive }}
{%- endif %}
{% endfor %}"""


class WireGuardTools:
    """`wg` 명령 래퍼 (키 생성)"""

    def __init__(self, wg_command: str = "wg"):
        self.wg_command = wg_command
        self.logger = get_logger()

    def _run(self, args: List[str], stdin: Optional[str] = None) -> str:
        cmd = [self.wg_command] + args
        try:
            result = subprocess.run(
                cmd,
                input=stdin,
                capture_output=True,
                text=True,
                timeout=10,
                check=True
            )
        except (OSError, subprocess.SubprocessError) as e:
            raise KeyMaterialError(f"Command [{' '.join(cmd)}] failed: {e}") from e
        return result.stdout.strip()

    def genpsk(self) -> str:
        """사전 공유 키 생성"""
        return self._run(["genpsk"])

    def genkey(self) -> str:
        """개인 키 생성"""
        return self._run(["genkey"])

    def pubkey(self, private_key: str) -> str:
        """개인 키에서 공개 키 도출"""
        return self._run(["pubkey"], stdin=f"{private_key}\n")


class TunnelManager:
    """관리 인터페이스 관리 클래스"""

    def __init__(self, interface: str, config_file: str, listen_port: int = 51820,
                 network_checker: Optional[NetworkChecker] = None):
        self.interface = interface
        self.config_file = config_file
        self.listen_port = listen_port
        self.network_checker = network_checker or NetworkChecker()
        self.logger = get_logger()

    def has_config(self) -> bool:
        """적용된 터널 설정 존재 여부"""
        return os.path.exists(self.config_file)

    def render_config(self, tunnel: dict, private_key: str, shared_key: str) -> str:
        """부트스트랩 문서의 tunnel 항목과 로컬 키로 wg-quick 설정 생성"""
        template = Template(WG_QUICK_TEMPLATE)
        content = template.render(
            private_key=private_key,
            shared_key=shared_key,
            listen_port=tunnel.get("listen_port") or self.listen_port,
            addresses=tunnel.get("address", []),
            peers=tunnel.get("peers", [])
        )
        return content + "\n"

    def write_config(self, content: str):
        """설정 파일 저장 (소유자 전용, 임시 파일 → rename)"""
        atomic_write(self.config_file, content)
        self.logger.info(f"Tunnel configuration written to [{self.config_file}]")

    def remove_config(self) -> bool:
        """적용된 설정 삭제 (다음 반복에서 다시 다운로드)"""
        try:
            os.unlink(self.config_file)
        except FileNotFoundError:
            return False
        self.logger.info(f"Tunnel configuration [{self.config_file}] removed")
        return True

    def bring_up(self) -> Tuple[bool, str]:
        """인터페이스 재기동 (idempotent: 먼저 내린 뒤 올림)"""
        try:
            # 이미 올라와 있는 경우 대비
            subprocess.run(
                ["wg-quick", "down", self.interface],
                capture_output=True,
                text=True,
                timeout=30
            )
            result = subprocess.run(
                ["wg-quick", "up", self.interface],
                capture_output=True,
                text=True,
                timeout=30
            )
        except subprocess.TimeoutExpired:
            return False, "wg-quick timeout"
        except OSError as e:
            return False, f"wg-quick error: {e}"

        if result.returncode == 0:
            return True, "up"
        error_msg = (result.stderr or result.stdout).strip()
        return False, error_msg

    def probe(self, address: str = "fe80::1", timeout: int = 3) -> bool:
        """관리 터널을 통해서만 닿는 주소로 연결 확인"""
        return self.network_checker.check_ping(address, interface=self.interface, timeout=timeout)
