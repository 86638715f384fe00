"""
네트워크 보조 모듈
기본 경로 인터페이스 탐지, MAC 주소 조회, CNAME 해석, 터널 너머 핑 체크
"""

import subprocess
import time
from pathlib import Path
from typing import Callable, Optional, Tuple

from .errors import IdentityError
from .logger import get_logger

DEFAULT_INTERFACE = "eth0"
PROC_NET_ROUTE = "/proc/net/route"


def read_default_route_interface(route_file: str = PROC_NET_ROUTE,
                                 ignore_prefixes: Tuple[str, ...] = ("wg", "tlwg")) -> Optional[str]:
    """라우팅 테이블에서 기본 경로(0.0.0.0)가 향하는 인터페이스 이름"""
    try:
        with open(route_file, 'r', encoding='utf-8') as f:
            lines = f.read().splitlines()[1:]
    except OSError:
        return None

    for line in lines:
        fields = line.split()
        if len(fields) < 2:
            continue
        interface, destination = fields[0], fields[1]
        if destination != "00000000":
            continue
        # WireGuard 인터페이스는 제외
        if interface.startswith(ignore_prefixes):
            continue
        return interface
    return None


class NetworkChecker:
    """네트워크 상태 확인 클래스"""

    def __init__(self, sys_class_net: str = "/sys/class/net",
                 route_reader: Callable[[], Optional[str]] = read_default_route_interface,
                 sleep: Callable[[float], None] = time.sleep):
        self.sys_class_net = Path(sys_class_net)
        self.route_reader = route_reader
        self.sleep = sleep
        self.logger = get_logger()

    def primary_interface(self, attempts: int = 60) -> str:
        """기본 경로 인터페이스 (부팅 직후를 고려해 1초 간격으로 재시도)"""
        for attempt in range(attempts):
            interface = self.route_reader()
            if interface:
                self.logger.debug(f"Primary interface is [{interface}]")
                return interface
            if attempt + 1 < attempts:
                self.sleep(1)
        self.logger.debug(f"No default route found; falling back to [{DEFAULT_INTERFACE}]")
        return DEFAULT_INTERFACE

    def mac_address(self, interface: str) -> str:
        """인터페이스의 MAC 주소"""
        address_file = self.sys_class_net / interface / "address"
        try:
            mac = address_file.read_text(encoding='utf-8').strip()
        except OSError as e:
            raise IdentityError(f"Cannot read MAC address of interface [{interface}]: {e}") from e
        if not mac:
            raise IdentityError(f"Interface [{interface}] reports an empty MAC address")
        return mac.lower()

    def check_ping(self, host: str, interface: Optional[str] = None, timeout: int = 3) -> bool:
        """호스트 핑 테스트 (1회). 링크 로컬 주소는 인터페이스를 붙여 지정"""
        target = f"{host}%{interface}" if interface else host
        try:
            self.logger.debug(f"Pinging {target}...")
            result = subprocess.run(
                ["ping", "-c", "1", "-W", str(timeout), "-w", str(timeout), "-q", target],
                capture_output=True,
                text=True,
                timeout=timeout + 5
            )
        except subprocess.TimeoutExpired:
            self.logger.debug(f"Ping timeout for {target}")
            return False
        except OSError as e:
            self.logger.error(f"Ping error: {e}")
            return False

        if result.returncode == 0:
            self.logger.debug(f"{target} is reachable")
            return True
        self.logger.debug(f"{target} is unreachable")
        return False


def lookup_cname(hostname: str, timeout: int = 10) -> Optional[str]:
    """`host -t cname` 으로 CNAME 대상 조회. CNAME 이 없거나 조회 실패 시 None"""
    try:
        result = subprocess.run(
            ["host", "-t", "cname", hostname],
            capture_output=True,
            text=True,
            timeout=timeout
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        get_logger().debug(f"CNAME lookup for [{hostname}] failed: {e}")
        return None

    if result.returncode != 0:
        return None
    # 예: "a.example.com is an alias for b.example.net."
    for line in result.stdout.splitlines():
        if " is an alias for " in line:
            return line.rsplit(" ", 1)[-1].rstrip(".")
    return None


def resolve_canonical(hostname: str, max_depth: int = 16,
                      lookup: Callable[[str], Optional[str]] = lookup_cname) -> str:
    """CNAME 체인을 따라가 더 이상 CNAME 이 없는 마지막 이름을 반환

    와일드카드 인증서가 없는 경우 TLS 검증이 대상 호스트명으로 이루어지도록 하기 위함.
    CNAME 루프에 빠지지 않도록 max_depth 단계에서 멈춘다.
    """
    logger = get_logger()
    current = hostname
    seen = {hostname}
    for _ in range(max_depth):
        target = lookup(current)
        if not target:
            return current
        if target in seen:
            logger.warning(f"CNAME loop detected at [{target}]; using [{current}]")
            return current
        logger.debug(f"[{current}] is an alias for [{target}]")
        seen.add(target)
        current = target
    logger.warning(f"CNAME chain of [{hostname}] exceeds {max_depth} steps; using [{current}]")
    return current
