"""
노드 식별자 및 키 자료 관리 모듈

- 노드 식별자: 기본 경로 인터페이스의 MAC 주소에서 도출
- 키 자료: 한 번만 생성하고 상태 저장소에 보관
  * config_key / recovery_key 는 임시(.tmp) 슬롯에 먼저 생성하고,
    컨트롤러와의 첫 교환이 성공한 뒤에야 확정 슬롯으로 rename 한다
  * wg_private / wg_shared 는 생성 즉시 확정 슬롯에 저장한다
"""

import socket
from dataclasses import dataclass
from typing import Optional

from .logger import get_logger
from .network import NetworkChecker
from .state import StateStore
from .tunnel import WireGuardTools

CONFIG_KEY = "config_key"
RECOVERY_KEY = "recovery_key"
WG_PRIVATE = "wg_private"
WG_SHARED = "wg_shared"

TWO_PHASE_SLOTS = (CONFIG_KEY, RECOVERY_KEY)
KEY_SLOTS = (CONFIG_KEY, RECOVERY_KEY, WG_PRIVATE, WG_SHARED)
TENTATIVE_SUFFIX = ".tmp"


@dataclass(frozen=True)
class NodeIdentity:
    """노드 식별 정보 (실행마다 계산, 저장하지 않음)"""
    interface: str
    mac: str

    @property
    def mac_plain(self) -> str:
        """콜론을 제거한 MAC 주소"""
        return self.mac.replace(":", "")

    def bootstrap_host(self, base_domain: str) -> str:
        return f"{self.mac_plain}.bootstrap.{base_domain}"

    def recovery_host(self, base_domain: str) -> str:
        return f"{self.mac_plain}.recovery.{base_domain}"

    @staticmethod
    def reported_hostname() -> str:
        """컨트롤러에 보고할 호스트명 (FQDN)"""
        return socket.getfqdn()

    @classmethod
    def detect(cls, checker: NetworkChecker, attempts: int = 60) -> "NodeIdentity":
        interface = checker.primary_interface(attempts)
        return cls(interface=interface, mac=checker.mac_address(interface))


class KeyStore:
    """키 자료 생성/로드/확정"""

    def __init__(self, store: StateStore, tools: Optional[WireGuardTools] = None):
        self.store = store
        self.tools = tools or WireGuardTools()
        self.logger = get_logger()

    @staticmethod
    def tentative(slot: str) -> str:
        return slot + TENTATIVE_SUFFIX

    def committed(self, slot: str) -> Optional[str]:
        """확정된 키 (없으면 None)"""
        return self.store.get(slot) or None

    def load_or_generate(self, slot: str) -> str:
        """2단계 키 로드. 임시/확정 어느 쪽도 없을 때만 새로 생성"""
        if not self.store.exists(slot) and not self.store.exists(self.tentative(slot)):
            self.logger.debug(f"Generating {slot.replace('_', ' ')}")
            self.store.set(self.tentative(slot), self.tools.genpsk())
        if not self.store.exists(slot):
            return self.store.get(self.tentative(slot))
        return self.store.get(slot)

    def ensure(self, slot: str, generator) -> str:
        """1단계 키 로드. 없으면 생성해 바로 저장"""
        value = self.store.get(slot)
        if not value:
            self.logger.debug(f"Generating {slot.replace('_', ' ')}")
            value = generator()
            self.store.set(slot, value)
        return value

    def private_key(self) -> str:
        return self.ensure(WG_PRIVATE, self.tools.genkey)

    def shared_key(self) -> str:
        return self.ensure(WG_SHARED, self.tools.genpsk)

    def public_key(self) -> str:
        return self.tools.pubkey(self.private_key())

    def promote(self, slot: str) -> bool:
        """임시 키를 확정 슬롯으로 이동 (교환 성공 후에만 호출)"""
        if self.store.exists(slot):
            return False
        promoted = self.store.rename(self.tentative(slot), slot)
        if promoted:
            self.logger.debug(f"Committed {slot.replace('_', ' ')}")
        return promoted

    def discard(self, slot: str):
        """키 폐기 (다음 로드 시 재생성)"""
        if slot not in KEY_SLOTS:
            raise ValueError(f"Unknown key slot: {slot}")
        self.store.delete(slot)
        self.store.delete(self.tentative(slot))
        self.logger.info(f"Discarded {slot.replace('_', ' ')}")
