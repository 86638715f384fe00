"""
실행 컨텍스트
한 번의 실행 동안 각 구성요소가 공유하는 설정과 협력 객체 묶음
"""

from dataclasses import dataclass
from typing import Optional

from .client import ControllerClient
from .config import Config
from .identity import KeyStore, NodeIdentity
from .logger import get_logger
from .network import NetworkChecker
from .state import CONTROLLER, StateStore, atomic_write
from .tunnel import TunnelManager


@dataclass
class RunContext:
    config: Config
    store: StateStore
    keys: KeyStore
    client: ControllerClient
    tunnel: TunnelManager
    network: NetworkChecker
    identity: Optional[NodeIdentity] = None
    controller: str = ""

    @classmethod
    def create(cls, config: Config) -> "RunContext":
        """설정으로부터 기본 협력 객체 구성"""
        store = StateStore(config.paths.state_dir)
        network = NetworkChecker(config.paths.sys_class_net)
        return cls(
            config=config,
            store=store,
            keys=KeyStore(store),
            client=ControllerClient(
                cacert_file=config.cacert_file,
                request_timeout=config.controller.request_timeout,
                recovery_timeout=config.controller.recovery_timeout,
                install_timeout=config.controller.install_timeout,
            ),
            tunnel=TunnelManager(
                config.tunnel.interface,
                config.tunnel_config_file,
                config.tunnel.listen_port,
                network,
            ),
            network=network,
        )

    def remember_controller(self, address: str):
        """이후 실행에서도 같은 컨트롤러를 쓰도록 기억"""
        get_logger().debug(f"Remembering controller [{address}] for further script invocations")
        self.store.set(CONTROLLER, address)
        self.controller = address

    def remembered_controller(self) -> Optional[str]:
        return self.store.get(CONTROLLER) or None

    def install_cacert(self, pem: str):
        """컨트롤러 CA 인증서 고정"""
        atomic_write(self.config.cacert_file, pem.strip() + "\n")
        get_logger().info(f"CA certificate installed at [{self.config.cacert_file}]")
