"""
부트스트랩 오케스트레이터
설치 → 복구 → 키 준비 → 협상 루프 순서로 한 번의 실행을 조율
"""

import os
from typing import Optional

from .bootstrap import LoopState, NegotiationLoop, resolve_controller
from .config import Config
from .context import RunContext
from .identity import NodeIdentity
from .installer import SelfInstaller
from .logger import get_logger
from .platform_info import check_root, check_supported, read_os_release
from .recovery import RecoveryChannel
from .state import COUNTER_INVOCATIONS, COUNTER_NOCONNECT


class BootstrapAgent:
    """에이전트 오케스트레이터"""

    def __init__(self, config: Config, context: Optional[RunContext] = None,
                 installer: Optional[SelfInstaller] = None):
        self.config = config
        self.logger = get_logger()
        self.step = "startup"
        self.context = context
        self.installer = installer

    def _enter(self, step: str):
        """현재 단계 기록 (예기치 못한 오류 보고용)"""
        self.step = step

    def prepare(self):
        """디렉토리, 첫 실행 설정, 카운터, 컨트롤러 기억"""
        self._enter("prepare")
        config = self.config
        for directory in (config.paths.config_dir, config.paths.state_dir, config.paths.install_dir):
            os.makedirs(directory, exist_ok=True)
        os.chmod(config.paths.config_dir, 0o700)

        if self.context is None:
            self.context = RunContext.create(config)
        if config.persist_first_run():
            self.logger.debug(f"Created config file [{config.default_save_path}]")

        store = self.context.store
        store.increment(COUNTER_INVOCATIONS)
        store.increment(COUNTER_NOCONNECT)

        # 명시적으로 지정된 컨트롤러만 기억 (도출된 기본값은 기억하지 않음)
        if config.controller.address:
            self.context.remember_controller(config.controller.address)
            self.logger.info(f"Using custom controller [{config.controller.address}]")
        else:
            remembered = self.context.remembered_controller()
            if remembered:
                self.logger.info(f"Using custom controller [{remembered}]")

    def install(self, os_release):
        """자체 설치 및 부팅 서비스 등록 (실패해도 계속 진행)"""
        self._enter("self-installation")
        if self.installer is None:
            self.installer = SelfInstaller(self.config, self.context.client)
        ok, msg = self.installer.ensure_installed()
        if not ok:
            self.logger.warning(f"Self-installation failed: {msg}")
        ok, msg = self.installer.ensure_service(os_release)
        if not ok:
            self.logger.warning(f"Boot service setup failed: {msg}")

    def run(self) -> bool:
        """메인 실행 로직. 관리 연결이 확립되면 True"""
        self._enter("privilege check")
        check_root()
        self.prepare()

        os_release = read_os_release(self.config.paths.os_release)
        self.install(os_release)

        self._enter("identity")
        self.context.identity = NodeIdentity.detect(
            self.context.network, self.config.agent.interface_poll_attempts
        )
        self.logger.debug(f"Node identity: interface [{self.context.identity.interface}], "
                          f"MAC [{self.context.identity.mac}]")

        self._enter("recovery")
        RecoveryChannel(self.context).run()

        self._enter("platform check")
        check_supported(os_release)

        self._enter("key material")
        controller = resolve_controller(self.context)
        loop = NegotiationLoop(self.context, controller)
        loop.prepare()

        self._enter("bootstrap negotiation")
        state = loop.run()
        if state == LoopState.CONNECTED:
            self.logger.info("Bootstrapping finished successfully")
            return True
        self.logger.error("Bootstrapping stopped without a working management connection")
        return False
