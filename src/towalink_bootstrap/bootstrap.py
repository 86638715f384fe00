"""
부트스트랩 협상 루프

컨트롤러에 노드 식별자와 키를 보내 터널 설정을 받고, 관리 인터페이스를 올린 뒤
터널 너머 링크 로컬 주소로 연결을 확인할 때까지 고정 간격으로 반복한다.

반복 1회의 순서: FETCH → APPLY → BRING_UP → VERIFY → (CONNECTED | WAIT)
어떤 반복의 실패도 치명적이지 않으며 기록 후 재시도한다.
"""

import time
from enum import Enum
from typing import Callable, Optional

from . import documents
from .client import NegotiationRequest, ResponseStatus
from .context import RunContext
from .errors import DocumentError
from .identity import CONFIG_KEY, RECOVERY_KEY, NodeIdentity
from .logger import get_logger
from .network import resolve_canonical
from .state import COUNTER_NOCONNECT


class LoopState(Enum):
    FETCH = "fetch"
    APPLY = "apply"
    BRING_UP = "bring_up"
    VERIFY = "verify"
    WAIT = "wait"
    CONNECTED = "connected"
    GAVE_UP = "gave_up"


def resolve_controller(context: RunContext, resolver=None) -> str:
    """컨트롤러 주소 결정: 명시적 지정 > 기억된 값 > MAC 기반 도출"""
    config = context.config
    if config.controller.address:
        return config.controller.address
    remembered = context.remembered_controller()
    if remembered:
        return remembered
    derived = context.identity.bootstrap_host(config.controller.base_domain)
    # 인증서 오류를 피하기 위해 CNAME 해석
    return (resolver or resolve_canonical)(derived, config.agent.max_cname_depth)


class NegotiationLoop:
    """부트스트랩 상태 머신"""

    def __init__(self, context: RunContext, controller: str,
                 sleep: Callable[[float], None] = time.sleep,
                 clock: Callable[[], float] = time.monotonic):
        self.context = context
        self.context.controller = controller
        self.sleep = sleep
        self.clock = clock
        self.logger = get_logger()
        self.counter = 0
        self.attempts = 0
        self.state = LoopState.FETCH
        self.request: Optional[NegotiationRequest] = None

    @property
    def controller(self) -> str:
        return self.context.controller

    def prepare(self):
        """키 자료 준비 (최초 1회 생성, 이후 재사용)"""
        keys = self.context.keys
        identity: NodeIdentity = self.context.identity
        self.request = NegotiationRequest(
            script_version=self.context.config.agent.script_version,
            mac=identity.mac,
            hostname=identity.reported_hostname(),
            recovery_key=keys.load_or_generate(RECOVERY_KEY),
            config_key=keys.load_or_generate(CONFIG_KEY),
            wg_public=keys.public_key(),
        )
        keys.shared_key()

    def run(self) -> LoopState:
        """CONNECTED 또는 (제한이 설정된 경우) GAVE_UP 까지 반복"""
        if self.request is None:
            self.prepare()
        started = self.clock()
        agent = self.context.config.agent

        while True:
            self.state = self.step()
            if self.state == LoopState.CONNECTED:
                return self.state
            self.attempts += 1
            if agent.max_attempts is not None and self.attempts >= agent.max_attempts:
                self.logger.error(f"Giving up after {self.attempts} attempts")
                self.state = LoopState.GAVE_UP
                return self.state
            if agent.max_duration is not None and self.clock() - started >= agent.max_duration:
                self.logger.error(f"Giving up after {agent.max_duration} seconds")
                self.state = LoopState.GAVE_UP
                return self.state

    def should_fetch(self) -> bool:
        """미구성 상태이거나 연결 없이 재다운로드 간격이 지났으면 설정을 다시 받는다"""
        return (not self.context.tunnel.has_config()
                or self.counter > self.context.config.agent.redownload_after)

    def step(self) -> LoopState:
        """반복 1회"""
        config = self.context.config
        tunnel = self.context.tunnel
        connected = False

        if self.should_fetch():
            self.fetch_and_apply()

        if tunnel.has_config():
            self.state = LoopState.BRING_UP
            ok, msg = tunnel.bring_up()
            if ok:
                self.logger.debug(f"Interface [{tunnel.interface}] is up")
            else:
                self.logger.error(f"Error setting up interface [{tunnel.interface}]: {msg}")
            self.state = LoopState.VERIFY
            if tunnel.probe(config.tunnel.probe_address, config.tunnel.probe_timeout):
                self.logger.info("Management connection established and working")
                self.context.store.reset(COUNTER_NOCONNECT)
                connected = True
        elif self.counter == 0:
            # 첫 실패만 비상세 출력
            self.logger.info(
                "Bootstrap config download was not yet possible; "
                f"attempting retry every {config.agent.retry_interval} seconds..."
            )

        if not connected:
            self.logger.debug(
                "Management connection not yet working; attempting retry after "
                f"sleeping for {config.agent.retry_interval} seconds..."
            )
            self.sleep(config.agent.retry_interval)
        self.counter += 1
        return LoopState.CONNECTED if connected else LoopState.WAIT

    def fetch_and_apply(self) -> bool:
        """설정 다운로드 → 검증 → 적용. 적용했으면 True"""
        self.state = LoopState.FETCH
        self.logger.debug(f"Attempting to download and process bootstrap config from [{self.controller}]...")
        response = self.context.client.negotiate(self.controller, self.request)

        if response.status == ResponseStatus.NOT_AVAILABLE:
            self.logger.debug(
                "Bootstrap config download failed. Controller reached but config not yet available. "
                "Ignoring and continuing"
            )
            return False
        if response.status == ResponseStatus.HTTP_ERROR:
            self.logger.debug(
                f"Bootstrap config download failed with http response {response.http_code}. "
                "Ignoring and continuing"
            )
            return False
        if response.status == ResponseStatus.TRANSPORT_ERROR:
            self.logger.debug(f"Bootstrap config download failed ({response.error}). Ignoring and continuing")
            return False
        self.logger.debug("Bootstrap config has downloaded without error")

        verdict = documents.check(response.body, self.context.keys.committed(CONFIG_KEY))
        if verdict == documents.Verdict.INCOMPLETE:
            self.logger.debug("Bootstrap config is incomplete (no end marker). Not applying it")
            return False
        if verdict == documents.Verdict.UNTRUSTED:
            self.logger.warning("Bootstrap config failed validation. Not applying it")
            return False
        self.logger.debug("Bootstrap config is completely downloaded and validated")

        self.state = LoopState.APPLY
        self.logger.info("Applying downloaded bootstrap config...")
        try:
            self.apply(documents.parse_bootstrap(response.body))
        except DocumentError as e:
            self.logger.error(f"Bootstrap config could not be applied: {e}")
            return False
        except OSError as e:
            self.logger.error(f"Writing bootstrap config failed: {e}")
            return False

        self.counter = 0
        # 키 전달이 확인되었으므로 임시 키를 확정
        self.context.keys.promote(RECOVERY_KEY)
        self.context.keys.promote(CONFIG_KEY)
        return True

    def apply(self, bootstrap: documents.BootstrapDocument):
        """부트스트랩 문서 적용 (터널 설정 파일 생성)"""
        keys = self.context.keys
        if bootstrap.cacert:
            self.context.install_cacert(bootstrap.cacert)
        content = self.context.tunnel.render_config(bootstrap.tunnel, keys.private_key(), keys.shared_key())
        self.context.tunnel.write_config(content)
        if bootstrap.controller and bootstrap.controller != self.controller:
            self.context.remember_controller(bootstrap.controller)
