"""
복구 채널
노드별 URL 에서 복구 문서를 받아 검증 후 적용 (실행마다 1회)

검증 정책: 확정된 recovery key 가 있으면 문서에 포함되어 있어야 한다.
단, 관리 연결 실패가 임계 횟수 이상 이어졌다면 복구 경로가 유일한 해결책으로 보고
검증 실패 문서도 적용한다.
"""

from enum import Enum

from . import documents
from .context import RunContext
from .identity import RECOVERY_KEY
from .logger import get_logger
from .network import resolve_canonical
from .state import COUNTER_NOCONNECT


class RecoveryOutcome(Enum):
    UNAVAILABLE = "unavailable"
    INCOMPLETE = "incomplete"
    REJECTED = "rejected"
    APPLIED = "applied"


class RecoveryChannel:
    """복구 문서 다운로드/검증/적용"""

    def __init__(self, context: RunContext, resolver=None):
        self.context = context
        self.resolver = resolver or resolve_canonical
        self.logger = get_logger()

    def run(self) -> RecoveryOutcome:
        """복구 절차 1회 수행

        문서 적용 중 오류(DocumentError)는 이 구성요소의 실패로 상위에 전파한다.
        """
        config = self.context.config
        host = self.context.identity.recovery_host(config.controller.base_domain)
        # 와일드카드 인증서가 없을 때의 인증서 오류를 피하기 위해 CNAME 해석
        host = self.resolver(host, config.agent.max_cname_depth)
        self.logger.debug(f"Attempting to download and process recovery from [{host}]...")

        response = self.context.client.fetch_recovery(host)
        if not response.ok:
            reason = response.error or f"http response {response.http_code}"
            self.logger.debug(
                f"Recovery download not possible; recovery is probably disabled ({reason}). "
                "Ignoring and continuing"
            )
            return RecoveryOutcome.UNAVAILABLE
        self.logger.debug("Recovery document has downloaded without error")

        noconnect = self.context.store.get_counter(COUNTER_NOCONNECT)
        relaxed = noconnect >= config.agent.recovery_trust_threshold
        verdict = documents.check(response.body, self.context.keys.committed(RECOVERY_KEY), relaxed)

        if verdict == documents.Verdict.INCOMPLETE:
            self.logger.debug("Recovery document is incomplete (no end marker). Not applying it")
            return RecoveryOutcome.INCOMPLETE
        if verdict == documents.Verdict.UNTRUSTED:
            self.logger.warning("Recovery document failed validation. Not applying it")
            return RecoveryOutcome.REJECTED
        if verdict == documents.Verdict.FORCED:
            self.logger.warning(
                "Recovery document failed validation. Applying anyway since management "
                "connection seems to have failed permanently"
            )
        else:
            self.logger.debug("Recovery document validated based on recovery key")

        self.logger.info("Applying recovery document...")
        self.apply(documents.parse_recovery(response.body))
        return RecoveryOutcome.APPLIED

    def apply(self, recovery: documents.RecoveryDocument):
        """복구 지시 적용 (이후 단계가 변경 사항을 보도록 컨텍스트를 갱신)"""
        if recovery.controller:
            self.context.remember_controller(recovery.controller)
            self.context.config.controller.address = recovery.controller
        if recovery.cacert:
            self.context.install_cacert(recovery.cacert)
        if recovery.reset_tunnel:
            self.context.tunnel.remove_config()
        for slot in recovery.reset_keys:
            self.context.keys.discard(slot)
