"""
예외 정의
치명적 오류만 예외로 전파하고, 일시적 실패는 반환값으로 처리한다
"""


class BootstrapError(Exception):
    """부트스트랩 에이전트 기본 예외"""


class PrivilegeError(BootstrapError):
    """root 권한 없음"""


class IdentityError(BootstrapError):
    """하드웨어 식별자(MAC 주소)를 읽을 수 없음"""


class UnsupportedPlatformError(BootstrapError):
    """지원하지 않는 운영체제 또는 터널 도구 누락"""


class KeyMaterialError(BootstrapError):
    """키 생성 도구 실행 실패"""


class DocumentError(BootstrapError):
    """다운로드한 문서의 형식 오류"""
