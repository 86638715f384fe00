"""
컨트롤러 HTTP 클라이언트
부트스트랩 협상(POST), 복구 문서 및 설치 파일 다운로드(GET)
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Union
import requests

from .logger import get_logger


class ResponseStatus(Enum):
    """전송 계층 코드와 분리된 응답 분류"""
    DOWNLOADED = "downloaded"
    NOT_AVAILABLE = "not_available"  # 컨트롤러 도달, 아직 프로비저닝 전 (HTTP 204)
    HTTP_ERROR = "http_error"
    TRANSPORT_ERROR = "transport_error"


@dataclass
class Response:
    status: ResponseStatus
    body: str = ""
    content: bytes = b""
    http_code: Optional[int] = None
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.status == ResponseStatus.DOWNLOADED


@dataclass
class NegotiationRequest:
    """부트스트랩 협상 요청 필드"""
    script_version: str
    mac: str
    hostname: str
    recovery_key: str
    config_key: str
    wg_public: str

    def to_form(self) -> Dict[str, str]:
        return {
            "scriptversion": self.script_version,
            "mac": self.mac,
            "hostname": self.hostname,
            "recovery-key": self.recovery_key,
            "config-key": self.config_key,
            "wg_public": self.wg_public,
        }


class ControllerClient:
    """컨트롤러 통신 클래스"""

    def __init__(self, cacert_file: Optional[str] = None, request_timeout: int = 5,
                 recovery_timeout: int = 5, install_timeout: int = 10,
                 session: Optional[requests.Session] = None):
        self.cacert_file = cacert_file
        self.request_timeout = request_timeout
        self.recovery_timeout = recovery_timeout
        self.install_timeout = install_timeout
        self.session = session or requests.Session()
        self.logger = get_logger()
        self._cacert_warned = False

    def _verify(self) -> Union[str, bool]:
        """CA 고정 인증서가 있으면 사용, 없으면 시스템 인증서 저장소"""
        if self.cacert_file and os.path.exists(self.cacert_file):
            return self.cacert_file
        if not self._cacert_warned:
            self.logger.warning(
                f"Warning: File {self.cacert_file} for CA certificate is not present. "
                "Self-signed Controller certificates will be rejected"
            )
            self._cacert_warned = True
        return True

    @staticmethod
    def bootstrap_url(controller: str) -> str:
        return f"https://{controller}/bootstrap/"

    @staticmethod
    def recovery_url(host: str) -> str:
        return f"https://{host}/recovery/"

    def negotiate(self, controller: str, request: NegotiationRequest) -> Response:
        """부트스트랩 설정 요청"""
        url = self.bootstrap_url(controller)
        try:
            response = self.session.post(
                url,
                data=request.to_form(),
                timeout=self.request_timeout,
                verify=self._verify()
            )
        except requests.exceptions.RequestException as e:
            return Response(ResponseStatus.TRANSPORT_ERROR, error=str(e))

        if response.status_code == 200:
            return Response(ResponseStatus.DOWNLOADED, body=response.text, http_code=200)
        if response.status_code == 204:
            return Response(ResponseStatus.NOT_AVAILABLE, http_code=204)
        return Response(ResponseStatus.HTTP_ERROR, http_code=response.status_code)

    def _get(self, url: str, timeout: int) -> Response:
        try:
            response = self.session.get(url, timeout=timeout)
        except requests.exceptions.RequestException as e:
            return Response(ResponseStatus.TRANSPORT_ERROR, error=str(e))
        if response.status_code == 200:
            return Response(ResponseStatus.DOWNLOADED, body=response.text,
                            content=response.content, http_code=200)
        return Response(ResponseStatus.HTTP_ERROR, http_code=response.status_code)

    def fetch_recovery(self, host: str) -> Response:
        """노드별 복구 문서 다운로드 (공개 인증서로 검증)"""
        return self._get(self.recovery_url(host), self.recovery_timeout)

    def fetch_installer(self, url: str) -> Response:
        """배포된 최신 에이전트 다운로드"""
        return self._get(url, self.install_timeout)
