"""
다운로드 문서 검증 및 파싱

부트스트랩 설정과 복구 절차는 마지막 줄이 `# EOF` 인 YAML 문서이다.
내려받은 내용은 실행하지 않고, 데이터로만 해석해 로컬 코드가 적용한다.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional
import yaml

from .errors import DocumentError
from .identity import KEY_SLOTS

TERMINATOR = "# EOF"


class Verdict(Enum):
    """문서 검증 결과"""
    ACCEPTED = "accepted"
    FORCED = "forced"  # 키 검증 실패했으나 완화 정책으로 수용
    INCOMPLETE = "incomplete"
    UNTRUSTED = "untrusted"


def is_complete(text: str) -> bool:
    """마지막 줄이 종료 표식인지 확인 (잘린 다운로드 감지)"""
    lines = text.splitlines()
    return bool(lines) and lines[-1] == TERMINATOR


def check(text: str, key: Optional[str], relaxed: bool = False) -> Verdict:
    """완전성 → 진위 순서로 검증

    Args:
        text: 다운로드한 문서
        key: 확정된 키. None 이면 진위 검증 생략
        relaxed: True 이면 키가 없어도 수용 (FORCED)
    """
    if not is_complete(text):
        return Verdict.INCOMPLETE
    if key is None or key in text:
        return Verdict.ACCEPTED
    return Verdict.FORCED if relaxed else Verdict.UNTRUSTED


def _load_mapping(text: str) -> Dict[str, Any]:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise DocumentError(f"Document is not valid YAML: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise DocumentError("Document must be a mapping")
    return data


def _optional_str(data: Dict[str, Any], name: str) -> Optional[str]:
    value = data.get(name)
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        raise DocumentError(f"Field [{name}] must be a non-empty string")
    return value.strip()


def _optional_bool(data: Dict[str, Any], name: str) -> bool:
    value = data.get(name, False)
    if not isinstance(value, bool):
        raise DocumentError(f"Field [{name}] must be true or false")
    return value


def _optional_int(data: Dict[str, Any], name: str) -> Optional[int]:
    value = data.get(name)
    # bool 은 int 의 하위 클래스이므로 따로 거부
    if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
        raise DocumentError(f"Field [{name}] must be an integer")
    return value


def _as_list(value: Any, name: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return value
    raise DocumentError(f"Field [{name}] must be a string or a list of strings")


def _parse_tunnel(data: Any) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise DocumentError("Field [tunnel] must be a mapping")

    raw_peers = data.get("peers")
    if raw_peers is None:
        raw_peers = []
    if not isinstance(raw_peers, list):
        raise DocumentError("Field [peers] must be a list")

    peers = []
    for index, peer in enumerate(raw_peers):
        if not isinstance(peer, dict) or not peer.get("public_key"):
            raise DocumentError(f"Peer #{index} needs a public_key")
        peers.append({
            "public_key": str(peer["public_key"]),
            "endpoint": peer.get("endpoint"),
            "allowed_ips": _as_list(peer.get("allowed_ips"), "allowed_ips"),
            "persistent_keepalive": _optional_int(peer, "persistent_keepalive"),
            "preshared_key": _optional_bool(peer, "preshared_key"),
        })
    if not peers:
        raise DocumentError("Field [tunnel] needs at least one peer")

    return {
        "address": _as_list(data.get("address"), "address"),
        "listen_port": _optional_int(data, "listen_port"),
        "peers": peers,
    }


@dataclass
class BootstrapDocument:
    """컨트롤러가 내려준 부트스트랩 설정"""
    tunnel: Dict[str, Any]
    controller: Optional[str] = None
    cacert: Optional[str] = None


@dataclass
class RecoveryDocument:
    """복구 절차"""
    controller: Optional[str] = None
    cacert: Optional[str] = None
    reset_tunnel: bool = False
    reset_keys: List[str] = field(default_factory=list)


def parse_bootstrap(text: str) -> BootstrapDocument:
    data = _load_mapping(text)
    if "tunnel" not in data:
        raise DocumentError("Bootstrap config has no [tunnel] section")
    return BootstrapDocument(
        tunnel=_parse_tunnel(data["tunnel"]),
        controller=_optional_str(data, "controller"),
        cacert=_optional_str(data, "cacert"),
    )


def parse_recovery(text: str) -> RecoveryDocument:
    data = _load_mapping(text)
    reset_keys = _as_list(data.get("reset_keys"), "reset_keys")
    unknown = [slot for slot in reset_keys if slot not in KEY_SLOTS]
    if unknown:
        raise DocumentError(f"Unknown key slots in [reset_keys]: {', '.join(unknown)}")
    return RecoveryDocument(
        controller=_optional_str(data, "controller"),
        cacert=_optional_str(data, "cacert"),
        reset_tunnel=_optional_bool(data, "reset_tunnel"),
        reset_keys=reset_keys,
    )
