"""
플랫폼 확인 모듈
root 권한, /etc/os-release 정보, 터널 도구 설치 여부
"""

import os
import shutil
from dataclasses import dataclass
from typing import Dict

from .errors import PrivilegeError, UnsupportedPlatformError

REQUIRED_TOOLS = ("wg", "wg-quick")


@dataclass(frozen=True)
class OSRelease:
    id: str = ""
    version_codename: str = ""

    @property
    def is_alpine(self) -> bool:
        return self.id == "alpine"


def parse_os_release(text: str) -> Dict[str, str]:
    """KEY=value 형식 파싱 (따옴표 제거, 주석/빈 줄 무시)"""
    values = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        name, value = line.split("=", 1)
        values[name.strip()] = value.strip().strip('"').strip("'")
    return values


def read_os_release(path: str = "/etc/os-release") -> OSRelease:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            values = parse_os_release(f.read())
    except OSError:
        values = {}
    return OSRelease(id=values.get("ID", ""), version_codename=values.get("VERSION_CODENAME", ""))


def check_root():
    """root 권한 확인"""
    if os.geteuid() != 0:
        raise PrivilegeError("You need to run this script with root privileges")


def check_supported(os_release: OSRelease):
    """터널 도구가 없으면 지원하지 않는 환경으로 판단 (패키지 설치는 범위 밖)"""
    missing = [tool for tool in REQUIRED_TOOLS if shutil.which(tool) is None]
    if missing:
        name = os_release.id or "unknown"
        codename = os_release.version_codename or "unknown"
        raise UnsupportedPlatformError(
            f"The operating system version [{name} {codename}] is not yet supported: "
            f"missing {', '.join(missing)}"
        )
