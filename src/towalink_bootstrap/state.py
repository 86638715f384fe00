"""
영구 상태 저장소
키마다 파일 하나에 스칼라 값을 저장하는 디렉토리 (카운터, 키, 기억된 컨트롤러)

모든 쓰기는 임시 파일 작성 후 rename 으로 이루어지므로 어느 시점에 프로세스가
종료되더라도 항목은 완전히 이전 값이거나 완전히 새 값이다.
"""

import os
import tempfile
from pathlib import Path
from typing import Optional

from .logger import get_logger

COUNTER_INVOCATIONS = "counter_invocations"
COUNTER_NOCONNECT = "counter_noconnect"
CONTROLLER = "controller"


def atomic_write(path: str, content: str, mode: int = 0o600):
    """임시 파일에 쓴 뒤 rename (중간에 종료되어도 찢어진 파일이 남지 않음)"""
    directory = os.path.dirname(path) or "."
    os.makedirs(directory, exist_ok=True)
    fd, temp_path = tempfile.mkstemp(prefix=f".{os.path.basename(path)}.", dir=directory)
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(temp_path, mode)
        os.replace(temp_path, path)
    except BaseException:
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise


class StateStore:
    """파일 기반 키-값 저장소"""

    def __init__(self, state_dir: str):
        self.state_dir = Path(state_dir)
        self.logger = get_logger()
        self._ensure_dir()

    def _ensure_dir(self):
        """저장 디렉토리 생성 (소유자 전용 권한)"""
        self.state_dir.mkdir(parents=True, exist_ok=True)
        os.chmod(self.state_dir, 0o700)

    def path(self, key: str) -> Path:
        if not key or os.sep in key or key.startswith("."):
            raise ValueError(f"Invalid state key: {key!r}")
        return self.state_dir / key

    def exists(self, key: str) -> bool:
        return self.path(key).exists()

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """값 읽기 (파일이 없으면 기본값)"""
        try:
            with open(self.path(key), 'r', encoding='utf-8') as f:
                return f.read().strip()
        except FileNotFoundError:
            return default

    def set(self, key: str, value: str):
        """값 쓰기 (임시 파일 → rename)"""
        atomic_write(str(self.path(key)), f"{value}\n")
        self.logger.debug(f"State [{key}] written")

    def rename(self, source: str, target: str) -> bool:
        """항목 이름 변경 (원자적). 원본이 없으면 False"""
        try:
            os.replace(self.path(source), self.path(target))
        except FileNotFoundError:
            return False
        return True

    def delete(self, key: str) -> bool:
        try:
            self.path(key).unlink()
        except FileNotFoundError:
            return False
        return True

    def get_counter(self, key: str) -> int:
        """카운터 읽기 (없거나 손상된 경우 0)"""
        value = self.get(key)
        if value is None:
            return 0
        try:
            counter = int(value)
        except ValueError:
            self.logger.warning(f"Counter file [{key}] is corrupt ({value!r}); treating it as 0")
            return 0
        return max(counter, 0)

    def increment(self, key: str) -> int:
        """카운터 1 증가 (파일이 없으면 0에서 시작)"""
        counter = self.get_counter(key) + 1
        self.set(key, str(counter))
        return counter

    def reset(self, key: str):
        """카운터 0으로 초기화"""
        self.set(key, "0")
