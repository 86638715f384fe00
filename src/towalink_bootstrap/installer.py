"""
자체 설치 모듈
실행 파일을 정해진 경로에 설치하고 부팅 시 자동 실행되도록 서비스 등록
"""

import os
import shutil
import subprocess
import sys
import tempfile
from pathlib import Path
from typing import List, Optional, Tuple
from jinja2 import Template

from .client import ControllerClient
from .config import Config
from .logger import get_logger
from .platform_info import OSRelease
from .state import atomic_write

SERVICE_NAME = "towalink_bootstrap"

SYSTEMD_TEMPLATE = """[Unit]
Description=Towalink bootstrap service
After=network-online.target
Wants=network-online.target

[Service]
Type=simple
WorkingDirectory=/root
ExecStart={{ command }}

[Install]
WantedBy=multi-user.target
"""

OPENRC_TEMPLATE = """#!/sbin/openrc-run

depend() {
	need net
}

name="{{ name }}"
command="{{ command }}"
pidfile="/run/${RC_SVCNAME}.pid"
command_background="yes"
stopsig="SIGTERM"
"""


class SelfInstaller:
    """자체 설치 및 부팅 서비스 관리 클래스"""

    def __init__(self, config: Config, client: ControllerClient,
                 running_file: Optional[str] = None,
                 systemd_dir: str = "/etc/systemd/system",
                 init_dir: str = "/etc/init.d"):
        self.config = config
        self.client = client
        self.running_file = Path(running_file or sys.argv[0]).resolve()
        self.install_file = Path(config.paths.install_file)
        self.systemd_dir = Path(systemd_dir)
        self.init_dir = Path(init_dir)
        self.logger = get_logger()

    def is_installed_instance(self) -> bool:
        """현재 실행 중인 파일이 설치 경로의 파일인지"""
        return self.running_file == self.install_file.resolve()

    def ensure_installed(self) -> Tuple[bool, str]:
        """설치 경로에 최신 에이전트 설치 (실행 중인 인스턴스는 덮어쓰지 않음)"""
        if self.is_installed_instance():
            return True, "already running from install path"

        self.logger.debug(
            f"Currently not running bootstrap script from [{self.install_file}]. Installing at that location"
        )
        self.install_file.parent.mkdir(parents=True, exist_ok=True)

        response = self.client.fetch_installer(self.config.controller.install_url)
        if response.ok and response.content:
            self._write_executable(response.content)
            self.logger.debug("Bootstrap script downloaded and installed")
            return True, "downloaded"

        reason = response.error or f"http response {response.http_code}"
        self.logger.debug(f"Bootstrap script download failed ({reason}). Working around...")
        try:
            shutil.copyfile(self.running_file, self.install_file)
            os.chmod(self.install_file, 0o700)
        except OSError as e:
            self.logger.error(f"Installing running copy failed: {e}")
            return False, str(e)
        return True, "copied"

    def _write_executable(self, content: bytes):
        directory = str(self.install_file.parent)
        fd, temp_path = tempfile.mkstemp(prefix=f".{self.install_file.name}.", dir=directory)
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(content)
            os.chmod(temp_path, 0o700)
            os.replace(temp_path, self.install_file)
        except BaseException:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise

    def render_service(self, os_release: OSRelease) -> Tuple[Path, str, int]:
        """부팅 서비스 정의 생성 (경로, 내용, 권한)"""
        if os_release.is_alpine:
            content = Template(OPENRC_TEMPLATE).render(
                name=SERVICE_NAME, command=str(self.install_file)
            )
            return self.init_dir / SERVICE_NAME, content, 0o744
        content = Template(SYSTEMD_TEMPLATE).render(command=str(self.install_file))
        return self.systemd_dir / f"{SERVICE_NAME}.service", content, 0o644

    def enable_command(self, os_release: OSRelease) -> List[str]:
        if os_release.is_alpine:
            return ["rc-update", "-q", "add", SERVICE_NAME, "default"]
        return ["systemctl", "enable", f"{SERVICE_NAME}.service"]

    def ensure_service(self, os_release: OSRelease) -> Tuple[bool, str]:
        """부팅 시 자동 실행 설정"""
        self.logger.debug("Making sure that bootstrap script gets started on boot")
        path, content, mode = self.render_service(os_release)
        try:
            atomic_write(str(path), content, mode)
        except OSError as e:
            error_msg = f"Writing service definition [{path}] failed: {e}"
            self.logger.error(error_msg)
            return False, error_msg

        cmd = self.enable_command(os_release)
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=30)
        except (OSError, subprocess.TimeoutExpired) as e:
            error_msg = f"Enabling boot service failed: {e}"
            self.logger.error(error_msg)
            return False, error_msg

        if result.returncode != 0:
            error_msg = f"Enabling boot service failed: {(result.stderr or result.stdout).strip()}"
            self.logger.error(error_msg)
            return False, error_msg
        return True, str(path)
