"""
플랫폼 확인 모듈 테스트
"""

from unittest.mock import patch
import pytest

from towalink_bootstrap.errors import PrivilegeError, UnsupportedPlatformError
from towalink_bootstrap.platform_info import (
    OSRelease, check_root, check_supported, parse_os_release, read_os_release
)

OS_RELEASE = """PRETTY_NAME="Debian GNU/Linux 12 (bookworm)"
NAME="Debian GNU/Linux"
# comment
VERSION_CODENAME=bookworm
ID=debian
"""


def test_parse_os_release():
    values = parse_os_release(OS_RELEASE)
    assert values["ID"] == "debian"
    assert values["VERSION_CODENAME"] == "bookworm"
    assert values["NAME"] == "Debian GNU/Linux"


def test_read_os_release(tmp_path):
    path = tmp_path / "os-release"
    path.write_text('ID=alpine\nVERSION_ID=3.19.1\n')

    release = read_os_release(str(path))
    assert release.id == "alpine"
    assert release.is_alpine
    assert release.version_codename == ""


def test_read_missing_os_release(tmp_path):
    assert read_os_release(str(tmp_path / "missing")) == OSRelease()


@patch('towalink_bootstrap.platform_info.os.geteuid', return_value=1000)
def test_check_root_rejects_user(mock_geteuid):
    with pytest.raises(PrivilegeError):
        check_root()


@patch('towalink_bootstrap.platform_info.os.geteuid', return_value=0)
def test_check_root_accepts_root(mock_geteuid):
    check_root()


@patch('towalink_bootstrap.platform_info.shutil.which', return_value="/usr/bin/wg")
def test_check_supported(mock_which):
    check_supported(OSRelease("debian", "bookworm"))


@patch('towalink_bootstrap.platform_info.shutil.which', return_value=None)
def test_check_supported_missing_tools(mock_which):
    with pytest.raises(UnsupportedPlatformError) as exc_info:
        check_supported(OSRelease("debian", "bookworm"))
    assert "debian bookworm" in str(exc_info.value)
    assert "wg-quick" in str(exc_info.value)
