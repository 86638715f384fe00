"""
로깅 시스템
콘솔(Rich), 영구 로그 파일, 선택적 syslog 출력 지원
"""

import logging
import logging.handlers
import os
from datetime import datetime
from typing import Optional
from rich.logging import RichHandler
from rich.console import Console

console = Console()

LOGGER_NAME = "towalink_bootstrap"
SYSLOG_PREFIX = "towalink-bootstrap: "


class ElapsedStampFilter(logging.Filter):
    """레코드에 타임스탬프 부착 (첫 줄은 절대 시각, 이후는 시작 후 경과 초)"""

    def __init__(self):
        super().__init__()
        self.time_start: Optional[float] = None

    def filter(self, record: logging.LogRecord) -> bool:
        if self.time_start is None:
            self.time_start = record.created
            record.stamp = datetime.fromtimestamp(record.created).strftime("[%Y-%m-%d %H:%M:%S]")
        else:
            record.stamp = "[+%03d]" % int(record.created - self.time_start)
        return True


class AgentLogger:
    """에이전트 로거"""

    def __init__(self, log_file: Optional[str] = None, verbose: bool = False,
                 syslog: bool = False, debug: bool = False):
        self.log_file = log_file
        self.verbose = verbose
        self.console_level = logging.DEBUG if (verbose or debug) else logging.INFO

        self.logger = logging.getLogger(LOGGER_NAME)
        self.logger.setLevel(logging.DEBUG)
        self.logger.propagate = False

        # 기존 핸들러/필터 제거
        self.logger.handlers.clear()
        self.logger.filters.clear()

        self.stamp_filter = ElapsedStampFilter()
        self.logger.addFilter(self.stamp_filter)

        # 파일 핸들러 (재실행 시에도 이어서 기록)
        if log_file:
            log_dir = os.path.dirname(log_file)
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)
            file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter('%(stamp)s %(levelname)s - %(message)s'))
            self.logger.addHandler(file_handler)

        # 콘솔 핸들러 (Rich)
        rich_handler = RichHandler(
            console=console,
            rich_tracebacks=True,
            show_time=False,
            show_path=debug
        )
        rich_handler.setLevel(self.console_level)
        rich_handler.setFormatter(logging.Formatter('%(stamp)s %(message)s'))
        self.logger.addHandler(rich_handler)

        # syslog 핸들러
        if syslog:
            try:
                syslog_handler = logging.handlers.SysLogHandler(address="/dev/log")
            except OSError as e:
                self.logger.warning(f"Syslog is not available: {e}")
            else:
                syslog_handler.setLevel(logging.INFO)
                syslog_handler.setFormatter(logging.Formatter(SYSLOG_PREFIX + '%(message)s'))
                self.logger.addHandler(syslog_handler)

    def debug(self, message: str):
        """상세(verbose) 로그"""
        self.logger.debug(message)

    def info(self, message: str):
        self.logger.info(message)

    def warning(self, message: str):
        self.logger.warning(message)

    def error(self, message: str):
        self.logger.error(message)

    def critical(self, message: str):
        self.logger.critical(message)

    def exception(self, message: str):
        """예외 로그 (트레이스백 포함)"""
        self.logger.exception(message)


# 글로벌 로거 인스턴스
_logger: Optional[AgentLogger] = None


def get_logger() -> AgentLogger:
    """로거 인스턴스 가져오기 (초기화 전에는 콘솔 전용)"""
    global _logger
    if _logger is None:
        _logger = AgentLogger()
    return _logger


def init_logger(log_file: Optional[str], verbose: bool = False,
                syslog: bool = False, debug: bool = False) -> AgentLogger:
    """로거 초기화"""
    global _logger
    _logger = AgentLogger(log_file, verbose, syslog, debug)
    return _logger
