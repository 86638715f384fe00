"""
CLI 메인 인터페이스
Click 및 Rich 기반 명령행 진입점
"""

import sys
import click
from rich.console import Console
from rich.panel import Panel

from . import __version__
from .agent import BootstrapAgent
from .config import Config
from .errors import BootstrapError
from .logger import init_logger

console = Console()

CONTEXT_SETTINGS = dict(help_option_names=['-h', '--help'])


@click.command(context_settings=CONTEXT_SETTINGS)
@click.option('--verbose', '-v', is_flag=True, help='Verbose output')
@click.option('--controller', '-c', metavar='HOST', help='URL of the controller to connect to')
def main(verbose, controller):
    """Bootstrap a Towalink node

    관리 터널이 동작할 때까지 컨트롤러와 협상을 반복합니다.

    \b
    Example:
      towalink-bootstrap --verbose
    """
    # 설정 로드 (기본값 < 설정 파일 < 명령행)
    cfg = Config()
    cfg.apply_cli(verbose=verbose, controller=controller)

    # 로거 초기화
    try:
        logger = init_logger(cfg.paths.log_file, cfg.agent.verbose, cfg.agent.syslog, cfg.agent.debug)
    except OSError as e:
        console.print(f"[yellow]Log file [{cfg.paths.log_file}] is not writable: {e}[/yellow]")
        logger = init_logger(None, cfg.agent.verbose, cfg.agent.syslog, cfg.agent.debug)

    if cfg.agent.verbose:
        console.print(Panel.fit(
            f"[bold cyan]Towalink Bootstrap Agent[/bold cyan] {__version__}",
            border_style="cyan"
        ))

    agent = BootstrapAgent(cfg)
    try:
        success = agent.run()
    except BootstrapError as e:
        logger.error(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        logger.warning("Execution interrupted")
        sys.exit(130)
    except Exception:
        logger.exception(f"Unexpected error during step [{agent.step}]. Aborting.")
        sys.exit(1)

    sys.exit(0 if success else 1)


if __name__ == '__main__':
    main()
