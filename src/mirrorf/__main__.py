"""
mirrorf 包的命令行入口点，使用 Typer 实现命令行界面
"""
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import typer
from loguru import logger
from rich.console import Console

from .config import TOOL_CHOICES, MirrorConfig, load_config
from .core.errors import ConfigurationError
from .core.mirror_tool import prepare_log_root, select_tool
from .core.models import PairInput
from .core.orchestrator import MigrationOrchestrator
from .ui.interactive import ConsoleConfirmer, InteractiveUI, assume_yes


def setup_logger(app_name="mirrorf", log_dir=None, console_output=True):
    """配置 Loguru 日志系统

    Args:
        app_name: 应用名称，用于日志目录
        log_dir: 日志根目录，为 None 时只输出到控制台
        console_output: 是否输出到控制台，默认为True

    Returns:
        tuple: (logger, config_info)
            - logger: 配置好的 logger 实例
            - config_info: 包含日志配置信息的字典
    """
    # 清除默认处理器
    logger.remove()

    # 有条件地添加控制台处理器（简洁版格式）
    if console_output:
        logger.add(
            sys.stdout,
            level="INFO",
            format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <blue>{elapsed}</blue> | <level>{level.icon} {level: <8}</level> | <cyan>{name}:{function}:{line}</cyan> - <level>{message}</level>"
        )

    config_info = {'log_file': None}
    if log_dir is None:
        return logger, config_info

    current_time = datetime.now()
    run_dir = Path(log_dir) / app_name / current_time.strftime("%Y-%m-%d")
    run_dir.mkdir(parents=True, exist_ok=True)
    log_file = run_dir / f"{current_time.strftime('%H%M%S')}.log"

    # 添加文件处理器
    logger.add(
        log_file,
        level="DEBUG",
        rotation="10 MB",
        retention="30 days",
        compression="zip",
        encoding="utf-8",
        format="{time:YYYY-MM-DD HH:mm:ss} | {elapsed} | {level.icon} {level: <8} | {name}:{function}:{line} - {message}",
        enqueue=True,
    )
    config_info['log_file'] = str(log_file)

    logger.info(f"日志系统已初始化，应用名称: {app_name}")
    return logger, config_info


# 创建 Typer 应用
app = typer.Typer(help="文件夹镜像迁移工具 - 带安全检查地把源目录镜像到目标目录")

# 初始化 Rich Console，用于用户交互
console = Console()


def pairs_from_options(sources: List[str], destinations: List[str]) -> List[PairInput]:
    """把命令行中成对出现的 --source/--dest 组合为路径对，校验留到处理时逐对进行"""
    if len(sources) != len(destinations):
        raise ConfigurationError(
            f"--source 与 --dest 数量不一致: {len(sources)} 个源，{len(destinations)} 个目标",
            code="UNBALANCED_PAIRS",
        )
    return [PairInput(source, destination) for source, destination in zip(sources, destinations)]


@app.command()
def mirror(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="TOML 配置文件路径"),
    sources: List[str] = typer.Option(None, "--source", "-s", help="源目录（可重复，与 --dest 按顺序配对）"),
    destinations: List[str] = typer.Option(None, "--dest", "-d", help="目标目录（可重复）"),
    log_root: Optional[Path] = typer.Option(None, "--log-root", help="日志根目录"),
    threads: Optional[int] = typer.Option(None, "--threads", min=1, help="镜像线程数"),
    retries: Optional[int] = typer.Option(None, "--retries", min=0, help="失败重试次数"),
    retry_wait: Optional[int] = typer.Option(None, "--retry-wait", min=0, help="重试间隔（秒）"),
    tool: Optional[str] = typer.Option(None, "--tool", help=f"镜像工具: {'/'.join(TOOL_CHOICES)}"),
    dry_run: bool = typer.Option(False, "--dry-run", "-n", help="仅列出将要进行的操作，不修改文件"),
    yes: bool = typer.Option(False, "--yes", "-y", help="自动确认所有风险提示"),
    interactive: bool = typer.Option(False, "--interactive", "-i", help="交互式输入路径对"),
):
    """镜像一个或多个源/目标路径对"""
    setup_logger(console_output=True)
    ui = InteractiveUI(console)

    try:
        settings = load_config(config) if config else MirrorConfig()
        if log_root is not None:
            settings.log_root = log_root
        if threads is not None:
            settings.threads = threads
        if retries is not None:
            settings.retries = retries
        if retry_wait is not None:
            settings.retry_wait = retry_wait
        if tool is not None:
            if tool not in TOOL_CHOICES:
                raise ConfigurationError(f"--tool 必须是 {'/'.join(TOOL_CHOICES)} 之一: {tool}", code="UNKNOWN_TOOL")
            settings.tool = tool

        cli_pairs = pairs_from_options(sources or [], destinations or [])
        pairs = cli_pairs or settings.pairs

        settings.log_root = prepare_log_root(settings.log_root)
        setup_logger(log_dir=settings.log_root, console_output=True)
        mirror_tool = select_tool(settings.tool)
    except ConfigurationError as e:
        logger.error(f"配置错误: {e}")
        raise typer.Exit(code=2)

    if interactive or not pairs:
        pairs = ui.collect_pairs()
        if not pairs:
            logger.warning("没有需要镜像的路径对")
            return
        if not ui.confirm_pairs(pairs):
            logger.info("操作已取消")
            return

    orchestrator = MigrationOrchestrator(
        tool=mirror_tool,
        confirm=assume_yes if yes else ConsoleConfirmer(console),
        log_root=settings.log_root,
        options=settings.mirror_options(list_only=dry_run),
    )
    try:
        summary = orchestrator.run(pairs)
    except ConfigurationError as e:
        logger.error(f"配置错误: {e}")
        raise typer.Exit(code=2)

    ui.show_summary(summary)
    raise typer.Exit(code=summary.exit_code)


def main():
    """主入口函数"""
    try:
        app()
    except KeyboardInterrupt:
        logger.error("操作已中断")
        sys.exit(130)


if __name__ == "__main__":
    main()
