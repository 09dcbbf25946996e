"""
用户界面模块 - 负责与用户的交互
"""
from typing import List, Optional

import pyperclip
from loguru import logger
from rich.console import Console
from rich.prompt import Confirm, Prompt
from rich.table import Table

from ..core.errors import ValidationError
from ..core.models import Classification, MigrationPair, RunSummary
from ..core.path_validator import clean_path_input, validate_pair

DONE = "done"
CLIPBOARD = "c"

RESULT_STYLES = {
    Classification.SUCCESS: "[green]成功[/green]",
    Classification.WARNING: "[yellow]警告[/yellow]",
    Classification.FAILURE: "[red]失败[/red]",
}


class ConsoleConfirmer:
    """风险确认：必须输入字面量 YES 才继续"""

    TOKEN = "YES"

    def __init__(self, console: Console = None):
        self.console = console or Console()

    def __call__(self, message: str) -> bool:
        self.console.print(f"[bold red]⚠ {message}[/bold red]")
        answer = Prompt.ask(
            f"输入 [bold]{self.TOKEN}[/bold] 继续，其他任意内容跳过此路径对",
            default="",
            show_default=False,
        )
        return answer.strip().upper() == self.TOKEN


def assume_yes(message: str) -> bool:
    logger.warning(f"已自动确认: {message}")
    return True


class InteractiveUI:
    """交互式用户界面类"""

    def __init__(self, console: Console = None):
        self.console = console or Console()

    def _read_clipboard(self) -> Optional[str]:
        try:
            content = pyperclip.paste()
        except pyperclip.PyperclipException as e:
            logger.error(f"读取剪贴板时发生错误: {e}")
            return None
        lines = [clean_path_input(p) for p in (content or "").splitlines() if p.strip()]
        if not lines:
            logger.warning("剪贴板为空")
            return None
        logger.info(f"从剪贴板读取: {lines[0]}")
        return lines[0]

    def _ask_path(self, label: str, **kwargs) -> Optional[str]:
        raw = Prompt.ask(label, **kwargs).strip()
        if raw.lower() == CLIPBOARD:
            return self._read_clipboard()
        return raw

    def collect_pairs(self) -> List[MigrationPair]:
        """交互式收集路径对，源路径处输入 'done' 或直接回车结束"""
        logger.info("请输入源/目标路径对（源路径处输入 'c' 从剪贴板读取，输入 'done' 结束）")
        pairs: List[MigrationPair] = []

        while True:
            source = self._ask_path("  [bold cyan]源路径[/bold cyan]", default=DONE, show_default=False)
            if source is None:
                continue
            if not source or source.lower() == DONE:
                break

            destination = self._ask_path("  [bold cyan]目标路径[/bold cyan]", default="", show_default=False)
            if destination is None:
                continue

            try:
                pair = validate_pair(source, destination)
            except ValidationError as e:
                logger.error(f"无效的路径对，已跳过: {e}")
                continue

            if pair in pairs:
                logger.debug(f"已存在: {pair}")
                continue
            pairs.append(pair)
            logger.info(f"已添加: {pair}")

        return pairs

    def show_pairs(self, pairs: List[MigrationPair]):
        table = Table(title="待镜像的路径对")
        table.add_column("No.", style="cyan", no_wrap=True)
        table.add_column("源", style="magenta", overflow="fold")
        table.add_column("目标", style="white", overflow="fold")
        for i, pair in enumerate(pairs, 1):
            table.add_row(str(i), str(pair.source), str(pair.destination))
        self.console.print(table)

    def confirm_pairs(self, pairs: List[MigrationPair]) -> bool:
        self.show_pairs(pairs)
        return Confirm.ask("确认开始镜像这些路径对?", default=True)

    def show_summary(self, summary: RunSummary):
        table = Table(title="镜像总结")
        table.add_column("No.", style="cyan", no_wrap=True)
        table.add_column("源", style="magenta", overflow="fold")
        table.add_column("目标", style="white", overflow="fold")
        table.add_column("结果", no_wrap=True)
        table.add_column("退出码", justify="right")
        table.add_column("日志 / 错误", overflow="fold")
        for i, outcome in enumerate(summary.outcomes, 1):
            table.add_row(
                str(i),
                str(outcome.pair.source),
                str(outcome.pair.destination),
                RESULT_STYLES[outcome.classification],
                "-" if outcome.exit_code is None else str(outcome.exit_code),
                str(outcome.log_path) if outcome.log_path else outcome.error,
            )
        self.console.print(table)
        self.console.print(
            f"[bold]成功 [green]{summary.succeeded}[/green]，失败 [red]{summary.failed}[/red]，"
            f"警告 [yellow]{summary.warnings}[/yellow][/bold]"
        )
