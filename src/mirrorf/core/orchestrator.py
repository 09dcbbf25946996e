"""
迁移编排模块 - 按顺序处理路径对，应用安全检查并调用镜像工具
"""
from pathlib import Path
from typing import Callable, Iterable, Optional, Union

from loguru import logger

from .content_sampler import SAMPLE_CAP, assess_risk, describe, sample_file_count
from .errors import (
    InvocationError,
    SafetyDeclined,
    ToolFailure,
    ToolWarning,
    ValidationError,
)
from .mirror_tool import (
    MirrorOptions,
    MirrorTool,
    build_log_path,
    classify_exit_code,
    new_run_stamp,
    prepare_log_root,
)
from .models import Classification, MigrationOutcome, MigrationPair, PairInput, RunSummary
from .path_validator import DEPTH_WARNING_THRESHOLD, is_suspiciously_deep, path_depth, validate_pair

Confirm = Callable[[str], bool]
PairLike = Union[MigrationPair, PairInput]


class MigrationOrchestrator:
    """迁移编排器

    各路径对相互独立，单个失败不影响后续路径对。
    """

    def __init__(
        self,
        tool: MirrorTool,
        confirm: Confirm,
        log_root: Path,
        options: Optional[MirrorOptions] = None,
        sample_cap: int = SAMPLE_CAP,
    ):
        self.tool = tool
        self.confirm = confirm
        self.log_root = Path(log_root)
        self.options = options or MirrorOptions()
        self.sample_cap = sample_cap

    def run(self, pairs: Iterable[PairLike]) -> RunSummary:
        """处理全部路径对

        Raises:
            ConfigurationError: 日志根目录无法创建，此时不会处理任何路径对
        """
        pairs = list(pairs)
        log_root = prepare_log_root(self.log_root)
        run_stamp = new_run_stamp()
        summary = RunSummary()

        logger.info(f"开始镜像 {len(pairs)} 个路径对，工具: {self.tool.name}，日志目录: {log_root}")
        if self.options.list_only:
            logger.warning("仅列出模式：不会修改任何文件")

        for index, pair in enumerate(pairs, 1):
            logger.info(f"[{index}/{len(pairs)}] {pair}")
            outcome = self.process_pair(pair, log_root, run_stamp)
            summary.add(outcome)

        self._log_summary(summary)
        return summary

    def process_pair(self, requested: PairLike, log_root: Path, run_stamp: str) -> MigrationOutcome:
        """处理单个路径对，校验、确认、调用和文件系统错误都只记为该路径对失败"""
        pair = requested
        try:
            pair = validate_pair(str(requested.source), str(requested.destination))
            self._check_depth(pair)
            self._check_content(pair)
            if not self.options.list_only:
                self._ensure_destination(pair)

            log_path = build_log_path(log_root, run_stamp, pair.source)
            logger.info(f"调用 {self.tool.name}，日志: {log_path}")
            result = self.tool.mirror(pair, self.options, log_path)
        except ValidationError as e:
            logger.error(f"校验失败，跳过: {e}")
            return self._failed(pair, e)
        except SafetyDeclined as e:
            logger.error(f"已取消: {e}")
            return self._failed(pair, e)
        except InvocationError as e:
            logger.error(f"调用失败: {e}")
            return self._failed(pair, e)
        except OSError as e:
            logger.error(f"文件系统错误，跳过: {e}")
            return self._failed(pair, e)

        classification = classify_exit_code(result.exit_code)
        if classification is Classification.FAILURE:
            failure = ToolFailure(result.exit_code, str(result.log_path))
            logger.error(str(failure))
            return MigrationOutcome(pair, classification, result.exit_code, result.log_path, str(failure))
        if classification is Classification.WARNING:
            warning = ToolWarning(result.exit_code, str(result.log_path))
            logger.warning(str(warning))
            return MigrationOutcome(pair, classification, result.exit_code, result.log_path, str(warning))

        logger.success(f"镜像完成，退出码 {result.exit_code}")
        return MigrationOutcome(pair, classification, result.exit_code, result.log_path)

    def _require(self, reason: str):
        logger.warning(reason)
        if not self.confirm(reason):
            raise SafetyDeclined(reason)
        logger.info("操作员已确认，继续")

    def _check_depth(self, pair: MigrationPair):
        if is_suspiciously_deep(pair.source):
            self._require(
                f"源路径层级为 {path_depth(pair.source)}，超过 {DEPTH_WARNING_THRESHOLD}，"
                f"可能是自我嵌套的备份目录: {pair.source}"
            )

    def _check_content(self, pair: MigrationPair):
        source_sample = sample_file_count(pair.source, self.sample_cap)
        destination_sample = None
        if pair.destination.exists():
            destination_sample = sample_file_count(pair.destination, self.sample_cap)
        logger.info(
            f"采样: 源 {describe(source_sample)} 个文件，目标 "
            f"{describe(destination_sample) if destination_sample is not None else '不存在'}"
        )
        risk = assess_risk(source_sample, destination_sample)
        if risk:
            self._require(risk)
        elif source_sample.is_empty and destination_sample is not None and not destination_sample.is_empty:
            logger.warning(f"源目录为空，目标中的 {destination_sample.count} 个文件将被删除")

    @staticmethod
    def _ensure_destination(pair: MigrationPair):
        try:
            pair.destination.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise InvocationError("mkdir", f"无法创建目标目录 '{pair.destination}': {e}") from e

    @staticmethod
    def _failed(pair: PairLike, error: Exception) -> MigrationOutcome:
        return MigrationOutcome(pair, Classification.FAILURE, error=str(error))

    @staticmethod
    def _log_summary(summary: RunSummary):
        logger.info("镜像总结:")
        logger.info(f"  成功: {summary.succeeded} 个路径对")
        if summary.warnings:
            logger.warning(f"  其中有警告: {summary.warnings} 个")
        if summary.failed:
            logger.error(f"  失败: {summary.failed} 个路径对")
            for outcome in summary.outcomes:
                if not outcome.succeeded:
                    logger.error(f"    {outcome.pair}: {outcome.error}")
        else:
            logger.info("  失败: 0 个路径对")
