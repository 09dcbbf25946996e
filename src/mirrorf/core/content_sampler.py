"""
内容采样模块 - 快速估算目录下的文件数量

达到上限即停止扫描，结果仅用于安全提示，不保证完整遍历。
"""
import os
from pathlib import Path
from typing import Optional

from loguru import logger

from .models import SamplingResult

# 采样上限
SAMPLE_CAP = 100
# 源为空时，目标文件数不超过该值则只警告不确认
SMALL_DESTINATION_THRESHOLD = 10
# 目标文件数超过源的倍数，视为方向可能搞反
WRONG_DIRECTION_RATIO = 10
WRONG_DIRECTION_MIN_FILES = 20


def sample_file_count(path: Path, cap: int = SAMPLE_CAP) -> SamplingResult:
    """统计目录下的普通文件数量，最多统计 cap 个

    Args:
        path: 目录路径
        cap: 采样上限

    Returns:
        SamplingResult: count 不超过 cap；因上限提前停止时 truncated 为 True
    """
    path = Path(path)
    try:
        if not path.is_dir():
            return SamplingResult(0)
    except OSError:
        return SamplingResult(0)

    count = 0
    pending = [path]
    while pending:
        current = pending.pop()
        try:
            with os.scandir(current) as entries:
                for entry in entries:
                    try:
                        if entry.is_dir(follow_symlinks=False):
                            pending.append(Path(entry.path))
                        elif entry.is_file():
                            count += 1
                            if count >= cap:
                                logger.debug(f"采样达到上限 {cap}: {path}")
                                return SamplingResult(cap, truncated=True)
                    except OSError:
                        continue
        except OSError as e:
            logger.debug(f"采样时跳过无法访问的目录 {current}: {e}")
            continue

    return SamplingResult(count)


def describe(sample: SamplingResult) -> str:
    return f"{sample.count}+" if sample.truncated else str(sample.count)


def assess_risk(source: SamplingResult, destination: Optional[SamplingResult]) -> Optional[str]:
    """根据采样结果判断是否需要操作员确认

    只做判断，不输出日志。计数受采样上限限制，接近上限时倍数判断可能偏低。

    Args:
        source: 源采样结果
        destination: 目标采样结果，目标不存在时为 None

    Returns:
        Optional[str]: 需要确认时返回风险描述，否则返回 None
    """
    if destination is None or destination.is_empty:
        return None

    if source.is_empty:
        if destination.count > SMALL_DESTINATION_THRESHOLD:
            return (
                f"源目录为空，而目标目录包含 {describe(destination)} 个文件，"
                f"镜像模式会删除目标中的全部内容"
            )
        return None

    if (destination.count >= WRONG_DIRECTION_MIN_FILES
            and destination.count > source.count * WRONG_DIRECTION_RATIO):
        return (
            f"目标目录文件数 ({describe(destination)}) 远多于源目录 ({describe(source)})，"
            f"源和目标可能填反了"
        )
    return None
