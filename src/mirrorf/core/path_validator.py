"""
路径校验模块 - 校验源/目标路径对

纯校验，不创建任何目录。
"""
import os
from pathlib import Path
from typing import Tuple

from loguru import logger

from .errors import (
    BlankInputError,
    DestinationInsideSourceError,
    IdenticalPathsError,
    PathInaccessibleError,
    SourceInsideDestinationError,
    SourceMissingError,
    SourceNotDirectoryError,
)
from .models import MigrationPair

# 源路径目录层级超过该值时需要确认（防止误选自引用的备份树）
DEPTH_WARNING_THRESHOLD = 15


def clean_path_input(path_str: str) -> str:
    """去掉首尾空白和引号（从资源管理器或剪贴板复制的路径常带引号）"""
    return path_str.strip().strip('"\'').strip()


def canonicalize(path: Path) -> Path:
    """存在的路径解析为规范绝对路径，不存在的路径仅做绝对化和规范化

    Raises:
        OSError: 文件系统无法检查该路径
    """
    if path.exists():
        return path.resolve()
    return Path(os.path.normpath(os.path.abspath(path)))


def _comparison_key(path: Path) -> Tuple[str, ...]:
    return tuple(part.casefold() for part in path.parts)


def _is_descendant(child: Tuple[str, ...], parent: Tuple[str, ...]) -> bool:
    return len(child) > len(parent) and child[:len(parent)] == parent


def validate_pair(source: str, destination: str) -> MigrationPair:
    """校验一对源/目标路径

    Args:
        source: 源路径字符串
        destination: 目标路径字符串

    Returns:
        MigrationPair: 规范化后的路径对

    Raises:
        ValidationError: 任一校验失败时抛出对应子类
    """
    source_str = clean_path_input(source or "")
    destination_str = clean_path_input(destination or "")
    if not source_str:
        raise BlankInputError("源")
    if not destination_str:
        raise BlankInputError("目标")

    source_path = Path(source_str).expanduser()
    try:
        if not source_path.exists():
            raise SourceMissingError(source_str)
        if not source_path.is_dir():
            raise SourceNotDirectoryError(source_str)
        canonical_source = canonicalize(source_path)
    except OSError as e:
        raise PathInaccessibleError(source_str, e.strerror or str(e)) from e

    try:
        canonical_destination = canonicalize(Path(destination_str).expanduser())
    except OSError as e:
        raise PathInaccessibleError(destination_str, e.strerror or str(e)) from e

    source_key = _comparison_key(canonical_source)
    destination_key = _comparison_key(canonical_destination)

    if source_key == destination_key:
        raise IdenticalPathsError(str(canonical_source), str(canonical_destination))
    if _is_descendant(destination_key, source_key):
        raise DestinationInsideSourceError(str(canonical_source), str(canonical_destination))
    if _is_descendant(source_key, destination_key):
        raise SourceInsideDestinationError(str(canonical_source), str(canonical_destination))

    logger.debug(f"路径对校验通过: {canonical_source} -> {canonical_destination}")
    return MigrationPair(source=canonical_source, destination=canonical_destination)


def path_depth(path: Path) -> int:
    """目录层级数（不含盘符/根）"""
    parts = path.parts
    if path.anchor:
        parts = parts[1:]
    return len(parts)


def is_suspiciously_deep(path: Path, threshold: int = DEPTH_WARNING_THRESHOLD) -> bool:
    """层级过深的源路径通常意味着选中了自我嵌套的备份目录"""
    return path_depth(path) > threshold
