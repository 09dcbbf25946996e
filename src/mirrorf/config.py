"""
程序配置模块 - 默认值与 TOML 配置文件加载
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import tomli
from loguru import logger

from .core.errors import ConfigurationError
from .core.mirror_tool import MirrorOptions
from .core.models import DEFAULT_EXCLUDE_PATTERNS, ExclusionSet, PairInput

# 默认日志根目录
DEFAULT_LOG_ROOT = Path.home() / ".mirrorf" / "logs"

DEFAULT_THREADS = 16
DEFAULT_RETRIES = 3
DEFAULT_RETRY_WAIT = 5
TOOL_CHOICES = ("auto", "robocopy", "local")


@dataclass
class MirrorConfig:
    """一次运行的完整配置"""
    pairs: List[PairInput] = field(default_factory=list)
    log_root: Path = DEFAULT_LOG_ROOT
    threads: int = DEFAULT_THREADS
    retries: int = DEFAULT_RETRIES
    retry_wait: int = DEFAULT_RETRY_WAIT
    exclude: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS))
    tool: str = "auto"

    def mirror_options(self, list_only: bool = False) -> MirrorOptions:
        return MirrorOptions(
            threads=self.threads,
            retries=self.retries,
            retry_wait=self.retry_wait,
            exclusions=ExclusionSet(tuple(self.exclude)),
            list_only=list_only,
        )


def _positive_int(data: Dict[str, Any], key: str, default: int, minimum: int = 0) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        raise ConfigurationError(f"配置项 {key} 必须是不小于 {minimum} 的整数: {value!r}", code="INVALID_CONFIG")
    return value


def _string_list(data: Dict[str, Any], key: str) -> Optional[List[str]]:
    if key not in data:
        return None
    value = data[key]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigurationError(f"配置项 {key} 必须是字符串列表", code="INVALID_CONFIG")
    return value


def parse_pairs(entries: Any) -> List[PairInput]:
    """解析 [[pairs]] 表，保持原始顺序

    空白路径保留原样，留到处理时作为该路径对的校验失败。
    """
    if entries is None:
        return []
    if not isinstance(entries, list):
        raise ConfigurationError("pairs 必须是表数组 [[pairs]]", code="INVALID_CONFIG")

    pairs = []
    for i, entry in enumerate(entries, 1):
        if not isinstance(entry, dict):
            raise ConfigurationError(f"第 {i} 个路径对格式无效", code="INVALID_CONFIG")
        source = entry.get("source")
        destination = entry.get("destination")
        if not isinstance(source, str):
            raise ConfigurationError(f"第 {i} 个路径对缺少 source", code="INVALID_CONFIG")
        if not isinstance(destination, str):
            raise ConfigurationError(f"第 {i} 个路径对缺少 destination", code="INVALID_CONFIG")
        pairs.append(PairInput(source, destination))
    return pairs


def parse_config(data: Dict[str, Any]) -> MirrorConfig:
    config = MirrorConfig()
    config.pairs = parse_pairs(data.get("pairs"))
    if "log_root" in data:
        if not isinstance(data["log_root"], str) or not data["log_root"].strip():
            raise ConfigurationError("log_root 必须是非空字符串", code="INVALID_CONFIG")
        config.log_root = Path(data["log_root"]).expanduser()
    config.threads = _positive_int(data, "threads", DEFAULT_THREADS, minimum=1)
    config.retries = _positive_int(data, "retries", DEFAULT_RETRIES)
    config.retry_wait = _positive_int(data, "retry_wait", DEFAULT_RETRY_WAIT)

    exclude = _string_list(data, "exclude")
    if exclude is not None:
        config.exclude = list(exclude)
    extra = _string_list(data, "extra_exclude") or []
    config.exclude = list(ExclusionSet(tuple(config.exclude)).extended(extra).patterns)

    tool = data.get("tool", "auto")
    if tool not in TOOL_CHOICES:
        raise ConfigurationError(f"tool 必须是 {'/'.join(TOOL_CHOICES)} 之一: {tool!r}", code="INVALID_CONFIG")
    config.tool = tool
    return config


def load_config(config_path: Path) -> MirrorConfig:
    """从 TOML 文件加载配置

    Args:
        config_path: 配置文件路径

    Returns:
        MirrorConfig: 解析后的配置

    Raises:
        ConfigurationError: 文件不存在或内容无效
    """
    config_path = Path(config_path).expanduser()
    try:
        with open(config_path, 'rb') as f:
            data = tomli.load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"配置文件不存在: {config_path}", code="CONFIG_NOT_FOUND") from e
    except tomli.TOMLDecodeError as e:
        raise ConfigurationError(f"配置文件格式错误 {config_path}: {e}", code="INVALID_CONFIG") from e
    except OSError as e:
        raise ConfigurationError(f"无法读取配置文件 {config_path}: {e}", code="CONFIG_UNREADABLE") from e

    config = parse_config(data)
    logger.info(f"已加载配置文件: {config_path}，包含 {len(config.pairs)} 个路径对")
    return config
