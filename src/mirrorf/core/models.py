"""mirrorf 数据模型"""

import fnmatch
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple, Union


# 默认排除的目录名模式（版本控制、依赖缓存、回收站等）
DEFAULT_EXCLUDE_PATTERNS: Tuple[str, ...] = (
    ".git",
    ".svn",
    ".hg",
    "node_modules",
    "__pycache__",
    ".venv",
    ".cache",
    "$RECYCLE.BIN",
    "System Volume Information",
)


class Classification(str, Enum):
    """镜像退出码分类"""
    SUCCESS = "success"
    WARNING = "warning"
    FAILURE = "failure"


@dataclass(frozen=True)
class MigrationPair:
    """源/目标路径对，加入待处理列表后不可变"""
    source: Path
    destination: Path

    def __str__(self) -> str:
        return f"{self.source} -> {self.destination}"


@dataclass(frozen=True)
class PairInput:
    """未校验的原始路径对（命令行或配置文件中的字符串），在处理时才校验"""
    source: str
    destination: str

    def __str__(self) -> str:
        return f"{self.source!r} -> {self.destination!r}"


@dataclass(frozen=True)
class SamplingResult:
    """采样结果，count 不超过采样上限"""
    count: int
    truncated: bool = False

    @property
    def is_empty(self) -> bool:
        return self.count == 0


@dataclass(frozen=True)
class ExclusionSet:
    """排除目录名模式集合，对每个路径对统一生效"""
    patterns: Tuple[str, ...] = DEFAULT_EXCLUDE_PATTERNS

    def for_pair(self, pair: MigrationPair) -> List[str]:
        """返回用于该路径对的排除列表：模式 + 目标路径本身"""
        return list(self.patterns) + [str(pair.destination)]

    def matches(self, name: str) -> bool:
        """目录名是否命中任一模式（不区分大小写）"""
        lowered = name.lower()
        return any(fnmatch.fnmatchcase(lowered, p.lower()) for p in self.patterns)

    def extended(self, extra: List[str]) -> "ExclusionSet":
        merged = list(self.patterns)
        for p in extra:
            if p not in merged:
                merged.append(p)
        return ExclusionSet(tuple(merged))


@dataclass(frozen=True)
class MirrorResult:
    """单次镜像调用的结果"""
    exit_code: int
    stdout_log: str = ""
    log_path: Optional[Path] = None


@dataclass(frozen=True)
class MigrationOutcome:
    """单个路径对的处理结果，生成后不再修改"""
    pair: Union[MigrationPair, PairInput]
    classification: Classification
    exit_code: Optional[int] = None  # 工具未运行时为 None
    log_path: Optional[Path] = None
    error: str = ""

    @property
    def succeeded(self) -> bool:
        return self.classification is not Classification.FAILURE


@dataclass
class RunSummary:
    """运行总结，只追加"""
    outcomes: List[MigrationOutcome] = field(default_factory=list)

    def add(self, outcome: MigrationOutcome) -> None:
        self.outcomes.append(outcome)

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.succeeded)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.succeeded)

    @property
    def warnings(self) -> int:
        return sum(1 for o in self.outcomes if o.classification is Classification.WARNING)

    @property
    def exit_code(self) -> int:
        return 1 if self.failed else 0
