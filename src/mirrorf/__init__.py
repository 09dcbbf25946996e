"""
文件夹镜像迁移包
带安全检查地把源目录镜像到目标目录：路径校验、内容采样、风险确认、退出码分类
"""
from .core.models import (
    Classification,
    ExclusionSet,
    MigrationOutcome,
    MigrationPair,
    MirrorResult,
    PairInput,
    RunSummary,
    SamplingResult,
)
from .core.errors import (
    ConfigurationError,
    InvocationError,
    MirrorError,
    SafetyDeclined,
    ToolFailure,
    ToolWarning,
    ValidationError,
)
from .core.path_validator import validate_pair
from .core.content_sampler import sample_file_count
from .core.mirror_tool import LocalMirror, MirrorOptions, RobocopyMirror, classify_exit_code, select_tool
from .core.orchestrator import MigrationOrchestrator

__all__ = [
    # 数据模型
    'Classification',
    'ExclusionSet',
    'MigrationOutcome',
    'MigrationPair',
    'MirrorResult',
    'PairInput',
    'RunSummary',
    'SamplingResult',
    # 异常
    'ConfigurationError',
    'InvocationError',
    'MirrorError',
    'SafetyDeclined',
    'ToolFailure',
    'ToolWarning',
    'ValidationError',
    # 核心功能
    'validate_pair',
    'sample_file_count',
    'classify_exit_code',
    'select_tool',
    'MirrorOptions',
    'RobocopyMirror',
    'LocalMirror',
    'MigrationOrchestrator',
]
