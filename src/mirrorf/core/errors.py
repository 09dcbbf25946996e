"""
mirrorf 异常体系

除 ConfigurationError 外，所有异常都只影响单个路径对，不会中断整次运行。
"""

from typing import Any, Dict, Optional


class MirrorError(Exception):
    """mirrorf 所有异常的基类

    Attributes:
        message: 可读的错误信息
        code: 机器可读的错误码
        details: 附加上下文
    """

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def __str__(self):
        return self.message


class ConfigurationError(MirrorError):
    """配置错误（日志根目录无法创建、配置文件无效），致命"""


# =============================================================================
# 路径校验错误
# =============================================================================

class ValidationError(MirrorError):
    """路径对校验失败"""


class BlankInputError(ValidationError):
    def __init__(self, field_name: str):
        super().__init__(f"{field_name} 路径不能为空", code="BLANK_INPUT", details={"field": field_name})


class SourceMissingError(ValidationError):
    def __init__(self, source: str):
        super().__init__(f"源路径不存在: {source}", code="SOURCE_MISSING", details={"source": source})


class SourceNotDirectoryError(ValidationError):
    def __init__(self, source: str):
        super().__init__(f"源路径不是文件夹: {source}", code="SOURCE_NOT_DIRECTORY", details={"source": source})


class PathInaccessibleError(ValidationError):
    """文件系统拒绝检查该路径（名称过长、权限不足等）"""

    def __init__(self, path: str, reason: str):
        super().__init__(
            f"无法访问路径 {path}: {reason}",
            code="PATH_INACCESSIBLE",
            details={"path": path, "reason": reason},
        )


class IdenticalPathsError(ValidationError):
    def __init__(self, source: str, destination: str):
        super().__init__(
            f"源路径与目标路径相同: {source}",
            code="IDENTICAL_PATHS",
            details={"source": source, "destination": destination},
        )


class DestinationInsideSourceError(ValidationError):
    def __init__(self, source: str, destination: str):
        super().__init__(
            f"目标路径位于源路径内部: {destination} ⊂ {source}",
            code="DESTINATION_INSIDE_SOURCE",
            details={"source": source, "destination": destination},
        )


class SourceInsideDestinationError(ValidationError):
    def __init__(self, source: str, destination: str):
        super().__init__(
            f"源路径位于目标路径内部，镜像会清除源的同级内容: {source} ⊂ {destination}",
            code="SOURCE_INSIDE_DESTINATION",
            details={"source": source, "destination": destination},
        )


# =============================================================================
# 执行阶段错误
# =============================================================================

class SafetyDeclined(MirrorError):
    """操作员拒绝了风险确认"""

    def __init__(self, reason: str):
        super().__init__(f"操作员拒绝继续: {reason}", code="SAFETY_DECLINED", details={"reason": reason})


class InvocationError(MirrorError):
    """镜像工具无法启动"""

    def __init__(self, tool: str, reason: str):
        super().__init__(f"无法启动 {tool}: {reason}", code="INVOCATION_FAILED", details={"tool": tool, "reason": reason})


class ToolFailure(MirrorError):
    """镜像工具返回失败类退出码"""

    def __init__(self, exit_code: int, log_path: Optional[str] = None):
        super().__init__(
            f"镜像失败，退出码 {exit_code}，日志: {log_path}",
            code="TOOL_FAILURE",
            details={"exit_code": exit_code, "log_path": log_path},
        )
        self.exit_code = exit_code


class ToolWarning(MirrorError):
    """镜像工具返回警告类退出码（计为成功）"""

    def __init__(self, exit_code: int, log_path: Optional[str] = None):
        super().__init__(
            f"镜像完成但存在不匹配项，退出码 {exit_code}，日志: {log_path}",
            code="TOOL_WARNING",
            details={"exit_code": exit_code, "log_path": log_path},
        )
        self.exit_code = exit_code
