"""mirrorf 测试公共夹具"""
import sys
from pathlib import Path

import pytest
from loguru import logger

from mirrorf.core.mirror_tool import MirrorTool
from mirrorf.core.models import MirrorResult


def make_files(root: Path, count: int, subdir: str = "") -> Path:
    """在 root/subdir 下创建 count 个文件"""
    target = root / subdir if subdir else root
    target.mkdir(parents=True, exist_ok=True)
    for i in range(count):
        (target / f"file_{i:03d}.txt").write_text(f"content {i}")
    return root


class FakeTool(MirrorTool):
    """记录调用并返回固定退出码的假镜像工具"""

    name = "fake"

    def __init__(self, exit_code: int = 1, error: Exception = None):
        self.exit_code = exit_code
        self.error = error
        self.calls = []

    def mirror(self, pair, options, log_path):
        self.calls.append((pair, options, log_path))
        if self.error is not None:
            raise self.error
        log_path.write_text(f"fake mirror exit {self.exit_code}", encoding="utf-8")
        return MirrorResult(exit_code=self.exit_code, stdout_log="", log_path=log_path)


class RecordingConfirm:
    """记录确认消息并返回预设答案"""

    def __init__(self, answer: bool):
        self.answer = answer
        self.messages = []

    def __call__(self, message: str) -> bool:
        self.messages.append(message)
        return self.answer


@pytest.fixture(autouse=True)
def reset_logger():
    """CLI 测试会把日志输出到临时流，测试结束后恢复"""
    yield
    logger.remove()
    logger.add(sys.stderr, level="DEBUG")


@pytest.fixture
def log_root(tmp_path):
    return tmp_path / "logs"
