"""
镜像工具模块测试
"""
import subprocess
from pathlib import Path, PureWindowsPath
from unittest.mock import patch

import pytest

from mirrorf.core.errors import ConfigurationError, InvocationError
from mirrorf.core.mirror_tool import (
    COPIED,
    EXTRAS,
    FAILED,
    MISMATCHES,
    LocalMirror,
    MirrorOptions,
    RobocopyMirror,
    build_log_path,
    classify_exit_code,
    prepare_log_root,
    sanitize_for_filename,
    select_tool,
)
from mirrorf.core.models import Classification, ExclusionSet, MigrationPair
from mirrorf.tests.conftest import make_files

FAST = MirrorOptions(threads=4, retries=1, retry_wait=0)


class TestClassifyExitCode:
    """测试退出码分类"""

    @pytest.mark.parametrize("code", [0, 1, 2, 3])
    def test_success(self, code):
        assert classify_exit_code(code) is Classification.SUCCESS

    @pytest.mark.parametrize("code", [4, 5, 6, 7])
    def test_warning(self, code):
        assert classify_exit_code(code) is Classification.WARNING

    def test_failure_regardless_of_low_bits(self):
        for code in range(8, 64):
            assert classify_exit_code(code) is Classification.FAILURE

    def test_negative_is_failure(self):
        assert classify_exit_code(-1) is Classification.FAILURE


class TestLogPaths:
    """测试日志路径生成"""

    def test_sanitize_windows_path(self):
        assert sanitize_for_filename(PureWindowsPath(r"C:\Data\Projects")) == "C_Data_Projects"

    def test_sanitize_posix_path(self):
        assert sanitize_for_filename(Path("/data/a")) == "data_a"

    def test_sanitize_root(self):
        assert sanitize_for_filename(Path("/")) == "root"

    def test_build_log_path(self, tmp_path):
        path = build_log_path(tmp_path, "20260101_120000", Path("/data/a"))
        assert path == tmp_path / "20260101_120000_data_a.log"

    def test_build_log_path_is_unique(self, tmp_path):
        first = build_log_path(tmp_path, "stamp", Path("/data/a"))
        first.write_text("used")
        second = build_log_path(tmp_path, "stamp", Path("/data/a"))
        assert second != first
        assert second.name == "stamp_data_a_2.log"

    def test_prepare_log_root_creates_nested(self, tmp_path):
        root = prepare_log_root(tmp_path / "a" / "b")
        assert root.is_dir()

    def test_prepare_log_root_failure(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        with pytest.raises(ConfigurationError):
            prepare_log_root(blocker)


class TestRobocopyMirror:
    """测试 robocopy 命令构建与调用"""

    def _pair(self):
        return MigrationPair(Path("/data/src"), Path("/data/dst"))

    def test_command_has_fixed_options(self, tmp_path):
        log_path = tmp_path / "run.log"
        cmd = RobocopyMirror().build_command(self._pair(), MirrorOptions(threads=8, retries=2, retry_wait=3), log_path)
        assert cmd[:3] == ["robocopy", "/data/src", "/data/dst"]
        for flag in ("/MIR", "/MT:8", "/R:2", "/W:3", "/FFT", "/V", "/NP", f"/LOG:{log_path}"):
            assert flag in cmd
        assert "/L" not in cmd

    def test_exclusions_end_with_destination(self, tmp_path):
        options = MirrorOptions(exclusions=ExclusionSet((".git", "node_modules")))
        cmd = RobocopyMirror().build_command(self._pair(), options, tmp_path / "run.log")
        xd = cmd.index("/XD")
        assert cmd[xd + 1:] == [".git", "node_modules", "/data/dst"]

    def test_list_only(self, tmp_path):
        cmd = RobocopyMirror().build_command(self._pair(), MirrorOptions(list_only=True), tmp_path / "run.log")
        assert "/L" in cmd

    def test_drive_root_is_not_escaped(self):
        assert RobocopyMirror._format_path(PureWindowsPath("C:/")) == "C:\\."
        assert RobocopyMirror._format_path(PureWindowsPath("D:/Share/")) == "D:\\Share"

    def test_returns_exit_code(self, tmp_path):
        completed = subprocess.CompletedProcess(args=[], returncode=3, stdout="done")
        with patch("mirrorf.core.mirror_tool.subprocess.run", return_value=completed) as run:
            result = RobocopyMirror().mirror(self._pair(), FAST, tmp_path / "run.log")
        assert result.exit_code == 3
        assert result.stdout_log == "done"
        assert run.call_args[0][0][0] == "robocopy"

    def test_missing_executable(self, tmp_path):
        with patch("mirrorf.core.mirror_tool.subprocess.run", side_effect=FileNotFoundError("robocopy")):
            with pytest.raises(InvocationError):
                RobocopyMirror().mirror(self._pair(), FAST, tmp_path / "run.log")


class TestSelectTool:
    """测试镜像工具选择"""

    def test_auto_without_robocopy(self):
        with patch("mirrorf.core.mirror_tool.shutil.which", return_value=None):
            assert isinstance(select_tool("auto"), LocalMirror)

    def test_auto_with_robocopy(self):
        with patch("mirrorf.core.mirror_tool.shutil.which", return_value=r"C:\Windows\System32\robocopy.exe"):
            tool = select_tool("auto")
        assert isinstance(tool, RobocopyMirror)
        assert tool.executable.endswith("robocopy.exe")

    def test_explicit_choices(self):
        assert isinstance(select_tool("robocopy"), RobocopyMirror)
        assert isinstance(select_tool("local"), LocalMirror)

    def test_unknown_tool(self):
        with pytest.raises(ConfigurationError):
            select_tool("xcopy")


class TestLocalMirror:
    """测试内置镜像实现"""

    @pytest.fixture
    def pair(self, tmp_path):
        source = tmp_path / "a"
        make_files(source, 2)
        make_files(source, 1, "nested")
        return MigrationPair(source, tmp_path / "b")

    def test_first_run_copies(self, pair, tmp_path):
        result = LocalMirror().mirror(pair, FAST, tmp_path / "run1.log")
        assert result.exit_code == COPIED
        assert (pair.destination / "file_000.txt").read_text() == "content 0"
        assert (pair.destination / "nested" / "file_000.txt").exists()

    def test_second_run_reports_no_changes(self, pair, tmp_path):
        tool = LocalMirror()
        tool.mirror(pair, FAST, tmp_path / "run1.log")
        result = tool.mirror(pair, FAST, tmp_path / "run2.log")
        assert result.exit_code == 0
        assert classify_exit_code(result.exit_code) is Classification.SUCCESS

    def test_extra_destination_entries_are_purged(self, pair, tmp_path):
        make_files(pair.destination, 1, "stale")
        (pair.destination / "orphan.txt").write_text("old")
        result = LocalMirror().mirror(pair, FAST, tmp_path / "run.log")
        assert result.exit_code & EXTRAS
        assert not (pair.destination / "orphan.txt").exists()
        assert not (pair.destination / "stale").exists()

    def test_changed_file_is_copied(self, pair, tmp_path):
        tool = LocalMirror()
        tool.mirror(pair, FAST, tmp_path / "run1.log")
        (pair.source / "file_000.txt").write_text("a much longer replacement")
        result = tool.mirror(pair, FAST, tmp_path / "run2.log")
        assert result.exit_code == COPIED
        assert (pair.destination / "file_000.txt").read_text() == "a much longer replacement"

    def test_empty_directories_are_mirrored(self, pair, tmp_path):
        (pair.source / "empty").mkdir()
        LocalMirror().mirror(pair, FAST, tmp_path / "run.log")
        assert (pair.destination / "empty").is_dir()

    def test_excluded_directories(self, pair, tmp_path):
        make_files(pair.source, 2, ".git")
        make_files(pair.destination, 1, "node_modules")
        options = MirrorOptions(threads=2, retries=0, retry_wait=0, exclusions=ExclusionSet((".git", "node_modules")))
        LocalMirror().mirror(pair, options, tmp_path / "run.log")
        assert not (pair.destination / ".git").exists()
        assert (pair.destination / "node_modules" / "file_000.txt").exists()

    def test_exclusion_is_case_insensitive(self, pair, tmp_path):
        make_files(pair.source, 1, "$Recycle.Bin")
        LocalMirror().mirror(pair, FAST, tmp_path / "run.log")
        assert not (pair.destination / "$Recycle.Bin").exists()

    def test_list_only_changes_nothing(self, pair, tmp_path):
        pair.destination.mkdir()
        (pair.destination / "orphan.txt").write_text("old")
        options = MirrorOptions(threads=2, retries=0, retry_wait=0, list_only=True)
        result = LocalMirror().mirror(pair, options, tmp_path / "run.log")
        assert result.exit_code == COPIED | EXTRAS
        assert (pair.destination / "orphan.txt").exists()
        assert not (pair.destination / "file_000.txt").exists()

    def test_mismatch_is_reported_and_fixed(self, pair, tmp_path):
        make_files(pair.destination, 1, "file_001.txt")
        result = LocalMirror().mirror(pair, FAST, tmp_path / "run.log")
        assert result.exit_code & MISMATCHES
        assert classify_exit_code(result.exit_code) is Classification.WARNING
        assert (pair.destination / "file_001.txt").is_file()

    def test_copy_failure_after_retries(self, pair, tmp_path):
        with patch("mirrorf.core.mirror_tool.shutil.copy2", side_effect=OSError("disk full")) as copy2:
            result = LocalMirror().mirror(pair, MirrorOptions(threads=1, retries=2, retry_wait=0), tmp_path / "run.log")
        assert result.exit_code & FAILED
        assert classify_exit_code(result.exit_code) is Classification.FAILURE
        assert copy2.call_count == 3 * 3

    def test_log_file_written(self, pair, tmp_path):
        log_path = tmp_path / "run.log"
        result = LocalMirror().mirror(pair, FAST, log_path)
        text = log_path.read_text(encoding="utf-8")
        assert str(pair.source) in text
        assert "退出码: 1" in text
        assert result.log_path == log_path

    def test_unwritable_log_raises_invocation_error(self, pair, tmp_path):
        with pytest.raises(InvocationError):
            LocalMirror().mirror(pair, FAST, tmp_path / "missing-dir" / "run.log")
