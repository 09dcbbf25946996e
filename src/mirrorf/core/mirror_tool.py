"""
镜像工具模块 - 调用外部镜像工具（robocopy）或内置镜像实现

两种实现遵循同一退出码约定（按位）：
    1  有文件被复制
    2  目标中存在多余条目（镜像模式下已删除）
    4  存在不匹配项（同名的文件/文件夹类型冲突）
    8  部分文件复制失败（已重试）
    16 严重错误，未能完成任何复制
"""
import concurrent.futures
import os
import re
import shutil
import subprocess
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from threading import Lock
from typing import List, Optional, Tuple

from loguru import logger

from .errors import ConfigurationError, InvocationError
from .models import Classification, ExclusionSet, MigrationPair, MirrorResult

COPIED = 0b00001
EXTRAS = 0b00010
MISMATCHES = 0b00100
FAILED = 0b01000
FATAL = 0b10000

# 文件时间比较容差（秒），兼容 FAT 等 2 秒精度的文件系统
TIMESTAMP_TOLERANCE = 2.0


@dataclass(frozen=True)
class MirrorOptions:
    """固定的镜像选项，对所有路径对一致"""
    threads: int = 16
    retries: int = 3
    retry_wait: int = 5
    exclusions: ExclusionSet = field(default_factory=ExclusionSet)
    list_only: bool = False


def classify_exit_code(code: int) -> Classification:
    """按位分类退出码：第 3 位及以上为失败，第 2 位为警告，其余为成功"""
    if code < 0 or code & ~0b111:
        return Classification.FAILURE
    if code & MISMATCHES:
        return Classification.WARNING
    return Classification.SUCCESS


def sanitize_for_filename(path: Path) -> str:
    """把路径中的分隔符和冒号替换为下划线"""
    cleaned = re.sub(r"[\\/:]+", "_", str(path)).strip("_")
    return cleaned or "root"


def build_log_path(log_root: Path, run_stamp: str, source: Path) -> Path:
    """生成单个路径对的日志文件路径，同一次运行内不会重名"""
    base = f"{run_stamp}_{sanitize_for_filename(source)}"
    candidate = log_root / f"{base}.log"
    index = 2
    while candidate.exists():
        candidate = log_root / f"{base}_{index}.log"
        index += 1
    return candidate


def new_run_stamp() -> str:
    return datetime.now().strftime("%Y%m%d_%H%M%S")


def prepare_log_root(log_root: Path) -> Path:
    """创建日志根目录，失败时抛出 ConfigurationError"""
    log_root = Path(log_root).expanduser()
    try:
        log_root.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigurationError(
            f"无法创建日志目录 '{log_root}': {e}",
            code="LOG_ROOT_UNAVAILABLE",
            details={"log_root": str(log_root)},
        ) from e
    return log_root


class MirrorTool:
    """镜像工具基类"""

    name = "mirror"

    def mirror(self, pair: MigrationPair, options: MirrorOptions, log_path: Path) -> MirrorResult:
        raise NotImplementedError


class RobocopyMirror(MirrorTool):
    """调用 Windows robocopy 完成镜像"""

    name = "robocopy"

    def __init__(self, executable: str = "robocopy"):
        self.executable = executable

    @staticmethod
    def _format_path(path: Path) -> str:
        # robocopy 会把 "C:\" 中的 \" 当作转义引号
        text = str(path).rstrip("\\/")
        if text.endswith(":"):
            text += "\\."
        return text

    def build_command(self, pair: MigrationPair, options: MirrorOptions, log_path: Path) -> List[str]:
        cmd = [
            self.executable,
            self._format_path(pair.source),
            self._format_path(pair.destination),
            "/MIR",
            f"/MT:{options.threads}",
            f"/R:{options.retries}",
            f"/W:{options.retry_wait}",
            "/FFT",
            "/V",
            "/NP",
            "/XJ",
            f"/LOG:{log_path}",
        ]
        if options.list_only:
            cmd.append("/L")
        cmd.append("/XD")
        cmd.extend(options.exclusions.for_pair(pair))
        return cmd

    def mirror(self, pair: MigrationPair, options: MirrorOptions, log_path: Path) -> MirrorResult:
        cmd = self.build_command(pair, options, log_path)
        logger.debug(f"执行命令: {subprocess.list2cmdline(cmd)}")
        try:
            process = subprocess.run(cmd, capture_output=True, text=True, errors="replace", check=False)
        except OSError as e:
            raise InvocationError(self.name, str(e)) from e
        return MirrorResult(exit_code=process.returncode, stdout_log=process.stdout or "", log_path=log_path)


class LocalMirror(MirrorTool):
    """内置镜像实现，用于没有 robocopy 的系统"""

    name = "local"

    def __init__(self):
        self._lock = Lock()

    def mirror(self, pair: MigrationPair, options: MirrorOptions, log_path: Path) -> MirrorResult:
        try:
            log_file = open(log_path, "w", encoding="utf-8")
        except OSError as e:
            raise InvocationError(self.name, f"无法写入日志 {log_path}: {e}") from e

        counters = {'copied': 0, 'same': 0, 'extra': 0, 'mismatch': 0, 'failed': 0}
        lines: List[str] = []

        def write(line: str):
            with self._lock:
                lines.append(line)
                log_file.write(line + "\n")

        with log_file:
            write(f"开始: {datetime.now().isoformat()}")
            write(f"源: {pair.source}")
            write(f"目标: {pair.destination}")
            write(
                f"选项: 镜像 线程={options.threads} 重试={options.retries} 等待={options.retry_wait}s"
                f"{' 仅列出' if options.list_only else ''}"
            )
            write(f"排除: {' '.join(options.exclusions.for_pair(pair))}")
            write("-" * 60)

            if not pair.source.is_dir():
                write(f"错误: 源目录不可访问 {pair.source}")
                return MirrorResult(exit_code=FATAL, stdout_log="\n".join(lines), log_path=log_path)
            if not options.list_only:
                try:
                    pair.destination.mkdir(parents=True, exist_ok=True)
                except OSError as e:
                    write(f"错误: 无法创建目标目录 {pair.destination}: {e}")
                    return MirrorResult(exit_code=FATAL, stdout_log="\n".join(lines), log_path=log_path)

            jobs = self._plan(pair, options, counters, write)
            self._purge(pair, options, counters, write)
            self._copy_all(jobs, options, counters, write)

            code = 0
            if counters['copied']:
                code |= COPIED
            if counters['extra']:
                code |= EXTRAS
            if counters['mismatch']:
                code |= MISMATCHES
            if counters['failed']:
                code |= FAILED

            write("-" * 60)
            write(
                f"复制: {counters['copied']}  相同: {counters['same']}  多余: {counters['extra']}  "
                f"不匹配: {counters['mismatch']}  失败: {counters['failed']}"
            )
            write(f"退出码: {code}")
            write(f"结束: {datetime.now().isoformat()}")

        return MirrorResult(exit_code=code, stdout_log="\n".join(lines), log_path=log_path)

    @staticmethod
    def _same_path(a: Path, b: Path) -> bool:
        return os.path.normcase(str(a)).casefold() == os.path.normcase(str(b)).casefold()

    @staticmethod
    def _walk_error(counters: dict, write):
        def on_error(error: OSError):
            counters['failed'] += 1
            write(f"  错误\t{error.filename}: {error.strerror}")
        return on_error

    @staticmethod
    def _is_unchanged(source_file: Path, target_file: Path) -> bool:
        s, t = source_file.stat(), target_file.stat()
        return s.st_size == t.st_size and abs(s.st_mtime - t.st_mtime) <= TIMESTAMP_TOLERANCE

    def _plan(self, pair: MigrationPair, options: MirrorOptions, counters: dict, write) -> List[Tuple[Path, Path]]:
        """遍历源目录，创建目录结构并收集需要复制的文件"""
        jobs = []
        for root, dirs, files in os.walk(pair.source, onerror=self._walk_error(counters, write)):
            root_path = Path(root)
            target_root = pair.destination / root_path.relative_to(pair.source)

            kept = []
            for d in dirs:
                if options.exclusions.matches(d) or self._same_path(root_path / d, pair.destination):
                    write(f"  排除目录\t{root_path / d}")
                    continue
                kept.append(d)
            dirs[:] = kept

            for d in dirs:
                target_dir = target_root / d
                try:
                    if target_dir.is_file() or target_dir.is_symlink():
                        counters['mismatch'] += 1
                        write(f"  *不匹配\t{target_dir}")
                        if options.list_only:
                            continue
                        target_dir.unlink()
                    if not target_dir.exists():
                        write(f"  新目录\t{target_dir}")
                        if not options.list_only:
                            target_dir.mkdir(parents=True, exist_ok=True)
                except OSError as e:
                    counters['failed'] += 1
                    write(f"  错误\t{target_dir}: {e}")

            for f in files:
                source_file = root_path / f
                target_file = target_root / f
                try:
                    if target_file.is_dir() and not target_file.is_symlink():
                        counters['mismatch'] += 1
                        write(f"  *不匹配\t{target_file}")
                        if not options.list_only:
                            shutil.rmtree(target_file)
                        jobs.append((source_file, target_file))
                    elif not target_file.exists():
                        write(f"  新文件\t{source_file}")
                        jobs.append((source_file, target_file))
                    elif self._is_unchanged(source_file, target_file):
                        counters['same'] += 1
                        write(f"  相同\t{source_file}")
                    else:
                        write(f"  已更改\t{source_file}")
                        jobs.append((source_file, target_file))
                except OSError as e:
                    counters['failed'] += 1
                    write(f"  错误\t{source_file}: {e}")
        return jobs

    def _purge(self, pair: MigrationPair, options: MirrorOptions, counters: dict, write):
        """删除目标中源不存在的条目，排除的目录不删除"""
        if not pair.destination.is_dir():
            return
        for root, dirs, files in os.walk(pair.destination, onerror=self._walk_error(counters, write)):
            root_path = Path(root)
            source_root = pair.source / root_path.relative_to(pair.destination)

            kept = []
            for d in dirs:
                if options.exclusions.matches(d):
                    continue
                counterpart = source_root / d
                if counterpart.is_dir():
                    kept.append(d)
                elif not counterpart.exists():
                    counters['extra'] += 1
                    write(f"  *多余目录\t{root_path / d}")
                    if not options.list_only:
                        try:
                            shutil.rmtree(root_path / d)
                        except OSError as e:
                            counters['failed'] += 1
                            write(f"  错误\t{root_path / d}: {e}")
            dirs[:] = kept

            for f in files:
                counterpart = source_root / f
                if counterpart.exists():
                    continue
                counters['extra'] += 1
                write(f"  *多余文件\t{root_path / f}")
                if not options.list_only:
                    try:
                        (root_path / f).unlink()
                    except OSError as e:
                        counters['failed'] += 1
                        write(f"  错误\t{root_path / f}: {e}")

    def _copy_with_retry(self, source_file: Path, target_file: Path, options: MirrorOptions) -> Optional[OSError]:
        last_error = None
        for attempt in range(options.retries + 1):
            try:
                target_file.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(source_file, target_file)
                return None
            except OSError as e:
                last_error = e
                if attempt < options.retries:
                    time.sleep(options.retry_wait)
        return last_error

    def _copy_all(self, jobs: List[Tuple[Path, Path]], options: MirrorOptions, counters: dict, write):
        if options.list_only:
            counters['copied'] += len(jobs)
            return

        def copy_one(job):
            source_file, target_file = job
            error = self._copy_with_retry(source_file, target_file, options)
            with self._lock:
                if error is None:
                    counters['copied'] += 1
                else:
                    counters['failed'] += 1
            if error is not None:
                write(f"  错误\t复制 {source_file} 失败（重试 {options.retries} 次）: {error}")

        with concurrent.futures.ThreadPoolExecutor(max_workers=max(1, options.threads)) as executor:
            list(executor.map(copy_one, jobs))


def select_tool(name: str = "auto") -> MirrorTool:
    """根据名称选择镜像工具，auto 优先使用 robocopy"""
    name = (name or "auto").lower()
    if name == "robocopy":
        return RobocopyMirror()
    if name == "local":
        return LocalMirror()
    if name == "auto":
        robocopy = shutil.which("robocopy")
        if robocopy:
            return RobocopyMirror(robocopy)
        logger.info("未找到 robocopy，使用内置镜像实现")
        return LocalMirror()
    raise ConfigurationError(f"未知的镜像工具: {name}", code="UNKNOWN_TOOL", details={"tool": name})
