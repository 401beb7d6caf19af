"""Structured execution of the external tools a build depends on."""
from __future__ import annotations

import asyncio
import logging
import os
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Sequence

from .errors import BuildStepError

logger = logging.getLogger(__name__)

StderrSink = Optional[Callable[[str], None]]


@dataclass(slots=True)
class Toolchain:
    """Executable names for every external tool, resolved through ``PATH``."""

    podman: str = "podman"
    undocker: str = "undocker"
    tar: str = "tar"
    cp: str = "cp"
    xorriso: str = "xorriso"
    limine_install: str = "limine-install"
    isohybrid: str = "isohybrid"
    # Receives tool stderr line by line instead of the terminal when set.
    stderr_sink: StderrSink = None


@dataclass(slots=True)
class ProcessResult:
    step: str
    argv: Sequence[str]
    returncode: int
    stdout: str = ""
    extra: Sequence["ProcessResult"] = field(default_factory=tuple)

    @property
    def command_line(self) -> str:
        return shlex.join(self.argv)


async def run_command(
    step: str,
    argv: Sequence[str],
    *,
    cwd: Path | None = None,
    stderr_sink: StderrSink = None,
) -> ProcessResult:
    """Run ``argv`` without a shell, streaming stderr and capturing stdout."""
    logger.debug("Running %s", shlex.join(argv))
    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            cwd=cwd,
            stdout=asyncio.subprocess.PIPE,
            stderr=_stderr_target(stderr_sink),
        )
    except OSError as exc:
        raise BuildStepError(step, f"could not start {argv[0]}: {exc}") from exc
    if stderr_sink is None:
        stdout, _ = await process.communicate()
    else:
        stdout, _ = await asyncio.gather(
            process.stdout.read(),
            _forward_lines(process.stderr, stderr_sink),
        )
        await process.wait()
    result = ProcessResult(step, list(argv), process.returncode, _decode(stdout))
    _log_output(result)
    if result.returncode != 0:
        raise BuildStepError(step, f"{argv[0]} exited with status {result.returncode}")
    return result


async def run_pipeline(
    step: str,
    producer_argv: Sequence[str],
    consumer_argv: Sequence[str],
    *,
    stderr_sink: StderrSink = None,
) -> ProcessResult:
    """Run ``producer | consumer`` through an OS pipe and capture the consumer's stdout."""
    logger.debug("Running %s | %s", shlex.join(producer_argv), shlex.join(consumer_argv))
    read_fd, write_fd = os.pipe()
    try:
        try:
            producer = await asyncio.create_subprocess_exec(
                *producer_argv,
                stdout=write_fd,
                stderr=_stderr_target(stderr_sink),
            )
        finally:
            os.close(write_fd)
    except OSError as exc:
        os.close(read_fd)
        raise BuildStepError(step, f"could not start {producer_argv[0]}: {exc}") from exc
    try:
        try:
            consumer = await asyncio.create_subprocess_exec(
                *consumer_argv,
                stdin=read_fd,
                stdout=asyncio.subprocess.PIPE,
                stderr=_stderr_target(stderr_sink),
            )
        finally:
            os.close(read_fd)
    except OSError as exc:
        try:
            producer.kill()
        except ProcessLookupError:
            pass
        await producer.wait()
        raise BuildStepError(step, f"could not start {consumer_argv[0]}: {exc}") from exc

    if stderr_sink is None:
        stdout, _ = await consumer.communicate()
    else:
        stdout, _, _ = await asyncio.gather(
            consumer.stdout.read(),
            _forward_lines(producer.stderr, stderr_sink),
            _forward_lines(consumer.stderr, stderr_sink),
        )
        await consumer.wait()
    producer_status = await producer.wait()
    producer_result = ProcessResult(step, list(producer_argv), producer_status)
    result = ProcessResult(
        step,
        list(consumer_argv),
        consumer.returncode,
        _decode(stdout),
        extra=(producer_result,),
    )
    _log_output(result)
    if producer_status != 0:
        raise BuildStepError(step, f"{producer_argv[0]} exited with status {producer_status}")
    if result.returncode != 0:
        raise BuildStepError(step, f"{consumer_argv[0]} exited with status {result.returncode}")
    return result


def _stderr_target(stderr_sink: StderrSink):
    return None if stderr_sink is None else asyncio.subprocess.PIPE


async def _forward_lines(stream: asyncio.StreamReader, sink: Callable[[str], None]) -> None:
    async for line in stream:
        sink(_decode(line).rstrip())


def _decode(data: bytes | None) -> str:
    return (data or b"").decode(errors="replace")


def _log_output(result: ProcessResult) -> None:
    output = result.stdout.rstrip()
    if output:
        logger.debug("%s output:\n%s", result.step, output)
