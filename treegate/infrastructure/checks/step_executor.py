import asyncio
import sys
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import TextIO

from loguru import logger

from treegate.domain.entities import StepResult
from treegate.domain.ports.extractor_port import ErrorExtractorPort
from treegate.domain.value_objects import (
    UNKNOWN_TREE_HASH,
    ErrorExtractorResult,
    ExtractedError,
    OutputFiles,
    OutputStream,
    ValidationStep,
)
from treegate.infrastructure.checks.output_capture import OutputCapture
from treegate.infrastructure.extractors.generic_extractor import GenericErrorExtractor
from treegate.infrastructure.persistence._paths import OutputPathBuilder
from treegate.infrastructure.persistence.output_files import write_output_files
from treegate.infrastructure.process.process_executor import ProcessExecutor, ProcessHandle
from treegate.infrastructure.utils.nested_result import NestedResult, parse_nested_result

SPAWN_FAILURE_EXIT_CODE = 127

SpawnHook = Callable[[ProcessHandle], None]


@dataclass
class StepOptions:
    verbose: bool = False
    debug: bool = False
    yaml_mode: bool = False
    env: dict[str, str] = field(default_factory=dict)
    cwd: Path | None = None
    tree_hash: str = UNKNOWN_TREE_HASH
    output_scope: str = "steps"


@dataclass
class StepExecution:
    result: StepResult
    output: str


class StepExecutor:
    """Runs one validation step and turns its process into a StepResult.

    Stored output is ANSI-stripped; the verbose mirror receives the raw
    bytes as they arrive. Failures of the step itself are data, never
    exceptions.
    """

    def __init__(
        self,
        process_executor: ProcessExecutor | None = None,
        extractor: ErrorExtractorPort | None = None,
        paths: OutputPathBuilder | None = None,
        stdout_mirror: TextIO | None = None,
        stderr_mirror: TextIO | None = None,
    ) -> None:
        self.process_executor = process_executor or ProcessExecutor()
        self._extractor = extractor or GenericErrorExtractor()
        self._paths = paths or OutputPathBuilder()
        self._stdout_mirror = stdout_mirror
        self._stderr_mirror = stderr_mirror

    async def execute(
        self,
        step: ValidationStep,
        options: StepOptions,
        on_spawn: SpawnHook | None = None,
    ) -> StepExecution:
        started = time.monotonic()
        capture = OutputCapture()
        out_mirror, err_mirror = self._mirrors(options)

        def on_stdout(chunk: str) -> None:
            capture.feed(OutputStream.STDOUT, chunk)
            if options.verbose:
                out_mirror.write(chunk)
                out_mirror.flush()

        def on_stderr(chunk: str) -> None:
            capture.feed(OutputStream.STDERR, chunk)
            if options.verbose:
                err_mirror.write(chunk)
                err_mirror.flush()

        work_dir = options.cwd / step.cwd if options.cwd and step.cwd else options.cwd
        if work_dir is None and step.cwd:
            work_dir = Path(step.cwd)

        try:
            handle = await self.process_executor.spawn(
                step.command,
                env={**options.env, **step.env},
                cwd=work_dir,
            )
        except OSError as e:
            logger.error("Step '{}' could not be started: {}", step.name, e)
            return _spawn_failure(step, e, time.monotonic() - started)

        if on_spawn is not None:
            on_spawn(handle)

        try:
            exit_code = await self.process_executor.stream(handle, on_stdout, on_stderr)
        except asyncio.CancelledError:
            await self.process_executor.terminate(handle)
            raise
        capture.close()

        duration = round(time.monotonic() - started, 1)
        passed = exit_code == 0
        logger.debug(
            "Step '{}' exited with {} after {}s",
            step.name,
            exit_code,
            duration,
        )

        output = capture.combined
        extraction: ErrorExtractorResult | None = None
        is_cached: bool | None = None
        output_files: OutputFiles | None = None

        parsed = parse_nested_result(capture.stdout)
        if isinstance(parsed, NestedResult):
            is_cached = parsed.is_cached_result
            output_files = parsed.output_files
            if not passed or options.debug:
                extraction = parsed.extraction
            # The wrapper can fail even though the nested run reported nothing
            if extraction is None and not passed and output.strip():
                extraction = self._extractor.extract(output, step.name)
        elif (not passed and output.strip()) or options.debug:
            extraction = self._extractor.extract(output, step.name)

        if (not passed or options.debug) and output_files is None:
            directory = self._paths.output_dir(
                options.output_scope, options.tree_hash, step.name, datetime.now(UTC)
            )
            output_files = await write_output_files(
                directory, capture.stdout, capture.stderr, capture.lines
            )

        result = StepResult(
            name=step.name,
            command=step.command,
            passed=passed,
            exit_code=exit_code,
            duration_secs=duration,
            extraction=extraction,
            is_cached_result=is_cached,
            output_files=output_files,
        )
        return StepExecution(result=result, output=output)

    def _mirrors(self, options: StepOptions) -> tuple[TextIO, TextIO]:
        # In YAML mode stdout is reserved for the result document
        default_out = sys.stderr if options.yaml_mode else sys.stdout
        return self._stdout_mirror or default_out, self._stderr_mirror or sys.stderr


def _spawn_failure(step: ValidationStep, error: OSError, elapsed: float) -> StepExecution:
    message = f"Failed to start command: {error}"
    result = StepResult(
        name=step.name,
        command=step.command,
        passed=False,
        exit_code=SPAWN_FAILURE_EXIT_CODE,
        duration_secs=round(elapsed, 1),
        extraction=ErrorExtractorResult(
            summary=message,
            total_errors=1,
            errors=[ExtractedError(message=str(error), severity="error")],
        ),
    )
    return StepExecution(result=result, output=message)
