import io
from pathlib import Path

import pytest

from treegate.application.services.process_registry import ProcessRegistry
from treegate.application.validation_runner import (
    LOG_SEPARATOR,
    RunnerCallbacks,
    RunnerOptions,
    ValidationRunner,
    format_step_log,
)
from treegate.domain.value_objects import TreeHashResult, ValidationPhase, ValidationStep
from treegate.infrastructure.checks.step_executor import StepExecutor
from treegate.infrastructure.persistence._paths import OutputPathBuilder


class FakeTreeHashProvider:
    def __init__(self, tree_hash: str = "abc123def456") -> None:
        self.calls = 0
        self.tree_hash = tree_hash

    async def compute(self) -> TreeHashResult:
        self.calls += 1
        return TreeHashResult(hash=self.tree_hash)


def phase(name: str, *steps: tuple[str, str], fail_fast: bool = True) -> ValidationPhase:
    return ValidationPhase(
        name=name,
        fail_fast=fail_fast,
        steps=[ValidationStep(name=step_name, command=command) for step_name, command in steps],
    )


@pytest.fixture
def provider() -> FakeTreeHashProvider:
    return FakeTreeHashProvider()


@pytest.fixture
def runner(provider: FakeTreeHashProvider, paths: OutputPathBuilder) -> ValidationRunner:
    executor = StepExecutor(paths=paths, stdout_mirror=io.StringIO(), stderr_mirror=io.StringIO())
    return ValidationRunner(provider, executor, ProcessRegistry(), paths)


class TestFormatStepLog:
    def test_passed_step(self) -> None:
        assert format_step_log("lint", "ok\n", True) == f"{LOG_SEPARATOR}\nlint\n{LOG_SEPARATOR}\nok\n\n"

    def test_failed_step_is_marked(self) -> None:
        assert "lint - FAILED" in format_step_log("lint", "", False)


class TestValidationRunner:
    async def test_all_phases_pass(
        self, runner: ValidationRunner, provider: FakeTreeHashProvider
    ) -> None:
        result = await runner.run(
            [phase("build", ("compile", "echo built")), phase("test", ("unit", "echo tested"))]
        )

        assert result.passed is True
        assert result.summary == "Validation passed"
        assert result.tree_hash == "abc123def456"
        assert result.failed_step is None
        assert [p.name for p in result.phases] == ["build", "test"]
        assert provider.calls == 1

    async def test_failed_phase_stops_run(self, runner: ValidationRunner) -> None:
        result = await runner.run(
            [
                phase("build", ("compile", "echo nope; exit 1")),
                phase("test", ("unit", "echo tested")),
            ]
        )

        assert result.passed is False
        assert result.failed_step == "compile"
        assert result.summary == "compile failed"
        assert [p.name for p in result.phases] == ["build"]
        assert result.phases[0].passed is False

    async def test_full_log_contains_every_step(self, runner: ValidationRunner) -> None:
        result = await runner.run(
            [phase("checks", ("lint", "echo lint-out"), ("types", "echo types-out; exit 2"))],
            RunnerOptions(fail_fast=False),
        )

        assert result.full_log_file is not None
        log = Path(result.full_log_file).read_text()
        assert log.startswith("Validation started at ")
        assert "lint-out" in log
        assert "types - FAILED" in log
        assert "types-out" in log

    async def test_explicit_log_file(self, runner: ValidationRunner, tmp_path: Path) -> None:
        log_file = tmp_path / "custom.log"

        result = await runner.run([phase("p", ("s", "true"))], RunnerOptions(log_file=log_file))

        assert result.full_log_file == str(log_file)
        assert log_file.exists()

    async def test_fail_fast_override_beats_phase_setting(self, runner: ValidationRunner) -> None:
        result = await runner.run(
            [phase("checks", ("a", "exit 1"), ("b", "true"), fail_fast=True)],
            RunnerOptions(fail_fast=False),
        )

        assert [s.name for s in result.step_results()] == ["a", "b"]

    async def test_phase_fail_fast_used_without_override(self, runner: ValidationRunner) -> None:
        result = await runner.run([phase("checks", ("a", "exit 1"), ("b", "true"), fail_fast=False)])

        assert [s.name for s in result.step_results()] == ["a", "b"]

    async def test_given_tree_skips_hash_computation(
        self, runner: ValidationRunner, provider: FakeTreeHashProvider
    ) -> None:
        result = await runner.run([phase("p", ("s", "true"))], tree=TreeHashResult(hash="feedbeef"))

        assert result.tree_hash == "feedbeef"
        assert provider.calls == 0

    async def test_env_and_cwd_reach_steps(self, runner: ValidationRunner, tmp_path: Path) -> None:
        command = f'test "$MODE" = ci && test "$(pwd -P)" = "{tmp_path.resolve()}"'
        result = await runner.run(
            [phase("p", ("s", command))],
            RunnerOptions(env={"MODE": "ci"}, cwd=tmp_path),
        )

        assert result.passed is True

    async def test_callbacks_fire_in_order(
        self, provider: FakeTreeHashProvider, paths: OutputPathBuilder
    ) -> None:
        events: list[str] = []
        callbacks = RunnerCallbacks(
            on_phase_start=lambda p: events.append(f"phase:{p.name}"),
            on_phase_complete=lambda p, r: events.append(f"phase-done:{p.name}:{r.passed}"),
            on_step_start=lambda s: events.append(f"step:{s.name}"),
            on_step_complete=lambda s, r: events.append(f"step-done:{s.name}"),
        )
        executor = StepExecutor(paths=paths, stdout_mirror=io.StringIO(), stderr_mirror=io.StringIO())
        runner = ValidationRunner(provider, executor, ProcessRegistry(), paths, callbacks)

        await runner.run([phase("p", ("s", "true"))])

        assert events == ["phase:p", "step:s", "step-done:s", "phase-done:p:True"]
