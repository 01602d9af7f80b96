"""Recognise treegate results embedded in a step's own output.

A validation step may itself invoke `treegate run` or `treegate validate`,
which print their result as a YAML document introduced by a `---` line.
Reusing that result keeps the inner extraction and cache status intact.
"""

import re
from dataclasses import dataclass
from typing import Any, Literal

import yaml
from loguru import logger
from pydantic import ValidationError

from treegate.domain.value_objects import ErrorExtractorResult, OutputFiles

_DOCUMENT_START = re.compile(r"(?:^|\r?\n)(---\r?\n)")


@dataclass(frozen=True)
class FreshOutput:
    """Output carries no embedded result and must be extracted."""


@dataclass(frozen=True)
class NestedResult:
    kind: Literal["run", "validate"]
    passed: bool
    extraction: ErrorExtractorResult | None = None
    is_cached_result: bool | None = None
    output_files: OutputFiles | None = None
    tree_hash: str | None = None


ParsedOutput = FreshOutput | NestedResult


def parse_nested_result(output: str) -> ParsedOutput:
    match = _DOCUMENT_START.search(output)
    if match is None:
        return FreshOutput()

    try:
        data = yaml.safe_load(output[match.start(1) :])
    except yaml.YAMLError:
        return FreshOutput()

    if not isinstance(data, dict):
        return FreshOutput()
    if "command" in data and "exit_code" in data:
        return _from_run_result(data)
    if {"passed", "timestamp", "phases"} <= data.keys():
        return _from_validation_result(data)
    return FreshOutput()


def _from_run_result(data: dict[str, Any]) -> NestedResult:
    return NestedResult(
        kind="run",
        passed=data.get("exit_code") == 0,
        extraction=_model_or_none(ErrorExtractorResult, data.get("extraction")),
        is_cached_result=_bool_or_none(data.get("is_cached_result")),
        output_files=_model_or_none(OutputFiles, data.get("output_files")),
        tree_hash=data.get("tree_hash"),
    )


def _from_validation_result(data: dict[str, Any]) -> NestedResult:
    extraction = None
    failed_step = data.get("failed_step")
    for phase in data.get("phases") or []:
        for step in (phase or {}).get("steps") or []:
            if isinstance(step, dict) and step.get("name") == failed_step:
                extraction = _model_or_none(ErrorExtractorResult, step.get("extraction"))

    if extraction is None and not data.get("passed"):
        extraction = ErrorExtractorResult(
            summary=str(data.get("summary") or "Nested validation failed"),
            total_errors=0,
        )

    full_log = data.get("full_log_file")
    return NestedResult(
        kind="validate",
        passed=bool(data.get("passed")),
        extraction=extraction,
        is_cached_result=_bool_or_none(data.get("is_cached_result")),
        output_files=OutputFiles(combined=full_log) if isinstance(full_log, str) else None,
        tree_hash=data.get("tree_hash"),
    )


def _model_or_none(model: type[Any], value: Any) -> Any:
    if value is None:
        return None
    try:
        return model.model_validate(value)
    except ValidationError as e:
        logger.debug("Ignoring malformed nested {}: {}", model.__name__, e)
        return None


def _bool_or_none(value: Any) -> bool | None:
    return value if isinstance(value, bool) else None
