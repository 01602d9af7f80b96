import re

from treegate.domain.ports.extractor_port import ErrorExtractorPort
from treegate.domain.value_objects import ErrorExtractorResult, ExtractedError

ERROR_KEYWORDS = [
    "failed",
    "fail",
    "error",
    "exception",
    "traceback",
    "assertionerror",
    "typeerror",
    "valueerror",
    "panic:",
    "fatal:",
    "syntaxerror",
    "referenceerror",
    "at ",
    "-->",
    "undefined:",
]

SUMMARY_MARKERS = [" failed", " passed", " error", " success", " example"]

# Package-manager chatter that never carries a diagnostic
NOISE_PATTERNS = [
    re.compile(r"^>"),
    re.compile(r"npm ERR!"),
    re.compile(r"^npm WARN"),
    re.compile(r"^warning:", re.IGNORECASE),
    re.compile(r"node_modules"),
    re.compile(r"^Download", re.IGNORECASE),
    re.compile(r"^Resolving packages", re.IGNORECASE),
    re.compile(r"^Already up[- ]to[- ]date", re.IGNORECASE),
]

FILE_LINE_REF = re.compile(r"\.(?:py|go|rs|rb|java|cpp|c|h|js|ts|tsx|jsx|mjs|cjs):\d+")

# path/to/file.py:12:5: message  or  path/to/file.py:12: message
DIAGNOSTIC_LINE = re.compile(
    r"^\s*(?P<file>[^\s:][^:]*\.[A-Za-z0-9]+):(?P<line>\d+)(?::(?P<column>\d+))?:?\s+(?P<message>.+)$"
)

MAX_SUMMARY_LINES = 20


def _is_noise(line: str) -> bool:
    return any(pattern.search(line) for pattern in NOISE_PATTERNS)


def _is_relevant(line: str) -> bool:
    lowered = line.lower()
    if any(keyword in lowered for keyword in ERROR_KEYWORDS):
        return True
    if FILE_LINE_REF.search(line):
        return True
    return any(marker in lowered for marker in SUMMARY_MARKERS)


def _parse_diagnostic(line: str) -> ExtractedError | None:
    match = DIAGNOSTIC_LINE.match(line)
    if not match:
        return None
    message = match.group("message").strip()
    lowered = message.lower()
    severity = "warning" if lowered.startswith("warning") else "error"
    return ExtractedError(
        file=match.group("file"),
        line=int(match.group("line")),
        column=int(match.group("column")) if match.group("column") else None,
        message=message,
        severity=severity,
    )


class GenericErrorExtractor(ErrorExtractorPort):
    """Fallback extractor for output of unknown tools.

    Keeps the lines most likely to explain a failure: lines with error
    keywords, file:line references and test-summary lines. Lines shaped
    like compiler diagnostics are also returned as structured errors.
    """

    def extract(self, output: str, step_name: str | None = None) -> ErrorExtractorResult:
        candidates = [line for line in output.split("\n") if line.strip() and not _is_noise(line)]
        relevant = [line for line in candidates if _is_relevant(line)]

        summary_lines = relevant if relevant else candidates
        errors = [
            error
            for error in (_parse_diagnostic(line) for line in relevant)
            if error is not None
        ][:MAX_SUMMARY_LINES]

        has_errors = bool(relevant)
        metadata: dict[str, str] = {"extractor": "generic"}
        if step_name:
            metadata["step"] = step_name
        return ErrorExtractorResult(
            summary="Command failed - see output" if has_errors else "No errors detected",
            total_errors=len(errors),
            errors=errors,
            error_summary="\n".join(summary_lines[:MAX_SUMMARY_LINES]),
            guidance="Review the output above and fix the errors" if has_errors else None,
            metadata=metadata,
        )
