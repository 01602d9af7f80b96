from pydantic import BaseModel, Field, field_validator


class ValidationStep(BaseModel, frozen=True):
    name: str = Field(min_length=1)
    command: str = Field(min_length=1)
    env: dict[str, str] = {}
    cwd: str | None = Field(
        default=None, description="Working directory relative to the repository root"
    )


class ValidationPhase(BaseModel, frozen=True):
    name: str = Field(min_length=1)
    parallel: bool = False
    fail_fast: bool = True
    steps: list[ValidationStep] = Field(min_length=1)

    @field_validator("steps")
    @classmethod
    def _unique_step_names(cls, steps: list[ValidationStep]) -> list[ValidationStep]:
        seen: set[str] = set()
        for step in steps:
            if step.name in seen:
                raise ValueError(f"duplicate step name '{step.name}'")
            seen.add(step.name)
        return steps
