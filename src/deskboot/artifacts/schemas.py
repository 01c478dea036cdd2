from __future__ import annotations

"""Report schemas.

CONTRACT
- Inputs: RunResult / PlanItem values from the orchestrator
- Outputs:
  - Validated JSON-serializable objects (`deskboot run --json`, `deskboot plan --json`)
- Invariants:
  - All schemas have schema_version int field
  - Outcomes use the wire names: applied, already-satisfied, warned, failed
- Failure:
  - Raises ValidationError on schema mismatch
"""

from typing import Literal

from pydantic import BaseModel, Field

from ..orchestrator import PlanItem, RunResult

OutcomeName = Literal["applied", "already-satisfied", "warned", "failed"]


class StepRecord(BaseModel):
    index: int = Field(ge=1)
    name: str
    outcome: OutcomeName
    message: str = ""


class AbortRecord(BaseModel):
    index: int = Field(ge=1)
    name: str
    error: str


class RunReport(BaseModel):
    schema_version: int = 1
    status: Literal["OK", "FAIL"]
    exit_code: int
    steps: list[StepRecord] = Field(default_factory=list)
    warnings: int = 0
    aborted: AbortRecord | None = None


class PlanRecord(BaseModel):
    index: int = Field(ge=1)
    name: str
    pending: bool
    policy: Literal["fatal", "advisory"]
    description: str = ""
    error: str = ""


class PlanReport(BaseModel):
    schema_version: int = 1
    pending: int
    steps: list[PlanRecord] = Field(default_factory=list)


def run_report(result: RunResult) -> RunReport:
    aborted = None
    if result.aborted is not None:
        aborted = AbortRecord(
            index=result.aborted.index,
            name=result.aborted.name,
            error=str(result.aborted.cause),
        )
    return RunReport(
        status="OK" if result.ok else "FAIL",
        exit_code=result.exit_code,
        steps=[
            StepRecord(index=e.index, name=e.name, outcome=e.outcome.value, message=e.message)
            for e in result.log
        ],
        warnings=len(result.warnings),
        aborted=aborted,
    )


def plan_report(items: list[PlanItem]) -> PlanReport:
    return PlanReport(
        pending=sum(1 for i in items if i.pending),
        steps=[
            PlanRecord(
                index=i.index,
                name=i.name,
                pending=i.pending,
                policy="fatal" if i.fatal else "advisory",
                description=i.description,
                error=i.error,
            )
            for i in items
        ],
    )
