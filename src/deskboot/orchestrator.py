from __future__ import annotations

"""Convergent step runner.

CONTRACT
- Inputs: ordered list of Steps
- Outputs (required):
  - RunResult (log of (index, name, outcome, message) entries, abort info)
- Invariants:
  - Steps run in the order given, each at most once
  - apply() never runs when check() reports the end-state already holds
  - A failing fatal step stops the run; later steps never run
  - A failing advisory step is recorded as warned and the run continues
  - The run log lives only for this invocation; nothing is persisted here
- Failure:
  - Returns RunResult with aborted set (or raises Aborted when asked to)
"""

from dataclasses import dataclass, field
from typing import Callable, Iterable

from loguru import logger

from .errors import Aborted
from .steps.base import Outcome, Step
from .util.ids import ensure_unique


@dataclass(frozen=True)
class RunEntry:
    index: int
    name: str
    outcome: Outcome
    message: str = ""


@dataclass
class RunLog:
    entries: list[RunEntry] = field(default_factory=list)

    def append(self, entry: RunEntry) -> None:
        self.entries.append(entry)

    def outcomes(self) -> list[Outcome]:
        return [e.outcome for e in self.entries]

    def names(self) -> list[str]:
        return [e.name for e in self.entries]

    def by_outcome(self, outcome: Outcome) -> list[RunEntry]:
        return [e for e in self.entries if e.outcome is outcome]

    def __iter__(self):
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class RunResult:
    log: RunLog
    aborted: Aborted | None = None

    @property
    def ok(self) -> bool:
        return self.aborted is None

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1

    @property
    def warnings(self) -> list[RunEntry]:
        return self.log.by_outcome(Outcome.WARNED)


@dataclass(frozen=True)
class PlanItem:
    index: int
    name: str
    pending: bool
    fatal: bool
    description: str = ""
    error: str = ""


EntryCallback = Callable[[RunEntry], None]


def _describe(exc: BaseException) -> str:
    text = str(exc).strip()
    return text or exc.__class__.__name__


def run_steps(
    steps: Iterable[Step],
    *,
    on_entry: EntryCallback | None = None,
    raise_on_abort: bool = False,
) -> RunResult:
    """Converge the machine by running each step's check, then apply if needed."""
    steps = list(steps)
    ensure_unique(s.name for s in steps)
    log = RunLog()

    def record(entry: RunEntry) -> None:
        log.append(entry)
        if on_entry is not None:
            on_entry(entry)

    for index, step in enumerate(steps, start=1):
        logger.info(f"[{index:02d}] {step.name}" + (f": {step.description}" if step.description else ""))
        try:
            satisfied = step.check()
            if not satisfied:
                step.apply()
        except Exception as exc:
            message = _describe(exc)
            if step.fatal:
                logger.error(f"{step.name} failed: {message}")
                record(RunEntry(index, step.name, Outcome.FAILED, message))
                aborted = Aborted(index, step.name, exc)
                if raise_on_abort:
                    raise aborted from exc
                return RunResult(log=log, aborted=aborted)
            logger.warning(f"{step.name}: {message}")
            record(RunEntry(index, step.name, Outcome.WARNED, message))
            continue

        if satisfied:
            logger.info(f"{step.name} already satisfied")
            record(RunEntry(index, step.name, Outcome.SATISFIED))
        else:
            logger.success(f"{step.name} applied")
            record(RunEntry(index, step.name, Outcome.APPLIED))

    return RunResult(log=log)


def plan_steps(steps: Iterable[Step]) -> list[PlanItem]:
    """Evaluate checks only. apply() is never called."""
    steps = list(steps)
    ensure_unique(s.name for s in steps)
    items: list[PlanItem] = []
    for index, step in enumerate(steps, start=1):
        try:
            pending = not step.check()
            error = ""
        except Exception as exc:
            pending = True
            error = _describe(exc)
            logger.debug(f"check for {step.name} raised: {error}")
        items.append(
            PlanItem(
                index=index,
                name=step.name,
                pending=pending,
                fatal=step.fatal,
                description=step.description,
                error=error,
            )
        )
    return items
