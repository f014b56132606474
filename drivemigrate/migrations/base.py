"""Base classes for drivemigrate migrations."""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, ClassVar, Iterable, List

from drivemigrate.core.exceptions import ConfigurationError, MigrationError

logger = logging.getLogger(__name__)

STATUS_APPLIED = "applied"
STATUS_FAILED = "failed"
STATUS_SKIPPED = "skipped"


@dataclass(frozen=True)
class MigrationRule:
    """A named, individually enableable unit of migration work.

    Attributes:
        name: Unique rule name (e.g., "file.float-backfill")
        description: Human-readable description of the rule
        enabled_by_default: Whether the rule runs without being asked for
        rerunnable: Whether running the rule a second time is safe
    """

    name: str
    description: str
    enabled_by_default: bool = True
    rerunnable: bool = True


@dataclass
class RuleSelection:
    """Which rules a run should execute.

    A rule runs when it is explicitly enabled, or when it is enabled by
    default and not explicitly disabled.
    """

    enable: set[str] = field(default_factory=set)
    disable: set[str] = field(default_factory=set)

    def __post_init__(self):
        self.enable = set(self.enable)
        self.disable = set(self.disable)
        both = self.enable & self.disable
        if both:
            raise ConfigurationError(
                f"Rules both enabled and disabled: {', '.join(sorted(both))}"
            )

    def is_enabled(self, rule: MigrationRule) -> bool:
        if rule.name in self.enable:
            return True
        return rule.enabled_by_default and rule.name not in self.disable

    def validate(self, known: Iterable[MigrationRule]) -> None:
        """Reject rule names no job knows about.

        Raises:
            ConfigurationError: If an unknown rule name was given
        """
        known_names = {rule.name for rule in known}
        unknown = (self.enable | self.disable) - known_names
        if unknown:
            raise ConfigurationError(
                f"Unknown migration rule(s): {', '.join(sorted(unknown))}. "
                f"Known rules: {', '.join(sorted(known_names))}"
            )


@dataclass
class SubtaskResult:
    """Outcome of one rule inside one job."""

    job: str
    rule: str
    status: str
    affected: int = 0
    error: MigrationError | None = None
    duration: float = 0.0

    @property
    def failed(self) -> bool:
        return self.status == STATUS_FAILED

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "job": self.job,
            "rule": self.rule,
            "status": self.status,
            "affected": self.affected,
            "error": self.error.message if self.error else None,
            "duration": round(self.duration, 3),
        }


RuleHandler = Callable[[], Awaitable[int]]


class MigrationJob(ABC):
    """A top-level migration unit made of independent rules.

    Subclasses declare their ``rules`` and implement one coroutine per
    rule, registered in ``handlers()``. Each rule coroutine returns the
    number of documents it touched, or raises a MigrationError on its first
    failure.

    Rules run in lanes: every lane is one concurrent task and the rules in
    a lane run one after another. By default each rule gets its own lane.
    """

    name: ClassVar[str] = "job"
    rules: ClassVar[tuple[MigrationRule, ...]] = ()

    @abstractmethod
    def handlers(self) -> dict[str, RuleHandler]:
        """Map rule names to their coroutine functions."""
        pass

    def lanes(self, enabled: List[MigrationRule]) -> List[List[MigrationRule]]:
        """Group enabled rules into sequential lanes."""
        return [[rule] for rule in enabled]

    async def run(self, selection: RuleSelection | None = None) -> List[SubtaskResult]:
        """Run every enabled rule and return one result per rule.

        Args:
            selection: Which rules to run; defaults to the default set

        Returns:
            Results in rule declaration order
        """
        selection = selection or RuleSelection()
        enabled = [rule for rule in self.rules if selection.is_enabled(rule)]
        if not enabled:
            logger.info(f"No rules enabled for {self.name} migration")
            return []

        lane_results = await asyncio.gather(
            *(self._run_lane(lane) for lane in self.lanes(enabled))
        )

        by_rule = {r.rule: r for lane in lane_results for r in lane}
        return [by_rule[rule.name] for rule in enabled if rule.name in by_rule]

    async def _run_lane(self, lane: List[MigrationRule]) -> List[SubtaskResult]:
        results = []
        blocked_by = None
        for rule in lane:
            if blocked_by is not None:
                logger.warning(f"Skipping {rule.name}: {blocked_by} failed earlier in its lane")
                results.append(SubtaskResult(self.name, rule.name, STATUS_SKIPPED))
                continue

            result = await self._run_rule(rule)
            if result.failed:
                blocked_by = rule.name
            results.append(result)
        return results

    async def _run_rule(self, rule: MigrationRule) -> SubtaskResult:
        handler = self.handlers()[rule.name]
        logger.info(f"Running {rule.name}: {rule.description}")
        started = time.monotonic()
        try:
            affected = await handler()
        except MigrationError as e:
            logger.error(f"{rule.name} failed: {e.message}")
            return SubtaskResult(
                self.name,
                rule.name,
                STATUS_FAILED,
                error=e,
                duration=time.monotonic() - started,
            )
        except Exception as e:
            logger.exception(f"{rule.name} failed with an unexpected error")
            error = MigrationError(
                f"unexpected error in {rule.name}: {type(e).__name__}: {e}"
            )
            error.__cause__ = e
            return SubtaskResult(
                self.name,
                rule.name,
                STATUS_FAILED,
                error=error,
                duration=time.monotonic() - started,
            )

        logger.info(f"{rule.name} done, {affected} document(s) affected")
        return SubtaskResult(
            self.name,
            rule.name,
            STATUS_APPLIED,
            affected=affected or 0,
            duration=time.monotonic() - started,
        )


@dataclass
class RunReport:
    """Outcome of a whole migration run."""

    results: List[SubtaskResult] = field(default_factory=list)
    started_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    finished_at: datetime | None = None

    @property
    def errors(self) -> List[MigrationError]:
        return [r.error for r in self.results if r.error is not None]

    @property
    def ok(self) -> bool:
        return not any(r.failed for r in self.results)

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1

    def lines(self) -> List[str]:
        """Human-readable error lines, one per failed rule."""
        return [f"{r.rule}: {r.error}" for r in self.results if r.error is not None]

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "ok": self.ok,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "results": [r.to_dict() for r in self.results],
        }
