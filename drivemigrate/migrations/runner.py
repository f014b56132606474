"""Migration runner: runs every job concurrently and reports the outcome."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, List, Sequence

from drivemigrate.core.exceptions import ConfigurationError
from drivemigrate.migrations.base import (
    MigrationJob,
    MigrationRule,
    RuleSelection,
    RunReport,
    SubtaskResult,
)
from drivemigrate.migrations.file import FileMigration
from drivemigrate.migrations.permission import PermissionMigration
from drivemigrate.migrations.search import SearchResync

logger = logging.getLogger(__name__)

JOB_CLASSES = (FileMigration, PermissionMigration, SearchResync)


def all_rules() -> List[MigrationRule]:
    """Every rule known to the built-in jobs, in declaration order."""
    return [rule for job_class in JOB_CLASSES for rule in job_class.rules]


class MigrationRunner:
    """Runs migration jobs against already-opened stores and services.

    This runner:
    - Starts every job at once, each job fanning out into its own rules
    - Joins every job before returning, with no deadline
    - Collects one explicit result per enabled rule into a RunReport
    - Optionally holds a job back until the jobs it depends on finished
    """

    def __init__(
        self,
        jobs: Sequence[MigrationJob] = (),
        selection: RuleSelection | None = None,
        dependencies: Dict[str, Sequence[str]] | None = None,
    ):
        """Initialize the migration runner.

        Args:
            jobs: The jobs to run
            selection: Which rules to run; defaults to the default set
            dependencies: Job name -> names of jobs it must wait for
        """
        self._jobs: List[MigrationJob] = []
        self.selection = selection or RuleSelection()
        self.dependencies = {k: tuple(v) for k, v in (dependencies or {}).items()}
        for job in jobs:
            self.register(job)

    @classmethod
    def from_resources(
        cls,
        resources,
        selection: RuleSelection | None = None,
        resync_after_backfill: bool = False,
    ) -> "MigrationRunner":
        """Build the standard file, permission and search jobs.

        Args:
            resources: Opened MigrationResources
            selection: Which rules to run
            resync_after_backfill: Make the search resync wait for the file job
        """
        dependencies = {}
        if resync_after_backfill:
            dependencies[SearchResync.name] = (FileMigration.name,)

        return cls(
            jobs=[
                FileMigration(resources.file_db),
                PermissionMigration(resources.permission_db, resources.file_service),
                SearchResync(resources.search_file_db, resources.search_service),
            ],
            selection=selection,
            dependencies=dependencies,
        )

    @property
    def jobs(self) -> List[MigrationJob]:
        return list(self._jobs)

    def register(self, job: MigrationJob) -> None:
        """Register a job.

        Raises:
            ConfigurationError: If a job with the same name is registered
        """
        if any(existing.name == job.name for existing in self._jobs):
            raise ConfigurationError(f"Migration job '{job.name}' registered twice")
        self._jobs.append(job)

    def get_rules(self) -> List[MigrationRule]:
        """Rules of every registered job, in registration order."""
        return [rule for job in self._jobs for rule in job.rules]

    def get_enabled_rules(self) -> List[MigrationRule]:
        return [rule for rule in self.get_rules() if self.selection.is_enabled(rule)]

    def _validate(self) -> None:
        self.selection.validate(self.get_rules())

        seen = set()
        for job in self._jobs:
            for dependency in self.dependencies.get(job.name, ()):
                if dependency not in seen:
                    raise ConfigurationError(
                        f"Job '{job.name}' depends on '{dependency}', "
                        "which is not registered before it"
                    )
            seen.add(job.name)

    async def run(self) -> RunReport:
        """Run every job and return the report.

        Returns:
            RunReport with one result per enabled rule

        Raises:
            ConfigurationError: If the rule selection or dependencies are invalid
        """
        self._validate()

        report = RunReport()
        enabled = self.get_enabled_rules()
        logger.info(
            f"Running {len(self._jobs)} migration job(s) with "
            f"{len(enabled)} rule(s): {', '.join(r.name for r in enabled)}"
        )

        tasks: Dict[str, asyncio.Task] = {}
        for job in self._jobs:
            waits_for = [tasks[name] for name in self.dependencies.get(job.name, ())]
            tasks[job.name] = asyncio.create_task(
                self._run_job(job, waits_for), name=f"migration-{job.name}"
            )

        job_results = await asyncio.gather(*tasks.values())

        report.results = [result for results in job_results for result in results]
        report.finished_at = datetime.now(timezone.utc)

        if report.ok:
            logger.info("All migration rules applied")
        else:
            logger.error(f"{len(report.errors)} migration rule(s) failed")
        return report

    async def _run_job(
        self,
        job: MigrationJob,
        waits_for: List[asyncio.Task],
    ) -> List[SubtaskResult]:
        if waits_for:
            logger.info(f"{job.name} migration waiting for {len(waits_for)} job(s)")
            await asyncio.wait(waits_for)
        return await job.run(self.selection)
