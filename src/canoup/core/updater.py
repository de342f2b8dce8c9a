"""
One canoup run: sync the mirror, then build and install when warranted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from canoup.core.config import CanoupConfig
from canoup.core.pipeline import BuildPipeline, CommandResult
from canoup.core.sync import SyncResult, SyncService

logger = logging.getLogger(__name__)

StepCallback = Callable[[str], None]
SyncCallback = Callable[[SyncResult], None]


@dataclass
class UpdateReport:
    """What a run did: the sync result and the commands it ran."""

    sync: SyncResult
    build: CommandResult | None = None
    install: CommandResult | None = None

    @property
    def built(self) -> bool:
        return self.build is not None


class Updater:
    """
    Couples the sync service with the build pipeline.

    The sync decides whether a rebuild is due (fresh clone, new upstream
    commits, or nothing installed yet); failures anywhere propagate to the
    caller, which owns the exit status.
    """

    def __init__(
        self,
        sync_service: SyncService,
        pipeline: BuildPipeline,
        install: bool = True,
    ) -> None:
        self.sync_service = sync_service
        self.pipeline = pipeline
        self.install = install

    @classmethod
    def from_config(cls, config: CanoupConfig, install: bool = True) -> Updater:
        sync_service = SyncService.from_config(config)
        return cls(
            sync_service=sync_service,
            pipeline=BuildPipeline.from_config(config, sync_service.mirror_dir),
            install=install,
        )

    def run(
        self,
        on_step: StepCallback | None = None,
        on_sync: SyncCallback | None = None,
    ) -> UpdateReport:
        """
        Sync the mirror and run the pipeline if needed.

        Args:
            on_step: Called with a short label before each pipeline step.
            on_sync: Called with the sync result before any pipeline step.

        Raises:
            SyncError: Repository failures.
            PipelineError: Build/install failures.
        """
        result = self.sync_service.sync()
        report = UpdateReport(sync=result)
        logger.info("Sync finished: %s", result.summary())
        if on_sync:
            on_sync(result)

        if not result.needs_build:
            return report

        if on_step:
            on_step("build")
        report.build = self.pipeline.build()

        if self.install:
            if on_step:
                on_step("install")
            report.install = self.pipeline.install()

        return report
