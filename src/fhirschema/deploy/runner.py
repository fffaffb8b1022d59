"""Deployment runner: apply a plan to a target wave by wave."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Protocol, runtime_checkable

from fhirschema.deploy.plan import DeploymentPlan, PlannedObject, Wave
from fhirschema.exceptions import DeploymentError

__all__ = ["Target", "Runner", "RecordingTarget"]

logger = logging.getLogger(__name__)


@runtime_checkable
class Target(Protocol):
    """Anything that can execute a single SQL statement."""

    def execute(self, statement: str) -> None: ...


class RecordingTarget:
    """Target that keeps every statement it is given, in order."""

    def __init__(self) -> None:
        self.statements: list[str] = []

    def execute(self, statement: str) -> None:
        self.statements.append(statement)


class Runner:
    """
    Applies a deployment plan one wave at a time.

    Objects inside a wave have no dependency on each other, so with
    max_workers > 1 they are applied concurrently. A wave only starts once
    every object of the previous wave has been applied. The first failure
    stops the run; there is no resumption.
    """

    def __init__(self, target: Target, max_workers: int = 1) -> None:
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self._target = target
        self._max_workers = max_workers

    def apply(self, plan: DeploymentPlan, dry_run: bool = False) -> int:
        """
        Apply every wave of the plan in order.

        Args:
            plan: Plan built from a sealed model.
            dry_run: If True, log what would be executed but don't execute.

        Returns:
            Number of objects applied (or that would be applied).
        """
        if not plan.waves:
            logger.info("Nothing to deploy.")
            return 0

        applied = 0
        for wave in plan.waves:
            if dry_run:
                for obj in wave.objects:
                    logger.info(f"[DRY RUN] Would apply {obj.key} (wave {wave.index})")
                applied += len(wave.objects)
                continue

            logger.info(f"Applying wave {wave.index} ({len(wave.objects)} objects)...")
            self._apply_wave(wave)
            applied += len(wave.objects)

        logger.info(f"Applied {applied} objects in {len(plan.waves)} waves")
        return applied

    def _apply_wave(self, wave: Wave) -> None:
        if self._max_workers == 1 or len(wave.objects) == 1:
            for obj in wave.objects:
                self._apply_object(obj)
            return

        with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
            futures = {pool.submit(self._apply_object, obj): obj for obj in wave.objects}
            for future in as_completed(futures):
                # re-raises the DeploymentError from the worker
                future.result()

    def _apply_object(self, obj: PlannedObject) -> None:
        logger.debug(f"Applying {obj.key} version {obj.version}")
        for statement in obj.statements:
            try:
                self._target.execute(statement)
            except Exception as exc:
                raise DeploymentError(f"Failed to apply {obj.key}: {exc}") from exc
