"""Rollback runs: whole-batch (token) or per-item (scope -> prior version)."""

from __future__ import annotations

import logging
from typing import Mapping, Union

from snbatch.errors import SnBatchError
from snbatch.models import RollbackCredential, RollbackOutcome, RollbackResult

from .strategies import JobDriver, is_fatal

logger = logging.getLogger(__name__)


class RollbackRunner(JobDriver):
    """Submit rollbacks and drive them through the poll state machine."""

    def rollback_batch(self, token: Union[str, RollbackCredential]) -> RollbackResult:
        """
        Revert a whole batch atomically. The token is used once and dropped.

        Raises:
            SnBatchError: submission or polling failure.
        """
        credential = token if isinstance(token, RollbackCredential) else RollbackCredential(token)
        hint = credential.hint()
        handle = self._controller.submit_batch_rollback(credential)

        logger.info("Batch rollback started: job %s, token %s", handle.job_id, hint)
        final = self.drive(handle)
        outcome = RollbackOutcome(
            job_id=handle.job_id,
            succeeded=final.succeeded,
            reason=None if final.succeeded else (final.message or "Rollback failed"),
        )
        return RollbackResult(mode="batch", outcomes=[outcome], rollback_hint=hint)

    def rollback_items(self, records: Mapping[str, str]) -> RollbackResult:
        """
        Roll back scopes one at a time to their recorded prior versions.

        Stops at the first failure; later scopes are left untouched.
        """
        result = RollbackResult(mode="sequential", outcomes=[])
        for scope, version in records.items():
            logger.info("Rolling back %s to %s", scope, version)
            try:
                handle = self._controller.submit_single_rollback(scope, version)
                final = self.drive(handle)
            except SnBatchError as exc:
                if is_fatal(exc):
                    raise
                result.outcomes.append(
                    RollbackOutcome(job_id=None, succeeded=False, scope=scope, version=version, reason=str(exc))
                )
            else:
                result.outcomes.append(
                    RollbackOutcome(
                        job_id=handle.job_id,
                        succeeded=final.succeeded,
                        scope=scope,
                        version=version,
                        reason=None if final.succeeded else (final.message or "Rollback failed"),
                    )
                )

            if not result.outcomes[-1].succeeded:
                result.halted = len(result.outcomes) < len(records)
                break
        return result
