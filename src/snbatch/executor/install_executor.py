"""InstallExecutor: run an install in the mode the caller selected."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Sequence

from snbatch.config import Settings
from snbatch.controller import CicdController
from snbatch.errors import InvalidArgumentError
from snbatch.models import InstallResult, PackageItem

from .options import InstallMode, InstallOptions
from .strategies import BatchStrategy, InstallStrategy, PollSettings, SequentialStrategy

logger = logging.getLogger(__name__)


class InstallExecutor:
    """
    Drive single or batched installs to completion and classify the outcome.

    Every wait blocks the calling thread; jobs issued by one executor never
    overlap. Interrupting the caller stops local polling only: the remote job
    keeps running, and may still succeed or fail, unattended.
    """

    def __init__(
        self,
        controller: CicdController,
        settings: Optional[Settings] = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._controller = controller
        self._settings = settings or Settings()
        self._sleep = sleep
        self._clock = clock

    def execute(
        self,
        items: Sequence[PackageItem],
        options: Optional[InstallOptions] = None,
    ) -> InstallResult:
        """
        Install `items` in the given order.

        Returns:
            InstallResult whose `outcome` is success, partial or failed.

        Raises:
            PollTimeoutError, AuthError, ForbiddenError, NetworkError: the run
                could not continue. `details["partial_result"]` holds what was
                completed; completed items are not rolled back.
            InvalidArgumentError: duplicate scopes in `items`.
        """
        opts = options or InstallOptions()
        _check_unique(items)
        self._effective_concurrency(opts.concurrency)

        if not items:
            logger.info("Nothing to install")
            return InstallResult(mode=opts.mode.value, results=[])

        strategy = self._strategy_for(opts)
        logger.info(
            "Installing %d package(s) on %s (%s mode)",
            len(items),
            self._controller.instance_host,
            opts.mode.value,
        )
        result = strategy.run(items, opts)
        logger.info("Install finished: %s %s", result.outcome.value, result.summary())
        return result

    def poll_settings(self, mode: InstallMode, interval: Optional[float] = None) -> PollSettings:
        if interval is None:
            interval = (
                self._settings.sequential_poll_interval
                if mode is InstallMode.SEQUENTIAL
                else self._settings.poll_interval
            )
        return PollSettings(
            interval=interval,
            max_duration=self._settings.max_poll_duration,
            max_errors=self._settings.retries,
            backoff_base=self._settings.backoff_base,
            sleep=self._sleep,
            clock=self._clock,
        )

    def _strategy_for(self, opts: InstallOptions) -> InstallStrategy:
        poll = self.poll_settings(opts.mode, opts.poll_interval)
        if opts.mode is InstallMode.BATCH:
            return BatchStrategy(self._controller, poll)
        return SequentialStrategy(
            self._controller,
            poll,
            stop_on_error=self._settings.stop_on_error,
        )

    @staticmethod
    def _effective_concurrency(requested: int) -> int:
        if requested != 1:
            logger.warning(
                "Concurrency %s is not supported; installs against one instance "
                "run one at a time. Using concurrency=1.",
                requested,
            )
        return 1


def _check_unique(items: Sequence[PackageItem]) -> None:
    seen: set[str] = set()
    for item in items:
        if item.scope in seen:
            raise InvalidArgumentError("Duplicate scope in install list", details={"scope": item.scope})
        seen.add(item.scope)
