"""UpgradeManager: scan -> preview (plan) -> install, plus reconcile and rollback."""

from __future__ import annotations

import logging
from typing import Iterable, Mapping, Optional, Sequence, Union

from snbatch.auth import InstanceAuth
from snbatch.config import Settings, load_settings
from snbatch.controller import CicdController, RetryPolicy
from snbatch.errors import InvalidStateError
from snbatch.executor import InstallExecutor, InstallMode, InstallOptions, RollbackRunner
from snbatch.history import HistoryStore, build_install_entry, build_rollback_entry
from snbatch.models import (
    InstallResult,
    InstalledPackage,
    PackageItem,
    RollbackCredential,
    RollbackResult,
)
from snbatch.plan import ExecutionPlan, Verdict, build_plan, derive_plan, reconcile
from snbatch.prerequisites import CheckResult, run_prerequisite_checks
from snbatch.util.version import is_upgrade

logger = logging.getLogger(__name__)


class UpgradeManager:
    """High-level manager for one instance: Plan -> Install -> (Rollback)."""

    def __init__(
        self,
        auth: InstanceAuth,
        settings: Optional[Settings] = None,
        *,
        history: Optional[HistoryStore] = None,
    ) -> None:
        settings = settings or load_settings()
        controller = CicdController(
            auth,
            retry_policy=RetryPolicy(
                max_retries=settings.retries,
                backoff_base=settings.backoff_base,
            ),
        )
        self._init(controller, settings, history)

    @classmethod
    def from_controller(
        cls,
        controller: CicdController,
        settings: Optional[Settings] = None,
        *,
        history: Optional[HistoryStore] = None,
        executor: Optional[InstallExecutor] = None,
    ) -> "UpgradeManager":
        """Create manager with an injected controller (useful for tests)."""
        obj = cls.__new__(cls)
        obj._init(controller, settings or Settings(), history, executor)
        return obj

    def _init(
        self,
        controller: CicdController,
        settings: Settings,
        history: Optional[HistoryStore],
        executor: Optional[InstallExecutor] = None,
    ) -> None:
        self._controller = controller
        self._settings = settings
        self._history = history
        self._executor = executor or InstallExecutor(controller, settings)

    @property
    def controller(self) -> CicdController:
        return self._controller

    @property
    def settings(self) -> Settings:
        return self._settings

    # ----------------------------
    # Prerequisites
    # ----------------------------
    def check_prerequisites(self) -> list[CheckResult]:
        """Instance readiness for CI/CD installs, one result per check."""
        results = run_prerequisite_checks(self._controller, self._controller.username)
        failed = [r.name for r in results if not r.passed]
        if failed:
            logger.warning(
                "Prerequisite checks on %s: %d failed (%s)",
                self._controller.instance_host,
                len(failed),
                ", ".join(failed),
            )
        else:
            logger.info("Prerequisite checks on %s passed", self._controller.instance_host)
        return results

    # ----------------------------
    # Discovery / planning
    # ----------------------------
    def scan(self, exclude: Iterable[str] = ()) -> list[PackageItem]:
        """
        Applications with an update available, as upgrade items.

        Scopes in `exclude` or in the configured `exclude_always` are dropped.
        """
        excluded = set(self._settings.exclude_always) | set(exclude)
        items: list[PackageItem] = []
        for pkg in self._controller.fetch_updatable_apps():
            if pkg.scope in excluded:
                continue
            item = pkg.to_package_item()
            if not is_upgrade(item.current_version, item.target_version):
                logger.debug("Skipping %s: no newer version (%s)", pkg.scope, pkg.version)
                continue
            items.append(item)
        logger.info("Scan found %d update(s) on %s", len(items), self._controller.instance_host)
        return items

    def preview(
        self,
        items: Optional[Sequence[PackageItem]] = None,
        *,
        profile: Optional[str] = None,
        demo_scopes: Iterable[str] = (),
    ) -> ExecutionPlan:
        """
        Build a plan for this instance.

        `items` defaults to a fresh `scan()`. Demo data is loaded only for
        scopes in `demo_scopes`.
        """
        if items is None:
            items = self.scan()
        demo = set(demo_scopes)
        planned = [item.with_demo_data(item.scope in demo) for item in items]
        return build_plan(
            planned,
            source_ref=self._controller.base_url,
            source_version_label=self._controller.fetch_instance_version(),
            profile=profile,
        )

    # ----------------------------
    # Install
    # ----------------------------
    def install(
        self,
        plan_or_items: Union[ExecutionPlan, Sequence[PackageItem]],
        options: Optional[InstallOptions] = None,
        *,
        profile: Optional[str] = None,
    ) -> InstallResult:
        """
        Install a plan (or an explicit item list).

        Raises:
            InvalidStateError: sequential mode without the CI/CD credential alias.
            SnBatchError: fatal errors from the executor (see InstallExecutor).
        """
        opts = options or InstallOptions()
        if isinstance(plan_or_items, ExecutionPlan):
            items: Sequence[PackageItem] = plan_or_items.items
            profile = profile or plan_or_items.metadata.profile
        else:
            items = plan_or_items

        if opts.mode is InstallMode.SEQUENTIAL and items:
            self._preflight_credential_alias()

        result = self._executor.execute(items, opts)
        if self._history is not None and items:
            self._history.append(
                build_install_entry(
                    result,
                    items,
                    instance=self._controller.base_url,
                    instance_host=self._controller.instance_host,
                    profile=profile,
                )
            )
        return result

    def _preflight_credential_alias(self) -> None:
        if not self._controller.check_cicd_credential_alias():
            raise InvalidStateError(
                "CI/CD credential alias is not configured; sequential installs "
                "would fail with 'Credential not found'. Configure the "
                "sn_cicd_spoke.CICD alias or use batch mode.",
                details={"instance": self._controller.instance_host},
            )

    # ----------------------------
    # Reconcile
    # ----------------------------
    def target_packages(self) -> list[InstalledPackage]:
        """Everything installed on this instance: store apps and active plugins."""
        return self._controller.fetch_installed_apps() + self._controller.fetch_plugins()

    def reconcile(self, plan: ExecutionPlan) -> list[Verdict]:
        """Diff a plan recorded elsewhere against this instance."""
        verdicts = reconcile(plan.items, self.target_packages())
        logger.info(
            "Reconciled %d planned item(s) from %s against %s",
            len(plan.items),
            plan.metadata.source_ref,
            self._controller.instance_host,
        )
        return verdicts

    def derive(self, verdicts: Iterable[Verdict], *, profile: Optional[str] = None) -> ExecutionPlan:
        """Plan for this instance built from reconciliation verdicts."""
        return derive_plan(
            verdicts,
            source_ref=self._controller.base_url,
            source_version_label=self._controller.fetch_instance_version(),
            profile=profile,
        )

    # ----------------------------
    # Rollback
    # ----------------------------
    def rollback_batch(
        self,
        token: Union[str, RollbackCredential],
        *,
        profile: Optional[str] = None,
    ) -> RollbackResult:
        """Revert a whole batch install with its rollback token."""
        source = self._history.find_by_token(token) if self._history is not None else None
        result = self._rollback_runner(InstallMode.BATCH).rollback_batch(token)
        self._record_rollback(result, profile, source)
        return result

    def rollback_items(
        self,
        records: Mapping[str, str],
        *,
        profile: Optional[str] = None,
    ) -> RollbackResult:
        """Roll back scopes (scope -> prior version) one at a time."""
        result = self._rollback_runner(InstallMode.SEQUENTIAL).rollback_items(records)
        self._record_rollback(result, profile, None)
        return result

    def _rollback_runner(self, mode: InstallMode) -> RollbackRunner:
        return RollbackRunner(self._controller, self._executor.poll_settings(mode))

    def _record_rollback(
        self,
        result: RollbackResult,
        profile: Optional[str],
        source: Optional[dict],
    ) -> None:
        if self._history is None:
            return
        self._history.append(
            build_rollback_entry(
                result,
                instance=self._controller.base_url,
                instance_host=self._controller.instance_host,
                profile=profile or (source or {}).get("profile"),
                source_entry_id=(source or {}).get("id"),
            )
        )
