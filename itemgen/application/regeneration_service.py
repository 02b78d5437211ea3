"""Item regeneration application service.

Orchestrates the destructive replace-all workflow for a product's items:
- Validating the request before any write
- Deleting the existing items (fan-out, all-or-nothing)
- Creating and linking one item per option combination (fan-out)
- Provisioning one stock row per item at the store's default location
- Falling back to a single option-less item when nothing is selected

Regenerations are serialized per product and bounded by a timeout.
"""

import asyncio
import time
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, TypeVar
from uuid import uuid4

import structlog

from itemgen.application.ports import CatalogPorts, LocationProvisioner
from itemgen.catalog.generator import DimensionPlan, VariantGenerator
from itemgen.domain.exceptions import (
    BatchOperationError,
    PartialProvisioningError,
    RegenerationPendingError,
    ValidationError,
)
from itemgen.domain.state_machines import (
    RegenerationPhase,
    validate_regeneration_transition,
)
from itemgen.domain.value_objects import (
    ItemRecord,
    ItemSpec,
    OptionValue,
    ProductSnapshot,
    RegenerateItemsCommand,
)
from itemgen.infrastructure.config import settings

logger = structlog.get_logger()

T = TypeVar("T")
R = TypeVar("R")


# ============================================================================
# Result Types
# ============================================================================


@dataclass
class RegenerationResult:
    """Outcome of a regeneration.

    Attributes:
        product_id: Regenerated product.
        store_id: Owning store.
        created: Number of items created.
        deleted: Number of prior items deleted.
        updated: Number of items written in place (fallback SKU refresh).
        skus: SKUs of the product's items after the run, in creation order.
        item_ids: IDs of the created or updated items.
        errors: Non-fatal provisioning errors.
        phase: Final phase.
        fallback: Whether the option-less fallback path ran.
        dropped_groups: Selected groups ignored beyond the dimension limit.
        location_id: Default location used for stock rows.
    """

    product_id: str
    store_id: str
    created: int = 0
    deleted: int = 0
    updated: int = 0
    skus: list[str] = field(default_factory=list)
    item_ids: list[str] = field(default_factory=list)
    errors: list[PartialProvisioningError] = field(default_factory=list)
    phase: RegenerationPhase = RegenerationPhase.DONE
    fallback: bool = False
    dropped_groups: tuple[str, ...] = ()
    location_id: str | None = None

    @property
    def has_partial_errors(self) -> bool:
        """Check whether any item was left without a stock row."""
        return bool(self.errors)

    @property
    def message(self) -> str:
        """Get a user-facing summary, with a caveat for provisioning errors."""
        if self.fallback and self.updated:
            text = "Updated the default item"
        elif self.fallback and not self.created:
            text = "Default item is up to date"
        elif self.fallback:
            text = "Generated 1 default item"
        else:
            text = f"Generated {self.created} item variants"
        if self.errors:
            text += f" ({len(self.errors)} without stock rows, reconcile to retry)"
        return text


@dataclass
class _Run:
    """Mutable state of one regeneration call."""

    command: RegenerateItemsCommand
    phase: RegenerationPhase = RegenerationPhase.IDLE
    started_at: float = field(default_factory=time.perf_counter)

    def advance(self, target: RegenerationPhase) -> None:
        validate_regeneration_transition(self.command.product_id, self.phase, target)
        logger.debug(
            "Regeneration phase changed",
            product_id=self.command.product_id,
            from_phase=self.phase.value,
            to_phase=target.value,
        )
        self.phase = target

    def fail(self) -> None:
        if self.phase.can_transition_to(RegenerationPhase.FAILED):
            self.advance(RegenerationPhase.FAILED)

    @property
    def duration_ms(self) -> float:
        return round((time.perf_counter() - self.started_at) * 1000, 2)


@dataclass
class _Plan:
    """Validated input for the write phases."""

    product: ProductSnapshot
    existing: list[ItemRecord]
    selected: list[OptionValue]
    dimensions: DimensionPlan | None = None

    @property
    def is_fallback(self) -> bool:
        return not self.selected


# ============================================================================
# Concurrency Helpers
# ============================================================================


class ProductLockRegistry:
    """Per-product locks serializing regenerations.

    Locks are created on demand and discarded once nobody holds or
    waits for them.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    def is_locked(self, product_id: str) -> bool:
        """Check whether a regeneration for the product is in flight."""
        lock = self._locks.get(product_id)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, product_id: str) -> AsyncIterator[None]:
        """Hold the product's lock for the duration of the block.

        Args:
            product_id: Product ID.
        """
        lock = self._locks.setdefault(product_id, asyncio.Lock())
        self._users[product_id] = self._users.get(product_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[product_id] -= 1
            if self._users[product_id] == 0:
                del self._users[product_id]
                self._locks.pop(product_id, None)


class MemoizedLocationProvisioner:
    """Calls the wrapped provisioner at most once per store.

    Concurrent callers for the same store await the same task, so N
    items provisioned in parallel trigger one ``ensure_default`` call.
    A failed call is not cached. Owners call ``cancel_pending`` when
    they stop waiting, so no lookup outlives its regeneration.
    """

    def __init__(self, inner: LocationProvisioner) -> None:
        self.inner = inner
        self._tasks: dict[str, asyncio.Task[str]] = {}

    async def ensure_default(self, store_id: str) -> str:
        task = self._tasks.get(store_id)
        if task is None:
            task = asyncio.ensure_future(self.inner.ensure_default(store_id))
            self._tasks[store_id] = task
        try:
            return await asyncio.shield(task)
        except Exception:
            if self._tasks.get(store_id) is task:
                del self._tasks[store_id]
            raise

    def cancel_pending(self) -> None:
        """Cancel lookups that are still running and forget all results."""
        for task in self._tasks.values():
            if not task.done():
                task.cancel()
        self._tasks.clear()


# ============================================================================
# Regeneration Orchestrator
# ============================================================================


class RegenerationOrchestrator:
    """Replaces the item set of a product from a fresh option selection.

    Example usage:
        orchestrator = RegenerationOrchestrator(build_sql_ports(session_factory))
        result = await orchestrator.regenerate(product_id, store_id, [red_id, small_id])
        if result.errors:
            ...  # items without stock rows, see ReconciliationService
    """

    def __init__(
        self,
        ports: CatalogPorts,
        generator: VariantGenerator | None = None,
        timeout_seconds: float | None = None,
        concurrency: int | None = None,
        locks: ProductLockRegistry | None = None,
    ) -> None:
        """Initialize orchestrator.

        Args:
            ports: Storage ports.
            generator: Variant generator.
            timeout_seconds: Bound on one regeneration call.
            concurrency: Maximum concurrent storage calls per fan-out.
            locks: Per-product lock registry, shared across callers.
        """
        self.ports = ports
        self.generator = generator or VariantGenerator(settings.max_option_dimensions)
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None
            else settings.regeneration_timeout_seconds
        )
        self.concurrency = concurrency or settings.regeneration_concurrency
        self.locks = locks or ProductLockRegistry()

    def is_pending(self, product_id: str) -> bool:
        """Check whether a regeneration for the product is running.

        Args:
            product_id: Product ID.

        Returns:
            True while a regeneration holds the product's lock.
        """
        return self.locks.is_locked(product_id)

    async def regenerate(
        self,
        product_id: str | RegenerateItemsCommand,
        store_id: str | None = None,
        selections: Sequence[str] | None = None,
        wait: bool = True,
    ) -> RegenerationResult:
        """Regenerate the items of a product.

        Args:
            product_id: Product ID, or a complete command.
            store_id: Store ID (ignored when a command is given).
            selections: Selected option value IDs (ignored when a command is given).
            wait: Whether to queue behind a running regeneration of the
                same product instead of failing fast.

        Returns:
            RegenerationResult with counts and non-fatal errors.

        Raises:
            ValidationError: If the request is unusable; nothing was written.
            BatchOperationError: If deleting or creating failed, or on timeout.
            RegenerationPendingError: If ``wait`` is False and a regeneration
                of the product is running.
        """
        if isinstance(product_id, RegenerateItemsCommand):
            command = product_id
        else:
            command = RegenerateItemsCommand.create(product_id, store_id or "", selections)

        if not wait and self.is_pending(command.product_id):
            raise RegenerationPendingError(command.product_id)

        log = logger.bind(
            product_id=command.product_id,
            store_id=command.store_id,
            command_id=command.command_id,
        )

        async with self.locks.hold(command.product_id):
            run = _Run(command=command)
            log.info("Regeneration started", selection_count=len(command.selections))
            try:
                async with asyncio.timeout(self.timeout_seconds):
                    result = await self._execute(run)
            except TimeoutError:
                phase = run.phase
                run.fail()
                log.error(
                    "Regeneration timed out",
                    phase=phase.value,
                    partial_writes=phase.is_writing(),
                    timeout_seconds=self.timeout_seconds,
                )
                raise BatchOperationError(
                    command.product_id, phase=phase.value, reason="timeout"
                ) from None
            except Exception as e:
                phase = run.phase
                run.fail()
                log.warning(
                    "Regeneration failed",
                    phase=phase.value,
                    partial_writes=phase.is_writing(),
                    error=str(e),
                )
                raise

        log.info(
            "Regeneration completed",
            created=result.created,
            deleted=result.deleted,
            updated=result.updated,
            provisioning_errors=len(result.errors),
            duration_ms=run.duration_ms,
        )
        return result

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    async def _execute(self, run: _Run) -> RegenerationResult:
        command = run.command
        run.advance(RegenerationPhase.VALIDATING)
        plan = await self._validate(command)

        result = RegenerationResult(
            product_id=command.product_id,
            store_id=command.store_id,
        )

        if plan.is_fallback:
            return await self._apply_fallback(run, plan, result)

        result.dropped_groups = plan.dimensions.dropped if plan.dimensions else ()

        run.advance(RegenerationPhase.DELETING)
        result.deleted = await self._delete_items(command.product_id, plan.existing)

        run.advance(RegenerationPhase.CREATING)
        specs = self.generator.generate(plan.product, plan.dimensions.dimensions)
        created = await self._create_items(command, specs)
        result.created = len(created)
        result.skus = [item.sku for item in created]
        result.item_ids = [item.id for item in created]

        run.advance(RegenerationPhase.PROVISIONING)
        result.location_id, result.errors = await self._provision(command.store_id, created)

        run.advance(RegenerationPhase.DONE)
        result.phase = run.phase
        return result

    async def _validate(self, command: RegenerateItemsCommand) -> _Plan:
        """Check the request and gather everything the write phases need."""
        if not command.product_id:
            raise ValidationError("Product must be saved before generating items")
        if not command.store_id:
            raise ValidationError(
                "Store is required to generate items",
                details={"product_id": command.product_id},
            )

        product = await self.ports.products.read(command.product_id)
        if product is None:
            raise ValidationError(
                "Product must be saved before generating items",
                details={"product_id": command.product_id},
            )
        if product.store_id != command.store_id:
            raise ValidationError(
                f"Product {command.product_id} does not belong to store {command.store_id}",
                details={"product_id": command.product_id, "store_id": command.store_id},
            )

        existing = await self.ports.items.list(command.product_id)

        if not command.selections:
            if any(item.has_options for item in existing):
                raise ValidationError(
                    "Please select at least one option value",
                    details={"product_id": command.product_id},
                )
            return _Plan(product=product, existing=existing, selected=[])

        _, values = await self.ports.option_catalog.query(command.store_id)
        by_id = {value.id: value for value in values}
        unknown = [value_id for value_id in command.selections if value_id not in by_id]
        if unknown:
            raise ValidationError(
                "Selected option values do not belong to this store",
                details={"store_id": command.store_id, "unknown_ids": unknown},
            )

        selected = [by_id[value_id] for value_id in command.selections]
        return _Plan(
            product=product,
            existing=existing,
            selected=selected,
            dimensions=self.generator.plan(selected),
        )

    async def _delete_items(self, product_id: str, items: list[ItemRecord]) -> int:
        """Delete items concurrently; any failure aborts the regeneration."""
        if not items:
            return 0

        outcomes = await self._fan_out(self.ports.items.delete, [item.id for item in items])
        failures = [str(o) for o in outcomes if isinstance(o, BaseException)]
        if failures:
            logger.error(
                "Item delete failed",
                product_id=product_id,
                failed=len(failures),
                total=len(items),
            )
            raise BatchOperationError(product_id, phase="deleting", failures=failures)

        logger.info("Deleted existing items", product_id=product_id, count=len(items))
        return len(items)

    async def _create_items(
        self,
        command: RegenerateItemsCommand,
        specs: list[ItemSpec],
    ) -> list[ItemRecord]:
        """Create and link one item per spec concurrently.

        On any failure the items that were created are removed again
        before the error propagates.
        """

        async def create_one(spec: ItemSpec) -> ItemRecord:
            item_id = str(uuid4())
            item = await self.ports.items.create(
                item_id, spec, command.product_id, command.store_id
            )
            await self.ports.items.link(item.id, command.product_id)
            return item

        outcomes = await self._fan_out(create_one, specs)
        created = [o for o in outcomes if isinstance(o, ItemRecord)]
        failures = [str(o) for o in outcomes if isinstance(o, BaseException)]

        if failures:
            logger.error(
                "Item create failed",
                product_id=command.product_id,
                failed=len(failures),
                total=len(specs),
            )
            await self._discard(command.product_id, created)
            raise BatchOperationError(
                command.product_id, phase="creating", failures=failures
            )

        logger.info("Created items", product_id=command.product_id, count=len(created))
        return created

    async def _discard(self, product_id: str, items: list[ItemRecord]) -> None:
        """Best-effort removal of items from a failed create phase."""
        if not items:
            return
        outcomes = await self._fan_out(self.ports.items.delete, [item.id for item in items])
        leftovers = sum(1 for o in outcomes if isinstance(o, BaseException))
        if leftovers:
            logger.warning(
                "Items from failed create phase not removed",
                product_id=product_id,
                count=leftovers,
            )

    async def _provision(
        self,
        store_id: str,
        items: list[ItemRecord],
    ) -> tuple[str | None, list[PartialProvisioningError]]:
        """Create one zero-stock row per item at the default location.

        Failures are collected per item and never abort siblings.
        """
        locations = MemoizedLocationProvisioner(self.ports.locations)

        async def provision_one(item: ItemRecord) -> str:
            location_id = await locations.ensure_default(store_id)
            await self.ports.stock_rows.create(item.id, location_id, store_id)
            return location_id

        try:
            outcomes = await self._fan_out(provision_one, items)
        finally:
            locations.cancel_pending()

        location_id = None
        errors = []
        for item, outcome in zip(items, outcomes):
            if isinstance(outcome, BaseException):
                error = PartialProvisioningError(item.id, item.sku, str(outcome))
                logger.warning(
                    "Stock row provisioning failed",
                    item_id=item.id,
                    sku=item.sku,
                    error=str(outcome),
                )
                errors.append(error)
            else:
                location_id = outcome
        return location_id, errors

    async def _apply_fallback(
        self,
        run: _Run,
        plan: _Plan,
        result: RegenerationResult,
    ) -> RegenerationResult:
        """Ensure the product has exactly one option-less item."""
        command = run.command
        spec = self.generator.fallback_spec(plan.product)
        result.fallback = True

        if plan.existing:
            keep, extras = plan.existing[0], plan.existing[1:]
            if extras:
                run.advance(RegenerationPhase.DELETING)
                result.deleted = await self._delete_items(command.product_id, extras)

            run.advance(RegenerationPhase.CREATING)
            item = keep
            if keep.sku != spec.sku:
                item = await self.ports.items.update_sku(keep.id, spec.sku)
                result.updated = 1
                logger.info(
                    "Updated default item sku",
                    product_id=command.product_id,
                    item_id=item.id,
                    sku=item.sku,
                )
            result.skus = [item.sku]
            result.item_ids = [item.id]
            run.advance(RegenerationPhase.DONE)
            result.phase = run.phase
            return result

        run.advance(RegenerationPhase.CREATING)
        created = await self._create_items(command, [spec])
        result.created = len(created)
        result.skus = [item.sku for item in created]
        result.item_ids = [item.id for item in created]

        run.advance(RegenerationPhase.PROVISIONING)
        result.location_id, result.errors = await self._provision(command.store_id, created)

        run.advance(RegenerationPhase.DONE)
        result.phase = run.phase
        return result

    async def _fan_out(
        self,
        fn: Callable[[T], Awaitable[R]],
        args: Sequence[T],
    ) -> list[R | BaseException]:
        """Run ``fn`` over ``args`` concurrently, bounded by ``concurrency``.

        Returns results and exceptions in argument order.
        """
        semaphore = asyncio.Semaphore(self.concurrency)

        async def bounded(arg: T) -> R:
            async with semaphore:
                return await fn(arg)

        return await asyncio.gather(*(bounded(arg) for arg in args), return_exceptions=True)


# ============================================================================
# Service Factory
# ============================================================================


def build_catalog_ports() -> CatalogPorts:
    """Build storage ports for the configured backend.

    Returns:
        In-memory ports when ``storage_backend`` is "memory", SQL otherwise.
    """
    if settings.storage_backend == "memory":
        from itemgen.infrastructure.memory_store import get_memory_catalog

        return get_memory_catalog().ports()

    from itemgen.catalog.repository import build_sql_ports
    from itemgen.infrastructure.database import async_session_factory

    return build_sql_ports(async_session_factory)


# Global instances; the orchestrator owns the per-product locks
_catalog_ports: CatalogPorts | None = None
_orchestrator: RegenerationOrchestrator | None = None


def get_catalog_ports() -> CatalogPorts:
    """Get storage ports singleton."""
    global _catalog_ports
    if _catalog_ports is None:
        _catalog_ports = build_catalog_ports()
    return _catalog_ports


def get_regeneration_orchestrator() -> RegenerationOrchestrator:
    """Get regeneration orchestrator singleton."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = RegenerationOrchestrator(get_catalog_ports())
    return _orchestrator


def reset_regeneration_orchestrator(
    ports: CatalogPorts | None = None,
    **options: Any,
) -> RegenerationOrchestrator:
    """Replace the orchestrator and ports singletons (for testing).

    Args:
        ports: Ports to use, defaults to the configured backend.
        options: Extra RegenerationOrchestrator keyword arguments.

    Returns:
        The new orchestrator.
    """
    global _catalog_ports, _orchestrator
    _catalog_ports = ports or build_catalog_ports()
    _orchestrator = RegenerationOrchestrator(_catalog_ports, **options)
    return _orchestrator
