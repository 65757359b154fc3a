"""
Synchronized Store

Owns the signed-in user's transactions, bills and goals, loaded from the
remote store and kept in step with it.

Every mutation follows the same shape:
1. Apply the change locally, synchronously (visible before any await)
2. Send the corresponding remote write
3. Reconcile: adopt the authoritative record, or roll the local change back

GUARANTEES:
- A failed or timed-out write never leaves a temporary-id record behind
- A stale load (superseded by a newer bind) never writes state
- A confirmation never resurrects a record deleted while it was pending
- Bill toggles and goal deposits are serialized per entity, and deposits
  are computed from the last confirmed value, so none is lost
- Remote failures come back as SyncResult, never as exceptions

Known limitation: if a reload runs while a toggle/deposit is in flight,
that entity keeps its local value and its previous confirmed baseline.
"""

import asyncio
from collections import Counter
from collections.abc import Awaitable
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Optional, TypeVar, Union
from uuid import uuid4

import structlog
from pydantic import ValidationError

from finance_tracker.audit import SyncAuditLogger
from finance_tracker.config import StoreSettings, get_settings
from finance_tracker.models.audit import SyncResult
from finance_tracker.models.entities import (
    Bill,
    BillDraft,
    EntityKind,
    Goal,
    GoalDraft,
    Transaction,
    TransactionDraft,
)
from finance_tracker.rules.bill_payment import (
    bill_payment_transaction,
    should_synthesize,
)
from finance_tracker.services.storage.adapter import (
    ROW_PARSERS,
    bill_to_row,
    goal_to_row,
    transaction_to_row,
)
from finance_tracker.services.storage.interface import (
    OrderBy,
    RemoteStoreInterface,
    RemoteTable,
    RemoteTimeoutError,
    Row,
)


logger = structlog.get_logger(__name__)

T = TypeVar("T")
Entity = Union[Transaction, Bill, Goal]
Amount = Union[Decimal, int, float, str]

COLLECTION_NAMES = {
    EntityKind.TRANSACTION: "transactions",
    EntityKind.BILL: "bills",
    EntityKind.GOAL: "goals",
}

# What bind() reads, and in which order each collection is kept
LOAD_ORDER: dict[EntityKind, OrderBy] = {
    EntityKind.TRANSACTION: OrderBy(column="date", ascending=False),
    EntityKind.BILL: OrderBy(column="due_date", ascending=True),
    EntityKind.GOAL: OrderBy(column="created_at", ascending=True),
}


def to_amount(value: Amount) -> Decimal:
    """
    Convert a user-supplied amount to Decimal.

    Raises:
        ValueError: If the value is not a finite number
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid amount: {value!r}")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as e:
        raise ValueError(f"Invalid amount: {value!r}") from e
    if not amount.is_finite():
        raise ValueError(f"Amount must be finite, got {value!r}")
    return amount


class SynchronizedStore:
    """
    Optimistic, remote-backed store for one user's financial records.

    Construct one per app session and pass it to consumers. Collections
    are exposed as tuples; only the store's own operations change them.
    """

    def __init__(
        self,
        remote: RemoteStoreInterface,
        settings: Optional[StoreSettings] = None,
        audit_logger: Optional[SyncAuditLogger] = None,
        today: Callable[[], date] = date.today,
    ):
        """
        Args:
            remote: Backend to load from and write to
            settings: Timeouts, temp-id prefix, bill payment defaults
            audit_logger: Sync event sink, a local-only one if None
            today: Clock for the bill payment transaction date
        """
        self._remote = remote
        self._settings = settings or get_settings().store
        self._audit = audit_logger or SyncAuditLogger()
        self._today = today

        self._user_id = ""
        self._loading = False
        self._load_errors: dict[str, str] = {}
        self._collections: dict[EntityKind, list[Any]] = {
            kind: [] for kind in EntityKind
        }

        # Incremented on every bind; a load only applies if still current
        self._generation = 0
        # Incremented whenever the bound user changes; writes started under
        # an older epoch don't touch state
        self._epoch = 0

        self._pending: set[str] = set()             # temp ids awaiting insert
        self._cancelled_inserts: set[str] = set()   # temp ids deleted while pending
        self._deleting: set[str] = set()            # ids with a delete in flight
        self._inflight: Counter[str] = Counter()    # ids with in-place writes in flight
        self._confirmed_paid: dict[str, bool] = {}
        self._confirmed_amounts: dict[str, Decimal] = {}
        self._locks: dict[tuple[EntityKind, str], asyncio.Lock] = {}

    # =========================================================================
    # Read-only views
    # =========================================================================

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def load_errors(self) -> dict[str, str]:
        """Collections whose last load failed, with the error message."""
        return dict(self._load_errors)

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        return tuple(self._collections[EntityKind.TRANSACTION])

    @property
    def bills(self) -> tuple[Bill, ...]:
        return tuple(self._collections[EntityKind.BILL])

    @property
    def goals(self) -> tuple[Goal, ...]:
        return tuple(self._collections[EntityKind.GOAL])

    @property
    def has_pending_writes(self) -> bool:
        return bool(self._pending or self._deleting or +self._inflight)

    def is_pending(self, record_id: str) -> bool:
        """True while a record still carries its temporary id."""
        return record_id in self._pending

    # =========================================================================
    # Loading
    # =========================================================================

    async def bind(self, user_id: Optional[str]) -> bool:
        """
        Bind the store to a user and load their records.

        An empty user id clears everything. Switching to a different user
        discards the previous user's records immediately. The three reads
        run concurrently; a failed read leaves its collection empty and is
        reported in `load_errors`.

        Returns:
            False if a newer bind superseded this one before it finished
        """
        user_id = user_id or ""
        self._generation += 1
        generation = self._generation

        if user_id != self._user_id:
            self._reset()
        self._user_id = user_id

        if not user_id:
            self._loading = False
            self._audit.state_cleared()
            return True

        self._loading = True
        self._audit.load_started(user_id, generation)

        kinds = list(LOAD_ORDER)
        results = await asyncio.gather(
            *(
                self._remote_call(
                    self._remote.list_records(
                        RemoteTable.for_kind(kind), user_id, LOAD_ORDER[kind]
                    )
                )
                for kind in kinds
            ),
            return_exceptions=True,
        )

        if generation != self._generation:
            self._audit.load_superseded(user_id, generation)
            return False

        errors: dict[str, str] = {}
        for kind, result in zip(kinds, results):
            name = COLLECTION_NAMES[kind]
            if isinstance(result, BaseException):
                errors[name] = str(result) or type(result).__name__
                self._audit.load_failed(user_id, name, result)
                self._apply_loaded(kind, [])
                continue
            records = self._parse_rows(kind, result)
            self._apply_loaded(kind, records)
            self._audit.load_completed(user_id, name, len(records))

        self._load_errors = errors
        self._loading = False
        return True

    async def reload(self) -> bool:
        """Reload the currently bound user's records."""
        return await self.bind(self._user_id)

    def _parse_rows(self, kind: EntityKind, rows: list[Row]) -> list[Entity]:
        records = []
        parse = ROW_PARSERS[kind]
        for row in rows:
            try:
                records.append(parse(row))
            except ValidationError as e:
                # Skip malformed rows
                logger.warning(
                    "malformed_row_skipped",
                    collection=COLLECTION_NAMES[kind],
                    row_id=row.get("id"),
                    error=str(e),
                )
        return records

    def _apply_loaded(self, kind: EntityKind, records: list[Entity]) -> None:
        """Replace a collection wholesale, keeping local writes still in flight."""
        current = self._collections[kind]
        provisional = [r for r in current if r.id in self._pending]
        local_by_id = {r.id: r for r in current}

        merged = []
        for record in records:
            if record.id in self._deleting:
                continue
            if self._inflight[record.id] and record.id in local_by_id:
                merged.append(local_by_id[record.id])
                continue
            merged.append(record)
            if kind is EntityKind.BILL:
                self._confirmed_paid[record.id] = record.is_paid
            elif kind is EntityKind.GOAL:
                self._confirmed_amounts[record.id] = record.current_amount

        if kind is EntityKind.TRANSACTION:
            self._collections[kind] = provisional + merged
        else:
            self._collections[kind] = merged + provisional

    def _reset(self) -> None:
        self._epoch += 1
        self._collections = {kind: [] for kind in EntityKind}
        self._load_errors = {}
        self._pending.clear()
        self._cancelled_inserts.clear()
        self._deleting.clear()
        self._inflight.clear()
        self._confirmed_paid.clear()
        self._confirmed_amounts.clear()
        self._locks.clear()

    # =========================================================================
    # Transactions
    # =========================================================================

    async def add_transaction(self, draft: TransactionDraft) -> SyncResult:
        """
        Add a transaction optimistically.

        The provisional record is at the front of `transactions` as soon as
        this coroutine starts running; it is replaced by the stored record
        on success and removed on failure.
        """
        operation = "add_transaction"
        if not self._user_id:
            return self._no_user(operation, EntityKind.TRANSACTION)

        provisional = Transaction.model_validate(
            {**draft.model_dump(), "id": self._new_temp_id()}
        )
        self._collections[EntityKind.TRANSACTION].insert(0, provisional)
        row = transaction_to_row(provisional, self._user_id)
        return await self._insert(EntityKind.TRANSACTION, operation, provisional, row)

    async def delete_transaction(self, transaction_id: str) -> SyncResult:
        """
        Delete a transaction: removed locally at once, restored if the
        remote delete fails.
        """
        operation = "delete_transaction"
        kind = EntityKind.TRANSACTION
        collection = self._collections[kind]
        index = _index_of(collection, transaction_id)
        if index is None:
            return self._skipped(operation, kind, transaction_id, "not found")

        record = collection.pop(index)
        self._audit.optimistic_applied(self._user_id, operation, kind.value, transaction_id)

        if transaction_id in self._pending:
            # Not stored yet: the pending insert removes it once it lands
            self._cancelled_inserts.add(transaction_id)
            return SyncResult(
                success=True,
                operation=operation,
                entity_type=kind.value,
                entity_id=transaction_id,
            )

        epoch = self._epoch
        user_id = self._user_id
        self._deleting.add(transaction_id)
        try:
            await self._remote_call(
                self._remote.delete_record(RemoteTable.TRANSACTIONS, transaction_id)
            )
        except Exception as e:
            self._audit.write_failed(user_id, operation, kind.value, transaction_id, e)
            restored = False
            if epoch == self._epoch:
                self._deleting.discard(transaction_id)
                collection = self._collections[kind]
                if _index_of(collection, transaction_id) is None:
                    collection.insert(min(index, len(collection)), record)
                    restored = True
                    self._audit.rolled_back(user_id, operation, kind.value, transaction_id)
            return SyncResult(
                success=False,
                operation=operation,
                entity_type=kind.value,
                entity_id=transaction_id,
                rolled_back=restored,
                error_message=str(e) or type(e).__name__,
            )

        if epoch == self._epoch:
            self._deleting.discard(transaction_id)
        self._audit.write_confirmed(user_id, operation, kind.value, transaction_id)
        return SyncResult(
            success=True,
            operation=operation,
            entity_type=kind.value,
            entity_id=transaction_id,
        )

    # =========================================================================
    # Bills
    # =========================================================================

    async def add_bill(self, draft: BillDraft) -> SyncResult:
        """Add a bill optimistically; new bills are always unpaid."""
        operation = "add_bill"
        if not self._user_id:
            return self._no_user(operation, EntityKind.BILL)

        provisional = Bill.model_validate(
            {**draft.model_dump(), "id": self._new_temp_id(), "is_paid": False}
        )
        self._collections[EntityKind.BILL].append(provisional)
        row = bill_to_row(provisional, self._user_id)
        return await self._insert(EntityKind.BILL, operation, provisional, row)

    async def toggle_bill_paid(self, bill_id: str) -> SyncResult:
        """
        Flip a bill's paid flag.

        Only `is_paid` is persisted. Going from unpaid to paid also adds
        one expense transaction for the bill (see rules.bill_payment).
        Going back to unpaid leaves that transaction in place.

        An unknown id is a silent no-op.
        """
        operation = "toggle_bill_paid"
        kind = EntityKind.BILL
        collection = self._collections[kind]
        index = _index_of(collection, bill_id)
        if index is None:
            return self._skipped(operation, kind, bill_id, "not found")
        if bill_id in self._pending:
            return self._not_confirmed(operation, kind, bill_id)

        bill: Bill = collection[index]
        is_paid = not bill.is_paid
        collection[index] = bill.model_copy(update={"is_paid": is_paid})
        self._audit.optimistic_applied(self._user_id, operation, kind.value, bill_id)

        epoch = self._epoch
        user_id = self._user_id
        self._inflight[bill_id] += 1
        try:
            async with self._lock(kind, bill_id):
                was_paid = self._confirmed_paid.get(bill_id, bill.is_paid)
                try:
                    await self._remote_call(
                        self._remote.update_record(
                            RemoteTable.BILLS, bill_id, {"is_paid": is_paid}
                        )
                    )
                except Exception as e:
                    self._audit.write_failed(user_id, operation, kind.value, bill_id, e)
                    rolled_back = False
                    # Later toggles still queued own the local value
                    if epoch == self._epoch and self._inflight[bill_id] == 1:
                        rolled_back = self._update_local(kind, bill_id, is_paid=was_paid)
                        if rolled_back:
                            self._audit.rolled_back(user_id, operation, kind.value, bill_id)
                    return SyncResult(
                        success=False,
                        operation=operation,
                        entity_type=kind.value,
                        entity_id=bill_id,
                        rolled_back=rolled_back,
                        error_message=str(e) or type(e).__name__,
                    )

                if epoch != self._epoch:
                    return SyncResult(
                        success=True,
                        operation=operation,
                        entity_type=kind.value,
                        entity_id=bill_id,
                    )

                self._confirmed_paid[bill_id] = is_paid
                self._audit.write_confirmed(user_id, operation, kind.value, bill_id)

                derived = None
                if should_synthesize(was_paid, is_paid):
                    draft = bill_payment_transaction(bill, self._today(), self._settings)
                    derived = await self.add_transaction(draft)
                    if derived.success:
                        self._audit.bill_payment_synthesized(
                            user_id, bill_id, derived.entity_id, str(bill.amount)
                        )

                return SyncResult(
                    success=derived is None or derived.success,
                    operation=operation,
                    entity_type=kind.value,
                    entity_id=bill_id,
                    error_message=derived.error_message if derived else None,
                    derived=derived,
                )
        finally:
            if epoch == self._epoch:
                self._inflight[bill_id] -= 1

    # =========================================================================
    # Goals
    # =========================================================================

    async def add_goal(self, draft: GoalDraft, initial_deposit: Amount = 0) -> SyncResult:
        """
        Add a goal optimistically, starting at `initial_deposit`.

        Raises:
            ValueError: If initial_deposit is negative or not finite
        """
        operation = "add_goal"
        deposit = to_amount(initial_deposit)
        if deposit < 0:
            raise ValueError(f"Initial deposit cannot be negative, got {initial_deposit!r}")
        if not self._user_id:
            return self._no_user(operation, EntityKind.GOAL)

        provisional = Goal.model_validate(
            {**draft.model_dump(), "id": self._new_temp_id(), "current_amount": deposit}
        )
        self._collections[EntityKind.GOAL].append(provisional)
        row = goal_to_row(provisional, self._user_id)
        return await self._insert(EntityKind.GOAL, operation, provisional, row)

    async def update_goal_progress(self, goal_id: str, amount_to_add: Amount) -> SyncResult:
        """
        Add `amount_to_add` to a goal's current amount.

        The addition is unconditional: not clamped to the target, and
        negative deltas are applied as given. The local value changes at
        once; the remote write stores an absolute amount computed from the
        last confirmed value, one write per goal at a time.

        An unknown id is a silent no-op.

        Raises:
            ValueError: If amount_to_add is not a finite number
        """
        operation = "update_goal_progress"
        kind = EntityKind.GOAL
        delta = to_amount(amount_to_add)

        collection = self._collections[kind]
        index = _index_of(collection, goal_id)
        if index is None:
            return self._skipped(operation, kind, goal_id, "not found")
        if goal_id in self._pending:
            return self._not_confirmed(operation, kind, goal_id)

        goal: Goal = collection[index]
        collection[index] = goal.model_copy(
            update={"current_amount": goal.current_amount + delta}
        )
        self._audit.optimistic_applied(self._user_id, operation, kind.value, goal_id)

        epoch = self._epoch
        user_id = self._user_id
        self._inflight[goal_id] += 1
        try:
            async with self._lock(kind, goal_id):
                base = self._confirmed_amounts.get(goal_id, goal.current_amount)
                new_amount = base + delta
                try:
                    await self._remote_call(
                        self._remote.update_record(
                            RemoteTable.GOALS, goal_id, {"current_amount": str(new_amount)}
                        )
                    )
                except Exception as e:
                    self._audit.write_failed(user_id, operation, kind.value, goal_id, e)
                    rolled_back = False
                    if epoch == self._epoch:
                        current = _find(self._collections[kind], goal_id)
                        if current is not None:
                            rolled_back = self._update_local(
                                kind, goal_id, current_amount=current.current_amount - delta
                            )
                        if rolled_back:
                            self._audit.rolled_back(user_id, operation, kind.value, goal_id)
                    return SyncResult(
                        success=False,
                        operation=operation,
                        entity_type=kind.value,
                        entity_id=goal_id,
                        rolled_back=rolled_back,
                        error_message=str(e) or type(e).__name__,
                    )

                if epoch == self._epoch:
                    self._confirmed_amounts[goal_id] = new_amount
                self._audit.write_confirmed(user_id, operation, kind.value, goal_id)
                return SyncResult(
                    success=True,
                    operation=operation,
                    entity_type=kind.value,
                    entity_id=goal_id,
                )
        finally:
            if epoch == self._epoch:
                self._inflight[goal_id] -= 1

    # =========================================================================
    # Shared write plumbing
    # =========================================================================

    async def _insert(
        self,
        kind: EntityKind,
        operation: str,
        provisional: Entity,
        row: Row,
    ) -> SyncResult:
        """Send an optimistic insert and reconcile the provisional record."""
        temp_id = provisional.id
        epoch = self._epoch
        user_id = self._user_id
        self._pending.add(temp_id)
        self._audit.optimistic_applied(user_id, operation, kind.value, temp_id)

        try:
            stored = await self._remote_call(
                self._remote.insert_record(RemoteTable.for_kind(kind), row)
            )
            record = ROW_PARSERS[kind](stored)
        except Exception as e:
            self._pending.discard(temp_id)
            self._cancelled_inserts.discard(temp_id)
            self._audit.write_failed(user_id, operation, kind.value, temp_id, e)
            rolled_back = epoch == self._epoch and self._remove_local(kind, temp_id)
            if rolled_back:
                self._audit.rolled_back(user_id, operation, kind.value, temp_id)
            return SyncResult(
                success=False,
                operation=operation,
                entity_type=kind.value,
                entity_id=temp_id,
                rolled_back=rolled_back,
                error_message=str(e) or type(e).__name__,
            )

        self._pending.discard(temp_id)
        self._audit.write_confirmed(user_id, operation, kind.value, record.id, temp_id)

        if temp_id in self._cancelled_inserts:
            # Deleted locally while pending: remove the stored copy too,
            # including one a reload may already have brought in
            self._cancelled_inserts.discard(temp_id)
            if epoch == self._epoch:
                self._remove_local(kind, record.id)
            return await self._delete_orphan(kind, operation, record.id, user_id)

        if epoch == self._epoch:
            self._adopt(kind, temp_id, record)
        return SyncResult(
            success=True,
            operation=operation,
            entity_type=kind.value,
            entity_id=record.id,
        )

    async def _delete_orphan(
        self,
        kind: EntityKind,
        operation: str,
        record_id: str,
        user_id: str,
    ) -> SyncResult:
        epoch = self._epoch
        self._deleting.add(record_id)
        try:
            await self._remote_call(
                self._remote.delete_record(RemoteTable.for_kind(kind), record_id)
            )
        except Exception as e:
            if epoch == self._epoch:
                self._deleting.discard(record_id)
            self._audit.write_failed(user_id, "delete_transaction", kind.value, record_id, e)
            return SyncResult(
                success=False,
                operation=operation,
                entity_type=kind.value,
                entity_id=record_id,
                error_message=str(e) or type(e).__name__,
            )
        if epoch == self._epoch:
            self._deleting.discard(record_id)
        self._audit.write_confirmed(user_id, "delete_transaction", kind.value, record_id)
        return SyncResult(
            success=True,
            operation=operation,
            entity_type=kind.value,
            entity_id=record_id,
        )

    def _adopt(self, kind: EntityKind, temp_id: str, record: Entity) -> None:
        """Swap the provisional record for the stored one, in place."""
        collection = self._collections[kind]
        index = _index_of(collection, temp_id)
        if index is None:
            # Gone already (rebound or reloaded away): nothing to resurrect
            return
        if _index_of(collection, record.id) is not None:
            # A reload already brought the stored record in
            collection.pop(index)
            return
        collection[index] = record
        if kind is EntityKind.BILL:
            self._confirmed_paid[record.id] = record.is_paid
        elif kind is EntityKind.GOAL:
            self._confirmed_amounts[record.id] = record.current_amount

    def _remove_local(self, kind: EntityKind, record_id: str) -> bool:
        collection = self._collections[kind]
        index = _index_of(collection, record_id)
        if index is None:
            return False
        collection.pop(index)
        return True

    def _update_local(self, kind: EntityKind, record_id: str, **fields: Any) -> bool:
        collection = self._collections[kind]
        index = _index_of(collection, record_id)
        if index is None:
            return False
        collection[index] = collection[index].model_copy(update=fields)
        return True

    async def _remote_call(self, call: Awaitable[T]) -> T:
        timeout = self._settings.request_timeout_seconds
        try:
            return await asyncio.wait_for(call, timeout=timeout)
        except asyncio.TimeoutError as e:
            raise RemoteTimeoutError(f"Remote call timed out after {timeout}s") from e

    def _lock(self, kind: EntityKind, record_id: str) -> asyncio.Lock:
        return self._locks.setdefault((kind, record_id), asyncio.Lock())

    def _new_temp_id(self) -> str:
        return f"{self._settings.temp_id_prefix}{uuid4()}"

    def _skipped(
        self,
        operation: str,
        kind: EntityKind,
        record_id: str,
        reason: str,
    ) -> SyncResult:
        self._audit.mutation_skipped(self._user_id, operation, kind.value, record_id, reason)
        return SyncResult(
            success=True,
            skipped=True,
            operation=operation,
            entity_type=kind.value,
            entity_id=record_id,
        )

    def _not_confirmed(self, operation: str, kind: EntityKind, record_id: str) -> SyncResult:
        reason = "record not yet confirmed by remote store"
        self._audit.mutation_skipped(self._user_id, operation, kind.value, record_id, reason)
        return SyncResult(
            success=False,
            skipped=True,
            operation=operation,
            entity_type=kind.value,
            entity_id=record_id,
            error_message=reason,
        )

    def _no_user(self, operation: str, kind: EntityKind) -> SyncResult:
        reason = "no user bound"
        self._audit.mutation_skipped(None, operation, kind.value, "", reason)
        return SyncResult(
            success=False,
            skipped=True,
            operation=operation,
            entity_type=kind.value,
            error_message=reason,
        )


def _index_of(collection: list[Entity], record_id: str) -> Optional[int]:
    for index, record in enumerate(collection):
        if record.id == record_id:
            return index
    return None


def _find(collection: list[Entity], record_id: str) -> Optional[Entity]:
    index = _index_of(collection, record_id)
    return collection[index] if index is not None else None
