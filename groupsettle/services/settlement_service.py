import asyncio
import logging
from collections import defaultdict
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from fastapi import HTTPException, status

from groupsettle.core.errors import DuplicateSettlementAttempt
from groupsettle.db.mongo import get_database
from groupsettle.models.base import utcnow
from groupsettle.models.ledger import BalancesByCurrency, PaymentPlanEntry
from groupsettle.models.settlement import Settlement, SettlementStatus
from groupsettle.repositories.ledger_repo import LedgerSnapshot, LedgerSnapshotReader
from groupsettle.repositories.settlement_repo import SettlementRepository
from groupsettle.schemas.settlement import SettlementCreate
from groupsettle.services.currency_service import RateTable, get_rate_table, reconcile
from groupsettle.services.ledger_service import compute_balances
from groupsettle.services.settlement_guard import dedupe_keys, ensure_not_recorded
from groupsettle.services.simplifier import simplify, simplify_by_currency
from groupsettle.utils.expense_validation import validate_settlement
from groupsettle.utils.money import qround

logger = logging.getLogger(__name__)

# Single writer per group for settlement completion. The unique dedupe
# index covers writers in other processes.
_group_locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)


def group_lock(group_id: str) -> asyncio.Lock:
    return _group_locks[str(group_id)]


def _ensure_party_or_admin(snapshot: LedgerSnapshot, settlement_like, user_id: str) -> None:
    involved = user_id in (str(settlement_like.from_user_id), str(settlement_like.to_user_id))
    if not involved and not snapshot.group.is_admin(user_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only involved parties or admins can record this payment"
        )


class SettlementService:
    @staticmethod
    async def load_snapshot(group_id: str, user_id: str) -> LedgerSnapshot:
        """Read a consistent snapshot; caller must be an active member."""
        db = await get_database()
        snapshot = await LedgerSnapshotReader(db).read(group_id)
        if snapshot is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Group not found")
        if not snapshot.group.is_active_member(user_id):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied to this group")
        return snapshot

    @staticmethod
    def balances_for(snapshot: LedgerSnapshot) -> BalancesByCurrency:
        return compute_balances(
            snapshot.group.members, snapshot.expenses, snapshot.settlements
        )

    @staticmethod
    async def get_balances(group_id: str, user_id: str) -> Tuple[LedgerSnapshot, BalancesByCurrency]:
        snapshot = await SettlementService.load_snapshot(group_id, user_id)
        return snapshot, SettlementService.balances_for(snapshot)

    @staticmethod
    async def get_plans(
        group_id: str, user_id: str
    ) -> Tuple[LedgerSnapshot, BalancesByCurrency, Dict[str, List[PaymentPlanEntry]]]:
        """Per-currency payment plans, the default view."""
        snapshot, balances = await SettlementService.get_balances(group_id, user_id)
        return snapshot, balances, simplify_by_currency(balances)

    @staticmethod
    async def get_reconciled_plan(
        group_id: str,
        user_id: str,
        target_currency: Optional[str] = None,
        rate_table: Optional[RateTable] = None,
    ) -> Tuple[LedgerSnapshot, Dict[str, Decimal], List[PaymentPlanEntry]]:
        """
        One plan across all currencies, in target_currency (group base
        currency by default). Raises MissingExchangeRate.
        """
        snapshot, balances = await SettlementService.get_balances(group_id, user_id)
        target = (target_currency or snapshot.group.base_currency).upper()
        unified = reconcile(balances, target, rate_table or get_rate_table())
        return snapshot, unified, simplify(unified, target)

    @staticmethod
    async def list_for_group(group_id: str, user_id: str) -> List[Settlement]:
        snapshot = await SettlementService.load_snapshot(group_id, user_id)
        return snapshot.settlements

    @staticmethod
    async def record_payment(
        group_id: str, settlement_in: SettlementCreate, user_id: str
    ) -> Tuple[Settlement, bool]:
        """
        Record a payment as completed.

        Returns (settlement, created). A repeat of an already recorded
        payment is not an error: the stored record comes back with
        created=False and no balance changes.
        """
        currency = validate_settlement(
            settlement_in.from_user_id, settlement_in.to_user_id,
            settlement_in.amount, settlement_in.currency
        )
        proposed = PaymentPlanEntry(
            from_user_id=settlement_in.from_user_id,
            to_user_id=settlement_in.to_user_id,
            amount=qround(settlement_in.amount),
            currency=currency,
        )

        async with group_lock(group_id):
            snapshot = await SettlementService.load_snapshot(group_id, user_id)
            group = snapshot.group
            if not (group.is_active_member(proposed.from_user_id)
                    and group.is_active_member(proposed.to_user_id)):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Both users must be members of the group"
                )
            _ensure_party_or_admin(snapshot, proposed, user_id)

            settlement = Settlement(
                group_id=group.id,
                from_user_id=proposed.from_user_id,
                to_user_id=proposed.to_user_id,
                amount=float(proposed.amount),
                currency=currency,
                status=SettlementStatus.COMPLETED,
                paid_at=utcnow(),
                notes=settlement_in.notes,
                dedupe_keys=dedupe_keys(group.id, proposed),
                created_by=user_id,
            )
            try:
                ensure_not_recorded(proposed, snapshot.settlements, currency)
                db = await get_database()
                settlement = await SettlementRepository(db).append_completed(settlement)
            except DuplicateSettlementAttempt as exc:
                logger.info(
                    "Duplicate settlement ignored in group %s: %s -> %s %s %s",
                    group_id, proposed.from_user_id, proposed.to_user_id,
                    proposed.amount, currency,
                )
                return exc.existing, False

        logger.info("Recorded settlement %s in group %s", settlement.id, group_id)
        return settlement, True

    @staticmethod
    async def create_pending(
        group_id: str, settlement_in: SettlementCreate, user_id: str
    ) -> Settlement:
        """Persist a suggested payment; it has no effect on balances."""
        currency = validate_settlement(
            settlement_in.from_user_id, settlement_in.to_user_id,
            settlement_in.amount, settlement_in.currency
        )
        snapshot = await SettlementService.load_snapshot(group_id, user_id)
        group = snapshot.group
        if not (group.is_active_member(settlement_in.from_user_id)
                and group.is_active_member(settlement_in.to_user_id)):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Both users must be members of the group"
            )

        settlement = Settlement(
            group_id=group.id,
            from_user_id=settlement_in.from_user_id,
            to_user_id=settlement_in.to_user_id,
            amount=float(qround(settlement_in.amount)),
            currency=currency,
            notes=settlement_in.notes,
            created_by=user_id,
        )
        db = await get_database()
        return await SettlementRepository(db).insert_pending(settlement)

    @staticmethod
    async def mark_paid(settlement_id: str, user_id: str) -> Tuple[Settlement, bool]:
        """
        Complete a pending settlement.

        Returns (settlement, created); created is False when the payment
        was already recorded, by this record or another one.
        """
        db = await get_database()
        repo = SettlementRepository(db)
        pending = await repo.get(settlement_id)
        if pending is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Settlement not found")

        group_id = str(pending.group_id)
        async with group_lock(group_id):
            snapshot = await SettlementService.load_snapshot(group_id, user_id)
            _ensure_party_or_admin(snapshot, pending, user_id)

            current = next((s for s in snapshot.settlements if s.id == pending.id), None)
            if current is None:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Settlement not found")
            if current.is_completed:
                return current, False

            proposed = PaymentPlanEntry(
                from_user_id=str(current.from_user_id),
                to_user_id=str(current.to_user_id),
                amount=qround(current.amount),
                currency=current.currency,
            )
            try:
                ensure_not_recorded(proposed, snapshot.settlements, current.currency)
                completed = await repo.complete_pending(
                    settlement_id, utcnow(), dedupe_keys(group_id, proposed)
                )
            except DuplicateSettlementAttempt as exc:
                existing = exc.existing or current
                logger.info("Settlement %s duplicates recorded payment %s", settlement_id, existing.id)
                return existing, False

            if completed is None:
                # Completed by a writer in another process
                return await repo.get(settlement_id), False

        logger.info("Marked settlement %s paid in group %s", settlement_id, group_id)
        return completed, True

    @staticmethod
    async def delete(settlement_id: str, user_id: str) -> bool:
        """Admins only. Deleting a completed settlement is a correction."""
        db = await get_database()
        repo = SettlementRepository(db)
        settlement = await repo.get(settlement_id)
        if settlement is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Settlement not found")

        group_id = str(settlement.group_id)
        async with group_lock(group_id):
            snapshot = await SettlementService.load_snapshot(group_id, user_id)
            if not snapshot.group.is_admin(user_id):
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="Only admins can delete settlements"
                )
            deleted = await repo.delete(settlement_id)

        if deleted:
            logger.info("Deleted settlement %s from group %s by %s", settlement_id, group_id, user_id)
        return deleted
