"""
Applies verified external subscription events to accounts.

Delivery is at-least-once and unordered, so every event goes through:
1. the idempotency ledger (a known event id is never re-applied),
2. the subscription linkage (events for a replaced subscription are stale),
3. the per-account timestamp guard (older events never overwrite newer state),
4. orphan handling (events for unknown customers are recorded and skipped).

Mutations and the ledger row commit in one transaction.
"""

from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError

from common.core.otel_axiom_exporter import trace_span, get_logger, log_span_event
from common.db.context import transactional
from packages.accounts.models.domain.account import Account
from packages.accounts.repositories.account_repository import AccountRepository
from packages.billing.repositories.applied_event_repository import (
    AppliedEventRepository,
)
from packages.billing.repositories.history_repository import (
    PaymentRecordRepository,
    SubscriptionEventRepository,
)
from packages.billing.models.domain.enums import (
    EventKind,
    EventOutcome,
    PaymentStatus,
    SubscriptionStatus,
)
from packages.billing.models.domain.events import (
    AppliedEvent,
    AppliedEventCreateModel,
    ApplyOutcome,
    CheckoutCompletedEvent,
    ExternalSubscriptionEvent,
    PaymentEvent,
    SubscriptionChangedEvent,
)
from packages.billing.models.domain.history import (
    PaymentRecordCreateModel,
    SubscriptionEventCreateModel,
)

logger = get_logger(__name__)

_Result = Tuple[EventOutcome, Optional[str]]


class SubscriptionReconciler:
    """Subscription state machine driven by provider events."""

    def __init__(self):
        self.account_repo = AccountRepository()
        self.ledger_repo = AppliedEventRepository()
        self.payment_repo = PaymentRecordRepository()
        self.audit_repo = SubscriptionEventRepository()

    @trace_span
    async def apply(self, event: ExternalSubscriptionEvent) -> ApplyOutcome:
        """
        Apply one event exactly once.

        Duplicate, stale, orphan and unknown events are outcomes, not errors.
        Store failures propagate with nothing written.
        """
        recorded = await self.ledger_repo.get_by_event_id(event.event_id)
        if recorded:
            return self._duplicate(event, recorded)

        try:
            return await self._apply_once(event)
        except IntegrityError:
            # A concurrent delivery of the same event committed first
            recorded = await self.ledger_repo.get_by_event_id(event.event_id)
            if recorded is not None:
                return self._duplicate(event, recorded)
            # A concurrent checkout linked the same customer to another account
            linked = await self._customer_linked_elsewhere(event)
            if linked is None:
                raise
            return await self._record_orphan(
                event, f"customer {event.customer_id} already linked to {linked}"
            )

    async def _customer_linked_elsewhere(
        self, event: ExternalSubscriptionEvent
    ) -> Optional[str]:
        if not isinstance(event, CheckoutCompletedEvent) or not event.customer_id:
            return None
        linked = await self.account_repo.get_by_external_customer_id(
            event.customer_id
        )
        if linked and linked.id != event.account_id:
            return linked.id
        return None

    def _duplicate(
        self, event: ExternalSubscriptionEvent, recorded: AppliedEvent
    ) -> ApplyOutcome:
        logger.info(
            f"Event {event.event_id} already processed, skipping",
            extra={
                "event_id": event.event_id,
                "event_type": event.event_type,
                "previous_outcome": recorded.outcome.value,
            },
        )
        return ApplyOutcome(
            event_id=event.event_id,
            event_type=event.event_type,
            outcome=EventOutcome.SKIPPED_DUPLICATE,
            previous_outcome=recorded.outcome,
            account_id=recorded.account_id,
        )

    @transactional
    async def _apply_once(self, event: ExternalSubscriptionEvent) -> ApplyOutcome:
        if isinstance(event, CheckoutCompletedEvent):
            outcome, account_id = await self._apply_checkout(event)
        elif isinstance(event, SubscriptionChangedEvent):
            outcome, account_id = await self._apply_subscription_change(event)
        elif isinstance(event, PaymentEvent):
            outcome, account_id = await self._apply_payment(event)
        else:
            logger.info(
                f"Ignoring unhandled event type: {event.event_type}",
                extra={"event_id": event.event_id, "event_type": event.event_type},
            )
            outcome, account_id = EventOutcome.IGNORED, None

        return await self._finish(event, outcome, account_id)

    @transactional
    async def _record_orphan(
        self, event: ExternalSubscriptionEvent, reason: str
    ) -> ApplyOutcome:
        outcome, account_id = self._orphan(event, reason)
        return await self._finish(event, outcome, account_id)

    async def _finish(
        self,
        event: ExternalSubscriptionEvent,
        outcome: EventOutcome,
        account_id: Optional[str],
    ) -> ApplyOutcome:
        await self.ledger_repo.record(
            AppliedEventCreateModel(
                event_id=event.event_id,
                event_type=event.event_type,
                outcome=outcome.value,
                account_id=account_id,
            )
        )
        log_span_event(
            f"Processed {event.event_type}",
            {
                "event_id": event.event_id,
                "outcome": outcome.value,
                "account_id": account_id or "",
            },
        )
        return ApplyOutcome(
            event_id=event.event_id,
            event_type=event.event_type,
            outcome=outcome,
            account_id=account_id,
        )

    def _orphan(self, event: ExternalSubscriptionEvent, reason: str) -> _Result:
        logger.warning(
            f"Orphan event {event.event_id} ({event.event_type}): {reason}",
            extra={
                "event_id": event.event_id,
                "event_type": event.event_type,
                "reason": reason,
            },
        )
        return EventOutcome.SKIPPED_ORPHAN, None

    def _stale(
        self, event: ExternalSubscriptionEvent, account: Account, reason: str
    ) -> _Result:
        logger.info(
            f"Stale event {event.event_id} for account {account.id}: {reason}",
            extra={
                "event_id": event.event_id,
                "event_type": event.event_type,
                "account_id": account.id,
            },
        )
        return EventOutcome.SKIPPED_STALE, account.id

    async def _apply_checkout(self, event: CheckoutCompletedEvent) -> _Result:
        """
        Bootstrap the provider linkage.

        The only event resolved by the caller's correlation id rather than by
        customer id, since no customer linkage exists yet.
        """
        if not event.account_id:
            return self._orphan(event, "checkout session has no account reference")

        account = await self.account_repo.get(event.account_id)
        if not account:
            return self._orphan(event, f"account {event.account_id} not found")

        if event.status is None:
            return await self._apply_one_time_checkout(event, account)

        values = {"subscription_status": event.status.value}
        if event.customer_id and event.customer_id != account.external_customer_id:
            linked = await self.account_repo.get_by_external_customer_id(
                event.customer_id
            )
            if linked and linked.id != account.id:
                return self._orphan(
                    event,
                    f"customer {event.customer_id} already linked to {linked.id}",
                )
            if account.external_customer_id:
                # Customer id is set once; a second customer keeps the first
                logger.warning(
                    f"Account {account.id} already linked to customer {account.external_customer_id}",
                    extra={"event_id": event.event_id, "account_id": account.id},
                )
            else:
                values["external_customer_id"] = event.customer_id
        if event.subscription_id:
            values["external_subscription_id"] = event.subscription_id

        applied = await self.account_repo.apply_subscription_state(
            account.id, values, event.created_at
        )
        if not applied:
            return self._stale(event, account, "newer subscription state recorded")

        await self.audit_repo.create(
            SubscriptionEventCreateModel(
                account_id=account.id,
                event_id=event.event_id,
                event_type=event.event_type,
                old_status=account.subscription_status,
                new_status=event.status,
                subscription_id=event.subscription_id,
                event_metadata={"checkout_session_id": event.session_id},
            )
        )
        if event.paid and event.amount_cents:
            await self.payment_repo.create(
                PaymentRecordCreateModel(
                    account_id=account.id,
                    event_id=event.event_id,
                    payment_intent_id=event.payment_intent_id,
                    subscription_id=event.subscription_id,
                    amount_cents=event.amount_cents,
                    currency=event.currency or "USD",
                    status=PaymentStatus.SUCCEEDED,
                    description="Subscription checkout",
                )
            )

        logger.info(
            f"Checkout completed for account {account.id}",
            extra={
                "event_id": event.event_id,
                "account_id": account.id,
                "customer_id": event.customer_id,
                "subscription_id": event.subscription_id,
                "status": event.status.value,
            },
        )
        return EventOutcome.APPLIED, account.id

    async def _apply_one_time_checkout(
        self, event: CheckoutCompletedEvent, account: Account
    ) -> _Result:
        """Record the payment of a session that starts no subscription."""
        if not (event.paid and event.amount_cents):
            logger.info(
                f"Checkout {event.session_id} started no subscription, ignoring",
                extra={"event_id": event.event_id, "account_id": account.id},
            )
            return EventOutcome.IGNORED, account.id

        await self.payment_repo.create(
            PaymentRecordCreateModel(
                account_id=account.id,
                event_id=event.event_id,
                payment_intent_id=event.payment_intent_id,
                amount_cents=event.amount_cents,
                currency=event.currency or "USD",
                status=PaymentStatus.SUCCEEDED,
                description="One-time checkout",
            )
        )
        logger.info(
            f"One-time payment recorded for account {account.id}",
            extra={
                "event_id": event.event_id,
                "account_id": account.id,
                "session_id": event.session_id,
            },
        )
        return EventOutcome.APPLIED, account.id

    async def _apply_subscription_change(
        self, event: SubscriptionChangedEvent
    ) -> _Result:
        snapshot = event.snapshot
        account = await self.account_repo.get_by_external_customer_id(
            snapshot.customer_id
        )
        if not account:
            return self._orphan(
                event, f"no account for customer {snapshot.customer_id}"
            )

        superseded = (
            account.external_subscription_id is not None
            and account.external_subscription_id != snapshot.subscription_id
        )
        ending = (
            event.kind == EventKind.SUBSCRIPTION_DELETED
            or snapshot.status == SubscriptionStatus.CANCELED
        )
        replacing = event.kind == EventKind.SUBSCRIPTION_CREATED and not ending
        if superseded and not replacing:
            # Only a new live subscription may take over the linkage
            return self._stale(
                event,
                account,
                f"subscription {snapshot.subscription_id} is no longer linked",
            )

        if event.kind == EventKind.SUBSCRIPTION_DELETED:
            new_status = SubscriptionStatus.CANCELED
            values = {
                "subscription_status": new_status.value,
                "external_subscription_id": None,
                "cancel_at_period_end": False,
                "current_period_end": snapshot.current_period_end,
            }
        else:
            new_status = snapshot.status
            values = {
                "subscription_status": new_status.value,
                "external_subscription_id": snapshot.subscription_id,
                "cancel_at_period_end": snapshot.cancel_at_period_end,
                "current_period_end": snapshot.current_period_end,
            }

        applied = await self.account_repo.apply_subscription_state(
            account.id, values, snapshot.event_created_at
        )
        if not applied:
            return self._stale(event, account, "newer subscription state recorded")

        await self.audit_repo.create(
            SubscriptionEventCreateModel(
                account_id=account.id,
                event_id=event.event_id,
                event_type=event.event_type,
                old_status=account.subscription_status,
                new_status=new_status,
                subscription_id=snapshot.subscription_id,
                event_metadata={
                    "cancel_at_period_end": snapshot.cancel_at_period_end,
                    "current_period_end": (
                        snapshot.current_period_end.isoformat()
                        if snapshot.current_period_end
                        else None
                    ),
                },
            )
        )
        logger.info(
            f"Subscription {snapshot.subscription_id} for account {account.id}: "
            f"{account.subscription_status.value} -> {new_status.value}",
            extra={
                "event_id": event.event_id,
                "account_id": account.id,
                "old_status": account.subscription_status.value,
                "new_status": new_status.value,
            },
        )
        return EventOutcome.APPLIED, account.id

    async def _apply_payment(self, event: PaymentEvent) -> _Result:
        """
        Record the payment. Status is left to subscription events.
        """
        account = None
        if event.customer_id:
            account = await self.account_repo.get_by_external_customer_id(
                event.customer_id
            )
        if not account:
            return self._orphan(event, f"no account for customer {event.customer_id}")

        await self.payment_repo.create(
            PaymentRecordCreateModel(
                account_id=account.id,
                event_id=event.event_id,
                invoice_id=event.invoice_id,
                payment_intent_id=event.payment_intent_id,
                subscription_id=event.subscription_id,
                amount_cents=event.amount_cents,
                currency=event.currency,
                status=event.payment_status,
                description=event.description,
            )
        )
        await self.audit_repo.create(
            SubscriptionEventCreateModel(
                account_id=account.id,
                event_id=event.event_id,
                event_type=event.event_type,
                old_status=account.subscription_status,
                new_status=account.subscription_status,
                subscription_id=event.subscription_id,
                event_metadata={
                    "invoice_id": event.invoice_id,
                    "amount_cents": event.amount_cents,
                    "attempt_count": event.attempt_count,
                },
            )
        )

        if event.payment_status == PaymentStatus.FAILED:
            logger.warning(
                f"Payment failed for account {account.id}",
                extra={
                    "event_id": event.event_id,
                    "account_id": account.id,
                    "invoice_id": event.invoice_id,
                    "attempt_count": event.attempt_count,
                },
            )
        else:
            logger.info(
                f"Payment succeeded for account {account.id}",
                extra={"event_id": event.event_id, "account_id": account.id},
            )
        return EventOutcome.APPLIED, account.id
