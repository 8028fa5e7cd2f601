"""Settlement router: pays each collaborator on its effective domain."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence
from uuid import uuid4

from lestream.application.event_publisher import EventPublisher, NullEventPublisher
from lestream.application.ports import BridgeRail, TransferRail
from lestream.application.recipient_resolver import ResolveRecipient
from lestream.domain.errors import InvalidInput, RailError, SettlementEngineError
from lestream.domain.events import RoyaltyPaymentFailed, RoyaltyPaymentSettled, SettlementCompleted
from lestream.domain.models import PaymentOutcome, SettlementResult, ShareAllocation, Song, SongSplit
from lestream.domain.policies import DEFAULT_DOMAIN_POLICY, SettlementDomainPolicy, SplitPolicy
from lestream.domain.services import compute_shares, round_to_currency_unit, to_decimal, validate_seconds

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SettleRoyalties:
    """Use case that splits an owed amount and routes every share independently.

    There is no transaction spanning recipients: a failed resolution or rail
    call becomes a failed outcome for that recipient only.
    """

    resolver: ResolveRecipient
    transfer_rail: TransferRail
    bridge_rail: BridgeRail
    domain_policy: SettlementDomainPolicy = DEFAULT_DOMAIN_POLICY
    event_publisher: EventPublisher = NullEventPublisher()
    max_concurrent_transfers: int = 4

    def settle(
        self,
        listener_wallet_ref: str,
        total_amount: Decimal | str | float,
        splits: Sequence[SongSplit],
        policy: SplitPolicy = SplitPolicy.CONFIGURED_PERCENTAGE,
        correlation_id: str | None = None,
        song_id: str | None = None,
    ) -> SettlementResult:
        if not (listener_wallet_ref or "").strip():
            raise InvalidInput("listener wallet reference is required.", code="missing_wallet")

        run_correlation_id = correlation_id or str(uuid4())
        total = to_decimal(total_amount, field="total_amount")
        allocations = compute_shares(total, splits, policy)

        outcomes: list[tuple[int, PaymentOutcome]] = []
        safe_concurrency = max(1, self.max_concurrent_transfers)
        with ThreadPoolExecutor(max_workers=safe_concurrency) as executor:
            futures = {
                executor.submit(self._settle_one, listener_wallet_ref, allocation, run_correlation_id): index
                for index, allocation in enumerate(allocations)
            }
            for future in as_completed(futures):
                outcomes.append((futures[future], future.result()))

        outcomes.sort(key=lambda item: item[0])
        result = SettlementResult(
            payments=tuple(outcome for _, outcome in outcomes),
            policy=policy,
            total_amount=round_to_currency_unit(total),
            correlation_id=run_correlation_id,
            song_id=song_id,
        )
        summary = result.summary
        self.event_publisher.publish(
            SettlementCompleted(
                correlation_id=run_correlation_id,
                payload_summary={
                    "song_id": song_id,
                    "policy": policy.value,
                    "total_amount": str(result.total_amount),
                    "successful": summary.successful,
                    "failed": summary.failed,
                },
            )
        )
        return result

    def settle_for_listen(
        self,
        listener_wallet_ref: str,
        song: Song,
        seconds: float,
        policy: SplitPolicy = SplitPolicy.CONFIGURED_PERCENTAGE,
        correlation_id: str | None = None,
    ) -> SettlementResult:
        seconds = validate_seconds(seconds)
        total = song.price_per_second * to_decimal(seconds, field="seconds")
        return self.settle(
            listener_wallet_ref,
            total,
            song.splits,
            policy=policy,
            correlation_id=correlation_id,
            song_id=song.song_id,
        )

    def _settle_one(self, wallet_ref: str, allocation: ShareAllocation, correlation_id: str) -> PaymentOutcome:
        split = allocation.split
        address: str | None = None
        domain = split.preferred_domain or self.domain_policy.hub_domain
        bridged = self.domain_policy.requires_bridging(domain)

        try:
            recipient = self.resolver.resolve(split.recipient_identifier, split.preferred_domain)
            address = recipient.address
            domain = recipient.effective_domain
            bridged = self.domain_policy.requires_bridging(domain)

            logger.info(
                "Paying royalty share",
                extra={
                    "recipient": address,
                    "amount": str(allocation.amount),
                    "percentage": str(allocation.percentage),
                    "domain": domain,
                    "bridged": bridged,
                    "domain_source": recipient.domain_source.value,
                },
            )
            if bridged:
                reference = self.bridge_rail.bridge(
                    wallet_ref,
                    self.domain_policy.hub_domain,
                    domain,
                    address,
                    allocation.amount,
                )
            else:
                reference = self.transfer_rail.transfer(wallet_ref, address, allocation.amount)
            if not reference:
                raise RailError("Rail returned no transaction reference", code="missing_reference")
        except SettlementEngineError as error:
            return self._failed(allocation, address, domain, bridged, error.message, error.code, correlation_id)
        except Exception as error:  # noqa: BLE001
            logger.warning("Royalty rail call raised unexpectedly", exc_info=error)
            return self._failed(allocation, address, domain, bridged, str(error) or type(error).__name__, "rail_error", correlation_id)

        outcome = PaymentOutcome(
            recipient_identifier=split.recipient_identifier,
            artist_name=split.ledger_name,
            recipient_address=address,
            percentage=allocation.percentage,
            amount=allocation.amount,
            domain=domain,
            bridged=bridged,
            reference=reference,
        )
        self.event_publisher.publish(
            RoyaltyPaymentSettled(
                correlation_id=correlation_id,
                payload_summary={
                    "recipient": address,
                    "amount": str(allocation.amount),
                    "domain": domain,
                    "bridged": bridged,
                    "reference": reference,
                },
            )
        )
        return outcome

    def _failed(
        self,
        allocation: ShareAllocation,
        address: str | None,
        domain: str | None,
        bridged: bool,
        message: str,
        code: str,
        correlation_id: str,
    ) -> PaymentOutcome:
        split = allocation.split
        logger.warning(
            "Royalty payment failed",
            extra={"recipient": split.recipient_identifier, "domain": domain, "error_code": code, "error": message},
        )
        self.event_publisher.publish(
            RoyaltyPaymentFailed(
                correlation_id=correlation_id,
                payload_summary={
                    "recipient": split.recipient_identifier,
                    "amount": str(allocation.amount),
                    "domain": domain,
                    "bridged": bridged,
                    "error_code": code,
                },
            )
        )
        return PaymentOutcome(
            recipient_identifier=split.recipient_identifier,
            artist_name=split.ledger_name,
            recipient_address=address,
            percentage=allocation.percentage,
            amount=allocation.amount,
            domain=domain,
            bridged=bridged,
            error=message,
            error_code=code,
        )
