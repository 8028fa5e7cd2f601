"""Badge tier state machine backed by a reward-token saga."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable
from uuid import uuid4

from lestream.application.event_publisher import EventPublisher, NullEventPublisher
from lestream.application.ports import BadgeRepository, ListeningLedgerRepository, RewardTokenPlatform
from lestream.domain.errors import BadgeSagaError, InsufficientActivity, NotFound, RailError
from lestream.domain.events import BadgeMinted, BadgeSagaStepFailed, BadgeUpgraded
from lestream.domain.models import BadgeOutcome, BadgeRecord, PendingBadgeSaga
from lestream.domain.policies import DEFAULT_TIER_THRESHOLDS, BadgeTier, TierThresholds
from lestream.domain.services import tier_for_seconds, tier_name

logger = logging.getLogger(__name__)

STEP_MINT = "mint"
STEP_SYNC_ACCRUED_TIME = "sync-accrued-time"
STEP_SET_TIER = "set-tier"

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


@dataclass(slots=True)
class MintOrUpgradeBadge:
    """Use case that mints or upgrades a badge when the eligible tier advances.

    External calls run as an ordered saga (mint, sync accrued time, set tier).
    Progress is written to the badge repository after every successful step so
    a retried request resumes instead of minting a second token or adding the
    same seconds twice. The badge record itself is only written once every
    step of the path has succeeded.
    """

    ledger: ListeningLedgerRepository
    badges: BadgeRepository
    reward_tokens: RewardTokenPlatform
    thresholds: TierThresholds = DEFAULT_TIER_THRESHOLDS
    event_publisher: EventPublisher = NullEventPublisher()
    step_attempts: int = 1
    clock: Callable[[], datetime] = _utcnow

    def run(self, listener_id: str, artist_name: str, correlation_id: str | None = None) -> BadgeOutcome:
        run_correlation_id = correlation_id or str(uuid4())

        with self.badges.locked(listener_id):
            stat = self.ledger.read_stats(listener_id).get(artist_name)
            if stat is None:
                raise NotFound("No listening data found for this artist", code="no_listening_data")

            eligible_tier = tier_for_seconds(stat.total_seconds, self.thresholds)
            if eligible_tier == BadgeTier.NONE:
                raise InsufficientActivity(
                    f"Not enough listening time for a badge (need {self.thresholds.bronze_seconds:g} seconds)"
                )

            existing = self.badges.get(listener_id, artist_name)
            if existing is not None and existing.tier >= eligible_tier:
                return BadgeOutcome(record=existing, action="unchanged")

            pending = self.badges.get_pending(listener_id, artist_name) or self._start_saga(listener_id, artist_name, existing)
            if existing is None:
                steps = [STEP_MINT, STEP_SYNC_ACCRUED_TIME]
                if eligible_tier >= BadgeTier.SILVER:
                    steps.append(STEP_SET_TIER)
            else:
                steps = [STEP_SYNC_ACCRUED_TIME, STEP_SET_TIER]

            owner_address = stat.recipient_address or ZERO_ADDRESS
            target_seconds = int(stat.total_seconds)
            for step in steps:
                pending = self._run_step(step, pending, owner_address, target_seconds, run_correlation_id)

            record = BadgeRecord(
                listener_id=listener_id,
                artist_name=artist_name,
                tier=eligible_tier,
                badge_object_id=pending.badge_object_id,
                settlement_reference=pending.last_reference,
                accrued_seconds=pending.reported_seconds,
                timestamp=self.clock(),
            )
            self.badges.save(record)

        if existing is None:
            logger.info(
                "Minted badge",
                extra={"listener_id": listener_id, "artist_name": artist_name, "tier": tier_name(eligible_tier)},
            )
            self.event_publisher.publish(
                BadgeMinted(
                    correlation_id=run_correlation_id,
                    payload_summary={
                        "listener_id": listener_id,
                        "artist_name": artist_name,
                        "tier": eligible_tier,
                        "badge_object_id": record.badge_object_id,
                    },
                )
            )
            return BadgeOutcome(record=record, action="minted")

        logger.info(
            "Upgraded badge",
            extra={"listener_id": listener_id, "artist_name": artist_name, "tier": tier_name(eligible_tier)},
        )
        self.event_publisher.publish(
            BadgeUpgraded(
                correlation_id=run_correlation_id,
                payload_summary={
                    "listener_id": listener_id,
                    "artist_name": artist_name,
                    "previous_tier": existing.tier,
                    "tier": eligible_tier,
                    "badge_object_id": record.badge_object_id,
                },
            )
        )
        return BadgeOutcome(record=record, action="upgraded")

    def list_badges(self, listener_id: str) -> list[BadgeRecord]:
        return self.badges.list_for_listener(listener_id)

    def _start_saga(self, listener_id: str, artist_name: str, existing: BadgeRecord | None) -> PendingBadgeSaga:
        return PendingBadgeSaga(
            listener_id=listener_id,
            artist_name=artist_name,
            badge_object_id=existing.badge_object_id if existing else "",
            mint_reference="",
            reported_seconds=existing.accrued_seconds if existing else 0,
            completed_steps=(),
            last_reference=existing.settlement_reference if existing else "",
            started_at=self.clock(),
        )

    def _run_step(
        self,
        step: str,
        pending: PendingBadgeSaga,
        owner_address: str,
        target_seconds: int,
        correlation_id: str,
    ) -> PendingBadgeSaga:
        if step == STEP_MINT and pending.badge_object_id:
            return pending

        if step == STEP_SYNC_ACCRUED_TIME:
            delta = target_seconds - pending.reported_seconds
            if delta <= 0:
                return pending

        last_error: RailError | None = None
        for attempt in range(1, max(1, self.step_attempts) + 1):
            try:
                if step == STEP_MINT:
                    receipt = self.reward_tokens.mint(owner_address)
                    if not receipt.token_id:
                        raise RailError("Mint returned no badge token id", code="mint_missing_token")
                    updated = replace(
                        pending,
                        badge_object_id=receipt.token_id,
                        mint_reference=receipt.reference,
                        last_reference=receipt.reference,
                    )
                elif step == STEP_SYNC_ACCRUED_TIME:
                    reference = self.reward_tokens.add_accrued_time(pending.badge_object_id, delta)
                    updated = replace(pending, reported_seconds=target_seconds, last_reference=reference)
                else:
                    reference = self.reward_tokens.set_tier(pending.badge_object_id)
                    updated = replace(pending, last_reference=reference)
            except RailError as error:
                last_error = error
                logger.warning(
                    "Badge saga step failed",
                    extra={"step": step, "attempt": attempt, "error": error.message, "badge_object_id": pending.badge_object_id},
                )
                continue

            updated = replace(updated, completed_steps=(*updated.completed_steps, step))
            self.badges.save_pending(updated)
            return updated

        self.event_publisher.publish(
            BadgeSagaStepFailed(
                correlation_id=correlation_id,
                payload_summary={
                    "listener_id": pending.listener_id,
                    "artist_name": pending.artist_name,
                    "step": step,
                    "completed_steps": list(pending.completed_steps),
                    "error": last_error.message if last_error else "",
                },
            )
        )
        raise BadgeSagaError(
            f"Badge step '{step}' failed: {last_error.message if last_error else 'unknown error'}",
            failed_step=step,
            completed_steps=pending.completed_steps,
        )
