"""API-facing handlers that delegate to the settlement engine."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from lestream.application.engine import BadgeListing, ListeningSettlementEngine
from lestream.bootstrap import get_engine
from lestream.domain.models import (
    BadgeOutcome,
    BadgeRecord,
    ListenerArtistStat,
    ListeningUpdate,
    PaymentOutcome,
    SettlementResult,
    Song,
    SongSplit,
    TopListenerEntry,
)
from lestream.domain.policies import SplitPolicy
from lestream.domain.services import tier_for_seconds, tier_name
from lestream.song_catalog import SongEntry, validate_song_registration

_AMOUNT_FORMAT = "{:.6f}"
_PERCENTAGE_UNIT = Decimal("0.01")


def engine() -> ListeningSettlementEngine:
    return get_engine()


def _amount(value: Decimal) -> str:
    return _AMOUNT_FORMAT.format(value)


def _percentage(value: Decimal) -> str:
    return str(value.quantize(_PERCENTAGE_UNIT, rounding=ROUND_HALF_UP))


def stat_to_dict(stat: ListenerArtistStat) -> dict[str, Any]:
    return {
        "artistName": stat.artist_name,
        "address": stat.recipient_address,
        "totalSeconds": stat.total_seconds,
        "tier": tier_name(_tier_for(stat)),
        "lastUpdated": stat.last_updated.isoformat(),
    }


def _tier_for(stat: ListenerArtistStat) -> int:
    return tier_for_seconds(stat.total_seconds, engine().listening.thresholds)


def listening_update_to_dict(update: ListeningUpdate) -> dict[str, Any]:
    return {
        "listener": update.listener_id,
        "songId": update.song_id,
        "seconds": update.seconds,
        "artists": [stat_to_dict(stat) for stat in update.updated_stats],
        "newBadgeEligibility": [
            {
                "artistName": crossing.artist_name,
                "previousTier": crossing.previous_tier,
                "newTier": crossing.new_tier,
                "tierName": tier_name(crossing.new_tier),
            }
            for crossing in update.tier_crossings
        ],
    }


def payment_to_dict(payment: PaymentOutcome) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "recipient": payment.recipient_identifier,
        "artistName": payment.artist_name,
        "address": payment.recipient_address,
        "percentage": _percentage(payment.percentage),
        "amount": _amount(payment.amount),
        "blockchain": payment.domain,
        "bridged": payment.bridged,
        "status": "success" if payment.succeeded else "failed",
    }
    if payment.succeeded:
        payload["txId"] = payment.reference
    else:
        payload["error"] = payment.error
        payload["errorCode"] = payment.error_code
    return payload


def settlement_to_dict(result: SettlementResult) -> dict[str, Any]:
    summary = result.summary
    return {
        "success": summary.failed == 0,
        "songId": result.song_id,
        "policy": result.policy.value,
        "totalAmount": _amount(result.total_amount),
        "correlationId": result.correlation_id,
        "payments": [payment_to_dict(payment) for payment in result.payments],
        "summary": {"successful": summary.successful, "failed": summary.failed},
    }


def badge_to_dict(record: BadgeRecord) -> dict[str, Any]:
    return {
        "listener": record.listener_id,
        "artistName": record.artist_name,
        "tier": record.tier,
        "tierName": record.tier_name,
        "badgeObjectId": record.badge_object_id,
        "txDigest": record.settlement_reference,
        "accruedSeconds": record.accrued_seconds,
        "timestamp": record.timestamp.isoformat(),
    }


def badge_outcome_to_dict(outcome: BadgeOutcome) -> dict[str, Any]:
    record = outcome.record
    if outcome.action == "unchanged":
        message = "Badge already at this tier or higher"
    elif outcome.action == "upgraded":
        message = f"Badge upgraded to {record.tier_name}!"
    else:
        message = f"{record.tier_name} badge minted!"
    return {
        "message": message,
        "action": outcome.action,
        "badge": badge_to_dict(record),
        "tierName": record.tier_name,
        "upgraded": outcome.action == "upgraded",
    }


def badge_listing_to_dict(listing: BadgeListing) -> dict[str, Any]:
    return {
        "listener": listing.listener_id,
        "badges": [badge_to_dict(record) for record in listing.badges],
        "onChainCount": listing.on_chain_count,
    }


def top_listener_to_dict(entry: TopListenerEntry) -> dict[str, Any]:
    return {
        "listener": entry.listener_id,
        "totalSeconds": entry.total_seconds,
        "tier": entry.tier,
        "tierName": tier_name(entry.tier),
        "hasBadge": entry.has_badge,
    }


def song_to_dict(song: Song) -> dict[str, Any]:
    return SongEntry.from_song(song).to_payload()


def record_listening(listener_id: str, song_id: str, seconds: float, correlation_id: str) -> dict[str, Any]:
    update = engine().record_listening(listener_id, song_id, seconds, correlation_id=correlation_id)
    return listening_update_to_dict(update)


def listener_stats(listener_id: str) -> dict[str, Any]:
    stats = engine().get_listener_stats(listener_id)
    return {"listener": listener_id, "artists": [stat_to_dict(stat) for stat in stats]}


def top_listeners(artist_name: str, limit: int) -> dict[str, Any]:
    entries = engine().top_listeners(artist_name, limit=limit)
    return {"artist": artist_name, "listeners": [top_listener_to_dict(entry) for entry in entries]}


def pay_for_listen(song_id: str, seconds: float, policy: SplitPolicy | None, correlation_id: str) -> dict[str, Any]:
    result = engine().settle_royalties(song_id, seconds, policy=policy, correlation_id=correlation_id)
    return settlement_to_dict(result)


def distribute_royalties(
    total_amount: Decimal | str,
    splits: list[SongSplit],
    policy: SplitPolicy | None,
    correlation_id: str,
) -> dict[str, Any]:
    result = engine().settle(total_amount, splits, policy=policy, correlation_id=correlation_id)
    return settlement_to_dict(result)


def mint_badge(listener_id: str, artist_name: str, correlation_id: str) -> dict[str, Any]:
    outcome = engine().mint_or_upgrade_badge(listener_id, artist_name, correlation_id=correlation_id)
    return badge_outcome_to_dict(outcome)


def list_badges(listener_id: str) -> dict[str, Any]:
    return badge_listing_to_dict(engine().get_badges(listener_id))


def list_songs() -> list[dict[str, Any]]:
    return [song_to_dict(song) for song in engine().list_songs()]


def register_song(entry: SongEntry) -> dict[str, Any]:
    current = engine()
    song = validate_song_registration(entry, current.settlement.domain_policy)
    return song_to_dict(current.register_song(song))
