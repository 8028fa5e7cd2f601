"""CLI-facing handlers that delegate to the settlement engine."""

from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path

from lestream.application.engine import ListeningSettlementEngine
from lestream.bootstrap import get_engine
from lestream.domain.errors import InvalidInput
from lestream.domain.models import SongSplit
from lestream.domain.policies import SplitPolicy
from lestream.interfaces.api_handlers import (
    badge_listing_to_dict,
    badge_outcome_to_dict,
    listening_update_to_dict,
    settlement_to_dict,
    song_to_dict,
    stat_to_dict,
    top_listener_to_dict,
)
from lestream.song_catalog import SongEntry, validate_song_registration


def engine() -> ListeningSettlementEngine:
    return get_engine()


def parse_split(raw_split: str) -> SongSplit:
    """Parse ``recipient=percentage[@domain]`` into a split."""

    recipient, separator, rest = raw_split.partition("=")
    if not separator or not recipient.strip():
        raise InvalidInput(f"Split must look like recipient=percentage[@domain], got {raw_split!r}.", code="invalid_split")
    percentage, _, domain = rest.partition("@")
    try:
        value = Decimal(percentage.strip() or "0")
    except ArithmeticError as error:
        raise InvalidInput(f"Invalid split percentage in {raw_split!r}.", code="invalid_split") from error
    return SongSplit(
        recipient_identifier=recipient.strip(),
        percentage=value,
        preferred_domain=domain.strip() or None,
    )


def record_listening(listener_id: str, song_id: str, seconds: float, correlation_id: str) -> dict:
    return listening_update_to_dict(engine().record_listening(listener_id, song_id, seconds, correlation_id=correlation_id))


def pay_for_listen(song_id: str, seconds: float, policy: SplitPolicy | None, correlation_id: str) -> dict:
    return settlement_to_dict(engine().settle_royalties(song_id, seconds, policy=policy, correlation_id=correlation_id))


def settle_splits(
    total_amount: str,
    raw_splits: list[str],
    policy: SplitPolicy | None,
    correlation_id: str,
) -> dict:
    splits = [parse_split(raw_split) for raw_split in raw_splits]
    return settlement_to_dict(engine().settle(total_amount, splits, policy=policy, correlation_id=correlation_id))


def mint_badge(listener_id: str, artist_name: str, correlation_id: str) -> dict:
    return badge_outcome_to_dict(engine().mint_or_upgrade_badge(listener_id, artist_name, correlation_id=correlation_id))


def listener_stats(listener_id: str) -> list[dict]:
    return [stat_to_dict(stat) for stat in engine().get_listener_stats(listener_id)]


def list_badges(listener_id: str) -> dict:
    return badge_listing_to_dict(engine().get_badges(listener_id))


def top_listeners(artist_name: str, limit: int) -> list[dict]:
    return [top_listener_to_dict(entry) for entry in engine().top_listeners(artist_name, limit=limit)]


def register_song_from_file(song_file: Path) -> dict:
    payload = json.loads(song_file.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError("Song file must contain one JSON object.")
    current = engine()
    song = validate_song_registration(SongEntry.model_validate(payload), current.settlement.domain_policy)
    return song_to_dict(current.register_song(song))
