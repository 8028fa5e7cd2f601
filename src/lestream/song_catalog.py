"""Song catalog schema and upload-time split validation.

Songs are published once and consumed read-only by the settlement engine, so
this is the only place where collaborator splits are checked to add up to 100.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from lestream.domain.models import Song, SongSplit
from lestream.domain.policies import DEFAULT_DOMAIN_POLICY, SettlementDomainPolicy
from lestream.domain.services import is_alias, is_chain_address

_HUNDRED = Decimal(100)


@dataclass(frozen=True, slots=True)
class SongRegistrationError(ValueError):
    code: str
    message: str

    def __str__(self) -> str:
        return self.message

    def as_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


class CollaboratorEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    artist_name: str = Field(..., alias="artistName", min_length=1)
    address: str = ""
    blockchain: str | None = None
    percentage: Decimal | None = Field(None, ge=0, le=100)


class SongEntry(BaseModel):
    """Stored song shape, compatible with the catalog's ``songs.json`` file."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    song_name: str = Field(..., alias="songName", min_length=1)
    price_per_second: Decimal = Field(..., alias="pricePerSecond", gt=0)
    collaborators: list[CollaboratorEntry] = Field(default_factory=list)
    song_file: str = Field("", alias="songFile")
    image_file: str = Field("", alias="imageFile")
    created_at: datetime | None = Field(None, alias="createdAt")

    def to_song(self) -> Song:
        missing = [entry for entry in self.collaborators if entry.percentage is None]
        default_percentage = _HUNDRED / len(self.collaborators) if missing else None
        return Song(
            song_id=self.id,
            title=self.song_name,
            price_per_second=self.price_per_second,
            splits=tuple(
                SongSplit(
                    recipient_identifier=entry.address,
                    percentage=entry.percentage if entry.percentage is not None else default_percentage,
                    preferred_domain=entry.blockchain or None,
                    artist_name=entry.artist_name,
                )
                for entry in self.collaborators
            ),
            created_at=self.created_at,
        )

    @classmethod
    def from_song(cls, song: Song) -> "SongEntry":
        return cls(
            id=song.song_id,
            song_name=song.title,
            price_per_second=song.price_per_second,
            collaborators=[
                CollaboratorEntry(
                    artist_name=split.ledger_name,
                    address=split.recipient_identifier,
                    blockchain=split.preferred_domain,
                    percentage=split.percentage,
                )
                for split in song.splits
            ],
            created_at=song.created_at,
        )

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


def new_song_id() -> str:
    return f"song-{int(time.time() * 1000)}"


def validate_song_registration(
    entry: SongEntry,
    domain_policy: SettlementDomainPolicy = DEFAULT_DOMAIN_POLICY,
) -> Song:
    """Validate a new song and return the domain model to publish."""

    if not entry.collaborators:
        raise SongRegistrationError("missing_collaborators", "A song needs at least one collaborator.")

    for collaborator in entry.collaborators:
        identifier = collaborator.address.strip()
        if not (is_chain_address(identifier) or is_alias(identifier, domain_policy.alias_suffixes)):
            raise SongRegistrationError(
                "invalid_recipient",
                f"Collaborator '{collaborator.artist_name}' needs a chain address or alias, got {collaborator.address!r}.",
            )
        if collaborator.blockchain and not domain_policy.is_supported(collaborator.blockchain):
            raise SongRegistrationError(
                "unsupported_domain",
                f"Unsupported settlement domain '{collaborator.blockchain}' for '{collaborator.artist_name}'.",
            )

    percentages = [collaborator.percentage for collaborator in entry.collaborators]
    if any(value is not None for value in percentages):
        if any(value is None for value in percentages):
            raise SongRegistrationError("incomplete_splits", "Either every collaborator has a percentage or none does.")
        if sum(percentages) != _HUNDRED:
            raise SongRegistrationError("splits_not_100", "Splits must total 100%.")

    published = entry.model_copy(
        update={
            "id": entry.id or new_song_id(),
            "created_at": entry.created_at or datetime.now(tz=timezone.utc),
        }
    )
    return published.to_song()
