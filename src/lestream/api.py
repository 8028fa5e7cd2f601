"""FastAPI interface for the listening and royalty settlement engine."""

from decimal import Decimal
from typing import Any
from uuid import uuid4

from fastapi import FastAPI, Header, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field

from .domain.errors import (
    InsufficientActivity,
    InvalidInput,
    NotFound,
    RailError,
    ResolutionError,
    SettlementEngineError,
)
from .domain.models import SongSplit
from .domain.policies import SplitPolicy
from .interfaces import api_handlers
from .settlement_options import enum_values, parse_case_insensitive_enum
from .song_catalog import SongEntry, SongRegistrationError

app = FastAPI(title="Lestream Settlement API", version="0.1.0")


class ListeningRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    listener_address: str = Field(..., alias="listenerAddress")
    song_id: str = Field(..., alias="songId")
    seconds: float


class PayRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    song_id: str = Field(..., alias="songId")
    seconds: float
    policy: str | None = None


class SplitRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    recipient: str
    percentage: Decimal = Decimal(0)
    blockchain: str | None = None
    artist_name: str | None = Field(None, alias="artistName")


class RoyaltiesRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_amount: Decimal = Field(..., alias="totalAmount")
    splits: list[SplitRequest]
    policy: str | None = None


class BadgeMintRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    listener_address: str = Field(..., alias="listenerAddress")
    artist_name: str = Field(..., alias="artistName")


def _status_for(error: SettlementEngineError) -> int:
    if isinstance(error, NotFound):
        return 404
    if isinstance(error, (InvalidInput, InsufficientActivity)):
        return 400
    if isinstance(error, (RailError, ResolutionError)):
        return 502
    return 500


def _http_error(error: SettlementEngineError) -> HTTPException:
    return HTTPException(status_code=_status_for(error), detail=error.as_dict())


def _parse_policy(raw_policy: str | None) -> SplitPolicy | None:
    if raw_policy is None:
        return None
    try:
        return parse_case_insensitive_enum(raw_policy, SplitPolicy)
    except ValueError as error:
        raise HTTPException(
            status_code=400,
            detail={
                "code": "invalid_policy",
                "message": str(error),
                "parameter": "policy",
                "allowed_values": list(enum_values(SplitPolicy)),
            },
        ) from error


def _require(value: str, parameter: str) -> str:
    if not value or not value.strip():
        raise HTTPException(
            status_code=400,
            detail={"code": "missing_parameter", "message": f"Missing {parameter}", "parameter": parameter},
        )
    return value.strip()


@app.get("/health")
def health() -> dict[str, str]:
    """Health check endpoint."""

    return {"status": "ok"}


@app.post("/listening")
def record_listening(
    request: ListeningRequest,
    x_correlation_id: str | None = Header(default=None, alias="X-Correlation-Id"),
) -> dict[str, Any]:
    """Add listened seconds to every collaborator of a song for one listener."""

    try:
        return api_handlers.record_listening(
            request.listener_address,
            request.song_id,
            request.seconds,
            correlation_id=x_correlation_id or str(uuid4()),
        )
    except SettlementEngineError as error:
        raise _http_error(error) from error


@app.get("/listening")
def listening_stats(listener: str = Query("", description="Listener identifier")) -> dict[str, Any]:
    return api_handlers.listener_stats(_require(listener, "listener"))


@app.get("/listening/top")
def top_listeners(
    artist: str = Query("", description="Artist name"),
    limit: int = Query(10, ge=1, le=100),
) -> dict[str, Any]:
    try:
        return api_handlers.top_listeners(_require(artist, "artist"), limit)
    except SettlementEngineError as error:
        raise _http_error(error) from error


@app.post("/pay")
def pay(
    request: PayRequest,
    x_correlation_id: str | None = Header(default=None, alias="X-Correlation-Id"),
) -> dict[str, Any]:
    """Pay every collaborator of a song for ``seconds`` of listening."""

    policy = _parse_policy(request.policy)
    try:
        return api_handlers.pay_for_listen(
            request.song_id,
            request.seconds,
            policy,
            correlation_id=x_correlation_id or str(uuid4()),
        )
    except SettlementEngineError as error:
        raise _http_error(error) from error


@app.post("/royalties")
def distribute_royalties(
    request: RoyaltiesRequest,
    x_correlation_id: str | None = Header(default=None, alias="X-Correlation-Id"),
) -> dict[str, Any]:
    """Split an owed amount over explicit collaborator splits."""

    policy = _parse_policy(request.policy)
    splits = [
        SongSplit(
            recipient_identifier=split.recipient,
            percentage=split.percentage,
            preferred_domain=split.blockchain,
            artist_name=split.artist_name,
        )
        for split in request.splits
    ]
    try:
        return api_handlers.distribute_royalties(
            request.total_amount,
            splits,
            policy,
            correlation_id=x_correlation_id or str(uuid4()),
        )
    except SettlementEngineError as error:
        raise _http_error(error) from error


@app.post("/badges/mint")
def mint_badge(
    request: BadgeMintRequest,
    x_correlation_id: str | None = Header(default=None, alias="X-Correlation-Id"),
) -> dict[str, Any]:
    """Mint or upgrade the listener's badge for an artist."""

    listener = _require(request.listener_address, "listenerAddress")
    artist = _require(request.artist_name, "artistName")
    try:
        return api_handlers.mint_badge(listener, artist, correlation_id=x_correlation_id or str(uuid4()))
    except SettlementEngineError as error:
        raise _http_error(error) from error


@app.get("/badges")
def list_badges(listener: str = Query("", description="Listener identifier")) -> dict[str, Any]:
    return api_handlers.list_badges(_require(listener, "listener"))


@app.get("/songs")
def list_songs() -> list[dict[str, Any]]:
    return api_handlers.list_songs()


@app.post("/songs", status_code=201)
def register_song(entry: SongEntry) -> dict[str, Any]:
    """Validate collaborator splits and publish a new song."""

    try:
        return api_handlers.register_song(entry)
    except SongRegistrationError as error:
        raise HTTPException(status_code=400, detail=error.as_dict()) from error
