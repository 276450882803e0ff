from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Body, HTTPException, Query, Response
from pydantic import BaseModel, ConfigDict, Field

from questboard_api.deps import Store
from questboard_api.profile_store import ProfileStore, encode_json
from questboard_api.submissions import standings
from questboard_engine.models import RankStrategy
from questboard_engine.ranking import normalize_strategy, rank_of
from questboard_engine.shop import PurchaseError, purchase

router = APIRouter(prefix="/api/profiles", tags=["profiles"])


class ProfileOut(BaseModel):
    success: bool = True
    exists: bool
    profile: dict[str, Any]


class RankOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    username: str
    rank: int | None
    total: int
    score: int | None
    sort_by: RankStrategy = Field(alias="sortBy")


class PurchaseIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    item_id: str = Field(alias="itemId")


class PurchaseOut(BaseModel):
    success: bool = True
    item: dict[str, object]
    effect: dict[str, Any] | None
    profile: dict[str, Any]


@router.get("/{username}", response_model=ProfileOut)
def get_profile(username: str, store: ProfileStore = Store) -> ProfileOut:
    stored = store.get(username)
    profile = stored or store.load(username, now=datetime.now(UTC))
    return ProfileOut(exists=stored is not None, profile=profile.to_wire())


@router.delete("/{username}")
def delete_profile(username: str, store: ProfileStore = Store) -> dict[str, bool]:
    if not store.exists(username):
        raise HTTPException(status_code=404, detail="profile not found")
    if not store.delete(username):
        raise HTTPException(status_code=500, detail="could not delete profile")
    return {"success": True}


@router.get("/{username}/rank", response_model=RankOut)
def profile_rank(
    username: str,
    sort_by: str | None = Query(default=None, alias="sortBy"),
    store: ProfileStore = Store,
) -> RankOut:
    strategy = normalize_strategy(sort_by)
    result = rank_of(standings(store, strategy), username)
    return RankOut(
        username=username,
        rank=result.rank,
        total=result.total,
        score=result.score,
        sort_by=strategy,
    )


@router.get("/{username}/export")
def export_profile(username: str, store: ProfileStore = Store) -> Response:
    raw = store.export_json(username)
    if raw is None:
        raise HTTPException(status_code=404, detail="profile not found")
    return Response(
        content=raw,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{username}.json"'},
    )


@router.post("/import", response_model=ProfileOut)
def import_profile(
    payload: dict[str, Any] = Body(...), store: ProfileStore = Store
) -> ProfileOut:
    profile = store.import_json(encode_json(payload))
    if profile is None:
        raise HTTPException(status_code=400, detail="invalid profile data")
    return ProfileOut(exists=True, profile=profile.to_wire())


@router.post("/{username}/purchase", response_model=PurchaseOut)
def purchase_item(
    username: str, req: PurchaseIn, store: ProfileStore = Store
) -> PurchaseOut:
    profile = store.get(username)
    if profile is None:
        raise HTTPException(status_code=404, detail="profile not found")
    try:
        result = purchase(profile, req.item_id)
    except PurchaseError as exc:
        status = 404 if exc.code == "unknown_item" else 400
        raise HTTPException(status_code=status, detail=str(exc)) from exc

    profile.last_updated = datetime.now(UTC)
    if not store.save(profile):
        raise HTTPException(status_code=500, detail="could not save profile")
    return PurchaseOut(
        item=result.item.to_wire(),
        effect=None if result.effect is None else result.effect.model_dump(by_alias=True),
        profile=profile.summary(),
    )
