"""FastAPI router exposing the favorites page state and mutations."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Header, Path, Request, Response, status

from lifehacks.schemas.favorites import FavoritesView, FavoriteStatus
from lifehacks.services.favorites import Identity
from lifehacks.services.favorites_service import FavoritesService, get_favorites_service

router = APIRouter()

_BEARER_PREFIX = "bearer "

# Unreserved URL characters only, with at least one that is not a dot.
TIP_ID_PATTERN = r"^[A-Za-z0-9._~-]*[A-Za-z0-9_~-][A-Za-z0-9._~-]*$"


def get_visitor_id(
    x_visitor_id: str = Header(
        ...,
        min_length=1,
        max_length=128,
        description="Opaque identifier of the browser whose local favorites are used.",
    ),
) -> str:
    return x_visitor_id.strip()


def get_identity(
    authorization: str | None = Header(
        default=None,
        description="Optional ``Bearer`` token of the signed-in user.",
    ),
) -> Identity | None:
    """Return the caller's identity, or ``None`` for anonymous visitors."""

    if not authorization or not authorization.lower().startswith(_BEARER_PREFIX):
        return None
    token = authorization[len(_BEARER_PREFIX) :].strip()
    return Identity(auth_token=token) if token else None


@router.get("", response_model=FavoritesView)
async def view_favorites(
    request: Request,
    visitor_id: str = Depends(get_visitor_id),
    identity: Identity | None = Depends(get_identity),
    service: FavoritesService = Depends(get_favorites_service),
) -> FavoritesView:
    """Return the favorites list for the filters encoded in the query string."""

    return await service.view(
        visitor_id=visitor_id, identity=identity, query=request.url.query
    )


@router.post("/load-more", response_model=FavoritesView)
async def load_more_favorites(
    request: Request,
    visitor_id: str = Depends(get_visitor_id),
    identity: Identity | None = Depends(get_identity),
    service: FavoritesService = Depends(get_favorites_service),
) -> FavoritesView:
    """Append the next page; the returned ``query`` carries the new page number."""

    return await service.load_more(
        visitor_id=visitor_id, identity=identity, query=request.url.query
    )


@router.get("/{tip_id}/status", response_model=FavoriteStatus)
async def favorite_status(
    tip_id: str = Path(..., min_length=1, max_length=128, pattern=TIP_ID_PATTERN),
    visitor_id: str = Depends(get_visitor_id),
    identity: Identity | None = Depends(get_identity),
    service: FavoritesService = Depends(get_favorites_service),
) -> FavoriteStatus:
    """Report whether ``tip_id`` is currently saved."""

    return await service.status(visitor_id=visitor_id, identity=identity, tip_id=tip_id)


@router.put("/{tip_id}", status_code=status.HTTP_204_NO_CONTENT)
async def add_favorite(
    tip_id: str = Path(..., min_length=1, max_length=128, pattern=TIP_ID_PATTERN),
    visitor_id: str = Depends(get_visitor_id),
    identity: Identity | None = Depends(get_identity),
    service: FavoritesService = Depends(get_favorites_service),
) -> Response:
    """Save a tip. Anonymous visitors beyond the cap receive 409."""

    await service.add(visitor_id=visitor_id, identity=identity, tip_id=tip_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{tip_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_favorite(
    tip_id: str = Path(..., min_length=1, max_length=128, pattern=TIP_ID_PATTERN),
    visitor_id: str = Depends(get_visitor_id),
    identity: Identity | None = Depends(get_identity),
    service: FavoritesService = Depends(get_favorites_service),
) -> Response:
    """Forget a tip; removing an unsaved tip is not an error."""

    await service.remove(visitor_id=visitor_id, identity=identity, tip_id=tip_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
