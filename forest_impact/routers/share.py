from fastapi import APIRouter, HTTPException

from forest_impact.config import settings
from forest_impact.models.schemas import ShareableState, ShareLink
from forest_impact.services import share_codec

router = APIRouter(tags=["share"])


@router.post("/api/share", response_model=ShareLink, status_code=201)
async def create_share_link(state: ShareableState):
    if not share_codec.validate_state(state):
        raise HTTPException(400, "Invalid simulation state")
    return ShareLink(
        code=share_codec.encode(state),
        url=share_codec.generate_shareable_url(state, settings.share_base_url),
    )


@router.get("/api/share/{code}", response_model=ShareableState)
async def resolve_share_link(code: str):
    state = share_codec.decode(code)
    if state is None:
        raise HTTPException(400, "Malformed share code")
    if not share_codec.validate_state(state):
        raise HTTPException(400, "Shared state is out of range")
    return state
