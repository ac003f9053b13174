from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel

from artshop.api.deps import get_session
from artshop.api.models import (
    AIReview,
    CanvasSizeRequest,
    CanvasStatus,
    DailyBonusResponse,
    DrawingTool,
    GameState,
    Painting,
    PaintingListResponse,
    PointerRequest,
    PurchaseResponse,
    ShopResponse,
)
from artshop.canvas.imaging import from_data_url
from artshop.canvas.surface import DisplayRect, to_canvas_coords
from artshop.errors import (
    AlreadySoldError,
    EvaluationInProgressError,
    NoOfferError,
    NotFoundError,
    PersistenceError,
)
from artshop.session import GameSession, PaintingFilter

router = APIRouter()


class SubmitPaintingRequest(BaseModel):
    # Optional browser-side rendering; defaults to the server canvas.
    image_data: str | None = None


def _to_http(e: Exception) -> HTTPException:
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, (AlreadySoldError, EvaluationInProgressError, NoOfferError)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if isinstance(e, PersistenceError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))


def _canvas_status(session: GameSession) -> CanvasStatus:
    surface = session.surface
    return CanvasStatus(
        width=surface.width,
        height=surface.height,
        drawing=surface.drawing,
        can_undo=surface.history.can_undo(),
        can_redo=surface.history.can_redo(),
        blank=surface.is_blank(),
    )


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/state", response_model=GameState)
async def get_state_route(session: GameSession = Depends(get_session)) -> GameState:
    return session.state


@router.get("/shop", response_model=ShopResponse)
async def get_shop_route(session: GameSession = Depends(get_session)) -> ShopResponse:
    return ShopResponse(items=session.shop_items(), next_unlock=session.next_unlock())


@router.post("/shop/{item_id}/purchase", response_model=PurchaseResponse)
async def purchase_route(item_id: str, session: GameSession = Depends(get_session)) -> PurchaseResponse:
    try:
        purchased = session.purchase_item(item_id)
    except (ValueError, PersistenceError) as e:
        raise _to_http(e) from e
    return PurchaseResponse(purchased=purchased, state=session.state)


@router.post("/canvas/size", response_model=GameState)
async def canvas_size_route(payload: CanvasSizeRequest, session: GameSession = Depends(get_session)) -> GameState:
    try:
        return session.select_canvas_size(payload.size_id)
    except (ValueError, PersistenceError) as e:
        raise _to_http(e) from e


@router.post("/canvas/tool", response_model=DrawingTool)
async def canvas_tool_route(payload: DrawingTool, session: GameSession = Depends(get_session)) -> DrawingTool:
    try:
        return session.select_tool(payload)
    except ValueError as e:
        raise _to_http(e) from e


@router.post("/canvas/pointer", response_model=CanvasStatus)
async def canvas_pointer_route(payload: PointerRequest, session: GameSession = Depends(get_session)) -> CanvasStatus:
    surface = session.surface
    x, y = payload.x, payload.y
    if payload.display is not None:
        d = payload.display
        rect = DisplayRect(left=d.left, top=d.top, width=d.width, height=d.height)
        x, y = to_canvas_coords(client_x=x, client_y=y, rect=rect, width=surface.width, height=surface.height)

    if payload.type == "down":
        surface.pointer_down(x, y)
    elif payload.type == "move":
        surface.pointer_move(x, y)
    elif payload.type == "up":
        surface.pointer_up()
    else:
        surface.pointer_leave()
    return _canvas_status(session)


@router.get("/canvas", response_model=CanvasStatus)
async def canvas_status_route(session: GameSession = Depends(get_session)) -> CanvasStatus:
    return _canvas_status(session)


@router.post("/canvas/{action}", response_model=CanvasStatus)
async def canvas_action_route(action: str, session: GameSession = Depends(get_session)) -> CanvasStatus:
    surface = session.surface
    try:
        if action == "undo":
            surface.undo()
        elif action == "redo":
            surface.redo()
        elif action == "clear":
            surface.clear()
        else:
            raise NotFoundError(f"Unknown canvas action: {action}")
    except ValueError as e:
        raise _to_http(e) from e
    return _canvas_status(session)


@router.get("/canvas.jpg")
async def canvas_image_route(session: GameSession = Depends(get_session)) -> Response:
    return Response(content=session.surface.export(), media_type="image/jpeg")


@router.post("/paintings", response_model=Painting, status_code=status.HTTP_201_CREATED)
async def submit_painting_route(payload: SubmitPaintingRequest, session: GameSession = Depends(get_session)) -> Painting:
    try:
        image = from_data_url(payload.image_data) if payload.image_data else None
        return session.submit_painting(image=image)
    except (ValueError, PersistenceError) as e:
        raise _to_http(e) from e


@router.get("/paintings", response_model=PaintingListResponse)
async def list_paintings_route(
    which: PaintingFilter = PaintingFilter.all,
    session: GameSession = Depends(get_session),
) -> PaintingListResponse:
    try:
        return PaintingListResponse(paintings=session.paintings(which))
    except PersistenceError as e:
        raise _to_http(e) from e


@router.get("/paintings/{painting_id}", response_model=Painting)
async def get_painting_route(painting_id: str, session: GameSession = Depends(get_session)) -> Painting:
    try:
        return session.get_painting(painting_id)
    except (ValueError, PersistenceError) as e:
        raise _to_http(e) from e


@router.delete("/paintings/{painting_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_painting_route(painting_id: str, session: GameSession = Depends(get_session)) -> Response:
    try:
        session.delete_painting(painting_id)
    except (ValueError, PersistenceError) as e:
        raise _to_http(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/paintings/{painting_id}/evaluate")
async def evaluate_route(painting_id: str, session: GameSession = Depends(get_session)) -> dict[str, object]:
    """Ask the critic for an offer. `review` is null if the sale was cancelled meanwhile."""

    try:
        review = await session.evaluate(painting_id)
    except (ValueError, PersistenceError) as e:
        raise _to_http(e) from e
    return {"painting_id": painting_id, "review": review.model_dump(mode="json") if review else None}


@router.get("/sale")
async def sale_status_route(session: GameSession = Depends(get_session)) -> dict[str, object]:
    offer: AIReview | None = session.pending_offer
    return {"phase": session.sale_phase.value, "offer": offer.model_dump(mode="json") if offer else None}


@router.post("/paintings/{painting_id}/accept", response_model=Painting)
async def accept_offer_route(painting_id: str, session: GameSession = Depends(get_session)) -> Painting:
    try:
        return session.accept_offer(painting_id)
    except (ValueError, PersistenceError) as e:
        raise _to_http(e) from e


@router.post("/sale/reject")
async def reject_offer_route(session: GameSession = Depends(get_session)) -> dict[str, str]:
    try:
        session.reject_offer()
    except ValueError as e:
        raise _to_http(e) from e
    return {"phase": session.sale_phase.value}


@router.post("/sale/cancel")
async def cancel_sale_route(session: GameSession = Depends(get_session)) -> dict[str, str]:
    session.cancel_evaluation()
    return {"phase": session.sale_phase.value}


@router.post("/daily-bonus", response_model=DailyBonusResponse)
async def daily_bonus_route(session: GameSession = Depends(get_session)) -> DailyBonusResponse:
    try:
        applied = session.claim_daily_bonus()
    except PersistenceError as e:
        raise _to_http(e) from e
    return DailyBonusResponse(applied=applied, state=session.state)


@router.post("/tutorial/complete", response_model=GameState)
async def tutorial_complete_route(session: GameSession = Depends(get_session)) -> GameState:
    try:
        return session.complete_tutorial()
    except PersistenceError as e:
        raise _to_http(e) from e


@router.post("/reset", response_model=GameState)
async def reset_route(session: GameSession = Depends(get_session)) -> GameState:
    try:
        session.reset()
    except PersistenceError as e:
        raise _to_http(e) from e
    return session.state
