"""Dress Rental — Order fulfillment endpoints."""
from fastapi import APIRouter, HTTPException, status

from dress_rental.api.deps import Orders
from dress_rental.core.exceptions import OrderNotFoundError, TransitionNotAllowed, TransportError
from dress_rental.core.responses import success_response
from dress_rental.schemas.fulfillment import StatusTransitionRequest

router = APIRouter()


@router.get("/{order_id}/fulfillment")
async def get_order_fulfillment(order_id: str, orders: Orders):
    """Requested vs. assigned per product+size, plus the status actions on offer."""
    try:
        view = await orders.get_fulfillment(order_id)
    except OrderNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except TransportError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return success_response(view.model_dump(mode="json"))


@router.post("/{order_id}/status")
async def transition_order_status(order_id: str, body: StatusTransitionRequest, orders: Orders):
    """Apply a single-step status action (mark_ready / mark_sent / mark_delivered)."""
    try:
        view = await orders.apply_action(order_id, body.action)
    except OrderNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except TransitionNotAllowed as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except TransportError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return success_response(view.model_dump(mode="json"))
