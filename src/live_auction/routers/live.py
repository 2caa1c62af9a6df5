"""Live channel: one WebSocket per client for bids and auction events.

Connect to /live?token=<jwt> to bid and receive your own notifications, or
without a token to observe public events only. Every message in either
direction is {"event": <name>, "data": {...}}.

Inbound:  placeBid {token?, auctionId, amount, clientTime?}
Outbound: bidAccepted / bidRejected (to the sender), updateHighest and
          auctionEnded (to everyone), notification (to the user's topic),
          connectError, error.
"""
import json
import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from live_auction.container import Container
from live_auction.core.errors import (BidRejectedError, TransientError,
                                      UnauthenticatedError)
from live_auction.core.security import Identity
from live_auction.schemas import (BidAcceptedEvent, BidRejectedEvent,
                                  ConnectError, LiveEvent, PlaceBid)

logger = logging.getLogger(__name__)
router = APIRouter(tags=["live"])

# Application close code for a refused credential (4000-4999 are app-defined).
CLOSE_UNAUTHENTICATED = 4401


async def _send(websocket: WebSocket, event: LiveEvent, data: dict[str, Any]) -> None:
    await websocket.send_json({"event": event.value, "data": data})


async def _reject(websocket: WebSocket, reason: str, message: str, auction_id: int | None = None) -> None:
    await _send(
        websocket,
        LiveEvent.BID_REJECTED,
        BidRejectedEvent(reason=reason, message=message, auction_id=auction_id).to_wire(),
    )


async def _place_bid(
    websocket: WebSocket,
    container: Container,
    identity: Identity | None,
    data: Any,
) -> None:
    try:
        request = PlaceBid.model_validate(data)
    except ValidationError as exc:
        await _reject(websocket, "InvalidRequest", f"Malformed bid: {exc.error_count()} error(s)")
        return

    if request.token:
        try:
            identity = container.user_service().authenticate(request.token)
        except UnauthenticatedError as exc:
            await _reject(websocket, "Unauthenticated", str(exc), request.auction_id)
            return
    if identity is None:
        await _reject(websocket, "Unauthenticated", "Token required", request.auction_id)
        return

    try:
        accepted = await container.bid_acceptor().accept(
            request.auction_id, identity, request.amount, client_time=request.client_time
        )
    except BidRejectedError as exc:
        await _send(
            websocket,
            LiveEvent.BID_REJECTED,
            BidRejectedEvent(
                reason=exc.reason.value,
                message=exc.message,
                threshold=exc.threshold,
                auction_id=request.auction_id,
            ).to_wire(),
        )
        return
    except TransientError as exc:
        await _reject(websocket, "Unavailable", str(exc), request.auction_id)
        return
    except Exception:  # pylint: disable=broad-except
        logger.exception("Unexpected error placing bid on auction %s", request.auction_id)
        await _reject(websocket, "Internal", "Could not place the bid", request.auction_id)
        return

    await _send(
        websocket,
        LiveEvent.BID_ACCEPTED,
        BidAcceptedEvent(
            bid_id=accepted.bid_id,
            auction_id=accepted.auction_id,
            highest_amount=accepted.highest_amount,
        ).to_wire(),
    )


@router.websocket("/live")
async def live_channel(websocket: WebSocket) -> None:
    """Bidding and auction events over WebSocket."""
    container: Container = websocket.scope["app"].state.container
    registry = container.registry()
    await websocket.accept()

    identity: Identity | None = None
    token = websocket.query_params.get("token")
    if token:
        try:
            identity = container.user_service().authenticate(token)
        except UnauthenticatedError as exc:
            await _send(
                websocket,
                LiveEvent.CONNECT_ERROR,
                ConnectError(reason="Unauthenticated", message=str(exc)).to_wire(),
            )
            await websocket.close(code=CLOSE_UNAUTHENTICATED, reason=str(exc))
            return

    if identity is not None:
        registry.join(identity.user_id, websocket)
        logger.debug("Live client joined as %s", identity.username)
    else:
        registry.add(websocket)
        logger.debug("Live client joined as observer")

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except json.JSONDecodeError:
                await _send(websocket, LiveEvent.ERROR, {"message": "Message is not valid JSON"})
                continue
            if not isinstance(message, dict):
                await _send(websocket, LiveEvent.ERROR, {"message": "Message must be an object"})
                continue
            event = message.get("event")
            if event == LiveEvent.PLACE_BID.value:
                await _place_bid(websocket, container, identity, message.get("data"))
            else:
                await _send(websocket, LiveEvent.ERROR, {"message": f"Unknown event: {event}"})
    except WebSocketDisconnect:
        logger.debug("Live client disconnected")
    finally:
        registry.leave(websocket)
