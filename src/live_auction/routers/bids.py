"""Bid routes. The live channel is the main way to bid; this is the HTTP equivalent."""
from fastapi import APIRouter, status

from live_auction.deps import Acceptor, Auctions, CurrentUser
from live_auction.schemas import BidAcceptedOut, BidHistoryEntry, BidRequest

router = APIRouter(prefix="/bids", tags=["bids"])


@router.post("", response_model=BidAcceptedOut, status_code=status.HTTP_201_CREATED)
async def place_bid(data: BidRequest, acceptor: Acceptor, identity: CurrentUser) -> BidAcceptedOut:
    """Place a bid.

    Rejections come back as 404 (AuctionNotFound), 409 (AuctionClosed,
    BidTooLow) or 422 (InvalidAmount) with the reason and the threshold.
    """
    accepted = await acceptor.accept(
        data.auction_id, identity, data.amount, client_time=data.client_time
    )
    return BidAcceptedOut(
        bid_id=accepted.bid_id,
        auction_id=accepted.auction_id,
        amount=accepted.amount,
        bid_time=accepted.bid_time,
        highest_amount=accepted.highest_amount,
        highest_bidder=accepted.highest_bidder,
    )


@router.get("/history", response_model=list[BidHistoryEntry])
async def bid_history(auctions: Auctions, identity: CurrentUser) -> list[BidHistoryEntry]:
    """The caller's best bid on every auction they bid on."""
    return await auctions.bid_history(identity)
