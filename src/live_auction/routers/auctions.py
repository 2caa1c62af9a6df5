"""Auction routes. Reads are public; creating an auction needs a token."""
from fastapi import APIRouter, status

from live_auction.deps import Auctions, CurrentUser, Sweeper
from live_auction.schemas import (AuctionCreate, AuctionDetail, AuctionSummary,
                                  SweepResult)

router = APIRouter(prefix="/auctions", tags=["auctions"])


@router.get("", response_model=list[AuctionSummary])
async def list_auctions(auctions: Auctions) -> list[AuctionSummary]:
    """All auctions, newest start first, with the current highest bid."""
    return await auctions.list_auctions()


@router.post("", response_model=AuctionDetail, status_code=status.HTTP_201_CREATED)
async def create_auction(
    data: AuctionCreate, auctions: Auctions, identity: CurrentUser
) -> AuctionDetail:
    return await auctions.create(identity, data)


@router.post("/sweep", response_model=SweepResult)
async def sweep_auctions(sweeper: Sweeper, _user: CurrentUser) -> SweepResult:
    """Run one closing sweep now. Needs a signed-in user.

    Returns status "skipped" when the background sweep is already running.
    """
    report = await sweeper.run_once()
    if report is None:
        return SweepResult(status="skipped")
    return SweepResult(
        status="swept",
        closed=report.closed,
        deferred=report.deferred,
        failed=report.failed,
    )


@router.get("/{auction_id}", response_model=AuctionDetail)
async def get_auction(auction_id: int, auctions: Auctions) -> AuctionDetail:
    """One auction with its bids, highest first."""
    return await auctions.get(auction_id)
