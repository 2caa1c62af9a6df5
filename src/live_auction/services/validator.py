"""Bid validation: the pure accept/reject decision.

The rule, in order:

1. unknown auction             -> AuctionNotFound
2. ended, or now >= end_time   -> AuctionClosed
3. not a positive amount in whole cents below 10^10 -> InvalidAmount
4. amount <= max(base_price, highest bid) -> BidTooLow
5. otherwise accept

Comparisons are strict: a bid equal to the threshold is rejected. `now` and
`end_time` must both be aware UTC (see live_auction.clock).
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from live_auction.core.errors import BidRejectedError, RejectReason
from live_auction.db.models import AuctionStatus


@dataclass(frozen=True)
class AuctionSnapshot:
    """What the validator needs to know about an auction at one instant."""

    auction_id: int
    base_price: Decimal
    end_time: datetime
    status: str
    highest_bid: Decimal = Decimal(0)

    @property
    def threshold(self) -> Decimal:
        return max(self.base_price, self.highest_bid)

    def is_closed(self, now: datetime) -> bool:
        return self.status == AuctionStatus.ENDED.value or now >= self.end_time


@dataclass(frozen=True)
class BidDecision:
    """Outcome of validate_bid. `amount` is the parsed bid on accept."""

    accepted: bool
    reason: RejectReason | None = None
    threshold: Decimal | None = None
    amount: Decimal | None = None

    @classmethod
    def accept(cls, amount: Decimal, threshold: Decimal) -> "BidDecision":
        return cls(accepted=True, amount=amount, threshold=threshold)

    @classmethod
    def reject(cls, reason: RejectReason, threshold: Decimal | None = None) -> "BidDecision":
        return cls(accepted=False, reason=reason, threshold=threshold)

    @property
    def message(self) -> str:
        if self.accepted:
            return "Bid accepted"
        if self.reason is RejectReason.AUCTION_NOT_FOUND:
            return "Auction not found"
        if self.reason is RejectReason.AUCTION_CLOSED:
            return "The auction has already ended"
        if self.reason is RejectReason.INVALID_AMOUNT:
            return "Bid amount must be a positive number"
        return f"Bid must be greater than {self.threshold:.2f}"

    def to_error(self, auction_id: int | None = None) -> BidRejectedError:
        if self.accepted or self.reason is None:
            raise ValueError("Accepted decision has no error")
        return BidRejectedError(self.reason, self.message, self.threshold, auction_id)


# Bid.amount is NUMERIC(12, 2): whole cents, at most 10 integer digits.
CENT = Decimal("0.01")
MAX_AMOUNT = Decimal("1e10")


def parse_amount(raw: Any) -> Decimal | None:
    """Coerce a client-supplied amount to a positive Decimal in whole cents, or None.

    Values the bid column cannot hold exactly (fractions of a cent, more than ten
    integer digits) are refused rather than rounded, so the amount compared here
    is the amount stored.
    """
    if raw is None or isinstance(raw, bool):
        return None
    try:
        amount = raw if isinstance(raw, Decimal) else Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite() or amount <= 0 or amount >= MAX_AMOUNT:
        return None
    if amount != amount.quantize(CENT):
        return None
    return amount.quantize(CENT)


def validate_bid(snapshot: AuctionSnapshot | None, amount: Any, now: datetime) -> BidDecision:
    """Decide whether `amount` may be bid on the auction described by `snapshot`."""
    if snapshot is None:
        return BidDecision.reject(RejectReason.AUCTION_NOT_FOUND)
    if snapshot.is_closed(now):
        return BidDecision.reject(RejectReason.AUCTION_CLOSED)
    parsed = parse_amount(amount)
    if parsed is None:
        return BidDecision.reject(RejectReason.INVALID_AMOUNT, snapshot.threshold)
    threshold = snapshot.threshold
    if parsed <= threshold:
        return BidDecision.reject(RejectReason.BID_TOO_LOW, threshold)
    return BidDecision.accept(parsed, threshold)
