"""Per-member, per-round vote budget."""

import enum

from ..exceptions import BudgetExceeded


class Sign(enum.IntEnum):
    UP = 1
    DOWN = -1

    @classmethod
    def of(cls, value: int) -> "Sign":
        """Sign of a nonzero signed vote value."""
        if value == 0:
            raise ValueError("zero has no vote sign")
        return cls.UP if value > 0 else cls.DOWN


class VoteBudget:
    """Remaining upvotes and downvotes for one member in one round.

    Counters start at the league's allowances and only move through
    consume/refund, so they stay within [0, allowance].
    """

    def __init__(self, upvotes_allowed: int, downvotes_allowed: int):
        if upvotes_allowed < 0 or downvotes_allowed < 0:
            raise ValueError("vote allowances must be non-negative")
        self._allowed = {Sign.UP: upvotes_allowed, Sign.DOWN: downvotes_allowed}
        self._remaining = dict(self._allowed)

    def allowed(self, sign: Sign) -> int:
        return self._allowed[Sign(sign)]

    def remaining(self, sign: Sign) -> int:
        return self._remaining[Sign(sign)]

    def used(self, sign: Sign) -> int:
        sign = Sign(sign)
        return self._allowed[sign] - self._remaining[sign]

    def consume(self, sign: Sign, amount: int = 1):
        sign = Sign(sign)
        if amount < 0:
            raise ValueError("amount must be non-negative")
        if amount > self._remaining[sign]:
            kind = "upvote" if sign is Sign.UP else "downvote"
            raise BudgetExceeded(
                f"You have reached your {kind} limit for this round"
            )
        self._remaining[sign] -= amount

    def refund(self, sign: Sign, amount: int):
        sign = Sign(sign)
        if amount < 0:
            raise ValueError("amount must be non-negative")
        self._remaining[sign] = min(
            self._allowed[sign], self._remaining[sign] + amount
        )

    @property
    def upvotes_remaining(self) -> int:
        return self._remaining[Sign.UP]

    @property
    def downvotes_remaining(self) -> int:
        return self._remaining[Sign.DOWN]
