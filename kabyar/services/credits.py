"""
Daily credit ledger.

Every generation is priced and charged here before a provider is called.
Balances live in process memory and reset to DAILY_CREDITS on the first
access of a new day.
"""

import math
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, Optional

from ..config import settings
from ..errors import InsufficientCreditsError, RewardLimitError
from ..helpers import count_words, info_log

# Features priced by input length; everything else is flat
WORD_PRICED_FEATURES = ("essay", "detector", "humanizer")
BASE_COST = 3
WORDS_PER_UNIT = 1000


def estimate_cost(feature: str, words: int = 0) -> int:
    """Credits needed for one generation."""
    if feature in WORD_PRICED_FEATURES:
        return max(BASE_COST, math.ceil(words / WORDS_PER_UNIT) * BASE_COST)
    return BASE_COST


def estimate_text_cost(feature: str, text: str) -> int:
    return estimate_cost(feature, count_words(text))


@dataclass
class CreditBalance:
    remaining: int
    used: int
    day: date
    rewards_claimed: int = 0

    def to_dict(self, daily_limit: int) -> dict:
        return {
            "creditsRemaining": self.remaining,
            "creditsUsed": self.used,
            "dailyLimit": daily_limit,
            "resetsOn": self.day.isoformat(),
        }


class CreditLedger:
    def __init__(
        self,
        daily_credits: Optional[int] = None,
        reward_credits: Optional[int] = None,
        reward_limit: Optional[int] = None,
        today: Callable[[], date] = date.today,
    ):
        self.daily_credits = daily_credits if daily_credits is not None else settings.DAILY_CREDITS
        self.reward_credits = reward_credits if reward_credits is not None else settings.AD_REWARD_CREDITS
        self.reward_limit = reward_limit if reward_limit is not None else settings.AD_REWARD_DAILY_LIMIT
        self._today = today
        self._balances: Dict[str, CreditBalance] = {}

    def get_balance(self, user_id: str) -> CreditBalance:
        today = self._today()
        balance = self._balances.get(user_id)
        if balance is None or balance.day != today:
            balance = CreditBalance(remaining=self.daily_credits, used=0, day=today)
            self._balances[user_id] = balance
        return balance

    def charge(self, user_id: str, amount: int) -> CreditBalance:
        """
        Deduct credits, or refuse without touching the balance.

        Raises:
            InsufficientCreditsError: remaining credits are below amount.
        """
        balance = self.get_balance(user_id)
        if balance.remaining < amount:
            raise InsufficientCreditsError(amount, balance.remaining)
        balance.remaining -= amount
        balance.used += amount
        info_log("[CREDITS] charged", user_id=user_id, amount=amount, remaining=balance.remaining)
        return balance

    def refund(self, user_id: str, amount: int) -> CreditBalance:
        """Return credits taken for a generation that never started."""
        balance = self.get_balance(user_id)
        balance.remaining += amount
        balance.used = max(0, balance.used - amount)
        return balance

    def reward(self, user_id: str) -> CreditBalance:
        """
        Grant the configured ad reward.

        Raises:
            RewardLimitError: the user already claimed today's quota of rewards.
        """
        balance = self.get_balance(user_id)
        if balance.rewards_claimed >= self.reward_limit:
            raise RewardLimitError(self.reward_limit)
        balance.remaining += self.reward_credits
        balance.rewards_claimed += 1
        info_log(
            "[CREDITS] rewarded",
            user_id=user_id,
            amount=self.reward_credits,
            remaining=balance.remaining,
            claimed=balance.rewards_claimed,
        )
        return balance

    def set_remaining(self, user_id: str, remaining: int) -> None:
        self.get_balance(user_id).remaining = remaining


credit_ledger = CreditLedger()


def get_credit_ledger() -> CreditLedger:
    return credit_ledger
