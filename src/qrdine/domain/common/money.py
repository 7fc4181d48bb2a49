from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Money:
    amount_cents: int
    currency: str

    def __post_init__(self) -> None:
        if self.amount_cents < 0:
            raise ValueError("amount_cents must be >= 0")
        if len(self.currency) != 3 or not self.currency.isalpha() or not self.currency.isupper():
            raise ValueError("currency must be a 3-letter uppercase code")

    @classmethod
    def zero(cls, currency: str) -> Money:
        return cls(amount_cents=0, currency=currency)

    def __add__(self, other: Money) -> Money:
        if other.currency != self.currency:
            raise ValueError("cannot add money in different currencies")
        return Money(amount_cents=self.amount_cents + other.amount_cents, currency=self.currency)

    def times(self, quantity: int) -> Money:
        return Money(amount_cents=self.amount_cents * quantity, currency=self.currency)


def sum_money(values: list[Money], currency: str) -> Money:
    total = Money.zero(currency)
    for value in values:
        total = total + value
    return total
