from __future__ import annotations

from typing import Protocol

from qrdine.domain.common.money import Money


class TaxPolicy(Protocol):
    def tax_for(self, subtotal: Money) -> Money: ...


class NoTax:
    """Tax rules are not modeled yet; every bill carries a zero tax amount."""

    def tax_for(self, subtotal: Money) -> Money:
        return Money.zero(subtotal.currency)
