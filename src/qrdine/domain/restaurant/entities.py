from __future__ import annotations

from dataclasses import dataclass

from qrdine.domain.common.ids import RestaurantId

MAX_UTC_OFFSET_MINUTES = 14 * 60


@dataclass(frozen=True)
class RestaurantSettings:
    restaurant_id: RestaurantId
    utc_offset_minutes: int
    currency: str

    def __post_init__(self) -> None:
        if abs(self.utc_offset_minutes) > MAX_UTC_OFFSET_MINUTES:
            raise ValueError("utc_offset_minutes must be within +/- 14 hours")
        if len(self.currency) != 3 or not self.currency.isupper():
            raise ValueError("currency must be a 3-letter uppercase code")
