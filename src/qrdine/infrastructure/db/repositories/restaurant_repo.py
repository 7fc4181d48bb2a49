from __future__ import annotations

import os

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from qrdine.application.ports.repositories import RestaurantRepository
from qrdine.domain.common.ids import RestaurantId
from qrdine.domain.restaurant.entities import RestaurantSettings
from qrdine.infrastructure.db.models.menu import RestaurantModel
from qrdine.infrastructure.db.session import get_engine
from qrdine.infrastructure.db.support import storage_errors


def default_utc_offset_minutes() -> int:
    raw = os.getenv("DEFAULT_RESTAURANT_TZ_OFFSET_MINUTES", "0").strip()
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(
            f"DEFAULT_RESTAURANT_TZ_OFFSET_MINUTES must be an integer, got {raw!r}"
        ) from exc


class SqlAlchemyRestaurantRepository(RestaurantRepository):
    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine or get_engine()

    def get_settings(self, restaurant_id: RestaurantId) -> RestaurantSettings | None:
        statement = select(RestaurantModel).where(RestaurantModel.id == str(restaurant_id))
        with storage_errors("get_restaurant_settings"), Session(self._engine) as session:
            model = session.execute(statement).scalar_one_or_none()

        if model is None:
            return None

        offset = model.utc_offset_minutes
        if offset is None:
            offset = default_utc_offset_minutes()
        return RestaurantSettings(
            restaurant_id=RestaurantId(model.id),
            utc_offset_minutes=offset,
            currency=model.currency,
        )
