from __future__ import annotations

import sys
from pathlib import Path
from typing import Iterator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from qrdine.infrastructure.db.models import bill as _bill_models  # noqa: F401
from qrdine.infrastructure.db.models import order as _order_models  # noqa: F401
from qrdine.infrastructure.db.models import service_request as _service_request_models  # noqa: F401
from qrdine.infrastructure.db.models.menu import Base, MenuItemModel, MenuModel, RestaurantModel
from qrdine.infrastructure.db.models.table import TableModel

RESTAURANT_ID = "rst_001"


class RecordingPublisher:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str, str]] = []

    def publish(self, channel: str, event_name: str, message: str) -> None:
        self.calls.append((channel, event_name, message))


def _seed(engine: Engine) -> None:
    with Session(engine) as session:
        session.add(
            RestaurantModel(
                id=RESTAURANT_ID,
                name="Spice Route Bistro",
                currency="INR",
                utc_offset_minutes=330,
            )
        )
        session.add(
            RestaurantModel(id="rst_002", name="Harbour Grill", currency="USD")
        )
        session.flush()
        session.add_all(
            [
                TableModel(id="tbl_001", restaurant_id=RESTAURANT_ID, table_code="T1", is_active=True),
                TableModel(id="tbl_002", restaurant_id=RESTAURANT_ID, table_code="T2", is_active=True),
                TableModel(id="tbl_003", restaurant_id=RESTAURANT_ID, table_code="T3", is_active=False),
            ]
        )
        menu = MenuModel(id="men_001", restaurant_id=RESTAURANT_ID, version=1)
        menu.items = [
            MenuItemModel(
                id="itm_burger",
                name="Burger",
                price_cents=10000,
                currency="INR",
                is_available=True,
            ),
            MenuItemModel(
                id="itm_fries",
                name="Fries",
                price_cents=5000,
                currency="INR",
                is_available=True,
            ),
            MenuItemModel(
                id="itm_soup",
                name="Soup of the Day",
                price_cents=4000,
                currency="INR",
                is_available=False,
            ),
        ]
        session.add(menu)
        session.commit()


@pytest.fixture
def engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    _seed(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def file_engine(tmp_path: Path) -> Iterator[Engine]:
    """Database file with one connection per session, so transactions are isolated."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'qrdine.db'}",
        connect_args={"check_same_thread": False, "timeout": 15},
    )
    Base.metadata.create_all(engine)
    _seed(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()
