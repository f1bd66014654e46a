"""Shared fixtures: a small SQLite phone catalog and an app wired to it."""

from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from phonecatalog.config import Settings
from phonecatalog.main import create_app
from phonecatalog.models import (
    Base,
    Brand,
    Chipset,
    DisplaySpecification,
    DisplayType,
    Phone,
    PhoneColor,
    PhonePricing,
    PhoneSpecification,
)

SAMSUNG_RAM = [8, 8, 12, 12, 8, 16, 8, 6, 4]  # 7 phones with 8GB or more
TOTAL_PHONES = 13


def seed_catalog(engine) -> None:
    """
    13 phones across Samsung, Apple and Xiaomi; Nokia has none.

    Only 3 of the 10 chipsets and 3 of the 4 display types are used.
    """
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        samsung, apple, xiaomi, nokia = (
            Brand(brand_name=name) for name in ("Samsung", "Apple", "Xiaomi", "Nokia")
        )
        session.add_all([samsung, apple, xiaomi, nokia])

        chipsets = [
            Chipset(chipset_name=name)
            for name in (
                "Snapdragon 8 Gen 2", "A16 Bionic", "Dimensity 9200", "Exynos 2200",
                "Tensor G2", "Helio G99", "Kirin 9000", "Snapdragon 695",
                "Unisoc T606", "A15 Bionic",
            )
        ]
        session.add_all(chipsets)
        snapdragon, a16, dimensity = chipsets[:3]

        amoled2x, oled, amoled, _ips = display_types = [
            DisplayType(display_type_name=name)
            for name in ("Dynamic AMOLED 2X", "Super Retina XDR OLED", "AMOLED", "IPS LCD")
        ]
        session.add_all(display_types)
        session.flush()

        def add_phone(brand, model, chipset, display_type, ram, storage, battery, screen,
                      prices=(), colors=(), status="Available"):
            phone = Phone(brand=brand, model=model, status=status, release_date=date(2023, 1, 15))
            session.add(phone)
            session.flush()
            session.add(PhoneSpecification(
                phone_id=phone.phone_id,
                chipset_id=chipset.chipset_id,
                display_type_id=display_type.display_type_id,
                ram_gb=ram,
                internal_storage_gb=storage,
                battery_capacity=battery,
            ))
            session.add(DisplaySpecification(phone_id=phone.phone_id, screen_size=screen))
            for unofficial, official in prices:
                session.add(PhonePricing(
                    phone_id=phone.phone_id,
                    price_unofficial=unofficial,
                    price_official=official,
                ))
            for color in colors:
                session.add(PhoneColor(phone_id=phone.phone_id, color_name=color))

        # phone ids 1-9
        for i, ram in enumerate(SAMSUNG_RAM):
            prices = [(300 + 100 * i, 350 + 100 * i)]
            if i == 0:
                prices.append((280, None))
            add_phone(
                samsung, f"Galaxy S{i + 20}", snapdragon, amoled2x, ram, 256, 5000, round(6.1 + i * 0.1, 2),
                prices=prices,
                colors=("Phantom Black", "Green") if i == 0 else (),
            )

        # 10-11
        add_phone(apple, "iPhone 14", a16, oled, 6, 128, 3279, 6.1, prices=[(1099, 999)])
        add_phone(apple, "iPhone 15", a16, oled, 6, 256, 3349, 6.1, status="Upcoming")

        # 12-13
        add_phone(xiaomi, "Redmi Note 13", dimensity, amoled, 12, 512, 5100, 6.67, prices=[(500, None)])
        add_phone(xiaomi, "Xiaomi 13 Ultra", dimensity, amoled, 8, 256, 4900, 6.73, prices=[(1600, 1500)])

        session.commit()


@pytest.fixture(scope="session")
def catalog_db(tmp_path_factory):
    """Path of a seeded SQLite catalog shared by the whole test session."""
    path = tmp_path_factory.mktemp("catalog") / "catalog.db"
    engine = create_engine(f"sqlite:///{path}")
    seed_catalog(engine)
    engine.dispose()
    return path


@pytest.fixture(scope="session")
def catalog_url(catalog_db):
    return f"sqlite+aiosqlite:///{catalog_db}"


@pytest.fixture
def test_settings(catalog_url):
    return Settings(DATABASE_URL=catalog_url, NODE_ENV="test", FRONTEND_URL="http://localhost:3000")


@pytest.fixture
def client(test_settings):
    """TestClient with the app lifespan running against the seeded catalog."""
    with TestClient(create_app(test_settings)) as test_client:
        yield test_client


@pytest.fixture
def empty_db_url(tmp_path):
    """Async URL of an empty, schema-less SQLite file."""
    return f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}"
