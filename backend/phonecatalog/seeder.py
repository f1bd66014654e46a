"""
CSV import for the phone catalog.

Reads the scraped phone CSV and upserts every phone with its lookup entities,
specification side tables, colors and pricing. Safe to re-run: phones are
matched by (brand, model) and side tables by phone id.
"""
import csv
import re
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Type

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from phonecatalog.database import Database
from phonecatalog.logging_config import get_logger
from phonecatalog.models import (
    AdditionalFeature,
    AudioFeature,
    Base,
    Brand,
    CameraSpecification,
    Chipset,
    DisplaySpecification,
    DisplayType,
    OperatingSystem,
    Phone,
    PhoneColor,
    PhonePricing,
    PhoneSpecification,
    PhysicalSpecification,
    RamType,
    StorageType,
)


log = get_logger("seeder")

BATCH_SIZE = 50
TRUE_VALUES = {"yes", "true", "1", "available"}
DATE_FORMATS = ("%Y-%m-%d", "%d %B %Y", "%d %b %Y", "%B %d, %Y", "%b %d, %Y", "%B %Y", "%d/%m/%Y")

_INT_RE = re.compile(r"\d+")
_FLOAT_RE = re.compile(r"\d+(?:\.\d+)?")


# ---------- PARSING ----------


def clean(value: Optional[str]) -> Optional[str]:
    """Trimmed string, or None when blank."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def parse_int(value: Optional[str]) -> Optional[int]:
    """First run of digits: '5000 mAh' -> 5000, '8GB' -> 8."""
    match = _INT_RE.search(value or "")
    return int(match.group()) if match else None


def parse_float(value: Optional[str]) -> Optional[float]:
    """First decimal number: '6.7 inches' -> 6.7, 'BDT 25,999' -> 25999.0."""
    if not value:
        return None
    match = _FLOAT_RE.search(value.replace(",", ""))
    return float(match.group()) if match else None


def parse_bool(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in TRUE_VALUES


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    value = clean(value)
    if value is None:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).replace(tzinfo=None)
    except ValueError:
        pass
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    return None


def parse_date(value: Optional[str]) -> Optional[date]:
    parsed = parse_timestamp(value)
    return parsed.date() if parsed else None


def map_status(value: Optional[str]) -> str:
    """Free-text availability -> one of the phone statuses."""
    status = (value or "").lower()
    if "upcoming" in status or "exp." in status:
        return "Upcoming"
    if "rumored" in status:
        return "Rumored"
    if "discontinued" in status:
        return "Discontinued"
    return "Available"


def split_colors(value: Optional[str]) -> List[str]:
    """Comma-separated colors, trimmed and de-duplicated in order."""
    seen: Dict[str, None] = {}
    for color in (value or "").split(","):
        color = color.strip()
        if color:
            seen.setdefault(color, None)
    return list(seen)


def load_rows(path: Path, limit: Optional[int] = None) -> List[Dict[str, str]]:
    """Rows of the CSV as dicts, at most ``limit`` of them."""
    with open(path, "r", newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        rows = []
        for row in reader:
            if limit is not None and len(rows) >= limit:
                break
            rows.append(row)
    return rows


def dedupe_rows(rows: List[Dict[str, str]]) -> List[Dict[str, str]]:
    """First row wins for each (brand, model), compared case-insensitively."""
    unique: Dict[Tuple[str, str], Dict[str, str]] = {}
    for row in rows:
        key = ((row.get("brand") or "").strip().lower(), (row.get("model") or "").strip().lower())
        if key in unique:
            log.info("duplicate_phone_skipped", brand=row.get("brand"), model=row.get("model"))
            continue
        unique[key] = row
    return list(unique.values())


# ---------- SEEDER ----------


@dataclass
class SeedReport:
    loaded: int = 0
    unique: int = 0
    imported: int = 0
    failed: int = 0


class CSVSeeder:
    """
    Imports phones from the scraped CSV.

    Each phone is written in its own transaction; a failing row is logged and
    skipped. Lookup ids are cached per run and only after their transaction
    commits.
    """

    def __init__(self, db: Database, batch_size: int = BATCH_SIZE):
        self.db = db
        self.batch_size = batch_size
        self._cache: Dict[Tuple[str, Any], int] = {}
        self._pending: Dict[Tuple[str, Any], int] = {}

    async def seed_from_csv(self, path: Path, limit: Optional[int] = None) -> SeedReport:
        rows = load_rows(path, limit)
        log.info("csv_loaded", path=str(path), rows=len(rows))
        return await self.seed_rows(rows)

    async def seed_rows(self, rows: List[Dict[str, str]]) -> SeedReport:
        unique = dedupe_rows(rows)
        report = SeedReport(loaded=len(rows), unique=len(unique))
        log.info("seeding_started", unique=len(unique), duplicates=len(rows) - len(unique))

        total_batches = (len(unique) + self.batch_size - 1) // self.batch_size
        for start in range(0, len(unique), self.batch_size):
            log.info("batch_started", batch=start // self.batch_size + 1, of=total_batches)
            for row in unique[start:start + self.batch_size]:
                if await self.import_row(row):
                    report.imported += 1
                else:
                    report.failed += 1

        log.info("seeding_completed", imported=report.imported, failed=report.failed)
        return report

    async def import_row(self, row: Dict[str, str]) -> bool:
        """Upsert one phone. Returns False if the row was skipped."""
        brand, model = clean(row.get("brand")), clean(row.get("model"))
        if not brand or not model:
            log.warning("row_missing_brand_or_model", brand=brand, model=model)
            return False

        self._pending = {}
        try:
            async with self.db.session() as session:
                async with session.begin():
                    await self._import(session, row, brand, model)
        except (SQLAlchemyError, ValueError) as e:
            log.error("phone_import_failed", brand=brand, model=model, error=str(e))
            return False

        self._cache.update(self._pending)
        return True

    async def _import(self, session: AsyncSession, row: Dict[str, str], brand: str, model: str) -> None:
        brand_id = await self._lookup(session, Brand, brand_name=brand)

        chipset_id = None
        if clean(row.get("chipset")):
            chipset_id = await self._lookup(
                session, Chipset,
                chipset_name=clean(row.get("chipset")),
                _extra={"architecture": clean(row.get("architecture")),
                        "fabrication": clean(row.get("fabrication"))},
            )
        os_id = None
        if clean(row.get("operating_system")):
            os_id = await self._lookup(
                session, OperatingSystem,
                os_name=clean(row.get("operating_system")),
                os_version=clean(row.get("os_version")),
                _extra={"user_interface": clean(row.get("user_interface"))},
            )
        display_type_id = await self._optional_lookup(session, DisplayType, "display_type_name", row.get("display_type"))
        storage_type_id = await self._optional_lookup(session, StorageType, "storage_type_name", row.get("storage_type"))
        ram_type_id = await self._optional_lookup(session, RamType, "ram_type_name", row.get("ram_type"))

        phone = await self._upsert_phone(session, row, brand_id, model)
        phone_id = phone.phone_id

        await self._upsert_side(session, PhoneSpecification, phone_id, {
            "chipset_id": chipset_id,
            "os_id": os_id,
            "display_type_id": display_type_id,
            "storage_type_id": storage_type_id,
            "ram_type_id": ram_type_id,
            "cpu": clean(row.get("cpu")),
            "cpu_cores": parse_int(row.get("cpu_cores")),
            "gpu": clean(row.get("gpu")),
            "ram_gb": parse_int(row.get("ram")),
            "internal_storage_gb": parse_int(row.get("internal_storage")),
            "expandable_memory": parse_bool(row.get("expandable_memory")),
            "battery_capacity": parse_int(row.get("battery_capacity")),
            "quick_charging": clean(row.get("quick_charging")),
            "bluetooth_version": clean(row.get("bluetooth")),
            "network": clean(row.get("network")),
            "wlan": clean(row.get("wlan")),
            "usb": clean(row.get("usb")),
            "usb_otg": parse_bool(row.get("usb_otg")),
            "usb_type_c": parse_bool(row.get("usb_type_c")),
        })
        await self._upsert_side(session, DisplaySpecification, phone_id, {
            "screen_size": parse_float(row.get("screen_size")),
            "resolution": clean(row.get("resolution")),
            "pixel_density": parse_int(row.get("pixel_density")),
            "refresh_rate": parse_int(row.get("refresh_rate")),
            "brightness": parse_int(row.get("brightness")),
            "aspect_ratio": clean(row.get("aspect_ratio")),
            "screen_protection": clean(row.get("screen_protection")),
            "screen_to_body_ratio": parse_float(row.get("screen_to_body_ratio")),
            "touch_screen": clean(row.get("touch_screen")),
            "notch": clean(row.get("notch")),
            "edge": parse_bool(row.get("edge")),
        })
        await self._upsert_side(session, PhysicalSpecification, phone_id, {
            "height": parse_float(row.get("height")),
            "width": parse_float(row.get("width")),
            "thickness": parse_float(row.get("thickness")),
            "weight": parse_float(row.get("weight")),
            "ip_rating": clean(row.get("ip_rating")),
            "waterproof": clean(row.get("waterproof")),
            "ruggedness": clean(row.get("ruggedness")),
        })
        await self._upsert_side(session, CameraSpecification, phone_id, {
            "primary_camera_resolution": clean(row.get("primary_camera_resolution")),
            "primary_camera_features": clean(row.get("primary_camera_features")),
            "primary_camera_autofocus": parse_bool(row.get("primary_camera_autofocus")),
            "primary_camera_flash": parse_bool(row.get("primary_camera_flash")),
            "primary_camera_image_resolution": clean(row.get("primary_camera_image_resolution")),
            "video": clean(row.get("video")),
        })
        await self._upsert_side(session, AudioFeature, phone_id, {
            "audio_jack": clean(row.get("audio_jack")),
            "loudspeaker": parse_bool(row.get("loudspeaker")),
        })
        await self._upsert_side(session, AdditionalFeature, phone_id, {
            "features": clean(row.get("features")),
            "face_unlock": parse_bool(row.get("face_unlock")),
            "gps": clean(row.get("gps")),
            "gprs": parse_bool(row.get("gprs")),
            "volte": parse_bool(row.get("volte")),
            "sim_size": clean(row.get("sim_size")),
            "sim_slot": clean(row.get("sim_slot")),
            "speed": clean(row.get("speed")),
        })
        await self._add_colors(session, phone_id, split_colors(row.get("colors")))
        await self._upsert_pricing(session, phone_id, row)

    async def _lookup(self, session: AsyncSession, model: Type[Base], _extra: Optional[Dict[str, Any]] = None,
                      **natural_key: Any) -> int:
        """Id of the lookup row with this natural key, creating it if needed."""
        cache_key = (model.__tablename__, tuple(sorted(natural_key.items())))
        if cache_key in self._cache:
            return self._cache[cache_key]
        if cache_key in self._pending:
            return self._pending[cache_key]

        obj = (await session.execute(select(model).filter_by(**natural_key))).scalar_one_or_none()
        if obj is None:
            obj = model(**natural_key, **(_extra or {}))
            session.add(obj)
            await session.flush()

        pk = model.__mapper__.primary_key[0]
        found = getattr(obj, pk.key)
        self._pending[cache_key] = found
        return found

    async def _optional_lookup(self, session: AsyncSession, model: Type[Base], name_column: str,
                               value: Optional[str]) -> Optional[int]:
        name = clean(value)
        if name is None:
            return None
        return await self._lookup(session, model, **{name_column: name})

    async def _upsert_phone(self, session: AsyncSession, row: Dict[str, str], brand_id: int, model: str) -> Phone:
        values = {
            "device_type": clean(row.get("device_type")) or "Smartphone",
            "release_date": parse_date(row.get("release_date")),
            "status": map_status(row.get("status")),
            "detail_url": clean(row.get("detail_url")),
            "image_url": clean(row.get("image_url")),
            "scraped_at": parse_timestamp(row.get("scraped_at")),
        }
        stmt = select(Phone).where(Phone.brand_id == brand_id, Phone.model == model)
        phone = (await session.execute(stmt)).scalar_one_or_none()
        if phone is None:
            phone = Phone(brand_id=brand_id, model=model, **values)
            session.add(phone)
        else:
            log.info("phone_updated", phone_id=phone.phone_id, model=model)
            for key, value in values.items():
                setattr(phone, key, value)
        await session.flush()
        return phone

    async def _upsert_side(self, session: AsyncSession, model: Type[Base], phone_id: int,
                           values: Dict[str, Any]) -> None:
        """Insert or overwrite the single side-table row of a phone."""
        stmt = select(model).filter_by(phone_id=phone_id)
        existing = (await session.execute(stmt)).scalar_one_or_none()
        if existing is None:
            session.add(model(phone_id=phone_id, **values))
        else:
            for key, value in values.items():
                setattr(existing, key, value)

    async def _add_colors(self, session: AsyncSession, phone_id: int, colors: List[str]) -> None:
        if not colors:
            return
        stmt = select(PhoneColor.color_name).where(PhoneColor.phone_id == phone_id)
        existing = set((await session.execute(stmt)).scalars())
        for color in colors:
            if color not in existing:
                session.add(PhoneColor(phone_id=phone_id, color_name=color))

    async def _upsert_pricing(self, session: AsyncSession, phone_id: int, row: Dict[str, str]) -> None:
        values = {
            "price_official": parse_float(row.get("price_official")),
            "price_unofficial": parse_float(row.get("price_unofficial")),
            "price_old": parse_float(row.get("price_old")),
            "price_savings": parse_float(row.get("price_savings")),
            "price_updated": parse_date(row.get("price_updated")),
        }
        stmt = (
            select(PhonePricing)
            .where(PhonePricing.phone_id == phone_id)
            .order_by(PhonePricing.pricing_id)
            .limit(1)
        )
        existing = (await session.execute(stmt)).scalar_one_or_none()
        if existing is None:
            session.add(PhonePricing(phone_id=phone_id, **values))
        else:
            for key, value in values.items():
                setattr(existing, key, value)
