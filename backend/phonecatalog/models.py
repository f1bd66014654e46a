"""
Database models for the phone catalog.

Lookup tables (brands, chipsets, ...) hold each name once; the specification
tables reference them by id. Side tables are one row per phone.
"""
from datetime import date, datetime
from typing import Optional
from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


PHONE_STATUSES = ("Available", "Upcoming", "Rumored", "Discontinued")


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


# ---------- LOOKUP TABLES ----------


class Brand(Base):
    __tablename__ = "brands"

    brand_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    brand_name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)

    phones: Mapped[list["Phone"]] = relationship(back_populates="brand")

    def __repr__(self) -> str:
        return f"<Brand(id={self.brand_id}, name={self.brand_name})>"


class Chipset(Base):
    __tablename__ = "chipsets"

    chipset_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    chipset_name: Mapped[str] = mapped_column(String(150), unique=True, nullable=False)
    architecture: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    fabrication: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)


class OperatingSystem(Base):
    __tablename__ = "operating_systems"
    __table_args__ = (UniqueConstraint("os_name", "os_version", name="uq_os_name_version"),)

    os_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    os_name: Mapped[str] = mapped_column(String(100), nullable=False)
    os_version: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    user_interface: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)


class DisplayType(Base):
    __tablename__ = "display_types"

    display_type_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    display_type_name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)


class StorageType(Base):
    __tablename__ = "storage_types"

    storage_type_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    storage_type_name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)


class RamType(Base):
    __tablename__ = "ram_types"

    ram_type_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ram_type_name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)


# ---------- PHONES ----------


class Phone(Base):
    """
    A catalog item.

    (brand_id, model) is the natural key used by the seeder for upserts.
    """
    __tablename__ = "phones"
    __table_args__ = (UniqueConstraint("brand_id", "model", name="uq_phone_brand_model"),)

    phone_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    brand_id: Mapped[int] = mapped_column(ForeignKey("brands.brand_id"), nullable=False, index=True)
    model: Mapped[str] = mapped_column(String(200), nullable=False)
    device_type: Mapped[str] = mapped_column(String(50), nullable=False, default="Smartphone")
    release_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(
        Enum(*PHONE_STATUSES, name="phone_status"), nullable=False, default="Available"
    )
    detail_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    scraped_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    brand: Mapped[Brand] = relationship(back_populates="phones")

    def __repr__(self) -> str:
        return f"<Phone(id={self.phone_id}, model={self.model}, status={self.status})>"


class PhoneSpecification(Base):
    __tablename__ = "phone_specifications"

    spec_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    phone_id: Mapped[int] = mapped_column(
        ForeignKey("phones.phone_id", ondelete="CASCADE"), unique=True, nullable=False
    )
    chipset_id: Mapped[Optional[int]] = mapped_column(ForeignKey("chipsets.chipset_id"), nullable=True)
    os_id: Mapped[Optional[int]] = mapped_column(ForeignKey("operating_systems.os_id"), nullable=True)
    display_type_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("display_types.display_type_id"), nullable=True
    )
    storage_type_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("storage_types.storage_type_id"), nullable=True
    )
    ram_type_id: Mapped[Optional[int]] = mapped_column(ForeignKey("ram_types.ram_type_id"), nullable=True)

    cpu: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    cpu_cores: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    gpu: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    ram_gb: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    internal_storage_gb: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    expandable_memory: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    battery_capacity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    quick_charging: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    bluetooth_version: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    network: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    wlan: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    usb: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    usb_otg: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    usb_type_c: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class DisplaySpecification(Base):
    __tablename__ = "display_specifications"

    display_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    phone_id: Mapped[int] = mapped_column(
        ForeignKey("phones.phone_id", ondelete="CASCADE"), unique=True, nullable=False
    )
    screen_size: Mapped[Optional[float]] = mapped_column(Numeric(4, 2), nullable=True, index=True)
    resolution: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    pixel_density: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    refresh_rate: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    brightness: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    aspect_ratio: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    screen_protection: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    screen_to_body_ratio: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    touch_screen: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    notch: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    edge: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class PhysicalSpecification(Base):
    __tablename__ = "physical_specifications"

    physical_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    phone_id: Mapped[int] = mapped_column(
        ForeignKey("phones.phone_id", ondelete="CASCADE"), unique=True, nullable=False
    )
    height: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    width: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    thickness: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    weight: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    ip_rating: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    waterproof: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    ruggedness: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)


class CameraSpecification(Base):
    __tablename__ = "camera_specifications"

    camera_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    phone_id: Mapped[int] = mapped_column(
        ForeignKey("phones.phone_id", ondelete="CASCADE"), unique=True, nullable=False
    )
    primary_camera_resolution: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    primary_camera_features: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    primary_camera_autofocus: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    primary_camera_flash: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    primary_camera_image_resolution: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    video: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class AudioFeature(Base):
    __tablename__ = "audio_features"

    audio_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    phone_id: Mapped[int] = mapped_column(
        ForeignKey("phones.phone_id", ondelete="CASCADE"), unique=True, nullable=False
    )
    audio_jack: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    loudspeaker: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class AdditionalFeature(Base):
    __tablename__ = "additional_features"

    feature_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    phone_id: Mapped[int] = mapped_column(
        ForeignKey("phones.phone_id", ondelete="CASCADE"), unique=True, nullable=False
    )
    features: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    face_unlock: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    gps: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    gprs: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    volte: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sim_size: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    sim_slot: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    speed: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)


# ---------- ONE-TO-MANY ----------


class PhoneColor(Base):
    __tablename__ = "phone_colors"
    __table_args__ = (UniqueConstraint("phone_id", "color_name", name="uq_phone_color"),)

    color_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    phone_id: Mapped[int] = mapped_column(
        ForeignKey("phones.phone_id", ondelete="CASCADE"), nullable=False, index=True
    )
    color_name: Mapped[str] = mapped_column(String(100), nullable=False)


class PhonePricing(Base):
    __tablename__ = "phone_pricing"

    pricing_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    phone_id: Mapped[int] = mapped_column(
        ForeignKey("phones.phone_id", ondelete="CASCADE"), nullable=False, index=True
    )
    price_official: Mapped[Optional[float]] = mapped_column(Numeric(10, 2), nullable=True)
    price_unofficial: Mapped[Optional[float]] = mapped_column(Numeric(10, 2), nullable=True)
    price_old: Mapped[Optional[float]] = mapped_column(Numeric(10, 2), nullable=True)
    price_savings: Mapped[Optional[float]] = mapped_column(Numeric(10, 2), nullable=True)
    price_updated: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    variant_description: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
