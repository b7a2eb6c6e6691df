"""Report models produced by the miners.

These are plain Python objects, not ORM models.  The DB layer serialises and
deserialises them through ``to_dict`` / ``from_dict``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class Source(str, Enum):
    PROTONDB = "protondb"
    STEAMDECKHQ = "steamdeckhq"
    SHAREDECK = "sharedeck"


class SteamdeckRating(str, Enum):
    GOLD = "gold"
    PLATINUM = "platinum"
    NATIVE = "native"
    UNSUPPORTED = "unsupported"
    BORKED = "borked"


class SteamdeckHardware(str, Enum):
    OLED = "oled"
    LCD = "lcd"


@dataclass
class Reporter:
    username: str
    user_profile_url: str
    user_profile_avatar_url: Optional[str] = None


@dataclass
class SteamdeckSettings:
    frame_rate_cap: Optional[str] = None
    screen_refresh_rate: Optional[str] = None
    proton_version: Optional[str] = None
    steamos_version: Optional[str] = None
    tdp_limit: Optional[str] = None
    scaling_filter: Optional[str] = None
    gpu_clock_speed: Optional[str] = None


@dataclass
class BatteryPerformance:
    consumption: Optional[str] = None
    temps: Optional[str] = None
    life_span: Optional[str] = None


@dataclass
class SteamdeckExperience:
    average_frame_rate: Optional[str] = None


def _drop_none(data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


@dataclass
class GameReportBody:
    """One structured report as mined from a source page."""

    source: Source
    url: str
    reporter: Reporter
    notes: str
    title: Optional[str] = None
    game_settings: Optional[dict[str, str]] = None
    steamdeck_hardware: Optional[SteamdeckHardware] = None
    steamdeck_settings: Optional[SteamdeckSettings] = None
    battery_performance: Optional[BatteryPerformance] = None
    steamdeck_experience: Optional[SteamdeckExperience] = None
    posted_at: Optional[datetime] = None

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------
    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-compatible dict; unset nested blocks are omitted."""
        data: dict[str, Any] = {
            "title": self.title,
            "source": self.source.value,
            "url": self.url,
            "reporter": _drop_none(asdict(self.reporter)),
            "notes": self.notes,
            "posted_at": self.posted_at.isoformat() if self.posted_at else None,
        }
        if self.game_settings is not None:
            data["game_settings"] = dict(self.game_settings)
        if self.steamdeck_hardware is not None:
            data["steamdeck_hardware"] = self.steamdeck_hardware.value
        for name in ("steamdeck_settings", "battery_performance", "steamdeck_experience"):
            block = getattr(self, name)
            if block is not None:
                data[name] = _drop_none(asdict(block))
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GameReportBody:
        def block(klass: type, key: str) -> Any:
            raw = data.get(key)
            if raw is None:
                return None
            allowed = {f.name for f in fields(klass)}
            return klass(**{k: v for k, v in raw.items() if k in allowed})

        posted_at = data.get("posted_at")
        hardware = data.get("steamdeck_hardware")
        return cls(
            title=data.get("title"),
            source=Source(data["source"]),
            url=data.get("url", ""),
            reporter=Reporter(**data["reporter"]),
            notes=data.get("notes", ""),
            game_settings=data.get("game_settings"),
            steamdeck_hardware=SteamdeckHardware(hardware) if hardware else None,
            steamdeck_settings=block(SteamdeckSettings, "steamdeck_settings"),
            battery_performance=block(BatteryPerformance, "battery_performance"),
            steamdeck_experience=block(SteamdeckExperience, "steamdeck_experience"),
            posted_at=datetime.fromisoformat(posted_at) if posted_at else None,
        )

    def content_hash(self) -> str:
        """SHA-256 of the canonical JSON form, used to find duplicate rows."""
        canonical = json.dumps(self.to_dict(), sort_keys=True, ensure_ascii=False)
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


@dataclass
class GameReport:
    """A persisted report row."""

    id: int
    game_id: int
    hash: str
    body: GameReportBody
    created_at: int
    updated_at: int


@dataclass
class MinedData:
    reports: list[GameReportBody] = field(default_factory=list)
    steamdeck_rating: Optional[SteamdeckRating] = None
    steamdeck_verified: Optional[bool] = None
