# region-keyed shipping fees: stored overrides on top of a built-in table
from datetime import datetime, timezone
from typing import Dict, Optional

from db import crud
from db.database import Database
from utils.logger import get_logger

_logger = get_logger(__name__)

DEFAULT_SHIPPING_RATES: Dict[str, float] = {
    "Alabama": 13, "Alaska": 23, "Arizona": 17, "Arkansas": 14, "California": 20,
    "Colorado": 16, "Connecticut": 13, "Delaware": 13, "Florida": 15, "Georgia": 14,
    "Hawaii": 25, "Idaho": 18, "Illinois": 11, "Indiana": 11, "Iowa": 13,
    "Kansas": 14, "Kentucky": 13, "Louisiana": 15, "Maine": 17, "Maryland": 13,
    "Massachusetts": 13, "Michigan": 9, "Minnesota": 14, "Mississippi": 14, "Missouri": 13,
    "Montana": 18, "Nebraska": 14, "Nevada": 18, "New Hampshire": 13, "New Jersey": 13,
    "New Mexico": 16, "New York": 13, "North Carolina": 13, "North Dakota": 15, "Ohio": 11,
    "Oklahoma": 14, "Oregon": 19, "Pennsylvania": 13, "Rhode Island": 13, "South Carolina": 13,
    "South Dakota": 15, "Tennessee": 13, "Texas": 15, "Utah": 17, "Vermont": 13,
    "Virginia": 13, "Washington": 19, "West Virginia": 13, "Wisconsin": 11, "Wyoming": 16,
}  # fmt: skip


def merge_rates(
    stored: Dict[str, float], defaults: Optional[Dict[str, float]] = None
) -> Dict[str, float]:
    """Stored fees win; any default region not yet saved keeps its default."""
    table = {k: float(v) for k, v in (defaults or DEFAULT_SHIPPING_RATES).items()}
    table.update(stored)
    return table


async def load_rate_table(db: Database) -> Dict[str, float]:
    stored = await crud.get_stored_shipping_rates(db)
    return merge_rates(stored)


def parse_rate(value: str) -> float:
    """Admin input -> fee; unparsable or negative input counts as 0."""
    try:
        fee = float(value)
    except (TypeError, ValueError):
        return 0.0
    return fee if fee > 0 else 0.0


async def save_rate_table(
    db: Database, rates: Dict[str, float], when: Optional[datetime] = None
) -> None:
    when = when or datetime.now(timezone.utc)
    _logger.info(f"Saving {len(rates)} shipping rates")
    await crud.save_shipping_rates(db, rates, when)
