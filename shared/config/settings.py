"""
Order lifecycle settings, read once from the environment.

ORDER_TIMEZONE decides which calendar day an order belongs to, both for the
daily sequence in the order number and for the admin period filters.
"""
import os
from dataclasses import dataclass
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

load_dotenv()

SEQUENCE_STRATEGIES = ("counter", "count")


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class OrderSettings:
    number_prefix: str = "SH"
    timezone: str = "UTC"
    sequence_strategy: str = "counter"
    strict_transitions: bool = False

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def load_order_settings() -> OrderSettings:
    strategy = os.getenv("ORDER_SEQUENCE_STRATEGY", "counter").strip().lower()
    if strategy not in SEQUENCE_STRATEGIES:
        raise ValueError(
            f"ORDER_SEQUENCE_STRATEGY must be one of {SEQUENCE_STRATEGIES}, got {strategy!r}"
        )
    return OrderSettings(
        number_prefix=os.getenv("ORDER_NUMBER_PREFIX", "SH"),
        timezone=os.getenv("ORDER_TIMEZONE", "UTC"),
        sequence_strategy=strategy,
        strict_transitions=_flag("ORDER_STRICT_TRANSITIONS"),
    )


settings = load_order_settings()
