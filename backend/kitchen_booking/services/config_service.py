"""Service helpers for platform configuration."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
import logging
from typing import Optional, Union

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import ValidationException
from ..repositories.factory import RepositoryFactory

logger = logging.getLogger(__name__)

SERVICE_FEE_RATE_KEY = "service_fee_rate"
OVERSTAY_GRACE_PERIOD_DAYS_KEY = "overstay_grace_period_days"
OVERSTAY_PENALTY_MULTIPLIER_KEY = "overstay_penalty_multiplier"
OVERSTAY_MAX_PENALTY_DAYS_KEY = "overstay_max_penalty_days"

OVERSTAY_SETTING_MINIMUMS = {
    OVERSTAY_GRACE_PERIOD_DAYS_KEY: 0,
    OVERSTAY_PENALTY_MULTIPLIER_KEY: 1,
    OVERSTAY_MAX_PENALTY_DAYS_KEY: 1,
}


@dataclass(frozen=True)
class OverstayPenaltyConfig:
    grace_period_days: int
    penalty_multiplier: int
    max_penalty_days: int


class ConfigService:
    """Business logic for reading/writing platform configuration."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = RepositoryFactory.create_platform_config_repository(db)

    def get_service_fee_rate(self) -> Decimal:
        """
        Service fee as a decimal fraction (0.05 = 5%).

        A stored ``service_fee_rate`` setting wins; unparseable or out of range
        values are ignored in favour of the configured default.
        """
        record = self.repo.get_by_key(SERVICE_FEE_RATE_KEY)
        if record is not None and record.value is not None:
            try:
                rate = Decimal(str(record.value).strip())
            except InvalidOperation:
                logger.warning(
                    "Ignoring invalid stored service fee rate",
                    extra={"value": record.value},
                )
            else:
                if Decimal("0") <= rate <= Decimal("1"):
                    return rate
                logger.warning(
                    "Ignoring out of range stored service fee rate",
                    extra={"value": record.value},
                )
        return Decimal(str(settings.service_fee_rate))

    def set_service_fee_rate(self, rate: Union[Decimal, float, str]) -> Decimal:
        try:
            value = Decimal(str(rate))
        except InvalidOperation as exc:
            raise ValidationException(
                f"Invalid service fee rate '{rate}'", code="INVALID_SERVICE_FEE_RATE"
            ) from exc
        if not (Decimal("0") <= value <= Decimal("1")):
            raise ValidationException(
                "Service fee rate must be between 0 and 1", code="INVALID_SERVICE_FEE_RATE"
            )
        self.repo.upsert(key=SERVICE_FEE_RATE_KEY, value=str(value))
        self.db.commit()
        return value

    def get_overstay_defaults(self) -> OverstayPenaltyConfig:
        """
        Platform-wide overstay penalty defaults.

        Stored ``platform_settings`` values win over the environment; invalid
        stored values are logged and ignored.
        """
        return OverstayPenaltyConfig(
            grace_period_days=self._stored_int(OVERSTAY_GRACE_PERIOD_DAYS_KEY, settings.overstay_grace_period_days),
            penalty_multiplier=self._stored_int(
                OVERSTAY_PENALTY_MULTIPLIER_KEY, settings.overstay_penalty_multiplier
            ),
            max_penalty_days=self._stored_int(OVERSTAY_MAX_PENALTY_DAYS_KEY, settings.overstay_max_days_to_charge),
        )

    def set_overstay_default(self, key: str, value: int) -> int:
        if key not in OVERSTAY_SETTING_MINIMUMS:
            raise ValidationException(f"Unknown overstay setting '{key}'", code="INVALID_OVERSTAY_SETTING")
        minimum = OVERSTAY_SETTING_MINIMUMS[key]
        if value < minimum:
            raise ValidationException(f"{key} must be at least {minimum}", code="INVALID_OVERSTAY_SETTING")
        self.repo.upsert(key=key, value=str(value))
        self.db.commit()
        return value

    def _stored_int(self, key: str, default: int) -> int:
        record = self.repo.get_by_key(key)
        if record is None or record.value is None:
            return default
        parsed: Optional[int]
        try:
            parsed = int(str(record.value).strip())
        except ValueError:
            parsed = None
        if parsed is None or parsed < OVERSTAY_SETTING_MINIMUMS[key]:
            logger.warning(
                f"Ignoring invalid stored {key}",
                extra={"value": record.value},
            )
            return default
        return parsed
