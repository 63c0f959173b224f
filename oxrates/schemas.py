from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Annotated

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_serializer, field_validator

from oxrates.errors import RateNotFoundError

DEFAULT_BASE_URL = "https://openexchangerates.org/api/"
DEFAULT_TIMEOUT = 30.0


def _to_upper(v: str) -> str:
    if not isinstance(v, str):
        raise TypeError("currency must be a string")
    return v.upper()


Currency = Annotated[
    str,
    BeforeValidator(_to_upper),
    Field(pattern=r"^[A-Z]{3}$", min_length=3, max_length=3),
]

NonNegativeAmount = Annotated[float, Field(ge=0)]


class ClientConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    app_id: str
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT


class RateSet(BaseModel):
    """Decoded body of a successful ``latest.json`` call.

    ``rates`` holds units of the target currency per one unit of ``base``.
    Only codes sent by the provider are present; the base currency is not
    added implicitly.
    """

    model_config = ConfigDict(frozen=True)

    disclaimer: str = ""
    license: str = ""
    timestamp: int
    base: str
    rates: Mapping[str, float]

    @field_validator("rates", mode="after")
    @classmethod
    def freeze_rates(cls, v: Mapping[str, float]) -> Mapping[str, float]:
        return MappingProxyType(dict(v))

    @field_serializer("rates")
    def dump_rates(self, v: Mapping[str, float]) -> dict[str, float]:
        return dict(v)

    @property
    def fetched_at(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp, tz=timezone.utc)

    def rate_for(self, code: str) -> float:
        try:
            return self.rates[code]
        except KeyError:
            raise RateNotFoundError(
                "rate not found for requested currency",
                f"{code} is not quoted against {self.base}",
            ) from None


class RatesResponse(BaseModel):
    base: str
    rates: dict[str, float]
    fetched_at: str | None = None
    provider: str = "openexchangerates.org"


class ConvertResponse(BaseModel):
    from_currency: str
    to_currency: str
    amount: float
    converted: float
    rate: float
    fetched_at: str | None = None
    provider: str = "openexchangerates.org"
