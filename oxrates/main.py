# main.py
from __future__ import annotations

import logging
import os

from mcp.server.fastmcp import FastMCP
from pydantic import validate_call

from oxrates.errors import ApiError
from oxrates.logging_conf import setup_logging
from oxrates.provider import RateClient, round_amount
from oxrates.schemas import (
    DEFAULT_BASE_URL,
    ConvertResponse,
    Currency,
    NonNegativeAmount,
    RatesResponse,
)

# ---------- Config ----------
APP_ID = os.getenv("OXR_APP_ID", "")
API_BASE = os.getenv("OXR_API_BASE", DEFAULT_BASE_URL)
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "30.0"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# ---------- Logging ----------

setup_logging(LOG_LEVEL)
log = logging.getLogger("oxrates.mcp")
# ---------- MCP App ----------
mcp = FastMCP(
    "oxrates",
    host="0.0.0.0",
    port=int(os.getenv("PORT", "8000")),
)

# ---------- Client ----------
_client = RateClient(APP_ID, base_url=API_BASE, timeout=HTTP_TIMEOUT)


# ---------- Tools ----------
@validate_call
@mcp.tool()
def latest_rates(
    base: Currency | None = None,
    symbols: list[Currency] | None = None,
) -> RatesResponse:
    """
    Return the latest exchange rates from Open Exchange Rates.
    Internally calls: GET /latest.json?app_id=KEY[&base=BASE][&symbols=A,B]
    Symbols are only applied together with an explicit base.
    """
    try:
        rate_set = _client.fetch_rates(base or "", *(symbols or []))
    except ApiError as e:
        log.exception("provider error for latest rates (base=%s)", base)
        raise RuntimeError(f"Failed to fetch rates from provider: {e}") from e

    return RatesResponse(
        base=rate_set.base,
        rates=dict(rate_set.rates),
        fetched_at=rate_set.fetched_at.isoformat(),
    )


@validate_call
@mcp.tool()
def convert(
    amount: NonNegativeAmount,
    from_currency: Currency,
    to_currency: Currency,
) -> ConvertResponse:
    """
    Convert an amount from one currency to another at the latest rate.
    The result is rounded to two decimal places.
    """
    try:
        rate_set, rate = _client.quote(from_currency, to_currency)
    except ApiError as e:
        log.exception("provider error for %s->%s", from_currency, to_currency)
        raise RuntimeError(f"Failed to convert {from_currency} to {to_currency}: {e}") from e

    log.debug("convert %s %s->%s at %s", amount, from_currency, to_currency, rate)
    return ConvertResponse(
        from_currency=from_currency,
        to_currency=to_currency,
        amount=float(amount),
        converted=round_amount(float(amount) * rate),
        rate=rate,
        fetched_at=rate_set.fetched_at.isoformat(),
    )


# ---------- Entry point ----------
if __name__ == "__main__":
    log.info("starting MCP server on port %s", os.getenv("PORT", "8000"))
    mcp.run(transport="streamable-http")
