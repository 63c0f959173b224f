from __future__ import annotations

import logging
import math
from contextlib import AbstractContextManager, nullcontext
from decimal import ROUND_HALF_UP, Decimal, localcontext

import httpx
from pydantic import ValidationError

from oxrates.errors import (
    ApiErrorBody,
    DecodeError,
    MalformedRequestError,
    ProviderError,
    TransportError,
)
from oxrates.schemas import DEFAULT_BASE_URL, DEFAULT_TIMEOUT, ClientConfig, RateSet

LATEST_ENDPOINT = "latest.json"
CENTS = Decimal("0.01")

log = logging.getLogger("oxrates.client")


def make_client(timeout: float, transport: httpx.BaseTransport | None = None) -> httpx.Client:
    return httpx.Client(
        timeout=timeout,
        transport=transport,
        headers={"User-Agent": "oxrates/1.0"},
    )


def build_params(app_id: str, base: str, symbols: tuple[str, ...]) -> dict[str, str]:
    """Query parameters for ``latest.json``.

    Without a base the provider default applies and symbols are not sent.
    """
    params: dict[str, str] = {"app_id": app_id}
    if not base:
        return params
    params["base"] = base
    if symbols:
        params["symbols"] = ",".join(symbols)
    return params


def round_amount(value: float) -> float:
    """Round to cents, halves away from zero. inf and nan pass through."""
    if not math.isfinite(value):
        return value
    amount = Decimal(str(value))
    with localcontext() as ctx:
        # quantize needs room for every integer digit plus the two decimals
        ctx.prec = max(ctx.prec, amount.adjusted() + 3)
        return float(amount.quantize(CENTS, rounding=ROUND_HALF_UP))


class RateClient:
    """Client for the Open Exchange Rates ``latest`` endpoint.

    Holds only its immutable config. Without an injected transport every call
    opens its own HTTP client; with one, a single long-lived ``httpx.Client``
    wraps it and is shared by all calls until :meth:`close`. Either way one
    instance can be used from several threads.
    """

    def __init__(
        self,
        app_id: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.config = ClientConfig(app_id=app_id, base_url=base_url, timeout=timeout)
        self._shared: httpx.Client | None = None
        if transport is not None:
            self._shared = make_client(timeout, transport)

    def __enter__(self) -> RateClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._shared is not None:
            self._shared.close()

    def fetch_rates(self, base: str = "", *symbols: str) -> RateSet:
        params = build_params(self.config.app_id, base, symbols)
        return self._call(LATEST_ENDPOINT, params)

    def latest_rates(self, base: str = "", *symbols: str) -> dict[str, float]:
        return dict(self.fetch_rates(base, *symbols).rates)

    def quote(self, from_currency: str, to: str) -> tuple[RateSet, float]:
        """Latest rate set for ``from_currency`` and its rate for ``to``."""
        rate_set = self.fetch_rates(from_currency)
        return rate_set, rate_set.rate_for(to)

    def convert_now(self, from_currency: str, to: str, amount: float) -> float:
        _, rate = self.quote(from_currency, to)
        return round_amount(amount * rate)

    def _url(self, endpoint: str) -> str:
        return f"{self.config.base_url.rstrip('/')}/{endpoint}"

    def _open(self) -> AbstractContextManager[httpx.Client]:
        if self._shared is not None:
            return nullcontext(self._shared)
        return make_client(self.config.timeout)

    def _call(self, endpoint: str, params: dict[str, str]) -> RateSet:
        url = self._url(endpoint)
        log.debug(
            "GET %s base=%s symbols=%s",
            url,
            params.get("base", "-"),
            params.get("symbols", "-"),
        )
        with self._open() as client:
            try:
                request = client.build_request("GET", url, params=params)
            except httpx.InvalidURL as e:
                raise MalformedRequestError("invalid request url", str(e)) from e
            try:
                response = client.send(request)
            except httpx.UnsupportedProtocol as e:
                raise MalformedRequestError("invalid request url", str(e)) from e
            except httpx.TimeoutException as e:
                raise TransportError("request timed out", str(e)) from e
            except httpx.RequestError as e:
                raise TransportError("request failed", str(e)) from e
        return self._decode(response)

    @staticmethod
    def _decode(response: httpx.Response) -> RateSet:
        body = response.content
        if response.status_code != 200:
            try:
                error_body = ApiErrorBody.model_validate_json(body)
            except ValidationError as e:
                log.warning("undecodable error body (HTTP %s)", response.status_code)
                raise DecodeError(
                    f"decode error body (HTTP {response.status_code})",
                    str(e),
                    status=response.status_code,
                ) from e
            err = ProviderError.from_body(error_body, response.status_code)
            log.warning("provider error %s: %s", err.status, err.message)
            raise err

        try:
            return RateSet.model_validate_json(body)
        except ValidationError as e:
            log.warning("undecodable rates body")
            raise DecodeError("decode rates body", str(e), status=response.status_code) from e
