"""Currency rates HTTP client for display-only conversion"""

import httpx
from decimal import Decimal, InvalidOperation
from finance_tracker.domain.exceptions import RatesAPIError
from finance_tracker.config import settings


class RatesClient:
    """Client for the external exchange-rate API"""

    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self.base_url = base_url or settings.rates_api_base
        self.timeout = timeout or settings.http_timeout_seconds

    async def get_rate(self, base_currency: str, target_currency: str) -> Decimal:
        """
        Fetch the multiplier converting base_currency amounts to target_currency.

        Raises:
            RatesAPIError: On timeout, HTTP errors, or a missing/invalid rate
        """
        base = base_currency.upper()
        target = target_currency.upper()
        if base == target:
            return Decimal(1)

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.get(f"{self.base_url}/{base}")
                response.raise_for_status()
                data = response.json()
                rate = Decimal(str(data["rates"][target]))

            except httpx.TimeoutException as e:
                raise RatesAPIError(f"Rates API timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise RatesAPIError(f"Rates API error: {e.response.status_code}") from e
            except KeyError as e:
                raise RatesAPIError(f"No rate published for {target}") from e
            except (ValueError, TypeError, InvalidOperation) as e:
                raise RatesAPIError(f"Invalid rate data: {e}") from e

        if rate <= 0:
            raise RatesAPIError(f"Invalid rate for {target}: {rate}")
        return rate
