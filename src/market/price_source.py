"""
Price Source — живая цена инструмента для поля входа

Цена берётся из стакана Bybit v5 (limit=1): лучшая цена ask, по которой
исполняется рыночный вход. Спотовые символы запрашиваются в категории
spot, бессрочные (суффикс PERP) — в категории linear без суффикса.

Любой сбой (сеть, retCode != 0, пустая сторона ask, нечисловая цена)
поднимает PriceSourceError. Нулевая цена по умолчанию не возвращается.
"""

import logging
from dataclasses import dataclass
from typing import Any, Final

from pybit.exceptions import FailedRequestError, InvalidRequestError
from pybit.unified_trading import HTTP

from src.core.math.numerical_safeguards import parse_finite

logger = logging.getLogger(__name__)


PERP_SUFFIX: Final[str] = "PERP"
CATEGORY_SPOT: Final[str] = "spot"
CATEGORY_LINEAR: Final[str] = "linear"


# =============================================================================
# INSTRUMENTS
# =============================================================================


@dataclass(frozen=True)
class Instrument:
    """Инструмент из списка выбора."""

    symbol: str
    name: str

    @property
    def is_perpetual(self) -> bool:
        return self.symbol.endswith(PERP_SUFFIX)


INSTRUMENTS: Final[tuple[Instrument, ...]] = (
    # Spot
    Instrument("BTCUSDT", "Bitcoin (BTC)"),
    Instrument("ETHUSDT", "Ethereum (ETH)"),
    Instrument("SOLUSDT", "Solana (SOL)"),
    Instrument("BNBUSDT", "Binance Coin (BNB)"),
    Instrument("XRPUSDT", "Ripple (XRP)"),
    Instrument("ADAUSDT", "Cardano (ADA)"),
    Instrument("DOGEUSDT", "Dogecoin (DOGE)"),
    Instrument("DOTUSDT", "Polkadot (DOT)"),
    # Perpetual
    Instrument("BTCUSDTPERP", "Bitcoin Perp (BTC/USDTP)"),
    Instrument("ETHUSDTPERP", "Ethereum Perp (ETH/USDTP)"),
    Instrument("SOLUSDTPERP", "Solana Perp (SOL/USDTP)"),
)

DEFAULT_SYMBOL: Final[str] = "BTCUSDT"


def find_instrument(symbol: str) -> Instrument | None:
    for instrument in INSTRUMENTS:
        if instrument.symbol == symbol:
            return instrument
    return None


def resolve_market(symbol: str) -> tuple[str, str]:
    """
    Категория Bybit и символ API для символа из списка.

    Examples:
        >>> resolve_market("BTCUSDT")
        ('spot', 'BTCUSDT')
        >>> resolve_market("ETHUSDTPERP")
        ('linear', 'ETHUSDT')
    """
    if not symbol:
        raise ValueError("symbol is empty")

    if symbol.endswith(PERP_SUFFIX):
        return CATEGORY_LINEAR, symbol[: -len(PERP_SUFFIX)]
    return CATEGORY_SPOT, symbol


# =============================================================================
# EXCEPTIONS
# =============================================================================


class PriceSourceError(Exception):
    """Цену получить не удалось. Содержит символ и причину."""

    def __init__(self, symbol: str, reason: str):
        super().__init__(f"Failed to fetch price for {symbol}: {reason}")
        self.symbol = symbol
        self.reason = reason


# =============================================================================
# BYBIT PRICE SOURCE
# =============================================================================


class BybitPriceSource:
    """
    Лучшая цена ask из стакана Bybit (публичный эндпоинт, без ключей).

    Args:
        session: pybit HTTP сессия (по умолчанию создаётся публичная)
        testnet: использовать testnet при создании сессии
    """

    def __init__(self, session: Any = None, testnet: bool = False):
        self._session = session if session is not None else HTTP(testnet=testnet)

    def get_best_ask(self, symbol: str) -> float:
        """
        Лучшая цена ask для символа.

        Raises:
            PriceSourceError: при любом сбое запроса или разбора ответа
        """
        category, api_symbol = resolve_market(symbol)

        try:
            response = self._session.get_orderbook(
                category=category,
                symbol=api_symbol,
                limit=1,
            )
        except (FailedRequestError, InvalidRequestError) as e:
            logger.warning("Bybit orderbook request failed for %s: %s", symbol, e)
            raise PriceSourceError(symbol, f"Bybit API error: {e}") from e
        except OSError as e:
            # Сетевые ошибки requests наследуют OSError
            logger.warning("Error connecting to Bybit API for %s: %s", symbol, e)
            raise PriceSourceError(symbol, f"connection error: {e}") from e

        return self._parse_best_ask(symbol, response)

    @staticmethod
    def _parse_best_ask(symbol: str, response: Any) -> float:
        if isinstance(response, tuple):
            response = response[0]

        if not isinstance(response, dict):
            raise PriceSourceError(symbol, "malformed response")

        if response.get("retCode") != 0:
            raise PriceSourceError(
                symbol,
                f"retCode={response.get('retCode')} retMsg={response.get('retMsg')}",
            )

        result = response.get("result") or {}
        asks = result.get("a") or []
        if not asks or not asks[0]:
            raise PriceSourceError(symbol, "no ask price in orderbook")

        try:
            price = parse_finite(asks[0][0], "ask_price")
        except ValueError as e:
            raise PriceSourceError(symbol, str(e)) from e

        if price <= 0:
            raise PriceSourceError(symbol, f"non-positive ask price {price}")

        return price
