"""
Trade Journal — журнал сделок через вебхуки

Открытие сделки отправляет результат расчёта и метаданные (символ,
направление, заметки, время) одним исходящим POST. Только после успешной
отправки сделка добавляется в список открытых под сгенерированным id.
Закрытие отправляется в отдельный вебхук и удаляет сделку из списка тоже
только после успеха.

Сбой отправки поднимает JournalSinkError и не изменяет список открытых
сделок.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Literal, Optional

import aiohttp
from jsonschema import ValidationError as SchemaValidationError
from pydantic import BaseModel, Field

from src.core.contracts import validate_journal_entry
from src.core.domain.sizing import Direction, SizingResult, TradeInputs

logger = logging.getLogger(__name__)


DEFAULT_WEBHOOK_TIMEOUT_SEC = 10.0


class JournalSinkError(Exception):
    """Отправка в журнал не удалась."""

    pass


# =============================================================================
# MODELS
# =============================================================================


class JournalEntry(BaseModel):
    """Payload вебхука журнала (событие open или close)."""

    event: Literal["open", "close"]
    trade_id: str = Field(..., min_length=1)
    symbol: str = Field(..., min_length=1)
    direction: Direction
    ts_utc: datetime

    entry_price: Optional[float] = Field(None, gt=0)
    stop_loss_price: Optional[float] = Field(None, gt=0)
    exit_price: Optional[float] = Field(None, gt=0)
    risk_amount: Optional[float] = Field(None, gt=0)

    system_name: str = ""
    entry_pic_url: str = ""
    notes: str = ""

    sizing: Optional[dict[str, Any]] = None

    model_config = {"frozen": True}

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


@dataclass(frozen=True)
class OpenTrade:
    """Сделка, успешно записанная в журнал и ещё не закрытая."""

    trade_id: str
    symbol: str
    direction: Direction
    entry_price: float
    stop_loss_price: float
    risk_amount: float
    position_size: float
    opened_at: datetime
    system_name: str = ""
    notes: str = ""


# =============================================================================
# WEBHOOK SINK
# =============================================================================


class WebhookSink:
    """
    Одноразовый JSON POST на URL вебхука.

    Args:
        url: URL вебхука
        timeout: таймаут запроса (секунды)
        session: aiohttp сессия (опционально; иначе создаётся на каждый вызов)
    """

    def __init__(
        self,
        url: str,
        timeout: float = DEFAULT_WEBHOOK_TIMEOUT_SEC,
        session: aiohttp.ClientSession | None = None,
    ):
        if not url:
            raise ValueError("Webhook url is empty")
        self.url = url
        self.timeout = timeout
        self._session = session

    async def send(self, payload: dict[str, Any]) -> None:
        """
        Отправка payload.

        Raises:
            JournalSinkError: сетевая ошибка, таймаут или HTTP статус >= 400
        """
        try:
            if self._session is not None:
                await self._post(self._session, payload)
            else:
                async with aiohttp.ClientSession() as session:
                    await self._post(session, payload)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise JournalSinkError(f"Webhook {self.url} failed: {e!r}") from e

    async def _post(self, session: aiohttp.ClientSession, payload: dict[str, Any]) -> None:
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        async with session.post(self.url, json=payload, timeout=timeout) as resp:
            if resp.status >= 400:
                text = await resp.text()
                raise JournalSinkError(
                    f"Webhook {self.url} returned {resp.status}: {text[:200]}"
                )


# =============================================================================
# TRADE JOURNAL
# =============================================================================


class TradeJournal:
    """
    Список открытых сделок поверх двух вебхуков (open и close).

    Args:
        entry_sink: получатель событий открытия (объект с async send(payload))
        close_sink: получатель событий закрытия
    """

    def __init__(self, entry_sink: Any, close_sink: Any):
        self._entry_sink = entry_sink
        self._close_sink = close_sink
        self._open_trades: dict[str, OpenTrade] = {}

    @property
    def open_trades(self) -> dict[str, OpenTrade]:
        """Копия списка открытых сделок по id."""
        return dict(self._open_trades)

    async def open_trade(
        self,
        inputs: TradeInputs,
        result: SizingResult,
        symbol: str,
        notes: str = "",
        system_name: str = "",
        entry_pic_url: str = "",
        now: datetime | None = None,
    ) -> OpenTrade:
        """
        Запись открытия сделки в журнал.

        Returns:
            OpenTrade, добавленная в список открытых

        Raises:
            JournalSinkError: payload не прошёл контракт или отправка не удалась
        """
        trade_id = uuid.uuid4().hex
        opened_at = now or datetime.now(timezone.utc)

        entry = JournalEntry(
            event="open",
            trade_id=trade_id,
            symbol=symbol,
            direction=result.direction,
            ts_utc=opened_at,
            entry_price=inputs.entry_price,
            stop_loss_price=inputs.stop_loss_price,
            risk_amount=inputs.risk_amount,
            system_name=system_name,
            entry_pic_url=entry_pic_url,
            notes=notes,
            sizing=result.to_payload(),
        )
        await self._submit(self._entry_sink, entry)

        trade = OpenTrade(
            trade_id=trade_id,
            symbol=symbol,
            direction=result.direction,
            entry_price=inputs.entry_price,
            stop_loss_price=inputs.stop_loss_price,
            risk_amount=inputs.risk_amount,
            position_size=result.position_size,
            opened_at=opened_at,
            system_name=system_name,
            notes=notes,
        )
        self._open_trades[trade_id] = trade
        logger.info(
            "Journaled %s %s trade %s, size %s",
            trade.direction.value,
            symbol,
            trade_id,
            result.position_size,
        )
        return trade

    async def close_trade(
        self,
        trade_id: str,
        exit_price: float | None = None,
        notes: str = "",
        now: datetime | None = None,
    ) -> OpenTrade:
        """
        Запись закрытия сделки в журнал.

        Returns:
            Закрытая OpenTrade (удалена из списка открытых)

        Raises:
            KeyError: сделка с таким id не открыта
            JournalSinkError: отправка не удалась (сделка остаётся открытой)
        """
        trade = self._open_trades.get(trade_id)
        if trade is None:
            raise KeyError(f"No open trade with id {trade_id}")

        entry = JournalEntry(
            event="close",
            trade_id=trade_id,
            symbol=trade.symbol,
            direction=trade.direction,
            ts_utc=now or datetime.now(timezone.utc),
            exit_price=exit_price,
            notes=notes,
        )
        await self._submit(self._close_sink, entry)

        del self._open_trades[trade_id]
        logger.info("Closed %s trade %s", trade.symbol, trade_id)
        return trade

    async def _submit(self, sink: Any, entry: JournalEntry) -> None:
        payload = entry.to_payload()
        try:
            validate_journal_entry(payload)
        except SchemaValidationError as e:
            logger.error("Journal %s payload rejected by contract: %s", entry.event, e.message)
            raise JournalSinkError(f"Invalid journal payload: {e.message}") from e

        try:
            await sink.send(payload)
        except JournalSinkError:
            logger.error("Journal %s submission failed for %s", entry.event, entry.trade_id)
            raise
