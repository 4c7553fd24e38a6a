"""
Trade Journal — запись открытых и закрытых сделок во внешний журнал.
"""

from src.journal.trade_journal import (
    JournalEntry,
    JournalSinkError,
    OpenTrade,
    TradeJournal,
    WebhookSink,
)

__all__ = [
    "JournalEntry",
    "JournalSinkError",
    "OpenTrade",
    "TradeJournal",
    "WebhookSink",
]
