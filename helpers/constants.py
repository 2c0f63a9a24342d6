"""Shared constants for the Discord surface."""

from typing import NamedTuple

from utils.types import TicketCategory

# Persistent component ids; views re-registered on start-up must reuse them.
TICKET_SELECT_ID = "ticket_select"
TICKET_CLOSE_ID = "ticket_close"
MEMBER_BIND_ID = "member_bind"
MEMBER_REFRESH_ID = "member_refresh"

TICKET_CHANNEL_PREFIX = "ticket-"
TICKET_NAME_MAX_CHARS = 10


class TicketOption(NamedTuple):
    category: TicketCategory
    label: str
    description: str
    emoji: str | None = None


TICKET_OPTIONS: tuple[TicketOption, ...] = (
    TicketOption(TicketCategory.PRE_SALE, "售前問題", "購買/付款/商品諮詢等", "🛒"),
    TicketOption(TicketCategory.AFTER_SALE, "售後問題", "商品使用/遠端/售後問題", "🛠️"),
    TicketOption(TicketCategory.ORDER_PICKUP, "訂單領取", "訂單領取卡密/檔案", "📦"),
    TicketOption(TicketCategory.UNBIND, "卡密解綁", "更換設備/重灌需解綁", "🔓"),
    TicketOption(TicketCategory.TUNING, "參數調整服務", "AI自瞄參數調整(需先購買)", "🎯"),
    TicketOption(TicketCategory.DECODE, "人工解碼服務", "解機碼/人工處理", "🔑"),
)

TICKET_OPTION_BY_VALUE = {opt.category.value: opt for opt in TICKET_OPTIONS}


def ticket_label(category: str | None, default: str | None = None) -> str:
    option = TICKET_OPTION_BY_VALUE.get(category or "")
    if option:
        return option.label
    return default or "客服"
