"""
Embed Helper Module

Builds the panel, ticket intro and member-panel embeds with consistent
styling, plus the site URLs the member panel links to.
"""

from __future__ import annotations

from urllib.parse import quote

import discord

from config.settings import BotSettings
from helpers.constants import ticket_label
from utils.logging import get_logger

logger = get_logger(__name__)

PANEL_COLOR = 0x5865F2
TICKET_COLOR = 0x2ECC71
MEMBER_COLOR = 0xF1C40F

NOT_CONFIGURED = "（未設定）"

_INFO_LINES = (
    ("guide", "💰 **購買方式**"),
    ("status", "🚦 **輔助狀態**"),
    ("update", "📢 **更新公告**"),
)


def create_embed(
    title: str,
    description: str,
    color: int = PANEL_COLOR,
    thumbnail_url: str | None = None,
) -> discord.Embed:
    """
    Creates a Discord embed with the given parameters.

    Args:
        title: The title of the embed.
        description: The description/content of the embed.
        color: The color of the embed in hexadecimal.
        thumbnail_url: Optional thumbnail, usually the configured panel logo.
    """
    embed = discord.Embed(title=title, description=description, color=color)
    if thumbnail_url:
        embed.set_thumbnail(url=thumbnail_url)
    return embed


def _channel_mention(channel_id: int | None) -> str | None:
    return f"<#{channel_id}>" if channel_id else None


def guide_links(settings: BotSettings) -> str | None:
    """Info-channel lines for configured channels only, or None when none are set."""
    channels = settings.info_channel_ids
    lines = [
        f"{label}：{_channel_mention(channels[key])}"
        for key, label in _INFO_LINES
        if channels[key]
    ]
    return "\n".join(lines) if lines else None


def create_ticket_panel_embed(settings: BotSettings) -> discord.Embed:
    channels = settings.info_channel_ids
    lines = ["請在下方選擇服務項目，系統將自動建立客服工單頻道。"]
    for key, label in _INFO_LINES:
        lines.extend(["", f"{label}：{_channel_mention(channels[key]) or NOT_CONFIGURED}"])
    return create_embed(
        "客服服務｜專人處理", "\n".join(lines), PANEL_COLOR, settings.panel_logo_url
    )


def create_ticket_intro_embed(settings: BotSettings, category: str) -> discord.Embed:
    """Intro posted as the first message of a new ticket channel."""
    minutes = settings.auto_close_ms // 60_000
    lines = [
        "請依序提供以下資訊，客服會更快處理：",
        "1) 訂單編號（或付款資訊）",
        "",
        "2) 問題截圖/錄影（如有）",
        "",
        "3) 你的需求描述（越清楚越好）",
        "",
        f"⏱️ **{minutes} 分鐘**內若未完成處理，系統會自動關閉工單。",
    ]
    links = guide_links(settings)
    if links:
        lines.extend(["", links])
    return create_embed(
        f"客服工單：{ticket_label(category, default=category)}",
        "\n".join(lines),
        TICKET_COLOR,
        settings.panel_logo_url,
    )


def create_member_panel_embed(settings: BotSettings) -> discord.Embed:
    if settings.membership_mode == "pull":
        description = (
            "請點擊下方【綁定會員】輸入官網 Email 連接會員，"
            "或按【更新會員狀態】同步你的身分組。"
        )
    else:
        description = "請點擊下方【獲取會員】連接官網會員，或按【更新會員狀態】同步你的身分組。"
    return create_embed(
        "會員系統｜自助領取/更新", description, MEMBER_COLOR, settings.panel_logo_url
    )


def build_site_url(base_url: str | None, path: str | None, user_id: int | None = None) -> str:
    """
    Join the site base with a path, optionally tagging the Discord user.

    Examples:
        >>> build_site_url("https://shop.example/", "member/connect", 42)
        'https://shop.example/member/connect?discordUserId=42'
    """
    base = (base_url or "").rstrip("/")
    path = path or ""
    if not path.startswith("/"):
        path = f"/{path}"
    url = f"{base}{path}"
    if not user_id:
        return url
    join_char = "&" if "?" in url else "?"
    return f"{url}{join_char}discordUserId={quote(str(user_id))}"
