"""
Centralized user-facing messages.

Every string a member or staff user sees is defined here so the wording
(Traditional Chinese) stays consistent. Messages never include internal
error details; those go to the log only.
"""

from utils.logging import get_logger

logger = get_logger(__name__)

ERROR_MESSAGES = {
    "PERMISSION": "❌ 你沒有權限使用此指令。",
    "CLOSE_DENIED": "❌ 你沒有權限關閉此工單。",
    "NOT_TICKET": "❌ 這不是工單頻道。",
    "ALREADY_CLOSED": "ℹ️ 此工單已經關閉。",
    "OPEN_TICKET_EXISTS": "❌ 你已經有一張未關閉工單：{channel_mention}",
    "UNKNOWN_CATEGORY": "❌ 無效的服務項目，請重新選擇。",
    "CREATION_FAILED": "❌ 建立工單失敗，請稍後再試。",
    "SITE_NOT_CONFIGURED": "❌ 會員系統尚未設定，請聯絡管理員。",
    "INVALID_EMAIL": "❌ Email 格式不正確，請重新輸入。",
    "SITE_REJECTED": "❌ 官網無法完成會員同步：{reason}",
    "SITE_UNAVAILABLE": "❌ 官網暫時無法連線，請稍後再試。",
    "NO_TIER": "❌ 目前的消費金額尚未達到任何會員等級。",
    "MEMBER_NOT_FOUND": "❌ 找不到你的伺服器成員資料。",
    "UNKNOWN": "❌ 發生錯誤，請稍後再試。",
}

SUCCESS_MESSAGES = {
    "TICKET_CREATED": "✅ 已建立工單：{channel_mention}",
    "TICKET_CLOSING": "✅ 正在關閉工單…",
    "TIER_APPLIED": "✅ 會員狀態已同步：{role_mention}（累積消費 {total_spent}）",
    "TIER_UNCHANGED": "✅ 會員狀態已是最新：{role_mention}（累積消費 {total_spent}）",
}

# Messages the bot posts inside ticket channels.
TICKET_NOTICES = {
    "CLOSE_WARNING": "⏰ 提醒：此工單將於約 **{minutes} 分鐘後** 自動關閉（無需再回覆可忽略）。",
    "TIMED_OUT": "⏳ 此工單已超時，系統將自動關閉。如需再協助請重新開票。",
    "CLOSED": "✅ 工單已關閉（由 {closed_by}）。",
    "CLOSED_BY_SYSTEM": "系統",
    "AUTO_DELETE": "🧹 此工單將自動刪除以保持整潔。",
}


def _render(table: dict[str, str], code: str, fallback: str, **kwargs) -> str:
    if code not in table:
        logger.warning(f"Unknown message code used: {code}")
    message = table.get(code, fallback)
    try:
        return message.format(**kwargs)
    except KeyError as e:
        # Missing placeholder values must not break the reply
        return message.replace("{" + str(e).strip("'") + "}", "???")


def format_user_error(code: str, **kwargs) -> str:
    """
    Format a user-facing error message for an error code.

    Examples:
        >>> format_user_error("OPEN_TICKET_EXISTS", channel_mention="<#1>")
        '❌ 你已經有一張未關閉工單：<#1>'
    """
    return _render(ERROR_MESSAGES, code, ERROR_MESSAGES["UNKNOWN"], **kwargs)


def format_user_success(code: str, **kwargs) -> str:
    return _render(SUCCESS_MESSAGES, code, "✅ 完成。", **kwargs)


def format_ticket_notice(code: str, **kwargs) -> str:
    return _render(TICKET_NOTICES, code, "", **kwargs)
