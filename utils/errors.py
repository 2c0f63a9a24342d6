"""
Exception hierarchy for the help-desk bot.

ValidationError and NotFoundError map to 4xx responses on the sync API;
ExternalCallFailure covers calls to Discord or the shop that did not succeed.
"""


class BotError(Exception):
    """Base exception for bot-related errors."""

    pass


class ConfigError(BotError):
    """Missing or malformed configuration; raised once at start-up."""

    pass


class ValidationError(BotError):
    """Missing or malformed request input; surfaced to the caller as a 4xx."""

    pass


class NotFoundError(BotError):
    """A member, channel or ticket that the request refers to does not exist."""

    pass


class ExternalCallFailure(BotError):
    """A Discord mutation or outbound HTTP call failed."""

    pass


class NoTierMatchedError(ValidationError):
    """No configured tier role matches the given spend amount."""

    def __init__(self, total_spent: float) -> None:
        super().__init__(f"no tier role matched for total spent {total_spent}")
        self.total_spent = total_spent


class MemberNotFoundError(NotFoundError):
    """The member is not part of the configured guild."""

    def __init__(self, member_id: int | str) -> None:
        super().__init__(f"member {member_id} not found in guild")
        self.member_id = member_id


class SiteAPIError(ExternalCallFailure):
    """The e-commerce site rejected or failed a membership call."""

    def __init__(self, message: str, status: int | None = None, body=None) -> None:
        super().__init__(message)
        self.status = status
        self.body = body
