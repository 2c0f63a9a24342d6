"""
Typed runtime settings.

Non-secret structure comes from ``config/config.yaml`` (see ConfigLoader);
secrets and deployment knobs come from the environment (``.env`` is loaded by
``bot.py`` through python-dotenv). Environment variables win over YAML.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from utils.errors import ConfigError
from utils.types import TierRule

MINUTE_MS = 60_000

# (tier name, role env var, threshold env var, default threshold), most exclusive first
DEFAULT_TIERS: tuple[tuple[str, str, str, float], ...] = (
    ("supreme", "ROLE_SUPREME_ID", "THRESHOLD_SUPREME", 10000.0),
    ("vip", "ROLE_VIP_ID", "THRESHOLD_VIP", 4000.0),
    ("member", "ROLE_MEMBER_ID", "THRESHOLD_MEMBER", 0.0),
)

MEMBERSHIP_MODES = ("push", "pull")


@dataclass(frozen=True)
class BotSettings:
    """Validated configuration shared by every service."""

    discord_token: str
    guild_id: int
    support_role_id: int
    ticket_category_id: int | None = None
    panel_logo_url: str | None = None
    guide_channel_id: int | None = None
    status_channel_id: int | None = None
    update_channel_id: int | None = None
    auto_close_minutes: int = 60
    auto_delete_after_close_minutes: int = 10
    close_warning_minutes: int = 5
    keep_alive_on_message: bool = False
    mirror_topic: bool = True
    web_host: str = "0.0.0.0"  # noqa: S104
    web_port: int = 8000
    api_secret: str | None = None
    tiers: tuple[TierRule, ...] = field(default_factory=tuple)
    site_base_url: str | None = None
    member_connect_path: str = "/member/connect"
    member_refresh_path: str = "/member/refresh"
    membership_mode: str = "push"
    site_timeout_seconds: int = 15
    database_path: str = "helpdesk.db"

    @property
    def auto_close_ms(self) -> int:
        return max(1, self.auto_close_minutes) * MINUTE_MS

    @property
    def auto_delete_ms(self) -> int:
        return max(0, self.auto_delete_after_close_minutes) * MINUTE_MS

    @property
    def close_warning_ms(self) -> int:
        return max(0, self.close_warning_minutes) * MINUTE_MS

    @property
    def tier_role_ids(self) -> list[int]:
        return [t.role_id for t in self.tiers if t.role_id]

    @property
    def info_channel_ids(self) -> dict[str, int | None]:
        return {
            "guide": self.guide_channel_id,
            "status": self.status_channel_id,
            "update": self.update_channel_id,
        }


def _section(config: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = config.get(name) or {}
    return value if isinstance(value, Mapping) else {}


def _pick(env: Mapping[str, str], env_key: str | None, fallback: Any) -> Any:
    if env_key:
        raw = env.get(env_key)
        if raw is not None and str(raw).strip() != "":
            return str(raw).strip()
    return fallback


def _as_int(
    value: Any, name: str, *, required: bool = False, default: int | None = None
) -> int | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ConfigError(f"Missing required setting: {name}")
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Setting {name} must be an integer, got {value!r}") from e


def _as_float(value: Any, name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Setting {name} must be a number, got {value!r}") from e


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def _load_tiers(config: Mapping[str, Any], env: Mapping[str, str]) -> tuple[TierRule, ...]:
    yaml_tiers = {
        str(t.get("name", "")).lower(): t
        for t in (config.get("tiers") or [])
        if isinstance(t, Mapping)
    }

    rules = []
    for name, role_env, threshold_env, default_threshold in DEFAULT_TIERS:
        yaml_tier = yaml_tiers.get(name, {})
        role_id = _as_int(
            _pick(env, role_env, yaml_tier.get("role_id")), f"tiers.{name}.role_id"
        )
        minimum = _as_float(
            _pick(env, threshold_env, yaml_tier.get("minimum_spend", default_threshold)),
            f"tiers.{name}.minimum_spend",
        )
        rules.append(TierRule(name=name, role_id=role_id, minimum_spend=minimum))

    for higher, lower in zip(rules, rules[1:]):
        if higher.minimum_spend <= lower.minimum_spend:
            raise ConfigError(
                f"Tier thresholds must be strictly decreasing: {higher.name} "
                f"({higher.minimum_spend}) <= {lower.name} ({lower.minimum_spend})"
            )
    return tuple(rules)


def load_settings(
    config: Mapping[str, Any] | None = None,
    env: Mapping[str, str] | None = None,
) -> BotSettings:
    """
    Build BotSettings from the YAML config dict and the environment.

    Raises:
        ConfigError: when a required value is missing or a value is malformed.
    """
    if config is None:
        from config.config_loader import ConfigLoader

        config = ConfigLoader.load_config()
    if env is None:
        env = os.environ

    discord_cfg = _section(config, "discord")
    tickets_cfg = _section(config, "tickets")
    panel_cfg = _section(config, "panel")
    web_cfg = _section(config, "web")
    site_cfg = _section(config, "site")
    membership_cfg = _section(config, "membership")
    db_cfg = _section(config, "database")

    token = _pick(env, "DISCORD_TOKEN", None)
    if not token:
        raise ConfigError("Missing required setting: DISCORD_TOKEN")

    mode = str(_pick(env, "MEMBERSHIP_MODE", membership_cfg.get("mode", "push"))).lower()
    if mode not in MEMBERSHIP_MODES:
        raise ConfigError(f"membership.mode must be one of {MEMBERSHIP_MODES}, got {mode!r}")

    site_base = _pick(env, "SITE_BASE_URL", site_cfg.get("base_url"))

    return BotSettings(
        discord_token=token,
        guild_id=_as_int(
            _pick(env, "GUILD_ID", discord_cfg.get("guild_id")), "GUILD_ID", required=True
        ),
        support_role_id=_as_int(
            _pick(env, "SUPPORT_ROLE_ID", discord_cfg.get("support_role_id")),
            "SUPPORT_ROLE_ID",
            required=True,
        ),
        ticket_category_id=_as_int(
            _pick(env, "TICKET_CATEGORY_ID", tickets_cfg.get("category_id")),
            "TICKET_CATEGORY_ID",
        ),
        panel_logo_url=_pick(env, "PANEL_LOGO_URL", panel_cfg.get("logo_url")) or None,
        guide_channel_id=_as_int(
            _pick(env, "GUIDE_CHANNEL_ID", panel_cfg.get("guide_channel_id")),
            "GUIDE_CHANNEL_ID",
        ),
        status_channel_id=_as_int(
            _pick(env, "STATUS_CHANNEL_ID", panel_cfg.get("status_channel_id")),
            "STATUS_CHANNEL_ID",
        ),
        update_channel_id=_as_int(
            _pick(env, "UPDATE_CHANNEL_ID", panel_cfg.get("update_channel_id")),
            "UPDATE_CHANNEL_ID",
        ),
        auto_close_minutes=_as_int(
            _pick(env, "AUTO_CLOSE_MINUTES", tickets_cfg.get("auto_close_minutes")),
            "AUTO_CLOSE_MINUTES",
            default=60,
        ),
        auto_delete_after_close_minutes=_as_int(
            _pick(
                env,
                "AUTO_DELETE_AFTER_CLOSE_MINUTES",
                tickets_cfg.get("auto_delete_after_close_minutes"),
            ),
            "AUTO_DELETE_AFTER_CLOSE_MINUTES",
            default=10,
        ),
        close_warning_minutes=_as_int(
            tickets_cfg.get("close_warning_minutes"), "tickets.close_warning_minutes", default=5
        ),
        keep_alive_on_message=_as_bool(
            _pick(env, "KEEP_ALIVE_ON_MESSAGE", tickets_cfg.get("keep_alive_on_message", False))
        ),
        mirror_topic=_as_bool(tickets_cfg.get("mirror_topic", True)),
        web_host=str(_pick(env, "WEB_HOST", web_cfg.get("host", "0.0.0.0"))),  # noqa: S104
        web_port=_as_int(_pick(env, "PORT", web_cfg.get("port")), "PORT", default=8000),
        api_secret=_pick(env, "API_SECRET", None),
        tiers=_load_tiers(config, env),
        site_base_url=site_base.rstrip("/") if site_base else None,
        member_connect_path=_pick(
            env, "MEMBER_CONNECT_PATH", site_cfg.get("connect_path", "/member/connect")
        ),
        member_refresh_path=_pick(
            env, "MEMBER_REFRESH_PATH", site_cfg.get("refresh_path", "/member/refresh")
        ),
        membership_mode=mode,
        site_timeout_seconds=_as_int(
            site_cfg.get("timeout_seconds"), "site.timeout_seconds", default=15
        ),
        database_path=_pick(env, "DATABASE_PATH", db_cfg.get("path", "helpdesk.db")),
    )
