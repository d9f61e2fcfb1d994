"""Runtime configuration read from the environment.

Required (the service refuses to start without them):
    LEDGER_MIRROR_URL   base URL of the ledger query (mirror) API
    LEDGER_GATEWAY_URL  base URL of the submission gateway
    TOPIC_ID            ledger topic holding the scores, e.g. 0.0.4567
    OPERATOR_ID         account that pays for submissions, e.g. 0.0.1234
    OPERATOR_KEY        write credential for OPERATOR_ID

Everything else has a default; see Settings.
"""
import os
import re
from enum import Enum

from typeboard.domain.errors import ConfigurationError
from typeboard.domain.score import NamePolicy, ScoreLimits

_ENTITY_ID_RE = re.compile(r"^\d+\.\d+\.\d+$")

REQUIRED_VARS = (
    "LEDGER_MIRROR_URL",
    "LEDGER_GATEWAY_URL",
    "TOPIC_ID",
    "OPERATOR_ID",
    "OPERATOR_KEY",
)


class LeaderboardMode(str, Enum):
    CACHED = "cached"        # local JSON cache is the read model
    STATELESS = "stateless"  # every read goes to the ledger


class Settings:
    """Validated configuration. Build with load_settings() or directly in tests."""

    def __init__(
        self,
        mirror_url: str,
        gateway_url: str,
        topic_id: str,
        operator_id: str,
        operator_key: str,
        mode: LeaderboardMode = LeaderboardMode.CACHED,
        limits: ScoreLimits | None = None,
        scores_file: str = "data/scores.json",
        response_limit: int = 1000,
        fetch_cap: int = 2000,
        page_size: int = 100,
        ledger_timeout: float = 10.0,
        confirm_timeout: float = 30.0,
        read_retries: int = 2,
        allowed_origins: list | None = None,
        admin_token: str = "",
        log_level: str = "INFO",
    ):
        self.mirror_url = mirror_url.rstrip("/")
        self.gateway_url = gateway_url.rstrip("/")
        self.topic_id = topic_id
        self.operator_id = operator_id
        self.operator_key = operator_key
        self.mode = LeaderboardMode(mode)
        self.limits = limits or ScoreLimits()
        self.scores_file = scores_file
        self.response_limit = response_limit
        self.fetch_cap = fetch_cap
        self.page_size = page_size
        self.ledger_timeout = ledger_timeout
        self.confirm_timeout = confirm_timeout
        self.read_retries = read_retries
        self.allowed_origins = allowed_origins or ["*"]
        self.admin_token = admin_token
        self.log_level = log_level

    def describe(self) -> dict:
        """Safe-to-log summary (no credentials)."""
        return {
            "mode": self.mode.value,
            "mirror_url": self.mirror_url,
            "gateway_url": self.gateway_url,
            "topic_id": self.topic_id,
            "operator_id": self.operator_id,
            "name_policy": self.limits.name_policy.value,
            "scores_file": self.scores_file,
        }


def _read_int(env, key: str, default: int, problems: list) -> int:
    raw = env.get(key, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        problems.append(f"{key} must be an integer (got {raw!r})")
        return default
    if value < 0:
        problems.append(f"{key} must not be negative")
    return value


def _read_float(env, key: str, default: float, problems: list) -> float:
    raw = env.get(key, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        problems.append(f"{key} must be a number (got {raw!r})")
        return default
    if value <= 0:
        problems.append(f"{key} must be greater than zero")
    return value


def _read_enum(env, key: str, enum_cls, default, problems: list):
    raw = env.get(key, "").strip().lower()
    if not raw:
        return default
    try:
        return enum_cls(raw)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        problems.append(f"{key} must be one of: {allowed} (got {raw!r})")
        return default


def load_settings(env=None) -> Settings:
    """
    Parse the environment into Settings.
    Collects every problem and raises a single ConfigurationError listing them,
    so a misconfigured deployment never runs against a default ledger target.
    """
    env = os.environ if env is None else env
    problems = []

    required = {key: env.get(key, "").strip() for key in REQUIRED_VARS}
    missing = [key for key, value in required.items() if not value]
    if missing:
        problems.append("missing required variables: " + ", ".join(missing))

    for key in ("TOPIC_ID", "OPERATOR_ID"):
        value = required[key]
        if value and not _ENTITY_ID_RE.match(value):
            problems.append(f"{key} must look like 'shard.realm.num' (got {value!r})")

    for key in ("LEDGER_MIRROR_URL", "LEDGER_GATEWAY_URL"):
        value = required[key]
        if value and not value.startswith(("http://", "https://")):
            problems.append(f"{key} must be an http(s) URL")

    limits = ScoreLimits(
        name_max_length=_read_int(env, "NAME_MAX_LENGTH", 24, problems),
        wpm_max=_read_int(env, "WPM_MAX", 2000, problems),
        mistakes_max=_read_int(env, "MISTAKES_MAX", 10000, problems),
        cpm_max=_read_int(env, "CPM_MAX", 20000, problems),
        name_policy=_read_enum(env, "NAME_POLICY", NamePolicy, NamePolicy.STRICT, problems),
    )
    mode = _read_enum(env, "LEADERBOARD_MODE", LeaderboardMode, LeaderboardMode.CACHED, problems)

    allowed = env.get("ALLOWED_ORIGINS", "").strip()
    origins = [o.strip() for o in allowed.split(",") if o.strip()] if allowed else ["*"]

    settings_kwargs = dict(
        mode=mode,
        limits=limits,
        scores_file=env.get("SCORES_FILE", "").strip() or "data/scores.json",
        response_limit=_read_int(env, "SCORES_RESPONSE_LIMIT", 1000, problems),
        fetch_cap=_read_int(env, "LEDGER_FETCH_CAP", 2000, problems),
        page_size=_read_int(env, "LEDGER_PAGE_SIZE", 100, problems),
        ledger_timeout=_read_float(env, "LEDGER_TIMEOUT", 10.0, problems),
        confirm_timeout=_read_float(env, "LEDGER_CONFIRM_TIMEOUT", 30.0, problems),
        read_retries=_read_int(env, "LEDGER_READ_RETRIES", 2, problems),
        allowed_origins=origins,
        admin_token=env.get("ADMIN_TOKEN", "").strip(),
        log_level=env.get("LOG_LEVEL", "").strip().upper() or "INFO",
    )

    if problems:
        raise ConfigurationError("Invalid configuration: " + "; ".join(problems))

    return Settings(
        mirror_url=required["LEDGER_MIRROR_URL"],
        gateway_url=required["LEDGER_GATEWAY_URL"],
        topic_id=required["TOPIC_ID"],
        operator_id=required["OPERATOR_ID"],
        operator_key=required["OPERATOR_KEY"],
        **settings_kwargs,
    )
