from __future__ import annotations

import logging
import os

_log = logging.getLogger(__name__)


def truthy(value: str) -> bool:
    return str(value or "").strip().lower() in {"1", "true", "yes", "on"}


def env_str(name: str, default: str = "") -> str:
    return str(os.getenv(name, default) or default)


def env_int(name: str, default: int) -> int:
    try:
        return int(env_str(name, str(default)) or default)
    except Exception:
        _log.debug("numeric conversion failed", exc_info=True)
        return int(default)


def env_bool(name: str, default: str = "") -> bool:
    return truthy(env_str(name, default))


def data_dir() -> str:
    return env_str("DATA_DIR", "")


def session_cookie_name() -> str:
    return env_str("SESSION_COOKIE_NAME", "study_session").strip() or "study_session"


def session_max_age_sec() -> int:
    return max(300, env_int("SESSION_MAX_AGE_SEC", 86400))


def session_cookie_secure() -> bool:
    return env_bool("SESSION_COOKIE_SECURE", "")


def session_max_entries() -> int:
    return max(1, env_int("SESSION_MAX_ENTRIES", 10000))


def login_rate_limit() -> int:
    return max(1, env_int("LOGIN_RATE_LIMIT", 5))


def login_rate_window_sec() -> int:
    return max(1, env_int("LOGIN_RATE_WINDOW_SEC", 60))


def login_rate_max_buckets() -> int:
    return max(1, env_int("LOGIN_RATE_MAX_BUCKETS", 4096))


def login_trust_x_forwarded_for() -> bool:
    return env_bool("LOGIN_TRUST_X_FORWARDED_FOR", "")


def login_trusted_proxy_ips() -> str:
    return env_str("LOGIN_TRUSTED_PROXY_IPS", "")


def bcrypt_rounds() -> int:
    # bcrypt accepts 4..31; 10 matches the cost used for existing hashes
    return min(31, max(4, env_int("BCRYPT_ROUNDS", 10)))


def log_format() -> str:
    return env_str("LOG_FORMAT", "text").strip().lower()


def log_level() -> str:
    return env_str("LOG_LEVEL", "INFO").strip().upper()


def host() -> str:
    return env_str("HOST", "127.0.0.1").strip() or "127.0.0.1"


def port() -> int:
    return env_int("PORT", 3000)
