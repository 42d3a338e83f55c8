from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, Optional

from . import settings as _settings
from .auth_secret_bootstrap import ensure_session_secret, validate_session_secret

APP_ROOT = Path(__file__).resolve().parents[2]


@dataclass(frozen=True)
class RateLimitConfig:
    limit: int = 5
    window_sec: float = 60.0
    max_buckets: int = 4096
    trust_x_forwarded_for: bool = False
    trusted_proxy_ips: FrozenSet[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class AppConfig:
    data_dir: Path
    session_secret: str
    session_cookie_name: str = "study_session"
    session_max_age_sec: int = 86400
    session_cookie_secure: bool = False
    session_max_entries: int = 10000
    bcrypt_rounds: int = 10
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)

    def __post_init__(self) -> None:
        validate_session_secret(self.session_secret)

    @property
    def users_file(self) -> Path:
        return self.data_dir / "users.json"

    @property
    def userdata_dir(self) -> Path:
        return self.data_dir / "userdata"

    @classmethod
    def from_env(cls, *, data_dir: Optional[Path] = None) -> "AppConfig":
        secret = ensure_session_secret()
        resolved_dir = Path(data_dir or _settings.data_dir() or (APP_ROOT / "data"))
        trusted = frozenset(
            item.strip()
            for item in _settings.login_trusted_proxy_ips().split(",")
            if item.strip()
        )
        return cls(
            data_dir=resolved_dir,
            session_secret=secret,
            session_cookie_name=_settings.session_cookie_name(),
            session_max_age_sec=_settings.session_max_age_sec(),
            session_cookie_secure=_settings.session_cookie_secure(),
            session_max_entries=_settings.session_max_entries(),
            bcrypt_rounds=_settings.bcrypt_rounds(),
            rate_limit=RateLimitConfig(
                limit=_settings.login_rate_limit(),
                window_sec=float(_settings.login_rate_window_sec()),
                max_buckets=_settings.login_rate_max_buckets(),
                trust_x_forwarded_for=_settings.login_trust_x_forwarded_for(),
                trusted_proxy_ips=trusted,
            ),
        )
