from __future__ import annotations

from dataclasses import dataclass

from .account_service import AccountDeps
from .config import AppConfig
from .credential_store import CredentialStore
from .document_store import JsonDocumentStore, UserDocumentRepository
from .rate_limit import LoginRateLimiter
from .session_store import SessionStore


@dataclass(frozen=True)
class AppContainer:
    config: AppConfig
    credentials: CredentialStore
    documents: UserDocumentRepository
    rate_limiter: LoginRateLimiter
    sessions: SessionStore

    def account_deps(self) -> AccountDeps:
        return AccountDeps(
            credentials=self.credentials,
            documents=self.documents,
            rate_limiter=self.rate_limiter,
            bcrypt_rounds=self.config.bcrypt_rounds,
        )


def build_app_container(*, config: AppConfig) -> AppContainer:
    return AppContainer(
        config=config,
        credentials=CredentialStore(config.users_file),
        documents=UserDocumentRepository(JsonDocumentStore(config.userdata_dir)),
        rate_limiter=LoginRateLimiter(
            limit=config.rate_limit.limit,
            window_sec=config.rate_limit.window_sec,
            max_buckets=config.rate_limit.max_buckets,
        ),
        sessions=SessionStore(
            max_age_sec=config.session_max_age_sec,
            max_sessions=config.session_max_entries,
        ),
    )
