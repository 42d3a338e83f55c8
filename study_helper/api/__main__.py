from __future__ import annotations

import uvicorn

from . import settings as _settings


def main() -> None:
    uvicorn.run(
        "study_helper.api.app:create_app",
        factory=True,
        host=_settings.host(),
        port=_settings.port(),
        log_config=None,
    )


if __name__ == "__main__":
    main()
