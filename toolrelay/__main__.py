"""Run the relay server: ``python -m toolrelay``."""
import uvicorn

from toolrelay.config import settings
from toolrelay.main import configure_logging


def main() -> None:
    configure_logging(settings.log_level)
    uvicorn.run(
        "toolrelay.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
