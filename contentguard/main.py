import asyncio
import sys

from contentguard.config.settings import Settings
from contentguard.logging.logger import Log
from contentguard.service.service import build_service
from contentguard.worker.worker import Worker


def main() -> None:
    """Entry point: load settings -> build service -> run the message loop.

    Responses are written to stdout, so logs go to stderr.
    """
    settings = Settings()
    Log.configure(settings.log_level, stream=sys.stderr)

    service = build_service(settings)
    worker = Worker(service)
    try:
        asyncio.run(worker.run())
    except KeyboardInterrupt:
        Log.info("Interrupted, exiting")


if __name__ == "__main__":
    main()
