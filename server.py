import logging

import uvicorn

from config import HOST, LOG_DIR, LOG_LEVEL, PORT
from mockprep.utils.logger_setup import setup_logging


def main() -> None:
    setup_logging(log_dir=LOG_DIR, console_level=LOG_LEVEL)
    log = logging.getLogger("mockprep")
    log.info("Starting MockPrep API on %s:%s", HOST, PORT)

    from mockprep.web.main import app

    uvicorn.run(app, host=HOST, port=PORT, log_config=None)


if __name__ == "__main__":
    main()
