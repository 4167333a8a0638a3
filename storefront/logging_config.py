import json
import logging
import sys
import traceback
from datetime import datetime, timezone

# Дополнительные поля, которые передаются через extra=
EXTRA_FIELDS = ("user_id", "table", "status_code", "product_id", "order_id")


class JSONFormatter(logging.Formatter):
    def __init__(self, app_name: str):
        super().__init__()
        self.app_name = app_name

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "app": self.app_name,
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "module": record.module,
            "func": record.funcName,
            "line": record.lineno,
        }

        for name in EXTRA_FIELDS:
            if hasattr(record, name):
                log_obj[name] = getattr(record, name)

        if record.exc_info:
            log_obj["exception"] = "".join(traceback.format_exception(*record.exc_info))

        return json.dumps(log_obj, ensure_ascii=False)


def setup_logging(app_name: str, level: str = "INFO", json_output: bool = False):
    logger = logging.getLogger()
    logger.setLevel(level.upper())

    # повторный запуск скрипта Streamlit не должен плодить хендлеры
    if logger.handlers:
        logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    if json_output:
        handler.setFormatter(JSONFormatter(app_name))
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
        )
    logger.addHandler(handler)

    # httpx логирует каждый запрос на INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    return logging.getLogger(app_name)
