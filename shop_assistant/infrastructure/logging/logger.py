import json
import logging
from pathlib import Path
from datetime import datetime, timezone
from typing import Optional

from shop_assistant.config.settings import settings

LOG_FILE_NAME = "shop_assistant.log"


class JsonFormatter(logging.Formatter):
    """每条记录一行 JSON；extra={"extra": {...}} 中的字段平铺到顶层。"""

    def __init__(self, redact: bool = False):
        super().__init__()
        self.redact = redact

    def format(self, record: logging.LogRecord) -> str:
        msg = record.getMessage()
        if self.redact:
            msg = (msg or "")[:64]
        payload = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "name": record.name,
            "msg": msg,
        }
        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            payload.update(extra)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logger(log_dir: Optional[str] = None, redact: Optional[bool] = None) -> logging.Logger:
    """配置 shop_assistant 日志器；同一个日志文件只挂一个 handler。"""

    logger = logging.getLogger("shop_assistant")
    logger.setLevel(logging.INFO)
    path = Path(log_dir or settings.log_dir)
    path.mkdir(parents=True, exist_ok=True)
    target = str((path / LOG_FILE_NAME).resolve())
    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == target:
            return logger
    fh = logging.FileHandler(target, encoding="utf-8")
    fh.setLevel(logging.INFO)
    fh.setFormatter(JsonFormatter(settings.log_redact_content if redact is None else redact))
    logger.addHandler(fh)
    return logger


logger = setup_logger()


def log_event(level: int, message: str, log_ctx: dict, **fields) -> None:
    """把上下文字段与本次字段合并后写入结构化日志。"""

    payload = dict(log_ctx)
    payload.update(fields)
    logger.log(level, message, extra={"extra": payload})
