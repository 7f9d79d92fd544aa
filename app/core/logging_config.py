"""
Root logging setup.

Anything passed through ``extra=`` (posting ids, admin emails, ...) is
rendered after the message as ``| key=value`` pairs.
"""
import logging
import logging.config

# Attributes every LogRecord carries; whatever else is on a record came from `extra`
RESERVED_ATTRS = frozenset(vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))) | {
    "message", "asctime", "color_message",
}

QUIET_LOGGERS = ("botocore", "boto3", "urllib3", "httpx")


class KeyValueFormatter(logging.Formatter):

    def format(self, record):
        line = super().format(record)
        extras = sorted((k, v) for k, v in vars(record).items() if k not in RESERVED_ATTRS)
        if not extras:
            return line
        return line + " | " + " ".join(f"{k}={v}" for k, v in extras)


def configure_logging(level: str = "INFO"):
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "kv": {
                "()": KeyValueFormatter,
                "fmt": "[%(levelname)s] %(asctime)s %(name)s - %(message)s",
                "datefmt": "%H:%M:%S",
            },
        },
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "formatter": "kv",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
        "root": {"level": level.upper(), "handlers": ["stdout"]},
    })
