import logging.config

from rich.console import Console
from rich.highlighter import ReprHighlighter
from rich.theme import Theme

from passbook.conf import Settings
from passbook.db import models


class PassbookHighlighter(ReprHighlighter):
    prefixes = (
        models.Entitlement.PK_PREFIX,
        models.Voucher.PK_PREFIX,
    )
    highlights = ReprHighlighter.highlights + [
        rf"(?P<passbook_id>(?:{'|'.join(prefixes)})(?:-\d{{4}})*)",
        r"(?P<voucher_code>\b[a-z][a-z0-9_]*-(?:\d+|[a-zA-Z]+\d+)-[0-9a-f]{8}(?:-[0-9a-f]{4}){3}-[0-9a-f]{12})",
    ]


console = Console(
    highlighter=PassbookHighlighter(),
    theme=Theme(
        {
            "repr.passbook_id": "bold light_salmon3",
            "repr.voucher_code": "bold medium_purple2",
        }
    ),
)


def get_logging_config(settings: Settings) -> dict:
    log_level = "DEBUG" if settings.debug else "INFO"
    handler = "rich" if settings.cli_rich_logging else "console"
    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "verbose": {
                "format": "{asctime} {name} {levelname} (pid: {process}) {message}",
                "style": "{",
            },
            "rich": {
                "format": "{name} {message}",
                "style": "{",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "verbose",
                "stream": "ext://sys.stderr",
            },
            "rich": {
                "class": "rich.logging.RichHandler",
                "level": log_level,
                "formatter": "rich",
                "console": console,
                "log_time_format": lambda x: x.strftime("%Y-%m-%d %H:%M:%S.%f")[:-3],
                "rich_tracebacks": True,
                "highlighter": PassbookHighlighter(),
            },
        },
        "root": {
            "handlers": [handler],
            "level": "WARNING",
        },
        "loggers": {
            "gunicorn.access": {
                "handlers": [handler],
                "level": log_level,
                "propagate": False,
            },
            "gunicorn.error": {
                "handlers": [handler],
                "level": log_level,
                "propagate": False,
            },
            "passbook": {
                "handlers": [handler],
                "level": log_level,
                "propagate": False,
            },
        },
    }

    return logging_config


def setup_logging(settings: Settings) -> None:
    logging_config = get_logging_config(settings)
    logging.config.dictConfig(logging_config)
