import json
import logging
import logging.handlers
import os
import socket
import sys
from copy import deepcopy

from jsonformatter import JsonFormatter
from values import tmp_volume_mount_path

logged_logger_name = "SidecarMounter"
logger = None


class ExtraFormatter(logging.Formatter):
    dummy = logging.LogRecord(None, None, None, None, None, None, None)
    ignored_extras = [
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    ]

    def format(self, record):
        extra_txt = ""
        for k, v in record.__dict__.items():
            if k not in self.dummy.__dict__ and k not in self.ignored_extras:
                extra_txt += " --- {}={}".format(k, v)
        message = super().format(record)
        return message + extra_txt


# Translate level to int
def get_level(level_str):
    if type(level_str) == int:
        return level_str
    elif level_str.upper() in logging._nameToLevel.keys():
        return logging._nameToLevel[level_str.upper()]
    elif level_str.upper().startswith("DEACTIVATE"):
        return 99
    else:
        try:
            return int(level_str)
        except ValueError:
            pass
    raise NotImplementedError(f"{level_str} as level not supported.")


supported_handler_classes = {
    "stream": logging.StreamHandler,
    "file": logging.handlers.WatchedFileHandler,
    "syslog": logging.handlers.SysLogHandler,
}

hostname = os.environ.get("HOSTNAME", "unknown")
supported_formatter_classes = {
    "json": JsonFormatter,
    "simple": ExtraFormatter,
}
json_fmt = {
    "asctime": "asctime",
    "levelname": "levelname",
    "logger": logged_logger_name,
    "hostname": hostname,
    "file": "filename",
    "line": "lineno",
    "Message": "message",
}
simple_fmt = f"%(asctime)s logger={logged_logger_name} hostname={hostname} levelname=%(levelname)s file=%(filename)s line=%(lineno)d : %(message)s"
supported_formatter_kwargs = {
    "json": {"fmt": json_fmt, "mix_extra": True},
    "simple": {"fmt": simple_fmt},
}


def default_logging_config():
    return {
        "stream": {
            "enabled": True,
            "level": os.environ.get("LOG_LEVEL", "INFO"),
            "formatter": "simple",
            "stream": "ext://sys.stderr",
        },
        "file": {
            "enabled": False,
            "level": "INFO",
            "formatter": "json",
            "filename": os.path.join(tmp_volume_mount_path, "sidecar-mounter.log"),
        },
    }


def getLogger():
    global logger
    if not logger:
        logger = createLogger()
    return logger


def createLogger():
    logging_config_path = os.environ.get("LOGGING_CONFIG_FILE", "")
    logger = logging.getLogger()
    logging_config = default_logging_config()
    logger.setLevel(logging.DEBUG)
    if logging_config_path and os.path.exists(logging_config_path):
        with open(logging_config_path, "r") as f:
            logging_config.update(json.load(f))

    handler_names = [x.name for x in logger.handlers]
    for handler_name, handler_config in logging_config.items():
        if not handler_config.get("enabled", False):
            if handler_name in handler_names:
                logger.handlers = [x for x in logger.handlers if x.name != handler_name]
            continue

        configuration = deepcopy(handler_config)
        if handler_name == "stream":
            if configuration["stream"] == "ext://sys.stdout":
                configuration["stream"] = sys.stdout
            elif configuration["stream"] == "ext://sys.stderr":
                configuration["stream"] = sys.stderr
        elif handler_name == "syslog":
            if configuration.get("socktype") == "ext://socket.SOCK_STREAM":
                configuration["socktype"] = socket.SOCK_STREAM
            elif configuration.get("socktype") == "ext://socket.SOCK_DGRAM":
                configuration["socktype"] = socket.SOCK_DGRAM

        _ = configuration.pop("enabled")
        formatter_name = configuration.pop("formatter")
        level = get_level(configuration.pop("level"))
        configuration = {k: v for k, v in configuration.items() if v is not None}

        handler = supported_handler_classes[handler_name](**configuration)
        formatter = supported_formatter_classes[formatter_name](
            **supported_formatter_kwargs[formatter_name]
        )
        handler.name = handler_name
        handler.setLevel(level)
        handler.setFormatter(formatter)
        if handler_name in handler_names:
            logger.handlers = [x for x in logger.handlers if x.name != handler_name]
        logger.addHandler(handler)
        logger.debug(f"Logging handler added ({handler_name})")
    return logger
