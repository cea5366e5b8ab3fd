import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .exceptions import InvalidArgument

LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"


@dataclass(frozen=True)
class Settings:
    """
    Connection and logging settings, read from LEASELOCK_* environment variables.
    """

    etcd_host: str = "127.0.0.1"
    etcd_port: int = 2379
    etcd_timeout: Optional[float] = None
    key_prefix: str = "/locks"
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            etcd_host=env.get("LEASELOCK_ETCD_HOST", cls.etcd_host),
            etcd_port=_number(env, "LEASELOCK_ETCD_PORT", int, cls.etcd_port),
            etcd_timeout=_number(env, "LEASELOCK_ETCD_TIMEOUT", float, None),
            key_prefix=env.get("LEASELOCK_KEY_PREFIX", cls.key_prefix),
            log_level=env.get("LEASELOCK_LOG_LEVEL", cls.log_level).upper(),
            log_file=env.get("LEASELOCK_LOG_FILE") or None,
        )


def _number(env: Mapping[str, str], name: str, kind, default):
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return kind(raw)
    except ValueError:
        raise InvalidArgument(name, "{0} must be a number.") from None


def configure_logging(settings: Optional[Settings] = None) -> logging.Logger:
    """
    Send leaselock logs to the console and, if `log_file` is set, to a file.

    The library never calls this itself; applications opt in.
    """
    settings = settings or Settings.from_env()
    logger = logging.getLogger("leaselock")
    logger.setLevel(settings.log_level)

    handlers = [logging.StreamHandler()]
    if settings.log_file:
        handlers.append(logging.FileHandler(settings.log_file))

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    return logger
