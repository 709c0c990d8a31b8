import logging


class SecretsFilter(logging.Filter):
    """Drop credentials and inline media from structured logs."""

    BLOCKED_KEYS = {"bytes_base64", "access_token", "assertion", "private_key", "api_key"}

    def filter(self, record: logging.LogRecord) -> bool:
        for key in self.BLOCKED_KEYS:
            if hasattr(record, key):
                setattr(record, key, "[REDACTED]")
        return True


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    # Logger filters do not see records propagated from child loggers, handler filters do.
    for handler in logging.getLogger().handlers:
        if not any(isinstance(existing, SecretsFilter) for existing in handler.filters):
            handler.addFilter(SecretsFilter())
