import logging
import sys


class ContextFormatter(logging.Formatter):
    """Custom formatter that handles optional entity and action fields."""
    def format(self, record):
        # Add default values for entity and action if not present
        if not hasattr(record, 'entity'):
            record.entity = '-'
        if not hasattr(record, 'action'):
            record.action = '-'
        return super().format(record)


def configure_logging(level: str = "INFO", verbose: bool = False) -> None:
    handler = logging.StreamHandler(sys.stdout)
    if verbose:
        fmt = "%(asctime)s %(levelname)s %(name)s [entity=%(entity)s action=%(action)s] - %(message)s"
    else:
        fmt = "%(message)s"
    handler.setFormatter(ContextFormatter(fmt))
    logging.basicConfig(
        level=logging.DEBUG if verbose else level.upper(),
        handlers=[handler],
        force=True,
    )
