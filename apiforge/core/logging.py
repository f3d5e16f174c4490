import logging
import sys


class ContextFormatter(logging.Formatter):
    """Custom formatter that handles optional project_id and operation fields."""
    def format(self, record):
        # Add default values for project_id and operation if not present
        if not hasattr(record, 'project_id'):
            record.project_id = '-'
        if not hasattr(record, 'operation'):
            record.operation = '-'
        return super().format(record)


def configure_logging(level: int = logging.INFO) -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ContextFormatter(
        "%(asctime)s %(levelname)s %(name)s [project_id=%(project_id)s op=%(operation)s] - %(message)s"
    ))
    logging.basicConfig(
        level=level,
        handlers=[handler],
    )
