import json
import logging
import logging.handlers
import queue

# records carry the content type they concern under this attribute
CONTENT_TYPE_FIELD = "content_type"

TEXT_FORMAT = (
    "%(asctime)s %(levelname)s [%(name)s] <%(content_type)s> %(message)s"
)

# Thread-safe queue for log records
_log_queue: queue.SimpleQueue = queue.SimpleQueue()

queue_handler = logging.handlers.QueueHandler(_log_queue)

console_handler = logging.StreamHandler()

listener = logging.handlers.QueueListener(_log_queue, console_handler)
listener.start()


class ContentTypeFilter(logging.Filter):
    """
    Gives every record a ``content_type``, "-" when the call site passed
    none, so formatters can always reference it.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, CONTENT_TYPE_FIELD, None):
            setattr(record, CONTENT_TYPE_FIELD, "-")
        return True


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": self.formatTime(record),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        content_type = getattr(record, CONTENT_TYPE_FIELD, "-")
        if content_type != "-":
            payload["contentType"] = content_type
        return json.dumps(payload)


logger = logging.getLogger("contenthandling")
logger.setLevel(logging.DEBUG)
logger.addFilter(ContentTypeFilter())
logger.addHandler(queue_handler)


def configure_logging(json_logging: bool = False) -> None:
    """
    Toggle JSON vs text output for the contenthandling logger.
    """
    if json_logging:
        console_handler.setFormatter(JSONFormatter())
    else:
        console_handler.setFormatter(logging.Formatter(TEXT_FORMAT))
