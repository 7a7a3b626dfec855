"""Services for external integrations."""

from studpal.services.s3 import s3_service
from studpal.services.pubsub import chat_broker

__all__ = ["s3_service", "chat_broker"]
