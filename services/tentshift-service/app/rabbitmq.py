from shared.rabbitmq import EventPublisher

from .config import RABBIT_URL, SERVICE_NAME

publisher = EventPublisher(RABBIT_URL, source=SERVICE_NAME)
