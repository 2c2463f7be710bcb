import logging

import aio_pika

from .events import build_event, to_json

logger = logging.getLogger(__name__)

EXCHANGE_NAME = "domain_events"


class EventPublisher:
    """
    Publishes domain events on a durable topic exchange.

    Without a broker url the publisher is disabled and every call is a no-op.
    Broker failures are logged and never reach the caller: an event that cannot
    be delivered must not undo a write that has already committed.
    """

    def __init__(self, url: str | None, source: str | None = None, exchange_name: str = EXCHANGE_NAME):
        self.url = url
        self.source = source
        self.exchange_name = exchange_name
        self.enabled = bool(url)
        self._connection: aio_pika.abc.AbstractRobustConnection | None = None
        self._exchange: aio_pika.abc.AbstractExchange | None = None

    @property
    def connected(self) -> bool:
        return bool(self._connection and not self._connection.is_closed and self._exchange)

    async def connect(self):
        if not self.enabled or self.connected:
            return

        try:
            self._connection = await aio_pika.connect_robust(self.url)
            channel = await self._connection.channel()
            self._exchange = await channel.declare_exchange(
                self.exchange_name,
                aio_pika.ExchangeType.TOPIC,
                durable=True,
            )
        except Exception:
            self._reset()
            raise

    async def publish(self, routing_key: str, body: str) -> bool:
        """Returns True when the broker accepted the message."""
        if not self.enabled:
            return False

        try:
            await self.connect()
            await self._exchange.publish(
                aio_pika.Message(
                    body=body.encode("utf-8"),
                    content_type="application/json",
                    delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
                ),
                routing_key=routing_key,
            )
        except Exception as e:
            logger.warning("publish of %s to %s failed: %s", routing_key, self.exchange_name, e)
            return False
        return True

    async def publish_event(self, event_type: str, data: dict) -> bool:
        event = build_event(event_type, data, source=self.source)
        return await self.publish(event_type, to_json(event))

    async def close(self):
        try:
            if self._connection and not self._connection.is_closed:
                await self._connection.close()
        finally:
            self._reset()

    def _reset(self):
        self._connection = None
        self._exchange = None
