# src/reminder_scheduler/connectors/kafka_bus.py

from __future__ import annotations

"""
Kafka transport for the scheduler ports (aiokafka).

- KafkaEventSource consumes lifecycle events from the task topic with manual
  offset commits: a message is committed only after the coordinator handled it,
  which gives at-least-once delivery.
- KafkaPublisher publishes lifecycle events and notification requests, both
  keyed by task id so per-task ordering holds within a partition.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Sequence
from typing import Any

from aiokafka import AIOKafkaConsumer, AIOKafkaProducer
from aiokafka.errors import KafkaError

from ..tasks.task_models import LifecycleEvent, NotificationRequest, encode_event, encode_notification

logger = logging.getLogger(__name__)


class KafkaPublisher:
    def __init__(
        self,
        *,
        brokers: Sequence[str],
        task_topic: str,
        notification_topic: str,
        log: logging.Logger | None = None,
    ) -> None:
        self._brokers = list(brokers)
        self._task_topic = task_topic
        self._notification_topic = notification_topic
        self._log = log or logger
        self._producer: AIOKafkaProducer | None = None

    async def start(self) -> None:
        producer = AIOKafkaProducer(bootstrap_servers=self._brokers, acks="all")
        await producer.start()
        self._producer = producer
        self._log.info("Kafka producer started brokers=%s", ",".join(self._brokers))

    async def stop(self) -> None:
        producer, self._producer = self._producer, None
        if producer is not None:
            await producer.stop()
            self._log.info("Kafka producer stopped")

    def _require(self) -> AIOKafkaProducer:
        if self._producer is None:
            raise RuntimeError("KafkaPublisher is not started")
        return self._producer

    async def publish_task_event(self, event: LifecycleEvent) -> None:
        meta = await self._require().send_and_wait(
            self._task_topic,
            value=encode_event(event),
            key=event.task_id.encode("utf-8"),
        )
        self._log.debug(
            "Task event sent type=%s task_id=%s partition=%s offset=%s",
            event.kind.value,
            event.task_id,
            meta.partition,
            meta.offset,
        )

    async def publish_notification(self, notification: NotificationRequest) -> None:
        await self._require().send_and_wait(
            self._notification_topic,
            value=encode_notification(notification),
            key=notification.task_id.encode("utf-8"),
        )


class KafkaEventSource:
    def __init__(
        self,
        *,
        brokers: Sequence[str],
        topic: str,
        group_id: str,
        offset_reset: str = "earliest",
        retry_delay_seconds: float = 1.0,
        log: logging.Logger | None = None,
    ) -> None:
        self._brokers = list(brokers)
        self._topic = topic
        self._group_id = group_id
        self._offset_reset = offset_reset
        self._retry_delay = max(0.1, float(retry_delay_seconds))
        self._log = log or logger
        self._consumer: AIOKafkaConsumer | None = None

    async def start(self) -> None:
        consumer = AIOKafkaConsumer(
            self._topic,
            bootstrap_servers=self._brokers,
            group_id=self._group_id,
            enable_auto_commit=False,
            auto_offset_reset=self._offset_reset,
        )
        await consumer.start()
        self._consumer = consumer
        self._log.info("Kafka consumer started topic=%s group=%s", self._topic, self._group_id)

    async def stop(self) -> None:
        consumer, self._consumer = self._consumer, None
        if consumer is not None:
            await consumer.stop()
            self._log.info("Kafka consumer stopped")

    async def messages(self) -> AsyncIterator[Any]:
        if self._consumer is None:
            raise RuntimeError("KafkaEventSource is not started")
        while self._consumer is not None:
            try:
                msg = await self._consumer.getone()
            except Exception:
                self._log.exception("Kafka receive failed; retrying in %.1fs", self._retry_delay)
                await asyncio.sleep(self._retry_delay)
                continue
            yield msg.value

    async def ack(self) -> None:
        if self._consumer is None:
            return
        try:
            await self._consumer.commit()
        except KafkaError:
            self._log.warning("Kafka commit failed; the event may be redelivered", exc_info=True)
