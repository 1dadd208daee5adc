from __future__ import annotations

import queue
import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, DefaultDict, List, Union

from loguru import logger

from services.worker_topics import WorkerTopics


Topic = Union[WorkerTopics, str]


@dataclass(frozen=True)
class BusMessage:
	topic: str
	payload: dict[str, Any]
	source: str
	source_id: str


class Subscription:
	"""One subscriber queue for one topic; close() detaches it from the bus."""

	def __init__(self, bus: "WorkerBus", topic: str, q: "queue.Queue[BusMessage]") -> None:
		self._bus = bus
		self.topic = topic
		self.queue = q
		self._closed = False

	@property
	def closed(self) -> bool:
		return self._closed

	def close(self) -> None:
		if self._closed:
			return
		self._closed = True
		self._bus._detach(self.topic, self.queue)


class WorkerBus:
	"""
	Carries telemetry from worker threads to the UI loop.

	Workers publish() from their own thread. Each consumer (one CommandsSource
	per open page) owns a queue and drains it on the UI loop, so no telemetry
	object is ever shared between a producer and a consumer.
	"""

	def __init__(self) -> None:
		self._lock = threading.Lock()
		self._queues: DefaultDict[str, List["queue.Queue[BusMessage]"]] = defaultdict(list)

	@staticmethod
	def _topic_name(topic: Topic) -> str:
		return str(getattr(topic, "value", topic))

	def subscribe(self, topic: Topic) -> Subscription:
		name = self._topic_name(topic)
		q: "queue.Queue[BusMessage]" = queue.Queue()
		with self._lock:
			self._queues[name].append(q)
		logger.debug(f"[subscribe] - subscriber_added - topic={name}")
		return Subscription(self, name, q)

	def _detach(self, name: str, q: "queue.Queue[BusMessage]") -> None:
		with self._lock:
			queues = self._queues.get(name)
			if not queues or q not in queues:
				return
			queues.remove(q)
			if not queues:
				del self._queues[name]
		logger.debug(f"[_detach] - subscriber_removed - topic={name}")

	def publish(self, topic: Topic, source: str, source_id: str, **payload: Any) -> None:
		name = self._topic_name(topic)
		msg = BusMessage(name, payload, source, source_id)

		with self._lock:
			targets = list(self._queues.get(name, ()))

		logger.trace(f"[publish] - bus_message - topic={name} source={source}/{source_id} targets={len(targets)}")
		for q in targets:
			q.put(msg)
