"""
비동기 이벤트 버스 — 재고 이벤트 pub/sub
- Redis Streams 사용 시도, 실패 시 인메모리 asyncio.Queue로 fallback
- 동기 요청 핸들러(스레드풀)에서는 publish_threadsafe()로 발행한다.
"""

import asyncio
import json
import logging
from collections import defaultdict
from concurrent.futures import Future
from datetime import datetime, timezone
from typing import Any, Callable, Coroutine

import redis.asyncio as aioredis

logger = logging.getLogger(__name__)

# 지원하는 토픽 목록
TOPIC_STOCK_LOW = "stock.low"                    # 재고 부족 감지
TOPIC_STOCK_CHANGED = "stock.changed"            # 재고 수량 변경
TOPIC_TRANSFER_COMPLETED = "transfer.completed"  # 창고 간 이동 완료

TOPICS = [TOPIC_STOCK_LOW, TOPIC_STOCK_CHANGED, TOPIC_TRANSFER_COMPLETED]

# 핸들러 타입: async callable(topic, data)
Handler = Callable[[str, dict], Coroutine[Any, Any, None]]

QUEUE_MAXSIZE = 10000


class AsyncEventBus:
    """
    비동기 이벤트 버스 — Redis Streams 기반, 인메모리 fallback.

    사용법:
        bus = AsyncEventBus(redis_url="redis://localhost:6379")
        await bus.subscribe("stock.low", handler)
        await bus.start()
        await bus.publish("stock.low", {"stock_id": 1, "quantity": 3})

        # 스레드풀의 동기 코드에서
        bus.publish_threadsafe("stock.changed", {...})
    """

    def __init__(self, redis_url: str | None = None, max_recent: int = 500):
        self._redis_url = redis_url
        self._redis = None
        self._use_redis = False

        self._handlers: dict[str, list[Handler]] = defaultdict(list)
        self._queues: dict[str, asyncio.Queue] = {}

        # 최근 이벤트 저장 (조회용)
        self._recent_events: dict[str, list[dict]] = defaultdict(list)
        self._max_recent = max_recent

        self._running = False
        self._loop: asyncio.AbstractEventLoop | None = None
        self._consumer_tasks: list[asyncio.Task] = []

    @property
    def is_redis(self) -> bool:
        return self._use_redis

    @property
    def is_running(self) -> bool:
        return self._running

    async def _try_connect_redis(self):
        """Redis 연결 시도 — URL이 없으면 바로 인메모리 모드"""
        if not self._redis_url:
            logger.info("AsyncEventBus: REDIS_URL 미설정 — 인메모리 모드")
            return
        try:
            self._redis = aioredis.from_url(self._redis_url, decode_responses=True)
            await self._redis.ping()
            self._use_redis = True
            logger.info("AsyncEventBus: Redis 연결 성공")
        except Exception as e:
            logger.warning(f"AsyncEventBus: Redis 연결 실패 ({e}) — 인메모리 모드")
            self._redis = None
            self._use_redis = False

    def _queue_for(self, topic: str) -> asyncio.Queue:
        if topic not in self._queues:
            self._queues[topic] = asyncio.Queue(maxsize=QUEUE_MAXSIZE)
        return self._queues[topic]

    async def subscribe(self, topic: str, handler: Handler):
        """토픽에 핸들러를 구독 등록한다."""
        self._handlers[topic].append(handler)
        self._queue_for(topic)
        logger.debug(f"구독 등록: {topic} → {getattr(handler, '__qualname__', handler)}")

    async def publish(self, topic: str, data: dict):
        """이벤트를 토픽에 발행한다."""
        event = {
            "topic": topic,
            "data": data,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

        recent = self._recent_events[topic]
        recent.append(event)
        if len(recent) > self._max_recent:
            self._recent_events[topic] = recent[-self._max_recent:]

        if self._use_redis and self._redis:
            try:
                serialized = {k: json.dumps(v) if isinstance(v, (dict, list)) else str(v)
                              for k, v in data.items()}
                serialized["_timestamp"] = event["timestamp"]
                await self._redis.xadd(topic, serialized, maxlen=1000)
                return
            except Exception as e:
                logger.error(f"Redis publish 실패 ({topic}): {e}")
        self._enqueue_inmemory(topic, event)

    def publish_threadsafe(self, topic: str, data: dict) -> Future | None:
        """
        다른 스레드에서 발행 — 버스 루프에 publish를 예약하고 즉시 반환한다.
        버스가 시작되지 않았으면 이벤트를 버리고 None을 반환한다.
        """
        if not self._running or self._loop is None or self._loop.is_closed():
            logger.debug(f"버스 미실행 — 이벤트 폐기: {topic}")
            return None

        future = asyncio.run_coroutine_threadsafe(self.publish(topic, data), self._loop)
        future.add_done_callback(lambda f: self._log_publish_failure(topic, f))
        return future

    @staticmethod
    def _log_publish_failure(topic: str, future: Future):
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error(f"비동기 발행 실패 ({topic}): {exc}")

    def _enqueue_inmemory(self, topic: str, event: dict):
        """인메모리 큐에 이벤트를 넣는다 — 가득 차면 가장 오래된 이벤트를 버린다."""
        queue = self._queue_for(topic)
        try:
            queue.put_nowait(event)
        except asyncio.QueueFull:
            try:
                queue.get_nowait()
            except asyncio.QueueEmpty:
                pass
            queue.put_nowait(event)

    async def _inmemory_consumer(self, topic: str):
        """인메모리 큐 소비자 루프"""
        queue = self._queue_for(topic)
        while self._running:
            try:
                event = await asyncio.wait_for(queue.get(), timeout=1.0)
                await self._dispatch(topic, event["data"])
            except asyncio.TimeoutError:
                continue
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"인메모리 소비자 에러 ({topic}): {e}")
                await asyncio.sleep(0.1)

    @staticmethod
    def _decode_fields(fields: dict[str, str]) -> dict:
        """publish()가 문자열로 펼쳐 넣은 스트림 필드를 원래 값으로 복원"""
        data = {}
        for key, raw in fields.items():
            if key == "_timestamp":
                continue
            try:
                data[key] = json.loads(raw)
            except (json.JSONDecodeError, TypeError):
                data[key] = raw
        return data

    async def _redis_consumer(self, topic: str):
        """Redis Streams 소비자 루프 — 시작 시점 이후 들어온 항목만 읽는다"""
        cursor = "$"
        while self._running:
            try:
                batches = await self._redis.xread({topic: cursor}, count=10, block=1000)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Redis 스트림 읽기 실패 ({topic}): {e}")
                await asyncio.sleep(1.0)
                continue

            for _stream, entries in batches or []:
                for entry_id, fields in entries:
                    cursor = entry_id
                    await self._dispatch(topic, self._decode_fields(fields))

    async def _dispatch(self, topic: str, data: dict):
        """구독 핸들러 동시 호출 — 실패한 핸들러는 로그만 남기고 나머지는 계속"""
        handlers = list(self._handlers.get(topic, ()))
        if not handlers:
            return
        results = await asyncio.gather(
            *(handler(topic, data) for handler in handlers), return_exceptions=True,
        )
        for handler, result in zip(handlers, results):
            if isinstance(result, Exception):
                logger.error(f"핸들러 실패 ({topic}, {getattr(handler, '__qualname__', handler)}): {result}")

    async def start(self):
        """이벤트 버스 시작 — 구독이 등록된 토픽마다 소비자 태스크를 만든다."""
        await self._try_connect_redis()
        self._loop = asyncio.get_running_loop()
        self._running = True

        for topic in self._handlers:
            if self._use_redis:
                coro = self._redis_consumer(topic)
                name = f"redis-consumer-{topic}"
            else:
                coro = self._inmemory_consumer(topic)
                name = f"inmemory-consumer-{topic}"
            self._consumer_tasks.append(asyncio.create_task(coro, name=name))

        logger.info(
            f"AsyncEventBus 시작: {len(self._consumer_tasks)}개 소비자 "
            f"({'Redis' if self._use_redis else '인메모리'})"
        )

    async def stop(self):
        """이벤트 버스 중지"""
        self._running = False
        for task in self._consumer_tasks:
            task.cancel()
        if self._consumer_tasks:
            await asyncio.gather(*self._consumer_tasks, return_exceptions=True)
        self._consumer_tasks = []
        self._loop = None

        if self._redis:
            await self._redis.aclose()
            self._redis = None

        logger.info("AsyncEventBus 중지 완료")

    def get_recent(self, topic: str, count: int = 10) -> list[dict]:
        """최근 이벤트 조회 (동기) — 오래된 것부터"""
        return self._recent_events.get(topic, [])[-count:]
