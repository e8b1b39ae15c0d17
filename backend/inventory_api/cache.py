"""
목록 캐시 — Redis 기반, Redis 없으면 프로세스 내 dict로 fallback
- 창고 목록/상세 응답을 TTL 동안 보관한다.
- 값은 JSON 직렬화 가능한 객체만 넣는다.
"""

import json
import logging
import threading
import time
from typing import Any, Callable

import redis

logger = logging.getLogger(__name__)

WAREHOUSES_ALL_KEY = "warehouses.all"


def warehouse_inventory_key(warehouse_id: int) -> str:
    return f"warehouse.{warehouse_id}.inventory"


class ListCache:
    """Redis 연결 실패 시 인메모리로 동작하는 TTL 캐시"""

    def __init__(self, redis_url: str | None = None, default_ttl: int = 3600):
        self._redis = None
        self._use_redis = False
        self._default_ttl = default_ttl

        # key → (만료 시각 monotonic, 값)
        self._local: dict[str, tuple[float, Any]] = {}
        self._lock = threading.Lock()

        if redis_url:
            try:
                self._redis = redis.from_url(redis_url, decode_responses=True)
                self._redis.ping()
                self._use_redis = True
                logger.info("ListCache: Redis 연결 성공")
            except Exception as e:
                logger.warning(f"ListCache: Redis 연결 실패 ({e}) — 인메모리 캐시 사용")
                self._redis = None

    @property
    def is_redis(self) -> bool:
        return self._use_redis

    def get(self, key: str) -> Any | None:
        if self._use_redis:
            try:
                raw = self._redis.get(key)
                return json.loads(raw) if raw is not None else None
            except Exception as e:
                logger.error(f"Redis 캐시 조회 실패 ({key}): {e}")
                return None

        with self._lock:
            entry = self._local.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if expires_at <= time.monotonic():
                del self._local[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl: int | None = None):
        ttl = self._default_ttl if ttl is None else ttl
        if self._use_redis:
            try:
                self._redis.set(key, json.dumps(value, default=str), ex=ttl)
            except Exception as e:
                logger.error(f"Redis 캐시 저장 실패 ({key}): {e}")
            return

        with self._lock:
            self._local[key] = (time.monotonic() + ttl, value)

    def delete(self, *keys: str):
        if not keys:
            return
        if self._use_redis:
            try:
                self._redis.delete(*keys)
            except Exception as e:
                logger.error(f"Redis 캐시 삭제 실패 ({keys}): {e}")
            return

        with self._lock:
            for key in keys:
                self._local.pop(key, None)

    def remember(self, key: str, ttl: int | None, fn: Callable[[], Any]) -> Any:
        """캐시에 있으면 반환, 없으면 fn() 결과를 저장 후 반환"""
        cached = self.get(key)
        if cached is not None:
            return cached
        value = fn()
        self.set(key, value, ttl)
        return value

    def forget_warehouse(self, warehouse_id: int | None = None):
        """창고 목록 + (선택) 창고 상세 캐시 무효화"""
        keys = [WAREHOUSES_ALL_KEY]
        if warehouse_id is not None:
            keys.append(warehouse_inventory_key(warehouse_id))
        self.delete(*keys)
