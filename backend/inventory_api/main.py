"""
FastAPI 앱 엔트리포인트
- CORS 설정, 예외 핸들러 등록
- 라우터 등록 (품목, 창고, 재고, 재고 이동)
- AsyncEventBus + LowStockAlertHandler 백그라운드 시작
- 헬스체크 엔드포인트
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.orm import Session

from inventory_api.config import settings
from inventory_api.database import engine, Base, SessionLocal, get_db
from inventory_api.api import inventory_items, stock_transfers, stocks, warehouses
from inventory_api.api.deps import get_cache, get_event_bus, set_cache, set_event_bus
from inventory_api.api.errors import register_exception_handlers
from inventory_api.cache import ListCache
from inventory_api.events.event_bus import AsyncEventBus
from inventory_api.models import Warehouse
from inventory_api.notifications.low_stock import LowStockAlertHandler
from inventory_api.schemas.common import HealthResponse

# 로깅 설정
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """앱 시작/종료 시 이벤트 버스와 캐시 관리"""

    # ── 1. DB 테이블 확인 ──
    Base.metadata.create_all(bind=engine)
    logger.info("데이터베이스 테이블 확인 완료")

    db = SessionLocal()
    try:
        warehouse_count = db.query(Warehouse).count()
        if warehouse_count == 0:
            logger.warning("창고 데이터가 없습니다. 필요하면 python seed_data.py를 실행하세요.")
        else:
            logger.info(f"마스터 데이터 확인: Warehouses {warehouse_count}개")
    finally:
        db.close()

    redis_url = settings.REDIS_URL or None

    # ── 2. AsyncEventBus 생성 + 재고 부족 알림 구독 ──
    event_bus = AsyncEventBus(redis_url, max_recent=settings.RECENT_ALERTS_LIMIT)
    alert_handler = LowStockAlertHandler(event_bus)
    await alert_handler.start()

    # ── 3. AsyncEventBus 시작 (구독자 루프) ──
    await event_bus.start()
    set_event_bus(event_bus)
    logger.info("AsyncEventBus 시작 완료")

    # ── 4. 목록 캐시 ──
    set_cache(ListCache(redis_url, default_ttl=settings.CACHE_TTL_SECONDS))

    yield

    # ── 종료 ──
    set_event_bus(None)
    await event_bus.stop()
    logger.info(f"재고 부족 알림 {alert_handler.alerts_sent}건 처리 후 종료")


app = FastAPI(
    title="창고 재고 관리 API",
    description="창고별 재고 원장, 창고 간 재고 이동, 재고 부족 알림",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# 라우터 등록
app.include_router(inventory_items.router)
app.include_router(warehouses.router)
app.include_router(stocks.router)
app.include_router(stock_transfers.router)


@app.get("/api/health", response_model=HealthResponse)
def health_check(db: Session = Depends(get_db)):
    """시스템 상태 확인"""
    db_ok = False
    try:
        db.execute(text("SELECT 1"))
        db_ok = True
    except Exception as e:
        logger.error(f"헬스체크 DB 연결 실패: {e}")

    bus = get_event_bus()
    redis_ok = (bus.is_redis if bus else False) or get_cache().is_redis

    return HealthResponse(
        status="ok" if db_ok else "degraded",
        db_connected=db_ok,
        redis_connected=redis_ok,
        event_bus_running=bus.is_running if bus else False,
        timestamp=datetime.now(timezone.utc),
    )
