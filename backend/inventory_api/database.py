"""
데이터베이스 엔진 및 세션 관리
- 기본은 SQLite, DATABASE_URL로 PostgreSQL 등 교체 가능.
- FastAPI dependency injection용 get_db() 제공.
- transaction(): commit/rollback을 묶는 원자적 실행 블록.
"""

import logging
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker, declarative_base

from inventory_api.config import settings

logger = logging.getLogger(__name__)


def build_engine(url: str, echo: bool = False, **kwargs):
    """URL에 맞춰 엔진 생성 — SQLite는 check_same_thread=False 필요 (FastAPI 멀티스레드 대응)"""
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    return create_engine(url, echo=echo, **kwargs)


engine = build_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """FastAPI Depends용 DB 세션 제공."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session):
    """
    블록 전체를 하나의 트랜잭션으로 실행한다.
    예외 발생 시 rollback 후 그대로 다시 던진다.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        logger.debug("트랜잭션 rollback")
        raise
