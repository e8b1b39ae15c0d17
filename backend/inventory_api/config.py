"""
애플리케이션 설정
- DB, Redis, 재고 부족 임계치, 페이지네이션, 캐시 관련 설정을 관리한다.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # 데이터베이스
    DATABASE_URL: str = "sqlite:///inventory.db"
    DATABASE_ECHO: bool = False

    # Redis (빈 문자열이면 인메모리 모드)
    REDIS_URL: str = "redis://localhost:6379"

    # CORS
    CORS_ORIGINS: list[str] = ["*"]

    # 재고 부족 알림 임계치: 수량이 이 값 미만이면 부족으로 본다
    LOW_STOCK_THRESHOLD: int = 10

    # 페이지네이션
    DEFAULT_PER_PAGE: int = 15
    MAX_PER_PAGE: int = 100

    # 창고 목록 캐시 TTL (초)
    CACHE_TTL_SECONDS: int = 3600

    # 토픽별 최근 이벤트 보관 개수
    RECENT_ALERTS_LIMIT: int = 500

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
