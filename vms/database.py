"""
데이터베이스 연결 설정
SQLAlchemy를 사용한 데이터베이스 관리
"""
import sqlite3
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from vms.config import settings

# SQLite 여부에 따라 엔진 옵션 분기
_connect_args = {}
if settings.database_url.startswith("sqlite"):
    _connect_args = {"check_same_thread": False}

# 데이터베이스 엔진 생성
engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,   # 연결 검사
    connect_args=_connect_args,
)


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite는 연결마다 외래 키 검사를 켜야 함"""
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

# 세션 팩토리 생성
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# 모델 기본 클래스
Base = declarative_base()


def get_db():
    """데이터베이스 세션 의존성"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_connection(bind=None) -> None:
    """데이터베이스 연결 확인 (시작 시 사용)"""
    with (bind or engine).connect() as conn:
        conn.execute(text("SELECT 1"))


def init_db(bind=None) -> None:
    """모든 모델을 등록한 뒤 테이블 생성"""
    # 테이블 등록을 위해 모델 모듈을 불러옴
    from vms.models import user, visitor_request, check_in_out, delegation, audit_log, bulk_upload  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)
