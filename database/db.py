from sqlalchemy import create_engine, event          # SQLAlchemy 엔진 생성 도구
from sqlalchemy.orm import declarative_base, sessionmaker  # 모델 Base 클래스 / 세션 팩토리

from config.settings import settings                   # ✅ 환경변수 설정 파일 불러오기


def _build_engine(url: str):
    """URL 종류(MySQL / SQLite)에 맞는 타임아웃 옵션으로 엔진 생성"""
    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": settings.DB_POOL_TIMEOUT * 3},
        )

        # ✅ SQLite: 모든 트랜잭션을 BEGIN IMMEDIATE 로 시작 → 쓰기 직렬화
        #    (pysqlite 기본 트랜잭션 처리를 끄고 직접 BEGIN 발행)
        @event.listens_for(engine, "connect")
        def _sqlite_connect(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine, "begin")
        def _sqlite_begin(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

        return engine

    return create_engine(
        url,
        pool_pre_ping=True,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        connect_args={
            "connect_timeout": settings.DB_CONNECT_TIMEOUT,
            "read_timeout": settings.DB_READ_TIMEOUT,
            "write_timeout": settings.DB_READ_TIMEOUT,
        },
    )


# ✅ 환경변수에서 DB 연결 URL을 불러와 엔진 생성
engine = _build_engine(settings.DATABASE_URL)

# ✅ 세션 팩토리: 요청마다 하나의 세션(=하나의 작업 단위)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# ✅ 모델 정의 시 상속할 Base 클래스 (Declarative 방식 사용)
Base = declarative_base()


def get_db():
    """요청 단위 DB 세션 의존성"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
