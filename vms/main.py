import logging
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
from sqlalchemy.exc import SQLAlchemyError
from vms.config import settings
from vms.database import check_connection, init_db
from vms.routes.auth import router as auth_router
from vms.routes.visitors import router as visitors_router
from vms.routes.delegations import router as delegations_router
from vms.routes.bulk_upload import router as bulk_upload_router
from vms.routes.users import router as users_router
from vms.routes.audit_logs import router as audit_logs_router
from vms.utils.exceptions import AppException, validation_message
from vms.utils.logger import setup_logging
from vms.utils.uploads import ensure_upload_dirs, upload_root

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """애플리케이션 라이프사이클 관리"""
    setup_logging(settings.log_level)
    ensure_upload_dirs()

    # 시작: 데이터베이스 연결 확인 후 테이블 생성 (실패 시 종료)
    try:
        check_connection()
        init_db()
    except SQLAlchemyError:
        logger.critical("Database is unreachable; shutting down", exc_info=True)
        raise SystemExit(1)
    logger.info("Database initialized")
    yield
    # 종료: 필요한 정리 작업
    logger.info("Application shutdown")


app = FastAPI(
    title=settings.app_name,
    description="방문 신청·심사·출입 관리 시스템 API",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan
)

# CORS 미들웨어 설정
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """검증 오류는 하나의 메시지로 묶어 400 반환"""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": validation_message(exc.errors())},
    )


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# 헬스체크 엔드포인트
@app.get("/api/health")
async def health_check():
    """애플리케이션 상태 확인"""
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": "1.0.0"
    }


# 라우터 등록
app.include_router(auth_router)
app.include_router(visitors_router)
app.include_router(delegations_router)
app.include_router(bulk_upload_router)
app.include_router(users_router)
app.include_router(audit_logs_router)

# 업로드 파일 (사진/PDF) 정적 제공
app.mount("/uploads", StaticFiles(directory=str(upload_root()), check_dir=False), name="uploads")


@app.get("/")
async def root():
    """루트 엔드포인트"""
    return {
        "message": "Welcome to Visitor Management System API",
        "docs": "/api/docs",
        "openapi": "/api/openapi.json"
    }
