"""
애플리케이션 설정 파일
환경 변수를 통해 설정 관리
"""
from pydantic_settings import BaseSettings
from typing import Optional
from pathlib import Path


class Settings(BaseSettings):
    """애플리케이션 설정"""

    # 데이터베이스 설정
    database_url: str = "sqlite:///./visitors.db"

    # JWT 설정
    secret_key: str = "your-secret-key-here-change-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7

    # 비밀번호 해싱 비용
    bcrypt_rounds: int = 12

    # 애플리케이션 설정
    app_name: str = "Visitor Management System"
    debug: bool = False
    log_level: str = "INFO"

    # CORS 설정
    allowed_origins: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # 메일(SMTP) 설정 - 비어 있으면 발송을 건너뜀
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_use_tls: bool = True
    email_from: Optional[str] = None

    # 업로드 설정
    upload_dir: str = str(Path(__file__).resolve().parents[1] / "uploads")
    max_upload_size_mb: int = 10
    photo_max_bytes: int = 314572

    class Config:
        # 실행 위치와 무관하게 "프로젝트 루트의 .env"를 찾도록 고정
        env_file = str(Path(__file__).resolve().parents[1] / ".env")
        case_sensitive = False


settings = Settings()
