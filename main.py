"""
개발 서버 실행
uvicorn main:app 대신 python main.py 로도 실행 가능
"""
import uvicorn
from vms.config import settings
from vms.main import app  # noqa: F401

if __name__ == "__main__":
    uvicorn.run(
        "vms.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
