"""
사용자 정의 예외 클래스
"""
from fastapi import HTTPException, status


class AppException(Exception):
    """기본 애플리케이션 예외"""
    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class BadRequestException(HTTPException):
    """요청이 현재 상태와 맞지 않거나 잘못되었을 때 발생"""
    def __init__(self, detail: str = "Bad request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class NotFoundException(HTTPException):
    """리소스를 찾을 수 없을 때 발생"""
    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class UnauthorizedException(HTTPException):
    """인증이 필요하거나 인증이 실패했을 때 발생"""
    def __init__(self, detail: str = "Not authenticated"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"}
        )


class ForbiddenException(HTTPException):
    """권한이 없을 때 발생"""
    def __init__(self, detail: str = "Not enough permissions"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class UnsupportedMediaException(HTTPException):
    """허용되지 않은 파일 형식"""
    def __init__(self, detail: str = "Unsupported media type"):
        super().__init__(status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, detail=detail)


class DuplicateException(HTTPException):
    """중복된 리소스"""
    def __init__(self, detail: str = "Resource already exists"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class ConflictException(HTTPException):
    """다른 요청이 먼저 같은 문서를 수정했을 때 발생"""
    def __init__(self, detail: str = "Resource was modified by another request"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


def validation_message(errors) -> str:
    """pydantic 오류 목록을 '. '로 이어 붙인 한 줄 메시지로 변환"""
    messages = []
    for error in errors:
        msg = str(error.get("msg", "")).removeprefix("Value error, ")
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        if loc and error.get("type") != "value_error":
            msg = f"{'.'.join(loc)}: {msg}"
        messages.append(msg)
    return ". ".join(messages)
