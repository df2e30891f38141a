"""
업로드 파일 저장
방문자 사진(이미지)과 일괄 등록용 PDF를 업로드 디렉터리에 보관한다.
"""
import io
import secrets
import time
from pathlib import Path
from PIL import Image
from vms.config import settings

ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/png", "image/webp"}
EXT_BY_CONTENT_TYPE = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}
PDF_CONTENT_TYPE = "application/pdf"

PHOTO_SUBDIR = "photos"
BULK_SUBDIR = "bulk"


def upload_root() -> Path:
    return Path(settings.upload_dir)


def ensure_upload_dirs() -> None:
    """업로드 디렉터리 생성"""
    for sub in (PHOTO_SUBDIR, BULK_SUBDIR):
        (upload_root() / sub).mkdir(parents=True, exist_ok=True)


def _unique_suffix() -> str:
    return f"{int(time.time() * 1000)}-{secrets.randbelow(10 ** 9)}"


def resize_image_if_needed(contents: bytes, max_bytes: int) -> bytes:
    """용량 제한을 넘는 이미지는 품질/크기를 줄여 다시 인코딩"""
    if len(contents) <= max_bytes:
        return contents
    image = Image.open(io.BytesIO(contents))
    fmt = image.format if image.format else "JPEG"
    quality = 85  # JPEG의 경우
    data = contents
    for _ in range(10):
        buffer = io.BytesIO()
        save_kwargs = {"format": fmt}
        if fmt.upper() in ("JPEG", "JPG"):
            save_kwargs["quality"] = quality
            save_kwargs["optimize"] = True
        image.save(buffer, **save_kwargs)
        data = buffer.getvalue()
        if len(data) <= max_bytes:
            return data
        if fmt.upper() in ("JPEG", "JPG") and quality > 30:
            quality -= 10
        else:
            w, h = image.size
            image = image.resize((max(1, int(w * 0.9)), max(1, int(h * 0.9))), Image.LANCZOS)
    return data


def save_visitor_photo(contents: bytes, content_type: str, request_id: int) -> str:
    """방문자 사진 저장 후 정적 경로(/uploads/...) 반환"""
    ext = EXT_BY_CONTENT_TYPE[content_type]
    data = resize_image_if_needed(contents, settings.photo_max_bytes)
    directory = upload_root() / PHOTO_SUBDIR
    directory.mkdir(parents=True, exist_ok=True)
    filename = f"request-{request_id}-{_unique_suffix()}{ext}"
    (directory / filename).write_bytes(data)
    return f"/uploads/{PHOTO_SUBDIR}/{filename}"


def save_bulk_pdf(contents: bytes, original_name: str) -> Path:
    """일괄 등록 PDF 저장 후 파일 경로 반환"""
    directory = upload_root() / BULK_SUBDIR
    directory.mkdir(parents=True, exist_ok=True)
    ext = Path(original_name or "").suffix.lower() or ".pdf"
    path = directory / f"bulk-{_unique_suffix()}{ext}"
    path.write_bytes(contents)
    return path
