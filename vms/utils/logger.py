"""
로깅 설정
"""
import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """루트 로거에 콘솔 핸들러를 한 번만 붙인다"""
    root = logging.getLogger()
    root.setLevel(level.upper())

    # 중복 핸들러 방지 (reload 시)
    if any(getattr(h, "_vms_handler", False) for h in root.handlers):
        return root

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    handler._vms_handler = True
    root.addHandler(handler)
    return root
