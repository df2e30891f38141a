"""
PDF 방문자 명단 파싱
텍스트 추출(pypdf)과 줄 단위 행 해석을 분리해 해석 규칙을 교체할 수 있게 한다.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Iterable, List, Optional
from pypdf import PdfReader

DEFAULT_PURPOSE = "Bulk import"
DEFAULT_SCHEDULED_TIME = "09:00"


@dataclass
class ParsedRow:
    """PDF 한 줄에서 추출된 방문자 정보"""
    row_number: int
    visitor_name: str
    visitor_id: str
    national_id: str = ""
    visitor_phone: str = ""
    purpose: str = DEFAULT_PURPOSE
    department: Optional[str] = None
    scheduled_date: str = field(default_factory=lambda: date.today().isoformat())
    scheduled_time: str = DEFAULT_SCHEDULED_TIME
    company_name: str = ""
    group_size: int = 1
    origin_department: Optional[str] = None


def extract_pdf_text(path: Path) -> str:
    """PDF 전체 페이지의 텍스트를 줄바꿈으로 이어 붙여 반환"""
    reader = PdfReader(str(path))
    return "\n".join(page.extract_text() or "" for page in reader.pages)


class VisitorRowParser(ABC):
    """텍스트 한 줄을 방문자 행으로 해석하는 규칙"""

    @abstractmethod
    def parse_line(self, line: str, row_number: int, department: Optional[str]) -> Optional[ParsedRow]:
        raise NotImplementedError

    def parse(self, text: str, department: Optional[str] = None) -> List[ParsedRow]:
        """
        빈 줄을 제외한 모든 줄에 1부터 번호를 매기고 해석
        - 해석되지 않은 줄도 번호는 소비함
        """
        rows = []
        for row_number, line in enumerate(_non_empty_lines(text), start=1):
            row = self.parse_line(line, row_number, department)
            if row is not None:
                rows.append(row)
        return rows


class WhitespaceRowParser(VisitorRowParser):
    """
    공백 구분 토큰을 위치로 매핑
    이름(2토큰) / 방문자ID / 주민번호 / 전화 / 방문목적(나머지)
    """
    min_tokens = 3

    def parse_line(self, line: str, row_number: int, department: Optional[str]) -> Optional[ParsedRow]:
        tokens = line.split()
        if len(tokens) < self.min_tokens:
            return None
        return ParsedRow(
            row_number=row_number,
            visitor_name=f"{tokens[0]} {tokens[1]}",
            visitor_id=tokens[2],
            national_id=tokens[3] if len(tokens) > 3 else "",
            visitor_phone=tokens[4] if len(tokens) > 4 else "",
            purpose=" ".join(tokens[5:]) or DEFAULT_PURPOSE,
            department=department,
            origin_department=department,
        )


_PARSERS = {
    "whitespace": WhitespaceRowParser,
}


def get_row_parser(name: str = "whitespace") -> VisitorRowParser:
    """이름으로 파서 선택"""
    try:
        return _PARSERS[name]()
    except KeyError:
        raise ValueError(f"Unknown row parser: {name}")


def _non_empty_lines(text: str) -> Iterable[str]:
    return (line.strip() for line in text.splitlines() if line.strip())
