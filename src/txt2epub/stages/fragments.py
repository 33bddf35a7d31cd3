"""섹션/프래그먼트 데이터 구조

본문 한 행을 HTML 조각으로 렌더링하는 규칙과, 조각을 모아 만든 섹션
"""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple
from xml.sax.saxutils import escape

# 문단 / 제목 마커
HTML_P_START = '<p class="content">'
HTML_P_END = "</p>"
HTML_TITLE_START = '<h3 class="title">'
HTML_TITLE_END = "</h3>"

# 이 두 글자로 끝나는 행은 구분선/마크업으로 보고 그대로 둔다
RAW_SUFFIXES: Tuple[str, ...] = ("==", "**", "--", "//")


class FragmentKind(Enum):
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    RAW = "raw"


@dataclass(frozen=True)
class Fragment:
    """섹션 본문의 렌더링 단위

    Attributes:
        kind: 조각 종류 (제목/문단/원문 그대로)
        text: 원본 행 (trim된 상태)
        html: 렌더링 결과
    """
    kind: FragmentKind
    text: str
    html: str


def is_raw_line(line: str) -> bool:
    """구분선/마크업 행 여부 (끝 두 글자 기준)"""
    return line.endswith(RAW_SUFFIXES)


def render_content(line: str) -> Fragment:
    """본문 행 -> 문단 조각 (구분선은 그대로)"""
    if is_raw_line(line):
        return Fragment(FragmentKind.RAW, line, line)
    return Fragment(FragmentKind.PARAGRAPH, line, f"{HTML_P_START}{escape(line)}{HTML_P_END}")


def render_heading(title: str) -> Fragment:
    """제목 행 -> 제목 조각 (항상 h3)"""
    return Fragment(FragmentKind.HEADING, title, f"{HTML_TITLE_START}{escape(title)}{HTML_TITLE_END}")


@dataclass(frozen=True)
class Section:
    """제목 하나와 그 뒤에 쌓인 본문

    Attributes:
        index: 방출 순서 (0부터)
        title: 섹션 제목 (봉인 시점에 비어 있으면 기본 제목으로 대체됨)
        fragments: 렌더링된 본문 조각 (등장 순서)
    """
    index: int
    title: str
    fragments: Tuple[Fragment, ...] = ()

    @property
    def body(self) -> str:
        """본문 HTML (조각을 이어 붙인 것)"""
        return "".join(f.html for f in self.fragments)

    @property
    def content_count(self) -> int:
        """제목 조각을 뺀 본문 조각 수"""
        return sum(1 for f in self.fragments if f.kind is not FragmentKind.HEADING)

    def to_text(self) -> str:
        """평문 표현 (제목 + 본문 행)"""
        lines = [self.title]
        lines.extend(f.text for f in self.fragments if f.kind is not FragmentKind.HEADING)
        return "\n".join(lines) + "\n"

    def __repr__(self):
        return f"<Section {self.index}: {self.title} ({len(self.fragments)} fragments)>"
