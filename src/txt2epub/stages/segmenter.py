"""Segmentation Engine

Trim된 행 스트림을 받아 행마다 제목/본문/빈 행을 판정하고,
제목 사이의 본문을 순서대로 Section으로 묶어 방출한다.

판정 규칙은 생성자로 받는 TitlePolicy(정규식 + 최대 길이)가 전부이며,
길이 검사를 먼저 하고 통과한 행에만 정규식을 적용한다.
"""

import re
from enum import Enum
from typing import Generator, Iterable, List, Optional

from txt2epub.config.loader import DEFAULT_SECTION_TITLE, DEFAULT_TITLE_MAX, DEFAULT_TITLE_PATTERN
from txt2epub.stages.fragments import Fragment, Section, render_content, render_heading
from txt2epub.utils.logger import get_logger

logger = get_logger(__name__)


class LineKind(Enum):
    BLANK = "blank"
    TITLE = "title"
    CONTENT = "content"


class TitlePolicy:
    """제목 판정 정책 (길이 제한 AND 정규식)"""

    def __init__(self, pattern: str = DEFAULT_TITLE_PATTERN, max_length: int = DEFAULT_TITLE_MAX):
        """
        Args:
            pattern: 제목 정규식 (행 앞에서부터 search)
            max_length: 제목으로 인정하는 최대 글자 수 (코드포인트 기준)

        Raises:
            ValueError: 정규식이 잘못됐거나 max_length가 음수일 때
        """
        if max_length < 0:
            raise ValueError(f"max_length must not be negative: {max_length}")
        try:
            self.regex = re.compile(pattern)
        except re.error as e:
            raise ValueError(f"Invalid Regex Pattern: {e}")
        self.pattern = pattern
        self.max_length = max_length

    def is_title(self, line: str) -> bool:
        # 길이 제한이 먼저
        if len(line) > self.max_length:
            return False
        return self.regex.search(line) is not None

    def classify(self, line: str) -> LineKind:
        return self.classify_trimmed(line.strip())

    def classify_trimmed(self, line: str) -> LineKind:
        """이미 trim된 행 판정"""
        if not line:
            return LineKind.BLANK
        if self.is_title(line):
            return LineKind.TITLE
        return LineKind.CONTENT

    def __repr__(self):
        return f"<TitlePolicy max={self.max_length} pattern={self.pattern!r}>"


class Segmenter:
    """행 스트림 -> Section 스트림

    상태는 현재 섹션 버퍼 하나와 현재 제목뿐이다.

    - 빈 행은 무시
    - 버퍼가 비어 있지 않을 때 제목 행: 현재 섹션을 봉인하고 그 제목으로 새 섹션 시작
      (제목 조각만 있는 버퍼도 비어 있지 않으므로 연속 제목은 각각 섹션이 된다)
    - 버퍼가 빈 상태에서 제목 행: 책 맨 앞이면 첫 섹션의 제목이 되고,
      이미 섹션을 봉인한 뒤라면 버린다
    - 본문 행: 버퍼에 추가 (제목 없이 시작하면 빈 제목의 섹션이 암묵적으로 열림)
    - 스트림 끝: 버퍼가 비어 있지 않으면 마지막 섹션으로 봉인

    봉인 시 제목이 비어 있으면 default_title로 대체한다.
    """

    def __init__(self, policy: Optional[TitlePolicy] = None, default_title: str = DEFAULT_SECTION_TITLE):
        """
        Args:
            policy: 제목 판정 정책 (None이면 기본 정책)
            default_title: 제목 없이 봉인되는 섹션의 제목

        Raises:
            ValueError: default_title이 비어 있을 때
        """
        if not default_title or not default_title.strip():
            raise ValueError("default_title must not be empty")
        self.policy = policy or TitlePolicy()
        self.default_title = default_title
        self.reset()

    def reset(self) -> None:
        self._title: Optional[str] = None
        self._buffer: List[Fragment] = []
        self.section_count = 0
        self.dropped_titles = 0

    def feed(self, line: str) -> Optional[Section]:
        """행 하나 처리

        Args:
            line: 입력 행

        Returns:
            이 행으로 봉인된 섹션 (없으면 None)
        """
        line = line.strip()
        kind = self.policy.classify_trimmed(line)

        if kind is LineKind.BLANK:
            return None

        if kind is LineKind.TITLE:
            if self._buffer:
                sealed = self._seal()
                self._start(line)
                return sealed
            if self.section_count == 0:
                logger.debug(f"Initial title: {line}")
                self._start(line)
                return None
            self.dropped_titles += 1
            logger.debug(f"Dropped title with empty buffer: {line}")
            return None

        self._buffer.append(render_content(line))
        return None

    def finish(self) -> Optional[Section]:
        """스트림 끝 처리 (남은 버퍼를 마지막 섹션으로 봉인)"""
        sealed = self._seal() if self._buffer else None
        self._title = None
        return sealed

    def segment(self, lines: Iterable[str]) -> Generator[Section, None, None]:
        """행 스트림을 섹션 단위로 분할

        Args:
            lines: trim된 행들 (CanonicalStream 등)

        Yields:
            봉인된 Section (원문 순서)
        """
        for line in lines:
            sealed = self.feed(line)
            if sealed is not None:
                yield sealed

        last = self.finish()
        if last is not None:
            yield last

        logger.debug(f"Segmentation done: {self.section_count} sections, {self.dropped_titles} dropped titles")

    def _start(self, title: str) -> None:
        self._title = title
        self._buffer = [render_heading(title)]

    def _seal(self) -> Section:
        section = Section(
            index=self.section_count,
            title=self._title or self.default_title,
            fragments=tuple(self._buffer),
        )
        self.section_count += 1
        self._buffer = []
        logger.debug(f"Sealed section {section.index}: {section.title} ({len(section.fragments)} fragments)")
        return section


def segment_lines(
    lines: Iterable[str],
    policy: Optional[TitlePolicy] = None,
    default_title: str = DEFAULT_SECTION_TITLE,
) -> List[Section]:
    """행 목록을 한 번에 분할 (편의 함수)"""
    return list(Segmenter(policy, default_title).segment(lines))
