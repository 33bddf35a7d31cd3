"""EPUB 생성 (패키징)

EbookLib 기반. 봉인된 섹션을 받는 즉시 챕터 페이지로 추가하고,
마지막에 목차/스파인을 구성해서 한 번에 기록한다.

임시 파일(CSS, 표지 JPEG, 기록 중인 EPUB)은 실행 단위 임시 디렉토리에만 만들고
성공/실패와 상관없이 close()에서 지운다. 완성된 EPUB만 출력 경로로 옮긴다.
"""

import shutil
import tempfile
from pathlib import Path
from typing import List, Optional, Union

from ebooklib import epub
from PIL import Image

from txt2epub.stages.epub_templates import (
    COVER_FILE_NAME, STYLE_FILE_NAME, chapter_file_name, create_chapter_page, get_css
)
from txt2epub.utils.logger import get_logger

logger = get_logger(__name__)


class EpubSink:
    """섹션 -> EPUB 기록기

    사용법:
        >>> with EpubSink("书名", cover_path="cover.png") as sink:
        ...     sink.add_section(section.body, section.title, sink.style_ref)
        ...     sink.write("out/书名.epub")
    """

    def __init__(
        self,
        book_name: str,
        author: Optional[str] = None,
        lang: str = "zh",
        identifier: Optional[str] = None,
        description: str = "",
        cover_path: Optional[Union[str, Path]] = None,
        css: Optional[str] = None,
    ):
        """
        Args:
            book_name: 책 제목 (dc:title)
            author: 작가 (dc:creator)
            lang: 언어 코드 (dc:language)
            identifier: 식별자 (None이면 책 제목 기반)
            description: 설명 (dc:description)
            cover_path: 표지 이미지 경로 (선택)
            css: 스타일시트 내용 (None이면 기본 CSS)
        """
        self.book_name = book_name
        self.author = author
        self.lang = lang
        self.identifier = identifier or f"txt2epub-{book_name}"
        self.description = description
        self.cover_path = Path(cover_path) if cover_path else None
        self.css = css if css is not None else get_css()

        self.book: Optional[epub.EpubBook] = None
        self.style_ref: Optional[epub.EpubItem] = None
        self.chapters: List[epub.EpubItem] = []
        self.toc: List[epub.Link] = []
        self._tmp: Optional[tempfile.TemporaryDirectory] = None
        self._written = False

    @property
    def scratch_dir(self) -> Path:
        if self._tmp is None:
            raise RuntimeError("EpubSink is not open")
        return Path(self._tmp.name)

    @property
    def section_count(self) -> int:
        return len(self.chapters)

    def open(self) -> "EpubSink":
        """임시 디렉토리와 책 객체 준비 (메타데이터, CSS, 표지)

        Raises:
            FileNotFoundError: 표지 파일이 없을 때
            ValueError: 표지를 이미지로 읽을 수 없을 때
        """
        self._tmp = tempfile.TemporaryDirectory(prefix="epub-builder-")
        try:
            book = epub.EpubBook()
            self._set_metadata(book)
            self.style_ref = self._add_css(book)
            if self.cover_path:
                self._add_cover(book, self.cover_path)
            self.book = book
        except Exception:
            self.close()
            raise
        logger.debug(f"EpubSink opened: scratch={self._tmp.name}")
        return self

    def close(self) -> None:
        """임시 디렉토리 정리"""
        if self._tmp is not None:
            self._tmp.cleanup()
            logger.debug("EpubSink scratch directory removed")
            self._tmp = None

    def __enter__(self) -> "EpubSink":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def add_section(self, body: str, title: str, style_ref: Optional[epub.EpubItem] = None) -> None:
        """섹션 하나를 챕터 페이지로 추가 (호출 순서 = 책 순서)

        Args:
            body: 렌더링된 본문 HTML
            title: 섹션 제목
            style_ref: 연결할 스타일시트 항목 (None이면 기본 스타일시트)
        """
        if self.book is None:
            raise RuntimeError("EpubSink is not open")
        if self._written:
            raise RuntimeError("EPUB already written")

        css_item = style_ref or self.style_ref
        file_name = chapter_file_name(len(self.chapters))
        page = create_chapter_page(
            title=title,
            body=body,
            file_name=file_name,
            css_file=css_item.file_name,
            lang=self.lang,
        )
        self.book.add_item(page)
        self.chapters.append(page)
        self.toc.append(epub.Link(file_name, title, Path(file_name).stem))

    def write(self, output_path: Union[str, Path]) -> Path:
        """목차/스파인 구성 후 EPUB 기록

        임시 디렉토리에 먼저 쓰고, 성공하면 출력 경로로 옮긴다.

        Args:
            output_path: 최종 EPUB 경로

        Returns:
            기록된 EPUB 경로

        Raises:
            ValueError: 추가된 섹션이 없을 때
        """
        if self.book is None:
            raise RuntimeError("EpubSink is not open")
        if not self.chapters:
            raise ValueError("No sections to write")

        book = self.book
        book.toc = tuple(self.toc)
        book.add_item(epub.EpubNcx())
        book.add_item(epub.EpubNav())

        spine: list = []
        if self.cover_path:
            spine.append("cover")
        spine.extend(self.chapters)
        book.spine = spine

        output_path = Path(output_path)
        staged = self.scratch_dir / output_path.name
        epub.write_epub(str(staged), book, {})
        self._written = True

        output_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(staged), str(output_path))

        logger.info(f"✅ EPUB created: {output_path} ({len(self.chapters)} sections)")
        return output_path

    def _set_metadata(self, book: epub.EpubBook) -> None:
        book.set_identifier(self.identifier)
        book.set_title(self.book_name)
        book.set_language(self.lang)
        if self.author:
            book.add_author(self.author)
        if self.description:
            book.add_metadata("DC", "description", self.description)

    def _add_css(self, book: epub.EpubBook) -> epub.EpubItem:
        """CSS를 임시 디렉토리에 쓰고 책에 추가 (Styles/style.css)"""
        css_file = self.scratch_dir / "page_styles.css"
        css_file.write_text(self.css, encoding="utf-8")

        css = epub.EpubItem(
            uid="style",
            file_name=STYLE_FILE_NAME,
            media_type="text/css",
            content=css_file.read_bytes()
        )
        book.add_item(css)
        return css

    def _add_cover(self, book: epub.EpubBook, cover_path: Path) -> None:
        """표지 이미지를 JPEG로 정규화해서 추가 (Images/cover.jpg)"""
        if not cover_path.exists():
            logger.error(f"Cover image not found: {cover_path}")
            raise FileNotFoundError(f"Cover image not found: {cover_path}")

        normalized = self.scratch_dir / "cover.jpg"
        try:
            with Image.open(cover_path) as img:
                img.convert("RGB").save(normalized, "JPEG", quality=90)
        except OSError as e:
            logger.error(f"Failed to add cover image: {cover_path} - {e}")
            raise ValueError(f"Invalid cover image: {cover_path}")

        book.set_cover(COVER_FILE_NAME, normalized.read_bytes())
        logger.debug(f"Cover added: {cover_path.name}")
