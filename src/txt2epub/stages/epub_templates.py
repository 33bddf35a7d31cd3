"""EPUB XHTML 템플릿 및 CSS 정의"""

import posixpath
from pathlib import Path
from xml.sax.saxutils import escape

from ebooklib import epub

STYLE_FILE_NAME = "Styles/style.css"
COVER_FILE_NAME = "Images/cover.jpg"


def get_css() -> str:
    """본문 CSS 반환 (.title 가운데 정렬, .content 2em 들여쓰기)"""
    return """@namespace epub "http://www.idpf.org/2007/ops";

body {
    margin: 5%;
    line-height: 1.8;
    text-align: justify;
}

.title {
    text-align: center;
    font-weight: bold;
    margin: 2em 0 1em 0;
    page-break-after: avoid;
}

.content {
    text-indent: 2em;
    margin: 0.5em 0;
}
"""


def chapter_file_name(index: int) -> str:
    """섹션 순서 -> 챕터 파일명 (Text/chapter_0001.xhtml)"""
    return f"Text/chapter_{index + 1:04d}.xhtml"


def create_chapter_page(title: str, body: str, file_name: str, css_file: str = STYLE_FILE_NAME, lang: str = "zh") -> epub.EpubItem:
    """챕터 본문 페이지 생성

    Args:
        title: 섹션 제목 (<title>과 목차에 사용)
        body: 렌더링된 본문 HTML (조각을 이어 붙인 것, 그대로 삽입)
        file_name: 책 내부 파일명
        css_file: 연결할 스타일시트 (책 내부 경로)
        lang: 언어 코드
    """
    css_href = posixpath.relpath(css_file, posixpath.dirname(file_name) or ".")

    content = f"""<?xml version='1.0' encoding='utf-8'?>
<!DOCTYPE html PUBLIC "-//W3C//DTD XHTML 1.1//EN" "http://www.w3.org/TR/xhtml11/DTD/xhtml11.dtd">
<html xmlns="http://www.w3.org/1999/xhtml" xml:lang="{lang}">
<head>
    <title>{escape(title)}</title>
    <link href="{css_href}" rel="stylesheet" type="text/css"/>
</head>
<body>
{body}
</body>
</html>"""

    return epub.EpubItem(
        uid=Path(file_name).stem,
        file_name=file_name,
        media_type="application/xhtml+xml",
        content=content.encode("utf-8")
    )
