"""텍스트 정리 유틸리티

입력 파일명에서 책 이름을 뽑고, 출력 파일명을 안전하게 만드는 함수
"""

import re
from pathlib import Path
from typing import Union
from txt2epub.utils.logger import get_logger

logger = get_logger(__name__)

# Windows 금지 문자: <>:"/\|?*
FORBIDDEN_CHARS = '<>:"/\\|?*'
MAX_FILENAME_LENGTH = 150


def clean_book_name(filename: Union[str, Path]) -> str:
    """파일명에서 책 이름 추출

    Args:
        filename: 원본 파일명 또는 경로

    Returns:
        정리된 책 이름 (비면 "untitled")

    Examples:
        >>> clean_book_name("/books/斗破苍穹.txt")
        "斗破苍穹"

        >>> clean_book_name("##my_great_novel.TXT")
        "my great novel"
    """
    title = Path(str(filename)).name
    if title.lower().endswith(".txt"):
        title = title[:-4]

    # 선행 해시 마커 제거
    title = re.sub(r'^#+\s*', '', title)

    # 언더스코어 -> 공백, 다중 공백 정리
    title = title.replace('_', ' ')
    title = re.sub(r'\s+', ' ', title).strip()

    logger.debug(f"Book name cleaned: '{filename}' → '{title}'")
    return title or "untitled"


def safe_filename(name: str, ext: str = ".epub") -> str:
    """출력 파일명 생성

    금지 문자를 빼고 길이를 제한한 뒤 확장자를 붙인다 (이미 있으면 그대로).

    Args:
        name: 책 이름
        ext: 확장자 (점 포함)

    Returns:
        파일명
    """
    safe = "".join(c for c in name if c not in FORBIDDEN_CHARS and c >= " ")
    safe = safe.strip().strip(".")[:MAX_FILENAME_LENGTH].strip() or "untitled"

    if ext and safe.lower().endswith(ext.lower()):
        return safe
    return f"{safe}{ext}"
