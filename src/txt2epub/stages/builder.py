"""변환 실행 (build / split / probe)

입력 파일 -> EncodingNormalizer -> Segmenter -> (EpubSink | 텍스트 파일)
섹션은 봉인되는 즉시 소비자에게 넘어간다.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Union

import xxhash

from txt2epub.config.loader import Config
from txt2epub.stages.encoding import DetectedEncoding, EncodingNormalizer
from txt2epub.stages.epub_sink import EpubSink
from txt2epub.stages.fragments import Section
from txt2epub.stages.segmenter import Segmenter, TitlePolicy
from txt2epub.utils.logger import get_logger
from txt2epub.utils.text_cleaner import clean_book_name, safe_filename

logger = get_logger(__name__)

SectionCallback = Callable[[Section], None]


@dataclass
class BuildResult:
    """실행 결과

    Attributes:
        input_path: 입력 파일
        encoding: 감지된 인코딩
        section_count: 방출된 섹션 수
        line_count: 읽은 행 수
        dropped_titles: 버퍼가 빈 상태에서 버려진 제목 행 수
        output_path: 생성된 EPUB 또는 split 디렉토리 (probe는 None)
    """
    input_path: Path
    encoding: DetectedEncoding
    section_count: int = 0
    line_count: int = 0
    dropped_titles: int = 0
    output_path: Optional[Path] = None


def make_normalizer(config: Config, declared_encoding: Optional[str] = None) -> EncodingNormalizer:
    """설정 -> EncodingNormalizer (CLI 지정 인코딩 우선)"""
    enc = config.encoding
    if declared_encoding is None and not enc.auto_detect:
        declared_encoding = enc.default_encoding
    return EncodingNormalizer(
        peek_size=enc.peek_size,
        overrides=enc.overrides,
        declared_encoding=declared_encoding,
    )


def make_segmenter(config: Config) -> Segmenter:
    """설정 -> Segmenter"""
    seg = config.segmentation
    policy = TitlePolicy(pattern=seg.title_pattern, max_length=seg.title_max)
    return Segmenter(policy, default_title=seg.default_title)


def calculate_hash(file_path: Union[str, Path]) -> str:
    """XXHash 계산 (기본 식별자용)

    Returns:
        16진수 해시 문자열
    """
    hasher = xxhash.xxh64()
    with open(file_path, "rb") as f:
        while chunk := f.read(8192):
            hasher.update(chunk)
    return hasher.hexdigest()


def run_segmentation(
    input_path: Union[str, Path],
    config: Config,
    on_section: SectionCallback,
    declared_encoding: Optional[str] = None,
) -> BuildResult:
    """입력 파일을 읽어 섹션마다 on_section 호출

    Raises:
        FileNotFoundError / OSError: 입력을 열거나 읽을 수 없을 때
    """
    input_path = Path(input_path)
    normalizer = make_normalizer(config, declared_encoding)
    segmenter = make_segmenter(config)

    logger.info(f"Reading: {input_path}")
    with normalizer.open(input_path) as stream:
        for section in segmenter.segment(stream):
            on_section(section)
        line_count = stream.line_count

    return BuildResult(
        input_path=input_path,
        encoding=stream.encoding,
        section_count=segmenter.section_count,
        line_count=line_count,
        dropped_titles=segmenter.dropped_titles,
    )


def build_epub(
    input_path: Union[str, Path],
    config: Config,
    book_name: Optional[str] = None,
    cover_path: Optional[Union[str, Path]] = None,
    output_dir: Optional[Union[str, Path]] = None,
    declared_encoding: Optional[str] = None,
    on_section: Optional[SectionCallback] = None,
) -> BuildResult:
    """TXT -> EPUB

    Args:
        input_path: 입력 텍스트 파일
        config: 설정
        book_name: 책 제목 (None이면 파일명에서 추출)
        cover_path: 표지 이미지 (선택)
        output_dir: 출력 디렉토리 (None이면 config.epub.output_dir)
        declared_encoding: 지정 인코딩 (감지 생략)
        on_section: 섹션 방출 시 추가로 호출할 콜백 (진행 표시 등)

    Returns:
        BuildResult

    Raises:
        FileNotFoundError / OSError: 입력/표지를 읽을 수 없을 때
        ValueError: 설정이 잘못됐거나 본문이 하나도 없을 때
    """
    input_path = Path(input_path)
    if not input_path.exists():
        logger.error(f"Failed to read file: {input_path}")
        raise FileNotFoundError(f"Input file not found: {input_path}")

    book_name = book_name or clean_book_name(input_path)
    output_dir = Path(output_dir or config.epub.output_dir)
    output_path = output_dir / safe_filename(book_name, ".epub")
    identifier = config.epub.identifier or f"txt2epub-{calculate_hash(input_path)}"

    logger.info("=" * 50)
    logger.info(f"Build: {book_name}")
    logger.info("=" * 50)

    with EpubSink(
        book_name,
        author=config.epub.author,
        lang=config.epub.lang,
        identifier=identifier,
        description=config.epub.description,
        cover_path=cover_path,
    ) as sink:

        def emit(section: Section) -> None:
            sink.add_section(section.body, section.title, sink.style_ref)
            if on_section:
                on_section(section)

        result = run_segmentation(input_path, config, emit, declared_encoding)

        if result.section_count == 0:
            logger.warning(f"No content found in {input_path}")
            raise ValueError(f"No content found in {input_path}")

        result.output_path = sink.write(output_path)

    logger.info(f"✅ Build complete: {result.section_count} sections, {result.dropped_titles} dropped titles")
    return result


def split_text(
    input_path: Union[str, Path],
    output_dir: Union[str, Path],
    config: Config,
    declared_encoding: Optional[str] = None,
) -> BuildResult:
    """TXT -> 섹션별 텍스트 파일 (0001.txt, 0002.txt, ...)

    각 파일은 UTF-8이며 첫 행이 제목, 이후 본문 행.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    def write_section(section: Section) -> None:
        target = output_dir / f"{section.index + 1:04d}.txt"
        target.write_text(section.to_text(), encoding="utf-8")
        logger.debug(f"Wrote {target.name}: {section.title}")

    result = run_segmentation(input_path, config, write_section, declared_encoding)
    result.output_path = output_dir
    logger.info(f"✅ Split complete: {result.section_count} files in {output_dir}")
    return result


def probe(
    input_path: Union[str, Path],
    config: Config,
    declared_encoding: Optional[str] = None,
) -> tuple:
    """아무것도 쓰지 않고 감지 결과만 수집

    Returns:
        (BuildResult, 섹션 리스트) 튜플
    """
    sections: List[Section] = []
    result = run_segmentation(input_path, config, sections.append, declared_encoding)
    return result, sections
