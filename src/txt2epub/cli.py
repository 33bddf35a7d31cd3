"""CLI 인터페이스

Typer 기반 명령줄 인터페이스, Rich 기반 출력
"""

import copy
from typing import Optional

import typer
import yaml
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from txt2epub.config.loader import Config, load_config
from txt2epub.stages.builder import BuildResult, build_epub, probe as probe_sections, split_text
from txt2epub.utils.logger import get_logger, setup_logging

__version__ = "1.0.0"

logger = get_logger(__name__)
console = Console()
err_console = Console(stderr=True)
app = typer.Typer(help="txt2epub - 텍스트 소설을 챕터 단위 EPUB으로 변환")


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"txt2epub {__version__}")
        raise typer.Exit()


def _fail(error: Exception) -> None:
    """치명적 에러: 메시지 출력 후 종료 코드 1"""
    logger.error(f"{type(error).__name__}: {error}")
    err_console.print(f"[bold red]❌ {error}[/bold red]")
    raise typer.Exit(code=1)


def _with_overrides(
    config: Config,
    title_max: Optional[int] = None,
    title_pattern: Optional[str] = None,
    lang: Optional[str] = None,
    author: Optional[str] = None,
) -> Config:
    """CLI 옵션을 설정 복사본에 덮어쓴다"""
    config = copy.deepcopy(config)
    if title_max is not None:
        config.segmentation.title_max = title_max
    if title_pattern is not None:
        config.segmentation.title_pattern = title_pattern
    if lang is not None:
        config.epub.lang = lang
    if author is not None:
        config.epub.author = author
    return config


def _result_table(title: str, result: BuildResult) -> Table:
    table = Table(title=title)
    table.add_column("항목", style="cyan")
    table.add_column("값", style="green")
    table.add_row("입력 파일", str(result.input_path))
    table.add_row("인코딩", f"{result.encoding.label or 'unknown'} → {result.encoding.codec}")
    table.add_row("읽은 행", str(result.line_count))
    table.add_row("섹션", str(result.section_count))
    table.add_row("버린 제목", str(result.dropped_titles))
    if result.output_path:
        table.add_row("출력", str(result.output_path))
    return table


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Optional[str] = typer.Option(None, "--config", help="설정 파일 (기본: config/config.yml)"),
    version: bool = typer.Option(False, "--version", callback=_version_callback, is_eager=True, help="버전 출력"),
):
    """설정 로드 + 로깅 초기화"""
    try:
        config = load_config(config_path)
    except (OSError, ValueError, yaml.YAMLError) as e:
        _fail(e)

    setup_logging(
        level=config.logging.file_level,
        console_level=config.logging.console_level,
        log_dir=config.logging.log_dir,
    )
    ctx.obj = config


@app.command()
def build(
    ctx: typer.Context,
    input_file: str = typer.Option(..., "--input", "-i", help="입력 텍스트 파일"),
    book_name: Optional[str] = typer.Option(None, "--book-name", "-b", help="책 제목 (기본: 파일명)"),
    cover: Optional[str] = typer.Option(None, "--cover", "-c", help="표지 이미지"),
    author: Optional[str] = typer.Option(None, "--author", "-a", help="작가"),
    lang: Optional[str] = typer.Option(None, "--lang", help="언어 코드 (기본: zh)"),
    title_max: Optional[int] = typer.Option(None, "--title-max", min=1, help="제목 최대 글자 수 (기본: 35)"),
    title_pattern: Optional[str] = typer.Option(None, "--title-pattern", help="제목 정규식"),
    encoding: Optional[str] = typer.Option(None, "--encoding", "-e", help="입력 인코딩 (지정 시 감지 생략)"),
    output_dir: Optional[str] = typer.Option(None, "--output-dir", "-o", help="출력 디렉토리"),
):
    """TXT → EPUB 생성"""
    console.print(Panel.fit("📖 EPUB 생성", style="bold blue"))
    config = _with_overrides(ctx.obj, title_max, title_pattern, lang, author)

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            task = progress.add_task("[cyan]텍스트 읽는 중...", total=None)

            def on_section(section):
                progress.update(task, description=f"[cyan]{section.index + 1}: {section.title}")

            result = build_epub(
                input_file,
                config,
                book_name=book_name,
                cover_path=cover,
                output_dir=output_dir,
                declared_encoding=encoding,
                on_section=on_section,
            )
    except (OSError, ValueError) as e:
        _fail(e)

    console.print(_result_table("EPUB 생성 결과", result))
    console.print(f"\n✅ EPUB 파일이 생성되었습니다: [green]{result.output_path}[/green]")


@app.command()
def split(
    ctx: typer.Context,
    input_file: str = typer.Option(..., "--input", "-i", help="입력 텍스트 파일"),
    output_dir: str = typer.Option("chapters", "--output-dir", "-o", help="섹션 파일을 쓸 디렉토리"),
    title_max: Optional[int] = typer.Option(None, "--title-max", min=1, help="제목 최대 글자 수"),
    title_pattern: Optional[str] = typer.Option(None, "--title-pattern", help="제목 정규식"),
    encoding: Optional[str] = typer.Option(None, "--encoding", "-e", help="입력 인코딩"),
):
    """TXT → 섹션별 텍스트 파일"""
    console.print(Panel.fit("✂️  챕터 분할", style="bold blue"))
    config = _with_overrides(ctx.obj, title_max, title_pattern)

    try:
        result = split_text(input_file, output_dir, config, declared_encoding=encoding)
    except (OSError, ValueError) as e:
        _fail(e)

    console.print(_result_table("분할 결과", result))


@app.command()
def probe(
    ctx: typer.Context,
    input_file: str = typer.Option(..., "--input", "-i", help="입력 텍스트 파일"),
    limit: int = typer.Option(50, "--limit", "-l", min=0, help="표시할 최대 섹션 수 (0이면 전부)"),
    title_max: Optional[int] = typer.Option(None, "--title-max", min=1, help="제목 최대 글자 수"),
    title_pattern: Optional[str] = typer.Option(None, "--title-pattern", help="제목 정규식"),
    encoding: Optional[str] = typer.Option(None, "--encoding", "-e", help="입력 인코딩"),
):
    """인코딩/섹션 감지 결과 확인 (파일 생성 없음)"""
    console.print(Panel.fit("🔍 감지 결과", style="bold blue"))
    config = _with_overrides(ctx.obj, title_max, title_pattern)

    try:
        result, sections = probe_sections(input_file, config, declared_encoding=encoding)
    except (OSError, ValueError) as e:
        _fail(e)

    console.print(_result_table("요약", result))

    table = Table(title="섹션 목록")
    table.add_column("#", style="cyan", justify="right")
    table.add_column("제목", style="green")
    table.add_column("본문 조각", style="yellow", justify="right")
    shown = sections if limit == 0 else sections[:limit]
    for section in shown:
        table.add_row(str(section.index + 1), section.title, str(section.content_count))
    console.print(table)

    if len(shown) < len(sections):
        console.print(f"... {len(sections) - len(shown)}개 더 있음")


if __name__ == "__main__":
    app()
