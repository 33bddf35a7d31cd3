"""설정 파일 로더 (YAML)

config.yml을 읽어서 Python 객체로 변환. 파일이나 키가 없으면 기본값 사용.
"""

import yaml
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, field
from txt2epub.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = "config/config.yml"

# 챕터 제목 정규식 (중국어/영어 장절 표기, 숫자 라벨, 서장 표기)
DEFAULT_TITLE_PATTERN = (
    r"^.{0,8}(第.{1,20}(章|节)|(S|s)ection.{1,20}|(C|c)hapter.{1,20}|(P|p)age.{1,20})"
    r"|^[0-9]{1,4}.{0,20}$"
    r"|^引子|^楔子|^章节目录"
)
DEFAULT_TITLE_MAX = 35
DEFAULT_SECTION_TITLE = "章节正文"


@dataclass
class SegmentationConfig:
    """챕터 분할 설정"""
    title_pattern: str = DEFAULT_TITLE_PATTERN
    title_max: int = DEFAULT_TITLE_MAX
    default_title: str = DEFAULT_SECTION_TITLE


@dataclass
class EncodingConfig:
    """인코딩 감지 설정"""
    auto_detect: bool = True
    default_encoding: str = "utf-8"
    peek_size: int = 1024
    # 감지 결과를 신뢰하지 않는 라벨 -> 실제 디코딩할 코덱
    overrides: Dict[str, str] = field(default_factory=lambda: {
        "windows-1252": "gb18030",
        "gb2312": "gb18030",
        "gbk": "gb18030",
    })


@dataclass
class EPUBConfig:
    """EPUB 생성 옵션"""
    lang: str = "zh"
    author: str = "Orchid"
    description: str = ""
    identifier: Optional[str] = None
    output_dir: str = "."


@dataclass
class LoggingConfig:
    """로깅 설정"""
    file_level: str = "DEBUG"
    console_level: str = "INFO"
    log_dir: Optional[str] = "data/logs"


@dataclass
class Config:
    """전체 설정"""
    segmentation: SegmentationConfig = field(default_factory=SegmentationConfig)
    encoding: EncodingConfig = field(default_factory=EncodingConfig)
    epub: EPUBConfig = field(default_factory=EPUBConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _section(data: Dict[str, Any], name: str, cls):
    """YAML 섹션 하나를 dataclass로 변환 (모르는 키는 에러)"""
    values = data.get(name) or {}
    if not isinstance(values, dict):
        raise ValueError(f"Config section '{name}' must be a mapping")
    try:
        return cls(**values)
    except TypeError as e:
        raise ValueError(f"Invalid keys in config section '{name}': {e}")


def parse_config(data: Optional[Dict[str, Any]]) -> Config:
    """dict -> Config 변환

    Args:
        data: yaml.safe_load 결과 (None 허용)

    Returns:
        Config 객체
    """
    data = data or {}
    if not isinstance(data, dict):
        raise ValueError("Config root must be a mapping")
    config = Config(
        segmentation=_section(data, "segmentation", SegmentationConfig),
        encoding=_section(data, "encoding", EncodingConfig),
        epub=_section(data, "epub", EPUBConfig),
        logging=_section(data, "logging", LoggingConfig),
    )
    # 라벨 비교는 소문자 기준
    config.encoding.overrides = {
        str(k).lower(): str(v) for k, v in (config.encoding.overrides or {}).items()
    }
    return config


def load_config(config_path: Optional[str] = None) -> Config:
    """config.yml 로드

    Args:
        config_path: 설정 파일 경로. None이면 기본 경로를 찾고, 없으면 기본값 사용

    Returns:
        Config 객체

    Raises:
        FileNotFoundError: 명시한 설정 파일이 없을 때
        yaml.YAMLError: YAML 파싱 에러
        ValueError: 알 수 없는 설정 키
    """
    if config_path is None:
        path = Path(DEFAULT_CONFIG_PATH)
        if not path.exists():
            logger.debug(f"No config at {DEFAULT_CONFIG_PATH}, using defaults")
            return Config()
    else:
        path = Path(config_path)
        if not path.exists():
            logger.error(f"Config file not found: {config_path}")
            raise FileNotFoundError(f"Config file not found: {config_path}")

    logger.debug(f"Loading config from: {path}")
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    config = parse_config(data)
    logger.debug(f"Config loaded: title_max={config.segmentation.title_max}, lang={config.epub.lang}")
    return config
