"""인코딩 정규화 (Encoding Normalizer)

입력 바이트 스트림 앞부분을 chardet으로 감지하고, 원본 인코딩과 상관없이
앞뒤 공백이 제거된 유니코드 행 스트림(CanonicalStream)으로 노출한다.

- UTF-8(ASCII 포함)로 감지되면 변환 없이 그대로 읽는다.
- 그 외에는 감지된 코덱으로 스트리밍 디코딩한다.
- windows-1252 감지는 이 코퍼스에서 신뢰할 수 없는 fallback이므로 GB18030으로 덮어쓴다.
- GB2312/GBK 감지도 GB18030으로 디코딩한다 (GBK 전용 글자 보존).
"""

import codecs
import io
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Dict, Iterator, Optional, Tuple, Union

import chardet

from txt2epub.utils.logger import get_logger

logger = get_logger(__name__)

PEEK_SIZE = 1024
CANONICAL_ENCODING = "utf-8"

# UTF-8로 취급하는 라벨 (ASCII는 UTF-8의 부분집합)
PASSTHROUGH_LABELS = {"utf-8": "utf-8", "ascii": "utf-8", "utf-8-sig": "utf-8-sig"}

# 감지 라벨 -> 실제 디코딩 코덱 (GB2312/GBK는 상위 집합인 GB18030으로 넓힌다)
DEFAULT_OVERRIDES = {"windows-1252": "gb18030", "gb2312": "gb18030", "gbk": "gb18030"}

# 파이썬이 모르는 라벨일 때 사용할 코덱
FALLBACK_CODEC = "gb18030"


@dataclass(frozen=True)
class DetectedEncoding:
    """감지(또는 지정)된 입력 인코딩

    Attributes:
        label: sniffer가 돌려준 라벨 (지정 인코딩이면 그 이름, 감지 실패 시 None)
        codec: 실제 디코딩에 사용하는 코덱 이름
        confidence: chardet 신뢰도 (지정 인코딩이면 1.0)
        passthrough: UTF-8 그대로 읽는 경로인지 여부
        declared: 호출자가 인코딩을 직접 지정했는지 여부
    """
    label: Optional[str]
    codec: str
    confidence: float
    passthrough: bool
    declared: bool = False


class CanonicalStream:
    """유니코드 행 커서

    `readline()`은 다음 행을 trim해서 돌려주고 스트림 끝이면 None.
    행 구분은 '\\n' 기준이며 '\\r'은 공백으로 제거된다.
    디코더는 이 객체가 소유한다.
    """

    def __init__(self, text: io.TextIOWrapper, encoding: DetectedEncoding, name: str = "<stream>", owns: bool = True):
        self._text = text
        self.encoding = encoding
        self.name = name
        self._owns = owns
        self._closed = False
        self.line_count = 0

    def readline(self) -> Optional[str]:
        raw = self._text.readline()
        if raw == "":
            return None
        self.line_count += 1
        return raw.strip()

    def __iter__(self) -> Iterator[str]:
        while True:
            line = self.readline()
            if line is None:
                return
            yield line

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._owns:
            self._text.close()
        else:
            # 호출자가 넘긴 스트림은 닫지 않는다
            self._text.detach()

    def __enter__(self) -> "CanonicalStream":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self):
        return f"<CanonicalStream {self.name} codec={self.encoding.codec} lines={self.line_count}>"


class EncodingNormalizer:
    """바이트 소스 -> CanonicalStream 변환기"""

    def __init__(
        self,
        peek_size: int = PEEK_SIZE,
        overrides: Optional[Dict[str, str]] = None,
        declared_encoding: Optional[str] = None,
        fallback_codec: str = FALLBACK_CODEC,
    ):
        """
        Args:
            peek_size: 감지에 사용할 앞부분 바이트 수
            overrides: 감지 라벨 -> 디코딩 코덱 치환표 (None이면 기본값)
            declared_encoding: 지정 인코딩 (주어지면 감지 생략)
            fallback_codec: 파이썬이 모르는 라벨일 때 사용할 코덱

        Raises:
            ValueError: 지정 인코딩을 파이썬이 모를 때
        """
        if peek_size <= 0:
            raise ValueError(f"peek_size must be positive: {peek_size}")
        self.peek_size = peek_size
        self.overrides = {k.lower(): v for k, v in (DEFAULT_OVERRIDES if overrides is None else overrides).items()}
        self.fallback_codec = fallback_codec

        self.declared_encoding = None
        if declared_encoding:
            try:
                self.declared_encoding = codecs.lookup(declared_encoding).name
            except LookupError:
                raise ValueError(f"Unknown encoding: {declared_encoding}")

    def detect(self, prefix: bytes) -> DetectedEncoding:
        """앞부분 바이트로 인코딩 판정

        Args:
            prefix: 입력의 앞부분 (최대 peek_size 바이트)

        Returns:
            DetectedEncoding
        """
        if self.declared_encoding:
            passthrough = self.declared_encoding in PASSTHROUGH_LABELS
            return DetectedEncoding(
                label=self.declared_encoding,
                codec=self.declared_encoding,
                confidence=1.0,
                passthrough=passthrough,
                declared=True,
            )

        result = chardet.detect(prefix) if prefix else {"encoding": None, "confidence": 0.0}
        label = result.get("encoding")
        confidence = result.get("confidence") or 0.0

        # 빈 입력 등 감지 실패는 UTF-8로 취급
        if not label:
            logger.debug("Encoding not detected, assuming utf-8")
            return DetectedEncoding(label=None, codec=CANONICAL_ENCODING, confidence=0.0, passthrough=True)

        key = label.lower()
        if key in PASSTHROUGH_LABELS:
            return DetectedEncoding(label=label, codec=PASSTHROUGH_LABELS[key], confidence=confidence, passthrough=True)

        codec = self.overrides.get(key, label)
        if key in self.overrides:
            logger.debug(f"Encoding override: {label} -> {codec}")

        try:
            codec = codecs.lookup(codec).name
        except LookupError:
            logger.warning(f"Unknown codec '{codec}' from detector, using {self.fallback_codec}")
            codec = self.fallback_codec

        return DetectedEncoding(label=label, codec=codec, confidence=confidence, passthrough=False)

    def open(self, path: Union[str, Path]) -> CanonicalStream:
        """파일 열기 + 인코딩 감지

        Args:
            path: 입력 텍스트 파일

        Returns:
            CanonicalStream (with 문으로 닫을 것)

        Raises:
            FileNotFoundError: 파일이 없을 때
            OSError: 파일을 열 수 없을 때
        """
        path = Path(path)
        if not path.exists():
            logger.error(f"Failed to read file: {path}")
            raise FileNotFoundError(f"Input file not found: {path}")

        try:
            raw = open(path, "rb")
        except OSError as e:
            logger.error(f"Failed to read file: {path} - {e}")
            raise

        try:
            return self.wrap(raw, name=str(path), owns=True)
        except Exception:
            raw.close()
            raise

    def wrap(self, raw: BinaryIO, name: str = "<stream>", owns: bool = False) -> CanonicalStream:
        """이미 열린 바이너리 스트림을 CanonicalStream으로 감싼다

        Args:
            raw: 읽기 가능한 바이너리 스트림
            name: 로그용 이름
            owns: True면 스트림을 닫을 때 raw도 닫는다
        """
        prefix, source = self._peek(raw)
        detected = self.detect(prefix)

        if detected.passthrough:
            logger.info(f"Encoding: {detected.label or 'unknown'} ({detected.confidence:.2f}) - reading as {detected.codec}")
        else:
            logger.info(f"Encoding: {detected.label} ({detected.confidence:.2f}) - decoding with {detected.codec}")

        # newline="\n": '\n'에서만 행을 나누고 '\r'은 strip에 맡긴다
        text = io.TextIOWrapper(source, encoding=detected.codec, errors="replace", newline="\n")
        return CanonicalStream(text, detected, name=name, owns=owns)

    def _peek(self, raw: BinaryIO) -> Tuple[bytes, BinaryIO]:
        """소비하지 않고 앞부분 읽기"""
        if raw.seekable():
            pos = raw.tell()
            prefix = raw.read(self.peek_size)
            raw.seek(pos)
            return prefix, raw

        if not isinstance(raw, io.BufferedReader):
            raw = io.BufferedReader(raw, buffer_size=max(io.DEFAULT_BUFFER_SIZE, self.peek_size))
        return raw.peek(self.peek_size)[:self.peek_size], raw


def read_lines(path: Union[str, Path], normalizer: Optional[EncodingNormalizer] = None) -> Iterator[str]:
    """파일의 trim된 행을 순서대로 생성 (편의 함수)"""
    normalizer = normalizer or EncodingNormalizer()
    with normalizer.open(path) as stream:
        yield from stream
