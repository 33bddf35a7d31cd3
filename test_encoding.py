"""EncodingNormalizer 테스트

UTF-8 무손실 통과, 레거시 인코딩 디코딩, windows-1252 -> GB18030 치환,
행 경계 처리, 에러 처리 검증
"""

import io

import pytest

from txt2epub.stages import encoding as encoding_module
from txt2epub.stages.encoding import CanonicalStream, EncodingNormalizer, read_lines

CHINESE_LINES = [
    "第一章 风起云涌",
    "天色渐渐暗了下来，远处的山峦笼罩在一片薄雾之中。",
    "他站在城墙上，望着远方，心中充满了对未来的期待与不安。",
    "第二章 初入江湖",
    "清晨的阳光洒在小镇的石板路上，行人来来往往，十分热闹。",
    "客栈里坐满了人，大家都在谈论昨天晚上发生的那件怪事。",
]


class _Pipe(io.RawIOBase):
    """seek 불가능한 바이트 스트림"""

    def __init__(self, data: bytes):
        self._buf = io.BytesIO(data)

    def readable(self):
        return True

    def readinto(self, b):
        chunk = self._buf.read(len(b))
        b[:len(chunk)] = chunk
        return len(chunk)


def _write(tmp_path, name, data: bytes):
    path = tmp_path / name
    path.write_bytes(data)
    return path


def test_utf8_round_trip(tmp_path):
    """UTF-8 파일은 글자 손실 없이 그대로"""
    lines = CHINESE_LINES + ["Ünïcödé — ✓ 😀", "mixed 中文 and English"]
    path = _write(tmp_path, "utf8.txt", ("\n".join(lines) + "\n").encode("utf-8"))

    normalizer = EncodingNormalizer()
    with normalizer.open(path) as stream:
        result = list(stream)
        detected = stream.encoding

    assert result == lines
    assert detected.passthrough
    assert detected.codec == "utf-8"
    assert "\ufffd" not in "".join(result)


def test_ascii_is_passthrough(tmp_path):
    path = _write(tmp_path, "ascii.txt", b"Chapter 1\nPlain ascii text.\n")

    with EncodingNormalizer().open(path) as stream:
        assert list(stream) == ["Chapter 1", "Plain ascii text."]
        assert stream.encoding.passthrough


def test_utf8_bom_stripped(tmp_path):
    data = "\n".join(CHINESE_LINES).encode("utf-8-sig")
    path = _write(tmp_path, "bom.txt", data)

    lines = list(read_lines(path))
    assert lines == CHINESE_LINES
    assert not lines[0].startswith("\ufeff")


def test_gb_encoded_file_decoded(tmp_path):
    """GB 계열 인코딩 파일도 유니코드로 복원"""
    text = "\r\n".join(CHINESE_LINES * 4) + "\r\n"
    path = _write(tmp_path, "gbk.txt", text.encode("gb18030"))

    with EncodingNormalizer().open(path) as stream:
        lines = list(stream)
        detected = stream.encoding

    assert not detected.passthrough
    assert lines == CHINESE_LINES * 4


def test_gbk_only_characters_survive(tmp_path):
    """GB2312에 없는 GBK 글자(镕, 話)도 손실 없이 디코딩"""
    lines = CHINESE_LINES * 4 + ["朱镕基说了一句話。"]
    path = _write(tmp_path, "gbk_only.txt", "\n".join(lines).encode("gbk"))

    with EncodingNormalizer().open(path) as stream:
        result = list(stream)
        detected = stream.encoding

    assert detected.codec == "gb18030"
    assert result == lines
    assert "\ufffd" not in "".join(result)


@pytest.mark.parametrize("label", ["GB2312", "GBK", "gbk"])
def test_gb_labels_widened_to_gb18030(monkeypatch, label):
    monkeypatch.setattr(
        encoding_module.chardet, "detect",
        lambda data: {"encoding": label, "confidence": 0.99, "language": "Chinese"},
    )
    detected = EncodingNormalizer().detect(b"\xb5\xda")

    assert detected.label == label
    assert detected.codec == "gb18030"


def test_windows_1252_overridden_to_gb18030(tmp_path, monkeypatch):
    """windows-1252 감지 결과는 GB18030으로 디코딩"""
    monkeypatch.setattr(
        encoding_module.chardet, "detect",
        lambda data: {"encoding": "Windows-1252", "confidence": 0.73, "language": ""},
    )
    path = _write(tmp_path, "gb.txt", "\n".join(CHINESE_LINES).encode("gb18030"))

    with EncodingNormalizer().open(path) as stream:
        lines = list(stream)
        detected = stream.encoding

    assert detected.label == "Windows-1252"
    assert detected.codec == "gb18030"
    assert lines == CHINESE_LINES


def test_custom_overrides(monkeypatch):
    monkeypatch.setattr(
        encoding_module.chardet, "detect",
        lambda data: {"encoding": "GB2312", "confidence": 0.99, "language": "Chinese"},
    )
    normalizer = EncodingNormalizer(overrides={"GB2312": "gb18030"})
    detected = normalizer.detect(b"\xb5\xda")

    assert detected.codec == "gb18030"
    assert not detected.passthrough

    # 치환표가 비어 있으면 감지 라벨 그대로
    assert EncodingNormalizer(overrides={}).detect(b"\xb5\xda").codec == "gb2312"


def test_unknown_label_falls_back(monkeypatch):
    monkeypatch.setattr(
        encoding_module.chardet, "detect",
        lambda data: {"encoding": "x-made-up", "confidence": 0.5, "language": ""},
    )
    assert EncodingNormalizer().detect(b"abc").codec == "gb18030"


def test_declared_encoding_skips_detection(tmp_path, monkeypatch):
    def fail(data):
        raise AssertionError("detector should not run")

    monkeypatch.setattr(encoding_module.chardet, "detect", fail)
    path = _write(tmp_path, "big5.txt", "第一章 開始\n內容。\n".encode("big5"))

    with EncodingNormalizer(declared_encoding="big5").open(path) as stream:
        assert list(stream) == ["第一章 開始", "內容。"]
        assert stream.encoding.declared
        assert stream.encoding.confidence == 1.0


def test_unknown_declared_encoding():
    with pytest.raises(ValueError):
        EncodingNormalizer(declared_encoding="no-such-codec")


def test_line_boundaries(tmp_path):
    """'\\n'에서만 행을 나누고, 앞뒤 공백과 '\\r'은 제거"""
    data = "  第1章  \r\n\r\n　　正文一。\r\nA\rB\n末行".encode("utf-8")
    path = _write(tmp_path, "lines.txt", data)

    normalizer = EncodingNormalizer(declared_encoding="utf-8")
    assert list(read_lines(path, normalizer)) == ["第1章", "", "正文一。", "A\rB", "末行"]


def test_readline_until_none(tmp_path):
    path = _write(tmp_path, "r.txt", b"one\ntwo\n")

    with EncodingNormalizer().open(path) as stream:
        assert stream.readline() == "one"
        assert stream.readline() == "two"
        assert stream.readline() is None
        assert stream.readline() is None
        assert stream.line_count == 2


def test_empty_file(tmp_path):
    path = _write(tmp_path, "empty.txt", b"")

    with EncodingNormalizer().open(path) as stream:
        assert list(stream) == []
        assert stream.encoding.passthrough
        assert stream.encoding.label is None


def test_peek_does_not_consume():
    """감지용으로 읽은 앞부분도 스트림에 그대로 남아 있다"""
    data = ("\n".join(CHINESE_LINES * 20)).encode("utf-8")
    assert len(data) > 1024

    source = io.BytesIO(data)
    stream = EncodingNormalizer().wrap(source)
    assert list(stream) == CHINESE_LINES * 20
    stream.close()

    # 호출자가 넘긴 스트림은 닫지 않는다
    assert not source.closed


def test_non_seekable_stream():
    data = ("\n".join(CHINESE_LINES * 20)).encode("gb18030")
    with EncodingNormalizer(declared_encoding="gb18030").wrap(_Pipe(data)) as stream:
        assert isinstance(stream, CanonicalStream)
        assert list(stream) == CHINESE_LINES * 20

    with EncodingNormalizer().wrap(_Pipe("\n".join(CHINESE_LINES).encode("utf-8"))) as stream:
        assert list(stream) == CHINESE_LINES


def test_invalid_bytes_replaced(tmp_path):
    """잘못된 바이트가 섞여도 실패하지 않는다"""
    data = ("\n".join(CHINESE_LINES * 30)).encode("utf-8") + b"\nbroken \xff\xfe line\n"
    path = _write(tmp_path, "broken.txt", data)

    lines = list(read_lines(path))
    assert lines[-1].startswith("broken")
    assert "\ufffd" in lines[-1]


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        EncodingNormalizer().open(tmp_path / "nope.txt")


def test_directory_is_os_error(tmp_path):
    with pytest.raises(OSError):
        EncodingNormalizer().open(tmp_path)


def test_invalid_peek_size():
    with pytest.raises(ValueError):
        EncodingNormalizer(peek_size=0)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
