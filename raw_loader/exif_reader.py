# exif_reader.py
# ---------------------
# 通过外部工具 exiftool 读取 RAW 元数据
# 只需要 4 个字段：RAW 数据起始偏移、宽、高、拍摄序号

import subprocess
from dataclasses import dataclass

from utils.errors import MetadataFieldInvalid, MetadataFieldMissing, MetadataToolError

OFFSET_KEY = "Strip Offsets"
WIDTH_KEY = "Image Width"
HEIGHT_KEY = "Image Height"
SEQUENCE_KEY = "Sequence Number"


@dataclass(frozen=True)
class FrameMetadata:
    offset: int
    width: int
    height: int
    sequence_number: int


def parse_exiftool_output(text):
    """把 exiftool 的 'Key : Value' 文本解析为字典，没有冒号的行跳过。"""
    fields = {}
    for line in text.splitlines():
        if ":" not in line:
            continue
        key, value = line.split(":", 1)
        fields[key.strip()] = value.strip()
    return fields


def run_exiftool(path, exiftool="exiftool", timeout=30):
    try:
        result = subprocess.run(
            [exiftool, str(path)],
            capture_output=True, text=True, errors="replace", timeout=timeout,
        )
    except FileNotFoundError as e:
        raise MetadataToolError(f"找不到 exiftool: {exiftool}", {"path": str(path)}) from e
    except subprocess.TimeoutExpired as e:
        raise MetadataToolError(f"exiftool 超时 ({timeout}s)", {"path": str(path)}) from e

    if result.returncode != 0:
        raise MetadataToolError(
            f"exiftool 返回状态 {result.returncode}",
            {"path": str(path), "stderr": result.stderr.strip()},
        )
    return result.stdout


def _require_uint(fields, key, path):
    if key not in fields:
        raise MetadataFieldMissing(f"缺少元数据字段 '{key}'", {"path": str(path), "field": key})

    value = fields[key]
    # 有些相机的 Strip Offsets 会列出多个条带，只取第一个
    first = value.split()[0] if value.split() else ""
    if not (first.isascii() and first.isdigit()) or int(first) == 0:
        raise MetadataFieldInvalid(
            f"元数据字段 '{key}' 不是正整数: '{value}'",
            {"path": str(path), "field": key},
        )
    return int(first)


def parse_frame_metadata(fields, path="<unknown>"):
    return FrameMetadata(
        offset=_require_uint(fields, OFFSET_KEY, path),
        width=_require_uint(fields, WIDTH_KEY, path),
        height=_require_uint(fields, HEIGHT_KEY, path),
        sequence_number=_require_uint(fields, SEQUENCE_KEY, path),
    )


def read_metadata(path, exiftool="exiftool", timeout=30):
    """读取单个 RAW 文件的元数据，任何字段缺失或非法都会直接抛出异常。"""
    fields = parse_exiftool_output(run_exiftool(path, exiftool, timeout))
    return parse_frame_metadata(fields, path)
