# errors.py
# ---------------------
# 像素偏移合成的异常体系
# 所有致命错误都继承自 PixelShiftError，main.py 统一捕获并以非零状态退出

from typing import Any, Dict, Optional


class PixelShiftError(Exception):
    """像素偏移合成流程的基础异常。"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (详情: {self.details})"
        return self.message


class ConfigurationError(PixelShiftError):
    """配置文件缺失或配置项非法。"""
    pass


class MetadataError(PixelShiftError):
    """元数据读取失败的基类。"""
    pass


class MetadataFieldMissing(MetadataError):
    """必需的元数据字段不存在。"""
    pass


class MetadataFieldInvalid(MetadataError):
    """元数据字段无法解析为正整数。"""
    pass


class MetadataToolError(MetadataError):
    """exiftool 无法执行、超时或返回非零状态。"""
    pass


class InvalidSequence(PixelShiftError):
    """拍摄序号超出当前帧组的有效范围。"""
    pass


class IncompleteFrameSet(PixelShiftError):
    """排序后 (group, position) 不连续：缺帧或重复帧。"""
    pass


class UnsupportedFrameCount(PixelShiftError):
    """帧数不是 4 或 16。"""
    pass


class FrameSizeMismatch(PixelShiftError):
    """同一帧组中的 RAW 尺寸不一致。"""
    pass


class OutputError(PixelShiftError):
    """结果图像写入失败。"""
    pass
