# image_io.py
import os

import cv2
import numpy as np

from utils.errors import OutputError


def _write(path, img):
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    # OpenCV 按 BGR 顺序写文件
    try:
        written = cv2.imwrite(path, cv2.cvtColor(img, cv2.COLOR_RGB2BGR))
    except cv2.error as e:
        raise OutputError(f"无法写入图像: {path}", {"path": path, "reason": str(e)}) from e
    if not written:
        raise OutputError(f"无法写入图像: {path}", {"path": path})


def save_image_debug(rgb, path):
    """把 16bit 合成结果按最大值缩放成 8bit 预览图。"""
    img_float = rgb.astype(np.float32)
    max_val = img_float.max()

    if max_val > 0:
        img_scaled = img_float / max_val * 255.0
        # 防止uint8溢出
        img_processed = np.clip(img_scaled, 0, 255).astype(np.uint8)
    else:
        img_processed = np.zeros_like(img_float, dtype=np.uint8)

    _write(path, img_processed)


def save_rgb16(rgb, path):
    """
    保存最终的 16bit RGB 结果。
    需要支持 16bit 的容器格式，例如 .tiff / .png。
    """
    if rgb.dtype != np.uint16 or rgb.ndim != 3 or rgb.shape[2] != 3:
        raise OutputError(f"需要 (H, W, 3) 的 uint16 数组，收到 {rgb.dtype} {rgb.shape}", {"path": path})
    _write(path, rgb)
