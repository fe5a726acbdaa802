# ---------------------
# 读取 RAW 像素数据（16bit 小端，逐行排列，无填充）
# 文件从 RAW 数据偏移处开始做只读内存映射，不整体读入内存


import os

import numpy as np

BYTES_PER_SAMPLE = 2


def open_byte_source(path, offset):
    """返回从 offset 开始的只读字节视图（uint8）；偏移到达文件末尾时返回空数组。"""
    size = os.path.getsize(path)
    if offset >= size:
        return np.zeros(0, dtype=np.uint8)
    return np.memmap(path, dtype=np.uint8, mode="r", offset=offset)


def read_sample(byte_source, width, height, x, y):
    """读取 (x, y) 处的一个 16bit 样本，越界或超出数据末尾时返回 0。"""
    if x < 0 or y < 0 or x >= width or y >= height:
        return 0
    pos = (y * width + x) * BYTES_PER_SAMPLE
    if pos + 1 >= len(byte_source):
        # 只剩低字节时高字节按 0 处理
        return int(byte_source[pos]) if pos < len(byte_source) else 0
    return int(byte_source[pos]) | (int(byte_source[pos + 1]) << 8)


def decode_plane(byte_source, width, height):
    """
    把字节视图解码成 (height, width) 的 uint16 数组。
    数据不足一整幅时，缺失部分补 0。
    """
    total = width * height
    available = min(len(byte_source) // BYTES_PER_SAMPLE, total)

    plane = np.zeros(total, dtype=np.uint16)
    if available:
        plane[:available] = np.frombuffer(
            byte_source[:available * BYTES_PER_SAMPLE], dtype="<u2"
        )
    # 奇数长度时最后一个样本只有低字节
    if available < total and len(byte_source) > available * BYTES_PER_SAMPLE:
        plane[available] = byte_source[available * BYTES_PER_SAMPLE]
    return plane.reshape((height, width))
