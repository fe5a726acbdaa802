# cfa.py
# ---------------------
# 色彩滤镜阵列（CFA / Bayer）模型
# 传感器的 Bayer 排列（行优先）：
#
#   R G R G
#   G B G B
#
# 每 2 行、4 列重复一次。坐标必须是"虚拟全分辨率坐标"，
# 如果是某一帧自己的 RAW 坐标，需要先减去该帧的偏移（见 raw_loader/frame.py）。

from enum import IntEnum

import numpy as np


class Color(IntEnum):
    """通道编号，与输出 RGB 数组最后一维的下标一致。"""
    RED = 0
    GREEN = 1
    BLUE = 2


# 2 行 x 4 列的 CFA 瓦片，TILE[row % 2][col % 4]
# 等价于位压缩常量 0x94949494 的逐位解码：编码 0→R, 1→G, 2→B, 3→G
TILE = (
    (Color.RED, Color.GREEN, Color.RED, Color.GREEN),
    (Color.GREEN, Color.BLUE, Color.GREEN, Color.BLUE),
)

# 与 TILE 相同，供 numpy 向量化索引使用
TILE_ARRAY = np.array(TILE, dtype=np.uint8)


def filter_color(row, col):
    """返回 (row, col) 处滤镜的颜色。负坐标按同样的奇偶规律处理。"""
    return TILE[row & 1][col & 3]


def color_plane(height, width, row_offset=0, col_offset=0):
    """
    向量化版本的 filter_color：返回 (height, width) 的颜色编号数组，
    元素 [y, x] 等于 filter_color(y - row_offset, x - col_offset)。
    """
    rows = (np.arange(height) - row_offset) & 1
    cols = (np.arange(width) - col_offset) & 3
    return TILE_ARRAY[rows[:, None], cols[None, :]]
