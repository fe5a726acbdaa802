# frame.py
# ---------------------
# 单帧 RAW 拍摄：尺寸、由拍摄序号推出的 (组号, 组内位置)、只读像素存储
# 构造后不可变，合成完成后即可丢弃

from functools import cached_property

import numpy as np

from raw_loader.exif_reader import read_metadata
from raw_loader.raw_reader import decode_plane, open_byte_source, read_sample
from stages.cfa import color_plane, filter_color
from stages.sequence import map_sequence

# 组内位置 → (行偏移, 列偏移)，即该帧在 2x2 偏移网格中的半像素位移
POSITION_OFFSETS = {
    0: (1, 1),
    1: (0, 1),
    2: (0, 0),
    3: (1, 0),
}


class Frame:
    def __init__(self, width, height, sequence_number, pixel_store, path=None,
                 group=None, position_in_group=None):
        if width <= 0 or height <= 0:
            raise ValueError(f"帧尺寸必须为正: {width}x{height}")

        if group is None or position_in_group is None:
            group, position_in_group = map_sequence(sequence_number)
        if position_in_group not in POSITION_OFFSETS:
            raise ValueError(f"组内位置必须在 0..3 之间: {position_in_group}")

        self.width = width
        self.height = height
        self.sequence_number = sequence_number
        self.group = group
        self.position_in_group = position_in_group
        self.pixel_store = pixel_store
        self.path = path

    @classmethod
    def from_file(cls, path, exiftool="exiftool", timeout=30):
        """通过 exiftool 元数据 + 内存映射构造一帧。"""
        meta = read_metadata(path, exiftool, timeout)
        return cls(
            width=meta.width,
            height=meta.height,
            sequence_number=meta.sequence_number,
            pixel_store=open_byte_source(path, meta.offset),
            path=str(path),
        )

    def for_frame_count(self, frame_count):
        """按实际帧组大小重新推导 (组号, 组内位置)，返回新的 Frame。"""
        group, position = map_sequence(self.sequence_number, frame_count)
        return Frame(self.width, self.height, self.sequence_number, self.pixel_store,
                     self.path, group, position)

    @property
    def slot(self):
        """排序键：(group, position_in_group)。"""
        return self.group, self.position_in_group

    def __repr__(self):
        return (f"Frame(path={self.path!r}, size={self.width}x{self.height}, "
                f"seq={self.sequence_number}, group={self.group}, "
                f"position={self.position_in_group})")

    def sample(self, x, y):
        return read_sample(self.pixel_store, self.width, self.height, x, y)

    def offset(self):
        """返回 (row_offset, col_offset)。"""
        return POSITION_OFFSETS[self.position_in_group]

    def sample_at(self, x, y):
        row_offset, col_offset = self.offset()
        return self.sample(x - col_offset, y - row_offset)

    def color_at(self, x, y):
        row_offset, col_offset = self.offset()
        return filter_color(y - row_offset, x - col_offset)

    # ---- 向量化接口，供合成引擎使用 ----

    @cached_property
    def _plane(self):
        plane = decode_plane(self.pixel_store, self.width, self.height)
        plane.setflags(write=False)
        return plane

    def plane(self):
        """整幅 RAW 平面 (height, width)，uint16，只读。"""
        return self._plane

    def aligned_plane(self):
        """对每个虚拟坐标取 sample_at，越界处为 0。"""
        row_offset, col_offset = self.offset()
        aligned = np.zeros((self.height, self.width), dtype=np.uint16)
        aligned[row_offset:, col_offset:] = \
            self._plane[:self.height - row_offset, :self.width - col_offset]
        return aligned

    def aligned_colors(self):
        """对每个虚拟坐标取 color_at。"""
        row_offset, col_offset = self.offset()
        return color_plane(self.height, self.width, row_offset, col_offset)
