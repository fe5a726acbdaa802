# 文件：test/conftest.py
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import numpy as np
import pytest

from raw_loader.frame import Frame
from stages.sequence import map_sequence


def sequence_for_slot(group, position):
    """16 帧模式下，找到映射到 (group, position) 的拍摄序号。"""
    for seq in range(1, 17):
        if map_sequence(seq) == (group, position):
            return seq
    raise AssertionError(f"no sequence number for slot {(group, position)}")


@pytest.fixture
def make_frame():
    """用一个 uint16 数组构造内存中的帧（小端字节）。"""

    def _make(plane, position=0, group=0, seq=None, path=None):
        plane = np.asarray(plane, dtype=np.uint16)
        height, width = plane.shape
        if seq is None:
            seq = sequence_for_slot(group, position)
        return Frame(width, height, seq, plane.astype("<u2").tobytes(), path,
                     group=group, position_in_group=position)

    return _make
