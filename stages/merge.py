# merge.py
# ---------------------
# 像素偏移合成引擎
# 4 帧模式：同一组的 4 个半像素偏移位置恰好覆盖一个 2x2 Bayer 瓦片，
#           每个输出像素都得到 1 个 R、2 个 G、1 个 B 的真实采样，无需插值。
# 16 帧模式：4 组分别做 4 帧合成，再按 2x2 网格交错，输出长宽各放大 2 倍。
#
#   +----+----+
#   | 0  | 1  |
#   +----+----+
#   | 2  | 3  |
#   +----+----+

from concurrent.futures import ThreadPoolExecutor
from enum import Enum

import numpy as np

from stages.cfa import Color
from stages.frame_set import FrameSet, MergeMode, check_contiguous, check_same_size, select_mode
from stages.sequence import SHOTS_PER_GROUP
from utils.errors import UnsupportedFrameCount
from utils.progress import MergeObserver

UINT16_MAX = np.iinfo(np.uint16).max


class ScalingPolicy(Enum):
    """
    通道累加后的增益 (R, G, B)。

    每个输出像素有 2 个绿色采样、红蓝各 1 个，
    BALANCED 把红蓝乘 2，使三个通道的量级大致一致；PLAIN 保留原始累加值。
    """
    BALANCED = (2, 1, 2)
    PLAIN = (1, 1, 1)

    @property
    def gains(self):
        return self.value

    @classmethod
    def from_name(cls, name):
        return cls[name.upper()]


def merge_group(frames, scaling=ScalingPolicy.BALANCED):
    """
    合成一组 4 帧。

    对每个输出坐标 (x, y)：out[y, x, color_at(f, x, y)] += sample_at(f, x, y)，
    累加与帧的输入顺序无关。累加用 uint32，最后按增益缩放并饱和到 uint16。

    参数:
        frames (sequence[Frame]): 同一组的 4 帧，尺寸必须相同。
        scaling (ScalingPolicy): 通道增益策略。

    返回:
        np.ndarray: (height, width, 3) 的 uint16 RGB 数组。
    """
    if len(frames) != SHOTS_PER_GROUP:
        raise UnsupportedFrameCount(
            f"一组必须正好 {SHOTS_PER_GROUP} 帧，收到 {len(frames)} 帧",
            {"count": len(frames)},
        )
    check_same_size(frames)

    height, width = frames[0].height, frames[0].width
    acc = np.zeros((height, width, 3), dtype=np.uint32)

    for frame in frames:
        samples = frame.aligned_plane()
        colors = frame.aligned_colors()
        for color in Color:
            acc[..., color] += np.where(colors == color, samples, 0).astype(np.uint32)

    acc *= np.array(scaling.gains, dtype=np.uint32)
    return np.minimum(acc, UINT16_MAX).astype(np.uint16)


def interleave_groups(grids):
    """
    把 4 个同尺寸的组合成结果交错成长宽各 2 倍的图像：
    输出 (x, y) 取第 (x % 2) + 2 * (y % 2) 组的 (x // 2, y // 2)。
    """
    if len(grids) != 4:
        raise UnsupportedFrameCount(f"交错需要 4 组，收到 {len(grids)} 组", {"count": len(grids)})

    height, width = grids[0].shape[:2]
    out = np.empty((height * 2, width * 2, 3), dtype=np.uint16)
    out[0::2, 0::2] = grids[0]
    out[0::2, 1::2] = grids[1]
    out[1::2, 0::2] = grids[2]
    out[1::2, 1::2] = grids[3]
    return out


def merge_frame_set(frames, scaling=ScalingPolicy.BALANCED, workers=4, observer=None):
    """
    按帧数分派：4 帧直接合成，16 帧分 4 组并行合成后交错。

    frames 可以是 validate_frame_set 返回的 FrameSet，也可以是已带 (组号, 位置) 的帧列表：
    列表会先检查帧数，再按 (组号, 位置) 排序并检查缺帧与重复。
    """
    observer = observer or MergeObserver()
    if not isinstance(frames, FrameSet):
        frames = list(frames)
        mode = select_mode(len(frames))
        ordered = sorted(frames, key=lambda f: f.slot)
        check_contiguous(ordered)
        frames = FrameSet(frames=tuple(ordered), mode=mode)

    groups = frames.groups()
    if frames.mode is MergeMode.FOUR_SHOT:
        observer.on_stage("4 帧合成")
        grid = merge_group(groups[0], scaling)
        observer.on_group_merged(0, grid)
        return grid

    observer.on_stage("16 帧合成：4 组并行")
    with ThreadPoolExecutor(max_workers=workers) as pool:
        grids = list(pool.map(lambda group: merge_group(group, scaling), groups))
    for index, grid in enumerate(grids):
        observer.on_group_merged(index, grid)

    observer.on_stage("交错 4 组结果")
    return interleave_groups(grids)
