# frame_set.py
# ---------------------
# 帧组校验：按 (组号, 组内位置) 排序，检查完整性，并选择合成模式

from dataclasses import dataclass
from enum import Enum

from stages.sequence import SHOTS_PER_GROUP
from utils.errors import FrameSizeMismatch, IncompleteFrameSet, UnsupportedFrameCount


class MergeMode(Enum):
    FOUR_SHOT = 4
    SIXTEEN_SHOT = 16


@dataclass(frozen=True)
class FrameSet:
    frames: tuple
    mode: MergeMode

    @property
    def width(self):
        return self.frames[0].width

    @property
    def height(self):
        return self.frames[0].height

    def groups(self):
        """按组切分，每组 4 帧。"""
        return [self.frames[i:i + SHOTS_PER_GROUP]
                for i in range(0, len(self.frames), SHOTS_PER_GROUP)]


def select_mode(count):
    try:
        return MergeMode(count)
    except ValueError:
        raise UnsupportedFrameCount(
            f"不支持的帧数 {count}，只支持 4 或 16 帧", {"count": count}
        ) from None


def check_contiguous(frames):
    """已排序的帧必须满足 group*4 + position == 下标，否则报告第一个出问题的槽位。"""
    for index, frame in enumerate(frames):
        expected = divmod(index, SHOTS_PER_GROUP)
        if frame.slot == expected:
            continue

        if frame.slot < expected:
            details = {"group": frame.group, "position": frame.position_in_group}
            if frame.path:
                details["path"] = frame.path
            raise IncompleteFrameSet(
                f"重复的拍摄: 组 {frame.group} 位置 {frame.position_in_group}", details
            )
        details = {"group": expected[0], "position": expected[1]}
        raise IncompleteFrameSet(
            f"缺少拍摄: 组 {expected[0]} 位置 {expected[1]}", details
        )

    # 最后一组不完整时，缺的是紧跟在最后一帧之后的槽位
    if len(frames) % SHOTS_PER_GROUP:
        group, position = divmod(len(frames), SHOTS_PER_GROUP)
        raise IncompleteFrameSet(
            f"缺少拍摄: 组 {group} 位置 {position}", {"group": group, "position": position}
        )


def check_same_size(frames):
    width, height = frames[0].width, frames[0].height
    for frame in frames[1:]:
        if (frame.width, frame.height) != (width, height):
            raise FrameSizeMismatch(
                f"帧尺寸不一致: {frame.width}x{frame.height} != {width}x{height}",
                {"path": frame.path},
            )


def validate_frame_set(frames):
    """
    校验并整理一组帧。

    参数:
        frames (iterable[Frame]): 任意顺序的帧。

    返回:
        FrameSet: 已排序的帧和对应的合成模式。
    """
    frames = list(frames)
    # 只有一组时序号 1..4 都属于第 0 组；不足 4 帧且序号都在 1..4 内时按缺帧的单组处理
    single_group = len(frames) == SHOTS_PER_GROUP or (
        len(frames) < SHOTS_PER_GROUP
        and all(f.sequence_number <= SHOTS_PER_GROUP for f in frames)
    )
    if single_group:
        frames = [f.for_frame_count(SHOTS_PER_GROUP) for f in frames]

    ordered = sorted(frames, key=lambda f: f.slot)
    check_contiguous(ordered)
    mode = select_mode(len(ordered))
    check_same_size(ordered)
    return FrameSet(frames=tuple(ordered), mode=mode)
