# sequence.py
# ---------------------
# 拍摄序号 → (组号, 组内位置) 映射
# 相机按自己的触发顺序输出 4 个偏移位置，与 2x2 偏移网格的行列顺序不同，
# 这里把它还原成光栅顺序。组号使用同一张置换表。

from utils.errors import InvalidSequence

# 1-based 输入 → 0-based 光栅位置
PERMUTATION = {
    1: 1,
    2: 0,
    3: 3,
    4: 2,
}

SHOTS_PER_GROUP = 4
MAX_FRAME_COUNT = 16


def permute(index):
    assert index in PERMUTATION, f"置换表输入越界: {index}"
    return PERMUTATION[index]


def map_sequence(seq, frame_count=MAX_FRAME_COUNT):
    """
    把 1-based 的拍摄序号映射为 (group, position)。

    参数:
        seq (int): 元数据中的 Sequence Number，从 1 开始。
        frame_count (int): 当前帧组的大小（4 或 16），决定序号的上限。
                           只有一组时（4 帧）组号固定为 0。

    返回:
        tuple: (group, position)，两者都在 0..3 之间。
    """
    upper = min(frame_count, MAX_FRAME_COUNT)
    if seq < 1 or seq > upper:
        raise InvalidSequence(
            f"拍摄序号 {seq} 超出范围 [1, {upper}]",
            {"sequence_number": seq, "frame_count": frame_count},
        )

    s = seq - 1
    position = permute(1 + s % SHOTS_PER_GROUP)
    if frame_count <= SHOTS_PER_GROUP:
        return 0, position
    group = permute(1 + s // SHOTS_PER_GROUP)
    return group, position
