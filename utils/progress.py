# progress.py
# ---------------------
# 进度/计时观察者。合成算法本身不打印任何东西，
# 需要输出日志时由调用方传入观察者。

import numpy as np


class MergeObserver:
    """默认观察者：所有回调都是空操作。"""

    def on_stage(self, name):
        pass

    def on_frame_loaded(self, frame):
        pass

    def on_group_merged(self, index, grid):
        pass

    def on_finished(self, elapsed):
        pass


class ConsoleObserver(MergeObserver):
    """把进度打印到标准输出（GUI/终端都能看到）。"""

    def on_stage(self, name):
        print(f"→ {name}")

    def on_frame_loaded(self, frame):
        print(f"  已加载: {frame}")

    def on_group_merged(self, index, grid):
        log_data_range(grid, f"第 {index} 组合成")

    def on_finished(self, elapsed):
        print(f"✅ 完成，用时 {elapsed:.2f}s")


def log_data_range(rgb, step_name):
    """监控每个通道的数据范围，帮助调试"""
    ranges = ", ".join(
        f"{name}[{int(rgb[..., c].min())}, {int(rgb[..., c].max())}]"
        for c, name in enumerate("RGB")
    )
    print(f"→ {step_name}: 尺寸{rgb.shape[1]}x{rgb.shape[0]}, {ranges}, "
          f"均值{float(np.mean(rgb)):.1f}")
