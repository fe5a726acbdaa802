
# pipeline.py
# ---------------------
# 像素偏移合成主流程（Pipeline）
# 加载 RAW → 校验帧组 → 合成 → 保存 16bit 结果，每组的合成结果可选地保存预览图

import copy
import glob
import os
import time
from concurrent.futures import ThreadPoolExecutor

import yaml

from raw_loader.frame import Frame
from stages.frame_set import validate_frame_set
from stages.merge import ScalingPolicy, merge_frame_set
from utils.errors import ConfigurationError
from utils.image_io import save_image_debug, save_rgb16
from utils.progress import ConsoleObserver, MergeObserver

DEFAULT_CONFIG = {
    "raw": {
        "input_dir": "input/",
        "file_glob": "*.ARW",
    },
    "exiftool": {
        "path": "exiftool",
        "timeout": 30,
    },
    "merge": {
        "scaling": "balanced",
        "workers": 4,
    },
    "output": {
        "path": "output/merged.tiff",
        "debug_dir": "output/debug_steps/",
        "save_debug": False,
    },
}


def merge_config(base, override):
    """递归合并配置：override 中的键覆盖 base。"""
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_file):
    if not os.path.exists(config_file):
        raise ConfigurationError(f"找不到配置文件: {config_file}")
    try:
        with open(config_file, encoding="utf-8") as f:
            loaded = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"配置文件格式错误: {config_file}", {"reason": str(e)}) from e

    if loaded is not None and not isinstance(loaded, dict):
        raise ConfigurationError(f"配置文件顶层必须是字典: {config_file}")
    return merge_config(DEFAULT_CONFIG, loaded)


class _GroupPreviewObserver(MergeObserver):
    """转发给外部观察者，同时把每组合成结果保存成预览图。"""

    def __init__(self, inner, debug_dir):
        self.inner = inner
        self.debug_dir = debug_dir

    def on_stage(self, name):
        self.inner.on_stage(name)

    def on_frame_loaded(self, frame):
        self.inner.on_frame_loaded(frame)

    def on_group_merged(self, index, grid):
        self.inner.on_group_merged(index, grid)
        save_image_debug(grid, os.path.join(self.debug_dir, f"group{index}_merge.png"))

    def on_finished(self, elapsed):
        self.inner.on_finished(elapsed)


class PixelShiftPipeline:
    def __init__(self, config_file=None, config=None, observer=None):
        if config_file is not None:
            self.config = load_config(config_file)
        else:
            self.config = merge_config(DEFAULT_CONFIG, config)

        self.observer = observer or ConsoleObserver()

        merge_cfg = self.config["merge"]
        try:
            self.scaling = ScalingPolicy.from_name(str(merge_cfg["scaling"]))
        except KeyError:
            raise ConfigurationError(
                f"未知的 merge.scaling: '{merge_cfg['scaling']}'（可选 balanced / plain）"
            ) from None

        self.workers = merge_cfg["workers"]
        if not isinstance(self.workers, int) or self.workers <= 0:
            raise ConfigurationError(f"merge.workers 必须是正整数: {self.workers}")

    def find_input_files(self):
        raw_cfg = self.config["raw"]
        input_dir = raw_cfg.get("input_dir")
        if not input_dir:
            raise ConfigurationError("没有指定输入文件，配置中 'raw.input_dir' 也为空")
        file_glob = raw_cfg.get("file_glob", "*")
        raw_files = sorted(glob.glob(os.path.join(input_dir, file_glob)))
        if not raw_files:
            raise ConfigurationError(
                f"在目录 '{input_dir}' 中未找到任何匹配 '{file_glob}' 的 RAW 文件，请检查路径和文件后缀。",
                {"input_dir": input_dir, "file_glob": file_glob},
            )
        return raw_files

    def load_frames(self, paths):
        """并行读取元数据并映射每个 RAW 文件，任何一个失败都会中止。"""
        exif_cfg = self.config["exiftool"]

        def load(path):
            return Frame.from_file(path, exif_cfg["path"], exif_cfg["timeout"])

        with ThreadPoolExecutor(max_workers=self.workers) as pool:
            frames = list(pool.map(load, paths))

        for frame in frames:
            self.observer.on_frame_loaded(frame)
        return frames

    def merge(self, frames):
        """校验帧组并合成，返回 uint16 RGB 数组。"""
        self.observer.on_stage("校验帧组")
        frame_set = validate_frame_set(frames)
        self.observer.on_stage(f"合成模式: {frame_set.mode.value} 帧, 缩放策略: {self.scaling.name.lower()}")

        observer = self.observer
        output_cfg = self.config["output"]
        if output_cfg.get("save_debug", False):
            observer = _GroupPreviewObserver(self.observer, output_cfg["debug_dir"])

        return merge_frame_set(frame_set, self.scaling, self.workers, observer)

    def run(self, input_files=None, output_file=None):
        start = time.perf_counter()

        paths = list(input_files) if input_files else self.find_input_files()
        output_path = output_file or self.config["output"]["path"]

        self.observer.on_stage(f"加载 {len(paths)} 个 RAW 文件")
        frames = self.load_frames(paths)

        rgb = self.merge(frames)

        self.observer.on_stage(f"保存结果: {output_path}")
        save_rgb16(rgb, output_path)

        self.observer.on_finished(time.perf_counter() - start)
        return output_path
