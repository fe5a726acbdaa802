import os

import cv2
import numpy as np
import pytest

import main
from pipeline import DEFAULT_CONFIG, PixelShiftPipeline, load_config, merge_config
from raw_loader import frame as frame_module
from raw_loader.exif_reader import FrameMetadata
from stages.merge import ScalingPolicy
from utils.errors import ConfigurationError, MetadataFieldMissing
from utils.progress import MergeObserver

HEADER = 64
HEIGHT, WIDTH = 4, 6


@pytest.fixture
def raw_files(tmp_path, monkeypatch):
    """写入 4 个带文件头的合成 RAW 文件，并替换 exiftool 读取。"""
    metadata = {}
    paths = []
    for seq in range(1, 5):
        plane = np.full((HEIGHT, WIDTH), 100 * seq, dtype="<u2")
        path = str(tmp_path / f"DSC0000{seq}.ARW")
        with open(path, "wb") as f:
            f.write(bytes(HEADER) + plane.tobytes())
        metadata[path] = FrameMetadata(offset=HEADER, width=WIDTH, height=HEIGHT, sequence_number=seq)
        paths.append(path)

    def fake_read_metadata(path, exiftool="exiftool", timeout=30):
        if path not in metadata:
            raise MetadataFieldMissing("缺少元数据字段 'Sequence Number'", {"path": path})
        return metadata[path]

    monkeypatch.setattr(frame_module, "read_metadata", fake_read_metadata)
    return paths


def make_pipeline(tmp_path, **merge):
    config = {
        "raw": {"input_dir": str(tmp_path)},
        "merge": merge,
        "output": {"path": str(tmp_path / "out" / "merged.png"),
                   "debug_dir": str(tmp_path / "debug")},
    }
    return PixelShiftPipeline(config=config, observer=MergeObserver())


def test_run_four_shot(tmp_path, raw_files):
    pipeline = make_pipeline(tmp_path, scaling="plain")
    output = pipeline.run(raw_files)

    loaded = cv2.imread(output, cv2.IMREAD_UNCHANGED)[..., ::-1]
    assert loaded.shape == (HEIGHT, WIDTH, 3)
    # 位置 → 序号：0→2, 1→1, 2→4, 3→3；(1, 1) 处位置 0 看到 R，位置 2 看到 B
    assert loaded[1, 1].tolist() == [200, 100 + 300, 400]


def test_run_finds_files_from_config(tmp_path, raw_files):
    pipeline = make_pipeline(tmp_path)
    pipeline.config["raw"]["file_glob"] = "*.ARW"
    output = pipeline.run(output_file=str(tmp_path / "from_dir.tiff"))
    assert os.path.exists(output)


def test_debug_previews_are_saved(tmp_path, raw_files):
    pipeline = make_pipeline(tmp_path)
    pipeline.config["output"]["save_debug"] = True
    pipeline.run(raw_files)
    assert os.path.exists(tmp_path / "debug" / "group0_merge.png")


def test_metadata_failure_aborts(tmp_path, raw_files):
    pipeline = make_pipeline(tmp_path)
    with pytest.raises(MetadataFieldMissing):
        pipeline.run(raw_files + [str(tmp_path / "unknown.ARW")])


def test_invalid_merge_config(tmp_path):
    with pytest.raises(ConfigurationError):
        make_pipeline(tmp_path, scaling="fancy")
    with pytest.raises(ConfigurationError):
        make_pipeline(tmp_path, workers=0)


def test_load_config_merges_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("merge:\n  scaling: plain\n", encoding="utf-8")
    config = load_config(str(path))
    assert config["merge"] == {"scaling": "plain", "workers": 4}
    assert config["exiftool"] == DEFAULT_CONFIG["exiftool"]

    pipeline = PixelShiftPipeline(str(path), observer=MergeObserver())
    assert pipeline.scaling is ScalingPolicy.PLAIN


def test_load_config_errors(tmp_path):
    with pytest.raises(ConfigurationError):
        load_config(str(tmp_path / "missing.yaml"))

    bad = tmp_path / "bad.yaml"
    bad.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_config(str(bad))


def test_merge_config_does_not_modify_defaults():
    merged = merge_config(DEFAULT_CONFIG, {"output": {"save_debug": True}})
    assert merged["output"]["save_debug"] is True
    assert DEFAULT_CONFIG["output"]["save_debug"] is False


def test_main_exit_status(tmp_path, raw_files, capsys):
    config = tmp_path / "config.yaml"
    config.write_text("merge:\n  workers: 2\n", encoding="utf-8")
    output = str(tmp_path / "cli.png")

    assert main.main(["-c", str(config), "-o", output, "-i", *raw_files]) == 0
    assert os.path.exists(output)

    assert main.main(["-c", str(config), "-o", output, "-i", *raw_files[:3]]) == 1
    assert "IncompleteFrameSet" in capsys.readouterr().err

    assert main.main(["-c", str(tmp_path / "missing.yaml")]) == 1


def test_empty_input_dir_is_a_configuration_error(tmp_path):
    pipeline = make_pipeline(tmp_path)
    with pytest.raises(ConfigurationError) as excinfo:
        pipeline.run()
    assert excinfo.value.details == {"input_dir": str(tmp_path), "file_glob": "*.ARW"}
