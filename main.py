# 文件：main.py
# ---------------------
# 主程序入口：加载 config.yaml，执行像素偏移合成
# 例：python main.py -o merged.tiff -i DSC0001.ARW DSC0002.ARW DSC0003.ARW DSC0004.ARW
import argparse
import sys

from pipeline import PixelShiftPipeline
from utils.errors import PixelShiftError


def build_parser():
    parser = argparse.ArgumentParser(description="把 4 帧或 16 帧像素偏移 RAW 合成为一张 16bit RGB 图像")
    parser.add_argument("-c", "--config", default="config.yaml", help="配置文件路径")
    parser.add_argument("-o", "--output-file", help="输出图像路径（覆盖配置中的 output.path）")
    parser.add_argument("-i", "--input-files", nargs="+", help="输入 RAW 文件（不指定时使用 raw.input_dir）")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    try:
        pipeline = PixelShiftPipeline(args.config)
        pipeline.run(args.input_files, args.output_file)
    except PixelShiftError as e:
        print(f"❌ {type(e).__name__}: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    print("main 启动中...")
    sys.exit(main())
