"""Entry point for python -m py_image_batch_mcp.

默认启动 MCP 服务器；--output-dir 指定压缩包的默认输出目录。
"""

import os
import sys


def main() -> None:
    """主入口函数 - 启动批量压缩 MCP 服务器"""
    args = sys.argv[1:]

    if args and args[0] in ["--version", "-v"]:
        from . import __version__

        print(f"py-image-batch-mcp {__version__}")
        return

    if len(args) >= 2 and args[0] == "--output-dir":
        # 必须在导入服务器模块之前生效
        os.environ["PIB_OUTPUT_DIR"] = args[1]
        from .config import reset_config

        reset_config()

    from .mcp_server import main as server_main

    server_main()


if __name__ == "__main__":
    main()
