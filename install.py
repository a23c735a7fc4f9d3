#!/usr/bin/env python3
"""Cross-platform install script for relay-bot.

Usage:
    python install.py          # Production install
    python install.py --dev    # Development install (includes test tools)
"""

import os
import platform
import shutil
import subprocess
import sys

MIN_PYTHON = (3, 11)


def main() -> None:
    # 1. Check Python version
    if sys.version_info < MIN_PYTHON:
        sys.exit(
            f"Error: Python {MIN_PYTHON[0]}.{MIN_PYTHON[1]}+ is required. "
            f"You have {sys.version_info.major}.{sys.version_info.minor}."
        )

    print(f"Python {sys.version_info.major}.{sys.version_info.minor} detected. OK.")

    dev = "--dev" in sys.argv
    project_dir = os.path.dirname(os.path.abspath(__file__))
    venv_dir = os.path.join(project_dir, ".venv")
    is_windows = platform.system() == "Windows"

    bin_dir = "Scripts" if is_windows else "bin"
    pip = os.path.join(venv_dir, bin_dir, "pip")

    # 2. Create virtual environment
    if not os.path.isdir(venv_dir):
        print("Creating virtual environment...")
        subprocess.check_call([sys.executable, "-m", "venv", venv_dir])
    else:
        print("Virtual environment already exists.")

    # 3. Install project
    subprocess.check_call([pip, "install", "--upgrade", "pip"])
    target = ".[dev]" if dev else "."
    print(f"Installing relay-bot ({'development' if dev else 'production'})...")
    subprocess.check_call([pip, "install", "-e", target], cwd=project_dir)

    # 4. ffmpeg is required for every audio path
    ffmpeg = shutil.which("ffmpeg")
    if ffmpeg:
        print(f"ffmpeg found at {ffmpeg}. OK.")
    else:
        print("WARNING: ffmpeg not found on PATH. Voice notes will fail until it is installed")
        print("         (apt install ffmpeg / brew install ffmpeg / winget install ffmpeg).")

    # 5. Copy config files if missing
    for src, dst in [("config.example.yaml", "config.yaml"), (".env.example", ".env")]:
        src_path = os.path.join(project_dir, src)
        dst_path = os.path.join(project_dir, dst)
        if not os.path.exists(dst_path) and os.path.exists(src_path):
            shutil.copy(src_path, dst_path)
            print(f"Created {dst} from {src}")
        elif os.path.exists(dst_path):
            print(f"{dst} already exists, skipping.")

    activate_cmd = r".\.venv\Scripts\activate" if is_windows else "source .venv/bin/activate"

    print()
    print("Next steps:")
    print("  1. Edit .env - set TELEGRAM_BOT_TOKEN, DIFY_API_KEY and GENNY_LOVO_API_KEY")
    print(f"  2. Activate the virtual environment: {activate_cmd}")
    print("  3. Check the configuration: python -m relay_bot config-check")
    print("  4. Start the relay: python -m relay_bot")


if __name__ == "__main__":
    main()
