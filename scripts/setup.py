#!/usr/bin/env python3
"""
Bootstrap script for contrast-scan.
Installs the package with its test extras and the Chromium build Playwright drives.
"""

import subprocess
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent


def run_command(cmd, description):
    """Run a command and report status."""
    print(f"\n📦 {description}...")
    try:
        result = subprocess.run(cmd, shell=True, check=True, capture_output=True, text=True, cwd=ROOT)
        print(f"✅ {description} completed")
        if result.stdout:
            print(result.stdout)
        return True
    except subprocess.CalledProcessError as e:
        print(f"❌ {description} failed")
        if e.stderr:
            print(e.stderr)
        return False


def main():
    print("🚀 Setting up contrast-scan...")

    if sys.version_info < (3, 8):
        print("❌ Python 3.8+ required")
        sys.exit(1)

    extras = "[test]" if "--dev" in sys.argv[1:] else ""
    if not run_command(
        f'"{sys.executable}" -m pip install -e ".{extras}"',
        "Installing contrast-scan"
    ):
        sys.exit(1)

    if not run_command(
        f'"{sys.executable}" -m playwright install chromium',
        "Installing Chromium browser"
    ):
        sys.exit(1)

    print("\n✅ Setup complete! You can now run:")
    print("   contrast-scan https://example.com --output ./contrast-report.json")


if __name__ == "__main__":
    main()
