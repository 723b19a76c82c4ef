from __future__ import annotations

from pausewatch.cli import entrypoint

if __name__ == "__main__":
    entrypoint()
