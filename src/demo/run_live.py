"""
run_live.py: webcam vs. animated reference model, scored by the remote service.

Example:
  python3 src/demo/run_live.py --model trial-2.glb --model-dir models \
    --scorer-url http://localhost:5000/api/coordinates

Keys: 1/2 switch model, ESC/q quit.
"""
import sys

from posesync.cli import live_main


if __name__ == "__main__":
    sys.exit(live_main())
