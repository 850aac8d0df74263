"""
run_scorer.py: local stand-in for the similarity service (POST /api/coordinates).

Example:
  python3 src/demo/run_scorer.py --port 5000
"""
import sys

from posesync.cli import scorer_main


if __name__ == "__main__":
    sys.exit(scorer_main())
