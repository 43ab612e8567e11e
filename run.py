#!/usr/bin/env python3
"""
Entry point for running the Top1000 ingestion service from a checkout.

    python run.py --schedule
"""
import sys
from pathlib import Path

# Ensure the project root is in the Python path
project_root = Path(__file__).resolve().parent
sys.path.append(str(project_root))

from top1000.main import main

if __name__ == "__main__":
    main()
