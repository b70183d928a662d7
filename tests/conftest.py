"""Pytest configuration for the Lox test suite."""

import sys
from pathlib import Path

# Add src directory to path for lox imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
