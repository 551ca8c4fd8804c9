"""Test package for the OCI cloud controller client."""

import sys
from pathlib import Path

# Add the src directory to the path so the package imports without installing
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))
