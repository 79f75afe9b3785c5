"""
Test suite for the memorial preview renderer.

This package contains unit tests and end-to-end renderer tests
for layout, typesetting, photo cropping and proof generation.
"""

import sys
from pathlib import Path

# Add the project root to the Python path for imports
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))
