"""
Allow running callflat as a module:

    python -m callflat <summaries.yml> [options]

Delegates to callflat.cli:main().
"""
import sys
from .cli import main

sys.exit(main())
