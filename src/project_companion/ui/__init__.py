"""UI module for the project companion.

The CLI can be run directly:
    python -m project_companion.ui.cli chat "Your message here"

Note: We don't export CLI components from __init__.py to avoid
module loading issues when running as a script.
"""

__all__ = []  # CLI is run directly, no exports needed
