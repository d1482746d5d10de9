"""Keep a Homebrew formula in sync with the latest GitHub release."""

__version__ = "0.4.0"
