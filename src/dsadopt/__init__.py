"""dsadopt — design-system adoption metrics for component codebases."""

__version__ = "0.1.0"
