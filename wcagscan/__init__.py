"""WCAG 2.2 AA accessibility audit across several third-party scanners."""

__version__ = "0.1.0"
