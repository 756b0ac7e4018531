# companylens/__init__.py
"""CompanyLens: hybrid natural-language search over company records."""

__version__ = "0.1.0"
