# companylens/search/__init__.py
"""Natural-language company search: extraction, filtering and hybrid ranking."""
