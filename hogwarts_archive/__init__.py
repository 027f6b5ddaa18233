"""Hogwarts Archive - Core Application Package

This package contains the archive modules including:
- Command dispatcher (commands.py)
- Catalog and rental state (archive.py)
- Data models (spellbook.py, student.py)
- Catalog CSV import/export (catalog_io.py)
- Argument parsing (validators.py)
- Output blocks and formatting helpers (ui_helpers.py)
- Settings from the environment (config.py)
- CLI interface (main.py)
"""
