"""
homie - Clipboard history manager.

A background daemon records every text you copy into a local SQLite
database. The history can be searched and re-selected from the terminal,
loading older entries page by page as you scroll.

Example usage:
    $ homie start
    $ homie history --paste
    $ homie stop
"""

__version__ = "0.1.0"
__author__ = "homie Contributors"

__all__ = [
    "__version__",
    "__author__",
]
