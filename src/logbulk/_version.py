"""
Fallback version module populated by hatch-vcs during builds.

For editable or source checkouts without tags, this default keeps imports working.
"""

__version__ = "0.1.0"
