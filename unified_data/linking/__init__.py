"""Cross-dataset linking."""

from .data_linker import DataLinker, LINK_RULES, LinkRule

__all__ = ["DataLinker", "LINK_RULES", "LinkRule"]
