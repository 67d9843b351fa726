from .cat import CatCommand

__all__ = ["CatCommand"]
